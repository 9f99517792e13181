"""
Tests for the StockEngine facade: history, initial stock, default wiring.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

import stockledger
from stockledger import StockEngine
from stockledger.adapters import NoopCatalog, get_catalog
from stockledger.exceptions import NotFoundError, ValidationError
from stockledger.models import TransactionType


pytestmark = pytest.mark.django_db


class TestGetHistory:
    """Tests for get_history()."""

    def test_enriched_with_names(self, engine, receive):
        receipt = receive('p-2', 'wh-a', 7)

        [row] = engine.get_history(product_id='p-2')

        assert row['product_name'] == 'Gadget'
        assert row['sku'] == 'GAD-002'
        assert row['warehouse_name'] == 'Main Warehouse'
        assert row['quantity_change'] == 7
        assert row['reference_number'] == receipt.number
        assert row['transaction_type'] == TransactionType.RECEIPT
        assert row['created_by'] == 'tester'
        assert row['created_by_name'] == 'Test User'

    def test_unknown_ids_fall_back(self, engine, settings):
        settings.STOCKLEDGER = {'VALIDATE_REFERENCES': False}
        engine.post_initial_stock('p-x', 'wh-x', 3, actor_id='u-9')

        [row] = engine.get_history()

        assert row['product_name'] == 'p-x'
        assert row['warehouse_name'] == 'wh-x'
        assert row['created_by_name'] == 'u-9'

    def test_newest_first_with_filters(self, engine, stocked):
        order = engine.create_document('delivery', {'warehouse_id': 'wh-a'}, [{'product_id': 'p-1', 'quantity': 5}])
        engine.validate_document('delivery', order.pk)

        rows = engine.get_history(product_id='p-1', warehouse_id='wh-a')

        assert [r['transaction_type'] for r in rows] == ['delivery', 'receipt']
        assert [r['quantity_after'] for r in rows] == [95, 100]
        assert len(engine.get_history(transaction_type='delivery')) == 1
        assert len(engine.get_history(limit=1)) == 1

    def test_bad_filters_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.get_history(limit=0)
        with pytest.raises(ValidationError):
            engine.get_history(transaction_type='nope')


class TestPostInitialStock:
    """Tests for post_initial_stock()."""

    def test_posts_initial_entry(self, engine):
        entry = engine.post_initial_stock('p-1', 'wh-a', 25, actor_id='admin')

        assert entry.transaction_type == TransactionType.INITIAL_STOCK
        assert entry.transaction_id == 'p-1'
        assert entry.reference_number == 'INITIAL'
        assert (entry.quantity_before, entry.quantity_after) == (0, 25)
        assert entry.created_by == 'admin'
        assert engine.get_balance('p-1', 'wh-a').quantity == 25

    @pytest.mark.parametrize('quantity', [0, -5, 1.5, True])
    def test_quantity_must_be_positive_integer(self, engine, quantity):
        with pytest.raises(ValidationError):
            engine.post_initial_stock('p-1', 'wh-a', quantity)

    def test_unknown_product(self, engine):
        with pytest.raises(NotFoundError):
            engine.post_initial_stock('p-404', 'wh-a', 1)


class TestDefaultEngine:
    """The module-level `stock` engine and catalog loading."""

    def test_stock_is_a_shared_engine(self):
        assert isinstance(stockledger.stock, StockEngine)
        assert stockledger.stock is stockledger.stock

    def test_noop_catalog_accepts_anything(self, db):
        engine = StockEngine(catalog=NoopCatalog())

        receipt = engine.create_document('receipt', {'warehouse_id': 'anywhere'}, [{'product_id': 'anything', 'quantity': 2}])
        engine.validate_document('receipt', receipt.pk, actor_id='u-1')

        assert engine.get_balance('anything', 'anywhere').quantity == 2
        assert engine.get_history()[0]['created_by_name'] == 'u-1'

    def test_configured_catalog_is_loaded(self):
        assert isinstance(get_catalog(), NoopCatalog)
        assert get_catalog() is get_catalog()

    def test_bad_backend_path(self, settings):
        settings.STOCKLEDGER = {'CATALOG_BACKEND': 'stockledger.adapters.nowhere.Catalog'}

        with pytest.raises(ImproperlyConfigured):
            get_catalog()

    def test_backend_must_implement_protocol(self, settings):
        settings.STOCKLEDGER = {'CATALOG_BACKEND': 'collections.OrderedDict'}

        with pytest.raises(ImproperlyConfigured):
            get_catalog()

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            stockledger.nothing_here
