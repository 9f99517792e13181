"""
Pytest fixtures for Stockledger tests.
"""

import pytest

from stockledger.adapters import reset_catalog
from stockledger.protocols import ProductInfo, WarehouseInfo
from stockledger.service import StockEngine


class FakeCatalog:
    """Dict-backed CatalogBackend; unknown ids resolve to None."""

    def __init__(self):
        self.products = {}
        self.warehouses = {}
        self.users = {}

    def add_product(self, product_id, name, sku, unit_of_measure='un', reorder_level=0):
        self.products[product_id] = ProductInfo(
            id=product_id,
            name=name,
            sku=sku,
            unit_of_measure=unit_of_measure,
            reorder_level=reorder_level,
        )
        return self.products[product_id]

    def add_warehouse(self, warehouse_id, name, code=None):
        self.warehouses[warehouse_id] = WarehouseInfo(id=warehouse_id, name=name, code=code)
        return self.warehouses[warehouse_id]

    def resolve_product(self, product_id):
        return self.products.get(product_id)

    def resolve_warehouse(self, warehouse_id):
        return self.warehouses.get(warehouse_id)

    def resolve_user(self, user_id):
        return self.users.get(user_id)


@pytest.fixture(autouse=True)
def _reset_catalog():
    """Never leak a cached backend between tests."""
    reset_catalog()
    yield
    reset_catalog()


@pytest.fixture
def catalog():
    """Two warehouses, three products, one named user."""
    c = FakeCatalog()
    c.add_warehouse('wh-a', 'Main Warehouse', code='MAIN')
    c.add_warehouse('wh-b', 'Downtown Store', code='DT')
    c.add_product('p-1', 'Widget', 'WID-001', reorder_level=20)
    c.add_product('p-2', 'Gadget', 'GAD-002', unit_of_measure='box', reorder_level=10)
    c.add_product('p-3', 'Sprocket', 'SPR-003')
    c.users['tester'] = 'Test User'
    return c


@pytest.fixture
def engine(db, catalog):
    """StockEngine bound to the fake catalog."""
    return StockEngine(catalog=catalog)


@pytest.fixture
def receive(engine):
    """Validated receipt helper: receive(product_id, warehouse_id, quantity)."""

    def _receive(product_id, warehouse_id, quantity):
        receipt = engine.create_document(
            'receipt',
            {'warehouse_id': warehouse_id},
            [{'product_id': product_id, 'quantity': quantity}],
            actor_id='tester',
        )
        engine.validate_document('receipt', receipt.pk, actor_id='tester')
        return receipt

    return _receive


@pytest.fixture
def stocked(receive):
    """p-1: 100 and p-2: 50 at wh-a."""
    receive('p-1', 'wh-a', 100)
    receive('p-2', 'wh-a', 50)
