"""
Tests for ReservationManager.
"""

import logging

import pytest

from stockledger.exceptions import InsufficientStockError, ValidationError
from stockledger.inputs import LineInput


pytestmark = pytest.mark.django_db


class TestReserveRelease:
    """Tests for reserve() / release()."""

    def test_reserve_accumulates(self, engine, stocked):
        engine.reservations.reserve('p-1', 'wh-a', 10)
        engine.reservations.reserve('p-1', 'wh-a', 5)

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 15

    def test_reserve_does_not_touch_quantity_or_ledger(self, engine, stocked):
        before = len(engine.get_history())

        engine.reservations.reserve('p-1', 'wh-a', 10)

        assert engine.get_balance('p-1', 'wh-a').quantity == 100
        assert len(engine.get_history()) == before

    def test_release_never_below_zero(self, engine, stocked, caplog):
        engine.reservations.reserve('p-1', 'wh-a', 3)

        with caplog.at_level(logging.WARNING, logger='stockledger'):
            engine.reservations.release('p-1', 'wh-a', 2)
            engine.reservations.release('p-1', 'wh-a', 2)
            engine.reservations.release('p-1', 'wh-a', 2)

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 0
        assert any(r.getMessage() == 'stock.reservation.over_release' for r in caplog.records)

    def test_negative_quantity_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.reservations.reserve('p-1', 'wh-a', -1)
        with pytest.raises(ValidationError):
            engine.reservations.release('p-1', 'wh-a', -1)


class TestCheckAndReserve:
    """Tests for check_and_reserve()."""

    def test_reserves_each_line(self, engine, stocked):
        engine.reservations.check_and_reserve(
            [LineInput('p-1', 40), LineInput('p-2', 10)], 'wh-a'
        )

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 40
        assert engine.get_balance('p-2', 'wh-a').reserved_quantity == 10

    def test_shortage_reserves_nothing(self, engine, stocked):
        with pytest.raises(InsufficientStockError):
            engine.reservations.check_and_reserve(
                [LineInput('p-1', 40), LineInput('p-2', 60)], 'wh-a'
            )

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 0
        assert engine.get_balance('p-2', 'wh-a').reserved_quantity == 0


class TestReplace:
    """Tests for the edit protocol."""

    def test_release_before_check(self, engine, stocked):
        # the document's own 80 must not count against its new 90
        engine.reservations.reserve('p-1', 'wh-a', 80)

        engine.reservations.replace([LineInput('p-1', 80)], 'wh-a', [LineInput('p-1', 90)], 'wh-a')

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 90

    def test_failed_check_restores_old_reservation(self, engine, stocked):
        engine.reservations.reserve('p-1', 'wh-a', 80)

        with pytest.raises(InsufficientStockError):
            engine.reservations.replace(
                [LineInput('p-1', 80)], 'wh-a', [LineInput('p-1', 101)], 'wh-a'
            )

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 80

    def test_move_to_other_warehouse(self, engine, stocked, receive):
        receive('p-1', 'wh-b', 20)
        engine.reservations.reserve('p-1', 'wh-a', 15)

        engine.reservations.replace([LineInput('p-1', 15)], 'wh-a', [LineInput('p-1', 15)], 'wh-b')

        assert engine.get_balance('p-1', 'wh-a').reserved_quantity == 0
        assert engine.get_balance('p-1', 'wh-b').reserved_quantity == 15
