"""
Stock services: one class per concern, wired together by StockEngine.

    from stockledger.services import BalanceStore, LedgerStore, DocumentEngine
"""

from stockledger.services.alerts import AlertType, StockAlert, StockAlerts
from stockledger.services.availability import Availability, AvailabilityChecker, BatchAvailability
from stockledger.services.balances import BalanceStore
from stockledger.services.documents import DocumentEngine, PostingResult
from stockledger.services.ledger import LedgerStore
from stockledger.services.reconciliation import Discrepancy, Reconciler
from stockledger.services.reservations import ReservationManager

__all__ = [
    'LedgerStore',
    'BalanceStore',
    'Availability',
    'AvailabilityChecker',
    'BatchAvailability',
    'ReservationManager',
    'DocumentEngine',
    'PostingResult',
    'AlertType',
    'StockAlert',
    'StockAlerts',
    'Discrepancy',
    'Reconciler',
]
