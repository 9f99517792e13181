"""
Stock alerts: low/critical/out-of-stock report over current balances.

Usage:
    from stockledger import stock

    # Run periodically (cron) or after stock changes
    for alert in stock.stock_alerts(warehouse_id='wh-main'):
        print(alert.alert_type, alert.product_id, alert.available_quantity)

Thresholds come from the catalog's reorder_level for each product:

    available <= 0                                  out_of_stock  (error)
    available <= reorder_level * CRITICAL_STOCK_RATIO   critical  (error)
    available <= reorder_level                      low_stock     (warning)

Products with reorder_level 0 are not tracked.
"""

import logging
from dataclasses import dataclass

from django.db import models

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ValidationError
from stockledger.services.balances import BalanceStore

logger = logging.getLogger('stockledger')


class AlertType(models.TextChoices):
    OUT_OF_STOCK = 'out_of_stock', 'Out of stock'
    CRITICAL = 'critical', 'Critical'
    LOW_STOCK = 'low_stock', 'Low stock'


SEVERITY = {
    AlertType.OUT_OF_STOCK: 'error',
    AlertType.CRITICAL: 'error',
    AlertType.LOW_STOCK: 'warning',
}


@dataclass(frozen=True)
class StockAlert:
    product_id: str
    warehouse_id: str
    product_name: str
    sku: str
    alert_type: str
    severity: str
    quantity: int
    reserved_quantity: int
    available_quantity: int
    reorder_level: int

    def as_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'product_name': self.product_name,
            'sku': self.sku,
            'alert_type': self.alert_type,
            'severity': self.severity,
            'quantity': self.quantity,
            'reserved_quantity': self.reserved_quantity,
            'available_quantity': self.available_quantity,
            'reorder_level': self.reorder_level,
        }


def classify(available: int, reorder_level: int) -> AlertType | None:
    """Alert type for an available quantity, or None when healthy/untracked."""
    if reorder_level <= 0:
        return None
    if available <= 0:
        return AlertType.OUT_OF_STOCK
    if available <= reorder_level * stockledger_settings.CRITICAL_STOCK_RATIO:
        return AlertType.CRITICAL
    if available <= reorder_level:
        return AlertType.LOW_STOCK
    return None


class StockAlerts:
    """Scan balances and report the ones below their reorder thresholds."""

    def __init__(self, balances: BalanceStore, catalog):
        self.balances = balances
        self.catalog = catalog

    def check(self, warehouse_id: str | None = None,
              alert_type: str | None = None) -> list[StockAlert]:
        """
        Args:
            warehouse_id: Restrict to one warehouse (None = all)
            alert_type: Restrict to one AlertType value (None or 'all' = all)

        Returns:
            Alerts, errors first, then by available quantity ascending.
        """
        if alert_type == 'all':
            alert_type = None
        if alert_type is not None and alert_type not in AlertType.values:
            raise ValidationError(
                f"Unknown alert type: {alert_type}",
                allowed=list(AlertType.values),
            )

        alerts = []
        for balance in self.balances.all(warehouse_id=warehouse_id):
            product = self.catalog.resolve_product(balance.product_id)
            reorder_level = product.reorder_level if product else 0
            kind = classify(balance.available, reorder_level)
            if kind is None or (alert_type and kind != alert_type):
                continue

            alert = StockAlert(
                product_id=balance.product_id,
                warehouse_id=balance.warehouse_id,
                product_name=product.name if product else balance.product_id,
                sku=product.sku if product else balance.product_id,
                alert_type=kind.value,
                severity=SEVERITY[kind],
                quantity=balance.quantity,
                reserved_quantity=balance.reserved_quantity,
                available_quantity=balance.available,
                reorder_level=reorder_level,
            )
            alerts.append(alert)
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "product_id": alert.product_id,
                    "warehouse_id": alert.warehouse_id,
                    "alert_type": alert.alert_type,
                    "available": alert.available_quantity,
                    "reorder_level": reorder_level,
                },
            )

        alerts.sort(key=lambda a: (a.severity != 'error', a.available_quantity))
        return alerts
