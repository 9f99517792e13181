"""
Management command to cross-check balances against the ledger.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --product p-1 --warehouse wh-main
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger import stock


class Command(BaseCommand):
    """Reconcile stock balances command."""

    help = 'Compare stock balances with the ledger and open documents'

    def add_arguments(self, parser):
        parser.add_argument('--product', help='Only check this product id')
        parser.add_argument('--warehouse', help='Only check this warehouse id')

    def handle(self, *args, **options):
        discrepancies = stock.reconcile(
            product_id=options['product'],
            warehouse_id=options['warehouse'],
        )

        if not discrepancies:
            self.stdout.write(self.style.SUCCESS('Balances match the ledger'))
            return

        for d in discrepancies:
            problems = []
            if d.quantity_mismatch:
                problems.append(f'quantity {d.quantity} != ledger {d.ledger_quantity}')
            if d.reserved_mismatch:
                problems.append(f'reserved {d.reserved_quantity} != open lines {d.expected_reserved}')
            if d.broken_entries:
                problems.append(f'chain breaks at entries {d.broken_entries}')
            self.stdout.write(f'{d.product_id} @ {d.warehouse_id}: ' + '; '.join(problems))

        raise CommandError(f'{len(discrepancies)} balance(s) out of sync')
