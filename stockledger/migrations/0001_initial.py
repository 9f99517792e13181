"""
Initial migration for Stockledger models.
"""

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


STATUS_CHOICES = [
    ('draft', 'Draft'),
    ('waiting', 'Waiting'),
    ('ready', 'Ready'),
    ('done', 'Done'),
    ('canceled', 'Canceled'),
]


def document_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('number', models.CharField(max_length=40, unique=True, verbose_name='Number')),
        ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='draft', max_length=20, verbose_name='Status')),
        ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
        ('created_by', models.CharField(blank=True, default='', max_length=64, verbose_name='Created by')),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('validated_at', models.DateTimeField(blank=True, null=True, verbose_name='Validated at')),
    ]


def line_fields(document_model):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('product_id', models.CharField(max_length=64, verbose_name='Product')),
        ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
        ('notes', models.CharField(blank=True, default='', max_length=255)),
        ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to=document_model)),
    ]


class Migration(migrations.Migration):
    """Create Stockledger models: balances, ledger, documents and their lines."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockBalance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Product')),
                ('warehouse_id', models.CharField(max_length=64, verbose_name='Warehouse')),
                ('quantity', models.IntegerField(default=0, help_text='Negative only after a physical count adjustment', verbose_name='On hand')),
                ('reserved_quantity', models.PositiveIntegerField(default=0, help_text='Earmarked by open outbound documents', verbose_name='Reserved')),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stock balance',
                'verbose_name_plural': 'Stock balances',
                'indexes': [models.Index(fields=['warehouse_id'], name='balance_warehouse_idx')],
                'constraints': [models.UniqueConstraint(fields=('product_id', 'warehouse_id'), name='unique_balance_per_product_warehouse')],
            },
        ),
        migrations.CreateModel(
            name='LedgerEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Product')),
                ('warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='Warehouse')),
                ('transaction_type', models.CharField(choices=[('receipt', 'Receipt'), ('delivery', 'Delivery'), ('transfer_in', 'Transfer in'), ('transfer_out', 'Transfer out'), ('adjustment', 'Adjustment'), ('initial_stock', 'Initial stock')], max_length=20, verbose_name='Transaction type')),
                ('transaction_id', models.CharField(max_length=64, verbose_name='Originating document')),
                ('line_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Originating line')),
                ('quantity_change', models.IntegerField(help_text='Positive = in, Negative = out', verbose_name='Change')),
                ('quantity_before', models.IntegerField(verbose_name='Before')),
                ('quantity_after', models.IntegerField(verbose_name='After')),
                ('reference_number', models.CharField(blank=True, default='', max_length=64, verbose_name='Reference')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Notes')),
                ('created_by', models.CharField(blank=True, default='', max_length=64, verbose_name='Created by')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Created at')),
            ],
            options={
                'verbose_name': 'Ledger entry',
                'verbose_name_plural': 'Ledger entries',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['product_id', 'warehouse_id', 'created_at'], name='ledger_key_created_idx'),
                    models.Index(fields=['transaction_type', 'created_at'], name='ledger_type_created_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('transaction_id', 'line_id', 'transaction_type'), name='unique_ledger_leg_per_line')],
            },
        ),
        migrations.CreateModel(
            name='Receipt',
            fields=document_fields() + [
                ('warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='Warehouse')),
                ('supplier_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Supplier')),
            ],
            options={
                'verbose_name': 'Receipt',
                'verbose_name_plural': 'Receipts',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='DeliveryOrder',
            fields=document_fields() + [
                ('warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='Warehouse')),
                ('customer_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Customer')),
            ],
            options={
                'verbose_name': 'Delivery order',
                'verbose_name_plural': 'Delivery orders',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='InternalTransfer',
            fields=document_fields() + [
                ('from_warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='From warehouse')),
                ('to_warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='To warehouse')),
            ],
            options={
                'verbose_name': 'Internal transfer',
                'verbose_name_plural': 'Internal transfers',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='StockAdjustment',
            fields=document_fields() + [
                ('warehouse_id', models.CharField(db_index=True, max_length=64, verbose_name='Warehouse')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
            ],
            options={
                'verbose_name': 'Stock adjustment',
                'verbose_name_plural': 'Stock adjustments',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='ReceiptItem',
            fields=line_fields('stockledger.receipt') + [
                ('unit_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='DeliveryItem',
            fields=line_fields('stockledger.deliveryorder'),
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='TransferItem',
            fields=line_fields('stockledger.internaltransfer'),
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='AdjustmentItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Product')),
                ('counted_quantity', models.PositiveIntegerField(verbose_name='Counted')),
                ('recorded_quantity', models.IntegerField(verbose_name='Recorded')),
                ('difference', models.IntegerField(verbose_name='Difference')),
                ('notes', models.CharField(blank=True, default='', max_length=255)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='stockledger.stockadjustment')),
            ],
            options={
                'ordering': ['id'],
            },
        ),
    ]
