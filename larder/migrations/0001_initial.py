"""
Initial migration for Larder models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Larder models: tenancy, units, stock ledger, inflows, sales, transfers."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
    ]

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('currency', models.CharField(default='NGN', max_length=3, verbose_name='Currency')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Tenant',
                'verbose_name_plural': 'Tenants',
            },
        ),
        migrations.CreateModel(
            name='Branch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='branches', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Branch',
                'verbose_name_plural': 'Branches',
                'ordering': ['name'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'name'), name='unique_branch_name')],
            },
        ),
        migrations.CreateModel(
            name='Supplier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
                ('phone', models.CharField(blank=True, default='', max_length=40)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='suppliers', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Supplier',
                'verbose_name_plural': 'Suppliers',
                'ordering': ['name'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'name'), name='unique_supplier_name')],
            },
        ),
        migrations.CreateModel(
            name='UnitOfMeasure',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('abbreviation', models.CharField(blank=True, default='', max_length=20, verbose_name='Abbreviation')),
                ('is_default', models.BooleanField(default=False, verbose_name='Default')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='units', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Unit of measure',
                'verbose_name_plural': 'Units of measure',
                'ordering': ['name'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'name'), name='unique_uom_name')],
            },
        ),
        migrations.CreateModel(
            name='UnitConversion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('factor', models.DecimalField(decimal_places=10, help_text='How many target units one source unit is worth', max_digits=24, verbose_name='Factor')),
                ('effective_from', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Effective from')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('from_uom', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversions_from', to='larder.unitofmeasure', verbose_name='From unit')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='unit_conversions', to='larder.tenant', verbose_name='Tenant')),
                ('to_uom', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversions_to', to='larder.unitofmeasure', verbose_name='To unit')),
            ],
            options={
                'verbose_name': 'Unit conversion',
                'verbose_name_plural': 'Unit conversions',
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'from_uom', 'to_uom'), name='unique_conversion_pair'),
                    models.CheckConstraint(condition=models.Q(('factor__gt', Decimal('0'))), name='conversion_factor_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InventoryItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('current_stock', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16, verbose_name='Current stock')),
                ('minimum_stock', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16)),
                ('maximum_stock', models.DecimalField(blank=True, decimal_places=4, max_digits=16, null=True)),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), help_text='Per base unit, refreshed by each inflow', max_digits=14, verbose_name='Last unit cost')),
                ('sale_price', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Per base unit', max_digits=14, verbose_name='Sale price')),
                ('is_trackable', models.BooleanField(default=False, help_text='Record a Lot for every receipt of this item', verbose_name='Lot tracked')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('base_uom', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.unitofmeasure', verbose_name='Base unit')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Inventory item',
                'verbose_name_plural': 'Inventory items',
                'ordering': ['name'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'name'), name='unique_item_name')],
            },
        ),
        migrations.CreateModel(
            name='BranchStock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('current_stock', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16, verbose_name='Current stock')),
                ('sale_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('minimum_stock', models.DecimalField(blank=True, decimal_places=4, max_digits=16, null=True)),
                ('maximum_stock', models.DecimalField(blank=True, decimal_places=4, max_digits=16, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stocks', to='larder.branch', verbose_name='Branch')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='branch_stocks', to='larder.inventoryitem', verbose_name='Item')),
            ],
            options={
                'verbose_name': 'Branch stock',
                'verbose_name_plural': 'Branch stocks',
                'constraints': [models.UniqueConstraint(fields=('branch', 'item'), name='unique_branch_item')],
            },
        ),
        migrations.CreateModel(
            name='StockMove',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=4, help_text='Positive = in, negative = out. Base unit.', max_digits=16, verbose_name='Delta')),
                ('kind', models.CharField(choices=[('inflow', 'Inflow'), ('sale', 'Sale'), ('transfer_out', 'Transfer out'), ('transfer_in', 'Transfer in'), ('transfer_return', 'Transfer return')], max_length=20, verbose_name='Kind')),
                ('reference_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Reference id')),
                ('reason', models.CharField(help_text='Required. E.g. "Inflow INV-...", "Transfer TRF-..."', max_length=255, verbose_name='Reason')),
                ('user', models.CharField(blank=True, default='', max_length=150, verbose_name='User')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('branch_stock', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='larder.branchstock', verbose_name='Branch stock')),
                ('reference_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='contenttypes.contenttype', verbose_name='Reference type')),
            ],
            options={
                'verbose_name': 'Stock move',
                'verbose_name_plural': 'Stock moves',
                'ordering': ['timestamp', 'pk'],
                'indexes': [
                    models.Index(fields=['branch_stock', 'timestamp'], name='larder_move_stock_ts_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='larder_move_reference_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Inflow',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(db_index=True, max_length=100, verbose_name='Invoice number')),
                ('received_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Received')),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('currency', models.CharField(default='NGN', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved')], default='pending', max_length=20, verbose_name='Status')),
                ('source', models.CharField(choices=[('manual', 'Manual'), ('bulk', 'Bulk upload')], default='manual', max_length=20, verbose_name='Source')),
                ('upload_tag', models.CharField(blank=True, db_index=True, default='', help_text='Shared by every inflow created from the same bulk upload', max_length=12, verbose_name='Upload tag')),
                ('notes', models.TextField(blank=True, default='')),
                ('approved_by', models.CharField(blank=True, default='', max_length=150)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='inflows', to='larder.branch', verbose_name='Branch')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inflows', to='larder.supplier', verbose_name='Supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inflows', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Inflow',
                'verbose_name_plural': 'Inflows',
                'ordering': ['-received_date', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='InflowBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=4, help_text='In the purchase unit', max_digits=16, verbose_name='Quantity')),
                ('base_quantity', models.DecimalField(decimal_places=4, help_text="In the item's base unit", max_digits=16, verbose_name='Base quantity')),
                ('unit_cost', models.DecimalField(decimal_places=2, help_text='Per purchase unit', max_digits=14, verbose_name='Unit cost')),
                ('total_cost', models.DecimalField(decimal_places=2, max_digits=16)),
                ('base_unit_cost', models.DecimalField(decimal_places=4, help_text='total_cost / base_quantity', max_digits=14, verbose_name='Base unit cost')),
                ('batch_number', models.CharField(blank=True, default='', max_length=50)),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inflow_batches', to='larder.branch', verbose_name='Branch')),
                ('inflow', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='batches', to='larder.inflow', verbose_name='Inflow')),
                ('input_uom', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.unitofmeasure', verbose_name='Purchase unit')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inflow_batches', to='larder.inventoryitem', verbose_name='Item')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='larder.supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='larder.tenant')),
            ],
            options={
                'verbose_name': 'Inflow batch',
                'verbose_name_plural': 'Inflow batches',
                'ordering': ['created_at', 'pk'],
                'indexes': [models.Index(fields=['tenant', 'branch', 'item'], name='larder_batch_scope_idx')],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Supplier batch number, or a generated BATCH-... code', max_length=50, verbose_name='Lot code')),
                ('quantity', models.DecimalField(decimal_places=4, help_text='Base unit', max_digits=16)),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True)),
                ('received_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('inflow_batch', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='lot', to='larder.inflowbatch', verbose_name='Inflow batch')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lots', to='larder.inventoryitem', verbose_name='Item')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='larder.supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='larder.tenant')),
            ],
            options={
                'verbose_name': 'Lot',
                'verbose_name_plural': 'Lots',
                'ordering': ['expiry_date', 'received_at'],
            },
        ),
        migrations.CreateModel(
            name='BulkUploadLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_id', models.CharField(db_index=True, max_length=32)),
                ('line_number', models.PositiveIntegerField(help_text='1-based; the header is line 1. 0 = whole branch group.')),
                ('row_data', models.JSONField(blank=True, default=dict)),
                ('errors', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('failed', 'Failed'), ('skipped', 'Skipped')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('inflow', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='upload_logs', to='larder.inflow')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='larder.tenant')),
            ],
            options={
                'verbose_name': 'Bulk upload log',
                'verbose_name_plural': 'Bulk upload logs',
                'ordering': ['session_id', 'line_number'],
            },
        ),
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(db_index=True, max_length=40, verbose_name='Number')),
                ('method', models.CharField(choices=[('FIFO', 'First in, first out'), ('LIFO', 'Last in, first out'), ('FEFO', 'First expired, first out')], max_length=4)),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('vat_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('vat_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('cost_total', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('profit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16)),
                ('created_by', models.CharField(blank=True, default='', max_length=150)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='larder.branch', verbose_name='Branch')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sales', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Sale',
                'verbose_name_plural': 'Sales',
                'ordering': ['-created_at', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='SaleLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=4, help_text='In the sale unit', max_digits=16)),
                ('base_quantity', models.DecimalField(decimal_places=4, max_digits=16)),
                ('unit_price', models.DecimalField(decimal_places=2, help_text='Per sale unit', max_digits=14)),
                ('line_total', models.DecimalField(decimal_places=2, max_digits=16)),
                ('cost_price', models.DecimalField(decimal_places=2, help_text='Per base unit', max_digits=14)),
                ('cost_total', models.DecimalField(decimal_places=2, max_digits=16)),
                ('notes', models.TextField(blank=True, default='')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.inventoryitem')),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='larder.sale')),
                ('uom', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.unitofmeasure')),
            ],
            options={
                'verbose_name': 'Sale line',
                'verbose_name_plural': 'Sale lines',
                'ordering': ['pk'],
            },
        ),
        migrations.CreateModel(
            name='Allocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_used', models.DecimalField(decimal_places=4, max_digits=16)),
                ('cost_per_unit', models.DecimalField(decimal_places=4, max_digits=14)),
                ('total_cost', models.DecimalField(decimal_places=2, max_digits=16)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('inflow_batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='larder.inflowbatch')),
                ('sale_line', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='larder.saleline')),
            ],
            options={
                'verbose_name': 'Allocation',
                'verbose_name_plural': 'Allocations',
                'ordering': ['pk'],
                'constraints': [models.CheckConstraint(condition=models.Q(('quantity_used__gt', Decimal('0'))), name='allocation_quantity_positive')],
            },
        ),
        migrations.CreateModel(
            name='Transfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=40, unique=True, verbose_name='Transfer number')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_transit', 'In transit'), ('received', 'Received'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('transfer_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True, default='')),
                ('initiated_by', models.CharField(blank=True, default='', max_length=150)),
                ('received_by', models.CharField(blank=True, default='', max_length=150)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('destination_branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_in', to='larder.branch', verbose_name='To')),
                ('source_branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_out', to='larder.branch', verbose_name='From')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transfers', to='larder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Transfer',
                'verbose_name_plural': 'Transfers',
                'ordering': ['-transfer_date', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='TransferLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=16)),
                ('received_quantity', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16)),
                ('base_quantity', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16)),
                ('received_base_quantity', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=16)),
                ('notes', models.TextField(blank=True, default='')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.inventoryitem')),
                ('transfer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='larder.transfer')),
                ('uom', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='larder.unitofmeasure')),
            ],
            options={
                'verbose_name': 'Transfer line',
                'verbose_name_plural': 'Transfer lines',
                'ordering': ['pk'],
            },
        ),
    ]
