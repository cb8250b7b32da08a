"""
Inflow models: receipt documents and what they leave behind.

- Inflow: the goods-receipt header (one supplier invoice, one branch)
- InflowBatch: one received line; the unit allocation draws from
- Lot: traceability record for lot-tracked items
- BulkUploadLog: audit row for bulk upload lines that did not become stock
"""

from datetime import date
from decimal import Decimal

from django.db import models
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from larder.models.enums import AllocationMethod, InflowSource, InflowStatus, UploadStatus


class Inflow(models.Model):
    """A goods receipt document."""

    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='inflows',
        verbose_name=_('Tenant'),
    )
    branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='inflows',
        verbose_name=_('Branch'),
    )
    supplier = models.ForeignKey(
        'larder.Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inflows',
        verbose_name=_('Supplier'),
    )
    invoice_number = models.CharField(max_length=100, db_index=True, verbose_name=_('Invoice number'))
    received_date = models.DateTimeField(default=timezone.now, verbose_name=_('Received'))
    total_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    currency = models.CharField(max_length=3, default='NGN')
    status = models.CharField(
        max_length=20,
        choices=InflowStatus.choices,
        default=InflowStatus.PENDING,
        verbose_name=_('Status'),
    )
    source = models.CharField(
        max_length=20,
        choices=InflowSource.choices,
        default=InflowSource.MANUAL,
        verbose_name=_('Source'),
    )
    upload_tag = models.CharField(
        max_length=12,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Upload tag'),
        help_text=_('Shared by every inflow created from the same bulk upload'),
    )
    notes = models.TextField(blank=True, default='')
    approved_by = models.CharField(max_length=150, blank=True, default='')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Inflow')
        verbose_name_plural = _('Inflows')
        ordering = ['-received_date', '-pk']

    def __str__(self) -> str:
        return self.invoice_number


class InflowBatchQuerySet(models.QuerySet):

    def available_for(self, tenant, branch, item):
        """Candidate batches for allocating `item` at `branch`."""
        return self.filter(tenant=tenant, branch=branch, item=item)

    def in_allocation_order(self, method: str):
        """
        Order batches the way the allocation method consumes them.

        FIFO: created_at ASC, LIFO: created_at DESC,
        FEFO: expiry ASC with undated batches last, then created_at.
        pk breaks ties so the order is total.
        """
        if method == AllocationMethod.LIFO:
            return self.order_by('-created_at', '-pk')
        if method == AllocationMethod.FEFO:
            return self.order_by(F('expiry_date').asc(nulls_last=True), 'created_at', 'pk')
        return self.order_by('created_at', 'pk')

    def with_consumed(self):
        """Annotate `consumed_qty` (sum of allocations) and `remaining_qty`."""
        return self.annotate(
            consumed_qty=Coalesce(Sum('allocations__quantity_used'), Decimal('0')),
        ).annotate(remaining_qty=F('base_quantity') - F('consumed_qty'))


class InflowBatch(models.Model):
    """
    One received line of an inflow, in both the purchase unit and the
    item's base unit.

    Immutable once written. Its remaining quantity is
    base_quantity minus the allocations drawn from it.
    """

    inflow = models.ForeignKey(
        Inflow,
        on_delete=models.CASCADE,
        related_name='batches',
        verbose_name=_('Inflow'),
    )
    tenant = models.ForeignKey('larder.Tenant', on_delete=models.CASCADE, related_name='+')
    item = models.ForeignKey(
        'larder.InventoryItem',
        on_delete=models.PROTECT,
        related_name='inflow_batches',
        verbose_name=_('Item'),
    )
    branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.PROTECT,
        related_name='inflow_batches',
        verbose_name=_('Branch'),
    )
    supplier = models.ForeignKey(
        'larder.Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    input_uom = models.ForeignKey(
        'larder.UnitOfMeasure',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Purchase unit'),
    )
    quantity = models.DecimalField(
        max_digits=16, decimal_places=4,
        verbose_name=_('Quantity'),
        help_text=_('In the purchase unit'),
    )
    base_quantity = models.DecimalField(
        max_digits=16, decimal_places=4,
        verbose_name=_('Base quantity'),
        help_text=_("In the item's base unit"),
    )
    unit_cost = models.DecimalField(
        max_digits=14, decimal_places=2,
        verbose_name=_('Unit cost'),
        help_text=_('Per purchase unit'),
    )
    total_cost = models.DecimalField(max_digits=16, decimal_places=2)
    base_unit_cost = models.DecimalField(
        max_digits=14, decimal_places=4,
        verbose_name=_('Base unit cost'),
        help_text=_('total_cost / base_quantity'),
    )
    batch_number = models.CharField(max_length=50, blank=True, default='')
    expiry_date = models.DateField(null=True, blank=True, db_index=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = InflowBatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Inflow batch')
        verbose_name_plural = _('Inflow batches')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['tenant', 'branch', 'item'], name='larder_batch_scope_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Inflow batches are immutable once received.")
        super().save(*args, **kwargs)

    def consumed(self) -> Decimal:
        return self.allocations.aggregate(
            t=Coalesce(Sum('quantity_used'), Decimal('0'))
        )['t']

    def remaining(self) -> Decimal:
        return self.base_quantity - self.consumed()

    def __str__(self) -> str:
        label = f" [{self.batch_number}]" if self.batch_number else ""
        return f"{self.item} +{self.base_quantity}{label} @ {self.branch}"


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def expiring_before(self, day):
        """Lots expiring on or before the given date."""
        return self.filter(expiry_date__lte=day, expiry_date__isnull=False)


class Lot(models.Model):
    """
    Traceability record for a receipt of a lot-tracked item.

    Key use cases:
    - Track expiry dates per lot
    - Trace which supplier delivered which lot
    - Support recalls: "find every receipt of lot X"
    """

    tenant = models.ForeignKey('larder.Tenant', on_delete=models.CASCADE, related_name='+')
    item = models.ForeignKey(
        'larder.InventoryItem',
        on_delete=models.CASCADE,
        related_name='lots',
        verbose_name=_('Item'),
    )
    inflow_batch = models.OneToOneField(
        InflowBatch,
        on_delete=models.CASCADE,
        related_name='lot',
        verbose_name=_('Inflow batch'),
    )
    code = models.CharField(
        max_length=50,
        verbose_name=_('Lot code'),
        help_text=_('Supplier batch number, or a generated BATCH-... code'),
    )
    quantity = models.DecimalField(max_digits=16, decimal_places=4, help_text=_('Base unit'))
    expiry_date = models.DateField(null=True, blank=True, db_index=True)
    received_at = models.DateTimeField(default=timezone.now)
    supplier = models.ForeignKey(
        'larder.Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lot')
        verbose_name_plural = _('Lots')
        ordering = ['expiry_date', 'received_at']

    @property
    def is_expired(self) -> bool:
        """Is this lot past its expiry date?"""
        if self.expiry_date is None:
            return False
        return date.today() > self.expiry_date

    def __str__(self) -> str:
        expiry = f" (exp:{self.expiry_date})" if self.expiry_date else ""
        return f"Lot {self.code}{expiry}"


class BulkUploadLog(models.Model):
    """Audit row for a bulk upload line that failed or was skipped."""

    tenant = models.ForeignKey('larder.Tenant', on_delete=models.CASCADE, related_name='+')
    inflow = models.ForeignKey(
        Inflow,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='upload_logs',
    )
    session_id = models.CharField(max_length=32, db_index=True)
    line_number = models.PositiveIntegerField(help_text=_('1-based; the header is line 1. 0 = whole branch group.'))
    row_data = models.JSONField(default=dict, blank=True)
    errors = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=UploadStatus.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Bulk upload log')
        verbose_name_plural = _('Bulk upload logs')
        ordering = ['session_id', 'line_number']

    def __str__(self) -> str:
        return f"{self.session_id}:{self.line_number} {self.status}"
