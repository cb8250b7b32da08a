"""
Sale, SaleLine and Allocation.

Sale/SaleLine are the minimal order records a sale needs to hold its
cost and price. Allocation is the append-only link between a sale line
and the inflow batches it consumed.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from larder.models.enums import AllocationMethod


class Sale(models.Model):
    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='sales',
        verbose_name=_('Tenant'),
    )
    branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.PROTECT,
        related_name='sales',
        verbose_name=_('Branch'),
    )
    number = models.CharField(max_length=40, db_index=True, verbose_name=_('Number'))
    method = models.CharField(max_length=4, choices=AllocationMethod.choices)
    subtotal = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    vat_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    vat_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    cost_total = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    profit = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0'))
    created_by = models.CharField(max_length=150, blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Sale')
        verbose_name_plural = _('Sales')
        ordering = ['-created_at', '-pk']

    def __str__(self) -> str:
        return self.number


class SaleLine(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='lines')
    item = models.ForeignKey('larder.InventoryItem', on_delete=models.PROTECT, related_name='+')
    uom = models.ForeignKey('larder.UnitOfMeasure', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=16, decimal_places=4, help_text=_('In the sale unit'))
    base_quantity = models.DecimalField(max_digits=16, decimal_places=4)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2, help_text=_('Per sale unit'))
    line_total = models.DecimalField(max_digits=16, decimal_places=2)
    cost_price = models.DecimalField(max_digits=14, decimal_places=2, help_text=_('Per base unit'))
    cost_total = models.DecimalField(max_digits=16, decimal_places=2)
    notes = models.TextField(blank=True, default='')

    class Meta:
        verbose_name = _('Sale line')
        verbose_name_plural = _('Sale lines')
        ordering = ['pk']

    def __str__(self) -> str:
        return f"{self.quantity} {self.uom} {self.item}"


class Allocation(models.Model):
    """
    Record that `quantity_used` base units of an inflow batch were
    consumed. Append-only: never updated, never deleted.
    """

    sale_line = models.ForeignKey(
        SaleLine,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='allocations',
    )
    inflow_batch = models.ForeignKey(
        'larder.InflowBatch',
        on_delete=models.PROTECT,
        related_name='allocations',
    )
    quantity_used = models.DecimalField(max_digits=16, decimal_places=4)
    cost_per_unit = models.DecimalField(max_digits=14, decimal_places=4)
    total_cost = models.DecimalField(max_digits=16, decimal_places=2)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Allocation')
        verbose_name_plural = _('Allocations')
        ordering = ['pk']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_used__gt=Decimal('0')),
                name='allocation_quantity_positive',
            ),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Allocations are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Allocations are append-only.")

    def __str__(self) -> str:
        return f"{self.quantity_used} from batch {self.inflow_batch_id}"
