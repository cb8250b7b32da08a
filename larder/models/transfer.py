"""
Transfer and TransferLine: moving stock between branches of a tenant.

    pending ──► in_transit ──► received
       │            │
       └────────────┴────────► cancelled
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from larder.models.enums import TransferStatus


class Transfer(models.Model):
    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='transfers',
        verbose_name=_('Tenant'),
    )
    number = models.CharField(max_length=40, unique=True, verbose_name=_('Transfer number'))
    source_branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.PROTECT,
        related_name='transfers_out',
        verbose_name=_('From'),
    )
    destination_branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.PROTECT,
        related_name='transfers_in',
        verbose_name=_('To'),
    )
    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    transfer_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True, default='')
    initiated_by = models.CharField(max_length=150, blank=True, default='')
    received_by = models.CharField(max_length=150, blank=True, default='')
    received_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Transfer')
        verbose_name_plural = _('Transfers')
        ordering = ['-transfer_date', '-pk']

    @property
    def is_open(self) -> bool:
        return self.status not in TransferStatus.terminal()

    def __str__(self) -> str:
        return f"{self.number} {self.source_branch} → {self.destination_branch} ({self.status})"


class TransferLine(models.Model):
    """
    One item on a transfer.

    quantity/received_quantity are in `uom`. base_quantity is fixed when
    the transfer is dispatched and received_base_quantity tracks what has
    been credited to the destination, so cancel and receipt settle exactly.
    """

    transfer = models.ForeignKey(Transfer, on_delete=models.CASCADE, related_name='lines')
    item = models.ForeignKey('larder.InventoryItem', on_delete=models.PROTECT, related_name='+')
    uom = models.ForeignKey('larder.UnitOfMeasure', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=16, decimal_places=4)
    received_quantity = models.DecimalField(max_digits=16, decimal_places=4, default=Decimal('0'))
    base_quantity = models.DecimalField(max_digits=16, decimal_places=4, default=Decimal('0'))
    received_base_quantity = models.DecimalField(max_digits=16, decimal_places=4, default=Decimal('0'))
    notes = models.TextField(blank=True, default='')

    class Meta:
        verbose_name = _('Transfer line')
        verbose_name_plural = _('Transfer lines')
        ordering = ['pk']

    @property
    def outstanding_base(self) -> Decimal:
        return self.base_quantity - self.received_base_quantity

    @property
    def is_fully_received(self) -> bool:
        return self.received_quantity >= self.quantity

    def __str__(self) -> str:
        return f"{self.quantity} {self.uom} {self.item}"
