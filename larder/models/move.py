"""
StockMove model: immutable ledger of quantity changes.
"""

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from larder.models.enums import MoveKind


class StockMove(models.Model):
    """
    Immutable record of a stock change at one branch.

    Rules:
    - NEVER update() or delete()
    - Corrections are new moves with inverse delta
    - Updates BranchStock.current_stock and InventoryItem.current_stock
      atomically on save()

    This is the ONLY model that changes stock counters.
    """

    branch_stock = models.ForeignKey(
        'larder.BranchStock',
        on_delete=models.PROTECT,
        related_name='moves',
        verbose_name=_('Branch stock'),
    )

    delta = models.DecimalField(
        max_digits=16,
        decimal_places=4,
        verbose_name=_('Delta'),
        help_text=_('Positive = in, negative = out. Base unit.'),
    )
    kind = models.CharField(max_length=20, choices=MoveKind.choices, verbose_name=_('Kind'))

    # What caused it (inflow batch, sale line, transfer line)
    reference_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Reference type'),
    )
    reference_id = models.PositiveBigIntegerField(null=True, blank=True, verbose_name=_('Reference id'))
    reference = GenericForeignKey('reference_type', 'reference_id')

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Inflow INV-...", "Transfer TRF-..."'),
    )
    user = models.CharField(max_length=150, blank=True, default='', verbose_name=_('User'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    class Meta:
        verbose_name = _('Stock move')
        verbose_name_plural = _('Stock moves')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['branch_stock', 'timestamp'], name='larder_move_stock_ts_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='larder_move_reference_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save move and update both stock caches atomically."""
        if self.pk:
            raise ValueError(
                "Stock moves are immutable. "
                "To correct one, record a new move with the inverse delta."
            )

        if not self.reason:
            raise ValueError("Reason is required")

        with transaction.atomic():
            super().save(*args, **kwargs)

            from larder.models.item import BranchStock, InventoryItem

            BranchStock.objects.filter(pk=self.branch_stock_id).update(
                current_stock=F('current_stock') + self.delta,
                updated_at=timezone.now(),
            )
            InventoryItem.objects.filter(branch_stocks__pk=self.branch_stock_id).update(
                current_stock=F('current_stock') + self.delta,
                updated_at=timezone.now(),
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion; moves are immutable."""
        raise ValueError(
            "Stock moves are immutable. "
            "To reverse one, record a new move with the inverse delta."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.reason}"
