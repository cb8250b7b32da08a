"""
InventoryItem and BranchStock: the two stock counters.

Both `current_stock` fields are caches. They are written only through
StockMove.save() with F() expressions, and recalculate() rebuilds them
from the move history.
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('larder')


class InventoryItemQuerySet(models.QuerySet):

    def for_tenant(self, tenant):
        return self.filter(tenant=tenant)


class InventoryItem(models.Model):
    """
    A stockable item. All quantities are stored in base_uom.

    current_stock is the tenant-wide total across branches.
    """

    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Tenant'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    base_uom = models.ForeignKey(
        'larder.UnitOfMeasure',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Base unit'),
    )
    current_stock = models.DecimalField(
        max_digits=16,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Current stock'),
    )
    minimum_stock = models.DecimalField(max_digits=16, decimal_places=4, default=Decimal('0'))
    maximum_stock = models.DecimalField(max_digits=16, decimal_places=4, null=True, blank=True)
    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Last unit cost'),
        help_text=_('Per base unit, refreshed by each inflow'),
    )
    sale_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Sale price'),
        help_text=_('Per base unit'),
    )
    is_trackable = models.BooleanField(
        default=False,
        verbose_name=_('Lot tracked'),
        help_text=_('Record a Lot for every receipt of this item'),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InventoryItemQuerySet.as_manager()

    class Meta:
        verbose_name = _('Inventory item')
        verbose_name_plural = _('Inventory items')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'name'], name='unique_item_name'),
        ]

    def recalculate(self) -> Decimal:
        """Rebuild current_stock as the sum of branch counters."""
        total = self.branch_stocks.aggregate(
            t=Coalesce(Sum('current_stock'), Decimal('0'))
        )['t']

        if total != self.current_stock:
            old = self.current_stock
            InventoryItem.objects.filter(pk=self.pk).update(current_stock=total)
            self.current_stock = total
            logger.warning(
                "stock.recalculated",
                extra={'item': self.pk, 'old': str(old), 'new': str(total)},
            )

        return total

    def __str__(self) -> str:
        return self.name


class BranchStockQuerySet(models.QuerySet):

    def below_minimum(self):
        """Branch counters at or under their effective minimum (override, else item's)."""
        return self.annotate(
            effective_min=Coalesce('minimum_stock', 'item__minimum_stock'),
        ).filter(effective_min__gt=0, current_stock__lte=models.F('effective_min'))


class BranchStock(models.Model):
    """
    Per-branch quantity of an item, in the item's base unit.

    sale_price/minimum_stock/maximum_stock override the item's values
    for this branch when set.
    """

    branch = models.ForeignKey(
        'larder.Branch',
        on_delete=models.CASCADE,
        related_name='stocks',
        verbose_name=_('Branch'),
    )
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.CASCADE,
        related_name='branch_stocks',
        verbose_name=_('Item'),
    )
    current_stock = models.DecimalField(
        max_digits=16,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Current stock'),
    )
    sale_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    minimum_stock = models.DecimalField(max_digits=16, decimal_places=4, null=True, blank=True)
    maximum_stock = models.DecimalField(max_digits=16, decimal_places=4, null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BranchStockQuerySet.as_manager()

    class Meta:
        verbose_name = _('Branch stock')
        verbose_name_plural = _('Branch stocks')
        constraints = [
            models.UniqueConstraint(fields=['branch', 'item'], name='unique_branch_item'),
        ]

    @property
    def effective_sale_price(self) -> Decimal:
        if self.sale_price is not None:
            return self.sale_price
        return self.item.sale_price

    def recalculate(self) -> Decimal:
        """
        Recalculate current_stock from StockMoves.

        Use for integrity audits and after a detected inconsistency.

        Returns:
            New calculated quantity
        """
        total = self.moves.aggregate(
            t=Coalesce(Sum('delta'), Decimal('0'))
        )['t']

        if total != self.current_stock:
            old = self.current_stock
            BranchStock.objects.filter(pk=self.pk).update(current_stock=total)
            self.current_stock = total
            logger.warning(
                "branch_stock.recalculated",
                extra={'branch_stock': self.pk, 'old': str(old), 'new': str(total)},
            )

        return total

    def __str__(self) -> str:
        return f"{self.item} @ {self.branch}: {self.current_stock}"
