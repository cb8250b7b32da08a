"""
Ledger queries: read-only operations.

All methods are classmethods and use no locking.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce

from larder.exceptions import NotFound
from larder.models.inflow import InflowBatch, Lot
from larder.models.item import BranchStock
from larder.services.allocation import Allocations

logger = logging.getLogger('larder')


@dataclass(frozen=True)
class LowStock:
    item: object
    branch: object
    current: Decimal
    minimum: Decimal


@dataclass(frozen=True)
class BatchSales:
    """What has been sold out of one inflow batch."""

    inflow_batch: InflowBatch
    total_sold: Decimal
    total_cost: Decimal
    sale_count: int
    remaining: Decimal

    def as_dict(self) -> dict:
        return {
            'inflowBatch': self.inflow_batch.pk,
            'totalSold': str(self.total_sold),
            'totalCost': str(self.total_cost),
            'saleCount': self.sale_count,
            'remaining': str(self.remaining),
        }


class LedgerQueries:
    """Read-only ledger query methods."""

    @classmethod
    def branch_stock(cls, branch, item) -> Decimal:
        """Current quantity of item at branch, in its base unit. O(1) cache read."""
        return (
            BranchStock.objects.filter(branch=branch, item=item)
            .values_list('current_stock', flat=True)
            .first()
        ) or Decimal('0')

    @classmethod
    def stock_by_branch(cls, item) -> dict:
        """{branch: quantity} for every branch that ever stocked the item."""
        return {
            stock.branch: stock.current_stock
            for stock in BranchStock.objects.filter(item=item).select_related('branch')
        }

    @classmethod
    def batches_with_availability(cls, tenant, branch, item, method=None):
        """
        Inflow batches of item at branch in allocation order, annotated
        with `consumed_qty` and `remaining_qty` (base units).
        """
        return (
            InflowBatch.objects.available_for(tenant, branch, item)
            .with_consumed()
            .in_allocation_order(Allocations.resolve_method(method))
        )

    @classmethod
    def available_in_batch(cls, inflow_batch) -> Decimal:
        """Remaining base quantity; reads the annotation when present."""
        remaining = getattr(inflow_batch, 'remaining_qty', None)
        if remaining is not None:
            return remaining
        return inflow_batch.remaining()

    @classmethod
    def batch_sales(cls, tenant, inflow_batch) -> BatchSales:
        """
        Raises:
            NotFound('BATCH_NOT_FOUND'): batch belongs to another tenant
        """
        batch = InflowBatch.objects.filter(tenant=tenant, pk=inflow_batch.pk).first()
        if batch is None:
            raise NotFound('BATCH_NOT_FOUND')

        totals = batch.allocations.aggregate(
            sold=Coalesce(Sum('quantity_used'), Decimal('0')),
            cost=Coalesce(Sum('total_cost'), Decimal('0')),
            sales=Count('sale_line__sale', distinct=True),
        )
        return BatchSales(
            inflow_batch=batch,
            total_sold=totals['sold'],
            total_cost=totals['cost'],
            sale_count=totals['sales'],
            remaining=batch.base_quantity - totals['sold'],
        )

    @classmethod
    def expiring_lots(cls, tenant, before: date):
        """Lots of the tenant expiring on or before `before`, soonest first."""
        return Lot.objects.filter(tenant=tenant).expiring_before(before).select_related('item')

    @classmethod
    def low_stock(cls, tenant, branch=None) -> list[LowStock]:
        """
        Branch counters at or below their minimum stock.

        Each hit is logged as a `stock.low` warning.
        """
        stocks = BranchStock.objects.filter(item__tenant=tenant).below_minimum()
        if branch is not None:
            stocks = stocks.filter(branch=branch)

        found = []
        for stock in stocks.select_related('item', 'branch').order_by('branch__name', 'item__name'):
            entry = LowStock(
                item=stock.item,
                branch=stock.branch,
                current=stock.current_stock,
                minimum=stock.effective_min,
            )
            found.append(entry)
            logger.warning(
                "stock.low",
                extra={
                    "tenant": tenant.pk,
                    "branch": stock.branch_id,
                    "item": stock.item_id,
                    "current": str(entry.current),
                    "minimum": str(entry.minimum),
                },
            )
        return found
