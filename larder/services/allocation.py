"""
Allocation engine: which inflow batches a sale consumes, and at what cost.

A batch's availability is its base_quantity minus every allocation drawn
from it. Batches are walked in the order of the chosen method (FIFO,
LIFO, FEFO) until the request is covered; the cost of each slice is the
batch's cost per base unit.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from larder.conf import larder_settings
from larder.exceptions import BadRequest
from larder.models.enums import AllocationMethod, MoveKind
from larder.models.inflow import InflowBatch
from larder.models.sale import Allocation
from larder.quantities import money, qty
from larder.services.ledger import StockLedger

logger = logging.getLogger('larder')


@dataclass(frozen=True)
class AllocationLine:
    inflow_batch: InflowBatch
    quantity_used: Decimal
    cost_per_unit: Decimal
    total_cost: Decimal


@dataclass
class AllocationResult:
    method: str
    requested: Decimal
    cost_price: Decimal
    cost_total: Decimal
    allocations: list[AllocationLine] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'method': self.method,
            'requested': str(self.requested),
            'costPrice': str(self.cost_price),
            'costTotal': str(self.cost_total),
            'allocations': [
                {
                    'inflowBatch': line.inflow_batch.pk,
                    'quantityUsed': str(line.quantity_used),
                    'costPerUnit': str(line.cost_per_unit),
                    'totalCost': str(line.total_cost),
                }
                for line in self.allocations
            ],
        }


class Allocations:
    """Batch allocation for sales."""

    @classmethod
    def resolve_method(cls, method=None) -> str:
        """
        Raises:
            BadRequest('INVALID_METHOD')
        """
        chosen = str(method or larder_settings.DEFAULT_ALLOCATION_METHOD).upper()
        if chosen not in AllocationMethod.values:
            raise BadRequest('INVALID_METHOD', method=chosen)
        return chosen

    @staticmethod
    def _requested(base_quantity) -> Decimal:
        try:
            quantity = qty(base_quantity)
        except ValueError as exc:
            raise BadRequest('INVALID_QUANTITY', requested=str(base_quantity)) from exc
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)
        return quantity

    @classmethod
    def _plan(cls, tenant, branch, item, quantity, method, lock) -> AllocationResult:
        batches = InflowBatch.objects.available_for(tenant, branch, item).in_allocation_order(method)
        if lock:
            batches = batches.select_for_update()
        batches = list(batches)
        if not batches:
            raise BadRequest('NO_INVENTORY', item=item.name, branch=branch.name)

        consumed = dict(
            Allocation.objects.filter(inflow_batch__in=[b.pk for b in batches])
            .order_by()
            .values('inflow_batch')
            .annotate(used=Sum('quantity_used'))
            .values_list('inflow_batch', 'used')
        )

        remaining = quantity
        available_total = Decimal('0')
        lines = []
        for batch in batches:
            available = batch.base_quantity - consumed.get(batch.pk, Decimal('0'))
            if available <= 0:
                continue
            available_total += available
            if remaining <= 0:
                continue
            take = min(available, remaining)
            lines.append(AllocationLine(
                inflow_batch=batch,
                quantity_used=take,
                cost_per_unit=batch.base_unit_cost,
                total_cost=money(take * batch.base_unit_cost),
            ))
            remaining -= take

        if remaining > 0:
            raise BadRequest(
                'INSUFFICIENT_INVENTORY',
                item=item.name,
                requested=quantity,
                available=available_total,
            )

        cost_total = sum((line.total_cost for line in lines), Decimal('0'))
        return AllocationResult(
            method=method,
            requested=quantity,
            cost_price=money(cost_total / quantity),
            cost_total=money(cost_total),
            allocations=lines,
        )

    @classmethod
    def preview(cls, tenant, branch, item, base_quantity, method=None) -> AllocationResult:
        """What allocate() would consume and cost, without writing or locking."""
        return cls._plan(
            tenant, branch, item,
            cls._requested(base_quantity),
            cls.resolve_method(method),
            lock=False,
        )

    @classmethod
    def allocate(cls, tenant, branch, item, base_quantity, method=None,
                 sale_line=None, user='') -> AllocationResult:
        """
        Consume `base_quantity` of `item` at `branch` from its inflow batches.

        Writes one Allocation per batch touched and debits the branch
        ledger. Nothing is written when the request cannot be covered.

        Raises:
            BadRequest('INVALID_METHOD'): unknown method
            BadRequest('INVALID_QUANTITY'): base_quantity <= 0
            BadRequest('NO_INVENTORY'): item never received at the branch
            BadRequest('INSUFFICIENT_INVENTORY'): batches cannot cover the request

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the BranchStock row, then the candidate batches,
              before reading availability
        """
        method = cls.resolve_method(method)
        quantity = cls._requested(base_quantity)

        with transaction.atomic():
            StockLedger.branch_stock(branch, item, lock=True)
            result = cls._plan(tenant, branch, item, quantity, method, lock=True)

            for line in result.allocations:
                Allocation.objects.create(
                    sale_line=sale_line,
                    inflow_batch=line.inflow_batch,
                    quantity_used=line.quantity_used,
                    cost_per_unit=line.cost_per_unit,
                    total_cost=line.total_cost,
                )

            reason = f"Sale {sale_line.sale.number}" if sale_line is not None else "Allocation"
            StockLedger.debit(
                branch, item, quantity,
                kind=MoveKind.SALE,
                reason=reason,
                reference=sale_line,
                user=user,
            )

        logger.info(
            "allocation.created",
            extra={
                "tenant": tenant.pk,
                "branch": branch.pk,
                "item": item.pk,
                "qty": str(quantity),
                "method": method,
                "batches": len(result.allocations),
                "cost_total": str(result.cost_total),
            },
        )
        return result
