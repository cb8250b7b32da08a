"""
Stock ledger: the only way branch stock changes.

credit() and debit() lock the BranchStock row and write one StockMove,
which moves both stock caches. reconcile() recomputes the caches from
the move history.

All methods use transaction.atomic() with appropriate locking.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from larder.exceptions import BadRequest, NotFound
from larder.models.item import BranchStock, InventoryItem
from larder.models.move import StockMove
from larder.quantities import display, qty

logger = logging.getLogger('larder')


@dataclass(frozen=True)
class Drift:
    """A stock cache that disagreed with its ledger."""

    kind: str  # 'branch_stock' or 'item'
    pk: int
    label: str
    cached: Decimal
    actual: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual - self.cached


class StockLedger:
    """Credits, debits and cache reconciliation."""

    @classmethod
    def branch_stock(cls, branch, item, lock=False) -> BranchStock | None:
        qs = BranchStock.objects.filter(branch=branch, item=item)
        if lock:
            qs = qs.select_for_update()
        return qs.first()

    @classmethod
    def available(cls, branch, item) -> Decimal:
        stock = cls.branch_stock(branch, item)
        return stock.current_stock if stock else Decimal('0')

    @classmethod
    def ensure_branch_stock(cls, branch, item) -> BranchStock:
        """Get or lazily create the counter, seeded from the item's defaults."""
        stock, created = BranchStock.objects.get_or_create(
            branch=branch,
            item=item,
            defaults={
                'sale_price': item.sale_price,
                'minimum_stock': item.minimum_stock,
                'maximum_stock': item.maximum_stock,
            },
        )
        if created:
            logger.debug(
                "branch_stock.created",
                extra={"branch": branch.pk, "item": item.pk},
            )
        return stock

    @staticmethod
    def insufficient(item, available, requested, uom=None) -> BadRequest:
        unit = (uom or item.base_uom).symbol
        return BadRequest(
            'INSUFFICIENT_STOCK',
            f"Insufficient stock for {item.name}. "
            f"Available: {display(available)}{unit}, Requested: {display(requested)}{unit}",
            item=item.name,
            available=available,
            requested=requested,
        )

    @classmethod
    def credit(cls, branch, item, quantity, kind, reason,
               reference=None, user='') -> StockMove:
        """
        Stock entry at a branch, in the item's base unit.

        Raises:
            BadRequest('INVALID_QUANTITY'): quantity <= 0
        """
        quantity = qty(quantity)
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            stock = cls.ensure_branch_stock(branch, item)
            locked = BranchStock.objects.select_for_update().get(pk=stock.pk)

            move = StockMove.objects.create(
                branch_stock=locked,
                delta=quantity,
                kind=kind,
                reason=reason,
                reference=reference,
                user=user or '',
            )
            logger.info(
                "stock.credit",
                extra={
                    "branch": branch.pk,
                    "item": item.pk,
                    "qty": str(quantity),
                    "kind": kind,
                    "reason": reason,
                },
            )
            return move

    @classmethod
    def debit(cls, branch, item, quantity, kind, reason,
              reference=None, user='') -> StockMove:
        """
        Stock exit at a branch, in the item's base unit.

        Raises:
            BadRequest('INVALID_QUANTITY'): quantity <= 0
            NotFound('NOT_IN_BRANCH'): branch never stocked the item
            BadRequest('INSUFFICIENT_STOCK'): quantity > current stock

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on BranchStock
            - Verifies stock after lock
        """
        quantity = qty(quantity)
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            locked = cls.branch_stock(branch, item, lock=True)
            if locked is None:
                raise NotFound('NOT_IN_BRANCH', item=item.name, branch=branch.name)
            if locked.current_stock < quantity:
                raise cls.insufficient(item, locked.current_stock, quantity)

            move = StockMove.objects.create(
                branch_stock=locked,
                delta=-quantity,
                kind=kind,
                reason=reason,
                reference=reference,
                user=user or '',
            )
            logger.info(
                "stock.debit",
                extra={
                    "branch": branch.pk,
                    "item": item.pk,
                    "qty": str(quantity),
                    "kind": kind,
                    "reason": reason,
                },
            )
            return move

    @classmethod
    def reconcile(cls, tenant=None, item=None, dry_run=False) -> list[Drift]:
        """
        Compare every stock cache against the move history.

        Branch counters must equal the sum of their moves; item totals must
        equal the sum of every move across branches. Unless dry_run, each
        drifting cache is rewritten (with a warning from recalculate()).

        Returns:
            The drifts found, branch counters first
        """
        stocks = BranchStock.objects.select_related('branch', 'item').annotate(
            ledger=Coalesce(Sum('moves__delta'), Decimal('0')),
        ).order_by('pk')
        items = InventoryItem.objects.annotate(
            ledger=Coalesce(Sum('branch_stocks__moves__delta'), Decimal('0')),
        ).order_by('pk')
        if tenant is not None:
            stocks = stocks.filter(item__tenant=tenant)
            items = items.filter(tenant=tenant)
        if item is not None:
            stocks = stocks.filter(item=item)
            items = items.filter(pk=item.pk)

        drifts: list[Drift] = []
        with transaction.atomic():
            for stock in stocks:
                if stock.ledger != stock.current_stock:
                    drifts.append(Drift(
                        'branch_stock', stock.pk, str(stock), stock.current_stock, stock.ledger,
                    ))
                    if not dry_run:
                        stock.recalculate()

            for entry in items:
                if entry.ledger != entry.current_stock:
                    drifts.append(Drift('item', entry.pk, entry.name, entry.current_stock, entry.ledger))
                    if not dry_run:
                        entry.recalculate()

        logger.info(
            "ledger.reconciled",
            extra={
                "tenant": getattr(tenant, 'pk', None),
                "drifts": len(drifts),
                "dry_run": dry_run,
            },
        )
        return drifts
