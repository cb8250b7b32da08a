"""
Sales: the order writer that drives allocation.

Prices are per base unit on the item (or the branch override) and are
scaled to the sale unit. Cost comes from the batches each line consumed.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction

from larder.conf import larder_settings
from larder.exceptions import BadRequest, NotFound
from larder.models.sale import Sale, SaleLine
from larder.quantities import money, qty, to_decimal
from larder.services.allocation import Allocations
from larder.services.conversions import UnitConversions
from larder.services.ledger import StockLedger
from larder.services.numbering import document_number

logger = logging.getLogger('larder')


@dataclass
class SaleLineInput:
    """One sold item. uom defaults to the item's base unit."""

    item: object
    quantity: Decimal
    uom: object = None
    unit_price: Decimal | None = None
    notes: str = ''


class Sales:

    @classmethod
    def create_sale(cls, tenant, branch, lines, method=None, apply_vat=False,
                    vat_percentage=None, user='') -> Sale:
        """
        Record a sale and allocate every line against inflow batches.

        The sale, its lines, the allocations and the ledger debits commit
        together or not at all.

        Raises:
            BadRequest('EMPTY_SALE'): no lines
            BadRequest('INVALID_QUANTITY'): a line quantity <= 0
            NotFound('NO_CONVERSION'): a line unit has no path to the item's base unit
            plus everything Allocations.allocate() raises
        """
        if not lines:
            raise BadRequest('EMPTY_SALE')
        if branch.tenant_id != tenant.pk:
            raise NotFound('BRANCH_NOT_FOUND')
        method = Allocations.resolve_method(method)

        with transaction.atomic():
            sale = Sale.objects.create(
                tenant=tenant,
                branch=branch,
                number=document_number('SAL', length=6),
                method=method,
                created_by=user or '',
            )

            subtotal = Decimal('0')
            cost_total = Decimal('0')
            for line in lines:
                sale_line = cls._add_line(tenant, branch, sale, line, method, user)
                subtotal += sale_line.line_total
                cost_total += sale_line.cost_total

            rate = Decimal('0')
            if apply_vat:
                rate = to_decimal(
                    vat_percentage if vat_percentage is not None
                    else larder_settings.DEFAULT_VAT_PERCENTAGE
                )
            sale.subtotal = money(subtotal)
            sale.vat_percentage = rate
            sale.vat_amount = money(subtotal * rate / Decimal('100'))
            sale.total = sale.subtotal + sale.vat_amount
            sale.cost_total = money(cost_total)
            sale.profit = sale.subtotal - sale.cost_total
            sale.save(update_fields=[
                'subtotal', 'vat_percentage', 'vat_amount', 'total', 'cost_total', 'profit',
            ])

        logger.info(
            "sale.created",
            extra={
                "tenant": tenant.pk,
                "sale": sale.number,
                "lines": len(lines),
                "total": str(sale.total),
                "cost_total": str(sale.cost_total),
            },
        )
        return sale

    @classmethod
    def _add_line(cls, tenant, branch, sale, line: SaleLineInput, method, user) -> SaleLine:
        item = line.item
        if item.tenant_id != tenant.pk:
            raise NotFound('ITEM_NOT_FOUND')
        uom = line.uom or item.base_uom

        try:
            quantity = qty(line.quantity)
        except ValueError as exc:
            raise BadRequest('INVALID_QUANTITY', requested=str(line.quantity)) from exc
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)

        base_quantity = UnitConversions.to_base(tenant, item, quantity, uom)
        if line.unit_price is not None:
            unit_price = money(line.unit_price)
        else:
            stock = StockLedger.branch_stock(branch, item)
            base_price = stock.effective_sale_price if stock else item.sale_price
            unit_price = money(base_price * UnitConversions.get_multiplier(tenant, uom, item.base_uom))

        sale_line = SaleLine.objects.create(
            sale=sale,
            item=item,
            uom=uom,
            quantity=quantity,
            base_quantity=base_quantity,
            unit_price=unit_price,
            line_total=money(unit_price * quantity),
            cost_price=Decimal('0'),
            cost_total=Decimal('0'),
            notes=line.notes or '',
        )

        result = Allocations.allocate(
            tenant, branch, item, base_quantity,
            method=method,
            sale_line=sale_line,
            user=user,
        )
        sale_line.cost_price = result.cost_price
        sale_line.cost_total = result.cost_total
        sale_line.save(update_fields=['cost_price', 'cost_total'])
        return sale_line
