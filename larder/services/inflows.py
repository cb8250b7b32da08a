"""
Inflows: goods receipts.

A receipt turns each line into an InflowBatch (what allocation draws
from), credits the branch ledger in the item's base unit, and for
lot-tracked items leaves a Lot behind.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from larder.conf import larder_settings
from larder.exceptions import BadRequest, NotFound
from larder.models.enums import InflowSource, InflowStatus, MoveKind
from larder.models.inflow import Inflow, InflowBatch, Lot
from larder.models.item import InventoryItem
from larder.quantities import money, qty, unit_cost
from larder.services.conversions import UnitConversions
from larder.services.ledger import StockLedger
from larder.services.numbering import document_number

logger = logging.getLogger('larder')


@dataclass
class InflowLineInput:
    """One received line. branch/supplier override the document's."""

    item: object
    uom: object
    quantity: Decimal
    unit_cost: Decimal
    branch: object = None
    supplier: object = None
    batch_number: str = ''
    expiry_date: date | None = None
    notes: str = ''


class Inflows:
    """Goods receipt operations."""

    @classmethod
    def create_inflow(cls, tenant, lines, branch=None, supplier=None,
                      received_date=None, invoice_number='', notes='',
                      source=InflowSource.MANUAL, upload_tag='', user='') -> Inflow:
        """
        Receive goods.

        All lines commit or none do.

        Raises:
            BadRequest('EMPTY_INFLOW'): no lines
            BadRequest('INVALID_QUANTITY'): a line quantity <= 0
            BadRequest('INVALID_COST'): a line unit cost <= 0
            BadRequest('CANNOT_CONVERT'): a line unit has no path to the item's base unit
            NotFound: item, unit or branch belongs to another tenant
        """
        if not lines:
            raise BadRequest('EMPTY_INFLOW')

        with transaction.atomic():
            inflow = Inflow.objects.create(
                tenant=tenant,
                branch=branch,
                supplier=supplier,
                invoice_number=invoice_number or document_number('INV'),
                received_date=received_date or timezone.now(),
                currency=tenant.currency or larder_settings.DEFAULT_CURRENCY,
                notes=notes,
                source=source,
                upload_tag=upload_tag,
            )

            total = Decimal('0')
            for line in lines:
                batch = cls._receive_line(tenant, inflow, line, user)
                total += batch.total_cost

            inflow.total_amount = money(total)
            inflow.save(update_fields=['total_amount'])

        logger.info(
            "inflow.created",
            extra={
                "tenant": tenant.pk,
                "inflow": inflow.pk,
                "invoice": inflow.invoice_number,
                "lines": len(lines),
                "total": str(inflow.total_amount),
                "source": source,
            },
        )
        return inflow

    @classmethod
    def _receive_line(cls, tenant, inflow, line: InflowLineInput, user) -> InflowBatch:
        item, uom = line.item, line.uom
        branch = line.branch or inflow.branch
        supplier = line.supplier or inflow.supplier

        if item.tenant_id != tenant.pk:
            raise NotFound('ITEM_NOT_FOUND')
        if uom.tenant_id != tenant.pk:
            raise NotFound('UOM_NOT_FOUND')
        if branch is None or branch.tenant_id != tenant.pk:
            raise NotFound('BRANCH_NOT_FOUND')

        try:
            quantity = qty(line.quantity)
        except ValueError as exc:
            raise BadRequest('INVALID_QUANTITY', requested=str(line.quantity)) from exc
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)

        try:
            cost = money(line.unit_cost)
        except ValueError as exc:
            raise BadRequest('INVALID_COST', unit_cost=str(line.unit_cost)) from exc
        if cost <= 0:
            raise BadRequest('INVALID_COST', unit_cost=cost)

        try:
            base_quantity = UnitConversions.to_base(tenant, item, quantity, uom)
        except NotFound as exc:
            raise BadRequest(
                'CANNOT_CONVERT',
                item=item.name,
                quantity=quantity,
                from_uom=uom.name,
                to_uom=item.base_uom.name,
            ) from exc
        if base_quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=base_quantity)

        gross = quantity * cost
        batch = InflowBatch.objects.create(
            inflow=inflow,
            tenant=tenant,
            item=item,
            branch=branch,
            supplier=supplier,
            input_uom=uom,
            quantity=quantity,
            base_quantity=base_quantity,
            unit_cost=cost,
            total_cost=money(gross),
            base_unit_cost=unit_cost(gross / base_quantity),
            batch_number=line.batch_number or '',
            expiry_date=line.expiry_date,
            notes=line.notes or '',
        )

        StockLedger.credit(
            branch, item, base_quantity,
            kind=MoveKind.INFLOW,
            reason=f"Inflow {inflow.invoice_number}",
            reference=batch,
            user=user,
        )
        InventoryItem.objects.filter(pk=item.pk).update(unit_cost=batch.base_unit_cost)

        if item.is_trackable:
            Lot.objects.create(
                tenant=tenant,
                item=item,
                inflow_batch=batch,
                code=batch.batch_number or document_number('BATCH', length=6),
                quantity=base_quantity,
                expiry_date=batch.expiry_date,
                received_at=inflow.received_date,
                supplier=supplier,
            )

        return batch

    @classmethod
    def approve_inflow(cls, tenant, inflow, approved_by='') -> Inflow:
        """Mark a receipt approved. Approving twice is a no-op."""
        with transaction.atomic():
            locked = Inflow.objects.select_for_update().filter(tenant=tenant, pk=inflow.pk).first()
            if locked is None:
                raise NotFound('INFLOW_NOT_FOUND')
            if locked.status == InflowStatus.APPROVED:
                return locked

            locked.status = InflowStatus.APPROVED
            locked.approved_by = approved_by or ''
            locked.approved_at = timezone.now()
            locked.save(update_fields=['status', 'approved_by', 'approved_at'])

        logger.info(
            "inflow.approved",
            extra={"tenant": tenant.pk, "inflow": locked.pk, "approved_by": locked.approved_by},
        )
        return locked
