"""
Transfers: moving stock between two branches of a tenant.

    pending ──► in_transit ──► received
       │            │
       └────────────┴────────► cancelled

- pending: nothing moved yet
- in_transit: source branch debited
- received: destination credited with what arrived
- cancelled from in_transit: what has not arrived goes back to the source

received and cancelled are terminal. Every transition runs under
transaction.atomic() with the transfer row locked.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from larder.exceptions import BadRequest, NotFound
from larder.models.enums import MoveKind, TransferStatus
from larder.models.transfer import Transfer, TransferLine
from larder.quantities import qty
from larder.services.conversions import UnitConversions
from larder.services.ledger import StockLedger
from larder.services.numbering import document_number

logger = logging.getLogger('larder')


@dataclass
class TransferLineInput:
    """One item to move. uom defaults to the item's base unit."""

    item: object
    quantity: Decimal
    uom: object = None
    notes: str = ''


@dataclass
class TransferReceipt:
    """Cumulative quantity of `line` that has arrived so far."""

    line: object  # TransferLine or its pk
    received_quantity: Decimal
    notes: str = ''


class Transfers:
    """Inter-branch transfer state machine."""

    @staticmethod
    def _quantity(value) -> Decimal:
        try:
            quantity = qty(value)
        except ValueError as exc:
            raise BadRequest('INVALID_QUANTITY', requested=str(value)) from exc
        if quantity <= 0:
            raise BadRequest('INVALID_QUANTITY', requested=quantity)
        return quantity

    @staticmethod
    def _lock(tenant, transfer) -> Transfer:
        pk = transfer.pk if isinstance(transfer, Transfer) else transfer
        locked = (
            Transfer.objects.select_for_update()
            .filter(tenant=tenant, pk=pk)
            .first()
        )
        if locked is None:
            raise NotFound('TRANSFER_NOT_FOUND')
        return locked

    @staticmethod
    def _lines(transfer):
        # Item order keeps BranchStock lock order stable across transfers.
        return list(
            transfer.lines.select_related('item__base_uom', 'uom').order_by('item_id', 'pk')
        )

    # ══════════════════════════════════════════════════════════════
    # CREATE / DELETE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_transfer(cls, tenant, from_branch, to_branch, lines,
                        initiated_by='', transfer_date=None, notes='') -> Transfer:
        """
        Create a pending transfer. No stock moves yet.

        Raises:
            BadRequest('SAME_BRANCH'): from_branch == to_branch
            BadRequest('EMPTY_TRANSFER'): no lines
            BadRequest('INVALID_QUANTITY'): a line quantity <= 0
            NotFound('NOT_IN_BRANCH'): source branch never stocked an item
            BadRequest('INSUFFICIENT_STOCK'): source stock below a line's quantity
        """
        if from_branch.pk == to_branch.pk:
            raise BadRequest('SAME_BRANCH')
        if from_branch.tenant_id != tenant.pk or to_branch.tenant_id != tenant.pk:
            raise NotFound('BRANCH_NOT_FOUND')
        if not lines:
            raise BadRequest('EMPTY_TRANSFER')

        with transaction.atomic():
            transfer = Transfer.objects.create(
                tenant=tenant,
                number=document_number('TRF'),
                source_branch=from_branch,
                destination_branch=to_branch,
                transfer_date=transfer_date or timezone.now(),
                notes=notes,
                initiated_by=initiated_by or '',
            )

            for line in lines:
                item = line.item
                if item.tenant_id != tenant.pk:
                    raise NotFound('ITEM_NOT_FOUND')
                uom = line.uom or item.base_uom
                quantity = cls._quantity(line.quantity)
                base_quantity = UnitConversions.to_base(tenant, item, quantity, uom)

                stock = StockLedger.branch_stock(from_branch, item)
                if stock is None:
                    raise NotFound('NOT_IN_BRANCH', item=item.name, branch=from_branch.name)
                if stock.current_stock < base_quantity:
                    raise StockLedger.insufficient(item, stock.current_stock, base_quantity)

                TransferLine.objects.create(
                    transfer=transfer,
                    item=item,
                    uom=uom,
                    quantity=quantity,
                    base_quantity=base_quantity,
                    notes=line.notes or '',
                )

        logger.info(
            "transfer.created",
            extra={
                "tenant": tenant.pk,
                "transfer": transfer.number,
                "source": from_branch.pk,
                "destination": to_branch.pk,
                "lines": len(lines),
            },
        )
        return transfer

    @classmethod
    def delete_transfer(cls, tenant, transfer) -> None:
        """
        Raises:
            BadRequest('TRANSFER_LOCKED'): transfer is no longer pending
        """
        with transaction.atomic():
            locked = cls._lock(tenant, transfer)
            if locked.status != TransferStatus.PENDING:
                raise BadRequest('TRANSFER_LOCKED', status=locked.status)
            number = locked.number
            locked.delete()

        logger.info("transfer.deleted", extra={"tenant": tenant.pk, "transfer": number})

    # ══════════════════════════════════════════════════════════════
    # TRANSITIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def update_status(cls, tenant, transfer, new_status, user='') -> Transfer:
        """
        Move a transfer to `new_status`, applying its stock effects.

        Raises:
            BadRequest('INVALID_STATUS'): unknown status
            BadRequest('TRANSFER_CLOSED'): transfer already received or cancelled
            BadRequest('NOT_IN_TRANSIT'): receiving a transfer that was not dispatched
            BadRequest('INVALID_TRANSITION'): same status, or back to pending
            BadRequest('INSUFFICIENT_STOCK'): source cannot cover a line on dispatch
        """
        new_status = str(new_status)
        if new_status not in TransferStatus.values:
            raise BadRequest('INVALID_STATUS', status=new_status)

        with transaction.atomic():
            locked = cls._lock(tenant, transfer)
            current = locked.status
            if not locked.is_open:
                raise BadRequest('TRANSFER_CLOSED', status=current)
            if new_status == current or new_status == TransferStatus.PENDING:
                raise BadRequest('INVALID_TRANSITION', current=current, target=new_status)

            if new_status == TransferStatus.RECEIVED:
                if current != TransferStatus.IN_TRANSIT:
                    raise BadRequest('NOT_IN_TRANSIT', status=current)
                cls._receive_all(locked, user)
            elif new_status == TransferStatus.IN_TRANSIT:
                cls._dispatch(locked, user)
            elif current == TransferStatus.IN_TRANSIT:
                cls._return_outstanding(locked, user)

            locked.status = new_status
            locked.save(update_fields=['status', 'received_by', 'received_at', 'updated_at'])

        logger.info(
            "transfer.status",
            extra={
                "tenant": tenant.pk,
                "transfer": locked.number,
                "from_status": current,
                "to_status": new_status,
                "user": user,
            },
        )
        return locked

    @classmethod
    def receive_items(cls, tenant, transfer, receipts, user='') -> Transfer:
        """
        Record what has arrived so far, line by line.

        Received quantities are cumulative: only the increase over what
        was already received is credited to the destination. The transfer
        becomes received once every line has fully arrived.

        Raises:
            BadRequest('EMPTY_RECEIPT'): no receipts
            BadRequest('NOT_IN_TRANSIT'): transfer was not dispatched
            NotFound('TRANSFER_LINE_NOT_FOUND'): line is not on this transfer
            BadRequest('OVER_RECEIPT'): more than was sent
            BadRequest('RECEIPT_DECREASE'): less than already received
        """
        if not receipts:
            raise BadRequest('EMPTY_RECEIPT')

        with transaction.atomic():
            locked = cls._lock(tenant, transfer)
            if not locked.is_open:
                raise BadRequest('TRANSFER_CLOSED', status=locked.status)
            if locked.status != TransferStatus.IN_TRANSIT:
                raise BadRequest('NOT_IN_TRANSIT', status=locked.status)

            lines = {line.pk: line for line in cls._lines(locked)}
            for receipt in receipts:
                pk = receipt.line.pk if isinstance(receipt.line, TransferLine) else receipt.line
                line = lines.get(pk)
                if line is None:
                    raise NotFound('TRANSFER_LINE_NOT_FOUND', line=pk)

                try:
                    received = qty(receipt.received_quantity)
                except ValueError as exc:
                    raise BadRequest('INVALID_QUANTITY', requested=str(receipt.received_quantity)) from exc
                if received < 0:
                    raise BadRequest('INVALID_QUANTITY', requested=received)
                if received > line.quantity:
                    raise BadRequest('OVER_RECEIPT', item=line.item.name, requested=received)
                if received < line.received_quantity:
                    raise BadRequest('RECEIPT_DECREASE', item=line.item.name, requested=received)

                if receipt.notes:
                    line.notes = receipt.notes
                    line.save(update_fields=['notes'])
                cls._credit_destination(locked, line, received, user)

            if all(line.is_fully_received for line in lines.values()):
                locked.status = TransferStatus.RECEIVED
                locked.received_by = user or ''
                locked.received_at = timezone.now()
            locked.save(update_fields=['status', 'received_by', 'received_at', 'updated_at'])

        logger.info(
            "transfer.items_received",
            extra={
                "tenant": tenant.pk,
                "transfer": locked.number,
                "receipts": len(receipts),
                "status": locked.status,
            },
        )
        return locked

    # ══════════════════════════════════════════════════════════════
    # STOCK EFFECTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _dispatch(cls, transfer, user):
        """Debit the source branch for every line."""
        for line in cls._lines(transfer):
            base_quantity = UnitConversions.to_base(transfer.tenant, line.item, line.quantity, line.uom)
            StockLedger.debit(
                transfer.source_branch, line.item, base_quantity,
                kind=MoveKind.TRANSFER_OUT,
                reason=f"Transfer {transfer.number} to {transfer.destination_branch}",
                reference=line,
                user=user,
            )
            line.base_quantity = base_quantity
            line.save(update_fields=['base_quantity'])

    @classmethod
    def _credit_destination(cls, transfer, line, received, user):
        """Raise line.received_quantity to `received`, crediting the increase."""
        increase = received - line.received_quantity
        if increase <= 0:
            return

        if received >= line.quantity:
            base_increase = line.outstanding_base
        else:
            converted = UnitConversions.to_base(transfer.tenant, line.item, increase, line.uom)
            base_increase = min(converted, line.outstanding_base)

        if base_increase > 0:
            StockLedger.credit(
                transfer.destination_branch, line.item, base_increase,
                kind=MoveKind.TRANSFER_IN,
                reason=f"Transfer {transfer.number} from {transfer.source_branch}",
                reference=line,
                user=user,
            )

        line.received_quantity = received
        line.received_base_quantity += base_increase
        line.save(update_fields=['received_quantity', 'received_base_quantity'])

    @classmethod
    def _receive_all(cls, transfer, user):
        """
        Close the transfer. Lines with no recorded receipt arrive in full;
        lines already partly received keep what was recorded.
        """
        for line in cls._lines(transfer):
            if line.received_quantity == 0:
                cls._credit_destination(transfer, line, line.quantity, user)
            elif not line.is_fully_received:
                logger.warning(
                    "transfer.shortfall",
                    extra={
                        "transfer": transfer.number,
                        "line": line.pk,
                        "sent": str(line.quantity),
                        "received": str(line.received_quantity),
                    },
                )
        transfer.received_by = user or ''
        transfer.received_at = timezone.now()

    @classmethod
    def _return_outstanding(cls, transfer, user):
        """Credit the source with whatever has not reached the destination."""
        for line in cls._lines(transfer):
            outstanding = line.outstanding_base
            if outstanding > 0:
                StockLedger.credit(
                    transfer.source_branch, line.item, outstanding,
                    kind=MoveKind.TRANSFER_RETURN,
                    reason=f"Transfer {transfer.number} cancelled",
                    reference=line,
                    user=user,
                )
