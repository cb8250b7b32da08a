"""
Tests for inter-branch transfers.
"""

from decimal import Decimal

import pytest

from larder import ledger, BadRequest, NotFound
from larder.models import StockMove, Transfer
from larder.models.enums import MoveKind, TransferStatus
from larder.services.transfers import TransferLineInput, TransferReceipt


pytestmark = pytest.mark.django_db


@pytest.fixture
def stocked(ikeja, tomatoes, receive):
    """Ikeja holds 20 kg of tomatoes."""
    receive(ikeja, tomatoes, 20)


@pytest.fixture
def transfer(tenant, ikeja, lekki, tomatoes, stocked):
    """Pending transfer of 10 kg from Ikeja to Lekki."""
    return ledger.create_transfer(
        tenant, ikeja, lekki,
        [TransferLineInput(item=tomatoes, quantity=Decimal('10'))],
        initiated_by='ada',
    )


def dispatch(tenant, transfer):
    return ledger.update_transfer_status(tenant, transfer, TransferStatus.IN_TRANSIT, user='ada')


class TestCreateTransfer:

    def test_pending_moves_nothing(self, tenant, ikeja, lekki, tomatoes, transfer):
        assert transfer.status == TransferStatus.PENDING
        assert transfer.number.startswith('TRF-')
        assert transfer.lines.count() == 1
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('20')
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('0')

    def test_line_in_purchase_unit(self, tenant, ikeja, lekki, tomatoes, crate, stocked):
        created = ledger.create_transfer(
            tenant, ikeja, lekki,
            [TransferLineInput(item=tomatoes, quantity=Decimal('1'), uom=crate)],
        )

        assert created.lines.get().base_quantity == Decimal('12')

    def test_same_branch(self, tenant, ikeja, tomatoes, stocked):
        with pytest.raises(BadRequest) as exc:
            ledger.create_transfer(tenant, ikeja, ikeja, [TransferLineInput(item=tomatoes, quantity=Decimal('1'))])

        assert exc.value.code == 'SAME_BRANCH'

    def test_empty(self, tenant, ikeja, lekki):
        with pytest.raises(BadRequest) as exc:
            ledger.create_transfer(tenant, ikeja, lekki, [])

        assert exc.value.code == 'EMPTY_TRANSFER'

    def test_more_than_source_holds(self, tenant, ikeja, lekki, tomatoes, stocked):
        with pytest.raises(BadRequest) as exc:
            ledger.create_transfer(tenant, ikeja, lekki, [TransferLineInput(item=tomatoes, quantity=Decimal('25'))])

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.message == 'Insufficient stock for Tomatoes. Available: 20kg, Requested: 25kg'
        assert not Transfer.objects.exists()

    def test_item_never_stocked(self, tenant, ikeja, lekki, eggs):
        with pytest.raises(NotFound) as exc:
            ledger.create_transfer(tenant, ikeja, lekki, [TransferLineInput(item=eggs, quantity=Decimal('1'))])

        assert exc.value.code == 'NOT_IN_BRANCH'


class TestTransferStatus:
    """Tests for ledger.update_transfer_status()."""

    def test_dispatch_debits_source(self, tenant, ikeja, lekki, tomatoes, transfer):
        dispatch(tenant, transfer)

        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('0')
        assert StockMove.objects.filter(kind=MoveKind.TRANSFER_OUT).count() == 1

    def test_receive_credits_destination(self, tenant, ikeja, lekki, tomatoes, transfer):
        dispatch(tenant, transfer)

        received = ledger.update_transfer_status(tenant, transfer, TransferStatus.RECEIVED, user='bayo')

        tomatoes.refresh_from_db()
        assert received.status == TransferStatus.RECEIVED
        assert received.received_by == 'bayo'
        assert received.received_at is not None
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('10')
        assert tomatoes.current_stock == Decimal('20')

    def test_cancel_in_transit_restores_source(self, tenant, ikeja, tomatoes, transfer):
        before = ledger.branch_stock(ikeja, tomatoes)
        dispatch(tenant, transfer)

        cancelled = ledger.update_transfer_status(tenant, transfer, TransferStatus.CANCELLED)

        assert cancelled.status == TransferStatus.CANCELLED
        assert ledger.branch_stock(ikeja, tomatoes) == before
        assert StockMove.objects.filter(kind=MoveKind.TRANSFER_RETURN).count() == 1

    def test_cancel_pending_moves_nothing(self, tenant, ikeja, tomatoes, transfer):
        ledger.update_transfer_status(tenant, transfer, TransferStatus.CANCELLED)

        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('20')
        assert not StockMove.objects.exclude(kind=MoveKind.INFLOW).exists()

    def test_received_cannot_be_cancelled(self, tenant, ikeja, lekki, tomatoes, transfer):
        dispatch(tenant, transfer)
        ledger.update_transfer_status(tenant, transfer, TransferStatus.RECEIVED)

        with pytest.raises(BadRequest) as exc:
            ledger.update_transfer_status(tenant, transfer, TransferStatus.CANCELLED)

        assert exc.value.code == 'TRANSFER_CLOSED'
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('10')
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')

    def test_cancelled_is_terminal(self, tenant, transfer):
        ledger.update_transfer_status(tenant, transfer, TransferStatus.CANCELLED)

        with pytest.raises(BadRequest) as exc:
            dispatch(tenant, transfer)

        assert exc.value.code == 'TRANSFER_CLOSED'

    def test_receive_requires_dispatch(self, tenant, transfer):
        with pytest.raises(BadRequest) as exc:
            ledger.update_transfer_status(tenant, transfer, TransferStatus.RECEIVED)

        assert exc.value.code == 'NOT_IN_TRANSIT'

    @pytest.mark.parametrize('target', [TransferStatus.PENDING, TransferStatus.IN_TRANSIT])
    def test_invalid_transition(self, tenant, transfer, target):
        dispatch(tenant, transfer)

        with pytest.raises(BadRequest) as exc:
            ledger.update_transfer_status(tenant, transfer, target)

        assert exc.value.code == 'INVALID_TRANSITION'

    def test_unknown_status(self, tenant, transfer):
        with pytest.raises(BadRequest) as exc:
            ledger.update_transfer_status(tenant, transfer, 'lost')

        assert exc.value.code == 'INVALID_STATUS'

    def test_dispatch_rechecks_source(self, tenant, ikeja, tomatoes, transfer):
        """Stock sold after the transfer was created cannot leave twice."""
        ledger.allocate(tenant, ikeja, tomatoes, Decimal('15'))

        with pytest.raises(BadRequest) as exc:
            dispatch(tenant, transfer)

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        transfer.refresh_from_db()
        assert transfer.status == TransferStatus.PENDING

    def test_other_tenant(self, other_tenant, transfer):
        with pytest.raises(NotFound) as exc:
            dispatch(other_tenant, transfer)

        assert exc.value.code == 'TRANSFER_NOT_FOUND'


class TestReceiveItems:
    """Tests for ledger.receive_transfer_items()."""

    def test_partial_then_complete(self, tenant, ikeja, lekki, tomatoes, transfer):
        dispatch(tenant, transfer)
        line = transfer.lines.get()

        partial = ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('4'))])
        assert partial.status == TransferStatus.IN_TRANSIT
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('4')

        done = ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line.pk, Decimal('10'))])
        assert done.status == TransferStatus.RECEIVED
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('10')
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')

    def test_lines_received_one_at_a_time(self, tenant, ikeja, lekki, tomatoes, eggs, receive, stocked):
        receive(ikeja, eggs, 30, unit_cost=Decimal('100'))
        two_lines = ledger.create_transfer(
            tenant, ikeja, lekki,
            [
                TransferLineInput(item=tomatoes, quantity=Decimal('6')),
                TransferLineInput(item=eggs, quantity=Decimal('12')),
            ],
        )
        dispatch(tenant, two_lines)
        tomato_line = two_lines.lines.get(item=tomatoes)
        egg_line = two_lines.lines.get(item=eggs)

        first = ledger.receive_transfer_items(tenant, two_lines, [TransferReceipt(tomato_line, Decimal('6'))])

        assert first.status == TransferStatus.IN_TRANSIT
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('6')
        assert ledger.branch_stock(lekki, eggs) == Decimal('0')
        egg_line.refresh_from_db()
        assert egg_line.received_quantity == Decimal('0')

        second = ledger.receive_transfer_items(tenant, two_lines, [TransferReceipt(egg_line, Decimal('12'))])

        assert second.status == TransferStatus.RECEIVED
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('6')
        assert ledger.branch_stock(lekki, eggs) == Decimal('12')
        assert ledger.branch_stock(ikeja, eggs) == Decimal('18')

    def test_cancel_after_partial_returns_rest(self, tenant, ikeja, lekki, tomatoes, transfer):
        dispatch(tenant, transfer)
        line = transfer.lines.get()
        ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('4'))])

        ledger.update_transfer_status(tenant, transfer, TransferStatus.CANCELLED)

        assert ledger.branch_stock(lekki, tomatoes) == Decimal('4')
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('16')

    def test_mark_received_keeps_partial(self, tenant, ikeja, lekki, tomatoes, transfer, caplog):
        dispatch(tenant, transfer)
        line = transfer.lines.get()
        ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('4'))])

        with caplog.at_level('WARNING', logger='larder'):
            ledger.update_transfer_status(tenant, transfer, TransferStatus.RECEIVED)

        assert ledger.branch_stock(lekki, tomatoes) == Decimal('4')
        assert any(record.getMessage() == 'transfer.shortfall' for record in caplog.records)

    def test_over_receipt(self, tenant, transfer):
        dispatch(tenant, transfer)
        line = transfer.lines.get()

        with pytest.raises(BadRequest) as exc:
            ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('11'))])

        assert exc.value.code == 'OVER_RECEIPT'

    def test_receipt_cannot_decrease(self, tenant, transfer):
        dispatch(tenant, transfer)
        line = transfer.lines.get()
        ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('6'))])

        with pytest.raises(BadRequest) as exc:
            ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('5'))])

        assert exc.value.code == 'RECEIPT_DECREASE'

    def test_receive_before_dispatch(self, tenant, transfer):
        line = transfer.lines.get()

        with pytest.raises(BadRequest) as exc:
            ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(line, Decimal('1'))])

        assert exc.value.code == 'NOT_IN_TRANSIT'

    def test_unknown_line(self, tenant, transfer):
        dispatch(tenant, transfer)

        with pytest.raises(NotFound) as exc:
            ledger.receive_transfer_items(tenant, transfer, [TransferReceipt(999999, Decimal('1'))])

        assert exc.value.code == 'TRANSFER_LINE_NOT_FOUND'

    def test_empty_receipt(self, tenant, transfer):
        with pytest.raises(BadRequest) as exc:
            ledger.receive_transfer_items(tenant, transfer, [])

        assert exc.value.code == 'EMPTY_RECEIPT'


class TestDeleteTransfer:

    def test_delete_pending(self, tenant, transfer):
        ledger.delete_transfer(tenant, transfer)

        assert not Transfer.objects.exists()

    def test_delete_in_transit_refused(self, tenant, transfer):
        dispatch(tenant, transfer)

        with pytest.raises(BadRequest) as exc:
            ledger.delete_transfer(tenant, transfer)

        assert exc.value.code == 'TRANSFER_LOCKED'
        assert Transfer.objects.exists()
