"""
Tests for goods receipts.
"""

from decimal import Decimal

import pytest

from larder import ledger, BadRequest, NotFound
from larder.models import Branch, Inflow, InflowBatch, InventoryItem, Lot, StockMove
from larder.models.enums import InflowStatus, MoveKind
from larder.services.inflows import InflowLineInput
from larder.services.queries import LedgerQueries


pytestmark = pytest.mark.django_db


class TestCreateInflow:
    """Tests for ledger.create_inflow()."""

    def test_purchase_unit_converted_to_base(self, tenant, ikeja, supplier, tomatoes, crate):
        """2 crates at 9000 each arrive as 24 kg at 750 per kg."""
        inflow = ledger.create_inflow(
            tenant,
            [InflowLineInput(item=tomatoes, uom=crate, quantity=Decimal('2'), unit_cost=Decimal('9000'))],
            branch=ikeja,
            supplier=supplier,
        )

        batch = inflow.batches.get()
        assert batch.quantity == Decimal('2')
        assert batch.base_quantity == Decimal('24')
        assert batch.total_cost == Decimal('18000')
        assert batch.base_unit_cost == Decimal('750')
        assert batch.supplier == supplier
        assert inflow.total_amount == Decimal('18000')
        assert inflow.invoice_number.startswith('INV-')
        assert inflow.status == InflowStatus.PENDING

    def test_credits_branch_and_item(self, tenant, ikeja, tomatoes, crate):
        inflow = ledger.create_inflow(
            tenant,
            [InflowLineInput(item=tomatoes, uom=crate, quantity=Decimal('2'), unit_cost=Decimal('9000'))],
            branch=ikeja,
        )

        tomatoes.refresh_from_db()
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('24')
        assert tomatoes.current_stock == Decimal('24')
        assert tomatoes.unit_cost == Decimal('750')

        move = StockMove.objects.get()
        assert move.kind == MoveKind.INFLOW
        assert move.reference == inflow.batches.get()
        assert move.reason == f"Inflow {inflow.invoice_number}"

    def test_lines_may_target_other_branches(self, tenant, ikeja, lekki, tomatoes, kg):
        ledger.create_inflow(
            tenant,
            [
                InflowLineInput(item=tomatoes, uom=kg, quantity=Decimal('10'), unit_cost=Decimal('1000')),
                InflowLineInput(item=tomatoes, uom=kg, quantity=Decimal('4'), unit_cost=Decimal('1000'), branch=lekki),
            ],
            branch=ikeja,
        )

        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')
        assert ledger.branch_stock(lekki, tomatoes) == Decimal('4')

    def test_empty_inflow(self, tenant, ikeja):
        with pytest.raises(BadRequest) as exc:
            ledger.create_inflow(tenant, [], branch=ikeja)

        assert exc.value.code == 'EMPTY_INFLOW'

    @pytest.mark.parametrize('quantity, cost, code', [
        (Decimal('0'), Decimal('1000'), 'INVALID_QUANTITY'),
        (Decimal('-3'), Decimal('1000'), 'INVALID_QUANTITY'),
        (Decimal('3'), Decimal('0'), 'INVALID_COST'),
        ('abc', Decimal('1000'), 'INVALID_QUANTITY'),
    ])
    def test_invalid_line(self, tenant, ikeja, tomatoes, kg, quantity, cost, code):
        with pytest.raises(BadRequest) as exc:
            ledger.create_inflow(
                tenant,
                [InflowLineInput(item=tomatoes, uom=kg, quantity=quantity, unit_cost=cost)],
                branch=ikeja,
            )

        assert exc.value.code == code
        assert not Inflow.objects.exists()

    def test_unconvertible_line_rolls_back_whole_inflow(self, tenant, ikeja, tomatoes, kg, piece):
        """A bad second line leaves no trace of the first."""
        with pytest.raises(BadRequest) as exc:
            ledger.create_inflow(
                tenant,
                [
                    InflowLineInput(item=tomatoes, uom=kg, quantity=Decimal('10'), unit_cost=Decimal('1000')),
                    InflowLineInput(item=tomatoes, uom=piece, quantity=Decimal('3'), unit_cost=Decimal('100')),
                ],
                branch=ikeja,
            )

        assert exc.value.code == 'CANNOT_CONVERT'
        assert 'Piece' in exc.value.message
        assert not Inflow.objects.exists()
        assert not InflowBatch.objects.exists()
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('0')
        assert InventoryItem.objects.get(pk=tomatoes.pk).current_stock == Decimal('0')

    def test_branch_required(self, tenant, tomatoes, kg):
        with pytest.raises(NotFound) as exc:
            ledger.create_inflow(
                tenant,
                [InflowLineInput(item=tomatoes, uom=kg, quantity=Decimal('1'), unit_cost=Decimal('1000'))],
            )

        assert exc.value.code == 'BRANCH_NOT_FOUND'

    def test_item_of_another_tenant(self, other_tenant, tomatoes, kg):
        branch = Branch.objects.create(tenant=other_tenant, name='Ikeja')

        with pytest.raises(NotFound) as exc:
            ledger.create_inflow(
                other_tenant,
                [InflowLineInput(item=tomatoes, uom=kg, quantity=Decimal('1'), unit_cost=Decimal('1000'))],
                branch=branch,
            )

        assert exc.value.code == 'ITEM_NOT_FOUND'


class TestLots:
    """Lot-tracked items leave a Lot per receipt."""

    def test_lot_created_with_generated_code(self, tenant, ikeja, eggs, next_week, receive):
        batch = receive(ikeja, eggs, 30, unit_cost=120, expiry_date=next_week)

        lot = Lot.objects.get()
        assert lot.inflow_batch == batch
        assert lot.code.startswith('BATCH-')
        assert lot.quantity == Decimal('30')
        assert lot.expiry_date == next_week
        assert not lot.is_expired

    def test_lot_uses_supplier_batch_number(self, tenant, ikeja, eggs, receive):
        receive(ikeja, eggs, 30, unit_cost=120, batch_number='EGG-0612')

        assert Lot.objects.get().code == 'EGG-0612'

    def test_untracked_item_has_no_lot(self, tenant, ikeja, tomatoes, receive):
        receive(ikeja, tomatoes, 10)

        assert not Lot.objects.exists()

    def test_expiring_lots(self, tenant, ikeja, eggs, today, next_week, receive):
        receive(ikeja, eggs, 30, expiry_date=next_week, batch_number='LATE')
        receive(ikeja, eggs, 30, expiry_date=today, batch_number='SOON')

        lots = LedgerQueries.expiring_lots(tenant, today)

        assert [lot.code for lot in lots] == ['SOON']


class TestApproveInflow:

    def test_approve(self, tenant, ikeja, tomatoes, receive):
        inflow = receive(ikeja, tomatoes, 10).inflow

        approved = ledger.approve_inflow(tenant, inflow, approved_by='ada')

        assert approved.status == InflowStatus.APPROVED
        assert approved.approved_by == 'ada'
        assert approved.approved_at is not None

    def test_approve_twice_keeps_first(self, tenant, ikeja, tomatoes, receive):
        inflow = receive(ikeja, tomatoes, 10).inflow
        ledger.approve_inflow(tenant, inflow, approved_by='ada')

        again = ledger.approve_inflow(tenant, inflow, approved_by='bayo')

        assert again.approved_by == 'ada'

    def test_other_tenant(self, tenant, other_tenant, ikeja, tomatoes, receive):
        inflow = receive(ikeja, tomatoes, 10).inflow

        with pytest.raises(NotFound) as exc:
            ledger.approve_inflow(other_tenant, inflow)

        assert exc.value.code == 'INFLOW_NOT_FOUND'


class TestInflowBatchImmutability:

    def test_batch_cannot_be_updated(self, ikeja, tomatoes, receive):
        batch = receive(ikeja, tomatoes, 10)

        with pytest.raises(ValueError):
            batch.save()
