"""
Tests for sales and the batch reports they feed.
"""

from decimal import Decimal

import pytest

from larder import ledger, BadRequest, NotFound
from larder.models import Allocation, BranchStock, Sale, SaleLine
from larder.services.sales import SaleLineInput


pytestmark = pytest.mark.django_db


class TestCreateSale:
    """Tests for ledger.create_sale()."""

    def test_sale_totals(self, tenant, ikeja, tomatoes, receive):
        receive(ikeja, tomatoes, 10, unit_cost=1000)

        sale = ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('2'))])

        assert sale.number.startswith('SAL-')
        assert sale.method == 'FIFO'
        assert sale.subtotal == Decimal('3000')
        assert sale.vat_amount == Decimal('0')
        assert sale.total == Decimal('3000')
        assert sale.cost_total == Decimal('2000')
        assert sale.profit == Decimal('1000')
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('8')

    def test_vat(self, tenant, ikeja, tomatoes, receive):
        receive(ikeja, tomatoes, 10)

        sale = ledger.create_sale(
            tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('2'))],
            apply_vat=True,
        )

        assert sale.vat_percentage == Decimal('7.5')
        assert sale.vat_amount == Decimal('225')
        assert sale.total == Decimal('3225')

    def test_sale_unit_price_scaled(self, tenant, ikeja, tomatoes, g, receive):
        """500 g at the per-kg price of 1500 is 750."""
        receive(ikeja, tomatoes, 10, unit_cost=1000)

        sale = ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('500'), uom=g)])

        line = sale.lines.get()
        assert line.base_quantity == Decimal('0.5')
        assert line.unit_price == Decimal('1.50')
        assert line.line_total == Decimal('750')
        assert line.cost_total == Decimal('500')
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('9.5')

    def test_branch_price_override(self, tenant, ikeja, tomatoes, receive):
        receive(ikeja, tomatoes, 10)
        BranchStock.objects.filter(branch=ikeja, item=tomatoes).update(sale_price=Decimal('1800'))

        sale = ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('1'))])

        assert sale.subtotal == Decimal('1800')

    def test_allocations_linked_to_line(self, tenant, ikeja, tomatoes, receive):
        batch = receive(ikeja, tomatoes, 10)

        sale = ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('4'))])

        allocation = Allocation.objects.get()
        assert allocation.sale_line == sale.lines.get()
        assert allocation.inflow_batch == batch
        assert allocation.quantity_used == Decimal('4')

    def test_empty_sale(self, tenant, ikeja):
        with pytest.raises(BadRequest) as exc:
            ledger.create_sale(tenant, ikeja, [])

        assert exc.value.code == 'EMPTY_SALE'

    def test_failing_line_rolls_back_sale(self, tenant, ikeja, tomatoes, eggs, receive):
        """The second line cannot be covered; the first line is not sold either."""
        receive(ikeja, tomatoes, 10)
        receive(ikeja, eggs, 6)

        with pytest.raises(BadRequest) as exc:
            ledger.create_sale(tenant, ikeja, [
                SaleLineInput(item=tomatoes, quantity=Decimal('2')),
                SaleLineInput(item=eggs, quantity=Decimal('12')),
            ])

        assert exc.value.code == 'INSUFFICIENT_INVENTORY'
        assert not Sale.objects.exists()
        assert not SaleLine.objects.exists()
        assert not Allocation.objects.exists()
        assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')


class TestBatchSales:
    """Tests for ledger.batch_sales()."""

    def test_totals_per_batch(self, tenant, ikeja, tomatoes, receive):
        batch = receive(ikeja, tomatoes, 10, unit_cost=1000)
        ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('2'))])
        ledger.create_sale(tenant, ikeja, [SaleLineInput(item=tomatoes, quantity=Decimal('3'))])

        report = ledger.batch_sales(tenant, batch)

        assert report.total_sold == Decimal('5')
        assert report.total_cost == Decimal('5000')
        assert report.sale_count == 2
        assert report.remaining == Decimal('5')
        assert report.as_dict()['saleCount'] == 2

    def test_other_tenant(self, tenant, other_tenant, ikeja, tomatoes, receive):
        batch = receive(ikeja, tomatoes, 10)

        with pytest.raises(NotFound) as exc:
            ledger.batch_sales(other_tenant, batch)

        assert exc.value.code == 'BATCH_NOT_FOUND'
