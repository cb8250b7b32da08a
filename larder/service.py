"""
Ledger Service: the single public interface for inventory operations.

Usage:
    from larder import ledger, LedgerError

    ledger.create_conversion(tenant, crate, kg, Decimal('12'))
    ledger.create_inflow(tenant, [InflowLineInput(tomatoes, crate, 2, 9000)], branch=ikeja)
    ledger.allocate(tenant, ikeja, tomatoes, Decimal('5'))      # FIFO by default
    ledger.update_transfer_status(tenant, transfer, 'in_transit', user='ada')
"""

from decimal import Decimal

from larder.models.inflow import Inflow
from larder.models.sale import Sale
from larder.models.transfer import Transfer
from larder.models.uom import UnitConversion
from larder.services.allocation import AllocationResult, Allocations
from larder.services.bulk_upload import BulkInflowUpload, BulkUploadResult
from larder.services.conversions import ConversionPath, UnitConversions
from larder.services.inflows import Inflows
from larder.services.ledger import Drift, StockLedger
from larder.services.queries import BatchSales, LedgerQueries, LowStock
from larder.services.sales import Sales
from larder.services.transfers import Transfers


class Ledger:
    """
    Single interface for all inventory operations.

    Parameter convention: (tenant, where, what, how much, ...).
    Every call is scoped to the tenant passed in.

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See each service's docstrings.
    """

    # ══════════════════════════════════════════════════════════════
    # UNITS OF MEASURE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_multiplier(cls, tenant, from_uom, to_uom) -> Decimal | None:
        return UnitConversions.get_multiplier(tenant, from_uom, to_uom)

    @classmethod
    def convert(cls, tenant, from_uom, to_uom, quantity) -> Decimal:
        return UnitConversions.convert(tenant, from_uom, to_uom, quantity)

    @classmethod
    def conversions_for(cls, tenant, uom) -> list[ConversionPath]:
        return UnitConversions.conversions_for(tenant, uom)

    @classmethod
    def create_conversion(cls, tenant, from_uom, to_uom, factor, **kwargs) -> UnitConversion:
        return UnitConversions.create_conversion(tenant, from_uom, to_uom, factor, **kwargs)

    @classmethod
    def remove_conversion(cls, tenant, conversion) -> None:
        UnitConversions.remove_conversion(tenant, conversion)

    # ══════════════════════════════════════════════════════════════
    # INFLOWS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_inflow(cls, tenant, lines, **kwargs) -> Inflow:
        return Inflows.create_inflow(tenant, lines, **kwargs)

    @classmethod
    def approve_inflow(cls, tenant, inflow, approved_by='') -> Inflow:
        return Inflows.approve_inflow(tenant, inflow, approved_by)

    @classmethod
    def bulk_upload_inflows(cls, tenant, content, user='') -> BulkUploadResult:
        return BulkInflowUpload.upload(tenant, content, user=user)

    @classmethod
    def upload_template(cls) -> str:
        return BulkInflowUpload.template()

    # ══════════════════════════════════════════════════════════════
    # ALLOCATION & SALES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def allocate(cls, tenant, branch, item, base_quantity, method=None,
                 sale_line=None, user='') -> AllocationResult:
        return Allocations.allocate(tenant, branch, item, base_quantity, method, sale_line, user)

    @classmethod
    def preview_allocation(cls, tenant, branch, item, base_quantity, method=None) -> AllocationResult:
        return Allocations.preview(tenant, branch, item, base_quantity, method)

    @classmethod
    def create_sale(cls, tenant, branch, lines, **kwargs) -> Sale:
        return Sales.create_sale(tenant, branch, lines, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # TRANSFERS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_transfer(cls, tenant, from_branch, to_branch, lines, **kwargs) -> Transfer:
        return Transfers.create_transfer(tenant, from_branch, to_branch, lines, **kwargs)

    @classmethod
    def update_transfer_status(cls, tenant, transfer, new_status, user='') -> Transfer:
        return Transfers.update_status(tenant, transfer, new_status, user)

    @classmethod
    def receive_transfer_items(cls, tenant, transfer, receipts, user='') -> Transfer:
        return Transfers.receive_items(tenant, transfer, receipts, user)

    @classmethod
    def delete_transfer(cls, tenant, transfer) -> None:
        Transfers.delete_transfer(tenant, transfer)

    # ══════════════════════════════════════════════════════════════
    # STOCK
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def branch_stock(cls, branch, item) -> Decimal:
        return LedgerQueries.branch_stock(branch, item)

    @classmethod
    def reconcile(cls, tenant=None, item=None, dry_run=False) -> list[Drift]:
        return StockLedger.reconcile(tenant=tenant, item=item, dry_run=dry_run)

    @classmethod
    def low_stock(cls, tenant, branch=None) -> list[LowStock]:
        return LedgerQueries.low_stock(tenant, branch)

    @classmethod
    def batch_sales(cls, tenant, inflow_batch) -> BatchSales:
        return LedgerQueries.batch_sales(tenant, inflow_batch)
