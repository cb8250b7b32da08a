"""
Larder Models.

Core models for the inventory ledger:
- Tenant, Branch, Supplier: who and where
- UnitOfMeasure, UnitConversion: the conversion graph
- InventoryItem, BranchStock: stock counters (caches)
- StockMove: immutable ledger of changes
- Inflow, InflowBatch, Lot: receipts and what they left in stock
- Sale, SaleLine, Allocation: consumption of inflow batches
- Transfer, TransferLine: stock moving between branches
- BulkUploadLog: audit trail for bulk inflow uploads
"""

from larder.models.enums import (
    AllocationMethod,
    InflowSource,
    InflowStatus,
    MoveKind,
    TransferStatus,
    UploadStatus,
)
from larder.models.inflow import BulkUploadLog, Inflow, InflowBatch, Lot
from larder.models.item import BranchStock, InventoryItem
from larder.models.move import StockMove
from larder.models.sale import Allocation, Sale, SaleLine
from larder.models.tenancy import Branch, Supplier, Tenant
from larder.models.transfer import Transfer, TransferLine
from larder.models.uom import UnitConversion, UnitOfMeasure

__all__ = [
    'AllocationMethod',
    'InflowSource',
    'InflowStatus',
    'MoveKind',
    'TransferStatus',
    'UploadStatus',
    'Tenant',
    'Branch',
    'Supplier',
    'UnitOfMeasure',
    'UnitConversion',
    'InventoryItem',
    'BranchStock',
    'StockMove',
    'Inflow',
    'InflowBatch',
    'Lot',
    'BulkUploadLog',
    'Sale',
    'SaleLine',
    'Allocation',
    'Transfer',
    'TransferLine',
]
