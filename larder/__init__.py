"""
Larder: multi-tenant inventory ledger and allocation engine.

Usage:
    from larder import ledger, LedgerError

    ledger.convert(tenant, crate, kg, 3)             # 36 kg
    ledger.allocate(tenant, branch, tomatoes, 7)     # FIFO by default
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from larder.service import Ledger
        return Ledger
    elif name == 'LedgerError':
        from larder.exceptions import LedgerError
        return LedgerError
    elif name in ('NotFound', 'Conflict', 'BadRequest'):
        from larder import exceptions
        return getattr(exceptions, name)
    elif name in (
        'Tenant', 'Branch', 'Supplier', 'UnitOfMeasure', 'UnitConversion',
        'InventoryItem', 'BranchStock', 'StockMove', 'Inflow', 'InflowBatch',
        'Lot', 'Sale', 'SaleLine', 'Allocation', 'Transfer', 'TransferLine',
        'AllocationMethod', 'TransferStatus',
    ):
        from larder import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'LedgerError',
    'NotFound',
    'Conflict',
    'BadRequest',
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
    'Sale',
    'SaleLine',
    'Allocation',
    'Transfer',
    'TransferLine',
    'AllocationMethod',
    'TransferStatus',
]

__version__ = '0.1.0'
