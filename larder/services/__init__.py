"""
Ledger services: modular organization of inventory operations.

    from larder.services import UnitConversions, StockLedger, Inflows, Allocations
"""

from larder.services.allocation import Allocations
from larder.services.bulk_upload import BulkInflowUpload
from larder.services.conversions import UnitConversions
from larder.services.inflows import Inflows
from larder.services.ledger import StockLedger
from larder.services.queries import LedgerQueries
from larder.services.sales import Sales
from larder.services.transfers import Transfers

__all__ = [
    'UnitConversions',
    'StockLedger',
    'Inflows',
    'BulkInflowUpload',
    'Allocations',
    'Sales',
    'Transfers',
    'LedgerQueries',
]
