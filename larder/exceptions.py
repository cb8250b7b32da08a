"""
Exceptions for Larder.

Every failure is a LedgerError with a structured code for programmatic
handling. The three subclasses follow the taxonomy the web layer maps to
HTTP responses: NotFound, Conflict and BadRequest.
"""

from decimal import Decimal
from typing import Any

from larder.quantities import display


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.allocate(tenant, branch, tomatoes, Decimal('20'))
        except LedgerError as e:
            if e.code == 'INSUFFICIENT_INVENTORY':
                print(f"Only {e.available} left")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    status_code = 400
    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.data = data
        self.message = message or self._render(self._default_messages.get(code, code), data)
        super().__init__(self.message)

    @staticmethod
    def _render(template: str, data: dict[str, Any]) -> str:
        try:
            return template.format(**{k: display(v) for k, v in data.items()})
        except (KeyError, IndexError):
            return template

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


class NotFound(LedgerError):
    """A referenced item, unit, branch, conversion or transfer does not exist for the tenant."""

    status_code = 404
    _default_messages = {
        'ITEM_NOT_FOUND': 'Inventory item not found',
        'UOM_NOT_FOUND': 'One or both units of measure not found',
        'BRANCH_NOT_FOUND': 'Branch not found',
        'SUPPLIER_NOT_FOUND': 'Supplier not found',
        'CONVERSION_NOT_FOUND': 'Conversion not found',
        'NO_CONVERSION': 'No conversion found from {from_uom} to {to_uom}',
        'NOT_IN_BRANCH': '{item} is not stocked in branch {branch}',
        'INFLOW_NOT_FOUND': 'Inflow not found',
        'BATCH_NOT_FOUND': 'Inflow batch not found',
        'TRANSFER_NOT_FOUND': 'Transfer not found',
        'TRANSFER_LINE_NOT_FOUND': 'Transfer line {line} not found',
    }


class Conflict(LedgerError):
    """The write collides with an existing record."""

    status_code = 409
    _default_messages = {
        'DUPLICATE_CONVERSION': 'A conversion from {from_uom} to {to_uom} already exists',
    }


class BadRequest(LedgerError):
    """Validation failures, insufficient stock and illegal state transitions."""

    status_code = 400
    _default_messages = {
        'INVALID_QUANTITY': 'Quantity must be greater than 0',
        'INVALID_COST': 'Unit cost must be greater than 0',
        'INVALID_FACTOR': 'Conversion factor must be greater than 0',
        'INVALID_METHOD': 'Unknown allocation method {method}',
        'SAME_UOM': 'Cannot create conversion between the same units',
        'CANNOT_CONVERT': (
            'Cannot convert {quantity} from {from_uom} to base unit {to_uom} for item {item}. '
            'Please ensure a unit conversion exists.'
        ),
        'EMPTY_INFLOW': 'Inflow must contain at least one line',
        'EMPTY_SALE': 'Sale must contain at least one line',
        'NO_INVENTORY': (
            'No inventory available for this item in the selected branch. '
            'Please ensure the item has been received in this branch before selling.'
        ),
        'INSUFFICIENT_INVENTORY': (
            'Insufficient inventory in this branch. Requested: {requested}, Available: {available}. '
            'Please restock or reduce the quantity.'
        ),
        'INSUFFICIENT_STOCK': 'Insufficient stock for {item}. Available: {available}, Requested: {requested}',
        'SAME_BRANCH': 'Source and destination branches cannot be the same',
        'EMPTY_TRANSFER': 'Transfer must contain at least one item',
        'EMPTY_RECEIPT': 'No transfer lines to receive',
        'TRANSFER_CLOSED': 'Cannot update status of a {status} transfer',
        'NOT_IN_TRANSIT': 'Only in-transit transfers can be received',
        'INVALID_TRANSITION': 'Cannot move a transfer from {current} to {target}',
        'INVALID_STATUS': 'Unknown transfer status {status}',
        'OVER_RECEIPT': 'Received quantity cannot exceed transferred quantity for {item}',
        'RECEIPT_DECREASE': 'Received quantity for {item} cannot go below what was already received',
        'TRANSFER_LOCKED': 'Cannot delete in-transit or received transfers',
    }
