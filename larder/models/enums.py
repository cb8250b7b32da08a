"""
Enums for Larder models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AllocationMethod(models.TextChoices):
    """
    Order in which inflow batches are consumed by a sale.

    FIFO: oldest receipt first
    LIFO: newest receipt first
    FEFO: earliest expiry first, undated batches last
    """
    FIFO = 'FIFO', _('First in, first out')
    LIFO = 'LIFO', _('Last in, first out')
    FEFO = 'FEFO', _('First expired, first out')


class TransferStatus(models.TextChoices):
    """Transfer lifecycle status."""
    PENDING = 'pending', _('Pending')           # Created, stock untouched
    IN_TRANSIT = 'in_transit', _('In transit')  # Source debited
    RECEIVED = 'received', _('Received')        # Destination credited (terminal)
    CANCELLED = 'cancelled', _('Cancelled')     # Terminal

    @classmethod
    def terminal(cls) -> tuple[str, ...]:
        return (cls.RECEIVED, cls.CANCELLED)


class MoveKind(models.TextChoices):
    """What caused a StockMove."""
    INFLOW = 'inflow', _('Inflow')
    SALE = 'sale', _('Sale')
    TRANSFER_OUT = 'transfer_out', _('Transfer out')
    TRANSFER_IN = 'transfer_in', _('Transfer in')
    TRANSFER_RETURN = 'transfer_return', _('Transfer return')


class InflowStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    APPROVED = 'approved', _('Approved')


class InflowSource(models.TextChoices):
    MANUAL = 'manual', _('Manual')
    BULK = 'bulk', _('Bulk upload')


class UploadStatus(models.TextChoices):
    """Outcome recorded for a bulk upload row that did not become stock."""
    FAILED = 'failed', _('Failed')
    SKIPPED = 'skipped', _('Skipped')
