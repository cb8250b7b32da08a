"""
Larder configuration.

Usage in settings.py:
    LARDER = {
        "DEFAULT_ALLOCATION_METHOD": "FEFO",
        "DEFAULT_VAT_PERCENTAGE": "7.5",
        "UPLOAD_LOG_CHUNK_SIZE": 50,
        "GRAPH_CACHE_TIMEOUT": 3600,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class LarderSettings:
    """Larder configuration settings."""

    # Allocation policy when the caller passes none (FIFO, LIFO or FEFO)
    DEFAULT_ALLOCATION_METHOD: str = 'FIFO'

    # Flat tax rate applied to sales with VAT enabled and no explicit rate
    DEFAULT_VAT_PERCENTAGE: Decimal = Decimal('7.5')

    # Audit rows written per bulk_create during bulk inflow uploads
    UPLOAD_LOG_CHUNK_SIZE: int = 50

    # Seconds a tenant's UOM conversion graph stays cached
    GRAPH_CACHE_TIMEOUT: int = 3600

    # Inflow currency when the tenant has none configured
    DEFAULT_CURRENCY: str = 'NGN'


def get_larder_settings() -> LarderSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LARDER", {})
    return LarderSettings(**{
        k: v for k, v in user_settings.items()
        if k in LarderSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_larder_settings(), name)


larder_settings = _LazySettings()
