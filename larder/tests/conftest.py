"""
Pytest fixtures for Larder tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache

from larder import ledger
from larder.models import Branch, InventoryItem, Supplier, Tenant, UnitOfMeasure
from larder.services.inflows import InflowLineInput


@pytest.fixture(autouse=True)
def clear_cache():
    """Conversion graphs are cached per tenant pk, which the test DB reuses."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(name='Mama Put Group', currency='NGN')


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(name='Suya Spot', currency='NGN')


@pytest.fixture
def ikeja(tenant):
    """Main branch."""
    return Branch.objects.create(tenant=tenant, name='Ikeja')


@pytest.fixture
def lekki(tenant):
    """Second branch, transfer destination."""
    return Branch.objects.create(tenant=tenant, name='Lekki')


@pytest.fixture
def supplier(tenant):
    return Supplier.objects.create(tenant=tenant, name='Fresh Farms')


@pytest.fixture
def kg(tenant):
    return UnitOfMeasure.objects.create(tenant=tenant, name='Kilogram', abbreviation='kg', is_default=True)


@pytest.fixture
def g(tenant):
    return UnitOfMeasure.objects.create(tenant=tenant, name='Gram', abbreviation='g')


@pytest.fixture
def crate(tenant):
    return UnitOfMeasure.objects.create(tenant=tenant, name='Crate', abbreviation='crt')


@pytest.fixture
def piece(tenant):
    return UnitOfMeasure.objects.create(tenant=tenant, name='Piece', abbreviation='pc')


@pytest.fixture
def conversions(tenant, kg, g, crate):
    """1 kg = 1000 g, 1 crate = 12 kg."""
    ledger.create_conversion(tenant, kg, g, Decimal('1000'))
    ledger.create_conversion(tenant, crate, kg, Decimal('12'))


@pytest.fixture
def tomatoes(tenant, kg, conversions):
    """Item tracked in kg, sold at 1500 per kg."""
    return InventoryItem.objects.create(
        tenant=tenant,
        name='Tomatoes',
        base_uom=kg,
        sale_price=Decimal('1500.00'),
        minimum_stock=Decimal('5'),
    )


@pytest.fixture
def eggs(tenant, piece):
    """Lot-tracked item counted in pieces."""
    return InventoryItem.objects.create(
        tenant=tenant,
        name='Eggs',
        base_uom=piece,
        sale_price=Decimal('150.00'),
        is_trackable=True,
    )


@pytest.fixture
def receive(tenant, kg):
    """
    Receive one line of stock.

    receive(ikeja, tomatoes, 5, unit_cost=1000) -> InflowBatch
    """
    def _receive(branch, item, quantity, uom=None, unit_cost=Decimal('1000'),
                 expiry_date=None, batch_number=''):
        inflow = ledger.create_inflow(
            tenant,
            [InflowLineInput(
                item=item,
                uom=uom or item.base_uom,
                quantity=Decimal(str(quantity)),
                unit_cost=Decimal(str(unit_cost)),
                expiry_date=expiry_date,
                batch_number=batch_number,
            )],
            branch=branch,
        )
        return inflow.batches.get()
    return _receive


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def next_week():
    return date.today() + timedelta(days=7)
