"""
Tests for the reconcile_stock management command.
"""

from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from larder import ledger
from larder.models import BranchStock


pytestmark = pytest.mark.django_db


@pytest.fixture
def drifted(ikeja, tomatoes, receive):
    """Ikeja holds 10 kg per the ledger, but its counter says 4."""
    receive(ikeja, tomatoes, 10)
    BranchStock.objects.filter(branch=ikeja, item=tomatoes).update(current_stock=Decimal('4'))


def test_fixes_drift(ikeja, tomatoes, drifted):
    out = StringIO()

    call_command('reconcile_stock', stdout=out)

    assert '1 cache(s) corrected' in out.getvalue()
    assert 'cached 4' in out.getvalue()
    assert ledger.branch_stock(ikeja, tomatoes) == Decimal('10')


def test_dry_run(ikeja, tomatoes, drifted):
    out = StringIO()

    call_command('reconcile_stock', '--dry-run', stdout=out)

    assert '1 cache(s) would be corrected' in out.getvalue()
    assert ledger.branch_stock(ikeja, tomatoes) == Decimal('4')


def test_scoped_to_tenant(tenant, other_tenant, ikeja, tomatoes, drifted):
    out = StringIO()

    call_command('reconcile_stock', '--tenant', str(other_tenant.pk), stdout=out)

    assert '0 cache(s) corrected' in out.getvalue()
    assert ledger.branch_stock(ikeja, tomatoes) == Decimal('4')


def test_unknown_tenant(db):
    with pytest.raises(CommandError):
        call_command('reconcile_stock', '--tenant', '424242')
