"""
Management command to reconcile stock caches with the move ledger.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --tenant 3
    python manage.py reconcile_stock --dry-run
"""

from django.core.management.base import BaseCommand, CommandError

from larder import ledger
from larder.models import Tenant
from larder.quantities import display


class Command(BaseCommand):
    """Reconcile stock caches command."""

    help = 'Recompute branch and item stock from stock moves and fix any drift'

    def add_arguments(self, parser):
        parser.add_argument(
            '--tenant',
            type=int,
            help='Only reconcile this tenant (id)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without fixing it'
        )

    def handle(self, *args, **options):
        tenant = None
        if options['tenant'] is not None:
            tenant = Tenant.objects.filter(pk=options['tenant']).first()
            if tenant is None:
                raise CommandError(f"Tenant {options['tenant']} does not exist")

        drifts = ledger.reconcile(tenant=tenant, dry_run=options['dry_run'])

        for drift in drifts:
            self.stdout.write(
                f'{drift.kind} {drift.pk} ({drift.label}): '
                f'cached {display(drift.cached)}, ledger {display(drift.actual)}'
            )

        if options['dry_run']:
            self.stdout.write(f'{len(drifts)} cache(s) would be corrected')
        else:
            self.stdout.write(
                self.style.SUCCESS(f'{len(drifts)} cache(s) corrected')
            )
