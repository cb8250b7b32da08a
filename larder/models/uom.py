"""
Units of measure and the directed conversions between them.

A conversion row says: 1 from_uom = factor to_uom. Rows are always
written in mirrored pairs (A→B and B→A) by UnitConversions; the model
itself only enforces one row per ordered pair.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class UnitOfMeasure(models.Model):
    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='units',
        verbose_name=_('Tenant'),
    )
    name = models.CharField(max_length=100, verbose_name=_('Name'))
    abbreviation = models.CharField(max_length=20, blank=True, default='', verbose_name=_('Abbreviation'))
    is_default = models.BooleanField(default=False, verbose_name=_('Default'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Unit of measure')
        verbose_name_plural = _('Units of measure')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'name'], name='unique_uom_name'),
        ]

    @property
    def symbol(self) -> str:
        """Abbreviation when set, name otherwise."""
        return self.abbreviation or self.name

    def __str__(self) -> str:
        return self.name


class UnitConversionQuerySet(models.QuerySet):

    def for_tenant(self, tenant):
        return self.filter(tenant=tenant)

    def between(self, from_uom, to_uom):
        """The directed row from_uom → to_uom, if any."""
        return self.filter(from_uom=from_uom, to_uom=to_uom)


class UnitConversion(models.Model):
    """1 from_uom = factor to_uom."""

    tenant = models.ForeignKey(
        'larder.Tenant',
        on_delete=models.CASCADE,
        related_name='unit_conversions',
        verbose_name=_('Tenant'),
    )
    from_uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.CASCADE,
        related_name='conversions_from',
        verbose_name=_('From unit'),
    )
    to_uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.CASCADE,
        related_name='conversions_to',
        verbose_name=_('To unit'),
    )
    factor = models.DecimalField(
        max_digits=24,
        decimal_places=10,
        verbose_name=_('Factor'),
        help_text=_('How many target units one source unit is worth'),
    )
    effective_from = models.DateTimeField(default=timezone.now, verbose_name=_('Effective from'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UnitConversionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Unit conversion')
        verbose_name_plural = _('Unit conversions')
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'from_uom', 'to_uom'],
                name='unique_conversion_pair',
            ),
            models.CheckConstraint(
                condition=models.Q(factor__gt=Decimal('0')),
                name='conversion_factor_positive',
            ),
        ]

    def __str__(self) -> str:
        return f"1 {self.from_uom} = {self.factor} {self.to_uom}"
