"""
Tenancy models: Tenant, Branch, Supplier.

Every ledger record hangs off a Tenant; nothing is ever read across tenants.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Tenant(models.Model):
    """An isolated business account (restaurant group)."""

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    currency = models.CharField(max_length=3, default='NGN', verbose_name=_('Currency'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Tenant')
        verbose_name_plural = _('Tenants')

    def __str__(self) -> str:
        return self.name


class Branch(models.Model):
    """A physical location of a tenant holding its own stock counter per item."""

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name='branches',
        verbose_name=_('Tenant'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Branch')
        verbose_name_plural = _('Branches')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'name'], name='unique_branch_name'),
        ]

    def __str__(self) -> str:
        return self.name


class Supplier(models.Model):
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name='suppliers',
        verbose_name=_('Tenant'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=40, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Supplier')
        verbose_name_plural = _('Suppliers')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'name'], name='unique_supplier_name'),
        ]

    def __str__(self) -> str:
        return self.name
