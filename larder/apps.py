"""Django app configuration for Larder."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class LarderConfig(AppConfig):
    """Configuration for Larder app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "larder"
    verbose_name = _("Inventory Ledger")
