"""
POS Django Store — App Configuration
=======================================
Relational backing for the checkout stores: sales, stock,
loyalty, settlement outbox and the mobile-money watchlist.
"""

from django.apps import AppConfig


class PosStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "adapters.django_store"
    label = "pos_store"
    verbose_name = "POS Checkout Store"
