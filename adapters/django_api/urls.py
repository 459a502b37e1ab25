"""
POS Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path(
        "payments/mobile-money/callback",
        views.mobile_money_callback_view,
    ),
    path(
        "payments/mobile-money/attention",
        views.payments_needing_attention_view,
    ),
]
