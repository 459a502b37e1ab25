"""
POS Mobile Money — Public API
================================
HTTP client for the push-payment gateway and callback parsing.
"""

from adapters.mobile_money.callbacks import MalformedCallback, parse_stk_callback
from adapters.mobile_money.client import HttpMobileMoneyGateway, format_msisdn

__all__ = [
    "HttpMobileMoneyGateway",
    "MalformedCallback",
    "format_msisdn",
    "parse_stk_callback",
]
