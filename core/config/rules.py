"""
POS Core Config — Checkout Rules
===================================
Tax rate, loyalty ratios and payment polling timings are
configuration, not source code. Engines receive a frozen rules
object; adapters build it from Django settings or any mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

CENT = Decimal("0.01")


def to_decimal(value: Any, *, field_name: str = "value") -> Decimal:
    """Coerce int/str/Decimal to Decimal. Floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool.")
    if isinstance(value, (int, str, float)):
        try:
            return Decimal(str(value))
        except Exception as exc:
            raise ValueError(f"{field_name} must be numeric, got {value!r}.") from exc
    raise ValueError(f"{field_name} must be numeric, got {type(value).__name__}.")


# ══════════════════════════════════════════════════════════════
# TAX RULE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TaxRule:
    """
    Tax calculation rule (VAT by default).

    The rate is applied only when the business is tax-registered.
    """

    tax_type: str = "VAT"
    rate: Decimal = Decimal("0.16")

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", to_decimal(self.rate, field_name="rate"))
        if not Decimal(0) <= self.rate <= Decimal(1):
            raise ValueError(f"Tax rate must be between 0 and 1, got {self.rate}.")

    def compute_tax(self, amount: Decimal) -> Decimal:
        """Compute tax for a base amount, rounded half-up to cents."""
        return (to_decimal(amount) * self.rate).quantize(CENT, rounding=ROUND_HALF_UP)

    @property
    def percent_label(self) -> str:
        percent = (self.rate * 100).normalize()
        return f"{self.tax_type} ({percent:f}%)"


# ══════════════════════════════════════════════════════════════
# PRICING RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PricingRules:
    """
    Cart pricing and loyalty ratios.

    points_per_redemption_unit points buy redemption_unit_value
    of discount; every earn_unit of taxable spend earns
    earn_points_per_unit points.
    """

    tax: TaxRule = field(default_factory=TaxRule)
    tax_registered: bool = True
    points_per_redemption_unit: int = 100
    redemption_unit_value: Decimal = Decimal(100)
    earn_unit: Decimal = Decimal(100)
    earn_points_per_unit: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "redemption_unit_value",
            to_decimal(self.redemption_unit_value, field_name="redemption_unit_value"),
        )
        object.__setattr__(
            self, "earn_unit", to_decimal(self.earn_unit, field_name="earn_unit"),
        )
        if self.points_per_redemption_unit <= 0:
            raise ValueError("points_per_redemption_unit must be positive.")
        if self.redemption_unit_value <= 0:
            raise ValueError("redemption_unit_value must be positive.")
        if self.earn_unit <= 0:
            raise ValueError("earn_unit must be positive.")
        if self.earn_points_per_unit < 0:
            raise ValueError("earn_points_per_unit must be >= 0.")


# ══════════════════════════════════════════════════════════════
# PAYMENT POLLING RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PaymentPollingRules:
    """
    Mobile-money settlement polling.

    Defaults give the customer about a minute on their handset:
    12 polls, 5 seconds apart, after a 5 second initial delay.
    """

    initial_delay_seconds: float = 5.0
    poll_interval_seconds: float = 5.0
    max_poll_attempts: int = 12
    rounding_tolerance: Decimal = Decimal(1)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "rounding_tolerance",
            to_decimal(self.rounding_tolerance, field_name="rounding_tolerance"),
        )
        if self.initial_delay_seconds < 0 or self.poll_interval_seconds < 0:
            raise ValueError("Polling delays must be >= 0.")
        if self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1.")
        if self.rounding_tolerance < 0:
            raise ValueError("rounding_tolerance must be >= 0.")


@dataclass(frozen=True)
class CheckoutRules:
    pricing: PricingRules = field(default_factory=PricingRules)
    polling: PaymentPollingRules = field(default_factory=PaymentPollingRules)
    currency: str = "KES"

    def __post_init__(self) -> None:
        if not self.currency or len(self.currency) != 3:
            raise ValueError("currency must be 3-letter ISO 4217 code.")


# ══════════════════════════════════════════════════════════════
# LOADER
# ══════════════════════════════════════════════════════════════

def load_checkout_rules(
    mapping: Optional[Mapping[str, Any]] = None,
    *,
    tax_registered: Optional[bool] = None,
) -> CheckoutRules:
    """
    Build CheckoutRules from a flat settings mapping.

    Recognised keys (all optional): CURRENCY, TAX_TYPE, TAX_RATE,
    TAX_REGISTERED, POINTS_PER_REDEMPTION_UNIT, REDEMPTION_UNIT_VALUE,
    EARN_UNIT, EARN_POINTS_PER_UNIT, POLL_INITIAL_DELAY_SECONDS,
    POLL_INTERVAL_SECONDS, POLL_MAX_ATTEMPTS, ROUNDING_TOLERANCE.

    tax_registered, when given, overrides the mapping (it is a
    business profile fact rather than a deployment setting).
    """
    m = dict(mapping or {})
    defaults_pricing = PricingRules()
    defaults_polling = PaymentPollingRules()

    registered = m.get("TAX_REGISTERED", defaults_pricing.tax_registered)
    if tax_registered is not None:
        registered = tax_registered

    pricing = PricingRules(
        tax=TaxRule(
            tax_type=m.get("TAX_TYPE", "VAT"),
            rate=m.get("TAX_RATE", defaults_pricing.tax.rate),
        ),
        tax_registered=bool(registered),
        points_per_redemption_unit=int(
            m.get("POINTS_PER_REDEMPTION_UNIT", defaults_pricing.points_per_redemption_unit)
        ),
        redemption_unit_value=m.get(
            "REDEMPTION_UNIT_VALUE", defaults_pricing.redemption_unit_value
        ),
        earn_unit=m.get("EARN_UNIT", defaults_pricing.earn_unit),
        earn_points_per_unit=int(
            m.get("EARN_POINTS_PER_UNIT", defaults_pricing.earn_points_per_unit)
        ),
    )
    polling = PaymentPollingRules(
        initial_delay_seconds=float(
            m.get("POLL_INITIAL_DELAY_SECONDS", defaults_polling.initial_delay_seconds)
        ),
        poll_interval_seconds=float(
            m.get("POLL_INTERVAL_SECONDS", defaults_polling.poll_interval_seconds)
        ),
        max_poll_attempts=int(
            m.get("POLL_MAX_ATTEMPTS", defaults_polling.max_poll_attempts)
        ),
        rounding_tolerance=m.get(
            "ROUNDING_TOLERANCE", defaults_polling.rounding_tolerance
        ),
    )
    return CheckoutRules(
        pricing=pricing,
        polling=polling,
        currency=m.get("CURRENCY", "KES"),
    )
