"""
Remittance fee calculators.

Two views of the same question, "how much arrives at the other end":

- The "total in hand" calculator starts from the cash the sender hands
  over (principal plus fee) and works back to the principal using the
  Western Union tier table for the receiving country.
- The remittance dashboard starts from an amount in USD, MVR or BDT,
  converts it to a USD gross through reference rates, and prices it with
  the corridor tier table (or a manual bank fee).

All arithmetic is Decimal. Nothing here touches the ledger.
"""

from decimal import Decimal
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field

from fundledger.models.finance import Money


Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_BONUS_PCT = Decimal("2.5")
DEFAULT_USD_MVR = Decimal("20.20")
DEFAULT_USD_BDT = Decimal("125.46")
DEFAULT_OTHER_BANK_BDT_RATE = Decimal("125.00")


def as_decimal(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class FeeTier(BaseModel):
    """Flat USD fee for principals in [min, max]."""
    min: Money
    max: Money
    fee: Money


def _tiers(*rows: tuple[int, int, int]) -> list[FeeTier]:
    return [FeeTier(min=lo, max=hi, fee=fee) for lo, hi, fee in rows]


# =============================================================================
# FEE TABLES
# =============================================================================

WU_FEE_RULES: dict[str, list[FeeTier]] = {
    "SOUTH_ASIA_A": _tiers((1, 500, 4), (501, 1000, 6), (1001, 3000, 8)),
    "SRI_LANKA": _tiers((1, 500, 5), (501, 1000, 7), (1001, 3000, 9)),
    "INDIA": _tiers((1, 250, 4), (251, 500, 5), (501, 1000, 7), (1001, 2400, 9)),
    "PAKISTAN": _tiers((1, 3000, 10)),
    "EAST_ASIA": _tiers(
        (1, 500, 8), (501, 1000, 13), (1001, 1500, 18), (1501, 2000, 28), (2001, 3000, 36),
    ),
    "GLOBAL": _tiers(
        (1, 85, 13), (86, 212, 21), (213, 340, 30), (341, 425, 34),
        (426, 510, 42), (511, 595, 47), (596, 765, 55), (766, 892, 64),
        (893, 1020, 74), (1021, 1274, 86), (1275, 1487, 94), (1488, 1742, 105),
        (1743, 1997, 116), (1998, 2507, 133), (2508, 3017, 152),
    ),
}


class CountryConfig(BaseModel):
    rules: str = Field(..., description="Key into WU_FEE_RULES")
    currency: str = Field(..., description="Currency the receiver is paid in")


COUNTRY_CONFIG: dict[str, CountryConfig] = {
    "Bangladesh": CountryConfig(rules="SOUTH_ASIA_A", currency="BDT"),
    "Nepal": CountryConfig(rules="SOUTH_ASIA_A", currency="NPR"),
    "Sri Lanka": CountryConfig(rules="SRI_LANKA", currency="LKR"),
    "India": CountryConfig(rules="INDIA", currency="INR"),
    "Pakistan": CountryConfig(rules="PAKISTAN", currency="PKR"),
    "Thailand": CountryConfig(rules="EAST_ASIA", currency="THB"),
    "Indonesia": CountryConfig(rules="EAST_ASIA", currency="IDR"),
    "Philippines": CountryConfig(rules="EAST_ASIA", currency="PHP"),
    "China": CountryConfig(rules="EAST_ASIA", currency="CNY"),
    "Other Countries": CountryConfig(rules="GLOBAL", currency="LCL"),
}

# Corridor tables used by the remittance dashboard
WU_CORRIDOR_TIERS: dict[str, list[FeeTier]] = {
    "Bangladesh/Nepal": _tiers((1, 500, 4), (501, 1000, 6), (1001, 3000, 8)),
    "Sri Lanka/India": _tiers((1, 500, 5), (501, 1000, 8), (1001, 3000, 10)),
    "Pakistan": _tiers((1, 3000, 10)),
}

DEFAULT_CORRIDOR = "Bangladesh/Nepal"


class BonusType(str, Enum):
    """Whether the receiving bank's incentive is added."""
    NONE = "NONE"
    ADD = "ADD"


class EntryCurrency(str, Enum):
    """Currencies the dashboard accepts an amount in."""
    USD = "USD"
    MVR = "MVR"
    BDT = "BDT"


class UnknownCountryError(ValueError):
    """No fee table for the requested country."""
    pass


# =============================================================================
# RESULT MODELS
# =============================================================================

class RemittanceQuote(BaseModel):
    """What the receiver gets from one transfer."""
    currency: str = Field(..., description="Receive currency")
    fee: Money
    net_principal: Money = Field(..., description="USD actually sent after the fee")
    base_amount: Money = Field(..., description="Net principal times the rate")
    bonus_amount: Money
    total_amount: Money = Field(..., description="Base plus bonus")


class DashboardQuote(BaseModel):
    """Remittance dashboard result, always delivered in BDT."""
    usd_gross: Money
    fee: Money
    usd_net: Money
    bdt_rate: Money
    base_bdt: Money
    incentive_bdt: Money = ZERO
    adjustment_bdt: Money = ZERO
    final_bdt: Money
    total_paid_mvr: Money


# =============================================================================
# TOTAL-IN-HAND CALCULATOR
# =============================================================================

def fee_for_total_in_hand(total_in_hand: Number, rules: list[FeeTier]) -> Decimal:
    """
    Fee that applies when `total_in_hand` must cover principal plus fee.

    Walks the tiers in order and takes the first one whose fee leaves a
    principal inside the tier, or below its minimum. Amounts past the
    last tier pay the last tier's fee.
    """
    total = as_decimal(total_in_hand)
    if total <= 0:
        return ZERO

    for tier in rules:
        principal = total - tier.fee
        if tier.min <= principal <= tier.max:
            return tier.fee
        if principal < tier.min:
            return tier.fee
    return rules[-1].fee


def _quote(
    total: Decimal,
    fee: Decimal,
    rate: Decimal,
    bonus_pct: Decimal,
    bonus_type: BonusType,
    currency: str,
) -> RemittanceQuote:
    pct = ZERO if bonus_type == BonusType.NONE else bonus_pct
    net = max(ZERO, total - fee)
    base = net * rate
    bonus = base * (pct / HUNDRED)
    return RemittanceQuote(
        currency=currency,
        fee=fee,
        net_principal=net,
        base_amount=base,
        bonus_amount=bonus,
        total_amount=base + bonus,
    )


def quote_total_in_hand(
    country: str,
    total_in_hand: Number,
    rate: Number,
    bonus_pct: Number = DEFAULT_BONUS_PCT,
    bonus_type: BonusType = BonusType.NONE,
) -> RemittanceQuote:
    """
    Western Union quote from the cash handed over.

    Raises:
        UnknownCountryError: If the country has no fee table
    """
    config = COUNTRY_CONFIG.get(country)
    if config is None:
        raise UnknownCountryError(f"No fee table for country: {country}")

    total = as_decimal(total_in_hand)
    fee = fee_for_total_in_hand(total, WU_FEE_RULES[config.rules])
    return _quote(total, fee, as_decimal(rate), as_decimal(bonus_pct), bonus_type, config.currency)


def quote_manual(
    amount: Number,
    rate: Number,
    fee: Number,
    bonus_pct: Number = DEFAULT_BONUS_PCT,
    bonus_type: BonusType = BonusType.NONE,
    currency: str = "BDT",
) -> RemittanceQuote:
    """Same arithmetic as the Western Union quote, with a fee the user enters."""
    return _quote(
        as_decimal(amount), as_decimal(fee), as_decimal(rate), as_decimal(bonus_pct), bonus_type,
        currency.strip().upper() or "LCL",
    )


# =============================================================================
# REMITTANCE DASHBOARD
# =============================================================================

def usd_gross(
    amount: Number,
    currency: EntryCurrency,
    usd_mvr: Number,
    usd_bdt: Number,
) -> Decimal:
    """Convert an entry amount to USD. A non-positive rate gives 0."""
    amount = as_decimal(amount)
    if currency == EntryCurrency.USD:
        return amount
    rate = as_decimal(usd_mvr) if currency == EntryCurrency.MVR else as_decimal(usd_bdt)
    return amount / rate if rate > 0 else ZERO


def corridor_fee(gross: Number, corridor: str) -> Decimal:
    """Fee of the tier containing `gross`; the last tier when none does."""
    gross = as_decimal(gross)
    tiers = WU_CORRIDOR_TIERS.get(corridor) or WU_CORRIDOR_TIERS[DEFAULT_CORRIDOR]
    for tier in tiers:
        if tier.min <= gross <= tier.max:
            return tier.fee
    return tiers[-1].fee


def quote_western_union(
    amount: Number,
    currency: EntryCurrency = EntryCurrency.MVR,
    corridor: str = DEFAULT_CORRIDOR,
    usd_mvr: Number = DEFAULT_USD_MVR,
    usd_bdt: Number = DEFAULT_USD_BDT,
    incentive_pct: Number = DEFAULT_BONUS_PCT,
) -> DashboardQuote:
    """Western Union corridor quote, paid out in BDT with the bank incentive."""
    mvr_rate = as_decimal(usd_mvr)
    bdt_rate = as_decimal(usd_bdt)

    gross = usd_gross(amount, currency, mvr_rate, bdt_rate)
    fee = corridor_fee(gross, corridor)
    net = max(ZERO, gross - fee)
    base = net * bdt_rate
    incentive = base * (as_decimal(incentive_pct) / HUNDRED)

    return DashboardQuote(
        usd_gross=gross,
        fee=fee,
        usd_net=net,
        bdt_rate=bdt_rate,
        base_bdt=base,
        incentive_bdt=incentive,
        final_bdt=base + incentive,
        total_paid_mvr=gross * mvr_rate,
    )


def quote_other_bank(
    amount: Number,
    currency: EntryCurrency = EntryCurrency.MVR,
    bdt_rate: Number = DEFAULT_OTHER_BANK_BDT_RATE,
    fee_usd: Number = ZERO,
    adjustment_bdt: Number = ZERO,
    usd_mvr: Number = DEFAULT_USD_MVR,
) -> DashboardQuote:
    """Manual bank quote: user-entered USD fee and a flat BDT adjustment."""
    mvr_rate = as_decimal(usd_mvr)
    rate = as_decimal(bdt_rate)
    fee = as_decimal(fee_usd)
    adjustment = as_decimal(adjustment_bdt)

    gross = usd_gross(amount, currency, mvr_rate, rate)
    net = max(ZERO, gross - fee)
    base = net * rate

    return DashboardQuote(
        usd_gross=gross,
        fee=fee,
        usd_net=net,
        bdt_rate=rate,
        base_bdt=base,
        adjustment_bdt=adjustment,
        final_bdt=base + adjustment,
        total_paid_mvr=gross * mvr_rate,
    )
