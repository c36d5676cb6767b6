"""Remittance and top-up calculators."""

from fundledger.calculators.remittance import (
    COUNTRY_CONFIG,
    WU_CORRIDOR_TIERS,
    WU_FEE_RULES,
    BonusType,
    DashboardQuote,
    EntryCurrency,
    FeeTier,
    RemittanceQuote,
    UnknownCountryError,
    corridor_fee,
    fee_for_total_in_hand,
    quote_manual,
    quote_other_bank,
    quote_total_in_hand,
    quote_western_union,
    usd_gross,
)
from fundledger.calculators.tp_assistant import (
    Channel,
    Direction,
    TopUpQuote,
    quote_top_up,
)

__all__ = [
    "COUNTRY_CONFIG",
    "WU_CORRIDOR_TIERS",
    "WU_FEE_RULES",
    "BonusType",
    "Channel",
    "DashboardQuote",
    "Direction",
    "EntryCurrency",
    "FeeTier",
    "RemittanceQuote",
    "TopUpQuote",
    "UnknownCountryError",
    "corridor_fee",
    "fee_for_total_in_hand",
    "quote_manual",
    "quote_other_bank",
    "quote_top_up",
    "quote_total_in_hand",
    "quote_western_union",
    "usd_gross",
]
