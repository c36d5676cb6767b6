"""
Top-up assistant.

Prices sending money home from MVR through two channels:

- BANK: quoted in MVR per 100,000 (one lakh) units of the target currency.
- BKASH: quoted in MVR per 5,000 BDT received, plus a 2% cash-out fee in
  BDT. Always pays out in BDT.

Works in both directions: from the amount the receiver should get to the
MVR payable, or from MVR on hand to what arrives.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from fundledger.calculators.remittance import Number, ZERO, as_decimal
from fundledger.models.finance import Money


LAKH = Decimal("100000")
BKASH_UNIT = Decimal("5000")
BKASH_FEE_RATE = Decimal("0.02")

DEFAULT_BANK_RATE_PER_LAKH = Decimal("16320")
DEFAULT_BKASH_RATE_PER_5K = Decimal("835")


class Channel(str, Enum):
    BANK = "BANK"
    BKASH = "BKASH"


class Direction(str, Enum):
    """BDT_TO_MVR: start from the target amount. MVR_TO_BDT: start from MVR."""
    BDT_TO_MVR = "BDT_TO_MVR"
    MVR_TO_BDT = "MVR_TO_BDT"


class TopUpQuote(BaseModel):
    channel: Channel
    direction: Direction
    target_currency: str = Field(..., description="Currency the receiver gets")
    payable: Money = Field(..., description="Final figure, in payable_currency")
    payable_currency: str
    net_bdt: Optional[Money] = Field(default=None, description="bKash: BDT the receiver nets")
    fee_bdt: Optional[Money] = Field(default=None, description="bKash: 2% cash-out fee")
    total_bdt: Optional[Money] = Field(default=None, description="bKash: net plus fee")


def quote_top_up(
    amount: Number,
    channel: Channel = Channel.BANK,
    direction: Direction = Direction.BDT_TO_MVR,
    bank_rate_per_lakh: Number = DEFAULT_BANK_RATE_PER_LAKH,
    bkash_rate_per_5k: Number = DEFAULT_BKASH_RATE_PER_5K,
    target_currency: str = "BDT",
) -> TopUpQuote:
    """
    Price a top-up.

    `target_currency` only applies to the BANK channel; bKash pays BDT.
    A non-positive rate in the MVR-to-target direction yields 0.
    """
    amount = as_decimal(amount)
    bank_rate = as_decimal(bank_rate_per_lakh)
    bkash_rate = as_decimal(bkash_rate_per_5k)
    target = (target_currency.strip().upper() or "BDT") if channel == Channel.BANK else "BDT"

    if direction == Direction.BDT_TO_MVR:
        if channel == Channel.BANK:
            return TopUpQuote(
                channel=channel,
                direction=direction,
                target_currency=target,
                payable=amount / LAKH * bank_rate,
                payable_currency="MVR",
            )
        fee = amount * BKASH_FEE_RATE
        return TopUpQuote(
            channel=channel,
            direction=direction,
            target_currency=target,
            payable=amount / BKASH_UNIT * bkash_rate,
            payable_currency="MVR",
            net_bdt=amount,
            fee_bdt=fee,
            total_bdt=amount + fee,
        )

    if channel == Channel.BANK:
        payable = amount / bank_rate * LAKH if bank_rate > 0 else ZERO
        return TopUpQuote(
            channel=channel,
            direction=direction,
            target_currency=target,
            payable=payable,
            payable_currency=target,
        )

    net = amount / bkash_rate * BKASH_UNIT if bkash_rate > 0 else ZERO
    fee = net * BKASH_FEE_RATE
    return TopUpQuote(
        channel=channel,
        direction=direction,
        target_currency=target,
        payable=net + fee,
        payable_currency=target,
        net_bdt=net,
        fee_bdt=fee,
        total_bdt=net + fee,
    )
