"""Tests for the remittance and top-up calculators."""

import pytest
from decimal import Decimal

from fundledger.calculators import (
    COUNTRY_CONFIG,
    WU_FEE_RULES,
    BonusType,
    Channel,
    Direction,
    EntryCurrency,
    UnknownCountryError,
    corridor_fee,
    fee_for_total_in_hand,
    quote_manual,
    quote_other_bank,
    quote_top_up,
    quote_total_in_hand,
    quote_western_union,
    usd_gross,
)


class TestTotalInHandFee:
    """Tests for the Western Union tier walk."""

    def test_principal_inside_first_tier(self):
        """504 in hand leaves a 500 principal at the 4 USD tier."""
        assert fee_for_total_in_hand(504, WU_FEE_RULES["SOUTH_ASIA_A"]) == 4

    def test_principal_below_next_tier_minimum(self):
        """505 in hand falls between tiers and takes the next tier's fee."""
        assert fee_for_total_in_hand(505, WU_FEE_RULES["SOUTH_ASIA_A"]) == 6

    def test_beyond_last_tier(self):
        """Amounts past the table pay the last tier's fee."""
        assert fee_for_total_in_hand(5000, WU_FEE_RULES["SOUTH_ASIA_A"]) == 8
        assert fee_for_total_in_hand(9999, WU_FEE_RULES["GLOBAL"]) == 152

    def test_non_positive_total_has_no_fee(self):
        """Nothing in hand means no fee."""
        assert fee_for_total_in_hand(0, WU_FEE_RULES["INDIA"]) == 0
        assert fee_for_total_in_hand("-3", WU_FEE_RULES["INDIA"]) == 0

    def test_country_table(self):
        """Countries map to a fee table and a receive currency."""
        assert COUNTRY_CONFIG["Nepal"].currency == "NPR"
        assert COUNTRY_CONFIG["China"].rules == "EAST_ASIA"
        assert COUNTRY_CONFIG["Other Countries"].rules == "GLOBAL"


class TestRemittanceQuotes:
    """Tests for the total-in-hand and manual calculators."""

    def test_quote_without_bonus(self):
        """Bonus is off by default."""
        quote = quote_total_in_hand("Bangladesh", 504, 120)
        assert quote.currency == "BDT"
        assert quote.fee == 4
        assert quote.net_principal == 500
        assert quote.base_amount == 60000
        assert quote.bonus_amount == 0
        assert quote.total_amount == 60000

    def test_quote_with_bonus(self):
        """The bank incentive is a percentage of the base amount."""
        quote = quote_total_in_hand("Bangladesh", 504, 120, bonus_pct="2.5", bonus_type=BonusType.ADD)
        assert quote.bonus_amount == 1500
        assert quote.total_amount == 61500

    def test_net_never_negative(self):
        """A fee larger than the cash leaves nothing to send."""
        quote = quote_manual(3, 120, 5)
        assert quote.net_principal == 0
        assert quote.total_amount == 0

    def test_unknown_country(self):
        """Countries without a table are refused."""
        with pytest.raises(UnknownCountryError):
            quote_total_in_hand("Atlantis", 100, 1)

    def test_manual_quote(self):
        """Manual quotes use the fee the user enters."""
        quote = quote_manual(1000, 120, 5, bonus_type=BonusType.ADD, currency="inr")
        assert quote.currency == "INR"
        assert quote.net_principal == 995
        assert quote.base_amount == 119400
        assert quote.bonus_amount == Decimal("2985")
        assert quote.total_amount == Decimal("122385")


class TestRemittanceDashboard:
    """Tests for the USD-gross dashboard calculators."""

    def test_usd_gross_conversions(self):
        """Entry amounts are converted to USD through the reference rates."""
        assert usd_gross(50, EntryCurrency.USD, "20.20", "125.46") == 50
        assert usd_gross("2020", EntryCurrency.MVR, "20.20", "125.46") == 100
        assert usd_gross(1000, EntryCurrency.BDT, "20.20", 0) == 0

    def test_corridor_fee_lookup(self):
        """The tier containing the gross applies, else the last one."""
        assert corridor_fee(300, "Sri Lanka/India") == 5
        assert corridor_fee("500.5", "Bangladesh/Nepal") == 8
        assert corridor_fee(700, "Nowhere") == 6

    def test_western_union_quote(self):
        """Fee, incentive and MVR cost for a USD entry."""
        quote = quote_western_union(600, EntryCurrency.USD, "Sri Lanka/India", usd_bdt=100)
        assert quote.fee == 8
        assert quote.usd_net == 592
        assert quote.base_bdt == 59200
        assert quote.incentive_bdt == 1480
        assert quote.final_bdt == 60680
        assert quote.total_paid_mvr == Decimal("12120")

    def test_other_bank_quote(self):
        """Manual bank quotes add a flat BDT adjustment instead of an incentive."""
        quote = quote_other_bank(1000, EntryCurrency.BDT, bdt_rate=125, fee_usd=2, adjustment_bdt=50)
        assert quote.usd_gross == 8
        assert quote.usd_net == 6
        assert quote.base_bdt == 750
        assert quote.final_bdt == 800
        assert quote.total_paid_mvr == Decimal("161.6")


class TestTopUpAssistant:
    """Tests for bank and bKash top-up pricing."""

    def test_bank_target_to_mvr(self):
        """Bank rate is MVR per lakh of the target currency."""
        quote = quote_top_up(50000, Channel.BANK, Direction.BDT_TO_MVR)
        assert quote.payable == 8160
        assert quote.payable_currency == "MVR"

    def test_bkash_target_to_mvr(self):
        """bKash adds a 2% fee on the BDT side."""
        quote = quote_top_up(5000, Channel.BKASH, Direction.BDT_TO_MVR)
        assert quote.payable == 835
        assert quote.fee_bdt == 100
        assert quote.total_bdt == 5100

    def test_bank_mvr_to_target(self):
        """MVR on hand converts back per lakh, in the configured currency."""
        quote = quote_top_up(8160, Channel.BANK, Direction.MVR_TO_BDT, target_currency="inr")
        assert quote.payable == 50000
        assert quote.payable_currency == "INR"

    def test_bkash_mvr_to_bdt(self):
        """bKash always pays BDT, net plus fee."""
        quote = quote_top_up(835, Channel.BKASH, Direction.MVR_TO_BDT, target_currency="INR")
        assert quote.target_currency == "BDT"
        assert quote.net_bdt == 5000
        assert quote.fee_bdt == 100
        assert quote.payable == 5100

    def test_zero_rate_yields_zero(self):
        """A zero rate can't be divided by; the result is 0."""
        quote = quote_top_up(100, Channel.BANK, Direction.MVR_TO_BDT, bank_rate_per_lakh=0)
        assert quote.payable == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
