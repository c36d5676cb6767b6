"""Tests for entity stores, seed data and transaction validation."""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from fundledger.models.finance import Category, Fund, TransactionDraft, TransactionType
from fundledger.stores import (
    CategoryStore,
    CurrencyList,
    FundStore,
    ProtectedFundError,
    default_categories,
    default_funds,
    default_snapshot,
)
from fundledger.validation import (
    TransactionRejectedError,
    TransactionValidator,
    get_user_friendly_summary,
)


@pytest.fixture
def funds():
    return FundStore(default_funds() + [
        Fund(id="f-bank", name="Bank", supported_currencies=["BDT", "USD"]),
    ])


@pytest.fixture
def categories():
    return CategoryStore(default_categories())


@pytest.fixture
def validator(funds, categories):
    return TransactionValidator(funds, categories, CurrencyList(["BDT", "USD", "MVR"]))


class TestDefaults:
    """Tests for first-run seed data."""

    def test_default_fund_is_protected_cash(self):
        """The seeded Cash fund is the protected system default."""
        (cash,) = default_funds()
        assert cash.id == "f-1"
        assert cash.is_system_default
        assert cash.supported_currencies == ["BDT", "USD", "MVR"]

    def test_default_categories(self):
        """Four income and five expense categories are seeded."""
        cats = default_categories()
        assert len([c for c in cats if c.type == TransactionType.INCOME]) == 4
        assert len([c for c in cats if c.type == TransactionType.EXPENSE]) == 5
        assert not any(c.is_custom for c in cats)

    def test_default_snapshot(self):
        """A fresh snapshot has seeds, default rates and no money."""
        snapshot = default_snapshot()
        assert snapshot.transactions == []
        assert snapshot.balances == []
        assert snapshot.available_currencies == ["BDT", "USD", "MVR", "EUR"]
        assert snapshot.exchange_rates["USD"] == Decimal("110")
        assert snapshot.exchange_rates["MVR"] == Decimal("7.14")


class TestFundStore:
    """Tests for fund CRUD."""

    def test_add_generates_custom_fund(self, funds):
        """Added funds get an f- id and the custom flag."""
        fund = funds.add(name="Wallet", supported_currencies=["MVR"], id="ignored")
        assert fund.id.startswith("f-") and len(fund.id) == 10
        assert fund.is_custom
        assert funds.get(fund.id) == fund

    def test_update_merges_partially(self, funds):
        """Updates keep untouched fields and the id."""
        updated = funds.update("f-bank", name="Main Bank", id="f-other")
        assert updated.id == "f-bank"
        assert updated.name == "Main Bank"
        assert updated.supported_currencies == ["BDT", "USD"]

    def test_update_unknown_is_noop(self, funds):
        """Updating an unknown id returns None."""
        assert funds.update("f-404", name="x") is None

    def test_invalid_update_leaves_fund(self, funds):
        """A merge that fails validation changes nothing."""
        with pytest.raises(ValidationError):
            funds.update("f-bank", name="")
        assert funds.get("f-bank").name == "Bank"

    def test_delete_protected_fund_refused(self, funds):
        """The system fund can't be deleted."""
        with pytest.raises(ProtectedFundError):
            funds.delete("f-1")
        assert "f-1" in funds

    def test_returned_funds_are_copies(self, funds):
        """Editing a returned fund doesn't change the stored one."""
        funds.get("f-bank").supported_currencies.append("EUR")
        funds.all()[0].name = "Renamed"
        assert funds.get("f-bank").supported_currencies == ["BDT", "USD"]
        assert funds.get("f-1").name == "Cash"

    def test_delete_custom_fund(self, funds):
        """Ordinary funds are removed."""
        assert funds.delete("f-bank").name == "Bank"
        assert "f-bank" not in funds
        assert funds.delete("f-bank") is None


class TestCategoryStore:
    """Tests for category CRUD."""

    def test_add_category(self, categories):
        """Added categories get a c- id."""
        cat = categories.add(name="Rent", type=TransactionType.EXPENSE, icon="fa-house")
        assert cat.id.startswith("c-") and len(cat.id) == 7
        assert cat.is_custom

    def test_of_type(self, categories):
        """Categories can be listed by type."""
        assert all(c.type == TransactionType.INCOME for c in categories.of_type(TransactionType.INCOME))

    def test_delete_is_unrestricted(self, categories):
        """Even seeded categories can be deleted."""
        assert categories.delete("cat-exp-1") is not None
        assert len(categories) == 8


class TestCurrencyList:
    """Tests for the available-currency list."""

    def test_add_normalizes(self):
        """Codes are trimmed and upper-cased."""
        currencies = CurrencyList(["BDT"])
        assert currencies.add("  gbp ") == "GBP"
        assert currencies.all() == ["BDT", "GBP"]

    def test_add_rejects_short_and_duplicate(self):
        """One-letter codes and duplicates are ignored."""
        currencies = CurrencyList(["BDT"])
        assert currencies.add("x") is None
        assert currencies.add("bdt") is None
        assert currencies.all() == ["BDT"]

    def test_add_rejects_overlong_code(self):
        """Codes longer than a currency code allows are ignored."""
        currencies = CurrencyList(["BDT"])
        assert currencies.add("ABCDEFGHIJK") is None
        assert currencies.add("ABCDEFGHIJ") == "ABCDEFGHIJ"
        assert currencies.all() == ["BDT", "ABCDEFGHIJ"]

    def test_remove_keeps_last_currency(self):
        """The last remaining currency can't be removed."""
        currencies = CurrencyList(["BDT", "USD"])
        assert currencies.remove("usd") == "USD"
        assert currencies.remove("BDT") is None
        assert currencies.all() == ["BDT"]


class TestTransactionValidator:
    """Tests for caller-level transaction validation."""

    def test_valid_expense(self, validator):
        """A well-formed expense passes."""
        draft = validator.check({
            "type": "EXPENSE",
            "amount": "250",
            "currency": "BDT",
            "categoryId": "cat-exp-1",
            "sourceFundId": "f-1",
        })
        assert isinstance(draft, TransactionDraft)

    def test_non_positive_amount_rejected(self, validator):
        """Zero and negative amounts never reach the ledger."""
        with pytest.raises(TransactionRejectedError) as exc:
            validator.check({
                "type": "INCOME",
                "amount": "-5",
                "currency": "BDT",
                "categoryId": "cat-inc-1",
                "sourceFundId": "f-1",
            })
        assert exc.value.result.issues[0].field == "amount"

    def test_incomplete_transfer_rejected(self, validator):
        """Transfers need a target fund, target currency and rate."""
        draft = TransactionDraft(
            type=TransactionType.TRANSFER,
            amount=Decimal("10"),
            currency="USD",
            source_fund_id="f-1",
            target_fund_id="f-bank",
        )
        result = validator.validate(draft)
        assert not result.is_valid
        assert {i.field for i in result.issues if i.severity == "error"} == {
            "target_currency", "exchange_rate",
        }

    def test_same_cell_transfer_rejected(self, validator):
        """Source and target must differ unless the currencies do."""
        base = dict(
            type=TransactionType.TRANSFER,
            amount=Decimal("10"),
            currency="BDT",
            source_fund_id="f-1",
            target_fund_id="f-1",
            exchange_rate=Decimal("1"),
        )
        assert not validator.validate(TransactionDraft(target_currency="BDT", **base)).is_valid
        assert validator.validate(TransactionDraft(target_currency="USD", **base)).is_valid

    def test_category_type_mismatch(self, validator):
        """An income can't use an expense category."""
        draft = TransactionDraft(
            type=TransactionType.INCOME,
            amount=Decimal("10"),
            currency="BDT",
            category_id="cat-exp-1",
            source_fund_id="f-1",
        )
        issues = validator.validate(draft).issues
        assert [i.issue_type for i in issues] == ["type_mismatch"]

    def test_unknown_fund_and_category(self, validator):
        """References must exist."""
        draft = TransactionDraft(
            type=TransactionType.EXPENSE,
            amount=Decimal("10"),
            currency="BDT",
            category_id="c-gone",
            source_fund_id="f-gone",
        )
        result = validator.validate(draft)
        assert result.error_count == 2

    def test_unusual_currency_is_warning(self, validator):
        """A currency outside the fund's list warns but doesn't block."""
        draft = TransactionDraft(
            type=TransactionType.EXPENSE,
            amount=Decimal("10"),
            currency="MVR",
            category_id="cat-exp-1",
            source_fund_id="f-bank",
        )
        result = validator.validate(draft)
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_user_friendly_summary(self, validator):
        """The summary lists blocking problems."""
        _, result = validator.parse({"type": "EXPENSE", "amount": 0, "currency": "BDT", "sourceFundId": "f-1"})
        summary = get_user_friendly_summary(result)
        assert summary.startswith("This transaction can't be saved:")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
