"""
Transaction Validation

Caller-level checks that run before a draft reaches the lifecycle
manager. The ledger engine trusts whatever it is given, so anything that
would put a malformed record into the ledger is stopped here.

Two kinds of finding:
- errors block the transaction (unknown fund, incomplete transfer,
  category of the wrong type, ...)
- warnings are reported but don't block (currency the fund doesn't
  normally hold, currency not in the user's list)

Validation never fixes anything. It reports.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError

from fundledger.models.finance import (
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from fundledger.stores.entities import CategoryStore, CurrencyList, FundStore


class TransactionRejectedError(Exception):
    """A draft failed validation; nothing was recorded."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Transaction rejected: {messages}")


class TransactionValidator:
    """Validates drafts against the current funds, categories and currencies."""

    def __init__(
        self,
        funds: FundStore,
        categories: CategoryStore,
        currencies: CurrencyList,
    ):
        self._funds = funds
        self._categories = categories
        self._currencies = currencies

    def parse(
        self,
        data: Union[TransactionDraft, dict[str, Any]],
    ) -> tuple[Optional[TransactionDraft], ValidationResult]:
        """
        Turn caller input into a draft.

        Schema problems (non-positive amount, unknown type, target fields
        on a non-transfer) come back as error issues instead of raising.
        """
        if isinstance(data, TransactionDraft):
            return data, ValidationResult()

        try:
            return TransactionDraft.model_validate(data), ValidationResult()
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "transaction",
                    issue_type=err["type"],
                    message=err["msg"],
                    severity="error",
                )
                for err in e.errors()
            ]
            return None, ValidationResult(issues=issues)

    def _check_fund(
        self,
        field: str,
        fund_id: Optional[str],
        currency: Optional[str],
        issues: list[ValidationIssue],
    ) -> None:
        if fund_id is None:
            return
        fund = self._funds.get(fund_id)
        if fund is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="unknown_reference",
                message=f"Fund {fund_id} does not exist",
                severity="error",
            ))
            return

        if currency and fund.supported_currencies and currency not in fund.supported_currencies:
            issues.append(ValidationIssue(
                field=field,
                issue_type="unsupported_currency",
                message=f"Fund {fund.name} does not normally hold {currency}",
                severity="warning",
            ))

    def _check_transfer(self, draft: TransactionDraft, issues: list[ValidationIssue]) -> None:
        required = {
            "target_fund_id": "a target fund",
            "target_currency": "a target currency",
            "exchange_rate": "an exchange rate or a received amount",
        }
        for field, what in required.items():
            if getattr(draft, field) is None:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"Transfers require {what}",
                    severity="error",
                ))

        self._check_fund("target_fund_id", draft.target_fund_id, draft.target_currency, issues)

        if (
            draft.target_fund_id == draft.source_fund_id
            and draft.target_currency == draft.currency
        ):
            issues.append(ValidationIssue(
                field="target_fund_id",
                issue_type="invalid_value",
                message="Source and target must be different",
                severity="error",
            ))

    def _check_category(self, draft: TransactionDraft, issues: list[ValidationIssue]) -> None:
        if not draft.category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message=f"{draft.type.value.capitalize()} transactions require a category",
                severity="error",
            ))
            return

        category = self._categories.get(draft.category_id)
        if category is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Category {draft.category_id} does not exist",
                severity="error",
            ))
        elif category.type != draft.type:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="type_mismatch",
                message=(
                    f"Category {category.name} is for {category.type.value.lower()}, "
                    f"not {draft.type.value.lower()}"
                ),
                severity="error",
            ))

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        """Run every check against a parsed draft."""
        issues: list[ValidationIssue] = []

        self._check_fund("source_fund_id", draft.source_fund_id, draft.currency, issues)

        if draft.type == TransactionType.TRANSFER:
            self._check_transfer(draft, issues)
        else:
            self._check_category(draft, issues)

        for field, currency in (("currency", draft.currency), ("target_currency", draft.target_currency)):
            if currency and currency not in self._currencies:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="unlisted_currency",
                    message=f"{currency} is not in your currency list",
                    severity="warning",
                ))

        return ValidationResult(issues=issues)

    def check(self, data: Union[TransactionDraft, dict[str, Any]]) -> TransactionDraft:
        """
        Parse and validate in one go.

        Returns the draft, or raises TransactionRejectedError carrying
        every issue found.
        """
        draft, result = self.parse(data)
        if draft is not None:
            result = self.validate(draft)
        if result.has_errors:
            raise TransactionRejectedError(result)
        return draft


def get_user_friendly_summary(result: ValidationResult) -> str:
    """One message listing what needs fixing and what to double-check."""
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []
    errors = [i for i in result.issues if i.severity == "error"]
    if errors:
        lines.append("This transaction can't be saved:")
        lines.extend(f"  - {issue.message}" for issue in errors)

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("Please verify:")
        lines.extend(f"  - {warning}" for warning in result.warnings)

    return "\n".join(lines)
