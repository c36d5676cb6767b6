"""
Core Data Models for FundLedger

These models define the schemas for everything the ledger stores:
funds, categories, transactions, balance cells and the snapshot that
persistence and backups move around.

Money is always Decimal. Serialized JSON uses camelCase keys and plain
numbers so backups stay compatible with files written by earlier versions
of the app.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    SerializationInfo,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# SHARED VOCABULARY
# =============================================================================

CURRENCY_MIN_LENGTH = 2
CURRENCY_MAX_LENGTH = 10

Currency = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        to_upper=True,
        min_length=CURRENCY_MIN_LENGTH,
        max_length=CURRENCY_MAX_LENGTH,
    ),
]

# Serialization context flag: write money as Decimal text instead of a float
EXACT_MONEY = "exact_money"


def _money_to_json(value: Decimal, info: SerializationInfo) -> Union[float, str]:
    if info.context and info.context.get(EXACT_MONEY):
        return str(value)
    return float(value)


Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, when_used="json"),
]

ExchangeRates = dict[Currency, Money]

# Category id carried by every transfer
TRANSFER_CATEGORY_ID = "transfer"

# The seeded "Cash" fund; never deletable
SYSTEM_FUND_ID = "f-1"


class TransactionType(str, Enum):
    """Kinds of financial event."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class Language(str, Enum):
    """Interface languages a snapshot may record."""
    EN = "en"
    BN = "bn"
    ES = "es"
    AR = "ar"
    FR = "fr"
    HI = "hi"
    PT = "pt"
    ZH = "zh"
    JA = "ja"
    DE = "de"
    UR = "ur"
    DV = "dv"
    NE = "ne"
    SI = "si"


class LedgerModel(BaseModel):
    """Base for all persisted models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# ACCOUNTS AND LABELS
# =============================================================================

class Fund(LedgerModel):
    """
    An account bucket holding balances in one or more currencies.

    System-default funds (the seeded Cash fund) cannot be deleted.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    supported_currencies: list[Currency] = Field(
        default_factory=list,
        description="Currencies this fund can hold, in display order"
    )
    is_system_default: bool = False
    is_custom: bool = False

    @field_validator("supported_currencies")
    @classmethod
    def dedupe_currencies(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def is_protected(self) -> bool:
        return self.is_system_default or self.id == SYSTEM_FUND_ID


class Category(LedgerModel):
    """A label for income or expense transactions. Never TRANSFER."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon: str = Field(default="fa-tag", max_length=100)
    is_custom: bool = False

    @field_validator("type")
    @classmethod
    def reject_transfer(cls, v: TransactionType) -> TransactionType:
        if v == TransactionType.TRANSFER:
            raise ValueError("Categories are either INCOME or EXPENSE")
        return v


# =============================================================================
# TRANSACTIONS
# =============================================================================

class _TransactionFields(LedgerModel):
    """Fields shared by a committed transaction and a draft."""

    type: TransactionType
    currency: Currency
    category_id: Optional[str] = Field(
        default=None,
        description="Category id; transfers use the 'transfer' sentinel"
    )
    source_fund_id: str = Field(..., min_length=1)
    transaction_date: date = Field(
        default_factory=date.today,
        alias="date",
        description="Calendar date of the event"
    )
    note: str = Field(default="", max_length=1000)
    proof_image: Optional[str] = Field(
        default=None,
        description="Reference to a receipt image (URL or data URI)"
    )

    # Transfer-only fields
    target_fund_id: Optional[str] = None
    target_currency: Optional[Currency] = None
    exchange_rate: Optional[Money] = Field(default=None, gt=0)
    target_amount: Optional[Money] = Field(
        default=None,
        gt=0,
        description="Amount received at the target; the exchange rate is derived from it"
    )

    # "Send to bank" commitment marker, carried through unchanged
    is_commitment: Optional[bool] = None

    @model_validator(mode="after")
    def validate_transfer_fields(self):
        """Target fields belong to transfers only."""
        if self.type == TransactionType.TRANSFER:
            if self.category_id is None:
                self.category_id = TRANSFER_CATEGORY_ID
            if self.target_amount is not None and self.amount > 0:
                self.exchange_rate = self.target_amount / self.amount
        elif any(
            value is not None
            for value in (
                self.target_fund_id,
                self.target_currency,
                self.exchange_rate,
                self.target_amount,
            )
        ):
            raise ValueError(
                "Only transfers may carry target fields or an exchange rate"
            )
        return self

    @property
    def has_transfer_target(self) -> bool:
        """True when target fund, target currency and exchange rate are all present."""
        return (
            self.target_fund_id is not None
            and self.target_currency is not None
            and self.exchange_rate is not None
        )

    @property
    def credited_amount(self) -> Optional[Decimal]:
        """What a complete transfer credits at the target."""
        if not self.has_transfer_target:
            return None
        if self.target_amount is not None:
            return self.target_amount
        return self.amount * self.exchange_rate


class TransactionDraft(_TransactionFields):
    """
    A transaction the caller wants to record.

    Amount must be strictly positive; the id is assigned on commit.
    """

    amount: Money = Field(..., gt=0, description="Magnitude moved at the source")

    def commit(self, transaction_id: str) -> "Transaction":
        return Transaction(id=transaction_id, **self.model_dump())


class Transaction(_TransactionFields):
    """
    A committed financial event.

    Immutable once committed except for the soft-delete pair
    (is_deleted, deleted_at), which only the lifecycle manager touches.
    """

    id: str = Field(..., min_length=1)
    amount: Money = Field(..., ge=0, description="Magnitude moved at the source")

    is_deleted: Optional[bool] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    @property
    def is_trashed(self) -> bool:
        return bool(self.is_deleted)


# =============================================================================
# BALANCES AND SNAPSHOTS
# =============================================================================

class Balance(LedgerModel):
    """Signed running amount for one (fund, currency) pair."""

    fund_id: str = Field(..., min_length=1)
    currency: Currency
    amount: Money = Decimal("0")

    @property
    def key(self) -> tuple[str, str]:
        return self.fund_id, self.currency


class LedgerSnapshot(LedgerModel):
    """Everything persisted for one user key."""

    funds: list[Fund] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    balances: list[Balance] = Field(default_factory=list)
    exchange_rates: ExchangeRates = Field(default_factory=dict)
    available_currencies: list[Currency] = Field(default_factory=list)
    language: Language = Language.EN

    def to_json(self) -> str:
        """Persisted form. Money is written as Decimal text so reloads are exact."""
        return self.model_dump_json(by_alias=True, indent=2, context={EXACT_MONEY: True})

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, context={EXACT_MONEY: True})


class BackupFile(LedgerModel):
    """
    Manual export/import file.

    Every key is optional on import: only the keys present overwrite
    the current state.
    """
    model_config = ConfigDict(extra="ignore")

    balances: Optional[list[Balance]] = None
    transactions: Optional[list[Transaction]] = None
    exchange_rates: Optional[ExchangeRates] = None
    funds: Optional[list[Fund]] = None
    categories: Optional[list[Category]] = None
    available_currencies: Optional[list[Currency]] = None
    language: Optional[Language] = None

    exported_at: Optional[datetime] = None
    version: Optional[str] = None

    @field_validator("available_currencies")
    @classmethod
    def require_one_currency(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is not None and not v:
            raise ValueError("A backup must list at least one currency")
        return v

    @property
    def present_keys(self) -> list[str]:
        """Snapshot keys this file carries."""
        return [
            name for name in LedgerSnapshot.model_fields
            if getattr(self, name) is not None
        ]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single reason a transaction can't be recorded as given."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'missing', 'unknown_reference')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Errors block the transaction, warnings don't"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a transaction draft."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def as_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]
