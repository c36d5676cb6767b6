"""
Entity Stores

Plain keyed collections for funds, categories and the list of available
currencies. Ids are generated here; updates are partial merges that go
back through model validation.

The one business rule at this layer: system-default funds can't be
deleted.
"""

from typing import Any, Generic, Iterable, Optional, TypeVar
from uuid import uuid4

import structlog
from pydantic import BaseModel

from fundledger.models.finance import (
    CURRENCY_MAX_LENGTH,
    CURRENCY_MIN_LENGTH,
    Category,
    Fund,
    TransactionType,
)


logger = structlog.get_logger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)


class ProtectedFundError(Exception):
    """Attempted to delete a system-default fund."""

    def __init__(self, fund_id: str):
        self.fund_id = fund_id
        super().__init__(f"Fund {fund_id} is a system default and cannot be deleted")


class _KeyedStore(Generic[EntityT]):
    """Insertion-ordered id -> entity map."""

    model: type[EntityT]
    id_prefix: str
    id_length: int

    def __init__(self, items: Iterable[EntityT] = ()):
        self._items: dict[str, EntityT] = {}
        self.load(items)

    def load(self, items: Iterable[EntityT]) -> None:
        self._items = {item.id: item for item in items}

    def all(self) -> list[EntityT]:
        return [item.model_copy(deep=True) for item in self._items.values()]

    def get(self, item_id: str) -> Optional[EntityT]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item is not None else None

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def _new_id(self) -> str:
        while True:
            candidate = f"{self.id_prefix}-{uuid4().hex[:self.id_length]}"
            if candidate not in self._items:
                return candidate

    def add(self, **fields: Any) -> EntityT:
        """Create a custom entity with a fresh id."""
        fields.pop("id", None)
        fields.pop("is_custom", None)
        item = self.model(id=self._new_id(), is_custom=True, **fields)
        self._items[item.id] = item
        logger.info("entity_added", entity=self.model.__name__, entity_id=item.id)
        return item.model_copy(deep=True)

    def update(self, item_id: str, **changes: Any) -> Optional[EntityT]:
        """
        Merge `changes` into an existing entity.

        The id can't change. Returns None when the id is unknown.
        Raises pydantic.ValidationError if the merged entity is invalid,
        in which case the stored entity is left as it was.
        """
        current = self._items.get(item_id)
        if current is None:
            return None

        changes.pop("id", None)
        merged = self.model.model_validate({**current.model_dump(), **changes})
        self._items[item_id] = merged
        logger.info("entity_updated", entity=self.model.__name__, entity_id=item_id, fields=sorted(changes))
        return merged.model_copy(deep=True)

    def delete(self, item_id: str) -> Optional[EntityT]:
        removed = self._items.pop(item_id, None)
        if removed is not None:
            logger.info("entity_deleted", entity=self.model.__name__, entity_id=item_id)
        return removed


class FundStore(_KeyedStore[Fund]):
    model = Fund
    id_prefix = "f"
    id_length = 8

    def delete(self, item_id: str) -> Optional[Fund]:
        fund = self._items.get(item_id)
        if fund is not None and fund.is_protected:
            raise ProtectedFundError(item_id)
        return super().delete(item_id)


class CategoryStore(_KeyedStore[Category]):
    model = Category
    id_prefix = "c"
    id_length = 5

    def of_type(self, category_type: TransactionType) -> list[Category]:
        return [c for c in self._items.values() if c.type == category_type]


class CurrencyList:
    """Ordered set of currency codes the user works with."""

    def __init__(self, codes: Iterable[str] = ()):
        self._codes: list[str] = []
        self.load(codes)

    def load(self, codes: Iterable[str]) -> None:
        self._codes = list(dict.fromkeys(code.strip().upper() for code in codes))

    def all(self) -> list[str]:
        return list(self._codes)

    def __contains__(self, code: str) -> bool:
        return code.strip().upper() in self._codes

    def add(self, code: str) -> Optional[str]:
        """
        Add a currency code.

        Returns the normalized code, or None when its length is outside
        what a currency code allows or it is already present.
        """
        clean = code.strip().upper()
        if not CURRENCY_MIN_LENGTH <= len(clean) <= CURRENCY_MAX_LENGTH or clean in self._codes:
            return None
        self._codes.append(clean)
        return clean

    def remove(self, code: str) -> Optional[str]:
        """Remove a code. The last remaining currency is never removed."""
        clean = code.strip().upper()
        if len(self._codes) <= 1 or clean not in self._codes:
            return None
        self._codes.remove(clean)
        return clean
