"""
Tests for the balance ledger engine and the transaction lifecycle.

The central property: after any sequence of create/trash/restore/purge,
every balance cell equals the summed effect of the active transactions
touching it.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

from fundledger.ledger import COMMIT, REVERSE, BalanceLedger, Leg, TransactionLifecycle
from fundledger.models.finance import (
    Balance,
    Transaction,
    TransactionDraft,
    TransactionType,
)


FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_tx(tx_id="tx-1", **overrides) -> Transaction:
    fields = dict(
        id=tx_id,
        type=TransactionType.INCOME,
        amount=Decimal("100"),
        currency="BDT",
        category_id="cat-inc-1",
        source_fund_id="f-1",
    )
    fields.update(overrides)
    return Transaction(**fields)


def make_transfer(tx_id="tx-t", **overrides) -> Transaction:
    fields = dict(
        type=TransactionType.TRANSFER,
        amount=Decimal("50"),
        currency="USD",
        source_fund_id="f-1",
        target_fund_id="f-2",
        target_currency="BDT",
        exchange_rate=Decimal("110"),
    )
    fields.update(overrides)
    return make_tx(tx_id, category_id=None, **fields)


def draft(**overrides) -> TransactionDraft:
    fields = dict(
        type=TransactionType.INCOME,
        amount=Decimal("100"),
        currency="BDT",
        category_id="cat-inc-1",
        source_fund_id="f-1",
    )
    fields.update(overrides)
    return TransactionDraft(**fields)


def assert_invariant(ledger: BalanceLedger, lifecycle: TransactionLifecycle) -> None:
    """Stored balances equal the balances recomputed from active transactions."""
    assert ledger.drift(lifecycle.transactions) == []


@pytest.fixture
def ledger():
    return BalanceLedger()


@pytest.fixture
def lifecycle(ledger):
    ids = count(1)
    return TransactionLifecycle(
        ledger,
        id_factory=lambda: f"tx-{next(ids)}",
        clock=lambda: FIXED_NOW,
    )


class TestEffects:
    """Tests for the legs a transaction produces."""

    def test_income_credits_source(self):
        """Income adds the amount to the source cell."""
        assert BalanceLedger.effects(make_tx()) == [Leg("f-1", "BDT", Decimal("100"))]

    def test_expense_debits_source(self):
        """Expense subtracts the amount from the source cell."""
        tx = make_tx(type=TransactionType.EXPENSE, category_id="cat-exp-1")
        assert BalanceLedger.effects(tx) == [Leg("f-1", "BDT", Decimal("-100"))]

    def test_transfer_has_two_legs(self):
        """A complete transfer debits the source and credits amount * rate at the target."""
        assert BalanceLedger.effects(make_transfer()) == [
            Leg("f-1", "USD", Decimal("-50")),
            Leg("f-2", "BDT", Decimal("5500")),
        ]

    def test_incomplete_transfer_skips_target_leg(self):
        """A transfer missing its exchange rate only debits the source."""
        tx = make_transfer(exchange_rate=None)
        assert BalanceLedger.effects(tx) == [Leg("f-1", "USD", Decimal("-50"))]


class TestBalanceLedger:
    """Tests for applying and reversing effects."""

    def test_apply_creates_missing_cell(self, ledger):
        """Absent cells are created at the adjustment."""
        ledger.apply_effect(make_tx(), COMMIT)
        assert ledger.get("f-1", "BDT") == Decimal("100")
        assert len(ledger) == 1

    def test_apply_adds_to_existing_cell(self):
        """Existing cells are adjusted in place."""
        ledger = BalanceLedger([Balance(fund_id="f-1", currency="BDT", amount=Decimal("40"))])
        ledger.apply_effect(make_tx(), COMMIT)
        assert ledger.get("f-1", "BDT") == Decimal("140")
        assert len(ledger) == 1

    def test_apply_then_reverse_is_identity(self, ledger):
        """Reversing an applied transfer restores both cells exactly and keeps them."""
        tx = make_transfer(amount=Decimal("33.33"), exchange_rate=Decimal("7.14"))
        ledger.apply_effect(tx, COMMIT)
        ledger.apply_effect(tx, REVERSE)
        assert ledger.get("f-1", "USD") == 0
        assert ledger.get("f-2", "BDT") == 0
        assert ("f-1", "USD") in ledger
        assert ("f-2", "BDT") in ledger

    def test_invalid_sign_rejected(self, ledger):
        """Only +1 and -1 are valid signs."""
        with pytest.raises(ValueError):
            ledger.apply_effect(make_tx(), 2)
        assert len(ledger) == 0

    def test_get_unknown_cell_is_zero(self, ledger):
        """Reading a cell that was never touched gives 0."""
        assert ledger.get("f-404", "EUR") == 0

    def test_balances_are_copies(self, ledger):
        """Mutating a returned balance doesn't touch the ledger."""
        ledger.apply_effect(make_tx(), COMMIT)
        ledger.balances()[0].amount = Decimal("999")
        assert ledger.get("f-1", "BDT") == Decimal("100")

    def test_load_folds_duplicate_cells(self, ledger):
        """Duplicate (fund, currency) records are merged into one cell."""
        ledger.load([
            Balance(fund_id="f-1", currency="BDT", amount=Decimal("10")),
            Balance(fund_id="f-1", currency="BDT", amount=Decimal("5")),
        ])
        assert len(ledger) == 1
        assert ledger.get("f-1", "BDT") == Decimal("15")

    def test_drift_and_rebuild(self):
        """Rebuild corrects stale cells and reports what drifted."""
        active = make_tx("a")
        trashed = make_tx("b", amount=Decimal("7"), is_deleted=True)
        ledger = BalanceLedger([
            Balance(fund_id="f-1", currency="BDT", amount=Decimal("107")),
            Balance(fund_id="f-9", currency="USD", amount=Decimal("0")),
        ])

        drift = ledger.drift([active, trashed])
        assert drift == [{"fund_id": "f-1", "currency": "BDT", "stored": "107", "expected": "100"}]

        assert ledger.rebuild([active, trashed]) == drift
        assert ledger.get("f-1", "BDT") == Decimal("100")
        assert ("f-9", "USD") in ledger
        assert ledger.drift([active, trashed]) == []


class TestTransactionLifecycle:
    """Tests for create/trash/restore/purge."""

    def test_create_inserts_at_head_and_applies(self, ledger, lifecycle):
        """New transactions come first and take effect immediately."""
        first = lifecycle.create(draft())
        second = lifecycle.create(draft(amount=Decimal("5")))
        assert [tx.id for tx in lifecycle.transactions] == [second.id, first.id]
        assert ledger.get("f-1", "BDT") == Decimal("105")
        assert_invariant(ledger, lifecycle)

    def test_create_skips_taken_ids(self, ledger):
        """A colliding id from the factory is never reused."""
        ids = iter(["dup", "dup", "fresh"])
        lifecycle = TransactionLifecycle(ledger, id_factory=lambda: next(ids))
        lifecycle.create(draft())
        assert lifecycle.create(draft()).id == "fresh"

    def test_trash_reverses_and_marks(self, ledger, lifecycle):
        """Trashing removes the effect and stamps deleted_at."""
        tx = lifecycle.create(draft())
        trashed = lifecycle.trash(tx.id)
        assert trashed.is_deleted is True
        assert trashed.deleted_at == FIXED_NOW
        assert ledger.get("f-1", "BDT") == 0
        assert_invariant(ledger, lifecycle)

    def test_trash_is_noop_when_already_trashed(self, ledger, lifecycle):
        """Trashing twice doesn't reverse twice."""
        tx = lifecycle.create(draft())
        lifecycle.trash(tx.id)
        assert lifecycle.trash(tx.id) is None
        assert ledger.get("f-1", "BDT") == 0

    def test_missing_ids_are_noops(self, ledger, lifecycle):
        """Unknown ids never raise."""
        assert lifecycle.trash("nope") is None
        assert lifecycle.restore("nope") is None
        assert lifecycle.purge("nope") is None
        assert len(ledger) == 0

    def test_restore_reapplies_and_clears(self, ledger, lifecycle):
        """Restoring brings the effect back and clears the soft-delete pair."""
        tx = lifecycle.create(draft())
        lifecycle.trash(tx.id)
        restored = lifecycle.restore(tx.id)
        assert restored.is_deleted is False
        assert restored.deleted_at is None
        assert ledger.get("f-1", "BDT") == Decimal("100")
        assert_invariant(ledger, lifecycle)

    def test_restore_active_is_noop(self, ledger, lifecycle):
        """Restoring an active transaction doesn't apply it again."""
        tx = lifecycle.create(draft())
        assert lifecycle.restore(tx.id) is None
        assert ledger.get("f-1", "BDT") == Decimal("100")

    def test_purge_trashed_leaves_balances(self, ledger, lifecycle):
        """Purging a trashed record only removes it; purging again is a no-op."""
        tx = lifecycle.create(draft())
        lifecycle.trash(tx.id)
        before = ledger.balances()

        assert lifecycle.purge(tx.id) is not None
        assert lifecycle.purge(tx.id) is None
        assert ledger.balances() == before
        assert lifecycle.transactions == []

    def test_purge_active_reverses_first(self, ledger, lifecycle):
        """Purging an active transaction doesn't leave its effect behind."""
        tx = lifecycle.create(draft())
        lifecycle.purge(tx.id)
        assert ledger.get("f-1", "BDT") == 0
        assert_invariant(ledger, lifecycle)

    def test_returned_records_are_copies(self, ledger, lifecycle):
        """Flipping is_deleted on a returned record doesn't reach the stored one."""
        tx = lifecycle.create(draft())
        tx.is_deleted = True
        lifecycle.transactions[0].is_deleted = True
        lifecycle.get(tx.id).is_deleted = True

        assert lifecycle.get(tx.id).is_active
        assert lifecycle.trashed() == []
        assert ledger.get("f-1", "BDT") == Decimal("100")
        assert_invariant(ledger, lifecycle)

    def test_purge_all_trashed(self, ledger, lifecycle):
        """Clearing the trash keeps active records and balances."""
        keep = lifecycle.create(draft())
        drop = lifecycle.create(draft(amount=Decimal("3")))
        lifecycle.trash(drop.id)

        purged = lifecycle.purge_all_trashed()
        assert [tx.id for tx in purged] == [drop.id]
        assert [tx.id for tx in lifecycle.transactions] == [keep.id]
        assert ledger.get("f-1", "BDT") == Decimal("100")
        assert_invariant(ledger, lifecycle)


class TestScenarios:
    """End-to-end bookkeeping scenarios."""

    def test_income_then_expense(self, ledger, lifecycle):
        """Income 1000 then expense 250 leaves 750; trashing the expense gives 1000 back."""
        lifecycle.create(draft(amount=Decimal("1000")))
        expense = lifecycle.create(draft(
            type=TransactionType.EXPENSE,
            amount=Decimal("250"),
            category_id="cat-exp-1",
        ))
        assert ledger.get("f-1", "BDT") == Decimal("750")

        lifecycle.trash(expense.id)
        assert ledger.get("f-1", "BDT") == Decimal("1000")
        assert_invariant(ledger, lifecycle)

    def test_cross_currency_transfer_round_trip(self, ledger, lifecycle):
        """Transfer, trash and restore keep both legs in step."""
        lifecycle.create(draft(amount=Decimal("100"), currency="USD"))
        transfer = lifecycle.create(draft(
            type=TransactionType.TRANSFER,
            amount=Decimal("50"),
            currency="USD",
            category_id=None,
            target_fund_id="f-2",
            target_currency="MVR",
            exchange_rate=Decimal("15.42"),
        ))
        assert ledger.get("f-1", "USD") == Decimal("50")
        assert ledger.get("f-2", "MVR") == Decimal("771.00")

        lifecycle.trash(transfer.id)
        assert ledger.get("f-1", "USD") == Decimal("100")
        assert ledger.get("f-2", "MVR") == 0

        lifecycle.restore(transfer.id)
        assert ledger.get("f-2", "MVR") == Decimal("771.00")
        assert_invariant(ledger, lifecycle)

    def test_transfer_credits_received_amount(self, ledger, lifecycle):
        """The target gets exactly what was received, however odd the rate."""
        transfer = lifecycle.create(draft(
            type=TransactionType.TRANSFER,
            amount=Decimal("3"),
            currency="USD",
            category_id=None,
            target_fund_id="f-2",
            target_currency="BDT",
            target_amount=Decimal("1000"),
        ))
        assert ledger.get("f-2", "BDT") == Decimal("1000")
        assert ledger.get("f-1", "USD") == Decimal("-3")

        lifecycle.trash(transfer.id)
        assert ledger.get("f-2", "BDT") == 0
        assert_invariant(ledger, lifecycle)

    def test_mixed_sequence_holds_invariant(self, ledger, lifecycle):
        """Any interleaving of transitions keeps balances consistent."""
        txs = [
            lifecycle.create(draft(amount=Decimal("10.10"))),
            lifecycle.create(draft(type=TransactionType.EXPENSE, amount=Decimal("3.3"), category_id="cat-exp-1")),
            lifecycle.create(draft(
                type=TransactionType.TRANSFER,
                amount=Decimal("2"),
                category_id=None,
                target_fund_id="f-2",
                target_currency="USD",
                exchange_rate=Decimal("0.0091"),
            )),
        ]
        lifecycle.trash(txs[0].id)
        assert_invariant(ledger, lifecycle)
        lifecycle.trash(txs[2].id)
        lifecycle.restore(txs[0].id)
        assert_invariant(ledger, lifecycle)
        lifecycle.purge(txs[1].id)
        lifecycle.purge_all_trashed()
        assert_invariant(ledger, lifecycle)
        assert ledger.get("f-1", "BDT") == Decimal("10.10")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
