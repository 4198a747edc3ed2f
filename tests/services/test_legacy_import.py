"""
Tests for importing and exporting the persisted ledger document.

Stored balances from older documents must never override the
balance derived from transactions.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from check_ledger.exceptions import LedgerCommitError, LedgerStoreError
from check_ledger.models.enums import TransactionType
from check_ledger.models.profile import Profile
from check_ledger.schemas.transaction import PendingItem
from check_ledger.services.legacy_import import (
    export_document,
    import_legacy_document,
)
from check_ledger.services.transaction_builder import TransactionBuilder


def history_entry(ledger_id, payee, amount, timestamp, **fields):
    entry = {
        "id": f"h{timestamp}",
        "payee": payee,
        "amount": amount,
        "date": "2024-05-01",
        "ledgerId": ledger_id,
        "timestamp": timestamp,
    }
    entry.update(fields)
    return entry


class TestImport:

    def test_stored_balance_is_discarded_when_history_exists(self, store):
        report = import_legacy_document(store, {
            "ledgers": [{"id": "op", "name": "Operating", "balance": 12345}],
            "checkHistory": [
                history_entry("op", "Acme Co", "100.00", 1),
            ],
        })

        assert store.derived_balance("op") == Decimal("-100.00")
        assert report.discarded_balances == {"Operating": "12345"}

    def test_balance_adopted_for_ledger_without_history(self, store):
        import_legacy_document(store, {
            "ledgers": [{"id": "sv", "name": "Savings", "balance": "250.00"}],
        })

        ledger = store.get_ledger("sv")
        assert ledger.starting_balance == Decimal("250.00")

    def test_starting_balance_is_kept(self, store):
        import_legacy_document(store, {
            "ledgers": [{
                "id": "op",
                "name": "Operating",
                "balance": 1,
                "startingBalance": 1000,
            }],
            "checkHistory": [
                history_entry("op", "Acme Co", 100, 1),
                history_entry(
                    "op", "Refund", 40, 2, type="deposit"
                ),
            ],
        })

        assert store.derived_balance("op") == Decimal("940.00")

    def test_oldest_single_balance_format(self, store):
        report = import_legacy_document(store, {
            "ledgerBalance": 500,
            "checkHistory": [
                {"payee": "Acme Co", "amount": "$75.00", "date": "5/1/2024",
                 "timestamp": 1},
            ],
        })

        [ledger] = store.list_ledgers()
        assert ledger.name == "Primary Ledger"
        assert store.derived_balance(ledger.id) == Decimal("-75.00")
        assert report.transactions_imported == 1
        [txn] = store.list_transactions()
        assert txn.date == "2024-05-01"
        assert txn.type == TransactionType.CHECK

    def test_missing_snapshot_is_rebuilt_in_order(self, store):
        import_legacy_document(store, {
            "ledgers": [{"id": "op", "name": "Operating", "startingBalance": 100}],
            "checkHistory": [
                history_entry("op", "Second", 5, 20),
                history_entry("op", "First", 10, 10),
            ],
        })

        first, second = store.list_transactions(sort="date-asc")
        assert first.payee == "First"
        assert first.ledger_snapshot.new_balance == Decimal("90.00")
        assert second.ledger_snapshot.previous_balance == Decimal("90.00")
        assert store.check_integrity("op").is_consistent is True

    def test_existing_ledger_matched_by_name(self, store):
        existing = store.ensure_default_ledger()

        report = import_legacy_document(store, {
            "ledgers": [{
                "id": "default",
                "name": "primary ledger",
                "startingBalance": 40,
            }],
            "checkHistory": [history_entry("default", "Acme Co", 15, 1)],
        })

        assert report.ledgers_matched == 1
        assert store.derived_balance(existing.id) == Decimal("25.00")

    def test_unusable_entries_are_skipped(self, store):
        report = import_legacy_document(store, {
            "ledgers": [{"id": "op", "name": "Operating"}],
            "checkHistory": [
                history_entry("op", "Acme Co", "abc", 1),
                history_entry("gone", "Beta LLC", 5, 2),
                history_entry("op", "Gamma", 5, 3),
            ],
        })

        assert report.transactions_imported == 1
        assert report.transactions_skipped == 2

    def test_profiles_are_imported(self, store):
        report = import_legacy_document(store, {
            "ledgers": [{"id": "op", "name": "Operating"}],
            "profiles": [{
                "id": "legacy-1",
                "name": "Main",
                "layoutMode": "three_up",
                "nextCheckNumber": 4000,
            }],
            "checkHistory": [
                history_entry("op", "Acme Co", 5, 1, profileId="legacy-1"),
            ],
        })

        assert report.profiles_imported == 1
        [txn] = store.list_transactions()
        profile = store.get_profile(txn.profile_id)
        assert profile.next_check_number == 4000

    def test_failed_merge_leaves_store_unchanged(self, store, ledger, monkeypatch):
        def failing_commit():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(store.db, "commit", failing_commit)
        with pytest.raises(LedgerCommitError):
            import_legacy_document(store, {
                "ledgers": [{
                    "id": "op", "name": "Operating", "startingBalance": 50,
                }],
                "profiles": [{"id": "legacy-1", "name": "Main"}],
                "checkHistory": [history_entry("op", "Acme Co", 5, 1)],
            })
        monkeypatch.undo()

        assert store.get_ledger(ledger.id).starting_balance == Decimal("1000.00")
        assert store.db.execute(select(Profile)).scalars().all() == []
        assert store.list_transactions() == []

    def test_overlong_fields_are_skipped(self, store):
        report = import_legacy_document(store, {
            "ledgers": [{"id": "op", "name": "Operating"}],
            "checkHistory": [
                history_entry("op", "X" * 256, 5, 1),
                history_entry("op", "Acme Co", 5, 2, checkNumber="9" * 21),
                history_entry("op", "Beta LLC", 5, 3),
            ],
        })

        assert report.transactions_imported == 1
        assert report.transactions_skipped == 2

    def test_refused_once_transactions_exist(self, store, ledger):
        draft = TransactionBuilder().build(
            PendingItem(payee="Acme Co", amount="1"), ledger.id, Decimal("0")
        ).draft
        store.commit([], [draft])

        with pytest.raises(LedgerStoreError, match="without transactions"):
            import_legacy_document(store, {"ledgers": []})


class TestExport:

    def test_export_has_no_stored_balance(self, store, ledger):
        draft = TransactionBuilder().build(
            PendingItem(payee="Acme Co", amount="10"), ledger.id, Decimal("1000")
        ).draft
        store.commit([], [draft])

        document = export_document(store)

        [exported] = document["ledgers"]
        assert "balance" not in exported
        assert exported["startingBalance"] == "1000.00"
        [entry] = document["checkHistory"]
        assert entry["ledger_snapshot"]["new_balance"] == "990.00"
        assert entry["ledgerId"] == ledger.id
