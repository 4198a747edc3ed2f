"""
Ledger store: the only writer of ledgers and transactions.

This service enforces the fundamental rules:
1. A ledger's balance is derived, never stored:
   starting_balance + sum(deposits) - sum(checks)
2. Transactions are append-only; the only other mutation is
   deletion of a whole row
3. A batch result is merged in one database transaction, so
   new ledgers never appear without their transactions (or
   the other way round)

No other service writes to the ledger tables directly.
"""

import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from check_ledger.exceptions import (
    LedgerCommitError,
    LedgerInvariantError,
    LedgerNotFoundError,
    LedgerStoreError,
    ProfileNotFoundError,
    TransactionNotFoundError,
)
from check_ledger.models.audit_log import AuditLog
from check_ledger.models.base import new_id
from check_ledger.models.enums import TransactionType
from check_ledger.models.ledger import Ledger
from check_ledger.models.profile import Profile
from check_ledger.models.transaction import Transaction
from check_ledger.money import ZERO, to_money
from check_ledger.schemas.ledger import IntegrityReport, LedgerDraft
from check_ledger.schemas.profile import ProfileCreate
from check_ledger.schemas.transaction import TransactionDraft
from check_ledger.services.printing import GLCodeLearner

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_NAME = "Primary Ledger"

SORT_ORDERS = {
    "date-desc": (Transaction.date.desc(), Transaction.timestamp.desc()),
    "date-asc": (Transaction.date.asc(), Transaction.timestamp.asc()),
    "amount-desc": (Transaction.amount.desc(),),
    "amount-asc": (Transaction.amount.asc(),),
    "payee-asc": (Transaction.payee.asc(),),
    "payee-desc": (Transaction.payee.desc(),),
}


class LedgerStore:
    """
    All ledger reads and writes pass through this service.

    Unlike most services that leave the commit to the caller,
    every mutating method here commits (or rolls back) itself:
    the store is the unit of atomicity for the controllers.
    """

    def __init__(self, db: Session, gl_learner: GLCodeLearner | None = None):
        self.db = db
        self.gl_learner = gl_learner

    # --- Ledgers ---

    def create_ledger(
        self, name: str, starting_balance: Decimal = ZERO
    ) -> Ledger:
        ledger = Ledger(
            id=new_id(),
            name=name.strip(),
            starting_balance=to_money(starting_balance),
        )
        self.db.add(ledger)
        self._audit("ledger.created", {
            "ledger_id": ledger.id,
            "name": ledger.name,
            "starting_balance": ledger.starting_balance,
        })
        self._commit()
        logger.info("Created ledger %s (%s)", ledger.name, ledger.id)
        return ledger

    def get_ledger(self, ledger_id: str) -> Ledger:
        ledger = self.db.get(Ledger, ledger_id)
        if not ledger:
            raise LedgerNotFoundError(ledger_id)
        return ledger

    def list_ledgers(self) -> list[Ledger]:
        ledgers = self.db.execute(
            select(Ledger).order_by(Ledger.created_at, Ledger.name)
        ).scalars().all()
        return list(ledgers)

    def ensure_default_ledger(self) -> Ledger:
        """Return the first ledger, creating the primary ledger if none exist."""
        ledgers = self.list_ledgers()
        if ledgers:
            return ledgers[0]
        return self.create_ledger(DEFAULT_LEDGER_NAME)

    def rename_ledger(self, ledger_id: str, name: str) -> Ledger:
        ledger = self.get_ledger(ledger_id)
        ledger.name = name.strip()
        self._commit()
        return ledger

    def set_starting_balance(
        self, ledger_id: str, starting_balance: Decimal, commit: bool = True
    ) -> Ledger:
        """
        Change the admin baseline of a ledger.

        Existing transaction snapshots keep the balances they were
        committed with. With commit=False the change is only staged
        in the session and goes out with the next commit().
        """
        ledger = self.get_ledger(ledger_id)
        old = ledger.starting_balance
        ledger.starting_balance = to_money(starting_balance)
        self._audit("ledger.starting_balance_changed", {
            "ledger_id": ledger.id,
            "old": old,
            "new": ledger.starting_balance,
        })
        if commit:
            self._commit()
        return ledger

    def delete_ledger(self, ledger_id: str) -> int:
        """
        Delete a ledger and every transaction recorded against it.

        Irreversible. The caller is responsible for confirming with
        the user. The last remaining ledger cannot be deleted.
        Returns the number of transactions deleted with it.
        """
        ledger = self.get_ledger(ledger_id)

        ledger_count = self.db.execute(
            select(func.count()).select_from(Ledger)
        ).scalar_one()
        if ledger_count <= 1:
            raise LedgerStoreError("You must have at least one ledger")

        transaction_count = self._transaction_count(ledger_id)
        self.db.delete(ledger)
        self._audit("ledger.deleted", {
            "ledger_id": ledger_id,
            "name": ledger.name,
            "transactions_deleted": transaction_count,
        })
        self._commit()
        logger.info(
            "Deleted ledger %s with %d transaction(s)",
            ledger_id, transaction_count,
        )
        return transaction_count

    # --- Balances ---

    def derived_balance(self, ledger_id: str) -> Decimal:
        """
        Calculate a ledger's balance from its transactions.

        Balance is never stored, it is always derived from
        the starting balance and the transaction log.
        """
        ledger = self.get_ledger(ledger_id)

        total_deposits = self._sum_amounts(ledger_id, TransactionType.DEPOSIT)
        total_checks = self._sum_amounts(ledger_id, TransactionType.CHECK)

        return to_money(ledger.starting_balance) + total_deposits - total_checks

    def balances(self) -> dict[str, Decimal]:
        """Derived balance of every ledger, keyed by ledger id."""
        result = {
            ledger.id: to_money(ledger.starting_balance)
            for ledger in self.list_ledgers()
        }

        rows = self.db.execute(
            select(
                Transaction.ledger_id,
                Transaction.type,
                func.coalesce(func.sum(Transaction.amount), 0),
            ).group_by(Transaction.ledger_id, Transaction.type)
        ).all()

        for ledger_id, txn_type, total in rows:
            if ledger_id not in result:
                continue
            if txn_type == TransactionType.DEPOSIT:
                result[ledger_id] += to_money(total)
            else:
                result[ledger_id] -= to_money(total)
        return result

    def check_integrity(self, ledger_id: str) -> IntegrityReport:
        """
        Verify every stored snapshot and the derived balance.

        Each transaction must satisfy new = previous +/- amount and
        balance_after = new. The SQL-derived balance must equal a
        fold over the rows. Any violation is a bug and raises
        LedgerInvariantError.
        """
        ledger = self.get_ledger(ledger_id)
        transactions = self.db.execute(
            select(Transaction).where(Transaction.ledger_id == ledger_id)
        ).scalars().all()

        folded = to_money(ledger.starting_balance)
        for txn in transactions:
            previous = to_money(txn.snapshot_previous_balance)
            amount = to_money(txn.snapshot_transaction_amount)
            new = to_money(txn.snapshot_new_balance)
            expected = (
                previous + amount
                if txn.type == TransactionType.DEPOSIT
                else previous - amount
            )
            if amount != to_money(txn.amount) or new != expected:
                raise LedgerInvariantError(
                    f"Transaction {txn.id} snapshot does not add up: "
                    f"{previous} / {amount} / {new}"
                )
            if to_money(txn.balance_after) != new:
                raise LedgerInvariantError(
                    f"Transaction {txn.id} balance_after {txn.balance_after} "
                    f"differs from snapshot {new}"
                )
            folded += to_money(txn.signed_amount)

        derived = self.derived_balance(ledger_id)
        if derived != folded:
            raise LedgerInvariantError(
                f"Ledger {ledger_id} derived balance {derived} "
                f"differs from folded balance {folded}"
            )

        return IntegrityReport(
            ledger_id=ledger_id,
            transaction_count=len(transactions),
            derived_balance=derived,
            folded_balance=folded,
            is_consistent=True,
        )

    # --- Transactions ---

    def commit(
        self,
        new_ledgers: Sequence[LedgerDraft],
        new_transactions: Sequence[TransactionDraft],
        profile_cursor: tuple[str, int] | None = None,
    ) -> list[Transaction]:
        """
        Merge staged ledgers and transactions in one step.

        This is the most critical method in the system. Either
        everything is written (ledgers, transactions, the profile's
        next check number and the audit row) or nothing is.
        Transactions keep the order they are given in. Changes
        staged in the session with commit=False are part of the same
        transaction and are discarded with it.
        """
        if not new_ledgers and not new_transactions and profile_cursor is None:
            if self.db.new or self.db.dirty:
                self._commit()
            return []

        # --- Validate references before touching the session ---
        staged_ids = {draft.id for draft in new_ledgers}
        referenced = {draft.ledger_id for draft in new_transactions} - staged_ids
        if referenced:
            existing = set(self.db.execute(
                select(Ledger.id).where(Ledger.id.in_(referenced))
            ).scalars().all())
            missing = referenced - existing
            if missing:
                self.db.rollback()
                raise LedgerNotFoundError(", ".join(sorted(missing)))

        profile = None
        if profile_cursor is not None:
            try:
                profile = self.get_profile(profile_cursor[0])
            except ProfileNotFoundError:
                self.db.rollback()
                raise

        # --- Write ---
        now = datetime.utcnow()
        rows = []
        try:
            for draft in new_ledgers:
                self.db.add(Ledger(
                    id=draft.id,
                    name=draft.name,
                    starting_balance=to_money(draft.starting_balance),
                ))

            for position, draft in enumerate(new_transactions):
                fields = draft.model_dump(exclude={"ledger_snapshot"})
                snapshot = draft.ledger_snapshot
                row = Transaction(
                    id=new_id(),
                    # Offsets keep commit order sortable within one merge
                    timestamp=now + timedelta(microseconds=position),
                    snapshot_previous_balance=snapshot.previous_balance,
                    snapshot_transaction_amount=snapshot.transaction_amount,
                    snapshot_new_balance=snapshot.new_balance,
                    **fields,
                )
                self.db.add(row)
                rows.append(row)

            if profile is not None:
                profile.next_check_number = profile_cursor[1]

            self._audit("ledger.commit", {
                "new_ledgers": [draft.id for draft in new_ledgers],
                "transactions": [row.id for row in rows],
                "next_check_number": profile_cursor[1] if profile_cursor else None,
            })
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Ledger commit rolled back: %s", e)
            raise LedgerCommitError(f"Ledger commit failed: {e}") from e

        logger.info(
            "Committed %d transaction(s) and %d new ledger(s)",
            len(rows), len(new_ledgers),
        )

        if self.gl_learner is not None:
            for draft in new_transactions:
                if draft.gl_code:
                    self.gl_learner.observe(draft.gl_code, draft.gl_description)

        return rows

    def get_transaction(self, transaction_id: str) -> Transaction:
        txn = self.db.get(Transaction, transaction_id)
        if not txn:
            raise TransactionNotFoundError(transaction_id)
        return txn

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete one transaction.

        No other row is touched: later snapshots keep the balances
        they were committed with, and the ledger's derived balance
        simply stops counting this amount.
        """
        txn = self.get_transaction(transaction_id)
        self.db.delete(txn)
        self._audit("transaction.deleted", {
            "transaction_id": txn.id,
            "ledger_id": txn.ledger_id,
            "type": txn.type.value,
            "amount": txn.amount,
        })
        self._commit()
        logger.info("Deleted transaction %s", transaction_id)

    def list_transactions(
        self,
        ledger_id: str | None = None,
        search: str | None = None,
        sort: str = "date-desc",
    ) -> list[Transaction]:
        """Transactions filtered by ledger and payee/memo/amount search."""
        if sort not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order '{sort}'")

        query = select(Transaction)
        if ledger_id is not None:
            query = query.where(Transaction.ledger_id == ledger_id)

        transactions = self.db.execute(
            query.order_by(*SORT_ORDERS[sort])
        ).scalars().all()

        if search:
            term = search.lower()
            transactions = [
                t for t in transactions
                if term in t.payee.lower()
                or term in t.memo.lower()
                or term in str(t.amount)
            ]
        return list(transactions)

    def payee_defaults(self, payee: str) -> dict[str, str]:
        """
        Address and GL details from the most recent check to a payee.

        Used to pre-fill imported items that leave them blank.
        """
        defaults = {"address": "", "gl_code": "", "gl_description": ""}
        if not payee or not payee.strip():
            return defaults

        recent = self.db.execute(
            select(Transaction)
            .where(
                func.lower(Transaction.payee) == payee.strip().lower(),
                Transaction.type == TransactionType.CHECK,
            )
            .order_by(Transaction.timestamp.desc())
        ).scalars().all()

        for txn in recent:
            if not defaults["address"] and txn.address:
                defaults["address"] = txn.address
            if not defaults["gl_code"] and txn.gl_code:
                defaults["gl_code"] = txn.gl_code
                defaults["gl_description"] = txn.gl_description
            if defaults["address"] and defaults["gl_code"]:
                break
        return defaults

    # --- Profiles ---

    def create_profile(
        self, request: ProfileCreate, commit: bool = True
    ) -> Profile:
        """Add a profile. commit=False stages it like set_starting_balance."""
        profile = Profile(
            id=new_id(),
            name=request.name,
            layout_mode=request.layout_mode,
            next_check_number=request.next_check_number,
        )
        self.db.add(profile)
        if commit:
            self._commit()
        return profile

    def get_profile(self, profile_id: str) -> Profile:
        profile = self.db.get(Profile, profile_id)
        if not profile:
            raise ProfileNotFoundError(profile_id)
        return profile

    # --- Internals ---

    def _sum_amounts(self, ledger_id: str, txn_type: TransactionType) -> Decimal:
        total = self.db.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.ledger_id == ledger_id,
                Transaction.type == txn_type,
            )
        ).scalar()
        return to_money(total)

    def _transaction_count(self, ledger_id: str) -> int:
        return self.db.execute(
            select(func.count()).select_from(Transaction).where(
                Transaction.ledger_id == ledger_id
            )
        ).scalar_one()

    def _audit(self, event_type: str, details: dict) -> None:
        self.db.add(AuditLog(
            event_type=event_type,
            ledger_id=details.get("ledger_id"),
            details=json.dumps(details, default=str),
        ))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LedgerCommitError(str(e)) from e
