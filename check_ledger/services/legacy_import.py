"""
Import and export of the persisted ledger document.

Older documents store a `balance` on each ledger (and the oldest
a single top-level `ledgerBalance`). Those values are not
trusted: balances are derived from transactions. A stored
balance is only kept, as the starting balance, for a ledger that
has no starting balance and no transactions, because then it is
the only record of what the account held.
"""

import logging
from datetime import timezone
from decimal import Decimal

from pydantic import BaseModel, Field, ValidationError

from check_ledger.exceptions import LedgerStoreError
from check_ledger.models.base import new_id
from check_ledger.models.enums import LayoutMode, SheetSlot, TransactionType
from check_ledger.money import ZERO, sanitize_amount, to_money
from check_ledger.schemas.ledger import LEDGER_NAME_MAX, LedgerDraft
from check_ledger.schemas.profile import ProfileCreate
from check_ledger.schemas.transaction import LedgerSnapshot, TransactionDraft
from check_ledger.services.ledger_store import DEFAULT_LEDGER_NAME, LedgerStore
from check_ledger.services.transaction_builder import normalize_date

logger = logging.getLogger(__name__)


class ImportReport(BaseModel):
    ledgers_created: int = 0
    ledgers_matched: int = 0
    transactions_imported: int = 0
    transactions_skipped: int = 0
    profiles_imported: int = 0
    discarded_balances: dict[str, str] = Field(default_factory=dict)


def import_legacy_document(store: LedgerStore, document: dict) -> ImportReport:
    """
    Load a persisted document into an empty store.

    Ledgers are matched to existing ones by id or by name
    (case-insensitive); the rest are created. History entries
    without a type are checks. Entries whose snapshot does not
    add up get one rebuilt from a running balance.
    """
    if store.list_transactions():
        raise LedgerStoreError("Import requires a ledger store without transactions")

    report = ImportReport()
    history = [dict(entry) for entry in document.get("checkHistory") or []]
    legacy_ledgers = list(document.get("ledgers") or [])

    if not legacy_ledgers and document.get("ledgerBalance") is not None:
        legacy_ledgers = [{
            "id": "default",
            "name": DEFAULT_LEDGER_NAME,
            "balance": document["ledgerBalance"],
        }]

    # The oldest documents have one ledger and no ledgerId on history entries
    fallback_id = (
        str(legacy_ledgers[0].get("id") or "default") if legacy_ledgers else None
    )
    for entry in history:
        if not entry.get("ledgerId"):
            entry["ledgerId"] = fallback_id
    used_ledgers = {entry.get("ledgerId") for entry in history}
    existing = {ledger.id: ledger for ledger in store.list_ledgers()}
    by_name = {ledger.name.lower(): ledger for ledger in existing.values()}

    # Matched ledgers and profiles are only staged; store.commit writes
    # them together with the history
    try:
        id_map: dict[str, str] = {}
        new_ledgers: list[LedgerDraft] = []
        starting: dict[str, Decimal] = {}

        for raw in legacy_ledgers:
            legacy_id = str(raw.get("id") or "default")
            name = (raw.get("name") or "").strip() or DEFAULT_LEDGER_NAME
            has_history = legacy_id in used_ledgers
            starting_balance = _starting_balance(raw, has_history)
            if (
                raw.get("balance") is not None
                and raw.get("startingBalance") is None
                and has_history
            ):
                report.discarded_balances[name] = str(raw["balance"])

            match = existing.get(legacy_id) or by_name.get(name.lower())
            if match is not None:
                id_map[legacy_id] = match.id
                store.set_starting_balance(match.id, starting_balance, commit=False)
                report.ledgers_matched += 1
            else:
                draft = LedgerDraft(
                    id=legacy_id if len(legacy_id) <= 32 else new_id(),
                    name=name[:LEDGER_NAME_MAX],
                    starting_balance=starting_balance,
                )
                id_map[legacy_id] = draft.id
                new_ledgers.append(draft)
                report.ledgers_created += 1
            starting[id_map[legacy_id]] = starting_balance

        profile_map: dict[str, str] = {}
        for raw in document.get("profiles") or []:
            profile = store.create_profile(ProfileCreate(
                name=raw.get("name") or "Default",
                layout_mode=(
                    LayoutMode.THREE_UP
                    if raw.get("layoutMode") == "three_up"
                    else LayoutMode.STANDARD
                ),
                next_check_number=int(raw.get("nextCheckNumber") or 1001),
            ), commit=False)
            if raw.get("id"):
                profile_map[str(raw["id"])] = profile.id
            report.profiles_imported += 1

        # Oldest first, so running balances and commit order follow history
        history.sort(key=lambda entry: entry.get("timestamp") or 0)
        running = dict(starting)
        drafts = []
        for entry in history:
            ledger_id = id_map.get(entry.get("ledgerId"))
            draft = _history_draft(entry, ledger_id, running, profile_map)
            if draft is None:
                report.transactions_skipped += 1
                continue
            running[ledger_id] = draft.balance_after
            drafts.append(draft)

        store.commit(new_ledgers, drafts)
    except Exception:
        store.db.rollback()
        raise
    report.transactions_imported = len(drafts)

    logger.info(
        "Imported %d ledger(s), %d transaction(s); skipped %d",
        report.ledgers_created + report.ledgers_matched,
        report.transactions_imported,
        report.transactions_skipped,
    )
    return report


def export_document(store: LedgerStore) -> dict:
    """Persistable document. Ledgers carry no stored balance."""
    ledgers = store.list_ledgers()
    history = store.list_transactions(sort="date-desc")
    return {
        "ledgers": [
            {
                "id": ledger.id,
                "name": ledger.name,
                "startingBalance": str(to_money(ledger.starting_balance)),
            }
            for ledger in ledgers
        ],
        "activeLedgerId": ledgers[0].id if ledgers else None,
        "checkHistory": [_history_entry(txn) for txn in history],
    }


def _starting_balance(raw: dict, has_transactions: bool) -> Decimal:
    if raw.get("startingBalance") is not None:
        return to_money(sanitize_amount(raw["startingBalance"]))
    if raw.get("balance") is not None and not has_transactions:
        return to_money(sanitize_amount(raw["balance"]))
    return ZERO


def _history_draft(
    entry: dict,
    ledger_id: str | None,
    running: dict[str, Decimal],
    profile_map: dict[str, str],
) -> TransactionDraft | None:
    if ledger_id is None:
        return None
    amount = sanitize_amount(entry.get("amount"))
    if amount <= 0:
        return None

    txn_type = (
        TransactionType.DEPOSIT
        if entry.get("type") == "deposit"
        else TransactionType.CHECK
    )
    payee = (entry.get("payee") or "").strip()
    if not payee:
        return None

    snapshot = _legacy_snapshot(entry.get("ledger_snapshot"), txn_type, amount)
    if snapshot is None:
        previous = running.get(ledger_id, ZERO)
        new = previous + amount if txn_type == TransactionType.DEPOSIT else previous - amount
        snapshot = LedgerSnapshot(
            previous_balance=previous,
            transaction_amount=amount,
            new_balance=new,
        )

    slot = entry.get("sheetSlot")
    try:
        return TransactionDraft(
            type=txn_type,
            ledger_id=ledger_id,
            profile_id=profile_map.get(entry.get("profileId")),
            date=normalize_date(entry.get("date")),
            payee=payee,
            address=entry.get("address") or "",
            amount=amount,
            memo=entry.get("memo") or "",
            external_memo=entry.get("external_memo") or "",
            internal_memo=entry.get("internal_memo") or "",
            line_items_text=entry.get("line_items_text") or "",
            gl_code=entry.get("glCode") or "",
            gl_description=entry.get("glDescription") or "",
            check_number=str(entry.get("checkNumber") or ""),
            sheet_slot=SheetSlot(slot) if slot in {s.value for s in SheetSlot} else None,
            balance_after=snapshot.new_balance,
            ledger_snapshot=snapshot,
        )
    except ValidationError as e:
        logger.warning("Skipping history entry %s: %s", entry.get("id"), e)
        return None


def _legacy_snapshot(raw, txn_type: TransactionType, amount: Decimal):
    """The stored snapshot, if it is complete and adds up."""
    if not isinstance(raw, dict):
        return None
    try:
        previous = to_money(raw["previous_balance"])
        stored_amount = to_money(raw["transaction_amount"])
        new = to_money(raw["new_balance"])
    except (KeyError, ArithmeticError, TypeError, ValueError):
        return None
    expected = previous + amount if txn_type == TransactionType.DEPOSIT else previous - amount
    if stored_amount != amount or new != expected:
        return None
    try:
        return LedgerSnapshot(
            previous_balance=previous,
            transaction_amount=amount,
            new_balance=new,
        )
    except ValidationError:
        return None


def _history_entry(txn) -> dict:
    snapshot = txn.ledger_snapshot
    return {
        "id": txn.id,
        "type": txn.type.value,
        "date": txn.date,
        "payee": txn.payee,
        "address": txn.address,
        "amount": str(txn.amount),
        "memo": txn.memo,
        "external_memo": txn.external_memo,
        "internal_memo": txn.internal_memo,
        "line_items_text": txn.line_items_text,
        "ledgerId": txn.ledger_id,
        "profileId": txn.profile_id,
        "ledger_snapshot": {
            "previous_balance": str(snapshot.previous_balance),
            "transaction_amount": str(snapshot.transaction_amount),
            "new_balance": str(snapshot.new_balance),
        },
        "timestamp": int(
            txn.timestamp.replace(tzinfo=timezone.utc).timestamp() * 1000
        ),
        "balanceAfter": str(txn.balance_after),
        "checkNumber": txn.check_number,
        "glCode": txn.gl_code,
        "glDescription": txn.gl_description,
        "sheetSlot": txn.sheet_slot.value if txn.sheet_slot else None,
    }
