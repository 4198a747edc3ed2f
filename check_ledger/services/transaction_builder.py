"""
Transaction builder: turns pending items into commit drafts.

Each build:
1. Sanitizes the amount and rejects non-positive amounts
2. Requires a payee (checks) or a description (deposits)
3. Normalizes the date to YYYY-MM-DD
4. Computes the balance snapshot against the caller's running
   balance and returns the new running balance for chaining

Nothing here touches the database. Ledger names are resolved
against a WorkingLedgerSet, which stages new ledgers in memory
until the controller merges them.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from pydantic import ValidationError

from check_ledger.exceptions import ItemValidationError
from check_ledger.models.enums import SheetSlot, TransactionType
from check_ledger.money import ZERO, sanitize_amount, to_money
from check_ledger.schemas.ledger import LEDGER_NAME_MAX, LedgerDraft
from check_ledger.schemas.transaction import (
    LedgerSnapshot,
    PendingItem,
    TransactionDraft,
)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

# Excel serial day 0, accounting for the 1900 leap year bug
_EXCEL_EPOCH = date(1899, 12, 30)


def today() -> str:
    return date.today().isoformat()


def normalize_date(raw) -> str:
    """
    Return an ISO YYYY-MM-DD date.

    Accepts ISO dates and datetimes, common US formats and Excel
    serial numbers. Blank input means today. Input that cannot
    be parsed is also treated as today.
    """
    if raw is None or raw == "":
        return today()

    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()

    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        try:
            return (_EXCEL_EPOCH + timedelta(days=int(raw))).isoformat()
        except (OverflowError, ValueError):
            # inf and NaN serials
            return today()

    text = str(raw).strip()
    if _ISO_DATE.match(text):
        return text

    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    return today()


@dataclass
class WorkingLedgerSet:
    """
    Ledgers visible to one batch run: existing plus staged.

    names maps ledger id to name for every ledger the run can
    resolve to. staged holds ledgers created by this run that the
    store has not seen yet.
    """
    names: dict[str, str]
    default_ledger_id: str | None = None
    staged: list[LedgerDraft] = field(default_factory=list)

    def resolve(self, name: str | None) -> tuple[str, bool]:
        """
        Find the ledger for a free-text name, staging one if needed.

        Matching is exact and case-insensitive after trimming the
        name once; internal whitespace is not collapsed. A blank
        name resolves to the default ledger. Returns the ledger id
        and whether a new ledger was staged.
        """
        if not name or not name.strip():
            if self.default_ledger_id is None:
                raise ItemValidationError("No ledger named and no default ledger")
            return self.default_ledger_id, False

        trimmed = name.strip()
        wanted = trimmed.lower()
        for ledger_id, existing in self.names.items():
            if existing.lower() == wanted:
                return ledger_id, False

        if len(trimmed) > LEDGER_NAME_MAX:
            raise ItemValidationError(
                f"Ledger name longer than {LEDGER_NAME_MAX} characters"
            )

        draft = LedgerDraft(name=trimmed, starting_balance=ZERO)
        self.staged.append(draft)
        self.names[draft.id] = draft.name
        return draft.id, True


@dataclass
class BuiltTransaction:
    draft: TransactionDraft
    new_running_balance: Decimal


class TransactionBuilder:
    """
    Builds drafts from pending items.

    profile_id is stamped onto every draft. payee_defaults, when
    given, is a callable returning the last known address and GL
    details for a payee; it fills fields the item leaves blank.
    """

    def __init__(self, profile_id: str | None = None, payee_defaults=None):
        self.profile_id = profile_id
        self.payee_defaults = payee_defaults

    def validate(self, item: PendingItem) -> Decimal:
        """Return the sanitized amount, or raise ItemValidationError."""
        amount = sanitize_amount(item.amount)
        if amount <= 0:
            raise ItemValidationError(f"Invalid amount {item.amount!r}")

        if item.type == TransactionType.DEPOSIT:
            if not (item.description or item.payee).strip():
                raise ItemValidationError("Deposit needs a description")
        elif not item.payee.strip():
            raise ItemValidationError("Check needs a payee")
        return amount

    def resolve_ledger(
        self, name: str | None, working_set: WorkingLedgerSet
    ) -> str:
        ledger_id, _ = working_set.resolve(name)
        return ledger_id

    def build(
        self,
        item: PendingItem,
        ledger_id: str,
        running_balance: Decimal,
        check_number: int | str | None = None,
        sheet_slot: SheetSlot | None = None,
    ) -> BuiltTransaction:
        """
        Materialize a draft against a running balance.

        The caller keeps the running balance per ledger and passes
        new_running_balance to the next item for the same ledger.
        An explicit check_number (auto-numbering) wins over the
        item's own number.
        """
        amount = self.validate(item)
        previous = to_money(running_balance)

        if item.type == TransactionType.DEPOSIT:
            new_balance = previous + amount
            payee = (item.description or item.payee).strip()
            memo = item.memo or payee
        else:
            new_balance = previous - amount
            payee = item.payee.strip()
            memo = item.memo

        address = item.address
        gl_code = item.gl_code
        gl_description = item.gl_description
        if self.payee_defaults is not None and item.type == TransactionType.CHECK:
            if not (address and gl_code):
                known = self.payee_defaults(payee)
                address = address or known.get("address", "")
                if not gl_code:
                    gl_code = known.get("gl_code", "")
                    gl_description = gl_description or known.get("gl_description", "")
        if item.type == TransactionType.CHECK and not address:
            address = payee

        number = (
            str(check_number) if check_number is not None else item.check_number
        )

        try:
            draft = TransactionDraft(
                type=item.type,
                ledger_id=ledger_id,
                profile_id=self.profile_id,
                date=normalize_date(item.date),
                payee=payee,
                address=address,
                amount=amount,
                memo=memo,
                external_memo=item.external_memo,
                internal_memo=item.internal_memo,
                line_items_text=item.line_items_text,
                gl_code=gl_code.strip(),
                gl_description=gl_description,
                check_number=number,
                sheet_slot=sheet_slot,
                balance_after=new_balance,
                ledger_snapshot=LedgerSnapshot(
                    previous_balance=previous,
                    transaction_amount=amount,
                    new_balance=new_balance,
                ),
            )
        except ValidationError as e:
            raise ItemValidationError(_first_error(e)) from e
        return BuiltTransaction(draft=draft, new_running_balance=new_balance)


def _first_error(error: ValidationError) -> str:
    """Readable message for the first failed field of a draft."""
    first = error.errors()[0]
    field_name = ".".join(str(part) for part in first["loc"])
    if field_name:
        return f"{field_name}: {first['msg']}"
    return first["msg"]
