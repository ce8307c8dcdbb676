"""Chart of accounts, journal entries and account ledgers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_session, require
from fbms.backend.db.models import User
from fbms.backend.schemas import AccountIn, AccountOut, JournalEntryIn, JournalEntryOut
from fbms.backend.services import accounting

router = APIRouter(tags=["accounting"])


@router.get("/accounts", response_model=list[AccountOut])
def list_accounts(
    account_type: str | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("accounting", "read")),
):
    return accounting.list_accounts(session, account_type)


@router.post("/accounts", response_model=AccountOut, status_code=201)
def create_account(
    data: AccountIn, session: Session = Depends(get_session), _: User = Depends(require("accounting", "write"))
):
    return accounting.create_account(session, data)


@router.get("/accounts/{code}", response_model=AccountOut)
def get_account(code: str, session: Session = Depends(get_session), _: User = Depends(require("accounting", "read"))):
    return accounting.get_account(session, code)


@router.get("/accounts/{code}/balance")
def account_balance(
    code: str,
    as_of: datetime | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("accounting", "read")),
) -> dict[str, Any]:
    account = accounting.get_account(session, code)
    return {
        "account_code": account.code,
        "account_name": account.name,
        "as_of": as_of,
        "balance": accounting.account_balance(session, code, as_of),
    }


@router.get("/accounts/{code}/ledger")
def account_ledger(
    code: str,
    start: datetime | None = None,
    end: datetime | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("accounting", "read")),
) -> dict[str, Any]:
    return accounting.general_ledger(session, code, start, end)


@router.get("/journal-entries", response_model=list[JournalEntryOut])
def list_journal_entries(
    start: datetime | None = None,
    end: datetime | None = None,
    source: str | None = None,
    reference: str | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("accounting", "read")),
):
    entries = accounting.list_journal_entries(session, start, end, source, reference)
    return [accounting.entry_to_dict(entry) for entry in entries]


@router.post("/journal-entries", response_model=JournalEntryOut, status_code=201)
def create_journal_entry(
    data: JournalEntryIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("accounting", "write")),
):
    return accounting.entry_to_dict(accounting.create_journal_entry(session, data, user.id))


@router.get("/journal-entries/{entry_id}", response_model=JournalEntryOut)
def get_journal_entry(
    entry_id: str, session: Session = Depends(get_session), _: User = Depends(require("accounting", "read"))
):
    return accounting.entry_to_dict(accounting.get_journal_entry(session, entry_id))
