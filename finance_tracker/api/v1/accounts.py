"""/v1/accounts - account CRUD, reactivation and export"""

import csv
import io
import uuid
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from finance_tracker.api.dependencies import get_current_user_id, get_ledger_service, get_request_id
from finance_tracker.api.v1.schemas import (
    AccountCreate,
    AccountDeleteResponse,
    AccountDetailResponse,
    AccountListResponse,
    AccountResponse,
    AccountStats,
    AccountSummary,
    AccountUpdate,
    AccountUpdateResponse,
    TransactionResponse,
)
from finance_tracker.domain.reporting import totals_by_currency
from finance_tracker.infrastructure.database.session import atomic
from finance_tracker.infrastructure.observability.logging import log_ledger_event
from finance_tracker.infrastructure.observability.metrics import record_ledger_operation
from finance_tracker.services.accounts import AccountService
from finance_tracker.services.ledger import LedgerService

router = APIRouter()

EXPORT_COLUMNS = (
    "id",
    "effective_date",
    "kind",
    "direction",
    "category",
    "amount_minor",
    "currency",
    "account_amount_minor",
    "reference_amount_minor",
    "description",
)


@router.get("/accounts", response_model=AccountListResponse)
def list_accounts(
    is_active: Optional[bool] = Query(None),
    account_type: Optional[str] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    accounts = ledger.accounts.list(user_id, is_active=is_active, account_type=account_type)
    active = [a for a in accounts if a.is_active]

    return AccountListResponse(
        accounts=[AccountResponse.model_validate(a) for a in accounts],
        summary=AccountSummary(
            total_accounts=len(accounts),
            active_accounts=len(active),
            totals_by_currency=totals_by_currency((a.currency, a.balance_minor) for a in active),
        ),
    )


@router.get("/accounts/{account_id}", response_model=AccountDetailResponse)
def get_account(
    account_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Account with its 10 latest postings and 30-day activity"""
    account = ledger.get_account(user_id, account_id)
    activity = AccountService(ledger).activity(user_id, account)

    return AccountDetailResponse(
        account=AccountResponse.model_validate(account),
        recent_transactions=[TransactionResponse.model_validate(t) for t in activity.recent],
        last_30_days=AccountStats(
            income_minor=activity.income_minor,
            expenses_minor=activity.expenses_minor,
            transaction_count=activity.transaction_count,
        ),
    )


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    body: AccountCreate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    with atomic(ledger.db):
        account = AccountService(ledger).create_account(
            user_id,
            name=body.name,
            account_type=body.account_type,
            balance_minor=body.balance_minor,
            currency=body.currency,
            institution=body.institution,
        )

    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "account_create",
        account_id=str(account.id),
        balance_minor=account.balance_minor,
    )
    return AccountResponse.model_validate(account)


@router.put("/accounts/{account_id}", response_model=AccountUpdateResponse)
def update_account(
    account_id: uuid.UUID,
    body: AccountUpdate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Edit an account; a `balance` is reached through a Balance Adjustment posting"""
    with atomic(ledger.db):
        account, adjustment = AccountService(ledger).update_account(
            user_id,
            account_id,
            name=body.name,
            account_type=body.account_type,
            currency=body.currency,
            institution=body.institution,
            is_active=body.is_active,
            balance_minor=body.balance_minor,
        )

    if adjustment is not None:
        record_ledger_operation("adjust", adjustment.kind)
        log_ledger_event(
            get_request_id(request),
            str(user_id),
            "balance_adjust",
            account_id=str(account.id),
            transaction_id=str(adjustment.id),
            balance_minor=account.balance_minor,
        )

    return AccountUpdateResponse(
        account=AccountResponse.model_validate(account),
        adjustment=TransactionResponse.model_validate(adjustment) if adjustment is not None else None,
    )


@router.delete("/accounts/{account_id}", response_model=AccountDeleteResponse)
def delete_account(
    account_id: uuid.UUID,
    request: Request,
    force: bool = Query(False),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Deactivate an account with history, or delete it outright when empty or forced"""
    with atomic(ledger.db):
        outcome, deleted = AccountService(ledger).delete_account(user_id, account_id, force=force)

    log_ledger_event(
        get_request_id(request),
        str(user_id),
        f"account_{outcome}",
        account_id=str(account_id),
        deleted_transactions=deleted,
    )
    return AccountDeleteResponse(outcome=outcome, deleted_transactions=deleted)


@router.post("/accounts/{account_id}/reactivate", response_model=AccountResponse)
def reactivate_account(
    account_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    with atomic(ledger.db):
        account = AccountService(ledger).reactivate_account(user_id, account_id)
    return AccountResponse.model_validate(account)


@router.get("/accounts/{account_id}/export")
def export_account(
    account_id: uuid.UUID,
    format: Literal["json", "csv"] = Query("json"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Dump an account's postings, oldest first, as JSON or CSV"""
    account = ledger.get_account(user_id, account_id)
    postings, _ = ledger.transactions.search(
        user_id, account_id=account.id, start_date=start_date, end_date=end_date
    )
    postings.reverse()

    if format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        for posting in postings:
            writer.writerow([getattr(posting, column) for column in EXPORT_COLUMNS])
        filename = f"{account.name.replace(' ', '_')}_transactions.csv"
        return Response(
            content=buffer.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return JSONResponse(
        content={
            "account": AccountResponse.model_validate(account).model_dump(mode="json"),
            "transactions": [
                TransactionResponse.model_validate(p).model_dump(mode="json") for p in postings
            ],
        }
    )
