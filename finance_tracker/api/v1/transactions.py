"""/v1/transactions - income and expense postings"""

import math
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from finance_tracker.api.dependencies import get_current_user_id, get_ledger_service, get_request_id
from finance_tracker.api.v1.schemas import (
    TransactionCreate,
    TransactionDeleteResponse,
    TransactionPage,
    TransactionResponse,
    TransactionUpdate,
    TransactionWriteResponse,
)
from finance_tracker.config import settings
from finance_tracker.infrastructure.database.session import atomic
from finance_tracker.infrastructure.observability.logging import log_ledger_event
from finance_tracker.infrastructure.observability.metrics import record_ledger_operation
from finance_tracker.services.ledger import LedgerService

router = APIRouter()


@router.get("/transactions", response_model=TransactionPage)
def list_transactions(
    account_id: Optional[uuid.UUID] = Query(None),
    kind: Optional[str] = Query(None, pattern="^(income|expense|transfer)$"),
    category: Optional[str] = Query(None, max_length=50),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Newest-first page of postings; category matches case-insensitively on a substring"""
    rows, total = ledger.transactions.search(
        user_id,
        account_id=account_id,
        kind=kind,
        category=category,
        start_date=start_date,
        end_date=end_date,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return TransactionPage(
        transactions=[TransactionResponse.model_validate(t) for t in rows],
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return TransactionResponse.model_validate(ledger.get_transaction(user_id, transaction_id))


@router.post("/transactions", response_model=TransactionWriteResponse, status_code=201)
def create_transaction(
    body: TransactionCreate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Post an income or expense and move the account balance with it.

    Flow:
    1. Price the amount into reference and account currency at its date
    2. Apply the signed effect (rejecting overdrafts on non-credit accounts)
    3. Commit posting and balance together
    """
    with atomic(ledger.db):
        posting = ledger.create_transaction(
            user_id,
            body.account_id,
            kind=body.kind,
            category=body.category,
            amount_minor=body.amount_minor,
            currency=body.currency,
            effective_date=body.effective_date,
            description=body.description,
        )
        account = ledger.get_account(user_id, posting.account_id)

    record_ledger_operation("create", posting.kind)
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "transaction_create",
        transaction_id=str(posting.id),
        account_id=str(account.id),
        amount_minor=posting.amount_minor,
        balance_minor=account.balance_minor,
    )
    return TransactionWriteResponse(
        transaction=TransactionResponse.model_validate(posting),
        account_balance_minor=account.balance_minor,
    )


@router.put("/transactions/{transaction_id}", response_model=TransactionWriteResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    body: TransactionUpdate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    with atomic(ledger.db):
        posting = ledger.update_transaction(
            user_id,
            transaction_id,
            kind=body.kind,
            category=body.category,
            amount_minor=body.amount_minor,
            currency=body.currency,
            effective_date=body.effective_date,
            description=body.description,
        )
        account = ledger.get_account(user_id, posting.account_id)

    record_ledger_operation("update", posting.kind)
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "transaction_update",
        transaction_id=str(posting.id),
        account_id=str(account.id),
        amount_minor=posting.amount_minor,
        balance_minor=account.balance_minor,
    )
    return TransactionWriteResponse(
        transaction=TransactionResponse.model_validate(posting),
        account_balance_minor=account.balance_minor,
    )


@router.delete("/transactions/{transaction_id}", response_model=TransactionDeleteResponse)
def delete_transaction(
    transaction_id: uuid.UUID,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Delete a posting (both legs of a transfer) and reverse its balance effect"""
    with atomic(ledger.db):
        posting = ledger.get_transaction(user_id, transaction_id)
        deleted = (
            [leg.id for leg in ledger.transactions.get_transfer_legs(user_id, posting.transfer_id)]
            if posting.transfer_id is not None
            else [posting.id]
        )
        kind = posting.kind
        touched = ledger.delete_transaction(user_id, transaction_id)

    balances = {str(a.id): a.balance_minor for a in touched}
    record_ledger_operation("delete", kind)
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "transaction_delete",
        transaction_ids=[str(i) for i in deleted],
        balances_minor=balances,
    )
    return TransactionDeleteResponse(deleted=deleted, account_balances=balances)
