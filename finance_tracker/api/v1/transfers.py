"""POST /v1/transfers - move money between two of the caller's accounts"""

import uuid

from fastapi import APIRouter, Depends, Request

from finance_tracker.api.dependencies import get_current_user_id, get_ledger_service, get_request_id
from finance_tracker.api.v1.schemas import TransactionResponse, TransferCreate, TransferResponse
from finance_tracker.infrastructure.database.session import atomic
from finance_tracker.infrastructure.observability.logging import log_ledger_event
from finance_tracker.infrastructure.observability.metrics import record_ledger_operation
from finance_tracker.services.ledger import LedgerService

router = APIRouter()


@router.post("/transfers", response_model=TransferResponse, status_code=201)
def create_transfer(
    body: TransferCreate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Create a transfer as two linked postings.

    The outgoing leg debits the source (overdraft rule applies); the incoming
    leg credits the destination in its own currency. Either both land or
    neither does.
    """
    with atomic(ledger.db):
        outgoing, incoming = ledger.create_transfer(
            user_id,
            body.from_account_id,
            body.to_account_id,
            amount_minor=body.amount_minor,
            currency=body.currency,
            effective_date=body.effective_date,
            description=body.description,
            category=body.category,
        )

    record_ledger_operation("transfer", "transfer")
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "transfer_create",
        transfer_id=str(outgoing.transfer_id),
        from_account_id=str(outgoing.account_id),
        to_account_id=str(incoming.account_id),
        amount_minor=outgoing.amount_minor,
    )
    return TransferResponse(
        transfer_id=outgoing.transfer_id,
        outgoing=TransactionResponse.model_validate(outgoing),
        incoming=TransactionResponse.model_validate(incoming),
    )
