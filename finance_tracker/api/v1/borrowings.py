"""/v1/borrowings - money borrowed from or lent to others"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_current_user_id, get_rate_table, get_request_id
from finance_tracker.api.v1.schemas import BorrowingCreate, BorrowingResponse, BorrowingUpdate, PaymentRequest
from finance_tracker.domain.currency import RateTable
from finance_tracker.infrastructure.database.session import atomic, get_db
from finance_tracker.infrastructure.observability.logging import log_ledger_event
from finance_tracker.infrastructure.observability.metrics import borrowing_payment_counter
from finance_tracker.services.borrowings import BorrowingService

router = APIRouter()


def get_borrowing_service(
    db: Session = Depends(get_db),
    rates: RateTable = Depends(get_rate_table),
) -> BorrowingService:
    return BorrowingService(db, rates)


@router.get("/borrowings", response_model=List[BorrowingResponse])
def list_borrowings(
    status: Optional[str] = Query(None, pattern="^(pending|partially_paid|paid|overdue)$"),
    direction: Optional[str] = Query(None, pattern="^(borrowed|lent)$"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    """List borrowings; statuses are recomputed against today and saved"""
    with atomic(service.db):
        borrowings = service.list(user_id, direction=direction, status=status)
    return [BorrowingResponse.model_validate(b) for b in borrowings]


@router.get("/borrowings/{borrowing_id}", response_model=BorrowingResponse)
def get_borrowing(
    borrowing_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    with atomic(service.db):
        borrowing = service.get(user_id, borrowing_id)
    return BorrowingResponse.model_validate(borrowing)


@router.post("/borrowings", response_model=BorrowingResponse, status_code=201)
def create_borrowing(
    body: BorrowingCreate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    with atomic(service.db):
        borrowing = service.create(
            user_id,
            direction=body.direction,
            counterparty=body.counterparty,
            principal_minor=body.amount_minor,
            currency=body.currency,
            borrowed_on=body.borrowed_on,
            due_date=body.due_date,
            description=body.description,
        )

    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "borrowing_create",
        borrowing_id=str(borrowing.id),
        direction=borrowing.direction,
        principal_minor=borrowing.principal_minor,
    )
    return BorrowingResponse.model_validate(borrowing)


@router.patch("/borrowings/{borrowing_id}", response_model=BorrowingResponse)
def update_borrowing(
    borrowing_id: uuid.UUID,
    body: BorrowingUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    with atomic(service.db):
        borrowing = service.update(
            user_id,
            borrowing_id,
            counterparty=body.counterparty,
            description=body.description,
            due_date=body.due_date,
            clear_due_date=body.clear_due_date,
        )
    return BorrowingResponse.model_validate(borrowing)


@router.post("/borrowings/{borrowing_id}/payments", response_model=BorrowingResponse)
def record_payment(
    borrowing_id: uuid.UUID,
    body: PaymentRequest,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    """Add a payment; rejected once paid or when it would exceed the principal"""
    with atomic(service.db):
        borrowing = service.record_payment(user_id, borrowing_id, body.amount_minor)

    borrowing_payment_counter.labels(direction=borrowing.direction).inc()
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "borrowing_payment",
        borrowing_id=str(borrowing.id),
        amount_minor=body.amount_minor,
        paid_minor=borrowing.paid_minor,
        status=borrowing.status,
    )
    return BorrowingResponse.model_validate(borrowing)


@router.post("/borrowings/{borrowing_id}/settle", response_model=BorrowingResponse)
def settle_borrowing(
    borrowing_id: uuid.UUID,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    with atomic(service.db):
        borrowing = service.settle(user_id, borrowing_id)

    borrowing_payment_counter.labels(direction=borrowing.direction).inc()
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "borrowing_settle",
        borrowing_id=str(borrowing.id),
        paid_minor=borrowing.paid_minor,
    )
    return BorrowingResponse.model_validate(borrowing)


@router.delete("/borrowings/{borrowing_id}", status_code=204)
def delete_borrowing(
    borrowing_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BorrowingService = Depends(get_borrowing_service),
):
    with atomic(service.db):
        service.delete(user_id, borrowing_id)
    return Response(status_code=204)
