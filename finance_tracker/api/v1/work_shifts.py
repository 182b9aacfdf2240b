"""/v1/work-shifts - shifts worked and the income they post"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from finance_tracker.api.dependencies import get_current_user_id, get_ledger_service, get_request_id
from finance_tracker.api.v1.schemas import WorkShiftCreate, WorkShiftResponse
from finance_tracker.infrastructure.database.session import atomic
from finance_tracker.infrastructure.observability.logging import log_ledger_event
from finance_tracker.infrastructure.observability.metrics import record_ledger_operation
from finance_tracker.services.ledger import LedgerService
from finance_tracker.services.work_shifts import WorkShiftService

router = APIRouter()


@router.get("/work-shifts", response_model=List[WorkShiftResponse])
def list_work_shifts(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    shifts = WorkShiftService(ledger).list(user_id, start_date, end_date)
    return [WorkShiftResponse.model_validate(s) for s in shifts]


@router.get("/work-shifts/{shift_id}", response_model=WorkShiftResponse)
def get_work_shift(
    shift_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return WorkShiftResponse.model_validate(WorkShiftService(ledger).get(user_id, shift_id))


@router.post("/work-shifts", response_model=WorkShiftResponse, status_code=201)
def create_work_shift(
    body: WorkShiftCreate,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Record a shift; with account_id its Salary and Tips income is posted in the same commit"""
    with atomic(ledger.db):
        shift = WorkShiftService(ledger).create(
            user_id,
            shift_date=body.shift_date,
            position=body.position,
            start_time=body.start_time,
            end_time=body.end_time,
            hourly_rate_minor=body.hourly_rate_minor,
            tips_minor=body.tips_minor,
            currency=body.currency,
            account_id=body.account_id,
            notes=body.notes,
        )

    if shift.account_id is not None:
        record_ledger_operation("create", "income")
    log_ledger_event(
        get_request_id(request),
        str(user_id),
        "work_shift_create",
        work_shift_id=str(shift.id),
        account_id=str(shift.account_id) if shift.account_id else None,
        total_earnings_minor=shift.total_earnings_minor,
    )
    return WorkShiftResponse.model_validate(shift)
