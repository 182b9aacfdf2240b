"""/v1/rates - rate table inspection, refresh and conversion"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from finance_tracker.api.dependencies import get_rate_table, get_rates_client, get_request_id
from finance_tracker.api.v1.schemas import ConversionResponse, RateSnapshotSchema, RateTableResponse
from finance_tracker.domain.currency import REFERENCE_CURRENCY, RateTable, convert, snapshot_to_dict
from finance_tracker.domain.money import normalize_currency
from finance_tracker.infrastructure.clients.rates import RatesClient

router = APIRouter()


def _table_response(table: RateTable) -> RateTableResponse:
    return RateTableResponse(
        version=table.version,
        reference_currency=REFERENCE_CURRENCY,
        snapshots=[
            RateSnapshotSchema(effective_date=s.effective_date, rates=snapshot_to_dict(s))
            for s in table.snapshots
        ],
    )


@router.get("/rates", response_model=RateTableResponse)
def get_rates(table: RateTable = Depends(get_rate_table)):
    return _table_response(table)


@router.post("/rates/refresh", response_model=RateTableResponse)
async def refresh_rates(
    request: Request,
    on: Optional[date] = Query(None, alias="date"),
    client: RatesClient = Depends(get_rates_client),
):
    """
    Fetch a snapshot and publish it as a new rate table version.

    Requests already holding the previous table keep using it.
    """
    snapshot = await client.fetch_snapshot(on)
    table = request.app.state.rate_table.with_snapshot(snapshot)
    request.app.state.rate_table = table

    logging.info(
        "Rate table refreshed",
        extra={
            "request_id": get_request_id(request),
            "effective_date": snapshot.effective_date.isoformat(),
            "version": table.version,
        },
    )
    return _table_response(table)


@router.get("/rates/convert", response_model=ConversionResponse)
def convert_amount(
    amount_minor: int = Query(...),
    source: str = Query(..., min_length=3, max_length=3),
    target: str = Query(..., min_length=3, max_length=3),
    on: Optional[date] = Query(None),
    table: RateTable = Depends(get_rate_table),
):
    conversion = convert(amount_minor, normalize_currency(source), normalize_currency(target), table, on)
    return ConversionResponse.model_validate(conversion)
