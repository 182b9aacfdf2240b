"""Dependency injection for FastAPI endpoints"""

import uuid
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from finance_tracker.domain.currency import RateTable
from finance_tracker.domain.exceptions import AuthenticationError
from finance_tracker.infrastructure.clients.rates import RatesClient
from finance_tracker.infrastructure.database.repositories import UserRepository
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.ledger import LedgerService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_rate_table(request: Request) -> RateTable:
    """Rate table version current when the request arrived"""
    return request.app.state.rate_table


def get_rates_client() -> RatesClient:
    """Provide exchange rates API client instance"""
    return RatesClient()


def get_current_user_id(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """
    Resolve the caller from the X-User-ID header.

    Raises:
        AuthenticationError: header missing, malformed, or naming no user
    """
    if not x_user_id:
        raise AuthenticationError("Missing user identity")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError as e:
        raise AuthenticationError("Invalid user identity") from e

    if UserRepository(db).get_by_id(user_id) is None:
        raise AuthenticationError("Unknown user")
    return user_id


def get_ledger_service(
    db: Session = Depends(get_db),
    rates: RateTable = Depends(get_rate_table),
) -> LedgerService:
    return LedgerService(db, rates)
