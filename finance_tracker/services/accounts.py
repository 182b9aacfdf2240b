"""Account lifecycle: creation, edits, balance adjustments and removal"""

import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple

from finance_tracker.domain.exceptions import ConflictError, InvalidAmountError, ValidationError
from finance_tracker.domain.models import ACCOUNT_TYPES, CREDIT_ACCOUNT_TYPES
from finance_tracker.domain.money import normalize_currency, require_minor_units
from finance_tracker.infrastructure.database.models import Account, LedgerTransaction
from finance_tracker.services.ledger import LedgerService

RECENT_TRANSACTION_LIMIT = 10
STATS_WINDOW_DAYS = 30


@dataclass
class AccountActivity:
    """Recent postings and 30-day totals in the account's currency"""

    recent: List[LedgerTransaction]
    income_minor: int
    expenses_minor: int
    transaction_count: int


def _check_balance_allowed(balance_minor: int, account_type: str) -> None:
    if balance_minor < 0 and account_type not in CREDIT_ACCOUNT_TYPES:
        raise InvalidAmountError("Only credit accounts can carry a negative balance")


class AccountService:
    """Account operations built on the ledger"""

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger
        self.accounts = ledger.accounts
        self.transactions = ledger.transactions

    def _ensure_unique_name(self, owner_id: uuid.UUID, name: str, current: Optional[Account] = None) -> None:
        existing = self.accounts.find_by_name(owner_id, name)
        if existing is not None and existing is not current:
            raise ConflictError("An account with this name already exists")

    def create_account(
        self,
        owner_id: uuid.UUID,
        name: str,
        account_type: str,
        balance_minor: int = 0,
        currency: str = "USD",
        institution: str = "",
    ) -> Account:
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(f"Invalid account type: {account_type!r}")
        require_minor_units(balance_minor)
        _check_balance_allowed(balance_minor, account_type)
        self._ensure_unique_name(owner_id, name)

        return self.accounts.add(
            Account(
                owner_id=owner_id,
                name=name.strip(),
                account_type=account_type,
                balance_minor=balance_minor,
                currency=normalize_currency(currency),
                institution=institution or "",
                is_active=True,
            )
        )

    def update_account(
        self,
        owner_id: uuid.UUID,
        account_id: uuid.UUID,
        name: Optional[str] = None,
        account_type: Optional[str] = None,
        currency: Optional[str] = None,
        institution: Optional[str] = None,
        is_active: Optional[bool] = None,
        balance_minor: Optional[int] = None,
    ) -> Tuple[Account, Optional[LedgerTransaction]]:
        """
        Apply account edits; a new balance is reached through an offsetting
        "Balance Adjustment" posting rather than by overwriting the balance.
        """
        account = self.ledger.get_account(owner_id, account_id)

        if name is not None and name.strip().lower() != account.name.lower():
            self._ensure_unique_name(owner_id, name, current=account)
            account.name = name.strip()
        if institution is not None:
            account.institution = institution

        if currency is not None:
            new_currency = normalize_currency(currency)
            if new_currency != account.currency:
                if self.transactions.count_for_account(owner_id, account.id) > 0:
                    raise ConflictError("Currency cannot change once the account has transactions")
                account.currency = new_currency

        if account_type is not None:
            if account_type not in ACCOUNT_TYPES:
                raise ValidationError(f"Invalid account type: {account_type!r}")
            _check_balance_allowed(account.balance_minor, account_type)
            account.account_type = account_type

        # Reactivate before adjusting, deactivate after
        if is_active:
            account.is_active = True

        adjustment = None
        if balance_minor is not None:
            adjustment = self.ledger.adjust_balance(owner_id, account, balance_minor)

        if is_active is False:
            account.is_active = False

        self.ledger.db.flush()
        return account, adjustment

    def delete_account(self, owner_id: uuid.UUID, account_id: uuid.UUID, force: bool = False) -> Tuple[str, int]:
        """
        Remove an account.

        With postings and no force the account is only deactivated, so its
        history stays intact. A removed transfer leg takes its partner leg on
        the other account with it. Returns the outcome and the number of
        postings removed.
        """
        account = self.ledger.get_account(owner_id, account_id)
        transaction_count = self.transactions.count_for_account(owner_id, account.id)

        if transaction_count > 0 and not force:
            account.is_active = False
            self.ledger.db.flush()
            return "deactivated", 0

        deleted = 0
        if transaction_count:
            # Remove both legs of each transfer
            legs, _ = self.transactions.search(owner_id, account_id=account.id, kind="transfer")
            one_leg_per_transfer = {leg.transfer_id: leg.id for leg in legs}
            for leg_id in one_leg_per_transfer.values():
                deleted += len(self.ledger.delete_transaction(owner_id, leg_id))
            self.ledger.db.flush()
            deleted += self.transactions.delete_for_account(owner_id, account.id)
        self.accounts.delete(account)
        return "deleted", deleted

    def reactivate_account(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> Account:
        account = self.ledger.get_account(owner_id, account_id)
        if account.is_active:
            raise ConflictError("Account is already active")
        account.is_active = True
        self.ledger.db.flush()
        return account

    def activity(self, owner_id: uuid.UUID, account: Account, today: Optional[date] = None) -> AccountActivity:
        today = today or date.today()
        recent, _ = self.transactions.search(owner_id, account_id=account.id, limit=RECENT_TRANSACTION_LIMIT)
        window, _ = self.transactions.search(
            owner_id,
            account_id=account.id,
            start_date=today - timedelta(days=STATS_WINDOW_DAYS),
        )

        income = sum(t.account_amount_minor for t in window if t.kind == "income")
        expenses = sum(t.account_amount_minor for t in window if t.kind == "expense")
        return AccountActivity(
            recent=recent,
            income_minor=income,
            expenses_minor=expenses,
            transaction_count=len(window),
        )
