"""Ledger service - keeps account balances consistent with their postings.

Methods only stage changes on the session (flush, never commit). Callers
wrap them in `atomic(db)` so a posting and its balance change land together
or not at all.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session
from finance_tracker.domain.currency import RateProvider
from finance_tracker.domain.exceptions import (
    AccountNotFoundError,
    InactiveAccountError,
    InvalidAmountError,
    TransactionNotFoundError,
    ValidationError,
)
from finance_tracker.domain.ledger import apply_effect, price_amount, reprice_amount, signed_effect
from finance_tracker.domain.models import TRANSACTION_KINDS, PricedAmount
from finance_tracker.domain.money import normalize_currency, require_minor_units
from finance_tracker.infrastructure.database.models import Account, LedgerTransaction
from finance_tracker.infrastructure.database.repositories import AccountRepository, TransactionRepository

BALANCE_ADJUSTMENT_CATEGORY = "Balance Adjustment"
TRANSFER_CATEGORY = "Transfer"


def _require_positive(amount_minor: int) -> int:
    require_minor_units(amount_minor)
    if amount_minor <= 0:
        raise InvalidAmountError("Amount must be positive")
    return amount_minor


def _set_price(posting: LedgerTransaction, priced: PricedAmount) -> None:
    posting.amount_minor = priced.amount_minor
    posting.currency = priced.currency
    posting.exchange_rate_to_reference = priced.exchange_rate_to_reference
    posting.reference_amount_minor = priced.reference_amount_minor
    posting.account_rate_to_reference = priced.account_rate_to_reference
    posting.account_amount_minor = priced.account_amount_minor


class LedgerService:
    """Creates, edits and removes postings together with their balance effects"""

    def __init__(self, db: Session, rates: RateProvider):
        self.db = db
        self.rates = rates
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def get_account(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> Account:
        account = self.accounts.get(owner_id, account_id)
        if account is None:
            raise AccountNotFoundError("Account not found")
        return account

    def get_transaction(self, owner_id: uuid.UUID, transaction_id: uuid.UUID) -> LedgerTransaction:
        posting = self.transactions.get(owner_id, transaction_id)
        if posting is None:
            raise TransactionNotFoundError("Transaction not found")
        return posting

    def _active_account(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> Account:
        account = self.get_account(owner_id, account_id)
        if not account.is_active:
            raise InactiveAccountError("Account is inactive")
        return account

    def _post(self, account: Account, posting: LedgerTransaction) -> None:
        effect = signed_effect(posting.kind, posting.account_amount_minor, posting.direction)
        account.balance_minor = apply_effect(account.balance_minor, effect, account.account_type)

    def _reverse(self, account: Account, posting: LedgerTransaction) -> None:
        # Undo exactly what was applied, whatever the rate table says today
        effect = signed_effect(posting.kind, posting.account_amount_minor, posting.direction)
        account.balance_minor = account.balance_minor - effect

    def create_transaction(
        self,
        owner_id: uuid.UUID,
        account_id: uuid.UUID,
        kind: str,
        category: str,
        amount_minor: int,
        currency: Optional[str] = None,
        effective_date: Optional[date] = None,
        description: str = "",
        work_shift_id: Optional[uuid.UUID] = None,
    ) -> LedgerTransaction:
        """
        Post an income or expense against an account.

        Raises:
            AccountNotFoundError: account missing or owned by someone else
            InactiveAccountError: account is deactivated
            InsufficientFundsError: expense overdraws a non-credit account
            MissingRateError: no rate for the posting or account currency
        """
        if kind == "transfer":
            raise ValidationError("Transfers must be created as a linked pair of postings")
        if kind not in TRANSACTION_KINDS:
            raise ValidationError(f"Invalid transaction kind: {kind!r}")
        _require_positive(amount_minor)

        account = self._active_account(owner_id, account_id)
        currency = normalize_currency(currency) if currency else account.currency
        effective_date = effective_date or date.today()

        posting = LedgerTransaction(
            owner_id=owner_id,
            account_id=account.id,
            kind=kind,
            category=category,
            description=description or "",
            effective_date=effective_date,
            work_shift_id=work_shift_id,
        )
        _set_price(posting, price_amount(amount_minor, currency, account.currency, self.rates, effective_date))

        self._post(account, posting)
        self.transactions.add(posting)
        return posting

    def update_transaction(
        self,
        owner_id: uuid.UUID,
        transaction_id: uuid.UUID,
        kind: Optional[str] = None,
        category: Optional[str] = None,
        amount_minor: Optional[int] = None,
        currency: Optional[str] = None,
        effective_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> LedgerTransaction:
        """
        Edit a posting: reverse its old effect, then apply the new one.

        Money is repriced only when amount, currency or date change. An
        amount-only edit reuses the rates captured when the posting was
        created, so the reference equivalent never drifts to a later rate.
        """
        posting = self.get_transaction(owner_id, transaction_id)
        if posting.transfer_id is not None:
            raise ValidationError("Transfer legs cannot be edited; delete the transfer and create a new one")
        if kind == "transfer":
            raise ValidationError("Transactions cannot be turned into transfers")
        if kind is not None and kind not in TRANSACTION_KINDS:
            raise ValidationError(f"Invalid transaction kind: {kind!r}")
        if amount_minor is not None:
            _require_positive(amount_minor)

        account = self.get_account(owner_id, posting.account_id)
        self._reverse(account, posting)

        new_amount = amount_minor if amount_minor is not None else posting.amount_minor
        new_currency = normalize_currency(currency) if currency else posting.currency
        new_date = effective_date or posting.effective_date

        if new_currency != posting.currency or new_date != posting.effective_date:
            priced = price_amount(new_amount, new_currency, account.currency, self.rates, new_date)
            _set_price(posting, priced)
        elif new_amount != posting.amount_minor:
            priced = reprice_amount(
                new_amount,
                new_currency,
                Decimal(posting.exchange_rate_to_reference),
                Decimal(posting.account_rate_to_reference),
            )
            _set_price(posting, priced)

        posting.effective_date = new_date
        if kind is not None:
            posting.kind = kind
        if category is not None:
            posting.category = category
        if description is not None:
            posting.description = description

        self._post(account, posting)
        self.db.flush()
        return posting

    def delete_transaction(self, owner_id: uuid.UUID, transaction_id: uuid.UUID) -> List[Account]:
        """Remove a posting (both legs for a transfer) and reverse its effect; returns touched accounts"""
        posting = self.get_transaction(owner_id, transaction_id)
        if posting.transfer_id is not None:
            legs = self.transactions.get_transfer_legs(owner_id, posting.transfer_id)
        else:
            legs = [posting]

        touched = []
        for leg in legs:
            account = self.get_account(owner_id, leg.account_id)
            self._reverse(account, leg)
            self.transactions.delete(leg)
            touched.append(account)
        return touched

    def create_transfer(
        self,
        owner_id: uuid.UUID,
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount_minor: int,
        currency: Optional[str] = None,
        effective_date: Optional[date] = None,
        description: str = "",
        category: str = TRANSFER_CATEGORY,
    ) -> Tuple[LedgerTransaction, LedgerTransaction]:
        """
        Move money between two accounts as a linked pair of postings.

        The outgoing leg debits the source account (subject to the overdraft
        rule); the incoming leg credits the destination, converted into its
        currency. Both legs share a transfer_id.
        """
        if from_account_id == to_account_id:
            raise ValidationError("Source and destination accounts must differ")
        _require_positive(amount_minor)

        source = self._active_account(owner_id, from_account_id)
        destination = self._active_account(owner_id, to_account_id)
        currency = normalize_currency(currency) if currency else source.currency
        effective_date = effective_date or date.today()
        transfer_id = uuid.uuid4()

        legs = []
        for account, direction in ((source, "out"), (destination, "in")):
            leg = LedgerTransaction(
                owner_id=owner_id,
                account_id=account.id,
                kind="transfer",
                direction=direction,
                transfer_id=transfer_id,
                category=category,
                description=description or "",
                effective_date=effective_date,
            )
            _set_price(leg, price_amount(amount_minor, currency, account.currency, self.rates, effective_date))
            self._post(account, leg)
            legs.append(self.transactions.add(leg))

        return legs[0], legs[1]

    def adjust_balance(
        self,
        owner_id: uuid.UUID,
        account: Account,
        target_balance_minor: int,
    ) -> Optional[LedgerTransaction]:
        """Bring an account to an explicit balance with an offsetting posting"""
        require_minor_units(target_balance_minor)
        difference = target_balance_minor - account.balance_minor
        if difference == 0:
            return None

        return self.create_transaction(
            owner_id=owner_id,
            account_id=account.id,
            kind="income" if difference > 0 else "expense",
            category=BALANCE_ADJUSTMENT_CATEGORY,
            amount_minor=abs(difference),
            currency=account.currency,
            description="Manual balance adjustment",
        )
