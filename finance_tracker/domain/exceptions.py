"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any mutation"""

    pass


class InvalidAmountError(ValidationError):
    """Amount is not an integer count of minor units, or out of range"""

    pass


class UnsupportedCurrencyError(ValidationError):
    """Currency code is not one the ledger knows about"""

    pass


class MissingRateError(ValidationError):
    """Rate table has no entry for a requested currency"""

    pass


class NotFoundError(DomainException):
    """Record is missing or owned by another user"""

    pass


class AccountNotFoundError(NotFoundError):
    pass


class TransactionNotFoundError(NotFoundError):
    pass


class BorrowingNotFoundError(NotFoundError):
    pass


class WorkShiftNotFoundError(NotFoundError):
    pass


class BusinessRuleError(DomainException):
    """Operation is well-formed but violates a ledger rule"""

    pass


class InactiveAccountError(BusinessRuleError):
    pass


class InsufficientFundsError(BusinessRuleError):
    """Debit would drive a non-credit account below zero"""

    pass


class BorrowingAlreadyPaidError(BusinessRuleError):
    pass


class PaymentExceedsPrincipalError(BusinessRuleError):
    pass


class ConflictError(DomainException):
    """Record clashes with existing state (duplicate name, already active, ...)"""

    pass


class AuthenticationError(DomainException):
    """Caller identity is missing or invalid"""

    pass


class RatesAPIError(DomainException):
    """Exchange rates API returned an error or is unavailable"""

    pass
