# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

Every error carries a stable `code` (the error kind) so callers can branch
on `exc.code` without parsing messages. Adapter errors (invoices, purchases,
payments, production) subclass AccountingServiceError too.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    code = "accounting_error"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class UnbalancedEntryError(AccountingServiceError):
    """Raised when a journal's debits and credits differ by 0.01 or more."""

    code = "unbalanced_entry"


class AccountNotFoundError(AccountingServiceError):
    """Raised when an account code or role cannot be resolved in a business's chart."""

    code = "account_not_found"


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""

    code = "invalid_entry"


class PeriodLockedError(AccountingServiceError):
    """Raised when posting into (or reversing out of) a closed accounting period."""

    code = "period_locked"


class PeriodCloseError(AccountingServiceError):
    code = "period_close_failed"


class ExpensePostingError(AccountingServiceError):
    code = "expense_failed"
