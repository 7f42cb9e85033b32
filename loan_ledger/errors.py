"""Exceptions raised by the loan ledger engine."""


class LoanError(ValueError):
    """Base class for loan ledger errors."""


class InvalidLoanError(LoanError):
    """The loan terms admit no meaningful amortization (e.g. principal <= 0)."""


class InvalidTermError(LoanError):
    """A term/minimum-payment combination reached a branch that cannot handle it."""


class InvalidPaymentError(LoanError):
    """A payment was rejected while being recorded."""
