class PayoutEngineError(Exception):
    pass


class DataInvariantError(PayoutEngineError):
    """A transaction's amounts are inconsistent (fee identity or negative net)."""


class ConfigurationError(PayoutEngineError):
    """Payout or fee configuration cannot be applied."""


class DoubleAssignmentError(PayoutEngineError):
    """A transaction was about to join a second payout.

    Always a logic or concurrency bug; the batch run that hit it is aborted.
    """


class InvalidStatusTransitionError(PayoutEngineError):
    pass


class TransactionNotFoundError(PayoutEngineError):
    pass


class IneligibleTransactionError(PayoutEngineError):
    """A payout was about to include a transaction that is not settled, or
    that belongs to another seller."""


class WithdrawalError(PayoutEngineError):
    """A withdrawal request cannot be honoured against the seller's balance."""
