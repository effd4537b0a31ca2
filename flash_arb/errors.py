"""
Exceptions raised by the flash arbitrage engine and its collaborators.

Every failure aborts the current unit of execution; see chain.Chain.atomic().
"""


class FlashArbitrageError(Exception):
    """Base class for all failures of an arbitrage attempt."""


# Trust gate
class UntrustedLender(FlashArbitrageError):
    """Loan callback did not come from the configured lending facility."""


class UntrustedInitiator(FlashArbitrageError):
    """Loan being settled was not requested by this engine."""


# Pre-flight
class AmountOutTooLow(FlashArbitrageError):
    """Simulated two-hop proceeds are below the requested minimum."""


class InconsistentParams(FlashArbitrageError):
    """Caller-supplied parameters can never settle (zero amount, min-out too low, same tokens)."""


class MalformedParams(FlashArbitrageError):
    """Auxiliary loan data could not be decoded into ArbitrageParams."""


# Venue
class SlippageExceeded(FlashArbitrageError):
    """Realized swap output fell below the supplied floor."""


class DeadlineExpired(FlashArbitrageError):
    """Swap executed after its deadline."""


class InvalidPath(FlashArbitrageError):
    """Swap path is not a two-token path over a known pool."""


class InsufficientLiquidity(FlashArbitrageError):
    """Pool cannot serve the requested amount."""


# Settlement
class InsufficientProceeds(FlashArbitrageError):
    """Final proceeds do not cover principal + fee + required surplus."""


# Token primitives
class InsufficientBalance(FlashArbitrageError):
    pass


class InsufficientAllowance(FlashArbitrageError):
    pass


# Lending facility
class LoanTooLarge(FlashArbitrageError):
    pass


class CallbackRejected(FlashArbitrageError):
    """Borrower callback returned something other than the acknowledgement value."""
