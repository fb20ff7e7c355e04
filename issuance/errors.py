"""
Issuance Exceptions for MintGate

Every failure aborts the enclosing call with no state change; callers
recover by resubmitting a corrected request.
"""

from enum import Enum


class Channel(str, Enum):
    """Mint channels."""
    GENERAL = "general"
    WHITELIST = "whitelist"


class CounterKind(str, Enum):
    """Supply counters."""
    TOTAL = "total"
    WHITELIST = "whitelist"


class IssuanceError(Exception):
    """Base exception for all issuance errors."""
    pass


class PaymentInsufficient(IssuanceError):
    """Raised when the attached value is below the required price."""

    def __init__(self, required: int, provided: int):
        self.required = required
        self.provided = provided
        super().__init__(f"Insufficient payment: required {required}, provided {provided}")


class ChannelDisabled(IssuanceError):
    """Raised when minting through a channel that is switched off."""

    def __init__(self, channel: Channel):
        self.channel = Channel(channel)
        super().__init__(f"{self.channel.value.capitalize()} mint is disabled")


class SupplyExhausted(IssuanceError):
    """Raised when a request would push a counter past its cap."""

    def __init__(self, counter: CounterKind, current: int, requested: int, cap: int):
        self.counter = CounterKind(counter)
        self.current = current
        self.requested = requested
        self.cap = cap
        super().__init__(
            f"{self.counter.value.capitalize()} supply exhausted: "
            f"current {current} + requested {requested} exceeds cap {cap}"
        )


class ProofInvalid(IssuanceError):
    """Raised when a whitelist proof does not verify against the root."""
    pass


class WhitelistUnconfigured(IssuanceError):
    """Raised when the whitelist channel has no Merkle root set."""
    pass


class RecipientInvalid(IssuanceError):
    """Raised when issuing to the null identity."""
    pass


class RecipientRejected(IssuanceError):
    """Raised when a contract-like recipient does not acknowledge receipt."""
    pass


class Unauthorized(IssuanceError):
    """Raised when a non-owner calls an owner-restricted operation."""

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"Caller {caller} is not the owner")


class PayoutTransferFailed(IssuanceError):
    """Raised when the payee rejects a withdrawal transfer."""

    def __init__(self, payee: str, amount: int):
        self.payee = payee
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {payee} failed")
