"""
MintGate Issuance Module

This module provides the issuance control core: supply accounting, payment
custody, owner access control, royalty metadata and the mint controller that
ties them to an ownership-ledger collaborator.
"""

from .errors import (
    Channel,
    CounterKind,
    IssuanceError,
    PaymentInsufficient,
    ChannelDisabled,
    SupplyExhausted,
    ProofInvalid,
    WhitelistUnconfigured,
    RecipientInvalid,
    RecipientRejected,
    Unauthorized,
    PayoutTransferFailed,
)
from .supply import SupplyLedger, DEFAULT_TOTAL_SUPPLY_CAP, DEFAULT_WHITELIST_SUPPLY_CAP
from .access import AccessGuard
from .accounts import AccountBook, PayoutTarget
from .vault import PaymentVault
from .royalty import RoyaltyInfo, ROYALTY_DENOMINATOR
from .ledger import OwnershipLedger, InMemoryOwnershipLedger, TokenNotFoundError, fixed_receiver
from .events import EventLog, EventType, IssuanceEvent
from .controller import MintController, MintRequest

__all__ = [
    "Channel",
    "CounterKind",
    "IssuanceError",
    "PaymentInsufficient",
    "ChannelDisabled",
    "SupplyExhausted",
    "ProofInvalid",
    "WhitelistUnconfigured",
    "RecipientInvalid",
    "RecipientRejected",
    "Unauthorized",
    "PayoutTransferFailed",
    "SupplyLedger",
    "DEFAULT_TOTAL_SUPPLY_CAP",
    "DEFAULT_WHITELIST_SUPPLY_CAP",
    "AccessGuard",
    "AccountBook",
    "PayoutTarget",
    "PaymentVault",
    "RoyaltyInfo",
    "ROYALTY_DENOMINATOR",
    "OwnershipLedger",
    "InMemoryOwnershipLedger",
    "TokenNotFoundError",
    "fixed_receiver",
    "EventLog",
    "EventType",
    "IssuanceEvent",
    "MintController",
    "MintRequest",
]
