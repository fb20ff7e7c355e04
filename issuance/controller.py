"""
MintGate Mint Controller

This module provides the MintController class that orchestrates issuance for
a single collection. It acts as the central coordinator for:
- Channel enablement (general and whitelist)
- Payment validation
- Whitelist membership verification
- Supply cap accounting
- Issuance through the ownership-ledger collaborator
- Payment custody and owner-only configuration

Every state-changing call is one atomic transition: all checks run before any
mutation, and if anything fails afterwards every mutation of that call is
rolled back before the exception reaches the caller.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from crypto.keys import normalize_address
from crypto.merkle import is_zero_root, leaf_for, parse_hash, verify
from registry.schema import CollectionConfig, CollectionState
from registry.storage import StorageError

from .access import AccessGuard
from .accounts import AccountBook, PayoutTarget
from .errors import (
    Channel,
    ChannelDisabled,
    CounterKind,
    PaymentInsufficient,
    ProofInvalid,
    WhitelistUnconfigured,
)
from .events import EventLog, EventType, IssuanceEvent
from .ledger import InMemoryOwnershipLedger, OwnershipLedger, fixed_receiver
from .royalty import RoyaltyInfo
from .supply import SupplyLedger
from .vault import PaymentVault


@dataclass
class MintRequest:
    """A single mint submission."""
    caller: str
    recipient: str
    count: int = 1
    value: int = 0
    channel: Channel = Channel.GENERAL
    proof: List[bytes] = field(default_factory=list)

    def __post_init__(self):
        self.channel = Channel(self.channel)


class MintController:
    """
    Issuance controller for one collection.

    The controller holds handles to its collaborators (ownership ledger,
    payout target) rather than inheriting from a token standard, so any
    object implementing the ledger protocol can back it.
    """

    def __init__(
        self,
        config: CollectionConfig,
        ledger: Optional[OwnershipLedger] = None,
        payout: Optional[PayoutTarget] = None,
        supply: Optional[SupplyLedger] = None,
        custody_balance: int = 0,
        events: Optional[EventLog] = None
    ):
        self.logger = logging.getLogger(__name__)
        self._lock = RLock()

        self.name = config.name
        self.symbol = config.symbol
        self.custody_address = config.custody_address
        self._base_uri = config.base_uri
        self._merkle_root = parse_hash(config.merkle_root)
        self._allow_general_mint = config.allow_general_mint
        self._allow_whitelist_mint = config.allow_whitelist_mint
        self.mint_price = config.mint_price
        self.whitelist_price = config.whitelist_price

        self.ledger = ledger if ledger is not None else InMemoryOwnershipLedger()
        self.supply = supply or SupplyLedger(config.total_supply_cap, config.whitelist_supply_cap)
        self.guard = AccessGuard(config.owner)
        self.vault = PaymentVault(self.guard, payout if payout is not None else AccountBook(), custody_balance)
        self.royalty = RoyaltyInfo(config.custody_address, config.royalty_bps)
        self.events = events if events is not None else EventLog()

    # Read surface

    @property
    def owner(self) -> str:
        return self.guard.owner

    @property
    def current_token_id(self) -> int:
        return self.supply.current(CounterKind.TOTAL)

    @property
    def whitelist_count(self) -> int:
        return self.supply.current(CounterKind.WHITELIST)

    @property
    def total_supply_cap(self) -> int:
        return self.supply.cap(CounterKind.TOTAL)

    @property
    def whitelist_supply_cap(self) -> int:
        return self.supply.cap(CounterKind.WHITELIST)

    @property
    def base_uri(self) -> str:
        return self._base_uri

    @property
    def merkle_root(self) -> bytes:
        return self._merkle_root

    @property
    def allow_general_mint(self) -> bool:
        return self._allow_general_mint

    @property
    def allow_whitelist_mint(self) -> bool:
        return self._allow_whitelist_mint

    @property
    def balance(self) -> int:
        """Custody balance awaiting withdrawal."""
        return self.vault.balance

    def royalty_info(self, token_id: int, sale_price: int) -> Tuple[str, int]:
        return self.royalty.royalty_info(token_id, sale_price)

    def owner_of(self, token_id: int) -> str:
        return self.ledger.owner_of(token_id)

    def balance_of(self, identity: str) -> int:
        return self.ledger.balance_of(identity)

    def snapshot(self) -> Dict[str, Any]:
        """Configuration, counters and custody balance as a flat mapping."""
        return {
            **self.to_config().model_dump(mode="json"),
            "current_token_id": self.current_token_id,
            "whitelist_count": self.whitelist_count,
            "custody_balance": self.balance,
        }

    # Mutating surface

    def submit(self, request: MintRequest) -> List[int]:
        """Dispatch a MintRequest to its channel."""
        if request.channel == Channel.WHITELIST:
            return self.whitelist_mint_to(
                request.caller, request.recipient, request.proof,
                count=request.count, value=request.value
            )
        return self.mint_to(request.caller, request.recipient, count=request.count, value=request.value)

    def mint_to(self, caller: str, recipient: str, count: int = 1, value: int = 0) -> List[int]:
        """
        Mint ``count`` tokens to ``recipient`` through the general channel.

        Args:
            caller: Identity submitting the request
            recipient: Identity receiving the tokens
            count: Number of tokens
            value: Attached payment

        Returns:
            Assigned token ids

        Raises:
            ChannelDisabled: General mint is switched off
            PaymentInsufficient: value < mint_price * count
            SupplyExhausted: Total cap would be exceeded
            RecipientInvalid: Recipient is the zero address
            RecipientRejected: Recipient contract did not acknowledge
        """
        _check_count(count)
        caller = normalize_address(caller)
        with self._lock:
            if not self._allow_general_mint:
                self._reject(Channel.GENERAL, caller, "channel disabled")
                raise ChannelDisabled(Channel.GENERAL)

            required = self.mint_price * count
            if value < required:
                self._reject(Channel.GENERAL, caller, f"payment {value} < {required}")
                raise PaymentInsufficient(required, value)

            return self._issue(Channel.GENERAL, caller, recipient, count, value, {CounterKind.TOTAL: count})

    def whitelist_mint_to(
        self,
        caller: str,
        recipient: str,
        proof: Sequence[bytes],
        count: int = 1,
        value: int = 0
    ) -> List[int]:
        """
        Mint ``count`` tokens to ``recipient`` through the whitelist channel.

        Membership is proven for the caller, not for the recipient, so a
        member may mint on another identity's behalf.

        Raises:
            ChannelDisabled: Whitelist mint is switched off
            WhitelistUnconfigured: No Merkle root is set
            ProofInvalid: Proof does not verify for the caller
            PaymentInsufficient: value < whitelist_price
            SupplyExhausted: Whitelist or total cap would be exceeded
            RecipientInvalid: Recipient is the zero address
            RecipientRejected: Recipient contract did not acknowledge
        """
        _check_count(count)
        caller = normalize_address(caller)
        with self._lock:
            if not self._allow_whitelist_mint:
                self._reject(Channel.WHITELIST, caller, "channel disabled")
                raise ChannelDisabled(Channel.WHITELIST)

            if is_zero_root(self._merkle_root):
                self._reject(Channel.WHITELIST, caller, "no merkle root")
                raise WhitelistUnconfigured("Whitelist Merkle root is not set")

            if not verify(self._merkle_root, list(proof), leaf_for(caller)):
                self._reject(Channel.WHITELIST, caller, "proof does not verify")
                raise ProofInvalid(f"Invalid whitelist proof for {normalize_address(caller)}")

            # Price is checked for a single unit even when count > 1; the
            # general channel scales by count. Kept as observed.
            if value < self.whitelist_price:
                self._reject(Channel.WHITELIST, caller, f"payment {value} < {self.whitelist_price}")
                raise PaymentInsufficient(self.whitelist_price, value)

            return self._issue(
                Channel.WHITELIST, caller, recipient, count, value,
                {CounterKind.WHITELIST: count, CounterKind.TOTAL: count}
            )

    def withdraw(self, caller: str, payee: str) -> int:
        """Move the entire custody balance to ``payee``. Owner only."""
        with self._lock:
            amount = self.vault.withdraw(caller, payee)
            self.events.record(EventType.WITHDRAWAL, normalize_address(caller),
                               payee=normalize_address(payee), amount=amount)
            return amount

    # Owner configuration

    def set_base_uri(self, caller: str, base_uri: str) -> None:
        with self._lock:
            self.guard.require_owner(caller)
            self._base_uri = base_uri
            self._configured(caller, "base_uri", base_uri)

    def set_merkle_root(self, caller: str, root) -> None:
        with self._lock:
            self.guard.require_owner(caller)
            self._merkle_root = parse_hash(root)
            self._configured(caller, "merkle_root", "0x" + self._merkle_root.hex())

    def set_allow_general_mint(self, caller: str, allow: bool) -> None:
        with self._lock:
            self.guard.require_owner(caller)
            self._allow_general_mint = bool(allow)
            self._configured(caller, "allow_general_mint", self._allow_general_mint)

    def set_allow_whitelist_mint(self, caller: str, allow: bool) -> None:
        with self._lock:
            self.guard.require_owner(caller)
            self._allow_whitelist_mint = bool(allow)
            self._configured(caller, "allow_whitelist_mint", self._allow_whitelist_mint)

    def set_royalty_bps(self, caller: str, royalty_bps: int) -> None:
        with self._lock:
            self.guard.require_owner(caller)
            self.royalty.set_royalty_bps(royalty_bps)
            self._configured(caller, "royalty_bps", royalty_bps)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            previous = self.guard.owner
            self.guard.transfer_ownership(caller, new_owner)
            self.events.record(EventType.OWNERSHIP_TRANSFER, previous, new_owner=self.guard.owner)

    # Internals

    def _issue(self, channel, caller, recipient, count, value, reservation) -> List[int]:
        """Reserve supply, issue tokens and take custody of the payment as one unit."""
        with self._atomic() as issued:
            first = self.supply.reserve_many(reservation)[CounterKind.TOTAL] + 1
            token_ids = list(range(first, first + count))

            for token_id in token_ids:
                self.ledger.issue(recipient, token_id, operator=caller)
                issued.append(token_id)

            self.vault.deposit(value)

        recipient = normalize_address(recipient)
        self.events.record(
            EventType.MINT, normalize_address(caller),
            channel=channel.value, recipient=recipient, token_ids=token_ids, value=value
        )
        self.logger.info(
            f"{channel.value} mint: {count} token(s) {token_ids[0]}..{token_ids[-1]} to {recipient}"
        )
        return token_ids

    @contextmanager
    def _atomic(self):
        """
        Roll back counters, issued tokens and custody balance if the body raises.

        Yields the list the body appends each issued token id to.
        """
        supply_snapshot = self.supply.snapshot()
        balance_snapshot = self.vault.balance
        issued: List[int] = []
        try:
            yield issued
        except Exception:
            for token_id in reversed(issued):
                self.ledger.revoke(token_id)
            self.supply.restore(supply_snapshot)
            self.vault.restore(balance_snapshot)
            if issued:
                self.logger.debug(f"Rolled back {len(issued)} issued token(s)")
            raise

    def _reject(self, channel: Channel, caller: str, reason: str) -> None:
        self.logger.warning(f"{channel.value} mint by {caller} rejected: {reason}")

    def _configured(self, caller: str, key: str, value) -> None:
        self.events.record(EventType.CONFIGURATION_CHANGE, normalize_address(caller), key=key, value=value)
        self.logger.info(f"{key} set to {value!r}")

    # Persistence

    def to_config(self) -> CollectionConfig:
        return CollectionConfig(
            name=self.name,
            symbol=self.symbol,
            base_uri=self._base_uri,
            mint_price=self.mint_price,
            whitelist_price=self.whitelist_price,
            total_supply_cap=self.total_supply_cap,
            whitelist_supply_cap=self.whitelist_supply_cap,
            merkle_root="0x" + self._merkle_root.hex(),
            allow_general_mint=self._allow_general_mint,
            allow_whitelist_mint=self._allow_whitelist_mint,
            royalty_bps=self.royalty.royalty_bps,
            owner=self.owner,
            custody_address=self.custody_address,
        )

    def to_state(self) -> CollectionState:
        """
        Snapshot the collection for persistence.

        Ledger and payout details are included when the collaborators are
        the in-memory reference implementations.

        Raises:
            StorageError: If the counters no longer match the issued tokens,
                as after ``supply.force`` without matching ledger changes
        """
        try:
            state = CollectionState(
                config=self.to_config(),
                current_token_id=self.current_token_id,
                whitelist_count=self.whitelist_count,
                custody_balance=self.balance,
                token_owners=(
                    self.ledger.to_dict() if isinstance(self.ledger, InMemoryOwnershipLedger)
                    else {i: self.ledger.owner_of(i) for i in range(1, self.current_token_id + 1)}
                ),
                events=self.events.to_list(),
            )
        except ValidationError as e:
            raise StorageError(f"Collection state is not persistable: {e}")
        if isinstance(self.ledger, InMemoryOwnershipLedger):
            state.contracts = self.ledger.contract_acknowledgements()
        if isinstance(self.vault.payout, AccountBook):
            state.payouts = self.vault.payout.to_dict()
            state.rejecting_payees = self.vault.payout.rejecting()
        return state

    @classmethod
    def from_state(cls, state: CollectionState) -> 'MintController':
        """Rebuild a controller backed by the in-memory collaborators."""
        ledger = InMemoryOwnershipLedger(state.token_owners)
        for identity, acknowledges in state.contracts.items():
            ledger.register_contract(identity, fixed_receiver(acknowledges))

        payout = AccountBook(rejecting=state.rejecting_payees, balances=state.payouts)
        supply = SupplyLedger(
            state.config.total_supply_cap,
            state.config.whitelist_supply_cap,
            total=state.current_token_id,
            whitelist=state.whitelist_count,
        )
        events = EventLog(IssuanceEvent.from_dict(e) for e in state.events)
        return cls(state.config, ledger=ledger, payout=payout, supply=supply,
                   custody_balance=state.custody_balance, events=events)


def _check_count(count: int) -> None:
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        raise ValueError(f"Mint count must be a positive integer, got {count!r}")

