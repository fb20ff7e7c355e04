"""
Ownership Ledger

The issuance core does not own token records; it hands every assigned id to
an ownership-ledger collaborator. This module defines the collaborator
protocol and an in-memory ERC721-like reference ledger used by the CLI and
the test suite.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Mapping, Optional, Protocol

from crypto.keys import normalize_address, is_zero_address, ZERO_ADDRESS
from .errors import IssuanceError, RecipientInvalid, RecipientRejected


# Receipt hook of a contract-like recipient: (operator, sender, token_id) -> acknowledged
TokenReceiver = Callable[[str, str, int], bool]


class TokenNotFoundError(IssuanceError, LookupError):
    """Raised when querying a token id that was never issued."""
    pass


class OwnershipLedger(Protocol):
    """Capabilities the mint controller needs from a record store."""

    def issue(self, owner: str, token_id: int, operator: Optional[str] = None) -> None:
        ...

    def revoke(self, token_id: int) -> None:
        ...

    def owner_of(self, token_id: int) -> str:
        ...

    def balance_of(self, identity: str) -> int:
        ...


class InMemoryOwnershipLedger:
    """
    Reference ownership ledger.

    Identities registered with :meth:`register_contract` are contract-like:
    issuance to them succeeds only when their receiver hook acknowledges.
    A contract registered without a hook never acknowledges.
    """

    def __init__(self, owners: Optional[Mapping[int, str]] = None):
        self.logger = logging.getLogger(__name__)
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = defaultdict(int)
        self._contracts: Dict[str, Optional[TokenReceiver]] = {}

        for token_id, owner in (owners or {}).items():
            owner = normalize_address(owner)
            self._owners[int(token_id)] = owner
            self._balances[owner] += 1

    def register_contract(self, identity: str, receiver: Optional[TokenReceiver] = None) -> None:
        self._contracts[normalize_address(identity)] = receiver

    def is_contract(self, identity: str) -> bool:
        return normalize_address(identity) in self._contracts

    def issue(self, owner: str, token_id: int, operator: Optional[str] = None) -> None:
        """
        Record ``owner`` as holder of the new ``token_id``.

        Raises:
            RecipientInvalid: If owner is the zero address
            RecipientRejected: If owner is a contract that does not acknowledge
            ValueError: If the token id was already issued
        """
        if is_zero_address(owner):
            raise RecipientInvalid("Cannot issue to the zero address")
        owner = normalize_address(owner)

        if token_id in self._owners:
            raise ValueError(f"Token {token_id} already issued")

        if owner in self._contracts:
            receiver = self._contracts[owner]
            acknowledged = receiver is not None and receiver(
                normalize_address(operator) if operator else ZERO_ADDRESS,
                ZERO_ADDRESS,
                token_id,
            )
            if not acknowledged:
                raise RecipientRejected(f"Recipient {owner} did not acknowledge token {token_id}")

        self._owners[token_id] = owner
        self._balances[owner] += 1
        self.logger.debug(f"Issued token {token_id} to {owner}")

    def revoke(self, token_id: int) -> None:
        """Remove an issued token. Used only to roll back a failed request."""
        owner = self._owners.pop(token_id, None)
        if owner is None:
            raise TokenNotFoundError(f"Token {token_id} does not exist")
        self._balances[owner] -= 1
        if self._balances[owner] == 0:
            del self._balances[owner]

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise TokenNotFoundError(f"Token {token_id} does not exist")

    def balance_of(self, identity: str) -> int:
        if is_zero_address(identity):
            raise RecipientInvalid("Balance query for the zero address")
        return self._balances.get(normalize_address(identity), 0)

    def contract_acknowledgements(self) -> Dict[str, bool]:
        """
        Whether each registered contract acknowledges receipt, for persistence.

        Only hooks built by :func:`fixed_receiver` survive saving exactly.
        Any other hook is reduced to "always acknowledges", and one that
        accepts only some tokens comes back from storage accepting all of
        them. A missing hook is saved as never acknowledging.
        """
        acknowledgements = {}
        for identity, receiver in self._contracts.items():
            if receiver is not None and not hasattr(receiver, "acknowledges"):
                self.logger.warning(
                    f"Receipt hook of {identity} is not a fixed receiver; saved as always acknowledging"
                )
            acknowledgements[identity] = bool(getattr(receiver, "acknowledges", receiver is not None))
        return acknowledgements

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def to_dict(self) -> Dict[int, str]:
        return dict(sorted(self._owners.items()))


def fixed_receiver(acknowledges: bool) -> TokenReceiver:
    """Receipt hook with a fixed answer, used for contracts restored from storage."""
    def receiver(operator: str, sender: str, token_id: int) -> bool:
        return acknowledges
    receiver.acknowledges = acknowledges
    return receiver
