"""
Value Transfer Book

In-memory payout collaborator used by the payment vault. Tracks the value
credited to each identity and models payees that refuse incoming transfers.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Protocol, Set

from crypto.keys import normalize_address


class PayoutTarget(Protocol):
    """Anything able to move value to a payee."""

    def transfer(self, payee: str, amount: int) -> bool:
        ...


class AccountBook:
    """
    Reference payout collaborator.

    ``transfer`` returns False instead of raising when the payee refuses,
    mirroring a low-level value call whose success flag must be checked.
    """

    def __init__(self, rejecting: Optional[Iterable[str]] = None, balances: Optional[Dict[str, int]] = None):
        self.logger = logging.getLogger(__name__)
        self._balances: Dict[str, int] = defaultdict(int)
        for identity, amount in (balances or {}).items():
            self._balances[normalize_address(identity)] = amount
        self._rejecting: Set[str] = {normalize_address(a) for a in (rejecting or [])}

    def reject_transfers(self, identity: str) -> None:
        self._rejecting.add(normalize_address(identity))

    def accept_transfers(self, identity: str) -> None:
        self._rejecting.discard(normalize_address(identity))

    def rejecting(self) -> List[str]:
        return sorted(self._rejecting)

    def balance(self, identity: str) -> int:
        return self._balances.get(normalize_address(identity), 0)

    def transfer(self, payee: str, amount: int) -> bool:
        payee = normalize_address(payee)
        if payee in self._rejecting:
            self.logger.debug(f"Payee {payee} refused transfer of {amount}")
            return False
        self._balances[payee] += amount
        return True

    def to_dict(self) -> Dict[str, int]:
        return dict(self._balances)
