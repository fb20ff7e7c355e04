"""
Owner access control for the issuance core.
"""

import logging

from crypto.exceptions import InvalidIdentityError
from crypto.keys import normalize_address, is_zero_address
from .errors import Unauthorized, RecipientInvalid


class AccessGuard:
    """Restricts configuration and withdrawal to a single owner identity."""

    def __init__(self, owner: str):
        if is_zero_address(owner):
            raise RecipientInvalid("Owner cannot be the zero address")
        self._owner = normalize_address(owner)
        self.logger = logging.getLogger(__name__)

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        """False for any caller that is not a well-formed owner address."""
        try:
            return normalize_address(caller) == self._owner
        except InvalidIdentityError:
            return False

    def require_owner(self, caller: str) -> None:
        """
        Raises:
            Unauthorized: If caller is not the owner
        """
        if not self.is_owner(caller):
            self.logger.warning(f"Rejected owner-only call from {caller!r}")
            raise Unauthorized(_display(caller))

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand ownership to another identity. Owner only."""
        self.require_owner(caller)
        if is_zero_address(new_owner):
            raise RecipientInvalid("New owner cannot be the zero address")
        previous, self._owner = self._owner, normalize_address(new_owner)
        self.logger.info(f"Ownership transferred from {previous} to {self._owner}")


def _display(caller) -> str:
    try:
        return normalize_address(caller)
    except InvalidIdentityError:
        return repr(caller)
