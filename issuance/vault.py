"""
Payment Vault

Custody of all payment value attached to successful mints, with owner-only
withdrawal of the full balance.
"""

import logging

from crypto.keys import normalize_address
from .access import AccessGuard
from .accounts import PayoutTarget
from .errors import PayoutTransferFailed


class PaymentVault:
    """
    Single custody balance.

    Deposits are not attributed to individual mints; withdrawal always
    moves everything.
    """

    def __init__(self, guard: AccessGuard, payout: PayoutTarget, balance: int = 0):
        if balance < 0:
            raise ValueError("Vault balance cannot be negative")
        self.guard = guard
        self.payout = payout
        self._balance = balance
        self.logger = logging.getLogger(__name__)

    @property
    def balance(self) -> int:
        return self._balance

    def deposit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("Deposit must be non-negative")
        self._balance += amount

    def restore(self, balance: int) -> None:
        self._balance = balance

    def withdraw(self, caller: str, payee: str) -> int:
        """
        Transfer the entire balance to ``payee``.

        Args:
            caller: Identity requesting the withdrawal (must be the owner)
            payee: Identity receiving the funds

        Returns:
            Amount transferred

        Raises:
            Unauthorized: If caller is not the owner
            PayoutTransferFailed: If the payee rejects the transfer
        """
        self.guard.require_owner(caller)
        payee = normalize_address(payee)
        amount = self._balance

        if not self.payout.transfer(payee, amount):
            self.logger.warning(f"Withdrawal of {amount} to {payee} rejected")
            raise PayoutTransferFailed(payee, amount)

        self._balance = 0
        self.logger.info(f"Withdrew {amount} to {payee}")
        return amount
