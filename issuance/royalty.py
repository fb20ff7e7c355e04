"""Royalty pass-through query."""

from typing import Tuple

from crypto.keys import normalize_address


# Observed denominator of the royalty calculation; royalty_bps is read as
# parts per thousand despite its name.
ROYALTY_DENOMINATOR = 1000


class RoyaltyInfo:
    """
    Advisory royalty metadata. Not enforced anywhere in the issuance core.
    """

    def __init__(self, receiver: str, royalty_bps: int = 0):
        self.receiver = normalize_address(receiver)
        self.set_royalty_bps(royalty_bps)

    def set_royalty_bps(self, royalty_bps: int) -> None:
        if not 0 <= royalty_bps <= ROYALTY_DENOMINATOR:
            raise ValueError(f"Royalty must be within [0, {ROYALTY_DENOMINATOR}]")
        self.royalty_bps = royalty_bps

    def royalty_info(self, token_id: int, sale_price: int) -> Tuple[str, int]:
        """
        Returns:
            (receiver, amount) with amount = sale_price * royalty_bps // 1000
        """
        return self.receiver, sale_price * self.royalty_bps // ROYALTY_DENOMINATOR
