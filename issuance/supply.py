"""
Supply Ledger

This module implements the SupplyLedger class that tracks the two monotonic
issuance counters (total and whitelist) and enforces their hard caps.
"""

import logging
from typing import Dict, Mapping

from .errors import CounterKind, SupplyExhausted


DEFAULT_TOTAL_SUPPLY_CAP = 10_000
DEFAULT_WHITELIST_SUPPLY_CAP = 1_000


class SupplyLedger:
    """
    Two bounded counters with atomic check-and-reserve.

    A reservation either advances every requested counter or none of them.
    Counters never decrease except through :meth:`restore`, which the
    controller uses to roll back a reservation made by a request that
    failed later on.
    """

    def __init__(
        self,
        total_cap: int = DEFAULT_TOTAL_SUPPLY_CAP,
        whitelist_cap: int = DEFAULT_WHITELIST_SUPPLY_CAP,
        total: int = 0,
        whitelist: int = 0
    ):
        if total_cap < 0 or whitelist_cap < 0:
            raise ValueError("Supply caps must be non-negative")
        if not 0 <= total <= total_cap:
            raise ValueError(f"Total counter {total} outside [0, {total_cap}]")
        if not 0 <= whitelist <= whitelist_cap:
            raise ValueError(f"Whitelist counter {whitelist} outside [0, {whitelist_cap}]")

        self.logger = logging.getLogger(__name__)
        self._caps: Dict[CounterKind, int] = {
            CounterKind.TOTAL: total_cap,
            CounterKind.WHITELIST: whitelist_cap,
        }
        self._counters: Dict[CounterKind, int] = {
            CounterKind.TOTAL: total,
            CounterKind.WHITELIST: whitelist,
        }

        # Statistics tracking
        self.stats = {
            "reservations": 0,
            "rejected_over_cap": 0,
            "units_reserved": 0,
        }

    def current(self, kind: CounterKind) -> int:
        return self._counters[CounterKind(kind)]

    def cap(self, kind: CounterKind) -> int:
        return self._caps[CounterKind(kind)]

    def remaining(self, kind: CounterKind) -> int:
        kind = CounterKind(kind)
        return self._caps[kind] - self._counters[kind]

    def check(self, kind: CounterKind, n: int) -> None:
        """
        Raise SupplyExhausted if ``n`` more units do not fit under the cap.

        Does not mutate.
        """
        kind = CounterKind(kind)
        current = self._counters[kind]
        cap = self._caps[kind]
        if current + n > cap:
            self.stats["rejected_over_cap"] += 1
            self.logger.debug(
                f"Supply check failed for {kind.value}: {current} + {n} > {cap}"
            )
            raise SupplyExhausted(kind, current, n, cap)

    def reserve(self, kind: CounterKind, n: int) -> int:
        """
        Advance one counter by ``n`` if the cap allows it.

        Returns:
            The counter value before the reservation

        Raises:
            SupplyExhausted: If the cap would be exceeded (counter untouched)
        """
        kind = CounterKind(kind)
        return self.reserve_many({kind: n})[kind]

    def reserve_many(self, requests: Mapping[CounterKind, int]) -> Dict[CounterKind, int]:
        """
        Reserve on several counters at once, all or nothing.

        Every counter is checked before any is advanced.

        Returns:
            Mapping of counter kind to its value before the reservation
        """
        requests = {CounterKind(k): n for k, n in requests.items()}
        for kind, n in requests.items():
            if n < 0:
                raise ValueError("Reservation size must be non-negative")
            self.check(kind, n)

        previous = {}
        for kind, n in requests.items():
            previous[kind] = self._counters[kind]
            self._counters[kind] += n
            self.stats["units_reserved"] += n

        self.stats["reservations"] += 1
        return previous

    def force(self, kind: CounterKind, value: int) -> None:
        """Set a counter directly, bounded by its cap. For migrations and tests."""
        kind = CounterKind(kind)
        if not 0 <= value <= self._caps[kind]:
            raise ValueError(f"{kind.value} counter {value} outside [0, {self._caps[kind]}]")
        self.logger.warning(f"Forcing {kind.value} counter from {self._counters[kind]} to {value}")
        self._counters[kind] = value

    def snapshot(self) -> Dict[CounterKind, int]:
        return dict(self._counters)

    def restore(self, snapshot: Mapping[CounterKind, int]) -> None:
        self._counters = {CounterKind(k): v for k, v in snapshot.items()}

    def to_dict(self) -> Dict[str, int]:
        return {
            "current_token_id": self._counters[CounterKind.TOTAL],
            "whitelist_count": self._counters[CounterKind.WHITELIST],
            "total_supply_cap": self._caps[CounterKind.TOTAL],
            "whitelist_supply_cap": self._caps[CounterKind.WHITELIST],
        }
