"""
Issuance Event Log

Append-only record of the state changes made by successful calls: mints,
withdrawals, configuration changes and ownership transfers. A call that
fails records nothing.
"""

import time
import uuid
from collections import deque
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional


class EventType(str, Enum):
    """Issuance event categories."""
    MINT = "mint"
    WITHDRAWAL = "withdrawal"
    CONFIGURATION_CHANGE = "configuration_change"
    OWNERSHIP_TRANSFER = "ownership_transfer"


@dataclass
class IssuanceEvent:
    """A single recorded state change."""
    event_type: EventType
    actor: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0
    event_id: str = ""

    def __post_init__(self):
        """Initialize derived fields."""
        self.event_type = EventType(self.event_type)
        if not self.event_id:
            self.event_id = f"evt_{int(time.time() * 1000000)}_{uuid.uuid4().hex[:8]}"
        if not self.timestamp:
            self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IssuanceEvent':
        return cls(**data)


class EventLog:
    """Bounded in-memory event history."""

    def __init__(self, events: Optional[Iterable[IssuanceEvent]] = None, max_events: int = 10000):
        self.events: Deque[IssuanceEvent] = deque(events or [], maxlen=max_events)

    def record(self, event_type: EventType, actor: str, **details) -> IssuanceEvent:
        event = IssuanceEvent(event_type=event_type, actor=actor, details=details)
        self.events.append(event)
        return event

    def of_type(self, event_type: EventType) -> List[IssuanceEvent]:
        return [e for e in self.events if e.event_type == EventType(event_type)]

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]
