"""
Audit events emitted by the distributor
"""

from typing import List, Optional, Dict, Any, Iterator
from dataclasses import dataclass, field, asdict

MINING_TARGET_SET = "MiningTargetSet"
MINT = "Mint"
BLOCKS_PER_READJUSTMENT_SET = "BlocksPerReadjustmentSet"
DIFFICULTY_DENOMINATOR_SET = "DifficultyDenominatorSet"
TARGET_BLOCKS_PER_DIFF_PERIOD_SET = "TargetBlocksPerDiffPeriodSet"
BURN_BLOCK_START_SET = "BurnBlockStartSet"
BURNING_ENABLED = "BurningEnabled"
BURNING_DISABLED = "BurningDisabled"
OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass
class Event:
    """
    One audit record.

    Attributes:
        name: Event name
        block: Host block height the event was emitted in
        args: JSON-serializable event arguments
    """
    name: str
    block: int
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        return cls(**data)


class EventLog:
    """Append-only list of events."""

    def __init__(self, events: Optional[List[Event]] = None):
        self._events: List[Event] = list(events or [])

    def emit(self, name: str, block: int, **args) -> Event:
        event = Event(name=name, block=block, args=args)
        self._events.append(event)
        return event

    def truncate(self, length: int):
        """Drop events past length (used to roll back a failed call)."""
        del self._events[length:]

    def filter(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    def last(self) -> Optional[Event]:
        return self._events[-1] if self._events else None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> 'EventLog':
        return cls([Event.from_dict(e) for e in data])

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)
