"""Notifications emitted by the vault."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar


@dataclass(frozen=True)
class VaultEvent:
    """Base notification; `time_index` is when the emitting call ran."""
    time_index: int

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['event'] = self.name
        return data


@dataclass(frozen=True)
class LockCreated(VaultEvent):
    user: str
    amount: int  # Net principal
    fee: int
    end_index: int


@dataclass(frozen=True)
class LockExtended(VaultEvent):
    user: str
    added: int  # Net principal added (0 for a pure re-lock)
    fee: int
    principal: int
    virtual_principal: int
    start_index: int
    end_index: int


@dataclass(frozen=True)
class Unlocked(VaultEvent):
    user: str
    amount: int


@dataclass(frozen=True)
class EmergencyUnlocked(VaultEvent):
    user: str
    amount: int
    by: str


@dataclass(frozen=True)
class RewardTokenRegistered(VaultEvent):
    token: str
    min_reward_threshold: int


@dataclass(frozen=True)
class RewardFunded(VaultEvent):
    token: str
    funder: str
    amount: int


@dataclass(frozen=True)
class RoundStarted(VaultEvent):
    round_id: int
    token: str
    total_rewards: int
    total_voting_power: int
    members: int


@dataclass(frozen=True)
class RewardDistributed(VaultEvent):
    round_id: int
    token: str
    user: str
    amount: int


@dataclass(frozen=True)
class RoundCompleted(VaultEvent):
    round_id: int
    token: str
    distributed: int
    residual: int


@dataclass(frozen=True)
class StrayTokenWithdrawn(VaultEvent):
    token: str
    to: str
    amount: int


@dataclass(frozen=True)
class FeeBeneficiaryUpdated(VaultEvent):
    previous: str
    beneficiary: str


@dataclass(frozen=True)
class AuthorizedCallerUpdated(VaultEvent):
    caller: str
    authorized: bool


E = TypeVar('E', bound=VaultEvent)


@dataclass
class EventLog:
    """Append-only record of committed notifications."""
    events: List[VaultEvent] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[VaultEvent]:
        return iter(self.events)

    def extend(self, events: List[VaultEvent]) -> None:
        self.events.extend(events)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self.events if isinstance(e, event_type)]

    def last(self, event_type: Optional[Type[E]] = None) -> Optional[VaultEvent]:
        candidates = self.events if event_type is None else self.of_type(event_type)
        return candidates[-1] if candidates else None
