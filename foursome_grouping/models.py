"""Data models for foursome grouping."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Hashable, List, Optional, Tuple

EARLY = "early"
LATE = "late"
NO_PREFERENCE = "no_preference"
TEE_TIME_PREFERENCES = (EARLY, LATE, NO_PREFERENCE)

# Tier tag for groups holding neither early nor late participants
NO_TIER = "none"
TIER_ORDER = (EARLY, NO_TIER, LATE)

ParticipantId = Hashable
PairKey = FrozenSet[ParticipantId]


@dataclass(frozen=True)
class Participant:
    """One confirmed attendee for a single game day"""

    participant_id: ParticipantId
    tee_time_preference: str = NO_PREFERENCE


@dataclass(frozen=True)
class PartnerPreference:
    """Directional wish of one participant to play with another (rank 1 is strongest)"""

    participant_id: ParticipantId
    preferred_partner_id: ParticipantId
    rank: int


@dataclass(frozen=True)
class GroupResult:
    """A single playing group in tee order"""

    group_number: int
    tee_order: int
    members: Tuple[ParticipantId, ...]
    harmony_score: int

    def __str__(self):
        members_str = ", ".join(str(m) for m in self.members)
        return f"Group {self.group_number} (tee {self.tee_order}, harmony {self.harmony_score}): {members_str}"


@dataclass(frozen=True)
class GroupingAssignment:
    """Flat per-participant view of a grouping"""

    participant_id: ParticipantId
    group_number: int
    tee_order: int


@dataclass(frozen=True)
class GroupingResult:
    """Result of grouping generation"""

    groups: Tuple[GroupResult, ...] = ()
    assignments: Tuple[GroupingAssignment, ...] = ()
    total_harmony_score: int = 0

    @property
    def group_sizes(self) -> List[int]:
        return [len(group.members) for group in self.groups]

    def group_for(self, participant_id: ParticipantId) -> Optional[GroupResult]:
        """Return the group a participant was placed in, if any"""
        for group in self.groups:
            if participant_id in group.members:
                return group
        return None


@dataclass
class GroupingConfig:
    """Grouping run configuration parameters"""

    name: str = "Game Day"
    shuffle: bool = False
    seed: Optional[int] = None
    optimize: bool = False
    time_limit_seconds: float = 10.0
    num_workers: int = 1

    def __post_init__(self):
        """Validate configuration after initialization"""
        if self.time_limit_seconds <= 0:
            raise ValueError("Optimizer time limit must be positive")
        if self.num_workers < 1:
            raise ValueError("Optimizer needs at least 1 worker")
        if self.seed is not None and not isinstance(self.seed, int):
            raise ValueError("Seed must be an integer")


@dataclass
class OptimizationResult:
    """Result of a CP-SAT harmony optimization over greedy slots"""

    success: bool
    slots: List[List[ParticipantId]]
    harmony_before: int
    harmony_after: int
    status: str
    generation_time: float  # seconds
    error_message: Optional[str] = None
    slot_quotas: List[Dict[str, int]] = field(default_factory=list)
