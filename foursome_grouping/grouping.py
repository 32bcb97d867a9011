"""Core grouping logic: group-size planning, tee-time pools and greedy slot filling."""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from foursome_grouping.models import (
    EARLY,
    LATE,
    NO_PREFERENCE,
    NO_TIER,
    TIER_ORDER,
    GroupingAssignment,
    GroupingConfig,
    GroupingResult,
    GroupResult,
    PairKey,
    Participant,
    ParticipantId,
    PartnerPreference,
)
from foursome_grouping.optimizer import HarmonyOptimizer
from foursome_grouping.scoring import (
    build_pair_scores,
    candidate_gain,
    group_harmony_score,
    preferred_partners_in_group,
)

logger = logging.getLogger(__name__)

SIZE_NAMES = {
    1: "single",
    2: "twosome",
    3: "threesome",
    4: "foursome",
    5: "fivesome",
}


class GroupSizePlanner:
    """Helper class for group size calculations"""

    MIN_GROUP_SIZE = 3
    DEFAULT_GROUP_SIZE = 4
    MAX_GROUP_SIZE = 5

    @staticmethod
    def calculate_group_sizes(n: int) -> List[int]:
        """Calculate the group sizes for n participants, ordered by tee position.

        Threesomes come first, foursomes in the middle and fivesomes last. Once
        n >= 3 no group is smaller than 3 or larger than 5:
          - n=5 is a single fivesome (never 3+2)
          - n=6 is two threesomes (never a sixsome)
          - n=9 is three threesomes rather than 4+5
        """
        if n < 0:
            raise ValueError(f"Cannot plan groups for {n} participants")
        if n <= 5:
            return [n] if n else []
        if n == 6:
            return [3, 3]

        groups_of_4 = n // GroupSizePlanner.DEFAULT_GROUP_SIZE
        remainder = n % GroupSizePlanner.DEFAULT_GROUP_SIZE

        if remainder == 0:
            return [4] * groups_of_4

        if remainder == 1:
            if n == 9:
                return [3, 3, 3]
            # One foursome becomes a fivesome in the last position
            return [4] * (groups_of_4 - 1) + [5]

        if remainder == 2:
            # One foursome becomes two threesomes at the front
            return [3, 3] + [4] * (groups_of_4 - 1)

        return [3] + [4] * groups_of_4

    @staticmethod
    def describe(group_sizes: Sequence[int]) -> str:
        """Get human-readable description of a group size plan"""
        if not group_sizes:
            return "no groups"

        counts = Counter(group_sizes)
        parts = []
        for size in sorted(counts):
            count = counts[size]
            name = SIZE_NAMES.get(size, f"group of {size}")
            parts.append(f"{count} {name}{'s' if count != 1 else ''}")
        return ", ".join(parts)


calculate_group_sizes = GroupSizePlanner.calculate_group_sizes


@dataclass
class TeeTimePools:
    """Participants not yet placed, split by tee time preference"""

    early: List[ParticipantId] = field(default_factory=list)
    late: List[ParticipantId] = field(default_factory=list)
    no_preference: List[ParticipantId] = field(default_factory=list)

    def pool_of(self) -> Dict[ParticipantId, str]:
        """Map each participant to the name of its pool"""
        labels = {}
        for name, pool in (
            (EARLY, self.early),
            (LATE, self.late),
            (NO_PREFERENCE, self.no_preference),
        ):
            for participant_id in pool:
                labels[participant_id] = name
        return labels


def partition_by_tee_time(participants: Iterable[Participant]) -> TeeTimePools:
    """Split participants into early, late and no-preference pools, keeping roster order"""
    pools = TeeTimePools()
    for participant in participants:
        if participant.tee_time_preference == EARLY:
            pools.early.append(participant.participant_id)
        elif participant.tee_time_preference == LATE:
            pools.late.append(participant.participant_id)
        else:
            pools.no_preference.append(participant.participant_id)
    return pools


class GreedySlotFiller:
    """Fill planned group slots from a pool, picking the best harmony candidate each time"""

    def __init__(self, pair_scores: Dict[PairKey, int]):
        self.pair_scores = pair_scores

    def fill(
        self,
        pool: List[ParticipantId],
        slots: List[List[ParticipantId]],
        group_sizes: Sequence[int],
        direction: str = "front",
    ):
        """Drain the pool into the slots (both mutated in place).

        'front' fills the lowest-numbered slots first, 'back' the highest.
        """
        if not pool:
            return

        slot_indices = list(range(len(group_sizes)))
        if direction == "back":
            slot_indices.reverse()

        for slot_idx in slot_indices:
            if not pool:
                break

            target_size = group_sizes[slot_idx]
            current_group = slots[slot_idx]

            while len(current_group) < target_size and pool:
                best_idx = self.find_best_candidate(pool, current_group)
                chosen = pool.pop(best_idx)
                current_group.append(chosen)
                logger.debug(f"Slot {slot_idx + 1}: placed {chosen}")

    def find_best_candidate(
        self, candidates: Sequence[ParticipantId], current_members: Sequence[ParticipantId]
    ) -> int:
        """Index of the candidate adding the most harmony to the current members.

        Ties go to the earliest candidate in pool order. An empty group has
        nothing to score against, so the first candidate is taken.
        """
        if len(candidates) == 1 or not current_members:
            return 0

        best_idx = 0
        best_score = -1

        for idx, candidate in enumerate(candidates):
            score = candidate_gain(candidate, current_members, self.pair_scores)
            if score > best_score:
                best_score = score
                best_idx = idx

        return best_idx


@dataclass
class PreliminaryGroup:
    """A filled slot before final tee ordering"""

    members: List[ParticipantId]
    harmony: int
    tier: str


class FoursomeGroupingEngine:
    """Main grouping engine: plans group sizes, scores preferences and fills slots"""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        optimizer: Optional[HarmonyOptimizer] = None,
    ):
        """Initialize engine with an injectable random source and optional optimizer"""
        self.rng = rng if rng is not None else random.Random()
        self.optimizer = optimizer

    @classmethod
    def from_config(cls, config: GroupingConfig) -> "FoursomeGroupingEngine":
        """Build an engine from a run configuration"""
        optimizer = None
        if config.optimize:
            optimizer = HarmonyOptimizer(
                time_limit_seconds=config.time_limit_seconds,
                num_workers=config.num_workers,
            )
        return cls(rng=random.Random(config.seed), optimizer=optimizer)

    def generate_groupings(
        self,
        participants: Sequence[Participant],
        preferences: Iterable[PartnerPreference],
        shuffle: bool = False,
    ) -> GroupingResult:
        """Generate suggested groupings for the confirmed participants.

        Args:
            participants: Confirmed participants with tee time preferences
            preferences: All partner preferences for the event (stale ones are ignored)
            shuffle: Randomize pool order and group order within tee time tiers.
                Off for reproducible runs, on in production so the same
                no-preference players do not always land together.

        Returns:
            GroupingResult with groups, assignments and total harmony score
        """
        participants = list(participants)
        n = len(participants)

        if n == 0:
            logger.info("No confirmed participants, returning empty grouping")
            return GroupingResult()

        group_sizes = GroupSizePlanner.calculate_group_sizes(n)

        confirmed_ids = {p.participant_id for p in participants}
        pair_scores = build_pair_scores(preferences, confirmed_ids)

        logger.info(
            f"Grouping {n} participants into {GroupSizePlanner.describe(group_sizes)} "
            f"({len(pair_scores)} scored pairs)"
        )

        pools = partition_by_tee_time(participants)
        if shuffle:
            self.rng.shuffle(pools.early)
            self.rng.shuffle(pools.late)
            self.rng.shuffle(pools.no_preference)

        logger.info(
            f"Tee time pools: {len(pools.early)} early, {len(pools.late)} late, "
            f"{len(pools.no_preference)} no preference"
        )

        slots = self.assign_slots(pools, group_sizes, pair_scores)

        if self.optimizer is not None:
            roster_order = {p.participant_id: idx for idx, p in enumerate(participants)}
            slots = self._optimize_slots(slots, pools, pair_scores, roster_order)

        prelim_groups = self._tag_groups(slots, pools, pair_scores)

        if shuffle:
            prelim_groups = self._shuffle_within_tiers(prelim_groups)

        result = self._build_result(prelim_groups)
        logger.info(
            f"✅ Generated {len(result.groups)} groups, total harmony {result.total_harmony_score}"
        )
        return result

    def assign_slots(
        self,
        pools: TeeTimePools,
        group_sizes: Sequence[int],
        pair_scores: Dict[PairKey, int],
    ) -> List[List[ParticipantId]]:
        """Fill slots in three passes: early from the front, late from the back, the rest from the front"""
        filler = GreedySlotFiller(pair_scores)
        slots: List[List[ParticipantId]] = [[] for _ in group_sizes]

        filler.fill(list(pools.early), slots, group_sizes, "front")
        filler.fill(list(pools.late), slots, group_sizes, "back")
        filler.fill(list(pools.no_preference), slots, group_sizes, "front")

        return slots

    def _optimize_slots(
        self,
        slots: List[List[ParticipantId]],
        pools: TeeTimePools,
        pair_scores: Dict[PairKey, int],
        roster_order: Dict[ParticipantId, int],
    ) -> List[List[ParticipantId]]:
        """Let the optimizer re-seat participants within the greedy per-pool quotas"""
        outcome = self.optimizer.optimize(slots, pools.pool_of(), pair_scores, roster_order)

        if not outcome.success:
            logger.warning(f"⚠️  Keeping greedy groups: {outcome.error_message}")
            return slots

        logger.info(
            f"📊 Harmony optimization ({outcome.status}): "
            f"{outcome.harmony_before} → {outcome.harmony_after} in {outcome.generation_time:.2f}s"
        )
        return outcome.slots

    def _tag_groups(
        self,
        slots: List[List[ParticipantId]],
        pools: TeeTimePools,
        pair_scores: Dict[PairKey, int],
    ) -> List[PreliminaryGroup]:
        """Score each slot and tag it with its tee time tier"""
        early_ids = set(pools.early)
        late_ids = set(pools.late)

        prelim_groups = []
        for members in slots:
            if any(m in early_ids for m in members):
                tier = EARLY
            elif any(m in late_ids for m in members):
                tier = LATE
            else:
                tier = NO_TIER
            prelim_groups.append(
                PreliminaryGroup(
                    members=list(members),
                    harmony=group_harmony_score(members, pair_scores),
                    tier=tier,
                )
            )
        return prelim_groups

    def _shuffle_within_tiers(
        self, prelim_groups: List[PreliminaryGroup]
    ) -> List[PreliminaryGroup]:
        """Shuffle group order inside each tier; early tier first, late tier last"""
        ordered = []
        for tier in TIER_ORDER:
            tier_groups = [g for g in prelim_groups if g.tier == tier]
            self.rng.shuffle(tier_groups)
            ordered.extend(tier_groups)
        return ordered

    def _build_result(self, prelim_groups: List[PreliminaryGroup]) -> GroupingResult:
        """Number groups sequentially and assemble the final result"""
        groups = []
        assignments = []
        total_harmony_score = 0

        for tee_order, group in enumerate(prelim_groups, start=1):
            total_harmony_score += group.harmony
            groups.append(
                GroupResult(
                    group_number=tee_order,
                    tee_order=tee_order,
                    members=tuple(group.members),
                    harmony_score=group.harmony,
                )
            )
            for participant_id in group.members:
                assignments.append(
                    GroupingAssignment(
                        participant_id=participant_id,
                        group_number=tee_order,
                        tee_order=tee_order,
                    )
                )

        return GroupingResult(
            groups=tuple(groups),
            assignments=tuple(assignments),
            total_harmony_score=total_harmony_score,
        )

    def print_grouping_summary(
        self,
        result: GroupingResult,
        participants: Sequence[Participant],
        preferences: Sequence[PartnerPreference],
        title: str = "Suggested Groups",
    ):
        """Print the suggested groups with tee preferences and partners grouped together"""
        if not result.groups:
            print("❌ No participants to group")
            return

        tee_prefs = {p.participant_id: p.tee_time_preference for p in participants}

        print(f"\n⛳ {title}")
        print("=" * 60)
        print(f"📊 Summary:")
        print(f"   • Participants: {len(result.assignments)}")
        print(
            f"   • Groups: {len(result.groups)} ({GroupSizePlanner.describe(result.group_sizes)})"
        )
        print(f"   • Total harmony: {result.total_harmony_score}")

        for group in result.groups:
            print(f"\n⏰ Group {group.group_number} - tee {group.tee_order} (harmony {group.harmony_score})")
            print("-" * 60)
            partners = preferred_partners_in_group(group.members, preferences)
            for member in group.members:
                pref = tee_prefs.get(member, NO_PREFERENCE)
                pref_str = f" [{pref}]" if pref in (EARLY, LATE) else ""
                partners_str = (
                    f" ♥ {', '.join(str(p) for p in partners[member])}"
                    if partners[member]
                    else ""
                )
                print(f"   • {member}{pref_str}{partners_str}")


def generate_groupings(
    participants: Sequence[Participant],
    preferences: Iterable[PartnerPreference],
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> GroupingResult:
    """Generate groupings with a greedy engine (see FoursomeGroupingEngine.generate_groupings)"""
    return FoursomeGroupingEngine(rng=rng).generate_groupings(
        participants, preferences, shuffle=shuffle
    )
