"""Partner-preference scoring: rank points, pair scores and group harmony."""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Set

from foursome_grouping.models import PairKey, ParticipantId, PartnerPreference

MIN_RANK = 1
MAX_RANK = 10
TOP_RANK_POINTS = 100


def rank_to_points(rank: int) -> int:
    """Convert a partner preference rank (1-10) to points: 100 / rank, rounded half up.

    Ranks outside 1..10 are worth nothing rather than rejected.
    """
    if rank < MIN_RANK or rank > MAX_RANK:
        return 0
    # Half-up, so rank 8 (12.5) scores 13
    return int(math.floor(TOP_RANK_POINTS / rank + 0.5))


def pair_key(a: ParticipantId, b: ParticipantId) -> PairKey:
    """Order-independent key for a pair of participant ids.

    Ids only need to be hashable, not orderable.
    """
    return frozenset((a, b))


def build_pair_scores(
    preferences: Iterable[PartnerPreference], confirmed_ids: Set[ParticipantId]
) -> Dict[PairKey, int]:
    """Build the symmetric pair score table from directional preferences.

    Preferences where either side is not confirmed for the game day are stale
    and skipped. A mutual preference accumulates both sides' points.
    """
    scores: Dict[PairKey, int] = {}

    for pref in preferences:
        if pref.preferred_partner_id not in confirmed_ids:
            continue
        if pref.participant_id not in confirmed_ids:
            continue

        key = pair_key(pref.participant_id, pref.preferred_partner_id)
        scores[key] = scores.get(key, 0) + rank_to_points(pref.rank)

    return scores


def group_harmony_score(
    members: Sequence[ParticipantId], pair_scores: Dict[PairKey, int]
) -> int:
    """Sum of pair scores over every unordered pair in the group"""
    score = 0
    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            score += pair_scores.get(pair_key(members[i], members[j]), 0)
    return score


def candidate_gain(
    candidate: ParticipantId,
    members: Sequence[ParticipantId],
    pair_scores: Dict[PairKey, int],
) -> int:
    """Harmony added to a group by seating the candidate with its current members"""
    return sum(pair_scores.get(pair_key(candidate, member), 0) for member in members)


def preferred_partners_in_group(
    members: Sequence[ParticipantId], preferences: Iterable[PartnerPreference]
) -> Dict[ParticipantId, List[ParticipantId]]:
    """For each member, the preferred partners who landed in the same group.

    Directional: only the member's own preferences count. Partners are listed
    strongest rank first.
    """
    member_set = set(members)
    wanted = defaultdict(list)

    for pref in sorted(preferences, key=lambda p: p.rank):
        if pref.participant_id not in member_set:
            continue
        if pref.preferred_partner_id == pref.participant_id:
            continue
        if pref.preferred_partner_id in member_set:
            if pref.preferred_partner_id not in wanted[pref.participant_id]:
                wanted[pref.participant_id].append(pref.preferred_partner_id)

    return {member: wanted.get(member, []) for member in members}
