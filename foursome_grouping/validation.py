"""Constraint validation for grouping results."""

from collections import Counter
from typing import List, Sequence, Tuple

from foursome_grouping.grouping import GroupSizePlanner
from foursome_grouping.models import (
    EARLY,
    LATE,
    NO_TIER,
    TIER_ORDER,
    GroupingResult,
    Participant,
    PartnerPreference,
)
from foursome_grouping.scoring import build_pair_scores, group_harmony_score


class GroupingValidator:
    """Helper class to validate grouping invariants"""

    @staticmethod
    def validate_complete_assignment(
        result: GroupingResult, participants: Sequence[Participant]
    ) -> Tuple[bool, List[str]]:
        """Validate that every participant is placed exactly once, in groups and assignments alike"""
        violations = []
        expected = Counter(p.participant_id for p in participants)

        grouped = Counter(m for group in result.groups for m in group.members)
        for participant_id, count in grouped.items():
            if count > 1:
                violations.append(
                    f"Participant {participant_id} appears in {count} groups"
                )
            if participant_id not in expected:
                violations.append(f"Unknown participant {participant_id} was grouped")
        for participant_id in expected:
            if participant_id not in grouped:
                violations.append(f"Participant {participant_id} was not grouped")

        assigned = Counter(a.participant_id for a in result.assignments)
        if assigned != grouped:
            violations.append(
                f"Assignments list {sum(assigned.values())} entries "
                f"but groups hold {sum(grouped.values())} members"
            )

        for assignment in result.assignments:
            group = result.group_for(assignment.participant_id)
            if group is None:
                continue
            if (
                group.group_number != assignment.group_number
                or group.tee_order != assignment.tee_order
            ):
                violations.append(
                    f"Participant {assignment.participant_id} assigned to group "
                    f"{assignment.group_number} but seated in group {group.group_number}"
                )

        return len(violations) == 0, violations

    @staticmethod
    def validate_group_sizes(result: GroupingResult) -> Tuple[bool, List[str]]:
        """Validate that group sizes match the plan for the roster size"""
        violations = []
        sizes = result.group_sizes
        total = sum(sizes)
        planned = GroupSizePlanner.calculate_group_sizes(total)

        if sorted(sizes) != sorted(planned):
            violations.append(
                f"Group sizes {sizes} do not match the plan {planned} for {total} participants"
            )

        if total >= GroupSizePlanner.MIN_GROUP_SIZE:
            for group in result.groups:
                size = len(group.members)
                if (
                    size < GroupSizePlanner.MIN_GROUP_SIZE
                    or size > GroupSizePlanner.MAX_GROUP_SIZE
                ):
                    violations.append(
                        f"Group {group.group_number} has {size} players "
                        f"(must be {GroupSizePlanner.MIN_GROUP_SIZE}-{GroupSizePlanner.MAX_GROUP_SIZE})"
                    )

        return len(violations) == 0, violations

    @staticmethod
    def validate_tee_order(result: GroupingResult) -> Tuple[bool, List[str]]:
        """Validate sequential 1-based tee order with group number equal to tee order"""
        violations = []

        for expected, group in enumerate(result.groups, start=1):
            if group.tee_order != expected:
                violations.append(
                    f"Group at position {expected} has tee order {group.tee_order}"
                )
            if group.group_number != group.tee_order:
                violations.append(
                    f"Group {group.group_number} has tee order {group.tee_order}"
                )

        return len(violations) == 0, violations

    @staticmethod
    def validate_tier_ordering(
        result: GroupingResult, participants: Sequence[Participant]
    ) -> Tuple[bool, List[str]]:
        """Validate that early-tier groups tee off before no-preference groups, and those before late ones"""
        violations = []
        prefs = {p.participant_id: p.tee_time_preference for p in participants}

        last_rank = 0
        last_tier = TIER_ORDER[0]
        for group in result.groups:
            member_prefs = [prefs.get(m) for m in group.members]
            if EARLY in member_prefs:
                tier = EARLY
            elif LATE in member_prefs:
                tier = LATE
            else:
                tier = NO_TIER

            rank = TIER_ORDER.index(tier)
            if rank < last_rank:
                violations.append(
                    f"Group {group.group_number} ({tier} tier) tees off after a {last_tier} tier group"
                )
            else:
                last_rank = rank
                last_tier = tier

        return len(violations) == 0, violations

    @staticmethod
    def validate_harmony_scores(
        result: GroupingResult,
        participants: Sequence[Participant],
        preferences: Sequence[PartnerPreference],
    ) -> Tuple[bool, List[str]]:
        """Validate per-group harmony scores and their total against the preferences"""
        violations = []
        confirmed_ids = {p.participant_id for p in participants}
        pair_scores = build_pair_scores(preferences, confirmed_ids)

        total = 0
        for group in result.groups:
            expected = group_harmony_score(group.members, pair_scores)
            total += group.harmony_score
            if group.harmony_score != expected:
                violations.append(
                    f"Group {group.group_number}: harmony {group.harmony_score}, expected {expected}"
                )

        if result.total_harmony_score != total:
            violations.append(
                f"Total harmony {result.total_harmony_score} is not the sum of group scores ({total})"
            )

        return len(violations) == 0, violations

    @staticmethod
    def validate_all(
        result: GroupingResult,
        participants: Sequence[Participant],
        preferences: Sequence[PartnerPreference],
    ) -> Tuple[bool, List[str]]:
        """Validate all invariants at once"""
        all_violations = []

        assignment_valid, assignment_violations = (
            GroupingValidator.validate_complete_assignment(result, participants)
        )
        size_valid, size_violations = GroupingValidator.validate_group_sizes(result)
        order_valid, order_violations = GroupingValidator.validate_tee_order(result)
        tier_valid, tier_violations = GroupingValidator.validate_tier_ordering(
            result, participants
        )
        harmony_valid, harmony_violations = GroupingValidator.validate_harmony_scores(
            result, participants, preferences
        )

        all_violations.extend(assignment_violations)
        all_violations.extend(size_violations)
        all_violations.extend(order_violations)
        all_violations.extend(tier_violations)
        all_violations.extend(harmony_violations)

        overall_valid = (
            assignment_valid
            and size_valid
            and order_valid
            and tier_valid
            and harmony_valid
        )

        return overall_valid, all_violations
