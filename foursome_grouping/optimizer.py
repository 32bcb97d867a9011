"""OR-Tools harmony optimizer for greedily filled group slots."""

import logging
import time as time_module
from collections import Counter
from itertools import combinations
from typing import Dict, List, Optional

from ortools.sat.python import cp_model

from foursome_grouping.models import OptimizationResult, PairKey, ParticipantId
from foursome_grouping.scoring import group_harmony_score, pair_key

logger = logging.getLogger(__name__)


class HarmonyOptimizer:
    """CP-SAT re-seating of participants between slots.

    Each slot keeps exactly the number of early, late and no-preference
    participants the greedy pass gave it, so group sizes, tee time
    segregation and tier tags are unchanged; only who sits where within a
    pool changes.
    """

    def __init__(self, time_limit_seconds: float = 10.0, num_workers: int = 1):
        self.time_limit_seconds = time_limit_seconds
        self.num_workers = num_workers

    def optimize(
        self,
        slots: List[List[ParticipantId]],
        pool_of: Dict[ParticipantId, str],
        pair_scores: Dict[PairKey, int],
        roster_order: Optional[Dict[ParticipantId, int]] = None,
    ) -> OptimizationResult:
        """Maximize total harmony over the slots using OR-Tools CP-SAT solver"""
        start_time = time_module.time()

        greedy_slots = [list(slot) for slot in slots]
        harmony_before = self._total_harmony(greedy_slots, pair_scores)
        quotas = [dict(Counter(pool_of[m] for m in slot)) for slot in greedy_slots]

        members = [m for slot in greedy_slots for m in slot]
        if roster_order is None:
            roster_order = {m: idx for idx, m in enumerate(members)}

        scored_pairs = [
            (p, q, pair_scores.get(pair_key(p, q), 0))
            for p, q in combinations(members, 2)
        ]
        scored_pairs = [(p, q, score) for p, q, score in scored_pairs if score > 0]

        if not scored_pairs:
            return OptimizationResult(
                success=True,
                slots=greedy_slots,
                harmony_before=harmony_before,
                harmony_after=harmony_before,
                status="SKIPPED",
                generation_time=time_module.time() - start_time,
                slot_quotas=quotas,
            )

        try:
            model = cp_model.CpModel()
            current_slot = {m: s for s, slot in enumerate(greedy_slots) for m in slot}
            member_index = {m: idx for idx, m in enumerate(members)}

            # Seat variables only where the participant's pool has room
            seats = {}
            for p in members:
                label = pool_of[p]
                options = []
                for s_idx, quota in enumerate(quotas):
                    if quota.get(label, 0) > 0:
                        var = model.NewBoolVar(f"seat_{member_index[p]}_{s_idx}")
                        seats[p, s_idx] = var
                        options.append(var)
                model.AddExactlyOne(options)

            # Constraint: each slot keeps its per-pool quota
            for s_idx, quota in enumerate(quotas):
                for label, count in quota.items():
                    model.Add(
                        sum(seats[p, s_idx] for p in members if pool_of[p] == label)
                        == count
                    )

            # Objective: weighted co-location of scored pairs
            terms = []
            for p, q, score in scored_pairs:
                for s_idx in range(len(greedy_slots)):
                    if (p, s_idx) not in seats or (q, s_idx) not in seats:
                        continue
                    together = model.NewBoolVar(
                        f"together_{member_index[p]}_{member_index[q]}_{s_idx}"
                    )
                    model.AddImplication(together, seats[p, s_idx])
                    model.AddImplication(together, seats[q, s_idx])
                    model.AddHint(
                        together,
                        int(current_slot[p] == s_idx and current_slot[q] == s_idx),
                    )
                    terms.append(score * together)

            if not terms:
                return OptimizationResult(
                    success=True,
                    slots=greedy_slots,
                    harmony_before=harmony_before,
                    harmony_after=harmony_before,
                    status="SKIPPED",
                    generation_time=time_module.time() - start_time,
                    slot_quotas=quotas,
                )

            for (p, s_idx), var in seats.items():
                model.AddHint(var, int(current_slot[p] == s_idx))

            model.Maximize(sum(terms))

            solver = cp_model.CpSolver()
            solver.parameters.max_time_in_seconds = self.time_limit_seconds
            solver.parameters.num_workers = self.num_workers
            status = solver.Solve(model)

            if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
                return self._keep_greedy(
                    greedy_slots,
                    harmony_before,
                    quotas,
                    start_time,
                    solver.StatusName(status),
                    f"OR-Tools solver failed with status: {solver.StatusName(status)}",
                )

            new_slots: List[List[ParticipantId]] = [[] for _ in greedy_slots]
            for (p, s_idx), var in seats.items():
                if solver.Value(var):
                    new_slots[s_idx].append(p)
            for slot in new_slots:
                slot.sort(key=lambda m: roster_order.get(m, 0))

            harmony_after = self._total_harmony(new_slots, pair_scores)
            if harmony_after < harmony_before:
                return self._keep_greedy(
                    greedy_slots,
                    harmony_before,
                    quotas,
                    start_time,
                    solver.StatusName(status),
                    f"Solver harmony {harmony_after} is below greedy harmony {harmony_before}",
                )

            return OptimizationResult(
                success=True,
                slots=new_slots,
                harmony_before=harmony_before,
                harmony_after=harmony_after,
                status=solver.StatusName(status),
                generation_time=time_module.time() - start_time,
                slot_quotas=quotas,
            )

        except Exception as e:
            logger.error(f"💥 Error during harmony optimization: {str(e)}")
            return self._keep_greedy(
                greedy_slots,
                harmony_before,
                quotas,
                start_time,
                "ERROR",
                f"Solver error: {str(e)}",
            )

    def _keep_greedy(
        self,
        greedy_slots: List[List[ParticipantId]],
        harmony_before: int,
        quotas: List[Dict[str, int]],
        start_time: float,
        status: str,
        error_message: str,
    ) -> OptimizationResult:
        return OptimizationResult(
            success=False,
            slots=greedy_slots,
            harmony_before=harmony_before,
            harmony_after=harmony_before,
            status=status,
            generation_time=time_module.time() - start_time,
            error_message=error_message,
            slot_quotas=quotas,
        )

    @staticmethod
    def _total_harmony(
        slots: List[List[ParticipantId]], pair_scores: Dict[PairKey, int]
    ) -> int:
        return sum(group_harmony_score(slot, pair_scores) for slot in slots)
