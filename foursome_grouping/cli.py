"""Command line interface and example rosters."""

import argparse
import csv
import dataclasses
import json
import logging
import random
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from foursome_grouping.grouping import FoursomeGroupingEngine, GroupSizePlanner
from foursome_grouping.models import (
    NO_PREFERENCE,
    TEE_TIME_PREFERENCES,
    GroupingConfig,
    GroupingResult,
    Participant,
    PartnerPreference,
)
from foursome_grouping.validation import GroupingValidator

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

GroupingRequest = Tuple[GroupingConfig, List[Participant], List[PartnerPreference]]

EXAMPLE_NAMES = [
    "alvarez", "brennan", "castillo", "dawson", "elliott", "fischer",
    "gallagher", "herrera", "ibarra", "jensen", "kowalski", "lindqvist",
    "moreno", "nakamura", "okafor", "patel", "quinn", "reyes",
    "sullivan", "tanaka", "underwood", "vance", "whitaker", "young",
]


def create_example_roster(
    num_participants: int = 16, seed: int = 42
) -> GroupingRequest:
    """Create a game day roster with random tee time and partner preferences"""
    if num_participants > len(EXAMPLE_NAMES):
        raise ValueError(
            f"Example roster supports at most {len(EXAMPLE_NAMES)} participants"
        )

    rng = random.Random(seed)  # For reproducible results
    config = GroupingConfig(name="Saturday Game Day", seed=seed)

    ids = EXAMPLE_NAMES[:num_participants]
    participants = [
        Participant(
            participant_id=participant_id,
            tee_time_preference=rng.choices(
                list(TEE_TIME_PREFERENCES), weights=[1, 1, 2]
            )[0],
        )
        for participant_id in ids
    ]

    preferences = []
    for participant_id in ids:
        others = [other for other in ids if other != participant_id]
        for rank, partner_id in enumerate(rng.sample(others, rng.randint(0, 3)), start=1):
            preferences.append(
                PartnerPreference(
                    participant_id=participant_id,
                    preferred_partner_id=partner_id,
                    rank=rank,
                )
            )

    # A couple of stale preferences for players who did not confirm this week
    preferences.append(PartnerPreference(ids[0], "not_confirmed", 1))
    preferences.append(PartnerPreference("not_confirmed", ids[-1], 2))

    return config, participants, preferences


def serialize_grouping_request(
    config: GroupingConfig,
    participants: Sequence[Participant],
    preferences: Sequence[PartnerPreference],
) -> Dict[str, Any]:
    """Serialize a roster and its configuration to a dictionary for JSON export"""
    data = asdict(config)
    data["participants"] = [asdict(p) for p in participants]
    data["preferences"] = [asdict(p) for p in preferences]
    return data


def parse_grouping_request(data: Dict[str, Any]) -> GroupingRequest:
    """Build configuration, participants and preferences from a roster dictionary"""
    config_fields = {f.name for f in dataclasses.fields(GroupingConfig)}
    config = GroupingConfig(**{k: v for k, v in data.items() if k in config_fields})

    participants = []
    for p in data.get("participants", []):
        tee_time_preference = p.get("tee_time_preference") or NO_PREFERENCE
        if tee_time_preference not in TEE_TIME_PREFERENCES:
            logger.warning(
                f"⚠️  Unknown tee time preference '{tee_time_preference}' for "
                f"{p['participant_id']}, treating as no preference"
            )
        participants.append(
            Participant(
                participant_id=p["participant_id"],
                tee_time_preference=tee_time_preference,
            )
        )

    preferences = [
        PartnerPreference(
            participant_id=p["participant_id"],
            preferred_partner_id=p["preferred_partner_id"],
            rank=int(p["rank"]),
        )
        for p in data.get("preferences", [])
    ]

    return config, participants, preferences


def load_grouping_request(path: str) -> GroupingRequest:
    """Load a roster JSON file"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return parse_grouping_request(data)


def export_groupings_csv(
    result: GroupingResult, participants: Sequence[Participant], path: str
) -> int:
    """Write one tee sheet row per participant, returning the number of rows written"""
    tee_prefs = {p.participant_id: p.tee_time_preference for p in participants}
    rows = 0

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "group_number",
                "tee_order",
                "participant_id",
                "tee_time_preference",
                "harmony_score",
            ]
        )
        for group in result.groups:
            for participant_id in group.members:
                writer.writerow(
                    [
                        group.group_number,
                        group.tee_order,
                        participant_id,
                        tee_prefs.get(participant_id, NO_PREFERENCE),
                        group.harmony_score,
                    ]
                )
                rows += 1

    return rows


def show_size_suggestions(total_participants: int):
    """Show the group size plan for a given number of participants"""
    sizes = GroupSizePlanner.calculate_group_sizes(total_participants)
    print(f"\n💡 Group plan for {total_participants} participants:")
    print("=" * 60)
    print(f"   • Sizes in tee order: {sizes}")
    print(f"   • {GroupSizePlanner.describe(sizes)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main command line interface"""
    parser = argparse.ArgumentParser(description="Foursome Grouping Engine")
    parser.add_argument("--config", type=str, help="JSON roster file")
    parser.add_argument(
        "--run-example", action="store_true", help="Group an example roster"
    )
    parser.add_argument("--save-example", type=str, help="Save example roster to file")
    parser.add_argument("--export-csv", type=str, help="Export groupings to CSV file")
    parser.add_argument(
        "--suggest-sizes",
        type=int,
        help="Show the group size plan for N participants",
    )
    parser.add_argument(
        "--shuffle",
        action="store_true",
        help="Randomize pool and group order within tee time tiers",
    )
    parser.add_argument("--seed", type=int, help="Seed for the random source")
    parser.add_argument(
        "--optimize",
        action="store_true",
        help="Improve greedy groups with the OR-Tools optimizer",
    )
    parser.add_argument(
        "--time-limit", type=float, help="Optimizer time limit in seconds"
    )

    args = parser.parse_args(argv)

    if args.suggest_sizes is not None:
        try:
            show_size_suggestions(args.suggest_sizes)
        except ValueError as e:
            print(f"❌ {e}")
            return 1
        return 0

    if args.save_example:
        config, participants, preferences = create_example_roster()
        with open(args.save_example, "w", encoding="utf-8") as f:
            json.dump(
                serialize_grouping_request(config, participants, preferences),
                f,
                indent=2,
                ensure_ascii=False,
            )
        print(f"📁 Example roster saved to {args.save_example}")
        return 0

    # Determine roster source
    if args.config:
        try:
            config, participants, preferences = load_grouping_request(args.config)
            print(f"📁 Loaded roster from {args.config}")
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"❌ Error loading roster: {e}")
            return 1
    elif args.run_example:
        config, participants, preferences = create_example_roster()
        print(f"🎯 Using example roster with {len(participants)} participants")
    else:
        print("❌ Please specify --config, --run-example, --suggest-sizes N, or --save-example")
        parser.print_help()
        return 1

    overrides = {}
    if args.shuffle:
        overrides["shuffle"] = True
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.optimize:
        overrides["optimize"] = True
    if args.time_limit is not None:
        overrides["time_limit_seconds"] = args.time_limit
    try:
        config = dataclasses.replace(config, **overrides)
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    engine = FoursomeGroupingEngine.from_config(config)

    print(f"\n🚀 Generating groupings for {config.name}...")
    result = engine.generate_groupings(participants, preferences, shuffle=config.shuffle)

    engine.print_grouping_summary(result, participants, preferences, title=config.name)

    # Always validate invariants
    print(f"\n🔍 Validating grouping invariants...")
    checks = [
        ("Complete assignment", GroupingValidator.validate_complete_assignment(result, participants)),
        ("Group sizes", GroupingValidator.validate_group_sizes(result)),
        ("Tee order", GroupingValidator.validate_tee_order(result)),
        ("Tee time tiers", GroupingValidator.validate_tier_ordering(result, participants)),
        ("Harmony scores", GroupingValidator.validate_harmony_scores(result, participants, preferences)),
    ]

    all_valid = True
    for label, (valid, violations) in checks:
        print(f"✅ {label}: {'PASSED' if valid else 'FAILED'}")
        if not valid:
            all_valid = False
            for violation in violations[:3]:
                print(f"   ❌ {violation}")

    print(
        f"\n🎯 Overall validation: {'✅ ALL INVARIANTS SATISFIED' if all_valid else '❌ INVARIANT VIOLATIONS FOUND'}"
    )

    if args.export_csv:
        rows = export_groupings_csv(result, participants, args.export_csv)
        print(f"💾 Exported {rows} rows to {args.export_csv}")

    return 0 if all_valid else 1
