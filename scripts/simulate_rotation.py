#!/usr/bin/env python3
"""
Rotation Simulator

Generates N simulated stories for one child against the in-memory record
store and prints which learning theme and subtype each story would get.

Usage:
    python scripts/simulate_rotation.py --stories 12 --theme fantasy --age 7 \
        --themes sharing patience courage --frequency regular
"""

import argparse
import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import get_settings
from src.models import LearningConfig, StoryHistoryRecord
from src.services import InMemoryRecordStore, ContentRotationService


async def simulate(args) -> int:
    settings = get_settings()
    store = InMemoryRecordStore.from_yaml(args.catalog or settings.rotation_catalog_path)
    kid_id = "kid_simulated"

    if args.themes:
        store.set_learning_config(LearningConfig(
            kid_profile_id=kid_id,
            active_themes=args.themes,
            frequency=args.frequency,
        ))

    rng = random.Random(args.seed) if args.seed is not None else None
    service = ContentRotationService(settings, rng=rng)
    started = datetime.now(timezone.utc)

    print("=" * 70)
    print(f"🎲 Simulating {args.stories} stories (theme={args.theme}, age={args.age}, lang={args.language})")
    print("=" * 70)

    for number in range(1, args.stories + 1):
        plan = await service.plan(kid_id, args.theme, args.age, args.language, store)
        story_id = f"story_{number:03d}"

        store.add_story(StoryHistoryRecord(
            story_id=story_id,
            kid_profile_id=kid_id,
            created_at=started + timedelta(minutes=number),
            learning_theme_applied=plan.theme.theme_key if plan.theme else None,
        ))
        await service.record_story(kid_id, plan, story_id, store)

        theme = f"{plan.theme.theme_key} ({plan.theme.theme_label})" if plan.theme else "-"
        subtype = f"{plan.subtype.subtype_key} ({plan.subtype.label})" if plan.subtype else "-"
        print(f"  #{number:>3}  theme: {theme:<28} subtype: {subtype}")

    print("=" * 70)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Simulate learning theme and subtype rotation")
    parser.add_argument("--stories", type=int, default=10, help="Number of stories to simulate")
    parser.add_argument("--theme", default="fantasy", help="Story theme key (fantasy, action, animals, ...)")
    parser.add_argument("--age", type=int, default=7, help="Child age")
    parser.add_argument("--language", default="en", help="Story language code")
    parser.add_argument("--themes", nargs="*", default=[], help="Active learning themes, in rotation order")
    parser.add_argument("--frequency", default="regular", help="occasional | regular | frequent (or 1/2/3)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument("--catalog", default=None, help="Path to a rotation catalog YAML")
    args = parser.parse_args()

    sys.exit(asyncio.run(simulate(args)))


if __name__ == "__main__":
    main()
