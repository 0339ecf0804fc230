"""Achievement seed data. The ten catalog achievements shipped with the app."""

from __future__ import annotations

import logging

from lifequest.datastore.base import Datastore

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "slug": "first_steps",
        "name_en": "First Steps",
        "name_ar": "الخطوات الأولى",
        "description_en": "Complete your first mission",
        "condition_type": "missions_completed",
        "condition_value": 1,
        "xp_reward": 50,
        "coin_reward": 25,
        "lifescore_boost": 5,
        "rarity": "common",
        "sort_order": 1,
    },
    {
        "slug": "streak_master",
        "name_en": "Streak Master",
        "name_ar": "سيد السلسلة",
        "description_en": "Maintain a 7-day streak",
        "condition_type": "streak_count",
        "condition_value": 7,
        "xp_reward": 100,
        "coin_reward": 50,
        "lifescore_boost": 10,
        "rarity": "rare",
        "sort_order": 2,
    },
    {
        "slug": "lifescore_champion",
        "name_en": "LifeScore Champion",
        "name_ar": "بطل النقاط",
        "description_en": "Reach 80 LifeScore",
        "condition_type": "lifescore_milestone",
        "condition_value": 80,
        "xp_reward": 150,
        "coin_reward": 75,
        "lifescore_boost": 15,
        "rarity": "epic",
        "sort_order": 3,
    },
    {
        "slug": "mission_marathon",
        "name_en": "Mission Marathon",
        "name_ar": "ماراثون المهام",
        "description_en": "Complete 25 missions",
        "condition_type": "missions_completed",
        "condition_value": 25,
        "xp_reward": 200,
        "coin_reward": 100,
        "lifescore_boost": 20,
        "rarity": "legendary",
        "sort_order": 4,
    },
    {
        "slug": "xp_collector",
        "name_en": "XP Collector",
        "name_ar": "جامع النقاط",
        "description_en": "Earn 1000 XP",
        "condition_type": "xp_milestone",
        "condition_value": 1000,
        "xp_reward": 120,
        "coin_reward": 60,
        "lifescore_boost": 12,
        "rarity": "rare",
        "sort_order": 5,
    },
    {
        "slug": "coin_hoarder",
        "name_en": "Coin Hoarder",
        "name_ar": "جامع العملات",
        "description_en": "Accumulate 500 coins",
        "condition_type": "coins_earned",
        "condition_value": 500,
        "xp_reward": 80,
        "coin_reward": 40,
        "lifescore_boost": 8,
        "rarity": "common",
        "sort_order": 6,
    },
    {
        "slug": "active_explorer",
        "name_en": "Active Explorer",
        "name_ar": "المستكشف النشط",
        "description_en": "Be active for 30 days",
        "condition_type": "days_active",
        "condition_value": 30,
        "xp_reward": 300,
        "coin_reward": 150,
        "lifescore_boost": 25,
        "rarity": "legendary",
        "sort_order": 7,
    },
    {
        "slug": "scenario_master",
        "name_en": "Scenario Master",
        "name_ar": "سيد السيناريوهات",
        "description_en": "Complete 10 scenario simulations",
        "condition_type": "scenarios_completed",
        "condition_value": 10,
        "xp_reward": 100,
        "coin_reward": 50,
        "lifescore_boost": 10,
        "rarity": "rare",
        "sort_order": 8,
    },
    {
        "slug": "reward_redeemer",
        "name_en": "Reward Redeemer",
        "name_ar": "مسترد المكافآت",
        "description_en": "Redeem 5 rewards",
        "condition_type": "rewards_redeemed",
        "condition_value": 5,
        "xp_reward": 60,
        "coin_reward": 30,
        "lifescore_boost": 6,
        "rarity": "common",
        "sort_order": 9,
    },
    {
        "slug": "safety_expert",
        "name_en": "Safety Expert",
        "name_ar": "خبير السلامة",
        "description_en": "Complete five missions",
        "condition_type": "missions_completed",
        "condition_value": 5,
        "xp_reward": 150,
        "coin_reward": 75,
        "lifescore_boost": 15,
        "rarity": "epic",
        "sort_order": 10,
    },
]


async def seed_achievements(store: Datastore) -> int:
    """Upsert the achievement catalog by slug. Returns number of achievements seeded."""
    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        existing = await store.get("achievements", {"slug": data["slug"]})
        if existing is None:
            await store.insert("achievements", {**data, "is_active": True})
        else:
            await store.update("achievements", {"id": existing["id"]}, dict(data))
        seeded += 1

    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
