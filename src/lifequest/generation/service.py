"""Content generation adapter.

Builds prompts from the user profile, sends a single attempt to the live
provider and turns the response into typed drafts. When live generation is
disabled or has no credentials every call is answered from the deterministic
templates in :mod:`lifequest.generation.fallback`.

A live response is repaired slot by slot: a missing difficulty (or step
number) is filled from the template for that slot, so callers always get
exactly three items. Unusable output raises GenerationFailedError instead.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

import structlog

from lifequest.errors import GenerationFailedError
from lifequest.generation import fallback
from lifequest.generation.providers import TextProvider
from lifequest.missions.schemas import (
    CATEGORIES,
    DEFAULT_COIN_REWARD,
    DIFFICULTIES,
    MissionDraft,
    ScenarioPrediction,
    StepDraft,
    UserProfile,
)

logger = structlog.get_logger()

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

ADAPTIVE_DEFAULTS: dict[str, dict[str, Any]] = {
    "easy": {"xp_reward": 100, "lifescore_impact": 5, "coin_reward": 50, "badge": "falcon", "category": "safe_driving"},
    "medium": {"xp_reward": 150, "lifescore_impact": 10, "coin_reward": 150, "badge": "date_palm", "category": "family_protection"},
    "hard": {"xp_reward": 200, "lifescore_impact": 15, "coin_reward": 300, "badge": "family", "category": "lifestyle"},
}


# --- Prompts ---


def _joined(values: list[str]) -> str:
    return ", ".join(values) if values else "none"


def build_mission_prompt(profile: UserProfile) -> str:
    return f"""You are an AI assistant helping the QIC Life insurance super app generate personalized missions to:
1. Engage users through gamification
2. Convert single-product customers to multi-product customers
3. Increase app retention
4. Utilize QIC ecosystem sub-services
5. Generate referrals through loyalty and engagement

User Profile:
- Age: {profile.age or 30}, Gender: {profile.gender or ''}, Nationality: {profile.nationality or ''}
- Insurance Preferences: {_joined(profile.insurance_preferences)}
- Areas of Interest: {_joined(profile.areas_of_interest)}
- Vulnerabilities: {_joined(profile.vulnerabilities)}
- Budget: {profile.budget or 0} QAR/year
- First-time buyer: {'Yes' if profile.first_time_buyer else 'No'}

Generate exactly 3 personalized missions, one per difficulty: easy, medium, hard. Each mission must:
- Have a category matching one of: {', '.join(CATEGORIES)}
- Include coin_reward: easy=10, medium=20, hard=30
- Include xp_reward (50-200 range based on difficulty)
- Include lifescore_impact (5-20 range)
- Be directly relevant to their insurance preferences, interests, vulnerabilities, and demographics
- Promote QIC insurance products or ecosystem services

Return ONLY a JSON array of missions, each with: title_en, title_ar (Arabic translation), description_en, description_ar, category, difficulty, xp_reward, lifescore_impact, coin_reward."""


def build_steps_prompt(mission: MissionDraft | dict[str, Any], profile: UserProfile) -> str:
    m = mission if isinstance(mission, dict) else mission.model_dump()
    return f"""Generate exactly 3 actionable steps for this insurance mission:
Mission: {m.get('title_en') or m.get('title', '')}
Category: {m.get('category', '')}
Difficulty: {m.get('difficulty', '')}

User context:
- Age: {profile.age or 30}, {profile.gender or ''}, {profile.nationality or ''}
- Insurance preferences: {_joined(profile.insurance_preferences)}
- First-time buyer: {'Yes' if profile.first_time_buyer else 'No'}

Each step must be actionable and specific, relevant to the mission category, and build on the previous one.

Return ONLY a JSON array with exactly 3 objects, each with: step_number (1-3), title, description."""


def build_daily_brief_prompt(profile: UserProfile) -> str:
    name = profile.name or "Friend"
    return f"""You are QIC AI, a warm Qatari insurance guide focused on safety, family, and growth.
Personalize for {name}, age {profile.age or 30}, {profile.gender or ''}, {profile.nationality or ''}.
Insurance preferences: {_joined(profile.insurance_preferences)}.

Write a 1-sentence daily hook (12 words max, bilingual Arabic/English, falcon or date palm motif, tied to vehicle or family safety).

Return ONLY JSON: {{"daily_brief": "..."}}"""


def build_adaptive_prompt(profile: UserProfile) -> str:
    name = profile.name or "Friend"
    return f"""You are QIC AI, a warm Qatari insurance guide focused on safety, family, and growth.
Personalize for {name}, age {profile.age or 30}, {profile.gender or ''}, {profile.nationality or ''}, budget {profile.budget or 0} QAR.
Insurance preferences: {_joined(profile.insurance_preferences)}. First-time buyer: {'Yes' if profile.first_time_buyer else 'No'}.

Generate exactly 3 tiered daily missions:
Easy (no policy requirement): ~50 coins + falcon badge, e.g. "Renew car liability in 2 mins"
Medium (1 policy requirement): ~150 coins + date palm badge, e.g. "Add home insurance for Eid gatherings"
Hard (2+ policies): ~300 coins + family badge, e.g. "Refer a relative for travel cover"

Include GCC hospitality hooks and bilingual Arabic/English text.

Return ONLY JSON:
{{"missions": [{{"level": "easy", "title_en": "", "title_ar": "", "desc_en": "", "desc_ar": "", "category": "", "coin_reward": 50, "xp_reward": 100, "lifescore_impact": 5, "badge": "falcon"}}, ...]}}"""


# --- Parsing ---


def parse_json(raw: str) -> Any:
    """Decode a provider response, tolerating markdown code fences."""
    text = _FENCE_RE.sub("", (raw or "").strip())
    if not text:
        raise GenerationFailedError("Provider returned an empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    # Model prose around the payload: take the outermost JSON value
    starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
    if starts:
        start = min(starts)
        end = max(text.rfind("]"), text.rfind("}"))
        if end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                pass
    raise GenerationFailedError("Provider returned malformed JSON")


def _items(payload: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get(key)
    if not isinstance(payload, list):
        raise GenerationFailedError(f"Provider response has no {key} list")
    items = [item for item in payload if isinstance(item, dict)]
    if not items:
        raise GenerationFailedError(f"Provider response has no usable {key}")
    return items


def _int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _difficulty(item: dict[str, Any], index: int) -> str:
    value = str(item.get("difficulty") or item.get("level") or "").lower()
    return value if value in DIFFICULTIES else DIFFICULTIES[index % len(DIFFICULTIES)]


def normalize_mission(item: dict[str, Any], index: int) -> MissionDraft:
    difficulty = _difficulty(item, index)
    category = str(item.get("category") or "").lower()
    if category not in CATEGORIES:
        category = "health"
    title_en = str(item.get("title_en") or item.get("title") or "Mission")
    return MissionDraft(
        id=fallback.draft_id("ai", category, difficulty, title_en),
        category=category,
        difficulty=difficulty,
        title_en=title_en,
        title_ar=str(item.get("title_ar") or item.get("title") or "مهمة"),
        description_en=str(item.get("description_en") or item.get("description") or "Complete this mission"),
        description_ar=str(item.get("description_ar") or item.get("description") or "أكمل هذه المهمة"),
        xp_reward=_int(item.get("xp_reward"), 50),
        lifescore_impact=_int(item.get("lifescore_impact"), 5),
        coin_reward=_int(item.get("coin_reward"), DEFAULT_COIN_REWARD[difficulty]),
        ai_generated=True,
    )


def normalize_adaptive(item: dict[str, Any], index: int) -> MissionDraft:
    difficulty = _difficulty(item, index)
    defaults = ADAPTIVE_DEFAULTS[difficulty]
    category = str(item.get("category") or "").lower()
    if category not in CATEGORIES:
        category = defaults["category"]
    title_en = str(item.get("title_en") or item.get("title") or f"Daily Mission {index + 1}")
    return MissionDraft(
        id=fallback.draft_id("daily-ai", category, difficulty, title_en),
        category=category,
        difficulty=difficulty,
        title_en=title_en,
        title_ar=str(item.get("title_ar") or item.get("title") or f"مهمة يومية {index + 1}"),
        description_en=str(item.get("desc_en") or item.get("description_en") or item.get("description") or "Complete this mission"),
        description_ar=str(item.get("desc_ar") or item.get("description_ar") or item.get("description") or "أكمل هذه المهمة"),
        xp_reward=_int(item.get("xp_reward"), defaults["xp_reward"]),
        lifescore_impact=_int(item.get("lifescore_impact"), defaults["lifescore_impact"]),
        coin_reward=_int(item.get("coin_reward"), defaults["coin_reward"]),
        badge=str(item.get("badge") or defaults["badge"]),
        recurrence_type="daily",
        ai_generated=True,
    )


def normalize_step(item: dict[str, Any], index: int) -> StepDraft:
    return StepDraft(
        step_number=_int(item.get("step_number"), index + 1),
        title=str(item.get("title") or f"Step {index + 1}"),
        description=str(item.get("description") or "Complete this step"),
    )


def repair_missions(
    drafts: list[MissionDraft],
    template_for: Callable[[str], MissionDraft],
) -> tuple[list[MissionDraft], list[str]]:
    """One draft per difficulty in easy/medium/hard order.

    Returns the repaired list and the difficulties filled from templates.
    """
    by_difficulty: dict[str, MissionDraft] = {}
    for draft in drafts:
        by_difficulty.setdefault(draft.difficulty, draft)
    repaired: list[str] = []
    result = []
    for difficulty in DIFFICULTIES:
        if difficulty not in by_difficulty:
            by_difficulty[difficulty] = template_for(difficulty)
            repaired.append(difficulty)
        result.append(by_difficulty[difficulty])
    return result, repaired


def repair_steps(steps: list[StepDraft], template: list[StepDraft]) -> tuple[list[StepDraft], list[int]]:
    """Steps 1, 2 and 3 in order, missing numbers taken from ``template``."""
    by_number: dict[int, StepDraft] = {}
    for step in steps:
        if 1 <= step.step_number <= 3:
            by_number.setdefault(step.step_number, step)
    repaired = [n for n in (1, 2, 3) if n not in by_number]
    for step in template:
        by_number.setdefault(step.step_number, step)
    return [by_number[n] for n in (1, 2, 3)], repaired


# --- Adapter ---


class ContentGenerator:
    """Generates missions, steps and daily content for a user profile."""

    def __init__(
        self,
        provider: TextProvider | None = None,
        enabled: bool = True,
        max_tokens: int = 1200,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider if enabled else None
        self.max_tokens = max_tokens
        self.temperature = temperature
        if self.provider is None:
            logger.info(
                "content_generation_template_mode",
                reason="disabled" if not enabled else "no_provider_configured",
            )

    @property
    def live(self) -> bool:
        return self.provider is not None

    async def _complete(self, prompt: str, operation: str, max_tokens: int | None = None) -> Any:
        assert self.provider is not None
        raw = await self.provider.complete(prompt, max_tokens or self.max_tokens, self.temperature)
        try:
            return parse_json(raw)
        except GenerationFailedError:
            logger.warning("generation_malformed_output", operation=operation, provider=self.provider.name)
            raise

    async def generate_missions_for_user(self, profile: UserProfile) -> list[MissionDraft]:
        """Three missions, one per difficulty."""
        if not self.live:
            return fallback.missions_for_user(profile)

        payload = await self._complete(build_mission_prompt(profile), "missions")
        drafts = [normalize_mission(item, i) for i, item in enumerate(_items(payload, "missions"))]
        missions, repaired = repair_missions(drafts, lambda d: fallback.default_mission_for(d, profile))
        if repaired:
            logger.info("generation_slots_repaired", operation="missions", slots=repaired)
        return missions

    async def generate_mission_steps(
        self,
        mission: MissionDraft | dict[str, Any],
        profile: UserProfile,
    ) -> list[StepDraft]:
        """Three steps numbered 1..3 for a started mission."""
        category = mission.get("category") if isinstance(mission, dict) else mission.category
        template = fallback.steps_for_mission(category)
        if not self.live:
            return template

        payload = await self._complete(build_steps_prompt(mission, profile), "steps", max_tokens=600)
        drafts = [normalize_step(item, i) for i, item in enumerate(_items(payload, "steps"))]
        steps, repaired = repair_steps(drafts, template)
        if repaired:
            logger.info("generation_slots_repaired", operation="steps", slots=repaired)
        return steps

    async def generate_daily_brief(self, profile: UserProfile) -> str:
        if not self.live:
            return fallback.daily_brief(profile)

        assert self.provider is not None
        raw = await self.provider.complete(build_daily_brief_prompt(profile), 100, self.temperature)
        try:
            payload = parse_json(raw)
        except GenerationFailedError:
            # Plain-text answers are acceptable for a one-line brief
            first_line = (raw or "").strip().split("\n")[0][:150]
            if not first_line:
                raise
            return first_line
        if isinstance(payload, dict) and payload.get("daily_brief"):
            return str(payload["daily_brief"])
        raise GenerationFailedError("Provider response has no daily_brief")

    async def generate_adaptive_missions(self, profile: UserProfile) -> list[MissionDraft]:
        """Three daily-recurrence missions, one per difficulty."""
        if not self.live:
            return fallback.adaptive_missions(profile)

        payload = await self._complete(build_adaptive_prompt(profile), "adaptive_missions", max_tokens=800)
        drafts = [normalize_adaptive(item, i) for i, item in enumerate(_items(payload, "missions")[:3])]
        missions, repaired = repair_missions(drafts, lambda d: fallback.adaptive_mission_for(d, profile))
        if repaired:
            logger.info("generation_slots_repaired", operation="adaptive_missions", slots=repaired)
        return missions

    async def predict_scenario_outcome(
        self,
        inputs: dict[str, Any] | None,
        profile: UserProfile | None = None,
    ) -> ScenarioPrediction:
        """Deterministic what-if projection for lifestyle inputs."""
        return fallback.scenario_prediction(inputs)
