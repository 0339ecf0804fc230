"""Deterministic template content.

Used whenever live generation is disabled or unconfigured, and to repair
slots missing from a live response. Selection is keyed purely on the
profile, never on randomness or the clock, so the same profile always
yields the same content (and the same ids).
"""

from __future__ import annotations

import hashlib
import math
from typing import Any

from lifequest.missions.schemas import (
    MissionDraft,
    ScenarioPrediction,
    StepDraft,
    SuggestedMission,
    UserProfile,
)

QATARI_NATIONALITIES = {"qatar", "qatari"}


def draft_id(prefix: str, *parts: Any) -> str:
    """Stable id derived from the slot content."""
    digest = hashlib.sha1("|".join(str(p) for p in parts).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:16]}"


def _lower(values: list[str]) -> list[str]:
    return [str(v).lower() for v in values or []]


def _mission(prefix: str, **fields: Any) -> MissionDraft:
    fields.setdefault("ai_generated", False)
    return MissionDraft(
        id=draft_id(prefix, fields["category"], fields["difficulty"], fields["title_en"]),
        **fields,
    )


# --- Missions ---


def _candidate_missions(profile: UserProfile) -> list[MissionDraft]:
    """Profile-driven candidates in priority order; difficulties may repeat."""
    prefs = _lower(profile.insurance_preferences)
    interests = _lower(profile.areas_of_interest)
    vulnerabilities = _lower(profile.vulnerabilities)
    first_time = bool(profile.first_time_buyer)
    age = profile.age or 30
    gender = (profile.gender or "").lower()

    candidates: list[MissionDraft] = []

    if "car" in prefs or "motorcycle" in prefs:
        if first_time:
            candidates.append(_mission(
                "fb",
                category="safe_driving",
                difficulty="easy",
                title_en="Get Your First Car Insurance - 3 Months FREE",
                title_ar="احصل على تأمينك الأول - 3 أشهر مجانًا",
                description_en="Complete your first car insurance purchase and get 3 months FREE coverage as a first-time buyer!",
                description_ar="أكمل عملية شراء تأمين السيارات الأولى واحصل على 3 أشهر مجانًا كمشتري لأول مرة!",
                xp_reward=100,
                lifescore_impact=15,
                coin_reward=10,
            ))
        else:
            candidates.append(_mission(
                "fb",
                category="safe_driving",
                difficulty="medium",
                title_en="Safe Driving Challenge",
                title_ar="تحدي القيادة الآمنة",
                description_en="Maintain safe driving habits for 7 consecutive days. Track your trips and avoid risky behaviors.",
                description_ar="حافظ على عادات القيادة الآمنة لمدة 7 أيام متتالية. تتبع رحلاتك وتجنب السلوكيات الخطرة.",
                xp_reward=120,
                lifescore_impact=12,
                coin_reward=20,
            ))

    if "health" in prefs or (age >= 50 and gender == "female"):
        senior = age >= 50
        candidates.append(_mission(
            "fb",
            category="health",
            difficulty="easy" if senior else "medium",
            title_en="Health Check Mission",
            title_ar="مهمة الفحص الصحي",
            description_en="Schedule and complete a preventive health checkup. Upload results to earn rewards.",
            description_ar="قم بجدولة وإكمال فحص صحي وقائي. ارفع النتائج لكسب المكافآت.",
            xp_reward=80 if senior else 100,
            lifescore_impact=12 if senior else 10,
            coin_reward=10 if senior else 20,
        ))

    if "home" in prefs or any("electronics" in v for v in vulnerabilities):
        candidates.append(_mission(
            "fb",
            category="family_protection",
            difficulty="medium",
            title_en="Home Protection Review",
            title_ar="مراجعة حماية المنزل",
            description_en="Review your home insurance coverage and identify gaps. Get personalized recommendations.",
            description_ar="راجع تغطية تأمين منزلك وحدد الفجوات. احصل على توصيات مخصصة.",
            xp_reward=90,
            lifescore_impact=8,
            coin_reward=20,
        ))

    if "travel" in interests or any("travel" in v for v in vulnerabilities):
        candidates.append(_mission(
            "fb",
            category="lifestyle",
            difficulty="easy",
            title_en="Travel Insurance Explorer",
            title_ar="مستكشف تأمين السفر",
            description_en="Explore travel insurance options for your next trip. Compare plans and find the best coverage.",
            description_ar="استكشف خيارات تأمين السفر لرحلتك القادمة. قارن الخطط وابحث عن أفضل تغطية.",
            xp_reward=60,
            lifescore_impact=6,
            coin_reward=10,
        ))

    return candidates


def _default_easy_mission() -> MissionDraft:
    return _mission(
        "fb",
        category="lifestyle",
        difficulty="easy",
        title_en="Complete Your Profile",
        title_ar="أكمل ملفك الشخصي",
        description_en="Add more details to your profile to unlock personalized missions.",
        description_ar="أضف المزيد من التفاصيل إلى ملفك الشخصي لفتح المهام المخصصة.",
        xp_reward=40,
        lifescore_impact=5,
        coin_reward=10,
    )


def _default_medium_mission() -> MissionDraft:
    return _mission(
        "fb",
        category="financial_guardian",
        difficulty="medium",
        title_en="Financial Protection Check",
        title_ar="فحص الحماية المالية",
        description_en="Complete the QIC Financial Health Assessment and see how well your savings are protected.",
        description_ar="أكمل تقييم الصحة المالية من QIC واكتشف مدى حماية مدخراتك.",
        xp_reward=100,
        lifescore_impact=10,
        coin_reward=20,
    )


def _default_hard_mission(profile: UserProfile) -> MissionDraft:
    prefs = _lower(profile.insurance_preferences)
    interests = _lower(profile.areas_of_interest)
    nationality = (profile.nationality or "").strip().lower()

    if "life" in prefs or "family" in interests:
        return _mission(
            "fb",
            category="family_protection",
            difficulty="hard",
            title_en="Build a Family Protection Plan",
            title_ar="ابنِ خطة حماية لعائلتك",
            description_en="Map every family member's cover, close the gaps and set up life protection with QIC.",
            description_ar="راجع تغطية كل فرد في عائلتك وسد الفجوات وفعّل حماية الحياة مع QIC.",
            xp_reward=200,
            lifescore_impact=20,
            coin_reward=30,
        )
    if nationality and nationality not in QATARI_NATIONALITIES:
        return _mission(
            "fb",
            category="lifestyle",
            difficulty="hard",
            title_en="Expat Cover Checklist",
            title_ar="قائمة تغطية المقيمين",
            description_en="Line up health, travel and home cover for your life in Qatar and your trips back home.",
            description_ar="رتب تغطية الصحة والسفر والمنزل لحياتك في قطر ورحلاتك إلى الوطن.",
            xp_reward=180,
            lifescore_impact=18,
            coin_reward=30,
        )
    return _mission(
        "fb",
        category="financial_guardian",
        difficulty="hard",
        title_en="Financial Guardian Challenge",
        title_ar="تحدي الحارس المالي",
        description_en="Review your life cover against your family's future needs and lock in a protection plan.",
        description_ar="قارن تغطية الحياة باحتياجات عائلتك المستقبلية وثبت خطة حماية.",
        xp_reward=200,
        lifescore_impact=20,
        coin_reward=30,
    )


def default_mission_for(difficulty: str, profile: UserProfile) -> MissionDraft:
    """Template mission for one difficulty slot."""
    for candidate in _candidate_missions(profile):
        if candidate.difficulty == difficulty:
            return candidate
    if difficulty == "easy":
        return _default_easy_mission()
    if difficulty == "medium":
        return _default_medium_mission()
    return _default_hard_mission(profile)


def missions_for_user(profile: UserProfile) -> list[MissionDraft]:
    """Exactly three missions: easy, medium, hard."""
    return [default_mission_for(d, profile) for d in ("easy", "medium", "hard")]


# --- Steps ---


STEP_TEMPLATES: dict[str, list[tuple[str, str]]] = {
    "safe_driving": [
        ("Review Current Coverage", "Log into your QIC account and review your current car insurance policy details and coverage limits."),
        ("Safe Driving Practice", "Practice safe driving for 3 consecutive days: maintain speed limits, use seatbelt always, avoid distractions."),
        ("Complete Safety Assessment", "Complete the QIC Safe Driving Assessment quiz and review personalized recommendations."),
    ],
    "health": [
        ("Schedule Health Checkup", "Use QIC Health Portal to schedule your preventive health checkup appointment."),
        ("Attend Appointment", "Attend your scheduled health checkup and collect any test results or reports."),
        ("Upload Results", "Upload your health checkup results to the QIC Health Portal to complete the mission and earn rewards."),
    ],
    "family_protection": [
        ("Review Family Coverage", "Review your current family insurance coverage and identify any gaps in protection."),
        ("Get Recommendations", "Use the QIC Family Protection tool to get personalized coverage recommendations for your family members."),
        ("Update Policy", "Contact QIC to update your policy or add additional coverage based on recommendations."),
    ],
    "financial_guardian": [
        ("Financial Assessment", "Complete the QIC Financial Health Assessment to understand your current financial protection level."),
        ("Review Life Insurance", "Review your life insurance coverage and calculate if it meets your family's future needs."),
        ("Plan Improvement", "Create a plan to improve your financial protection, whether through policy updates or additional coverage."),
    ],
    "lifestyle": [
        ("Explore Options", "Browse QIC insurance products and services relevant to your interests and lifestyle."),
        ("Compare Plans", "Compare at least 2 different insurance plans that match your needs and budget."),
        ("Take Action", "Complete an action: either get a quote, schedule a consultation, or enroll in a new insurance product."),
    ],
}


def steps_for_mission(category: str | None) -> list[StepDraft]:
    """Three steps for the mission's category; unknown categories use health."""
    template = STEP_TEMPLATES.get(category or "", STEP_TEMPLATES["health"])
    return [
        StepDraft(step_number=number, title=title, description=description)
        for number, (title, description) in enumerate(template, start=1)
    ]


# --- Daily content ---


def daily_brief(profile: UserProfile) -> str:
    name = profile.name or "Friend"
    if any("car" in p for p in _lower(profile.insurance_preferences)):
        return f"Marhaba {name}! Ready to secure your journey? 🦅 Your vehicle deserves the best protection."
    return f"Marhaba {name}! Welcome back to QIC Life. 🌴 Let's build your safety net together."


def _adaptive_easy(profile: UserProfile) -> MissionDraft:
    if profile.first_time_buyer:
        return _mission(
            "daily",
            category="safe_driving",
            difficulty="easy",
            title_en="Get Your First Car Insurance - 3 Months FREE",
            title_ar="احصل على أول تأمين سيارات - 3 أشهر مجاناً",
            description_en="Complete your first car insurance purchase and get 3 months FREE coverage!",
            description_ar="أكمل أول شراء تأمين سيارات واحصل على 3 أشهر مجاناً!",
            xp_reward=100,
            lifescore_impact=15,
            coin_reward=50,
            badge="falcon",
            recurrence_type="daily",
        )
    return _mission(
        "daily",
        category="safe_driving",
        difficulty="easy",
        title_en="Renew Car Liability in 2 Mins",
        title_ar="تجديد مسؤولية السيارة في دقيقتين",
        description_en="Quick renewal → 50 QIC Coins + falcon badge 🦅",
        description_ar="تجديد سريع → 50 عملة + شارة صقر 🦅",
        xp_reward=100,
        lifescore_impact=15,
        coin_reward=50,
        badge="falcon",
        recurrence_type="daily",
    )


def adaptive_missions(profile: UserProfile) -> list[MissionDraft]:
    """The three daily missions, easy/medium/hard."""
    return [
        _adaptive_easy(profile),
        _mission(
            "daily",
            category="family_protection",
            difficulty="medium",
            title_en="Add Home Insurance for Eid Gatherings",
            title_ar="أضف تأمين المنزل لتجمعات العيد",
            description_en="Protect your majlis → 150 Coins + date palm growth 🌴",
            description_ar="احمِ المجلس → 150 عملة + نمو نخلة 🌴",
            xp_reward=150,
            lifescore_impact=10,
            coin_reward=150,
            badge="date_palm",
            recurrence_type="daily",
        ),
        _mission(
            "daily",
            category="lifestyle",
            difficulty="hard",
            title_en="Refer Relative for Travel Cover",
            title_ar="أحِل قريباً لتأمين السفر",
            description_en="Share QIC with family → 300 Coins + hospitality leaderboard spot",
            description_ar="شارك QIC مع العائلة → 300 عملة + مكان في لوحة الضيافة",
            xp_reward=200,
            lifescore_impact=20,
            coin_reward=300,
            badge="family",
            recurrence_type="daily",
        ),
    ]


def adaptive_mission_for(difficulty: str, profile: UserProfile) -> MissionDraft:
    for mission in adaptive_missions(profile):
        if mission.difficulty == difficulty:
            return mission
    raise ValueError(f"Unknown difficulty: {difficulty}")


# --- Scenario prediction ---

DIET_DELTA = {"excellent": 8, "good": 5, "fair": 2, "poor": -4}


def _number(value: Any) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def normalize_inputs(inputs: dict[str, Any] | None) -> dict[str, Any]:
    inputs = inputs or {}
    return {
        "walk_minutes": _number(inputs.get("walk_minutes")),
        "diet_quality": str(inputs.get("diet_quality") or "fair"),
        "commute_distance": _number(inputs.get("commute_distance")),
        "driving_hours": _number(inputs.get("driving_hours")),
        "seatbelt_usage": str(inputs.get("seatbelt_usage") or "often"),
    }


def lifescore_delta(n: dict[str, Any]) -> int:
    delta = 0
    if n["walk_minutes"] > 0:
        delta += min(10, math.floor(n["walk_minutes"] / 10))
    delta += DIET_DELTA.get(n["diet_quality"], 2)
    if n["commute_distance"] > 30 or n["driving_hours"] > 2:
        delta -= 3
    if n["seatbelt_usage"] == "always":
        delta += 3
    elif n["seatbelt_usage"] == "rarely":
        delta -= 4
    return max(1, min(20, delta))


def xp_reward(n: dict[str, Any], delta: int) -> int:
    penalty = 5 if n["seatbelt_usage"] == "rarely" else 0
    return max(10, min(100, 20 + delta * 3 - penalty))


def risk_level(n: dict[str, Any]) -> str:
    risk = 0
    if n["commute_distance"] > 25:
        risk += 1
    if n["driving_hours"] > 2:
        risk += 1
    if n["seatbelt_usage"] != "always":
        risk += 1
    if n["walk_minutes"] >= 30 and n["diet_quality"] in ("good", "excellent"):
        risk -= 1
    if risk <= 0:
        return "low"
    return "medium" if risk == 1 else "high"


def severity_score(risk: str, delta: int) -> int:
    base = {"high": 8, "medium": 5}.get(risk, 3)
    bump = 2 if abs(delta) > 20 else 1 if abs(delta) > 10 else 0
    return max(1, min(10, base + bump))


def narrative(n: dict[str, Any], delta: int, risk: str) -> str:
    parts = []
    if n["walk_minutes"] >= 30:
        parts.append("Adding daily walking improves cardiovascular health.")
    if n["diet_quality"] in ("excellent", "good"):
        parts.append("Your diet supports sustained energy and recovery.")
    if n["commute_distance"] > 25 or n["driving_hours"] > 2:
        parts.append("Long commutes increase incident risk; consider route or timing changes.")
    if n["seatbelt_usage"] != "always":
        parts.append("Always wearing a seatbelt significantly reduces injury risk.")
    parts.append(f"Overall impact preview: LifeScore +{delta}, Risk {risk}.")
    return " ".join(parts)


def suggested_missions(n: dict[str, Any], delta: int, xp: int) -> list[SuggestedMission]:
    missions = []
    if n["walk_minutes"] < 30:
        missions.append(SuggestedMission(
            id="ai-walk-30", title="Walk 30 minutes today", category="health", difficulty="easy",
            xp_reward=max(20, xp - 10), lifescore_impact=max(3, delta // 2),
        ))
    if n["diet_quality"] != "excellent":
        missions.append(SuggestedMission(
            id="ai-meal-plan", title="Plan 3 balanced meals", category="health", difficulty="medium",
            xp_reward=xp, lifescore_impact=max(4, delta // 2),
        ))
    if n["seatbelt_usage"] != "always":
        missions.append(SuggestedMission(
            id="ai-seatbelt", title="Seatbelt Habit Challenge", category="safe_driving", difficulty="easy",
            xp_reward=25, lifescore_impact=5,
        ))
    if not missions:
        missions.append(SuggestedMission(
            id="ai-checkup", title="Schedule a health check", category="health", difficulty="easy",
            xp_reward=30, lifescore_impact=4,
        ))
    return missions


def scenario_prediction(inputs: dict[str, Any] | None) -> ScenarioPrediction:
    n = normalize_inputs(inputs)
    delta = lifescore_delta(n)
    xp = xp_reward(n, delta)
    risk = risk_level(n)
    return ScenarioPrediction(
        lifescore_impact=delta,
        xp_reward=xp,
        risk_level=risk,
        narrative=narrative(n, delta, risk),
        severity_score=severity_score(risk, delta),
        suggested_missions=suggested_missions(n, delta, xp),
    )
