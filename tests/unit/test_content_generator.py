"""Content generator: template mode, live parsing, slot repair and provider errors."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from lifequest.errors import GenerationCredentialsError, GenerationFailedError
from lifequest.generation import fallback
from lifequest.generation.providers import AnthropicProvider, is_credentials_or_quota_error
from lifequest.generation.service import ContentGenerator, parse_json
from lifequest.missions.schemas import UserProfile

PROFILE = UserProfile(
    name="Aisha",
    age=34,
    gender="female",
    nationality="Qatari",
    insurance_preferences=["car", "health"],
    areas_of_interest=["travel"],
)


def _mission(difficulty: str, title: str, **extra) -> dict:
    return {
        "title_en": title,
        "title_ar": "مهمة",
        "description_en": f"{title} description",
        "category": "health",
        "difficulty": difficulty,
        "xp_reward": 120,
        "lifescore_impact": 9,
        **extra,
    }


class TestParseJson:
    def test_fenced_array(self):
        assert parse_json('```json\n[{"a": 1}]\n```') == [{"a": 1}]

    def test_prose_around_payload(self):
        assert parse_json('Here you go: {"daily_brief": "hi"} enjoy') == {"daily_brief": "hi"}

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[{broken"])
    def test_unusable_output(self, raw):
        with pytest.raises(GenerationFailedError):
            parse_json(raw)


class TestTemplateMode:
    @pytest.mark.asyncio
    async def test_disabled_ignores_provider(self, scripted_provider):
        provider = scripted_provider()
        generator = ContentGenerator(provider=provider, enabled=False)

        missions = await generator.generate_missions_for_user(PROFILE)

        assert not generator.live
        assert provider.prompts == []
        assert [m.id for m in missions] == [m.id for m in fallback.missions_for_user(PROFILE)]

    @pytest.mark.asyncio
    async def test_no_provider_uses_templates(self):
        generator = ContentGenerator(provider=None, enabled=True)
        steps = await generator.generate_mission_steps({"category": "lifestyle"}, PROFILE)
        assert [s.title for s in steps] == ["Explore Options", "Compare Plans", "Take Action"]
        assert await generator.generate_daily_brief(PROFILE) == fallback.daily_brief(PROFILE)
        assert len(await generator.generate_adaptive_missions(PROFILE)) == 3

    @pytest.mark.asyncio
    async def test_scenario_prediction_is_deterministic(self, scripted_provider):
        generator = ContentGenerator(provider=scripted_provider(), enabled=True)
        inputs = {"walk_minutes": 30, "diet_quality": "good", "seatbelt_usage": "always"}
        first = await generator.predict_scenario_outcome(inputs, PROFILE)
        second = await generator.predict_scenario_outcome(inputs)
        assert first == second


class TestLiveMissions:
    @pytest.mark.asyncio
    async def test_parses_three_missions(self, scripted_provider):
        payload = [_mission("easy", "Walk"), _mission("medium", "Eat"), _mission("hard", "Run", coin_reward=45)]
        provider = scripted_provider("```json\n" + json.dumps(payload) + "\n```")
        generator = ContentGenerator(provider=provider)

        missions = await generator.generate_missions_for_user(PROFILE)

        assert [m.title_en for m in missions] == ["Walk", "Eat", "Run"]
        assert all(m.ai_generated and m.id.startswith("ai-") for m in missions)
        assert missions[0].coin_reward == 10
        assert missions[2].coin_reward == 45
        assert "Aisha" not in provider.prompts[0]
        assert "car, health" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_missing_slot_is_repaired_from_template(self, scripted_provider):
        payload = [_mission("easy", "Walk"), _mission("hard", "Run")]
        generator = ContentGenerator(provider=scripted_provider(json.dumps(payload)))

        missions = await generator.generate_missions_for_user(PROFILE)

        assert [m.difficulty for m in missions] == ["easy", "medium", "hard"]
        assert missions[1].title_en == fallback.default_mission_for("medium", PROFILE).title_en
        assert not missions[1].ai_generated

    @pytest.mark.asyncio
    async def test_invalid_fields_get_defaults(self, scripted_provider):
        payload = [{"title": "Only a title", "difficulty": "legendary", "category": "astronomy", "xp_reward": "lots"}]
        generator = ContentGenerator(provider=scripted_provider(json.dumps({"missions": payload})))

        easy = (await generator.generate_missions_for_user(PROFILE))[0]

        assert easy.title_en == "Only a title"
        assert easy.category == "health"
        assert easy.xp_reward == 50
        assert easy.lifescore_impact == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json at all", '{"foo": 1}', "[1, 2, 3]"])
    async def test_unusable_output_raises(self, scripted_provider, raw):
        generator = ContentGenerator(provider=scripted_provider(raw))
        with pytest.raises(GenerationFailedError):
            await generator.generate_missions_for_user(PROFILE)

    @pytest.mark.asyncio
    async def test_credentials_error_propagates(self, scripted_provider):
        generator = ContentGenerator(provider=scripted_provider(GenerationCredentialsError("invalid x-api-key")))
        with pytest.raises(GenerationCredentialsError):
            await generator.generate_missions_for_user(PROFILE)


class TestLiveSteps:
    @pytest.mark.asyncio
    async def test_missing_step_number_repaired(self, scripted_provider):
        payload = [
            {"step_number": 1, "title": "Call", "description": "Call QIC"},
            {"step_number": 3, "title": "Sign", "description": "Sign the policy"},
        ]
        generator = ContentGenerator(provider=scripted_provider(json.dumps(payload)))

        steps = await generator.generate_mission_steps({"category": "safe_driving", "title_en": "Drive"}, PROFILE)

        assert [s.step_number for s in steps] == [1, 2, 3]
        assert [s.title for s in steps] == ["Call", "Safe Driving Practice", "Sign"]


class TestLiveDailyContent:
    @pytest.mark.asyncio
    async def test_brief_from_json(self, scripted_provider):
        generator = ContentGenerator(provider=scripted_provider('{"daily_brief": "Fly high, falcon 🦅"}'))
        assert await generator.generate_daily_brief(PROFILE) == "Fly high, falcon 🦅"

    @pytest.mark.asyncio
    async def test_brief_plain_text_first_line(self, scripted_provider):
        generator = ContentGenerator(provider=scripted_provider("Marhaba! Drive safe today\nsecond line"))
        assert await generator.generate_daily_brief(PROFILE) == "Marhaba! Drive safe today"

    @pytest.mark.asyncio
    async def test_adaptive_defaults_and_repair(self, scripted_provider):
        payload = {"missions": [{"level": "easy", "title_en": "Renew now", "desc_en": "Quick renewal"}]}
        generator = ContentGenerator(provider=scripted_provider(json.dumps(payload)))

        missions = await generator.generate_adaptive_missions(PROFILE)

        easy = missions[0]
        assert easy.title_en == "Renew now"
        assert easy.coin_reward == 50
        assert easy.badge == "falcon"
        assert easy.recurrence_type == "daily"
        assert easy.id.startswith("daily-ai-")
        assert [m.badge for m in missions[1:]] == ["date_palm", "family"]


def _status_error(cls, status: int, message: str):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return cls(message, response=response, body=None)


class TestAnthropicProvider:
    def _provider(self, create: AsyncMock) -> AnthropicProvider:
        provider = AnthropicProvider(api_key="test-key", model="claude-test")
        provider.client = MagicMock()
        provider.client.messages.create = create
        return provider

    @pytest.mark.asyncio
    async def test_returns_text_blocks(self):
        response = SimpleNamespace(content=[SimpleNamespace(type="text", text='{"ok": true}')])
        create = AsyncMock(return_value=response)
        provider = self._provider(create)

        assert await provider.complete("prompt", 100, 0.5) == '{"ok": true}'
        assert create.await_args.kwargs["model"] == "claude-test"
        assert create.await_args.kwargs["max_tokens"] == 100

    @pytest.mark.asyncio
    async def test_empty_content_fails(self):
        provider = self._provider(AsyncMock(return_value=SimpleNamespace(content=[])))
        with pytest.raises(GenerationFailedError):
            await provider.complete("prompt", 100, 0.5)

    @pytest.mark.asyncio
    async def test_authentication_error(self):
        error = _status_error(anthropic.AuthenticationError, 401, "invalid x-api-key")
        provider = self._provider(AsyncMock(side_effect=error))
        with pytest.raises(GenerationCredentialsError):
            await provider.complete("prompt", 100, 0.5)

    @pytest.mark.asyncio
    async def test_low_credit_balance(self):
        error = _status_error(anthropic.BadRequestError, 400, "Your credit balance is too low")
        provider = self._provider(AsyncMock(side_effect=error))
        with pytest.raises(GenerationCredentialsError):
            await provider.complete("prompt", 100, 0.5)

    @pytest.mark.asyncio
    async def test_outage_is_plain_failure(self):
        error = _status_error(anthropic.InternalServerError, 500, "overloaded")
        provider = self._provider(AsyncMock(side_effect=error))
        with pytest.raises(GenerationFailedError) as exc_info:
            await provider.complete("prompt", 100, 0.5)
        assert not isinstance(exc_info.value, GenerationCredentialsError)

    def test_classification(self):
        assert is_credentials_or_quota_error(_status_error(anthropic.PermissionDeniedError, 403, "forbidden"))
        assert is_credentials_or_quota_error(RuntimeError("monthly quota exceeded"))
        assert not is_credentials_or_quota_error(RuntimeError("timeout"))
