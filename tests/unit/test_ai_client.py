"""
AI Provider Client Unit Tests

Tests candidate ranking, failover across (model, api_version) targets,
catalog caching and reply sanitization. The provider is replaced with an
httpx.MockTransport — no network or API key required.
"""

from __future__ import annotations

import httpx
import pytest

from chimera_sync.core.exceptions import AiUnavailableError
from chimera_sync.services.ai import (
    HISTORY_WINDOW,
    AiProviderClient,
    AttemptTarget,
    ChatTurn,
    ModelCatalogCache,
    build_attempt_plan,
    build_contents,
    extract_text,
    rank_models,
    sanitize_reply,
    score_model,
)

BASE_URL = "https://ai.test"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _client(handler, **kwargs) -> AiProviderClient:
    defaults = {
        "api_key": "test-key",
        "preferred_model": "gemini-2.0-flash",
        "fallback_models": [],
        "base_url": BASE_URL,
        "product_name": "Chimera AI",
        "cache": ModelCatalogCache(ttl_seconds=600),
    }
    defaults.update(kwargs)
    return AiProviderClient(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **defaults,
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestRanking:
    def test_scores(self):
        assert score_model("gemini-2.5-flash") == 15
        assert score_model("models/gemini-2.0-flash") == 14
        assert score_model("gemini-2.0-flash-lite") == 12
        assert score_model("gemini-1.5-pro") == 0

    def test_rank_dedupes_and_orders(self):
        ranked = rank_models(
            ["gemini-1.5-pro", "models/Gemini-2.0-Flash", "gemini-2.0-flash", "gemini-2.5-flash"]
        )

        assert ranked == ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-pro"]

    def test_equal_scores_keep_input_order(self):
        assert rank_models(["b-pro", "a-pro"]) == ["b-pro", "a-pro"]

    def test_rank_caps_candidates(self):
        assert len(rank_models([f"model-{i}" for i in range(25)], limit=10)) == 10

    def test_attempt_plan_is_model_major(self):
        plan = build_attempt_plan(["m1", "m2"])

        assert plan == [
            AttemptTarget("m1", "v1beta"),
            AttemptTarget("m1", "v1"),
            AttemptTarget("m2", "v1beta"),
            AttemptTarget("m2", "v1"),
        ]


class TestContents:
    def test_roles_window_and_message_last(self):
        history = [ChatTurn("user", f"u{i}") for i in range(20)]
        history.append(ChatTurn("assistant", "answer"))

        contents = build_contents("now", history)

        assert len(contents) == HISTORY_WINDOW + 1
        assert contents[-2] == {"role": "model", "parts": [{"text": "answer"}]}
        assert contents[-1] == {"role": "user", "parts": [{"text": "now"}]}

    def test_blank_turns_are_skipped(self):
        contents = build_contents("hi", [ChatTurn("user", "  ")])

        assert len(contents) == 1

    def test_extract_text(self):
        data = {"candidates": [{"content": {"parts": [{"text": " a"}, {"text": "b "}]}}]}

        assert extract_text(data) == "ab"
        assert extract_text({"candidates": []}) == ""
        assert extract_text(None) == ""


class TestSanitize:
    def test_whole_words_any_case(self):
        text = "I am Gemini, trained by GOOGLE DeepMind. Not Bard."

        assert sanitize_reply(text, "Chimera AI") == (
            "I am Chimera AI, trained by Chimera AI Chimera AI. Not Chimera AI."
        )

    def test_partial_words_are_kept(self):
        text = "googled googleplex geminids"

        assert sanitize_reply(text, "X") == text

    def test_product_name_is_literal(self):
        assert sanitize_reply("Hi from Gemini", r"Chimera \1 AI\n") == r"Hi from Chimera \1 AI\n"


class TestModelCatalogCache:
    def test_empty_until_stored(self):
        assert ModelCatalogCache(ttl_seconds=10).get() is None

    def test_fresh_then_expired(self):
        clock = FakeClock()
        cache = ModelCatalogCache(ttl_seconds=10, clock=clock)
        cache.store(["a"])

        clock.now += 9.9
        assert cache.get() == ["a"]

        clock.now += 0.1
        assert cache.get() is None

    def test_empty_results_are_not_cached(self):
        cache = ModelCatalogCache(ttl_seconds=10, clock=FakeClock())
        cache.store([])

        assert cache.get() is None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TestChatFailover:
    @pytest.mark.asyncio
    async def test_third_target_wins(self):
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"models": []})
            calls.append(request.url.path)
            if len(calls) == 1:
                return httpx.Response(500, json={"error": "boom"})
            if len(calls) == 2:
                return httpx.Response(200, json=_reply("   "))
            return httpx.Response(200, json=_reply("hello"))

        client = _client(handler, fallback_models=["gemini-1.5-pro"])
        reply = await client.chat("hi")

        assert reply == "hello"
        assert calls == [
            "/v1beta/models/gemini-2.0-flash:generateContent",
            "/v1/models/gemini-2.0-flash:generateContent",
            "/v1beta/models/gemini-1.5-pro:generateContent",
        ]

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(404)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["params"] = dict(request.url.params)
            seen["body"] = request.read()
            return httpx.Response(200, json=_reply("ok"))

        client = _client(handler)
        await client.chat("question", [ChatTurn("assistant", "earlier")])

        assert seen["key"] == "test-key"
        assert "key" not in seen["params"]
        assert b'"systemInstruction"' in seen["body"]
        assert b"Chimera AI" in seen["body"]
        assert b'"role":"model"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_reply_is_sanitized(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"models": []})
            return httpx.Response(200, json=_reply("I am Gemini by Google."))

        reply = await _client(handler).chat("who are you?")

        assert reply == "I am Chimera AI by Chimera AI."

    @pytest.mark.asyncio
    async def test_all_targets_fail(self):
        attempts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"models": []})
            attempts.append(request.url.path)
            return httpx.Response(503)

        client = _client(handler, fallback_models=["gemini-1.5-flash"])

        with pytest.raises(AiUnavailableError) as exc_info:
            await client.chat("hi")

        assert len(attempts) == 4
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "AI service unavailable"
        assert "HTTP 503" in str(exc_info.value.last_error)

    @pytest.mark.asyncio
    async def test_transport_errors_fall_through(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                raise httpx.ConnectError("offline")
            if "/v1beta/" in request.url.path:
                raise httpx.ReadTimeout("slow")
            return httpx.Response(200, json=_reply("from v1"))

        assert await _client(handler).chat("hi") == "from v1"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        client = _client(handler, api_key="")

        assert client.configured is False
        with pytest.raises(AiUnavailableError, match="not configured"):
            await client.chat("hi")


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_discovered_models_are_ranked_and_cached(self):
        lists = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal lists
            lists += 1
            return httpx.Response(
                200,
                json={
                    "models": [
                        {
                            "name": "models/gemini-2.5-flash",
                            "supportedGenerationMethods": ["generateContent"],
                        },
                        {
                            "name": "models/text-embedding-004",
                            "supportedGenerationMethods": ["embedContent"],
                        },
                    ]
                },
            )

        client = _client(handler, fallback_models=["gemini-1.5-pro"])

        first = await client.candidate_models()
        second = await client.candidate_models()

        assert first == ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-pro"]
        assert second == first
        assert lists == 1

    @pytest.mark.asyncio
    async def test_cache_expiry_triggers_refresh(self):
        clock = FakeClock()
        lists = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal lists
            lists += 1
            return httpx.Response(200, json={"models": [{"name": "models/m-pro"}]})

        client = _client(handler, cache=ModelCatalogCache(ttl_seconds=60, clock=clock))

        await client.candidate_models()
        clock.now += 61
        await client.candidate_models()

        assert lists == 2

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_configured_models(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        client = _client(handler, fallback_models=["gemini-1.5-pro"])

        assert await client.candidate_models() == ["gemini-2.0-flash", "gemini-1.5-pro"]
        assert client.cache.get() is None
