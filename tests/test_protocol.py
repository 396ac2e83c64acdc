import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from taskparse.services.cache import InterpretationCache
from taskparse.services.dispatcher import IntentDispatcher
from taskparse.services.intent import ParseOutcome, StrategyTag
from taskparse.services.protocol import ParseRequest, ParseResponse, handle_request

NOW = datetime(2025, 1, 15, 10, 30, tzinfo=ZoneInfo("UTC"))


@pytest.fixture
def dispatcher():
    return IntentDispatcher(
        clock=lambda: NOW,
        cache=InterpretationCache(10),
        strategy_mode="fixed_then_rules",
        max_input_length=100,
    )


class TestModels:
    def test_request_requires_input(self):
        assert ParseRequest(input="Buy milk").input == "Buy milk"

    def test_response_ok(self):
        assert ParseResponse(outcome={}).ok is True
        assert ParseResponse(error="boom").ok is False


class TestHandleRequest:
    @pytest.mark.asyncio
    async def test_parse_request(self, dispatcher):
        raw = await handle_request(dispatcher, json.dumps({"input": "Team sync 2-4pm"}))

        response = ParseResponse.model_validate_json(raw)
        assert response.error is None
        outcome = ParseOutcome.from_dict(response.outcome)
        assert outcome.strategy is StrategyTag.RULE_ENGINE
        assert outcome.intent.title == "Team sync"

    @pytest.mark.asyncio
    async def test_bytes_payload(self, dispatcher):
        raw = await handle_request(dispatcher, b'{"input": "Buy milk #errands"}')

        assert json.loads(raw)["outcome"]["intent"]["tags"] == ["errands"]

    @pytest.mark.asyncio
    async def test_error_and_outcome_are_exclusive(self, dispatcher):
        raw = await handle_request(dispatcher, '{"input": "Buy milk"}')

        assert "error" not in json.loads(raw)

    @pytest.mark.asyncio
    async def test_invalid_json(self, dispatcher):
        raw = await handle_request(dispatcher, "not json")

        data = json.loads(raw)
        assert data["error"].startswith("Malformed request")
        assert "outcome" not in data

    @pytest.mark.asyncio
    async def test_missing_input(self, dispatcher):
        raw = await handle_request(dispatcher, '{"text": "Buy milk"}')

        assert json.loads(raw)["error"].startswith("Malformed request")

    @pytest.mark.asyncio
    async def test_oversized_input(self, dispatcher):
        raw = await handle_request(dispatcher, json.dumps({"input": "x" * 101}))

        assert "limit is 100" in json.loads(raw)["error"]
