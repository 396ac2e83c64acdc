"""JSON request/response envelope for callers talking to a dispatcher over IPC.

A request is ``{"input": "..."}``. A response carries either ``outcome``
(``ParseOutcome.to_dict()``) or a textual ``error``, never both.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from taskparse.services.errors import InvalidInputError

if TYPE_CHECKING:
    from taskparse.services.dispatcher import IntentDispatcher

logger = logging.getLogger(__name__)


class ParseRequest(BaseModel):
    input: str


class ParseResponse(BaseModel):
    outcome: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def handle_request(dispatcher: IntentDispatcher, payload: str | bytes) -> str:
    """Decode one JSON request, run it through ``dispatcher`` and encode the answer."""
    try:
        request = ParseRequest.model_validate_json(payload)
    except ValidationError as exc:
        logger.warning("Rejected malformed request: %s", exc)
        return _encode(ParseResponse(error=f"Malformed request: {exc.errors()[0]['msg']}"))

    try:
        outcome = await dispatcher.parse(request.input)
    except InvalidInputError as exc:
        return _encode(ParseResponse(error=str(exc)))

    return _encode(ParseResponse(outcome=outcome.to_dict()))


def _encode(response: ParseResponse) -> str:
    return response.model_dump_json(exclude_none=True)
