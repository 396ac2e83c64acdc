"""Interpretation pipeline services.

Imports are lazy so that pulling in, say, the intent types does not also load
the HTTP stack of the inference adapter.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    # Intents
    "Event": ("taskparse.services.intent", "Event"),
    "Intent": ("taskparse.services.intent", "Intent"),
    "ParseOutcome": ("taskparse.services.intent", "ParseOutcome"),
    "Priority": ("taskparse.services.intent", "Priority"),
    "StrategyTag": ("taskparse.services.intent", "StrategyTag"),
    "Task": ("taskparse.services.intent", "Task"),
    # Errors
    "InferenceError": ("taskparse.services.errors", "InferenceError"),
    "InvalidInputError": ("taskparse.services.errors", "InvalidInputError"),
    "TaskParseError": ("taskparse.services.errors", "TaskParseError"),
    # Strategies
    "FixedPatternParser": ("taskparse.services.parser", "FixedPatternParser"),
    "InferenceParser": ("taskparse.services.llm_parser", "InferenceParser"),
    "RuleEngine": ("taskparse.services.rules", "RuleEngine"),
    # Cache
    "InterpretationCache": ("taskparse.services.cache", "InterpretationCache"),
    # Dispatcher
    "IntentDispatcher": ("taskparse.services.dispatcher", "IntentDispatcher"),
    # Protocol
    "ParseRequest": ("taskparse.services.protocol", "ParseRequest"),
    "ParseResponse": ("taskparse.services.protocol", "ParseResponse"),
    "handle_request": ("taskparse.services.protocol", "handle_request"),
    # Timezone
    "TimezoneService": ("taskparse.services.timezone", "TimezoneService"),
    "get_timezone_service": ("taskparse.services.timezone", "get_timezone_service"),
}

__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))
