"""Strategy dispatcher: the single entry point of the interpretation pipeline.

Each call walks a cascade of increasingly expensive strategies and stops at
the first one that produces an intent:

0. exact cache hit
1. similar cached input (Jaro-Winkler above the threshold)
2. fixed-pattern fast path and rule engine (order set by ``strategy_mode``)
3. inference service, when the startup probe found one
4. fallback: the raw text as an unscheduled task

Every non-cache result is written back keyed by the raw input, so repeating
an input turns into an exact hit.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from rapidfuzz.distance import JaroWinkler

from taskparse.config import StrategyMode, settings
from taskparse.services.cache import InterpretationCache
from taskparse.services.errors import InferenceError, InvalidInputError
from taskparse.services.intent import (
    STRATEGY_CONFIDENCE,
    CacheEntry,
    Intent,
    ParseOutcome,
    StrategyTag,
    fallback_intent,
)
from taskparse.services.llm_parser import InferenceParser
from taskparse.services.parser import FixedPatternParser
from taskparse.services.rules import RuleEngine
from taskparse.services.timezone import TimezoneService

logger = logging.getLogger(__name__)

LocalStrategy = Callable[[str, datetime], Intent | None]


class IntentDispatcher:
    """Orchestrates the strategy cascade and owns the interpretation cache.

    Safe to share between concurrent ``parse`` calls: the cache is only
    touched under ``self._lock``, one get, put or snapshot at a time, and
    never while waiting on the inference service.
    """

    def __init__(
        self,
        *,
        inference: InferenceParser | None = None,
        cache: InterpretationCache | None = None,
        fixed_parser: FixedPatternParser | None = None,
        rule_engine: RuleEngine | None = None,
        clock: Callable[[], datetime] | None = None,
        strategy_mode: StrategyMode | None = None,
        similarity_threshold: float | None = None,
        fuzzy_min_length: int | None = None,
        max_input_length: int | None = None,
    ) -> None:
        self._inference = inference
        self._inference_available = False
        self._cache = cache or InterpretationCache(settings.cache_capacity)
        self._lock = asyncio.Lock()
        self._fixed_parser = fixed_parser or FixedPatternParser()
        self._rule_engine = rule_engine or RuleEngine()
        self._clock = clock or TimezoneService(settings.user_timezone).now

        self.strategy_mode: StrategyMode = strategy_mode or settings.strategy_mode
        self.similarity_threshold = (
            similarity_threshold if similarity_threshold is not None else settings.similarity_threshold
        )
        self.fuzzy_min_length = (
            fuzzy_min_length if fuzzy_min_length is not None else settings.fuzzy_min_length
        )
        self.max_input_length = max_input_length or settings.max_input_length
        self._local_strategies = self._build_local_strategies(self.strategy_mode)

    @classmethod
    async def create(cls, **kwargs) -> IntentDispatcher:
        """Build a dispatcher and run the one-off inference health probe.

        Without an explicit ``inference`` argument an ``InferenceParser`` is
        built from settings, unless inference is disabled there.
        """
        if "inference" not in kwargs and settings.has_inference:
            kwargs["inference"] = InferenceParser()
        dispatcher = cls(**kwargs)
        await dispatcher.probe()
        return dispatcher

    async def probe(self) -> bool:
        """Check inference reachability. The answer holds for the dispatcher's lifetime."""
        if self._inference is None:
            self._inference_available = False
            return False

        self._inference_available = await self._inference.health_check()
        if not self._inference_available:
            logger.warning(
                "Inference service not available. Falling back to rule-based parsing only."
            )
        return self._inference_available

    @property
    def inference_available(self) -> bool:
        return self._inference_available

    async def parse(self, text: str) -> ParseOutcome:
        """Interpret ``text``. Never fails for lack of structure.

        Raises:
            InvalidInputError: the input exceeds ``max_input_length``
        """
        if len(text) > self.max_input_length:
            raise InvalidInputError(
                f"Input is {len(text)} characters, limit is {self.max_input_length}"
            )

        started = time.perf_counter()

        async with self._lock:
            entry = self._cache.get(text)
        if entry is not None:
            logger.debug("Exact cache hit for %r", text)
            return self._outcome(entry.intent, StrategyTag.CACHED_EXACT, entry.confidence, started)

        if len(text) >= self.fuzzy_min_length:
            async with self._lock:
                snapshot = self._cache.iterate()
            similar = self._best_similar(text, snapshot)
            if similar is not None:
                cached_input, entry, similarity = similar
                logger.debug(
                    "Similar cached input (%.0f%% match) %r for %r",
                    similarity * 100,
                    cached_input,
                    text,
                )
                return self._outcome(
                    entry.intent,
                    StrategyTag.CACHED_FUZZY,
                    entry.confidence * similarity,
                    started,
                )

        now = self._clock()
        for strategy, attempt in self._local_strategies:
            intent = attempt(text, now)
            if intent is not None:
                return await self._remember(text, intent, strategy, started)

        if self._inference_available and self._inference is not None:
            try:
                intent = await self._inference.parse(text, now)
            except InferenceError as exc:
                logger.warning("Inference parsing failed: %s. Falling back.", exc)
            else:
                return await self._remember(text, intent, StrategyTag.INFERENCE, started)

        return await self._remember(text, fallback_intent(text), StrategyTag.FALLBACK, started)

    async def cache_stats(self) -> tuple[int, int]:
        """(cached entries, capacity)"""
        async with self._lock:
            return self._cache.stats()

    async def preload(self, inputs: Iterable[str]) -> int:
        """Parse past inputs so later requests hit the cache.

        Returns the number of cached entries afterwards.
        """
        for text in inputs:
            try:
                await self.parse(text)
            except InvalidInputError as exc:
                logger.debug("Skipping preload input: %s", exc)
        size, _ = await self.cache_stats()
        logger.info("Preloaded interpretation cache with %d entries", size)
        return size

    async def warm_up(self, text: str = "warmup query") -> bool:
        """Send one throwaway inference request so the model is loaded before real traffic.

        Goes straight to the inference service; the cache is left untouched.
        """
        if not self._inference_available or self._inference is None:
            return False
        try:
            await self._inference.parse(text, self._clock())
        except InferenceError as exc:
            logger.warning("Inference warm-up failed: %s", exc)
            return False
        logger.info("Inference model warmed up")
        return True

    async def aclose(self) -> None:
        if self._inference is not None:
            await self._inference.aclose()

    async def __aenter__(self) -> IntentDispatcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _build_local_strategies(self, mode: StrategyMode) -> list[tuple[StrategyTag, LocalStrategy]]:
        fixed = (StrategyTag.FIXED_PATTERN, self._fixed_parser.try_parse)
        rules = (StrategyTag.RULE_ENGINE, self._rule_engine.try_parse)
        orders = {
            "fixed_then_rules": [fixed, rules],
            "rules_then_fixed": [rules, fixed],
            "fixed_only": [fixed],
            "rules_only": [rules],
        }
        if mode not in orders:
            raise ValueError(f"Unknown strategy mode: {mode!r}")
        return orders[mode]

    def _best_similar(
        self, text: str, snapshot: list[tuple[str, CacheEntry]]
    ) -> tuple[str, CacheEntry, float] | None:
        best: tuple[str, CacheEntry, float] | None = None
        for cached_input, entry in snapshot:
            similarity = JaroWinkler.similarity(text, cached_input)
            if similarity > self.similarity_threshold and (best is None or similarity > best[2]):
                best = (cached_input, entry, similarity)
        return best

    async def _remember(
        self, text: str, intent: Intent, strategy: StrategyTag, started: float
    ) -> ParseOutcome:
        confidence = STRATEGY_CONFIDENCE[strategy]
        entry = CacheEntry(
            intent=intent,
            strategy=strategy,
            confidence=confidence,
            created_at=self._clock(),
        )
        async with self._lock:
            self._cache.put(text, entry)
        return self._outcome(intent, strategy, confidence, started)

    def _outcome(
        self, intent: Intent, strategy: StrategyTag, confidence: float, started: float
    ) -> ParseOutcome:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        return ParseOutcome(
            intent=intent, strategy=strategy, confidence=confidence, elapsed_ms=elapsed_ms
        )
