"""
Command router — one router, every frontend.

Decides, for each line of user input, whether a capability handles it
deterministically or whether it goes to a model tier. The console and any
request/response transport call route() then execute() identically.

Layer order (first hit wins):
    L0  — Stateful bypass: a capability's should_handle claims the input
          (multi-turn flows). Classification is skipped entirely.
    CLS — Complexity classification. COMPLEX -> model-complex, no
          deterministic layer runs.
    L1  — Pattern: priority order, then declaration order; first regex hit.
    L2  — Keyword: verb/noun scoring (0.9 / 0.7 / 0.5), accepted at >= 0.7.
    L3  — Semantic: best example embedding above the similarity threshold.
    L4  — Fallback: model-simple.

The router holds no per-request mutable state; concurrent sessions may
share one instance.
"""

import logging
from typing import Optional

from valet.capability import (
    Capability,
    CapabilityNotFoundError,
    Complexity,
    ExecutionContext,
    RouteResult,
    RouteSource,
    RouterNotInitializedError,
    RouterResult,
    RouterResultType,
)
from valet.capability_registry import CapabilityRegistry, get_registry
from valet.semantic_matcher import DEFAULT_THRESHOLD, SemanticMatcher

logger = logging.getLogger("valet.router")

RAW_INPUT_ARG = "__raw_input"
DEFAULT_SESSION = "default"

KEYWORD_THRESHOLD = 0.7
SCORE_VERB_AND_NOUN = 0.9
SCORE_NOUN_ONLY = 0.7
SCORE_VERB_ONLY = 0.5


def score_keywords(capability: Capability, words: list, text_lower: str) -> float:
    """Keyword-layer score for one capability.

    A verb matches on exact token equality. A noun matches on token
    equality, or when a multi-word noun appears anywhere in the input.
    """
    keywords = capability.routing.keywords if capability.routing else None
    if keywords is None:
        return 0.0

    verb_match = any(word in keywords.verbs for word in words)
    noun_match = any(word in keywords.nouns for word in words)
    if not noun_match:
        noun_match = any(
            noun in text_lower for noun in keywords.nouns if len(noun.split()) > 1
        )

    if verb_match and noun_match:
        return SCORE_VERB_AND_NOUN
    if noun_match:
        return SCORE_NOUN_ONLY
    if verb_match:
        return SCORE_VERB_ONLY
    return 0.0


class CommandRouter:
    """Layered intent dispatcher over an immutable capability registry."""

    def __init__(self, registry: Optional[CapabilityRegistry] = None, *,
                 keyword_threshold: Optional[float] = None,
                 semantic_threshold: Optional[float] = None):
        self.registry = registry if registry is not None else get_registry()
        self.keyword_threshold = keyword_threshold
        self.semantic_threshold = semantic_threshold
        self.services = None
        self.semantic: Optional[SemanticMatcher] = None

    async def initialize(self, services) -> None:
        """Bind the collaborator bundle and precompute example embeddings."""
        self.services = services

        config = getattr(services, "config", None)
        if config is not None:
            if self.keyword_threshold is None:
                self.keyword_threshold = config.get("router.keyword_threshold", KEYWORD_THRESHOLD)
            if self.semantic_threshold is None:
                self.semantic_threshold = config.get("router.semantic_threshold", DEFAULT_THRESHOLD)
        if self.keyword_threshold is None:
            self.keyword_threshold = KEYWORD_THRESHOLD
        if self.semantic_threshold is None:
            self.semantic_threshold = DEFAULT_THRESHOLD

        self.semantic = SemanticMatcher(getattr(services, "embeddings", None))
        await self.semantic.initialize(self.registry.by_priority)

        logger.info(
            f"CommandRouter initialized with {len(self.registry)} capabilities "
            f"(semantic={'on' if self.semantic.initialized else 'off'})"
        )

    # -------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------

    async def route(self, text: str, session_id: str = DEFAULT_SESSION) -> RouterResult:
        """Route one line of input through the layer chain.

        Args:
            text: Raw user input.
            session_id: Conversational session the input belongs to.

        Returns:
            RouterResult: routed (with a RouteResult), model-simple, or
            model-complex, plus the complexity tier that applied.
        """
        normalized = text.strip()
        if not normalized:
            return RouterResult(RouterResultType.ROUTED, Complexity.SIMPLE)

        # --- L0: Stateful bypass (skips classification) ---
        result = await self._match_contextual(normalized, session_id)
        if result:
            logger.debug(f"L0 match (contextual): {result.capability}, bypassing complexity check")
            return RouterResult(RouterResultType.ROUTED, Complexity.SIMPLE, result)

        # --- CLS: Complexity gate ---
        complexity = await self._classify(normalized)
        logger.debug(f"Complexity classification: {complexity.value} for {normalized[:50]!r}")
        if complexity is Complexity.COMPLEX:
            logger.debug("Complex request, routing to thinking tier")
            return RouterResult(RouterResultType.MODEL_COMPLEX, complexity)

        # --- L1: Pattern ---
        result = self._match_pattern(normalized)
        if result:
            logger.debug(f"L1 match (pattern): {result.capability}")
            return RouterResult(RouterResultType.ROUTED, complexity, result)

        # --- L2: Keyword ---
        result = self._match_keywords(normalized)
        if result:
            logger.debug(f"L2 match (keyword): {result.capability} ({result.confidence:.2f})")
            return RouterResult(RouterResultType.ROUTED, complexity, result)

        # --- L3: Semantic ---
        result = await self._match_semantic(normalized)
        if result:
            logger.debug(f"L3 match (semantic): {result.capability} ({result.confidence:.2f})")
            return RouterResult(RouterResultType.ROUTED, complexity, result)

        # --- L4: Fallback ---
        logger.debug("No router match, using fast tier")
        return RouterResult(RouterResultType.MODEL_SIMPLE, complexity)

    async def _classify(self, text: str) -> Complexity:
        classifier = getattr(self.services, "classifier", None)
        if classifier is None:
            return Complexity.SIMPLE
        return await classifier.classify(text)

    async def _match_contextual(self, text: str, session_id: str) -> Optional[RouteResult]:
        """L0: capabilities with should_handle, in priority order."""
        if self.services is None:
            return None

        context = ExecutionContext(input=text, services=self.services, session_id=session_id)
        for cap in self.registry.by_priority:
            if cap.should_handle is None:
                continue
            if not await cap.should_handle(text, context):
                continue

            args = cap.parse_args(text, None) if cap.parse_args else None
            args = dict(args or {})
            args[RAW_INPUT_ARG] = text
            return RouteResult(
                capability=cap.name,
                args=args,
                confidence=1.0,
                source=RouteSource.PATTERN,
            )
        return None

    def _match_pattern(self, text: str) -> Optional[RouteResult]:
        """L1: first regex hit in priority order, then declaration order."""
        for cap in self.registry.by_priority:
            for pattern in cap.patterns:
                match = pattern.search(text)
                if match:
                    args = cap.parse_args(text, match) if cap.parse_args else {}
                    return RouteResult(
                        capability=cap.name,
                        args=args or {},
                        match=match,
                        confidence=1.0,
                        source=RouteSource.PATTERN,
                    )
        return None

    def _match_keywords(self, text: str) -> Optional[RouteResult]:
        """L2: best verb/noun score; earlier capability wins ties."""
        text_lower = text.lower()
        words = text_lower.split()

        best_cap = None
        best_score = 0.0
        for cap in self.registry.by_priority:
            score = score_keywords(cap, words, text_lower)
            if score > best_score:
                best_cap, best_score = cap, score

        if best_cap is None or best_score < self.keyword_threshold:
            return None

        args = best_cap.parse_args(text, None) if best_cap.parse_args else {}
        return RouteResult(
            capability=best_cap.name,
            args=args or {},
            confidence=best_score,
            source=RouteSource.KEYWORD,
        )

    async def _match_semantic(self, text: str) -> Optional[RouteResult]:
        """L3: global best example embedding above threshold."""
        if self.semantic is None:
            return None

        found = await self.semantic.match(text, self.semantic_threshold)
        if not found:
            return None

        cap, score = found
        args = cap.parse_args(text, None) if cap.parse_args else {}
        return RouteResult(
            capability=cap.name,
            args=args or {},
            confidence=score,
            source=RouteSource.SEMANTIC,
        )

    # -------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------

    async def execute(self, route: RouteResult, raw_input: str,
                      session_id: str = DEFAULT_SESSION) -> str:
        """Run the capability a route resolved to.

        A None return means the capability declined and becomes "".
        Exceptions from the capability propagate unchanged.

        Raises:
            RouterNotInitializedError: initialize() has not run.
            CapabilityNotFoundError: the route names an unknown capability.
        """
        if self.services is None:
            raise RouterNotInitializedError("Router not initialized")

        cap = self.registry.get(route.capability)
        if cap is None:
            raise CapabilityNotFoundError(route.capability)

        context = ExecutionContext(
            input=raw_input,
            services=self.services,
            match=route.match,
            session_id=session_id,
        )
        output = await cap.execute(route.args, context)
        return output if output is not None else ""

    def describe_capabilities(self) -> str:
        return self.registry.describe()
