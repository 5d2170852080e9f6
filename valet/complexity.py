"""
Complexity Classifier — SIMPLE vs COMPLEX gate for the router.

Primary path: one short call to the router tier with a fixed prompt.
Fallback path: counting heuristic signals over the raw text.

The remote path never raises. Timeouts, transport errors, an unhealthy
tier, and ambiguous answers all collapse into the same "unavailable"
outcome (None) and the heuristics decide instead.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from valet.capability import Complexity
from valet.llm_service import LLMUnavailable

logger = logging.getLogger("valet.complexity")

ROUTER_TIER = "router"
ROUTER_MAX_TOKENS = 10
COMPLEX_SIGNAL_THRESHOLD = 2

ROUTER_PROMPT = """Classify this request as SIMPLE or COMPLEX.

SIMPLE: Single action, direct command, one tool needed
- "show my tasks"
- "add milk to list"
- "weather"
- "what time is it"

COMPLEX: Multiple steps, references needing lookup, code, planning
- "email Sarah about tomorrow's meeting" (needs contact + calendar lookup)
- "write a function to parse CSV"
- "help me plan my week"
- "compare my tasks with my calendar"

Request: "{input}"

Answer with one word (SIMPLE or COMPLEX):"""


# ---------------------------------------------------------------------------
# Heuristic signals
# ---------------------------------------------------------------------------

_CHAINING = re.compile(r"\b(and then|after that|first|next|finally)\b", re.IGNORECASE)
_COMMUNICATION = re.compile(r"\b(email|message|text|send)\b.*\b(about|regarding)\b", re.IGNORECASE)
_CODE = re.compile(
    r"\b(write|create|build|implement|design)\b.*\b(code|function|script|app|program)\b",
    re.IGNORECASE,
)
_PLANNING = re.compile(r"\b(plan|schedule|organize|prepare|help me with)\b", re.IGNORECASE)
_ANALYSIS = re.compile(r"\b(compare|analyze|review|summarize)\b", re.IGNORECASE)
_CONDITIONAL = re.compile(r"\b(if|when|based on|depending)\b", re.IGNORECASE)
_PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+\b")
_CLAUSE_SPLIT = re.compile(r"[,;]")

LONG_INPUT_CHARS = 150
PROPER_NOUN_LIMIT = 2
CLAUSE_LIMIT = 2


def has_chaining(text: str) -> bool:
    return bool(_CHAINING.search(text))


def has_communication_context(text: str) -> bool:
    return bool(_COMMUNICATION.search(text))


def has_code_authoring(text: str) -> bool:
    return bool(_CODE.search(text))


def has_planning(text: str) -> bool:
    return bool(_PLANNING.search(text))


def has_analysis(text: str) -> bool:
    return bool(_ANALYSIS.search(text))


def has_conditional(text: str) -> bool:
    return bool(_CONDITIONAL.search(text))


def has_many_proper_nouns(text: str) -> bool:
    """More than two capitalized words suggest entities needing lookup."""
    return len(_PROPER_NOUN.findall(text)) > PROPER_NOUN_LIMIT


def is_long_input(text: str) -> bool:
    return len(text) > LONG_INPUT_CHARS


def has_multiple_clauses(text: str) -> bool:
    return len(_CLAUSE_SPLIT.split(text)) > CLAUSE_LIMIT


HEURISTIC_SIGNALS: Dict[str, Callable[[str], bool]] = {
    "chaining": has_chaining,
    "communication": has_communication_context,
    "code": has_code_authoring,
    "planning": has_planning,
    "analysis": has_analysis,
    "conditional": has_conditional,
    "proper_nouns": has_many_proper_nouns,
    "long_input": is_long_input,
    "multiple_clauses": has_multiple_clauses,
}


def heuristic_signals(text: str) -> List[str]:
    """Names of every heuristic signal that fires for text."""
    return [name for name, check in HEURISTIC_SIGNALS.items() if check(text)]


def classify_by_heuristics(text: str) -> Complexity:
    signals = heuristic_signals(text)
    logger.debug(f"Heuristic complexity check: signals={signals}, input={text[:50]!r}")
    if len(signals) >= COMPLEX_SIGNAL_THRESHOLD:
        return Complexity.COMPLEX
    return Complexity.SIMPLE


def parse_verdict(response: str) -> Optional[Complexity]:
    """Read a router-tier answer; COMPLEX wins if both words appear."""
    normalized = response.strip().upper()
    if "COMPLEX" in normalized:
        return Complexity.COMPLEX
    if "SIMPLE" in normalized:
        return Complexity.SIMPLE
    return None


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------

class ComplexityClassifier:
    """Classify input complexity via the router tier, with heuristic fallback."""

    def __init__(self, llm, timeout: Optional[float] = None):
        self.llm = llm
        # Same bound as the health probe
        self.timeout = timeout if timeout is not None else getattr(llm, "health_timeout", 35.0)

    async def classify(self, text: str) -> Complexity:
        verdict = await self.classify_remote(text)
        if verdict is not None:
            return verdict
        return classify_by_heuristics(text)

    async def classify_remote(self, text: str) -> Optional[Complexity]:
        """Ask the router tier; None means unavailable or ambiguous."""
        if self.llm is None or not self.llm.is_healthy(ROUTER_TIER):
            return None

        prompt = ROUTER_PROMPT.replace("{input}", text)
        try:
            response = await self.llm.chat(
                [{"role": "user", "content": prompt}],
                tier=ROUTER_TIER,
                max_tokens=ROUTER_MAX_TOKENS,
                timeout=self.timeout,
            )
        except LLMUnavailable as e:
            logger.debug(f"Router classification failed, using heuristics: {e}")
            return None

        verdict = parse_verdict(response)
        if verdict is None:
            logger.debug(f"Router model returned ambiguous response: {response!r}")
        return verdict
