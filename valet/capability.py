"""
Capability contract and dispatch result types.

A Capability is one named unit of deterministic behavior. Capability
modules in valet/capabilities/ build these from static definitions; the
registry sorts them once and the router dispatches to them.

Result types are transient: created per input line and discarded.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional


class Complexity(str, Enum):
    """Complexity tier gating whether the deterministic layers run."""
    SIMPLE = "SIMPLE"
    COMPLEX = "COMPLEX"


class RouteSource(str, Enum):
    """Which layer produced a match."""
    PATTERN = "pattern"
    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    MODEL = "model"


class RouterResultType(str, Enum):
    ROUTED = "routed"
    MODEL_SIMPLE = "model-simple"
    MODEL_COMPLEX = "model-complex"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class RouterError(Exception):
    """Base class for dispatcher errors."""


class RouterNotInitializedError(RouterError):
    """execute() called before initialize() bound the collaborator bundle."""


class CapabilityNotFoundError(RouterError, LookupError):
    """A route result names a capability absent from the registry."""

    def __init__(self, name: str):
        super().__init__(f"Capability not found: {name}")
        self.name = name


class RegistryError(ValueError):
    """Registry invariant violated at build time."""


# ---------------------------------------------------------------------------
# Capability contract
# ---------------------------------------------------------------------------

ArgMap = dict

ParseArgs = Callable[[str, Optional[re.Match]], ArgMap]
ShouldHandle = Callable[[str, "ExecutionContext"], Awaitable[bool]]
Execute = Callable[[ArgMap, "ExecutionContext"], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class Keywords:
    """Verb/noun sets for the keyword layer (compared lower-cased)."""
    verbs: frozenset = frozenset()
    nouns: frozenset = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "verbs", frozenset(v.lower() for v in self.verbs))
        object.__setattr__(self, "nouns", frozenset(n.lower() for n in self.nouns))


@dataclass(frozen=True)
class Routing:
    """Routing metadata for one capability."""
    patterns: tuple = ()             # compiled re.Pattern, tried in order
    keywords: Optional[Keywords] = None
    examples: tuple = ()             # phrases for semantic embedding only
    priority: Optional[int] = None   # higher = evaluated earlier

    def __post_init__(self):
        object.__setattr__(self, "patterns", tuple(self.patterns))
        object.__setattr__(self, "examples", tuple(self.examples))


@dataclass(frozen=True)
class Capability:
    """A named unit of deterministic behavior the router can dispatch to."""
    name: str
    description: str
    execute: Execute
    routing: Optional[Routing] = None
    parse_args: Optional[ParseArgs] = None
    should_handle: Optional[ShouldHandle] = None
    parameters: Optional[dict] = None  # JSON schema for model tool listings
    agent_tool: bool = True  # offered to the model tiers as a tool

    @property
    def priority(self) -> int:
        if self.routing is None or self.routing.priority is None:
            return 0
        return self.routing.priority

    @property
    def patterns(self) -> tuple:
        return self.routing.patterns if self.routing else ()

    @property
    def examples(self) -> tuple:
        return self.routing.examples if self.routing else ()


@dataclass(frozen=True)
class ExecutionContext:
    """Per-call wrapper handed to should_handle and execute."""
    input: str
    services: Any
    match: Optional[re.Match] = None
    session_id: str = "default"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class RouteResult:
    """A successful match from one of the routing layers."""
    capability: str
    args: ArgMap = field(default_factory=dict)
    match: Optional[re.Match] = None
    confidence: float = 1.0
    source: RouteSource = RouteSource.PATTERN


@dataclass
class RouterResult:
    """Outcome of one route() call."""
    type: RouterResultType
    complexity: Complexity = Complexity.SIMPLE
    route: Optional[RouteResult] = None

    @property
    def routed(self) -> bool:
        return self.type is RouterResultType.ROUTED
