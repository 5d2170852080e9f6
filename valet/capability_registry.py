"""Capability Registry: auto-discovers capability modules and builds the registry.

Each capability module is a Python file in valet/capabilities/ exporting a
CAPABILITIES list. This module scans that package and assembles an
immutable CapabilityRegistry:
    - capabilities:       declaration order (module name, then list order)
    - by_priority:        stable priority-descending view, computed once
    - get(name):          lookup by unique name
    - describe():         "- name: description" lines for help and model prompts
    - tool_schemas():     OpenAI-compatible function schemas for agent_tools

Additions require a restart; nothing mutates a registry after it is built.
"""

import importlib
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Optional

from valet.capability import Capability, RegistryError

logger = logging.getLogger("valet.capability_registry")

_CAPABILITIES_PACKAGE = "valet.capabilities"
_capabilities_dir = Path(__file__).parent / "capabilities"


class CapabilityRegistry:
    """Ordered, read-only collection of capabilities."""

    def __init__(self, capabilities: Iterable[Capability]):
        caps = tuple(capabilities)
        self._validate(caps)
        self._capabilities = caps
        # sorted() is stable: equal priorities keep declaration order
        self._by_priority = tuple(sorted(caps, key=lambda c: -c.priority))
        self._by_name = MappingProxyType({c.name: c for c in caps})

    @staticmethod
    def _validate(caps: tuple):
        seen = set()
        for cap in caps:
            if cap.name in seen:
                raise RegistryError(f"Duplicate capability name: {cap.name}")
            seen.add(cap.name)
            if cap.patterns and cap.routing.priority is None:
                raise RegistryError(
                    f"Capability {cap.name} declares patterns but no priority"
                )

    @property
    def capabilities(self) -> tuple:
        return self._capabilities

    @property
    def by_priority(self) -> tuple:
        return self._by_priority

    def get(self, name: str) -> Optional[Capability]:
        return self._by_name.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self._by_priority)

    def __len__(self) -> int:
        return len(self._capabilities)

    @property
    def agent_tools(self) -> tuple:
        """Capabilities a model may invoke: no follow-up handlers, no agent_tool=False."""
        return tuple(c for c in self._capabilities
                     if c.agent_tool and c.should_handle is None)

    def describe(self, agent_only: bool = False) -> str:
        """Capability listing for prompts and help (declaration order)."""
        caps = self.agent_tools if agent_only else self._capabilities
        return "\n".join(f"- {c.name}: {c.description}" for c in caps)

    def tool_schemas(self) -> list:
        """OpenAI-compatible function schemas for the agent tools."""
        schemas = []
        for cap in self.agent_tools:
            schemas.append({
                "type": "function",
                "function": {
                    "name": cap.name,
                    "description": cap.description,
                    "parameters": cap.parameters or {"type": "object", "properties": {}},
                },
            })
        return schemas


# ---------------------------------------------------------------------------
# Auto-discovery
# ---------------------------------------------------------------------------

def discover_capabilities(directory: Path = _capabilities_dir,
                          package: str = _CAPABILITIES_PACKAGE) -> list:
    """Import every public module in the capabilities package.

    Returns:
        Capabilities in module-name order, then each module's list order.
    """
    found = []
    for path in sorted(directory.glob("*.py")):
        if path.name.startswith("_"):
            continue
        mod_name = f"{package}.{path.stem}"
        mod = importlib.import_module(mod_name)
        caps = getattr(mod, "CAPABILITIES", None)
        if caps is None:
            logger.error(f"Capability module {mod_name} missing CAPABILITIES")
            continue
        found.extend(caps)
    return found


_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    """Build the process-wide registry on first use and reuse it afterwards."""
    global _registry
    if _registry is None:
        _registry = CapabilityRegistry(discover_capabilities())
        logger.info(f"Capability registry: {len(_registry)} capabilities discovered")
    return _registry
