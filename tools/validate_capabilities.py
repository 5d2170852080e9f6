#!/usr/bin/env python3
"""
Capability Validation Tool

Builds the capability registry the same way the router does and checks it:
    - registry invariants (unique names, priority set wherever patterns are)
    - pattern overlaps: an example phrase of one capability that another
      capability's pattern claims first, so the example can never reach
      the semantic layer for its owner

Usage:
    python3 tools/validate_capabilities.py            # report overlaps as warnings
    python3 tools/validate_capabilities.py --strict   # overlaps fail validation
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from valet.capability import RegistryError  # noqa: E402
from valet.capability_registry import CapabilityRegistry, discover_capabilities  # noqa: E402


def first_pattern_owner(registry: CapabilityRegistry, text: str):
    """Name of the capability whose pattern L1 would pick for text, if any."""
    for cap in registry.by_priority:
        for pattern in cap.patterns:
            if pattern.search(text):
                return cap.name
    return None


def find_overlaps(registry: CapabilityRegistry) -> list:
    """
    Find example phrases shadowed by another capability's pattern

    Returns:
        List of (owner, example, claimed_by) tuples
    """
    overlaps = []
    for cap in registry.capabilities:
        for example in cap.examples:
            claimed_by = first_pattern_owner(registry, example)
            if claimed_by and claimed_by != cap.name:
                overlaps.append((cap.name, example, claimed_by))
    return overlaps


def validate(strict: bool = False) -> bool:
    """
    Validate the bundled capabilities

    Returns:
        True if valid, False if validation fails
    """
    try:
        registry = CapabilityRegistry(discover_capabilities())
    except RegistryError as e:
        print(f"❌ Registry invalid: {e}")
        return False

    patterns = sum(len(c.patterns) for c in registry)
    examples = sum(len(c.examples) for c in registry)
    contextual = [c.name for c in registry if c.should_handle is not None]

    overlaps = find_overlaps(registry)
    if overlaps:
        marker = "❌" if strict else "⚠️ "
        print(f"\n{marker} {len(overlaps)} example phrase(s) claimed by another capability's pattern:")
        for owner, example, claimed_by in overlaps:
            print(f"      • {owner}: \"{example}\" -> {claimed_by}")
        if strict:
            return False

    print(f"✅ {len(registry)} capabilities valid ({patterns} patterns, {examples} examples, "
          f"{len(contextual)} contextual: {', '.join(contextual) or 'none'})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate capability definitions")
    parser.add_argument("--strict", action="store_true", help="Treat pattern overlaps as errors")
    args = parser.parse_args()

    if not validate(strict=args.strict):
        sys.exit(1)
