"""
Semantic Matcher

Precomputes embeddings for every capability example phrase and, at query
time, returns the capability owning the single most similar example when
that similarity clears the threshold.

There is no per-capability aggregation: the global best example decides.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from valet.capability import Capability
from valet.embeddings import EmbeddingUnavailable
from valet.math_utils import cosine_similarity, top_k

logger = logging.getLogger("valet.semantic")

DEFAULT_THRESHOLD = 0.75


@dataclass(frozen=True)
class CapabilityExample:
    capability: Capability
    example: str
    embedding: tuple


class SemanticMatcher:
    """Embedding-similarity lookup over capability example phrases."""

    def __init__(self, embeddings):
        self.embeddings = embeddings
        self.examples: Tuple[CapabilityExample, ...] = ()
        self.initialized = False

    async def initialize(self, capabilities: Sequence[Capability]) -> None:
        """Embed every example phrase.

        Leaves the matcher uninitialized (never raises) when the backend is
        unavailable or any example fails to embed.
        """
        if not self.embeddings or not self.embeddings.is_available():
            logger.debug("SemanticMatcher: embeddings not available, skipping")
            return

        pending = [
            (cap, example)
            for cap in capabilities
            for example in cap.examples
        ]

        records: List[CapabilityExample] = []
        try:
            for cap, example in pending:
                vector = await self.embeddings.embed(example)
                records.append(CapabilityExample(cap, example, tuple(vector)))
        except EmbeddingUnavailable as e:
            logger.debug(f"SemanticMatcher initialization failed: {e}")
            return

        self.examples = tuple(records)
        self.initialized = True
        logger.debug(f"SemanticMatcher initialized with {len(self.examples)} examples")

    async def match(self, text: str,
                    threshold: float = DEFAULT_THRESHOLD) -> Optional[Tuple[Capability, float]]:
        """
        Find the capability whose best example is most similar to text

        Returns:
            (capability, similarity) if similarity >= threshold, else None
        """
        if not self.initialized or not self.examples:
            return None

        try:
            query = await self.embeddings.embed(text)
        except EmbeddingUnavailable as e:
            logger.debug(f"Semantic match failed: {e}")
            return None

        scores = [cosine_similarity(query, ex.embedding) for ex in self.examples]
        best = top_k(self.examples, scores, 1)
        if not best:
            return None

        example, score = best[0]
        if score >= threshold:
            logger.debug(
                f"Semantic match: {example.capability.name} "
                f"(score={score:.3f}, example={example.example!r})"
            )
            return example.capability, score
        return None
