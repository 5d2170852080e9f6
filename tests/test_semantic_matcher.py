"""Tests for SemanticMatcher and the vector helpers it relies on."""

import pytest

from tests.conftest import FakeEmbeddings, make_capability
from valet.embeddings import EmbeddingUnavailable
from valet.math_utils import cosine_similarity, top_k
from valet.semantic_matcher import SemanticMatcher

VECTORS = {
    "what time is it": [1.0, 0.0, 0.0],
    "current time": [0.95, 0.05, 0.0],
    "show my tasks": [0.0, 1.0, 0.0],
    "got the time?": [0.9, 0.1, 0.0],
    "anything to do": [0.2, 0.98, 0.0],
    "halfway": [0.6, 0.8, 0.0],
}


@pytest.fixture
def capabilities():
    return [
        make_capability("get_time", examples=["what time is it", "current time"]),
        make_capability("view_tasks", examples=["show my tasks"]),
        make_capability("no_examples", patterns=[r"^x$"], priority=1),
    ]


@pytest.mark.asyncio
async def test_initialize_embeds_every_example(capabilities):
    embeddings = FakeEmbeddings(VECTORS)
    matcher = SemanticMatcher(embeddings)

    await matcher.initialize(capabilities)

    assert matcher.initialized
    assert [ex.example for ex in matcher.examples] == [
        "what time is it", "current time", "show my tasks",
    ]


@pytest.mark.asyncio
async def test_match_returns_owner_of_best_example(capabilities):
    matcher = SemanticMatcher(FakeEmbeddings(VECTORS))
    await matcher.initialize(capabilities)

    cap, score = await matcher.match("got the time?", 0.75)
    assert cap.name == "get_time"
    assert score >= 0.75

    cap, _ = await matcher.match("anything to do", 0.75)
    assert cap.name == "view_tasks"


@pytest.mark.asyncio
async def test_match_below_threshold_returns_none(capabilities):
    matcher = SemanticMatcher(FakeEmbeddings(VECTORS))
    await matcher.initialize(capabilities)

    # cos("halfway", "show my tasks") == 0.8, cos("halfway", "what time is it") == 0.6
    assert await matcher.match("halfway", 0.85) is None
    cap, score = await matcher.match("halfway", 0.75)
    assert cap.name == "view_tasks"
    assert score == pytest.approx(0.8)


@pytest.mark.asyncio
async def test_capability_without_examples_is_never_returned():
    only_bare = [make_capability("bare", patterns=[r"^x$"], priority=1)]
    matcher = SemanticMatcher(FakeEmbeddings(VECTORS))
    await matcher.initialize(only_bare)

    assert await matcher.match("what time is it", 0.0) is None


@pytest.mark.asyncio
async def test_unavailable_backend_leaves_matcher_uninitialized(capabilities):
    matcher = SemanticMatcher(FakeEmbeddings(VECTORS, available=False))

    await matcher.initialize(capabilities)

    assert not matcher.initialized
    assert await matcher.match("what time is it") is None


@pytest.mark.asyncio
async def test_embedding_failure_during_initialize_is_contained(capabilities):
    embeddings = FakeEmbeddings(VECTORS)
    matcher = SemanticMatcher(embeddings)

    async def flaky(text):
        raise EmbeddingUnavailable("went away")

    embeddings.embed = flaky
    await matcher.initialize(capabilities)

    assert not matcher.initialized


@pytest.mark.asyncio
async def test_no_embeddings_service():
    matcher = SemanticMatcher(None)
    await matcher.initialize([make_capability("x", examples=["hello"])])

    assert await matcher.match("hello") is None


# ---------------------------------------------------------------------------
# math_utils
# ---------------------------------------------------------------------------

def test_cosine_similarity_basics():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([3, 4], [6, 8]) == pytest.approx(1.0)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity([0, 0], [1, 0]) == 0.0
    assert cosine_similarity([1, 0, 0], [1, 0]) == 0.0


def test_top_k_orders_by_score_and_keeps_ties_stable():
    ranked = top_k(["a", "b", "c", "d"], [0.2, 0.9, 0.9, 0.1], 3)

    assert ranked == [("b", 0.9), ("c", 0.9), ("a", 0.2)]
    assert top_k([], [], 1) == []
