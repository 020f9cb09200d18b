"""Tests for the shared model cache."""

from __future__ import annotations

import asyncio

import pytest

from llm_facade.adapters.llm.model_cache import ModelCache
from llm_facade.domain.models import Model, ModelId


def _model(model_id: str) -> Model:
    return Model(id=ModelId(model_id), name=model_id.upper())


@pytest.mark.asyncio
async def test_cache_starts_empty() -> None:
    cache = ModelCache()

    assert await cache.is_empty()
    assert len(cache) == 0
    assert await cache.get(ModelId("gpt-x")) is None


@pytest.mark.asyncio
async def test_replace_all_drops_previous_entries() -> None:
    cache = ModelCache()
    await cache.replace_all([_model("a"), _model("b")])
    await cache.replace_all([_model("b"), _model("c")])

    assert await cache.ids() == {"b", "c"}
    assert await cache.get(ModelId("a")) is None
    assert (await cache.get(ModelId("c"))).name == "C"


@pytest.mark.asyncio
async def test_replace_all_with_empty_listing_clears_cache() -> None:
    cache = ModelCache()
    await cache.replace_all([_model("a")])
    await cache.replace_all([])

    assert await cache.is_empty()


@pytest.mark.asyncio
async def test_duplicate_ids_keep_last_entry() -> None:
    cache = ModelCache()
    await cache.replace_all([Model(id=ModelId("a"), name="first"), Model(id=ModelId("a"), name="second")])

    assert len(cache) == 1
    assert (await cache.get(ModelId("a"))).name == "second"


@pytest.mark.asyncio
async def test_snapshot_is_a_copy() -> None:
    cache = ModelCache()
    await cache.replace_all([_model("a")])

    snapshot = await cache.snapshot()
    snapshot.clear()

    assert len(cache) == 1


@pytest.mark.asyncio
async def test_concurrent_readers_see_whole_catalogs() -> None:
    """Readers racing two replacements see one full catalog or the other."""
    cache = ModelCache()
    first = [_model(f"old-{i}") for i in range(50)]
    second = [_model(f"new-{i}") for i in range(50)]
    await cache.replace_all(first)
    seen: list[set[str]] = []

    async def reader() -> None:
        for _ in range(20):
            seen.append(set(await cache.ids()))
            await asyncio.sleep(0)

    await asyncio.gather(reader(), cache.replace_all(second), reader(), cache.replace_all(first))

    valid = ({m.id for m in first}, {m.id for m in second})
    assert all(ids in valid for ids in seen)
