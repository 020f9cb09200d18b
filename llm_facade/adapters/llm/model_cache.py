"""In-memory model catalog shared by every handle of one client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from llm_facade.core.rw_lock import AsyncRWLock

if TYPE_CHECKING:
    from collections.abc import Iterable

    from llm_facade.domain.models import Model, ModelId


class ModelCache:
    """Model id to ``Model`` map guarded by an ``AsyncRWLock``.

    Lookups share the read side. ``replace_all`` clears and repopulates the
    map inside one write section, so readers see either the previous
    catalog or the new one, never a mix. The cache starts empty and is
    never persisted.
    """

    def __init__(self) -> None:
        self._lock = AsyncRWLock()
        self._models: dict[str, Model] = {}

    async def get(self, model_id: ModelId) -> Model | None:
        async with self._lock.read_lock():
            return self._models.get(model_id)

    async def replace_all(self, models: Iterable[Model]) -> None:
        async with self._lock.write_lock():
            self._models.clear()
            for model in models:
                self._models[model.id] = model

    async def snapshot(self) -> list[Model]:
        async with self._lock.read_lock():
            return list(self._models.values())

    async def ids(self) -> set[ModelId]:
        async with self._lock.read_lock():
            return {model.id for model in self._models.values()}

    async def is_empty(self) -> bool:
        async with self._lock.read_lock():
            return not self._models

    def __len__(self) -> int:
        # Unlocked read
        return len(self._models)
