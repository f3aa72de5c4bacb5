"""Staging buffer holding converted JSON dictionaries until the next merge."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from jsoncache.domain.casing import CasingConverter, Conversion

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

type JSONDict = dict[str, object]
type StagedDictionaries = dict[str, list[JSONDict]]


@dataclass(slots=True)
class StagingBuffer:
    """Per-entity lists of dictionaries awaiting ``MergeEngine.apply``.

    Staging the same entity name twice before a merge replaces the earlier
    list. The buffer has no internal locking: callers serialise ``stage`` and
    ``apply`` themselves.
    """

    converter: CasingConverter = field(default_factory=CasingConverter)
    _staged: StagedDictionaries = field(default_factory=dict[str, list[JSONDict]])
    _generation: dict[str, int] = field(default_factory=dict[str, int])
    _counter: int = 0

    def stage(
        self,
        dictionaries: Mapping[str, object] | Iterable[Mapping[str, object]],
        entity_name: str,
    ) -> None:
        """Convert ``dictionaries`` to internal casing and stage them for ``entity_name``."""

        batch = [dictionaries] if isinstance(dictionaries, Mapping) else list(dictionaries)
        self._staged[entity_name] = [
            self.converter.convert_dict(Conversion.FROM_EXTERNAL, dictionary, entity_name)
            for dictionary in batch
        ]
        self._counter += 1
        self._generation[entity_name] = self._counter
        log.debug("Staged %d dictionaries for %s", len(batch), entity_name)

    def drain(self) -> StagedDictionaries:
        """Return the staged content and clear the buffer."""

        staged = self._staged
        self._staged = {}
        return staged

    def restore(self, staged: StagedDictionaries, *, since: int) -> None:
        """Put drained content back unless its entity was re-staged after ``since``."""

        for entity_name, dictionaries in staged.items():
            if self._generation.get(entity_name, 0) > since:
                continue
            self._staged[entity_name] = dictionaries

    @property
    def generation(self) -> int:
        """Monotonic counter of ``stage`` calls, used as a restore watermark."""

        return self._counter

    @property
    def entity_names(self) -> list[str]:
        return list(self._staged)

    @property
    def is_empty(self) -> bool:
        return not self._staged

    def __len__(self) -> int:
        return sum(len(dictionaries) for dictionaries in self._staged.values())
