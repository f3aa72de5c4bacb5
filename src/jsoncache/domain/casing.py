"""Key casing conversion between external JSON and internal attribute names.

External payloads use either ``snake_case`` or ``camelCase`` keys; internal
attribute names are always ``camelCase``. The reserved word ``description`` is
qualified with the entity name on the way in (``Band`` + ``description`` ->
``bandDescription``) so that several entities can carry their own descriptive
text without colliding, and dequalified again on the way out.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Final, overload

RESERVED_WORD: Final[str] = "description"
_QUALIFIED_SUFFIX: Final[str] = "Description"
_CAMEL_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"([a-z])([A-Z])")


class Casing(StrEnum):
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"


class Conversion(StrEnum):
    FROM_EXTERNAL = "from_external"
    TO_EXTERNAL = "to_external"


def lower_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def qualify(qualifier: str) -> str:
    """Return the internal name of the reserved word for ``qualifier``."""

    return lower_first(qualifier) + _QUALIFIED_SUFFIX


@dataclass(frozen=True, slots=True)
class CasingConverter:
    """Pure key converter governed by the configured external ``casing``."""

    casing: Casing = Casing.CAMEL_CASE

    @overload
    def convert(
        self, conversion: Conversion, value: str, qualifier: str | None = None
    ) -> str: ...
    @overload
    def convert(
        self, conversion: Conversion, value: Mapping[str, object], qualifier: str | None = None
    ) -> dict[str, object]: ...
    def convert(
        self,
        conversion: Conversion,
        value: str | Mapping[str, object],
        qualifier: str | None = None,
    ) -> str | dict[str, object]:
        if isinstance(value, str):
            return self.convert_key(conversion, value, qualifier)
        return self.convert_dict(conversion, value, qualifier)

    def convert_dict(
        self,
        conversion: Conversion,
        dictionary: Mapping[str, object],
        qualifier: str | None = None,
    ) -> dict[str, object]:
        """Convert the top-level keys of ``dictionary``; values are left untouched."""

        return {
            self.convert_key(conversion, key, qualifier): value
            for key, value in dictionary.items()
        }

    def convert_key(self, conversion: Conversion, key: str, qualifier: str | None = None) -> str:
        if conversion == Conversion.FROM_EXTERNAL:
            return self._from_external(key, qualifier)
        return self._to_external(key, qualifier)

    def _from_external(self, key: str, qualifier: str | None) -> str:
        if qualifier is not None and key == RESERVED_WORD:
            return qualify(qualifier)
        if self.casing == Casing.CAMEL_CASE or "_" not in key:
            return key
        return lower_first("".join(part.capitalize() for part in key.split("_")))

    def _to_external(self, key: str, qualifier: str | None) -> str:
        if key.endswith(_QUALIFIED_SUFFIX) and (qualifier is None or key == qualify(qualifier)):
            return RESERVED_WORD
        if self.casing == Casing.CAMEL_CASE:
            return key
        return _CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()
