"""Serialization of stored objects and plain values back to external JSON."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from jsoncache.domain.casing import CasingConverter, Conversion
from jsoncache.domain.dates import DateCodec
from jsoncache.domain.schema import AttributeType

if TYPE_CHECKING:
    from jsoncache.domain.ports.store import ObjectStore
    from jsoncache.domain.staging import JSONDict


@dataclass(frozen=True, slots=True)
class Serializer:
    """Produce external-format JSON dictionaries.

    Stored objects are reduced to their attributes plus every set to-one
    relationship, replaced by the related object's identifier. To-many
    relationships are left out; they are implied by the to-one side.
    """

    store: ObjectStore
    converter: CasingConverter
    dates: DateCodec

    def to_json(self, obj: object) -> JSONDict:
        entity = self.store.entity_schema_of(obj)
        dictionary: JSONDict = {}

        for attribute in entity.attributes.values():
            value = self.store.get_value(obj, attribute.name)
            if value is None:
                continue
            if attribute.type == AttributeType.DATE and isinstance(value, datetime):
                dictionary[attribute.name] = self.dates.format(value)
            else:
                dictionary[attribute.name] = value

        for relationship in entity.to_one_relationships:
            destination = self.store.get_value(obj, relationship.name)
            if destination is not None:
                dictionary[relationship.name] = self.store.identifier_of(destination)

        return self.converter.convert_dict(Conversion.TO_EXTERNAL, dictionary, entity.name)

    def jsonify(self, value: object) -> JSONDict:
        """Serialize a dataclass, pydantic model or mapping to an external dictionary.

        Dataclass fields that are ``None`` or empty strings are dropped. Keys are
        converted without a qualifier, so any ``*Description`` key becomes
        ``description``.
        """

        if isinstance(value, BaseModel):
            raw = value.model_dump(exclude_none=True)
        elif dataclasses.is_dataclass(value) and not isinstance(value, type):
            raw = {
                item.name: getattr(value, item.name)
                for item in dataclasses.fields(value)
                if getattr(value, item.name) not in (None, "")
            }
        elif isinstance(value, Mapping):
            raw = dict(value)
        else:
            raise TypeError(f"Cannot produce a JSON dictionary from {type(value).__name__}")

        dictionary = {str(key): self._json_value(item) for key, item in raw.items()}
        return self.converter.convert_dict(Conversion.TO_EXTERNAL, dictionary)

    def to_json_string(self, value: object, *, pretty: bool = True) -> str:
        if isinstance(value, BaseModel | Mapping) or dataclasses.is_dataclass(value):
            dictionary = self.jsonify(value)
        else:
            dictionary = self.to_json(value)
        return json.dumps(dictionary, indent=2 if pretty else None, sort_keys=pretty)

    def _json_value(self, value: object) -> object:
        if isinstance(value, datetime):
            return self.dates.format(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list | tuple | set | frozenset):
            return [self._json_value(item) for item in value]
        if isinstance(value, Mapping):
            return {str(key): self._json_value(item) for key, item in value.items()}
        return value
