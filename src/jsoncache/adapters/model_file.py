"""Load entity schemas from JSON model documents.

A model named ``Music`` is read from ``<model_dir>/Music.json``::

    {
      "entities": {
        "Band": {
          "attributes": {
            "name": {"type": "string", "identifier": true},
            "formed": "integer"
          },
          "relationships": {
            "albums": {"destination": "Album", "to_many": true, "inverse": "band"}
          }
        }
      }
    }

Attribute names are internal (camelCase) names. An attribute literally named
``id`` is the identifier unless another attribute is flagged.
"""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jsoncache.domain.errors import ModelInitializationError, ModelNotFound
from jsoncache.domain.schema import (
    AttributeDescriptor,
    AttributeType,
    EntitySchema,
    ModelSchema,
    RelationshipDescriptor,
)

MODEL_SUFFIX: Final[str] = ".json"

log = getLogger(__name__)


class ModelFileBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class AttributeDocument(ModelFileBase):
    type: AttributeType
    identifier: bool = False


class RelationshipDocument(ModelFileBase):
    destination: str
    to_many: bool = False
    inverse: str | None = None


class EntityDocument(ModelFileBase):
    attributes: dict[str, AttributeDocument] = Field(default_factory=dict)
    relationships: dict[str, RelationshipDocument] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        return {
            name: {"type": spec} if isinstance(spec, str) else spec
            for name, spec in value.items()
        }


class ModelDocument(ModelFileBase):
    name: str | None = None
    entities: dict[str, EntityDocument]

    def to_schema(self, default_name: str) -> ModelSchema:
        return ModelSchema.build(
            self.name or default_name,
            (
                EntitySchema.build(
                    entity_name,
                    (
                        AttributeDescriptor(name, attribute.type, attribute.identifier)
                        for name, attribute in entity.attributes.items()
                    ),
                    (
                        RelationshipDescriptor(
                            name,
                            relationship.destination,
                            relationship.to_many,
                            relationship.inverse,
                        )
                        for name, relationship in entity.relationships.items()
                    ),
                )
                for entity_name, entity in self.entities.items()
            ),
        )


def model_path(model_name: str, model_dir: Path) -> Path:
    return Path(model_dir) / f"{model_name}{MODEL_SUFFIX}"


def parse_model(payload: str | bytes, *, model_name: str, source: str | None = None) -> ModelSchema:
    """Validate a model document and build the schema it describes."""

    try:
        document = ModelDocument.model_validate_json(payload)
    except ValidationError as exc:
        raise ModelInitializationError(source or model_name, str(exc)) from exc
    return document.to_schema(model_name)


def load_model(model_name: str, model_dir: Path) -> ModelSchema:
    """Read ``<model_dir>/<model_name>.json``.

    Raises ``ModelNotFound`` when the file does not exist and
    ``ModelInitializationError`` when it cannot be parsed into a valid schema.
    """

    path = model_path(model_name, model_dir)
    try:
        payload = path.read_bytes()
    except FileNotFoundError:
        raise ModelNotFound(model_name) from None
    except OSError as exc:
        raise ModelInitializationError(str(path), str(exc)) from exc

    schema = parse_model(payload, model_name=model_name, source=str(path))
    log.info("Loaded model %s with entities %s", schema.name, sorted(schema.entities))
    return schema
