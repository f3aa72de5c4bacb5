"""Casing and date-format settings shared by every cache component."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from jsoncache.domain.casing import Casing, CasingConverter
from jsoncache.domain.dates import DateCodec, DateFormat

from .env import env_choice, require_env_vars


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Process configuration owned by one ``JSONCache`` instance."""

    casing: Casing = Casing.CAMEL_CASE
    date_format: DateFormat = DateFormat.ISO_WITH_SEPARATORS

    @property
    def converter(self) -> CasingConverter:
        return CasingConverter(self.casing)

    @property
    def dates(self) -> DateCodec:
        return DateCodec(self.date_format)


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """Where the entity schema is loaded from."""

    model_name: str
    model_dir: Path


def get_cache_config() -> CacheConfig:
    return CacheConfig(
        casing=env_choice("JSONCACHE_CASING", Casing, Casing.CAMEL_CASE),
        date_format=env_choice(
            "JSONCACHE_DATE_FORMAT", DateFormat, DateFormat.ISO_WITH_SEPARATORS
        ),
    )


def get_model_config() -> ModelConfig:
    values = require_env_vars(("JSONCACHE_MODEL",))
    model_dir = os.getenv("JSONCACHE_MODEL_DIR")
    return ModelConfig(
        model_name=values["JSONCACHE_MODEL"],
        model_dir=Path(model_dir) if model_dir else Path.cwd(),
    )
