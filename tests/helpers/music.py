from __future__ import annotations

from typing import TYPE_CHECKING, Final, TypedDict, cast

if TYPE_CHECKING:
    from jsoncache.app import JSONCache
    from jsoncache.domain.staging import JSONDict


class MusicPayload(TypedDict):
    bands: list[JSONDict]
    musicians: list[JSONDict]
    band_members: list[JSONDict]
    albums: list[JSONDict]


PAYLOAD_KEYS: Final[dict[str, str]] = {
    "Band": "bands",
    "Musician": "musicians",
    "BandMember": "band_members",
    "Album": "albums",
}


def stage_music(cache: JSONCache, payload: MusicPayload, *, entities: tuple[str, ...] = ()) -> None:
    """Stage the music fixture, optionally limited to (and ordered by) ``entities``."""

    items = cast("dict[str, list[JSONDict]]", payload)
    for entity_name in entities or tuple(PAYLOAD_KEYS):
        cache.stage_changes(items[PAYLOAD_KEYS[entity_name]], entity_name)


def by_name(payload_items: list[JSONDict], name: str) -> JSONDict:
    return next(item for item in payload_items if item["name"] == name)
