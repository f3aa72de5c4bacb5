from __future__ import annotations

from jsoncache.domain.casing import Casing, CasingConverter
from jsoncache.domain.staging import StagingBuffer


def _buffer() -> StagingBuffer:
    return StagingBuffer(CasingConverter(Casing.SNAKE_CASE))


def test_stage_converts_keys_with_entity_qualifier() -> None:
    buffer = _buffer()

    buffer.stage([{"name": "Japan", "description": "Art rock", "other_names": "Rain Tree Crow"}], "Band")

    assert buffer.drain() == {
        "Band": [{"name": "Japan", "bandDescription": "Art rock", "otherNames": "Rain Tree Crow"}]
    }


def test_stage_accepts_single_dictionary() -> None:
    buffer = _buffer()

    buffer.stage({"name": "Assemblage", "band": "Japan"}, "Album")

    assert len(buffer) == 1
    assert buffer.entity_names == ["Album"]


def test_restaging_replaces_previous_list() -> None:
    buffer = _buffer()

    buffer.stage([{"name": "Japan"}, {"name": "Roxy Music"}], "Band")
    buffer.stage([{"name": "U2"}], "Band")

    assert buffer.drain() == {"Band": [{"name": "U2"}]}


def test_drain_empties_buffer() -> None:
    buffer = _buffer()
    buffer.stage([{"name": "Japan"}], "Band")

    buffer.drain()

    assert buffer.is_empty
    assert len(buffer) == 0
    assert buffer.drain() == {}


def test_restore_skips_entities_staged_after_watermark() -> None:
    buffer = _buffer()
    buffer.stage([{"name": "Japan"}], "Band")
    buffer.stage([{"name": "Tin Drum"}], "Album")
    watermark = buffer.generation
    drained = buffer.drain()

    buffer.stage([{"name": "Avalon"}], "Album")
    buffer.restore(drained, since=watermark)

    assert buffer.drain() == {"Album": [{"name": "Avalon"}], "Band": [{"name": "Japan"}]}
