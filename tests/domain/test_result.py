from __future__ import annotations

import pytest

from jsoncache.domain.errors import NoSuchEntity
from jsoncache.domain.result import Failure, ResultStatus, Success, capture


def test_capture_wraps_return_value() -> None:
    result = capture(lambda: 42)

    assert isinstance(result, Success)
    assert result.is_success
    assert result.status is ResultStatus.SUCCESS
    assert result.unwrap() == 42


def test_capture_folds_cache_errors_into_failure() -> None:
    def lookup() -> None:
        raise NoSuchEntity("Artist")

    result = capture(lookup)

    assert isinstance(result, Failure)
    assert not result.is_success
    assert result.status is ResultStatus.FAILURE
    with pytest.raises(NoSuchEntity):
        result.unwrap()


def test_capture_propagates_unrelated_errors() -> None:
    def broken() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        capture(broken)
