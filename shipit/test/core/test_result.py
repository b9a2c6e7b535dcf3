"""Tests for shipit.core.result module."""

import pytest

from shipit.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(0) == 42

    def test_map(self) -> None:
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_map_err_is_noop(self) -> None:
        assert Ok(1).map_err(lambda e: f"wrapped: {e}") == Ok(1)


class TestErr:
    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_err(self) -> None:
        """map_err is how process errors get wrapped into release errors."""
        assert Err("boom").map_err(str.upper) == Err("BOOM")


def test_type_guards() -> None:
    ok: Result[int, str] = Ok(1)
    err: Result[int, str] = Err("x")
    assert is_ok(ok) and not is_err(ok)
    assert is_err(err) and not is_ok(err)


def test_pattern_matching() -> None:
    result: Result[int, str] = Err("nope")
    match result:
        case Ok(value):
            pytest.fail(f"unexpected Ok({value})")
        case Err(error):
            assert error == "nope"
