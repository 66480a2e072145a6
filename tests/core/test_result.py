"""Tests for the Ok / Err result envelope."""

import pytest

from pacer.core.result import Err, Ok


class TestOk:
    """Tests for Ok."""

    def test_accessors(self):
        result = Ok(5)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 5
        assert result.unwrap_or(0) == 5

    def test_map(self):
        assert Ok(2).map(lambda x: x * 10) == Ok(20)

    def test_to_dict_and_repr(self):
        assert Ok("v").to_dict() == {"ok": True, "value": "v"}
        assert repr(Ok("v")) == "Ok('v')"

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Ok(1).value = 2  # type: ignore[misc]


class TestErr:
    """Tests for Err."""

    def test_accessors(self):
        error = ValueError("bad")
        result = Err(error)
        assert result.is_err() and not result.is_ok()
        assert result.unwrap_or("default") == "default"
        with pytest.raises(ValueError, match="bad"):
            result.unwrap()

    def test_map_is_noop(self):
        error = ValueError("bad")
        assert Err(error).map(lambda x: x * 10).error is error

    def test_to_dict(self):
        assert Err(KeyError("k")).to_dict() == {
            "ok": False,
            "error_type": "KeyError",
            "message": "'k'",
        }


class TestPatternMatching:
    """Results are consumed with ``match``."""

    @pytest.mark.parametrize("result,expected", [(Ok(1), "ok:1"), (Err(ValueError("e")), "err:e")])
    def test_match(self, result, expected):
        match result:
            case Ok(value):
                seen = f"ok:{value}"
            case Err(error):
                seen = f"err:{error}"
        assert seen == expected
