import pytest

from athena_dal.util.env import get_env_bool, get_env_float, get_env_int, get_env_str


def test_get_env_str_strips_and_defaults(monkeypatch):
    monkeypatch.setenv("ATHENA_TEST_STR", "  value ")
    assert get_env_str("ATHENA_TEST_STR") == "value"

    monkeypatch.setenv("ATHENA_TEST_STR", "   ")
    assert get_env_str("ATHENA_TEST_STR", "fallback") == "fallback"

    monkeypatch.delenv("ATHENA_TEST_STR")
    assert get_env_str("ATHENA_TEST_STR") is None


def test_get_env_int(monkeypatch):
    monkeypatch.setenv("ATHENA_TEST_INT", "42")
    assert get_env_int("ATHENA_TEST_INT") == 42

    monkeypatch.setenv("ATHENA_TEST_INT", "4.2")
    with pytest.raises(ValueError, match="Invalid integer for ATHENA_TEST_INT"):
        get_env_int("ATHENA_TEST_INT")


def test_get_env_float(monkeypatch):
    monkeypatch.delenv("ATHENA_TEST_FLOAT", raising=False)
    assert get_env_float("ATHENA_TEST_FLOAT", 1.5) == 1.5

    monkeypatch.setenv("ATHENA_TEST_FLOAT", "0.5")
    assert get_env_float("ATHENA_TEST_FLOAT") == 0.5

    monkeypatch.setenv("ATHENA_TEST_FLOAT", "half")
    with pytest.raises(ValueError, match="Invalid number"):
        get_env_float("ATHENA_TEST_FLOAT")


@pytest.mark.parametrize(
    "raw,expected",
    [("1", True), ("TRUE", True), ("yes", True), ("on", True), ("0", False), ("Off", False)],
)
def test_get_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("ATHENA_TEST_BOOL", raw)
    assert get_env_bool("ATHENA_TEST_BOOL") is expected


def test_get_env_bool_rejects_garbage(monkeypatch):
    monkeypatch.setenv("ATHENA_TEST_BOOL", "maybe")
    with pytest.raises(ValueError, match="Invalid boolean"):
        get_env_bool("ATHENA_TEST_BOOL", False)
