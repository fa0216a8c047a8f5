import pytest


def test_string_and_number_values(helper_config, monkeypatch):
    monkeypatch.setenv("SOME_STRING", "  value ")
    monkeypatch.setenv("SOME_INT", "42")
    monkeypatch.setenv("SOME_FLOAT", "1.5")

    assert helper_config.get_string_val("some_string") == "value"
    assert helper_config.get_number_val("SOME_INT") == 42
    assert helper_config.get_number_val("SOME_FLOAT") == 1.5
    assert helper_config.get_string_val("UNSET_KEY_FOR_TEST", default="fallback") == "fallback"


def test_missing_required_value_raises(helper_config, monkeypatch):
    monkeypatch.delenv("UNSET_KEY_FOR_TEST", raising=False)

    with pytest.raises(ValueError):
        helper_config.get_string_val("UNSET_KEY_FOR_TEST")
    with pytest.raises(ValueError):
        helper_config.get_number_val("UNSET_KEY_FOR_TEST")


def test_bool_values(helper_config, monkeypatch):
    monkeypatch.setenv("FLAG_ON", "Yes")
    monkeypatch.setenv("FLAG_OFF", "false")

    assert helper_config.get_bool_val("FLAG_ON") is True
    assert helper_config.get_bool_val("FLAG_OFF") is False
    assert helper_config.get_bool_val("UNSET_KEY_FOR_TEST", default=True) is True


def test_list_values(helper_config, monkeypatch):
    monkeypatch.setenv("ORGS", "[org-a, org-b,]")
    monkeypatch.setenv("NUMBERS", "[1,2]")
    monkeypatch.setenv("BROKEN", "org-a,org-b")

    assert helper_config.get_list_val("ORGS") == ["org-a", "org-b"]
    assert helper_config.get_list_val("NUMBERS", element_type=int) == [1, 2]
    assert helper_config.get_list_val("UNSET_KEY_FOR_TEST", default=["x"]) == ["x"]
    with pytest.raises(ValueError):
        helper_config.get_list_val("BROKEN")


def test_timezone(helper_config, monkeypatch):
    monkeypatch.setenv("TIMEZONE", "America/New_York")
    assert helper_config.get_timezone().zone == "America/New_York"

    monkeypatch.setenv("TIMEZONE", "Mars/Olympus")
    with pytest.raises(ValueError):
        helper_config.get_timezone()
