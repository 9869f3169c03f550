import pytest

import web_stress.core.config as config_module  # type: ignore[import]
from tests.helpers.web_stress_imports import ConfigurationError, CrawlTarget, RunSettings
from web_stress.core.config import (  # type: ignore[import]
    describe_configuration,
    load_configuration,
    read_url_list,
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)
    for key in ["BROWSER_ENGINE", "HEADLESS", "USER_AGENT"]:
        monkeypatch.delenv(key, raising=False)


def test_defaults_match_documented_values():
    config = load_configuration(url="https://www.example.com/")

    assert config.settings == RunSettings(
        same_domain=True,
        same_subdomain=True,
        max_depth=1,
        repeat_count=1,
        user_count=1,
        base_wait_ms=500,
    )
    assert config.target.seed_url == "https://www.example.com/"
    assert config.browser.engine == "http"
    assert config.browser.headless is True
    assert config.config_path is None


def test_wait_of_zero_is_coerced_to_one_millisecond():
    assert RunSettings(base_wait_ms=0).base_wait_ms == 1


def test_repeat_of_zero_still_runs_once():
    assert RunSettings(repeat_count=0).repeat_count == 1


@pytest.mark.parametrize("field", ["max_depth", "repeat_count", "user_count", "base_wait_ms"])
def test_values_outside_uint16_are_rejected(field):
    with pytest.raises(ConfigurationError):
        RunSettings(**{field: 65536})
    with pytest.raises(ConfigurationError):
        RunSettings(**{field: -1})


def test_at_least_one_user_is_required():
    with pytest.raises(ConfigurationError):
        RunSettings(user_count=0)


def test_toml_file_overrides_defaults_and_cli_overrides_file(tmp_path):
    config_file = tmp_path / "Config.toml"
    config_file.write_text(
        "same_domain = false\nsame_subdomain = false\ndepth = 3\nrepeat = 2\nusers = 4\nwait_ms = 50\n",
        encoding="utf-8",
    )

    config = load_configuration(
        url="https://www.example.com/",
        config_path=config_file,
        overrides={"depth": 5, "users": None, "same_subdomain": "true"},
    )

    assert config.settings.same_domain is False
    assert config.settings.same_subdomain is True
    assert config.settings.max_depth == 5
    assert config.settings.repeat_count == 2
    assert config.settings.user_count == 4
    assert config.settings.base_wait_ms == 50
    assert config.config_path == config_file.resolve()


def test_unknown_toml_keys_are_reported(tmp_path):
    config_file = tmp_path / "Config.toml"
    config_file.write_text("depht = 3\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="depht"):
        load_configuration(url="https://www.example.com/", config_path=config_file)


def test_legacy_same_sub_domain_key_is_accepted(tmp_path):
    config_file = tmp_path / "Config.toml"
    config_file.write_text(
        "same_domain = true\n"
        "same_sub_domain = false\n"
        "depth = 2\n"
        "repeat = 3\n"
        "users = 4\n"
        "wait_ms = 250\n",
        encoding="utf-8",
    )

    config = load_configuration(url="https://www.example.com/", config_path=config_file)

    assert config.settings.same_domain is True
    assert config.settings.same_subdomain is False
    assert config.settings.max_depth == 2
    assert config.settings.repeat_count == 3
    assert config.settings.user_count == 4
    assert config.settings.base_wait_ms == 250


def test_both_sub_domain_spellings_together_are_rejected(tmp_path):
    config_file = tmp_path / "Config.toml"
    config_file.write_text("same_subdomain = true\nsame_sub_domain = false\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="same_sub_domain"):
        load_configuration(url="https://www.example.com/", config_path=config_file)


def test_invalid_toml_is_a_configuration_error(tmp_path):
    config_file = tmp_path / "Config.toml"
    config_file.write_text("depth = = 3\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(url="https://www.example.com/", config_path=config_file)


def test_missing_config_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_configuration(url="https://www.example.com/", config_path=tmp_path / "missing.toml")


def test_url_list_is_read_one_per_line_skipping_blanks(tmp_path):
    url_file = tmp_path / "urls.txt"
    url_file.write_text("https://a.test/\n\n  https://b.test/page  \n", encoding="utf-8")

    assert read_url_list(url_file) == ["https://a.test/", "https://b.test/page"]

    config = load_configuration(url_list_path=url_file)
    assert config.target.url_list == ("https://a.test/", "https://b.test/page")
    assert config.target.is_recursive is False


def test_target_requires_exactly_one_source(tmp_path):
    with pytest.raises(ConfigurationError):
        load_configuration()
    with pytest.raises(ConfigurationError):
        load_configuration(url="https://a.test/", url_list_path=tmp_path / "urls.txt")
    with pytest.raises(ConfigurationError):
        CrawlTarget(seed_url="https://a.test/", url_list=("https://b.test/",))


def test_seed_must_be_an_absolute_web_url():
    with pytest.raises(ConfigurationError):
        load_configuration(url="www.example.com")
    with pytest.raises(ConfigurationError):
        load_configuration(url="ftp://files.example.com/")


def test_browser_options_come_from_environment(monkeypatch):
    monkeypatch.setenv("BROWSER_ENGINE", "chromium")
    monkeypatch.setenv("HEADLESS", "false")
    monkeypatch.setenv("USER_AGENT", "stress-bot/1.0")

    config = load_configuration(url="https://www.example.com/")

    assert config.browser.engine == "chromium"
    assert config.browser.headless is False
    assert config.browser.user_agent == "stress-bot/1.0"


def test_explicit_browser_arguments_win_over_environment(monkeypatch):
    monkeypatch.setenv("BROWSER_ENGINE", "chromium")
    monkeypatch.setenv("HEADLESS", "false")

    config = load_configuration(url="https://www.example.com/", engine="http", headless=True)

    assert config.browser.engine == "http"
    assert config.browser.headless is True


def test_unknown_browser_engine_is_rejected():
    with pytest.raises(ConfigurationError):
        load_configuration(url="https://www.example.com/", engine="netscape")


def test_describe_configuration_for_recursive_and_list_runs(tmp_path):
    recursive = describe_configuration(load_configuration(url="https://www.example.com/", overrides={"depth": 2}))
    assert recursive[0] == "Action:            Browsing pages recursively from https://www.example.com/"
    assert "Depth:             2" in recursive
    assert "Wait on each page: 500 ms" in recursive

    url_file = tmp_path / "urls.txt"
    url_file.write_text("https://a.test/\nhttps://b.test/\n", encoding="utf-8")
    listing = describe_configuration(load_configuration(url_list_path=url_file))
    assert listing[0] == "Action:            Browse over list of 2 URLs"
    assert not any(line.startswith("Depth") for line in listing)
