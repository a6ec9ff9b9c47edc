"""Tests for configuration loading."""

import pytest

from prreminder_core.config import (
    DEFAULT_HEADER,
    Config,
    ProjectSelection,
    SlackSettings,
    load_config,
    normalize_host,
    validate_config,
)
from prreminder_core.errors import ConfigError

FULL_CONFIG = """\
bitbucket:
  host: bitbucket.example.com
  user: bot
projects:
  - key: TEAM
    repos: [svc, web]
  - key: OPS
filterReviewers:
  - ci-bot
  - bob
slack:
  webhookURL: https://hooks.slack.com/services/T/B/X
"""


def _write(tmp_path, text):
    cfg = tmp_path / "config.yml"
    cfg.write_text(text, encoding="utf-8")
    return str(cfg)


def test_file_values_loaded(tmp_path):
    config = load_config(_write(tmp_path, FULL_CONFIG), environ={})
    assert config.bitbucket.host == "https://bitbucket.example.com/"
    assert config.bitbucket.user == "bot"
    assert config.bitbucket.password == ""
    assert config.projects == (ProjectSelection("TEAM", ("svc", "web")), ProjectSelection("OPS", ()))
    assert config.filter_reviewers == ("ci-bot", "bob")
    assert config.slack.webhook_url == "https://hooks.slack.com/services/T/B/X"
    assert config.slack.header == DEFAULT_HEADER


def test_project_keys_keep_config_order(tmp_path):
    config = load_config(_write(tmp_path, FULL_CONFIG), environ={})
    assert config.project_keys == ["TEAM", "OPS"]


def test_env_overrides_file(tmp_path):
    env = {
        "REMINDER_BITBUCKET_HOST": "https://git.internal",
        "REMINDER_BITBUCKET_USER": "alice",
        "REMINDER_BITBUCKET_PASSWORD": "s3cret",
        "REMINDER_SLACK_URL": "https://hooks.slack.com/services/other",
    }
    config = load_config(_write(tmp_path, FULL_CONFIG), environ=env)
    assert config.bitbucket.host == "https://git.internal"
    assert config.bitbucket.user == "alice"
    assert config.bitbucket.password == "s3cret"
    assert config.slack.webhook_url == "https://hooks.slack.com/services/other"


def test_unset_env_keeps_file_values(tmp_path):
    config = load_config(_write(tmp_path, FULL_CONFIG), environ={"REMINDER_BITBUCKET_PASSWORD": "pw"})
    assert config.bitbucket.user == "bot"
    assert config.slack.webhook_url == "https://hooks.slack.com/services/T/B/X"


def test_env_webhook_satisfies_validation(tmp_path):
    path = _write(tmp_path, "bitbucket:\n  host: git.example.com\n")
    config = load_config(path, environ={"REMINDER_SLACK_URL": "https://hooks.example/x"})
    assert config.slack.webhook_url == "https://hooks.example/x"


def test_env_filter_reviewers_replace_file_list(tmp_path):
    config = load_config(_write(tmp_path, FULL_CONFIG), environ={"REMINDER_FILTERREVIEWERS": "carol, dave,,"})
    assert config.filter_reviewers == ("carol", "dave")


def test_uses_os_environ_by_default(tmp_path, monkeypatch):
    monkeypatch.setenv("REMINDER_BITBUCKET_USER", "from-env")
    config = load_config(_write(tmp_path, FULL_CONFIG))
    assert config.bitbucket.user == "from-env"


def test_custom_header(tmp_path):
    path = _write(tmp_path, "slack:\n  webhookURL: https://hooks.example/x\n  header: Review time\n")
    assert load_config(path, environ={}).slack.header == "Review time"


def test_missing_webhook_raises(tmp_path):
    path = _write(tmp_path, "bitbucket:\n  host: git.example.com\n")
    with pytest.raises(ConfigError, match="REMINDER_SLACK_URL"):
        load_config(path, environ={})


def test_empty_env_webhook_overrides_file_and_fails(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, FULL_CONFIG), environ={"REMINDER_SLACK_URL": ""})


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="Could not read"):
        load_config(str(tmp_path / "nonexistent.yml"), environ={"REMINDER_SLACK_URL": "https://hooks.example/x"})


def test_invalid_yaml_raises(tmp_path):
    path = _write(tmp_path, "bitbucket: [unclosed\n")
    with pytest.raises(ConfigError, match="Could not parse"):
        load_config(path, environ={})


def test_non_mapping_document_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "- just\n- a list\n"), environ={})


def test_project_without_key_raises(tmp_path):
    path = _write(tmp_path, "projects:\n  - repos: [svc]\nslack:\n  webhookURL: https://hooks.example/x\n")
    with pytest.raises(ConfigError, match="projects\\[0\\]"):
        load_config(path, environ={})


def test_filter_reviewers_must_be_list(tmp_path):
    path = _write(tmp_path, "filterReviewers: bob\nslack:\n  webhookURL: https://hooks.example/x\n")
    with pytest.raises(ConfigError, match="filterReviewers"):
        load_config(path, environ={})


def test_empty_file_only_needs_webhook_from_env(tmp_path):
    config = load_config(_write(tmp_path, ""), environ={"REMINDER_SLACK_URL": "https://hooks.example/x"})
    assert config.projects == ()
    assert config.filter_reviewers == ()
    assert config.bitbucket.host == ""


def test_config_is_immutable(tmp_path):
    config = load_config(_write(tmp_path, FULL_CONFIG), environ={})
    with pytest.raises(AttributeError):
        config.filter_reviewers = ()


class TestValidateConfig:
    def test_empty_webhook_rejected(self):
        with pytest.raises(ConfigError):
            validate_config(Config())

    @pytest.mark.parametrize("url", ["https://hooks.slack.com/services/x", "x"])
    def test_any_non_empty_webhook_accepted(self, url):
        validate_config(Config(slack=SlackSettings(webhook_url=url)))


class TestNormalizeHost:
    def test_bare_host_gets_scheme_and_trailing_slash(self):
        assert normalize_host("bitbucket.example.com") == "https://bitbucket.example.com/"

    def test_https_host_unchanged(self):
        assert normalize_host("https://bitbucket.example.com") == "https://bitbucket.example.com"

    def test_other_scheme_unchanged(self):
        assert normalize_host("http://localhost:7990") == "http://localhost:7990"

    def test_empty_host_unchanged(self):
        assert normalize_host("") == ""
