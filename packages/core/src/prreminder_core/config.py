from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

import yaml

from prreminder_core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"
DEFAULT_HEADER = "Время поревьюить :party-parrot:"

ENV_PREFIX = "REMINDER"

# Environment variable suffix -> (section, field) it overrides.
_ENV_OVERRIDES = {
    "BITBUCKET_HOST": ("bitbucket", "host"),
    "BITBUCKET_USER": ("bitbucket", "user"),
    "BITBUCKET_PASSWORD": ("bitbucket", "password"),
    "SLACK_URL": ("slack", "webhook_url"),
}
_ENV_FILTER_REVIEWERS = "FILTERREVIEWERS"


@dataclass(frozen=True)
class BitbucketSettings:
    host: str = ""
    user: str = ""
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class SlackSettings:
    webhook_url: str = field(default="", repr=False)
    header: str = DEFAULT_HEADER


@dataclass(frozen=True)
class ProjectSelection:
    """One entry of the ``projects`` allow-list.

    ``repos`` is parsed and kept, but selection only looks at ``key``.
    """

    key: str
    repos: tuple[str, ...] = ()


@dataclass(frozen=True)
class Config:
    bitbucket: BitbucketSettings = field(default_factory=BitbucketSettings)
    projects: tuple[ProjectSelection, ...] = ()
    filter_reviewers: tuple[str, ...] = ()
    slack: SlackSettings = field(default_factory=SlackSettings)

    @property
    def project_keys(self) -> list[str]:
        return [p.key for p in self.projects]


def load_config(config_path: str = DEFAULT_CONFIG_PATH, environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load configuration by merging (in order of precedence):
      1. REMINDER_* environment variables that are set
      2. the YAML file at ``config_path``

    The result is validated and its Bitbucket host normalized. Any problem
    with the file or its contents raises ConfigError.
    """
    env = os.environ if environ is None else environ

    config = _parse_file(Path(config_path))
    config = _apply_env(config, env)
    validate_config(config)

    host = normalize_host(config.bitbucket.host)
    if host != config.bitbucket.host:
        logger.debug("Normalized Bitbucket host %r to %r", config.bitbucket.host, host)
        config = replace(config, bitbucket=replace(config.bitbucket, host=host))
    return config


def validate_config(config: Config) -> None:
    if not config.slack.webhook_url:
        raise ConfigError(
            f"webhookURL should be set either in config or as {ENV_PREFIX}_SLACK_URL environment variable"
        )


def normalize_host(host: str) -> str:
    """Prefix a bare host name with ``https://`` and terminate it with ``/``.

    Hosts that already carry a scheme are returned unchanged.
    """
    if not host or "://" in host:
        return host
    return f"https://{host}/"


def _parse_file(path: Path) -> Config:
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    bitbucket = _section(raw, "bitbucket")
    slack = _section(raw, "slack")

    return Config(
        bitbucket=BitbucketSettings(
            host=_string(bitbucket, "host", "bitbucket.host"),
            user=_string(bitbucket, "user", "bitbucket.user"),
            password=_string(bitbucket, "password", "bitbucket.password"),
        ),
        projects=_parse_projects(raw.get("projects")),
        filter_reviewers=tuple(_string_list(raw.get("filterReviewers"), "filterReviewers")),
        slack=SlackSettings(
            webhook_url=_string(slack, "webhookURL", "slack.webhookURL"),
            header=_string(slack, "header", "slack.header") or DEFAULT_HEADER,
        ),
    )


def _apply_env(config: Config, env: Mapping[str, str]) -> Config:
    sections = {"bitbucket": {}, "slack": {}}
    for suffix, (section, name) in _ENV_OVERRIDES.items():
        var = f"{ENV_PREFIX}_{suffix}"
        if var in env:
            logger.debug("Using %s from environment", var)
            sections[section][name] = env[var]

    filter_reviewers = config.filter_reviewers
    var = f"{ENV_PREFIX}_{_ENV_FILTER_REVIEWERS}"
    if var in env:
        filter_reviewers = tuple(name.strip() for name in env[var].split(",") if name.strip())

    return replace(
        config,
        bitbucket=replace(config.bitbucket, **sections["bitbucket"]),
        slack=replace(config.slack, **sections["slack"]),
        filter_reviewers=filter_reviewers,
    )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def _string(section: dict, key: str, label: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"'{label}' must be a string")
    return str(value)


def _string_list(value, label: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(isinstance(v, (dict, list)) or v is None for v in value):
        raise ConfigError(f"'{label}' must be a list of strings")
    return [str(v) for v in value]


def _parse_projects(value) -> tuple[ProjectSelection, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError("'projects' must be a list of {key, repos} entries")

    selections = []
    for i, entry in enumerate(value):
        if not isinstance(entry, dict) or not entry.get("key"):
            raise ConfigError(f"'projects[{i}]' must be a mapping with a 'key'")
        selections.append(
            ProjectSelection(
                key=str(entry["key"]),
                repos=tuple(_string_list(entry.get("repos"), f"projects[{i}].repos")),
            )
        )
    return tuple(selections)
