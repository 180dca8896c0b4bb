"""Configuration loading and validation for tokenbroker."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from tokenbroker.exceptions import ConfigError

_DEFAULT_CONFIG_FILENAME = ".tokenbroker.yml"
_PERMISSION_PREFIX = "INPUT_PERMISSION-"
_REPOSITORY_SEPARATORS = re.compile(r"[\n,]+")


class BrokerConfig(BaseModel):
    app_id: int = Field(gt=0)
    private_key: str | None = None
    kms_key_arn: str | None = None
    aws_profile: str | None = None
    owner: str = ""
    repositories: list[str] = Field(default_factory=list)
    installation_id: int | None = None
    permissions: dict[str, str] = Field(default_factory=dict)
    skip_token_revoke: bool = False
    api_url: str = "https://api.github.com"
    # Coordinates of the repository the run belongs to (GITHUB_REPOSITORY / _OWNER).
    host_repository: str = ""
    host_owner: str = ""

    @field_validator("private_key", "kms_key_arn", "aws_profile", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("private_key")
    @classmethod
    def _load_private_key(cls, value: str | None) -> str | None:
        return read_private_key(value) if value else value

    @field_validator("repositories", mode="before")
    @classmethod
    def _split_repositories(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_repositories(value)
        return value

    @field_validator("installation_id", mode="before")
    @classmethod
    def _parse_installation_id(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            parsed = int(str(value).strip())
        except ValueError:
            raise ValueError(f"installation id must be numeric, got {value!r}") from None
        if parsed <= 0:
            raise ValueError("installation id must be a positive integer")
        return parsed


def parse_repositories(raw: str) -> list[str]:
    """Split a comma- or newline-separated repository list."""
    return [part.strip() for part in _REPOSITORY_SEPARATORS.split(raw) if part.strip()]


def permissions_from_env(env: Mapping[str, str]) -> dict[str, str]:
    """Collect ``INPUT_PERMISSION-<NAME>`` action inputs into a permissions map.

    Names are lower-cased with dashes turned into underscores to match the
    REST API's permission keys; empty inputs are skipped.
    """
    permissions: dict[str, str] = {}
    for key, value in env.items():
        if not key.startswith(_PERMISSION_PREFIX) or not value:
            continue
        name = key[len(_PERMISSION_PREFIX) :].lower().replace("-", "_")
        if name:
            permissions[name] = value
    return permissions


def read_private_key(value: str) -> str:
    """Resolve a PEM string, an ``@path/to/key.pem`` reference, or escaped newlines."""
    if value.startswith("@"):
        key_path = Path(value[1:])
        try:
            return key_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ValueError(f"Private key file not found: {key_path}") from None
    if "\\n" in value and "\n" not in value:
        return value.replace("\\n", "\n")
    return value


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Walk up from start_dir looking for .tokenbroker.yml."""
    current = start_dir or Path.cwd()
    for directory in [current, *current.parents]:
        candidate = directory / _DEFAULT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read and parse a YAML config file, returning the top-level dict."""
    try:
        raw = path.read_text(encoding="utf-8")
        parsed = yaml.safe_load(raw)
        if parsed and isinstance(parsed, dict):
            return dict(parsed)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def load_config(
    config_path: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> BrokerConfig:
    """Load config from YAML file, apply overrides, fill host defaults from env."""
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        data = _load_yaml(path)
    else:
        found = find_config_file()
        if found:
            data = _load_yaml(found)

    if overrides:
        for key, value in overrides.items():
            _set_nested(data, key.split("."), value)

    host_repository = env.get("GITHUB_REPOSITORY", "")
    data.setdefault("host_repository", host_repository)
    data.setdefault(
        "host_owner", env.get("GITHUB_REPOSITORY_OWNER") or host_repository.partition("/")[0]
    )

    try:
        return BrokerConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _set_nested(d: dict[str, Any], keys: list[str], value: Any) -> None:
    """Set a value in a nested dict using a list of keys."""
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value
