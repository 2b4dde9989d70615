"""
Configuration of vault-unseal. Values are merged from several sources, with increasing priority:
defaults < config files (toml, yaml, json) < environment variables (UNSEAL__ prefix) < command line arguments
"""
import json
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vault_unseal.clients.vault_client import validate_node_url
from vault_unseal.constants import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    ENV_PREFIX,
    ENV_SEPARATOR,
    LogLevel,
)
from vault_unseal.errors import ConfigError

TOML_SUFFIXES = (".toml",)
YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


def split_list(value):
    """
    Allow list values to be given as a single comma separated string (environment variables, command line)
    """
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class VaultNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str

    @field_validator("host")
    @classmethod
    def valid_url(cls, v):
        return validate_node_url(v)


class BitwardenConfig(BaseModel):
    host: Optional[str] = None
    token: str = Field(min_length=1)
    secret_ids: List[UUID]
    state_file: Optional[str] = None

    @field_validator("secret_ids", mode="before")
    @classmethod
    def split_secret_ids(cls, v):
        v = split_list(v)
        if not v:
            raise ValueError("bitwarden secret ids cannot be empty")
        return v


class LogConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    level: LogLevel = LogLevel.INFO
    as_json: bool = Field(default=False, alias="json")

    @field_validator("level", mode="before")
    @classmethod
    def lowercase_level(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class UnsealConfig(BaseModel):
    vault_nodes: List[VaultNode]
    check_interval: int = Field(default=DEFAULT_CHECK_INTERVAL, gt=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    tls_verify: bool = True
    ca_cert: Optional[str] = None
    bitwarden: BitwardenConfig
    log: LogConfig = Field(default_factory=LogConfig)

    @field_validator("vault_nodes", mode="before")
    @classmethod
    def parse_nodes(cls, v):
        v = split_list(v)
        if not v:
            raise ValueError("at least one vault node must be specified")
        return [{"host": node} if isinstance(node, str) else node for node in v]

    @field_validator("ca_cert")
    @classmethod
    def ca_cert_exists(cls, v):
        # requests accepts a bundle file or a directory of certificates
        if v is not None and not os.path.exists(v):
            raise ValueError(f"ca certificate {v} does not exist")
        return v

    @property
    def verify(self) -> Union[bool, str]:
        """
        Value passed to the vault clients to control tls verification
        """
        if self.ca_cert:
            return self.ca_cert
        return self.tls_verify


def merge(base: dict, update: dict) -> dict:
    """
    Recursively merge update into base, values in update take precedence

    :return: the merged dictionary, the inputs are not modified
    """
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_config_file(path: Path) -> dict:
    """
    Parse a toml, yaml or json config file

    :param path: path of the config file
    :return: the parsed values, empty if the file does not exist
    """
    if not path.is_file():
        return {}
    suffix = path.suffix.lower()
    try:
        if suffix in TOML_SUFFIXES:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        elif suffix in YAML_SUFFIXES:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        elif suffix in JSON_SUFFIXES:
            with open(path, "r") as f:
                data = json.load(f)
        else:
            return {}
    except (OSError, tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} does not contain a mapping")
    return data


def config_paths(conf_path: Union[str, Path] = None, conf_dir: Union[str, Path] = None) -> List[Path]:
    """
    Collect the config files to load: every file inside conf_dir if given, otherwise only conf_path
    """
    if conf_dir:
        conf_dir = Path(conf_dir)
        try:
            return sorted(p for p in conf_dir.iterdir() if p.is_file())
        except OSError as e:
            raise ConfigError(f"failed to read config directory {conf_dir}: {e}")
    if conf_path:
        return [Path(conf_path)]
    return []


def load_files(paths: Sequence[Path]) -> dict:
    values = {}
    # merged by type, toml first then yaml then json
    for suffixes in (TOML_SUFFIXES, YAML_SUFFIXES, JSON_SUFFIXES):
        for path in paths:
            if path.suffix.lower() in suffixes:
                values = merge(values, read_config_file(path))
    return values


def load_env(environ: Dict[str, str] = None) -> dict:
    """
    Read the configuration values from the environment. Nested keys are separated by a double underscore, e.g.
    UNSEAL__BITWARDEN__TOKEN sets bitwarden.token
    """
    if environ is None:
        environ = os.environ
    values: Dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in key[len(ENV_PREFIX):].split(ENV_SEPARATOR) if part]
        if not path:
            continue
        target = values
        for part in path[:-1]:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                raise ConfigError(f"conflicting environment variables for {key}")
        target[path[-1]] = value
    return values


def load_config(paths: Sequence[Path] = (), overrides: dict = None, environ: Dict[str, str] = None,
                dotenv: bool = True) -> UnsealConfig:
    """
    Merge defaults, config files, environment and command line values and validate the result

    :param paths: config files to load
    :param overrides: values taken from the command line, take precedence over all other sources
    :param environ: environment to read the UNSEAL__ variables from, defaults to os.environ
    :param dotenv: whether to load a .env file into the environment first
    :return: the validated configuration
    :raises ConfigError: if a source can not be read or the merged values are invalid
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    values = load_files(paths)
    values = merge(values, load_env(environ))
    if overrides:
        values = merge(values, overrides)

    try:
        return UnsealConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}")
