import json
from uuid import UUID

import pytest
import yaml

from vault_unseal.config import config_paths, load_config, load_env, merge
from vault_unseal.constants import DEFAULT_CHECK_INTERVAL, LogLevel
from vault_unseal.errors import ConfigError


def load(paths=(), overrides=None, environ=None):
    return load_config(paths, overrides=overrides, environ=environ or {}, dotenv=False)


def test_defaults(config_dict):
    config = load(overrides=config_dict)

    assert [node.host for node in config.vault_nodes] == config_dict["vault_nodes"]
    assert config.check_interval == DEFAULT_CHECK_INTERVAL
    assert config.log.level == LogLevel.INFO
    assert not config.log.as_json
    assert config.bitwarden.host is None
    assert config.bitwarden.secret_ids[0] == UUID(config_dict["bitwarden"]["secret_ids"][0])
    assert config.verify is True


def test_toml_file(tmp_path):
    path = tmp_path / "unseal.toml"
    path.write_text(
        'vault_nodes = [{host = "https://vault-0:8200"}]\n'
        "check_interval = 5\n"
        "[bitwarden]\n"
        'token = "file-token"\n'
        'secret_ids = ["3f1c2a5e-0d1b-4b8e-9d1a-6f0e2c7b9a11"]\n'
        "[log]\n"
        'level = "debug"\n'
        "json = true\n"
    )

    config = load([path])

    assert config.vault_nodes[0].host == "https://vault-0:8200"
    assert config.check_interval == 5
    assert config.bitwarden.token == "file-token"
    assert config.log.level == LogLevel.DEBUG
    assert config.log.as_json


def test_priority_file_env_cli(tmp_path, config_dict):
    path = tmp_path / "unseal.yaml"
    path.write_text(yaml.safe_dump(config_dict))
    environ = {"UNSEAL__CHECK_INTERVAL": "20", "UNSEAL__BITWARDEN__TOKEN": "env-token", "OTHER": "x"}

    config = load([path], environ=environ)
    assert config.check_interval == 20
    assert config.bitwarden.token == "env-token"

    config = load([path], environ=environ, overrides={"check_interval": 30})
    assert config.check_interval == 30
    assert config.bitwarden.token == "env-token"


def test_conf_dir_merges_by_type(tmp_path, config_dict):
    (tmp_path / "b.json").write_text(json.dumps({"check_interval": 3}))
    (tmp_path / "a.toml").write_text("check_interval = 1\n")
    (tmp_path / "c.yml").write_text(yaml.safe_dump({**config_dict, "check_interval": 2}))
    (tmp_path / "notes.txt").write_text("ignored")

    config = load(config_paths(conf_dir=tmp_path))

    # json is merged last
    assert config.check_interval == 3


def test_env_lists_are_split(config_dict):
    environ = {
        "UNSEAL__VAULT_NODES": "http://vault-0:8200, http://vault-1:8200",
        "UNSEAL__BITWARDEN__SECRET_IDS": ",".join(config_dict["bitwarden"]["secret_ids"]),
        "UNSEAL__BITWARDEN__TOKEN": "env-token",
        "UNSEAL__LOG__LEVEL": "WARN",
    }

    config = load(environ=environ)

    assert len(config.vault_nodes) == 2
    assert len(config.bitwarden.secret_ids) == 2
    assert config.log.level.loguru_level() == "WARNING"


def test_load_env_nesting():
    assert load_env({"UNSEAL__LOG__JSON": "true", "UNSEAL__CHECK_INTERVAL": "7"}) == {
        "log": {"json": "true"},
        "check_interval": "7",
    }


def test_missing_file_is_skipped(tmp_path, config_dict):
    config = load([tmp_path / "unseal.toml"], overrides=config_dict)
    assert len(config.vault_nodes) == 2


@pytest.mark.parametrize(
    "change",
    [
        {"vault_nodes": []},
        {"vault_nodes": ["not-a-url"]},
        {"check_interval": 0},
        {"bitwarden": {"token": ""}},
        {"bitwarden": {"secret_ids": []}},
        {"bitwarden": {"secret_ids": ["not-a-uuid"]}},
        {"log": {"level": "verbose"}},
    ],
)
def test_invalid_config(config_dict, change):
    with pytest.raises(ConfigError):
        load(overrides=merge(config_dict, change))


def test_missing_bitwarden_section(config_dict):
    del config_dict["bitwarden"]
    with pytest.raises(ConfigError):
        load(overrides=config_dict)


def test_malformed_file(tmp_path):
    path = tmp_path / "unseal.toml"
    path.write_text("vault_nodes = [")
    with pytest.raises(ConfigError):
        load([path])


def test_ca_cert_used_for_verification(tmp_path, config_dict):
    ca_cert = tmp_path / "vault-ca.pem"
    ca_cert.write_text("-----BEGIN CERTIFICATE-----\n")

    config = load(overrides={**config_dict, "ca_cert": str(ca_cert)})

    assert config.verify == str(ca_cert)


def test_missing_ca_cert(tmp_path, config_dict):
    with pytest.raises(ConfigError):
        load(overrides={**config_dict, "ca_cert": str(tmp_path / "missing-ca.pem")})
