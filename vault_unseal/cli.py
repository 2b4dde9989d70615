import argparse
import asyncio
import sys
from typing import List

from loguru import logger

from vault_unseal.config import config_paths, load_config
from vault_unseal.constants import DEFAULT_CONF_PATH, LogLevel
from vault_unseal.errors import UnsealError
from vault_unseal.logs import init_log
from vault_unseal.unseal.orchestrator import unseal


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-unseal",
        description="Keep HashiCorp Vault nodes unsealed with unseal keys stored in Bitwarden Secrets Manager",
    )
    config_group = parser.add_mutually_exclusive_group()
    config_group.add_argument("-c", "--conf-path", default=DEFAULT_CONF_PATH, help="config file path")
    config_group.add_argument("-d", "--conf-dir", help="directory containing the config files")

    parser.add_argument("--vault-nodes", nargs="*", help="vault node urls")
    parser.add_argument("--bw-host", help="bitwarden host")
    parser.add_argument("--bw-token", help="bitwarden access token")
    parser.add_argument("--bw-secret-ids", help="comma separated bitwarden secret ids")
    parser.add_argument("--check-interval", type=int, help="check unseal interval in seconds (default: 10)")
    parser.add_argument("--request-timeout", type=float, help="timeout of vault requests in seconds (default: 30)")
    parser.add_argument("--tls-verify", action=argparse.BooleanOptionalAction, default=None,
                        help="verify the tls certificates of the vault nodes (default: true)")
    parser.add_argument("--ca-cert", help="ca bundle used to verify the vault nodes")
    parser.add_argument("--log-level", choices=[level.value for level in LogLevel], help="log level (default: info)")
    parser.add_argument("--log-json", action="store_true", default=None, help="log in json format")
    return parser


def cli_overrides(args: argparse.Namespace) -> dict:
    """
    Turn the parsed arguments into a nested config dictionary, arguments that were not given are left out
    """
    values = {
        "vault_nodes": args.vault_nodes or None,
        "check_interval": args.check_interval,
        "request_timeout": args.request_timeout,
        "tls_verify": args.tls_verify,
        "ca_cert": args.ca_cert,
        "bitwarden": {
            "host": args.bw_host,
            "token": args.bw_token,
            "secret_ids": args.bw_secret_ids,
        },
        "log": {
            "level": args.log_level,
            "json": args.log_json,
        },
    }

    def prune(d: dict) -> dict:
        pruned = {}
        for key, value in d.items():
            if isinstance(value, dict):
                value = prune(value)
                if value:
                    pruned[key] = value
            elif value is not None:
                pruned[key] = value
        return pruned

    return prune(values)


def main(argv: List[str] = None) -> int:
    """
    Entry point of the vault-unseal command

    :return: the process exit code, 0 after a clean shutdown and 1 on configuration or startup errors
    """
    args = create_parser().parse_args(argv)
    try:
        config = load_config(config_paths(args.conf_path, args.conf_dir), overrides=cli_overrides(args))
    except UnsealError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    init_log(config.log.level, config.log.as_json)

    try:
        asyncio.run(unseal(config))
    except UnsealError as e:
        logger.error(f"Failed to start vault-unseal: {e}")
        return 1
    return 0


def run():
    sys.exit(main())
