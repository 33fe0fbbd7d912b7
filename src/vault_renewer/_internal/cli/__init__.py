"""vault-renewer command line argument & config processing.

Every setting is resolved, in decreasing order of precedence, from the
command line, the environment, a ``key = value`` config file and the
defaults in `vault_renewer._internal.constants.CLI_DEFAULTS`. Config files
are parsed by ConfigArgParse and never executed.

"""
import argparse
import os
from typing import List
from typing import Mapping
from typing import NoReturn
from typing import Optional

import configargparse

import vault_renewer
from vault_renewer import errors
from vault_renewer._internal import constants
from vault_renewer._internal.cli.cli_utils import CustomHelpFormatter
from vault_renewer._internal.cli.cli_utils import flag_default
from vault_renewer._internal.cli.cli_utils import nonnegative_float
from vault_renewer._internal.cli.cli_utils import nonnegative_int
from vault_renewer._internal.cli.cli_utils import percentage
from vault_renewer._internal.cli.cli_utils import positive_float

SHORT_USAGE = """
  vault-renewer [options]

Looks up the TTL of the Vault token given in VAULT_TOKEN and renews it
through auth/token/renew-self once the TTL falls below
--renewal-threshold-percent of the token's creation_ttl.
"""


def _env(name: str) -> str:
    return constants.ENV_VARS[name]


class ArgParser(configargparse.ArgParser):
    """ConfigArgParse parser reporting invalid settings as `.ConfigurationError`.

    Settings may come from the environment or a config file, so a bad
    value is a configuration error rather than a usage error.

    """
    def error(self, message: str) -> NoReturn:  # type: ignore[override]
        raise errors.ConfigurationError(f"{self.prog}: {message}")


def build_parser() -> ArgParser:
    """Creates the parser for all vault-renewer settings.

    :returns: parser with all arguments registered
    :rtype: ArgParser

    """
    parser = ArgParser(
        prog="vault-renewer",
        usage=SHORT_USAGE,
        formatter_class=CustomHelpFormatter,
        default_config_files=flag_default("config_files"),
        # no prefix matching: "--vault" or a "renewal-threshold" key is an error
        allow_abbrev=False,
        # unknown keys in a config file are configuration errors
        ignore_unknown_config_file_keys=False)

    parser.add_argument(
        "-c", "--config", is_config_file=True, env_var=_env("config"),
        help="path to a key = value config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))
    parser.add_argument(
        "--version", action="version",
        version="%(prog)s {0}".format(vault_renewer.__version__),
        help="show program's version number and exit")

    vault = parser.add_argument_group("vault", "Vault server and token")
    vault.add_argument(
        "--vault-addr", dest="vault_addr", env_var=_env("vault_addr"),
        default=flag_default("vault_addr"),
        help="Address of the Vault server.")
    vault.add_argument(
        "--token", dest="token", env_var=_env("token"),
        default=flag_default("token"),
        help="Vault token to renew. Prefer setting {0} over passing the "
             "token on the command line.".format(_env("token")))
    vault.add_argument(
        "--namespace", dest="namespace", env_var=_env("namespace"),
        default=flag_default("namespace"),
        help="Vault Enterprise namespace of the token.")
    vault.add_argument(
        "--ca-cert", dest="ca_cert", env_var=_env("ca_cert"),
        default=flag_default("ca_cert"),
        help="PEM bundle used to verify the Vault server certificate.")
    vault.add_argument(
        "--tls-skip-verify", dest="tls_skip_verify", action="store_true",
        env_var=_env("tls_skip_verify"),
        default=flag_default("tls_skip_verify"),
        help="Do not verify the Vault server certificate.")

    renewal = parser.add_argument_group("renewal", "Renewal policy")
    renewal.add_argument(
        "--renewal-threshold-percent", dest="renewal_threshold_percent",
        type=percentage, metavar="PERCENT",
        env_var=_env("renewal_threshold_percent"),
        default=flag_default("renewal_threshold_percent"),
        help="Renew the token when its TTL drops below this percentage of "
             "its creation_ttl.")
    renewal.add_argument(
        "--increment", dest="increment", default=flag_default("increment"),
        help="Lease increment requested on renewal, e.g. 3600 or 1h. Vault "
             "uses the token's own period or TTL when unset.")
    renewal.add_argument(
        "--dry-run", dest="dry_run", action="store_true",
        default=flag_default("dry_run"),
        help="Look up the token and report whether it would be renewed, "
             "without renewing it.")

    transport = parser.add_argument_group("transport", "HTTP behaviour")
    transport.add_argument(
        "--connect-timeout", dest="connect_timeout", type=positive_float,
        metavar="SECONDS", default=flag_default("connect_timeout"),
        help="Seconds to wait for the connection to Vault.")
    transport.add_argument(
        "--timeout", dest="timeout", type=positive_float, metavar="SECONDS",
        default=flag_default("timeout"),
        help="Seconds to wait for each read from Vault.")
    transport.add_argument(
        "--total-timeout", dest="total_timeout", type=positive_float,
        metavar="SECONDS", env_var=_env("total_timeout"),
        default=flag_default("total_timeout"),
        help="Upper bound on the time a Vault API call may take, retries "
             "and response body included.")
    transport.add_argument(
        "--retries", dest="retries", type=nonnegative_int,
        default=flag_default("retries"),
        help="Times a failed connection or a 429/5xx answer is retried.")
    transport.add_argument(
        "--retry-delay", dest="retry_delay", type=nonnegative_float,
        metavar="SECONDS", default=flag_default("retry_delay"),
        help="Fixed delay between two attempts.")

    logs = parser.add_argument_group("logging", "Logging and verbosity")
    logs.add_argument(
        "--log-file", dest="log_file", env_var=_env("log_file"),
        default=flag_default("log_file"),
        help="File every log message is appended to.")
    logs.add_argument(
        "--max-log-backups", dest="max_log_backups", type=nonnegative_int,
        default=flag_default("max_log_backups"),
        help="Number of rotated log files to keep. Set to 0 to disable "
             "rotation.")
    logs.add_argument(
        "-v", "--verbose", dest="verbose_count", action="count",
        default=flag_default("verbose_count"),
        help="Show debug messages on the terminal.")
    logs.add_argument(
        "-q", "--quiet", dest="quiet", action="store_true",
        default=flag_default("quiet"),
        help="Only show errors on the terminal.")
    logs.add_argument(
        "--debug", dest="debug", action="store_true",
        default=flag_default("debug"),
        help="Show tracebacks of unexpected errors.")

    return parser


def prepare_and_parse_args(args: List[str],
                           env: Optional[Mapping[str, str]] = None) -> argparse.Namespace:
    """Returns parsed command line arguments.

    :param list args: command line arguments with the program name removed
    :param env: environment to read settings from, defaults to `os.environ`

    :returns: parsed command line arguments
    :rtype: argparse.Namespace

    """
    parser = build_parser()
    return parser.parse_args(args, env_vars=os.environ if env is None else env)
