"""vault-renewer main entry point.

A run is a single pass through the following states; any failure ends the
run with a nonzero exit status::

    INIT -> CONFIG_LOADED -> PREFLIGHT_CHECKED -> TOKEN_LOOKED_UP
         -> RENEWAL_SKIPPED | RENEWAL_ATTEMPTED -> DONE

"""
import enum
import logging
import signal
import sys
from typing import List
from typing import Optional

import vault_renewer
from vault_renewer import configuration
from vault_renewer import errors
from vault_renewer._internal import cli
from vault_renewer._internal import client
from vault_renewer._internal import constants
from vault_renewer._internal import error_handler
from vault_renewer._internal import log
from vault_renewer._internal import renewal

logger = logging.getLogger(__name__)


class State(enum.Enum):
    """Steps of a renewal run."""
    INIT = enum.auto()
    CONFIG_LOADED = enum.auto()
    PREFLIGHT_CHECKED = enum.auto()
    TOKEN_LOOKED_UP = enum.auto()
    RENEWAL_SKIPPED = enum.auto()
    RENEWAL_ATTEMPTED = enum.auto()
    DONE = enum.auto()


def _enter(state: State) -> None:
    logger.debug("Entering state %s", state.name)


def preflight(config: configuration.NamespaceConfig) -> None:
    """Checks everything a run needs before talking to Vault.

    Sets up the log file as a side effect, so every later message also
    ends up there.

    :param config: resolved configuration

    :raises .errors.ConfigurationError: if the run can't proceed

    """
    log_path = log.post_arg_parse_setup(config)
    logger.debug("Logging to %s", log_path)
    logger.debug("Configuration: %r", config)

    if not config.token:
        raise errors.ConfigurationError(
            "{0} environment variable is not set. Please set it before running "
            "vault-renewer. Exiting.".format(constants.ENV_VARS['token']))


def run(config: configuration.NamespaceConfig,
        handler: error_handler.ExitHandler) -> int:
    """Looks up the token and renews it if needed.

    :param config: resolved configuration
    :param handler: handler the HTTP session cleanup is registered with

    :returns: process exit status
    :rtype: int

    """
    try:
        preflight(config)
    except errors.ConfigurationError as error:
        logger.critical(str(error))
        return constants.EXIT_FAILURE
    _enter(State.PREFLIGHT_CHECKED)

    vault = client.VaultClient.from_config(config)
    handler.register(vault.close)

    logger.info("Looking up self token details...")
    try:
        info = vault.lookup_self()
    except errors.ParseError as error:
        logger.critical("Could not parse valid 'ttl' or 'creation_ttl' from token "
                        "lookup response: %s. Exiting.", error)
        return constants.EXIT_FAILURE
    except errors.ApiError as error:
        logger.error(str(error))
        logger.error("Failed to lookup self token. Exiting.")
        return constants.EXIT_FAILURE
    _enter(State.TOKEN_LOOKED_UP)
    logger.info("Current token TTL: %d seconds. Creation TTL: %d seconds.",
                info.ttl, info.creation_ttl)

    try:
        outcome = renewal.handle_renewal(config, vault, info)
    except errors.ApiError as error:
        logger.error(str(error))
        logger.error("Failed to renew token. Exiting.")
        return constants.EXIT_FAILURE
    if outcome is renewal.RenewalOutcome.RENEWED:
        _enter(State.RENEWAL_ATTEMPTED)
    else:
        _enter(State.RENEWAL_SKIPPED)

    _enter(State.DONE)
    logger.info("vault-renewer finished.")
    return constants.EXIT_SUCCESS


def main(cli_args: Optional[List[str]] = None) -> int:
    """Run vault-renewer.

    :param cli_args: command line to vault-renewer, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of vault-renewer
    :rtype: `int`

    """
    if cli_args is None:
        cli_args = sys.argv[1:]

    handler = error_handler.ExitHandler()
    try:
        with handler:
            log.pre_arg_parse_setup()
            _enter(State.INIT)
            logger.info("Starting vault-renewer %s...", vault_renewer.__version__)

            try:
                # note: arg parser internally handles --help (and exits afterwards)
                args = cli.prepare_and_parse_args(cli_args)
                config = configuration.NamespaceConfig(args)
            except errors.ConfigurationError as error:
                logger.critical(str(error))
                return constants.EXIT_FAILURE
            _enter(State.CONFIG_LOADED)
            return run(config, handler)
    except errors.SignalExit as error:
        logger.critical("Received signal %s. Exiting.", _signal_name(error.signum))
        return constants.EXIT_SIGNAL
    except KeyboardInterrupt:
        logger.critical("Exiting due to user request.")
        return constants.EXIT_SIGNAL


def _signal_name(signum: Optional[int]) -> str:
    if signum is None:
        return "unknown"
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
