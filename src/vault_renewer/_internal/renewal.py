"""Renewal policy and the decide-then-renew step."""
import enum
import logging

from vault_renewer import configuration
from vault_renewer._internal import client

logger = logging.getLogger(__name__)


class RenewalOutcome(enum.Enum):
    """What `handle_renewal` did with the token."""

    SKIPPED = enum.auto()
    """TTL was at or above the threshold"""
    RENEWED = enum.auto()
    """TTL was below the threshold and renew-self succeeded"""
    DRY_RUN = enum.auto()
    """TTL was below the threshold but renewal was not attempted"""


def required_ttl(creation_ttl: int, threshold_percent: int) -> int:
    """TTL under which a token is due for renewal.

    Integer arithmetic, rounding down: 50% of a 99s creation_ttl is 49s.

    :param int creation_ttl: maximum TTL of the token, in seconds
    :param int threshold_percent: renewal threshold, between 0 and 100

    :returns: threshold TTL in seconds
    :rtype: int

    :raises ValueError: on negative TTLs or a percentage outside of [0, 100]

    """
    if creation_ttl < 0:
        raise ValueError(f"creation_ttl must be non-negative, got {creation_ttl}")
    if not 0 <= threshold_percent <= 100:
        raise ValueError(f"threshold_percent must be in [0, 100], got {threshold_percent}")
    return creation_ttl * threshold_percent // 100


def should_renew(ttl: int, creation_ttl: int, threshold_percent: int) -> bool:
    """Return true if the token's TTL fell below the renewal threshold.

    A threshold of 0 never renews, a threshold of 100 renews any token
    whose TTL is below its creation_ttl.

    """
    if ttl < 0:
        raise ValueError(f"ttl must be non-negative, got {ttl}")
    return ttl < required_ttl(creation_ttl, threshold_percent)


def handle_renewal(config: configuration.NamespaceConfig, vault: client.VaultClient,
                   info: client.TokenInfo) -> RenewalOutcome:
    """Renews the token if its TTL is below the configured threshold.

    :param config: resolved configuration
    :param vault: client authenticated with the token
    :param info: result of the token lookup

    :returns: what was done
    :rtype: RenewalOutcome

    :raises .errors.ApiError: if the renewal request failed

    """
    threshold = required_ttl(info.creation_ttl, config.renewal_threshold_percent)
    if not should_renew(info.ttl, info.creation_ttl, config.renewal_threshold_percent):
        logger.info("Token TTL (%ds) is above renewal threshold (%ds). No renewal needed.",
                    info.ttl, threshold)
        return RenewalOutcome.SKIPPED

    if config.dry_run:
        logger.warning("Token TTL (%ds) is below renewal threshold (%ds). "
                       "Not renewing the token in a dry run.", info.ttl, threshold)
        return RenewalOutcome.DRY_RUN

    logger.warning("Token TTL (%ds) is below renewal threshold (%ds). "
                   "Attempting to renew token.", info.ttl, threshold)
    new_ttl = vault.renew_self(config.increment)
    if new_ttl is None:
        logger.info("Token renewed successfully, but could not parse new TTL from response.")
    else:
        logger.info("Token renewed successfully. New TTL: %d seconds.", new_ttl)
    return RenewalOutcome.RENEWED
