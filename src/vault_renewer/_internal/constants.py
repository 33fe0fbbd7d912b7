"""vault-renewer constants."""
import logging
from typing import Any
from typing import Dict

CLI_DEFAULTS: Dict[str, Any] = dict(  # noqa
    config_files=[
        '/etc/vault-renewer/renewer.ini',
        # https://freedesktop.org/wiki/Software/xdg-user-dirs/
        '~/.config/vault-renewer/renewer.ini',
    ],

    # Main parser
    verbose_count=0,
    quiet=False,
    debug=False,
    dry_run=False,
    vault_addr='http://127.0.0.1:8200',
    token=None,
    namespace=None,
    renewal_threshold_percent=50,
    increment=None,

    # Transport
    ca_cert=None,
    tls_skip_verify=False,
    connect_timeout=5,
    timeout=30,
    total_timeout=60,
    retries=3,
    retry_delay=1.0,

    # Logging
    log_file='/var/log/vault-renewer.log',
    max_log_backups=10,
)
"""Defaults for CLI flags and `.NamespaceConfig` attributes."""

ENV_VARS = dict(
    config='VAULT_RENEWER_CONFIG',
    vault_addr='VAULT_ADDR',
    token='VAULT_TOKEN',
    namespace='VAULT_NAMESPACE',
    ca_cert='VAULT_CACERT',
    tls_skip_verify='VAULT_SKIP_VERIFY',
    total_timeout='VAULT_CLIENT_TIMEOUT',
    log_file='VAULT_RENEWER_LOG_FILE',
    renewal_threshold_percent='VAULT_RENEWER_THRESHOLD_PERCENT',
)
"""Environment variables consulted for each setting."""

LOOKUP_SELF_PATH = 'v1/auth/token/lookup-self'
"""Vault API path returning the calling token's properties."""

RENEW_SELF_PATH = 'v1/auth/token/renew-self'
"""Vault API path renewing the calling token."""

TOKEN_HEADER = 'X-Vault-Token'
NAMESPACE_HEADER = 'X-Vault-Namespace'

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
"""HTTP statuses retried by the transport before an error is reported."""

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SIGNAL = 2

DEFAULT_LOGGING_LEVEL = logging.INFO
"""Default logging level to use when not in quiet mode."""

QUIET_LOGGING_LEVEL = logging.ERROR
"""Logging level to use in quiet mode."""

LOG_FILE_MAX_BYTES = 2 ** 20
"""Size at which the log file is rotated."""
