"""Runs vault-renewer."""
import logging
import sys

import vault_renewer.main


logger = logging.getLogger(__name__)


def main() -> None:
    """Runs vault-renewer, logs the exit status, and calls sys.exit."""
    status = vault_renewer.main.main()
    if status:
        logger.debug('Exiting with status %s', status)
    sys.exit(status)


if __name__ == '__main__':
    main()
