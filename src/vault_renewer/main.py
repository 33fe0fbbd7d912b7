"""vault-renewer main public entry point."""
from typing import List
from typing import Optional

from vault_renewer._internal import main as internal_main


def main(cli_args: Optional[List[str]] = None) -> int:
    """Run vault-renewer.

    :param cli_args: command line to vault-renewer, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of vault-renewer
    :rtype: `int`

    """
    return internal_main.main(cli_args)
