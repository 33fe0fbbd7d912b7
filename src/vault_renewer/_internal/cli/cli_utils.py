"""vault-renewer command line util function"""
import argparse
import copy
from typing import Any

from vault_renewer._internal import constants


def flag_default(name: str) -> Any:
    """Default value for CLI flag."""
    return copy.deepcopy(constants.CLI_DEFAULTS[name])


class CustomHelpFormatter(argparse.HelpFormatter):
    """This is a clone of ArgumentDefaultsHelpFormatter, with bugfixes.

    In particular we fix https://bugs.python.org/issue28742
    """

    def _get_help_string(self, action: argparse.Action) -> str:
        helpstr = action.help or ''
        if '%(default)' not in helpstr and '(default:' not in helpstr:
            if action.default not in (argparse.SUPPRESS, None):
                defaulting_nargs = [argparse.OPTIONAL, argparse.ZERO_OR_MORE]
                if action.option_strings or action.nargs in defaulting_nargs:
                    helpstr += ' (default: %(default)s)'
        return helpstr


def nonnegative_int(value: str) -> int:
    """Converts value to an int and checks that it is not negative.

    This function should used as the type parameter for argparse
    arguments.

    :param str value: value provided on the command line

    :returns: integer representation of value
    :rtype: int

    :raises argparse.ArgumentTypeError: if value isn't a non-negative integer

    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be an integer")

    if int_value < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return int_value


def percentage(value: str) -> int:
    """Converts value to an int and checks that it lies in [0, 100].

    :param str value: value provided on the command line or in a config file

    :returns: integer representation of value
    :rtype: int

    :raises argparse.ArgumentTypeError: if value isn't an integer percentage

    """
    int_value = nonnegative_int(value)
    if int_value > 100:
        raise argparse.ArgumentTypeError("value must be between 0 and 100")
    return int_value


def positive_float(value: str) -> float:
    """Converts value to a float and checks that it is greater than zero.

    :param str value: value provided on the command line

    :returns: float representation of value
    :rtype: float

    :raises argparse.ArgumentTypeError: if value isn't a positive number

    """
    try:
        float_value = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be a number")

    if float_value <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return float_value


def nonnegative_float(value: str) -> float:
    """Same as `positive_float`, but zero is accepted."""
    try:
        float_value = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be a number")

    if float_value < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return float_value
