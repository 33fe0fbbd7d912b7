"""vault-renewer user-supplied configuration."""
import argparse
import copy
from typing import Any
from typing import Dict
from typing import Optional
from typing import Tuple
from typing import Union
from urllib import parse

from vault_renewer import errors


class NamespaceConfig:
    """Read-only configuration wrapper around :class:`argparse.Namespace`.

    The wrapped namespace is copied when the object is created and every
    attribute assignment afterwards raises :class:`AttributeError`, so the
    settings resolved at startup stay the same for the whole run.

    Attributes that have no dedicated property are delegated to the
    underlying namespace.

    :ivar namespace: Namespace typically produced by
        :meth:`argparse.ArgumentParser.parse_args`.
    :type namespace: :class:`argparse.Namespace`

    """

    def __init__(self, namespace: argparse.Namespace) -> None:
        self.namespace: argparse.Namespace
        # Avoid the read-only guard defined in __setattr__
        object.__setattr__(self, 'namespace', copy.copy(namespace))

        self.namespace.vault_addr = (self.namespace.vault_addr or '').rstrip('/')

        # Check command line parameters sanity, and error out in case of problem.
        _check_config_sanity(self)

    def to_dict(self) -> Dict[str, Any]:
        """Returns a dictionary mapping all argument names to their values

        The token is masked.
        """
        values = dict(vars(self.namespace))
        if values.get('token'):
            values['token'] = '***'
        return values

    # Delegate any attribute not explicitly defined to the underlying namespace object.

    def __getattr__(self, name: str) -> Any:
        if name == 'namespace':
            raise AttributeError(name)
        return getattr(self.namespace, name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"NamespaceConfig is read-only, cannot set {name!r}")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"NamespaceConfig is read-only, cannot delete {name!r}")

    def __deepcopy__(self, memo: Dict[int, Any]) -> 'NamespaceConfig':
        return type(self)(copy.deepcopy(self.namespace, memo))

    def __repr__(self) -> str:
        return '{0}({1})'.format(type(self).__name__, ', '.join(
            f'{key}={value!r}' for key, value in sorted(self.to_dict().items())))

    @property
    def vault_addr(self) -> str:
        """Address of the Vault server, without trailing slash."""
        return self.namespace.vault_addr

    @property
    def token(self) -> Optional[str]:
        """Vault token to look up and renew."""
        return self.namespace.token

    @property
    def log_file(self) -> str:
        """Path of the log file."""
        return self.namespace.log_file

    @property
    def renewal_threshold_percent(self) -> int:
        """Renew once the TTL drops below this percentage of creation_ttl."""
        return self.namespace.renewal_threshold_percent

    @property
    def namespace_header(self) -> Optional[str]:
        """Vault Enterprise namespace sent with every request, if any."""
        return self.namespace.namespace

    @property
    def increment(self) -> Optional[str]:
        """Requested lease increment for renew-self, e.g. ``1h``."""
        return self.namespace.increment

    @property
    def dry_run(self) -> bool:
        """Decide whether the token needs renewal but never renew it."""
        return self.namespace.dry_run

    @property
    def verify(self) -> Union[bool, str]:
        """Value for the ``verify`` argument of :mod:`requests`."""
        if self.namespace.tls_skip_verify:
            return False
        return self.namespace.ca_cert or True

    @property
    def timeouts(self) -> Tuple[float, float]:
        """Connect and read timeouts, in seconds."""
        return (self.namespace.connect_timeout, self.namespace.timeout)

    @property
    def total_timeout(self) -> float:
        """Deadline for a whole API call, retries included, in seconds."""
        return self.namespace.total_timeout


def _check_config_sanity(config: NamespaceConfig) -> None:
    """Validate command line options and display error message if
    requirements are not met.

    :param config: NamespaceConfig instance holding user configuration
    :type config: :class:`vault_renewer.configuration.NamespaceConfig`

    """
    url = parse.urlparse(config.vault_addr)
    if url.scheme not in ('http', 'https') or not url.netloc:
        raise errors.ConfigurationError(
            f"Vault address {config.vault_addr!r} is not an http(s) URL")

    percent = config.renewal_threshold_percent
    if not 0 <= percent <= 100:
        raise errors.ConfigurationError(
            f"Renewal threshold must be between 0 and 100, got {percent}")

    if config.retries < 0:
        raise errors.ConfigurationError("Retry count must be non-negative")

    if config.total_timeout <= 0:
        raise errors.ConfigurationError("Total timeout must be positive")
