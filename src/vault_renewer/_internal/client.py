"""Vault token API client."""
import json
import logging
import time
from typing import Any
from typing import Dict
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Tuple
from typing import Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

import vault_renewer
from vault_renewer import configuration
from vault_renewer import errors
from vault_renewer._internal import constants

logger = logging.getLogger(__name__)

# Vault answers are a few hundred bytes, single byte reads keep the
# deadline checked while a body trickles in
_READ_CHUNK_SIZE = 1


class TokenInfo(NamedTuple):
    """TTL properties of a token, as reported by ``lookup-self``."""

    ttl: int
    """Remaining time to live, in seconds."""

    creation_ttl: int
    """TTL assigned at creation or at the last full renewal, in seconds."""


class FixedDelayRetry(Retry):
    """`urllib3` retry policy sleeping ``backoff_factor`` seconds between attempts.

    The stock policy grows the delay exponentially and skips it for the
    first retry.

    """
    def get_backoff_time(self) -> float:
        return float(self.backoff_factor) if self.history else 0.0


class VaultClient:
    """Wrapper around requests for the Vault token self-service endpoints.

    Retries and timeouts are handled by the transport: a single
    `requests.Session` with an `HTTPAdapter` retrying connection errors
    and `constants.RETRY_STATUS_CODES` a fixed number of times.

    :param str vault_addr: Vault server address, e.g. ``https://vault:8200``
    :param str token: token sent in the ``X-Vault-Token`` header
    :param str namespace: optional Vault Enterprise namespace
    :param verify: ``verify`` argument for requests, a bool or a CA bundle path
    :param tuple timeout: connect and read timeouts in seconds
    :param int retries: number of retries after the first attempt
    :param float retry_delay: seconds to wait between two attempts
    :param float total_timeout: deadline for a whole call, retries and
        response body included, in seconds

    """
    JSON_CONTENT_TYPE = 'application/json'

    def __init__(self, vault_addr: str, token: str, namespace: Optional[str] = None,
                 verify: Union[bool, str] = True,
                 timeout: Tuple[float, float] = (constants.CLI_DEFAULTS['connect_timeout'],
                                                 constants.CLI_DEFAULTS['timeout']),
                 retries: int = constants.CLI_DEFAULTS['retries'],
                 retry_delay: float = constants.CLI_DEFAULTS['retry_delay'],
                 total_timeout: float = constants.CLI_DEFAULTS['total_timeout']) -> None:
        self.vault_addr = vault_addr.rstrip('/')
        self.verify = verify
        self._default_timeout = timeout
        self.total_timeout = total_timeout
        self.session = requests.Session()
        self.session.headers.update({
            constants.TOKEN_HEADER: token,
            'User-Agent': f'vault-renewer/{vault_renewer.__version__}',
            'Accept': self.JSON_CONTENT_TYPE,
        })
        if namespace:
            self.session.headers[constants.NAMESPACE_HEADER] = namespace

        retry = FixedDelayRetry(
            total=retries, connect=retries, read=retries, status=retries,
            backoff_factor=retry_delay,
            status_forcelist=constants.RETRY_STATUS_CODES,
            allowed_methods=frozenset(['GET', 'POST']),
            raise_on_status=False, respect_retry_after_header=False)
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_config(cls, config: configuration.NamespaceConfig) -> 'VaultClient':
        """Builds a client from a `.NamespaceConfig`."""
        return cls(config.vault_addr, config.token,
                   namespace=config.namespace_header,
                   verify=config.verify,
                   timeout=config.timeouts,
                   retries=config.retries,
                   retry_delay=config.retry_delay,
                   total_timeout=config.total_timeout)

    def close(self) -> None:
        """Closes the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> 'VaultClient':
        return self

    def __exit__(self, *unused_exc_info: Any) -> None:
        self.close()

    def lookup_self(self) -> TokenInfo:
        """Looks up the TTL of the client's token.

        :returns: current ``ttl`` and ``creation_ttl`` of the token
        :rtype: TokenInfo

        :raises .errors.HttpError: if Vault answered with a non 2xx status
        :raises .errors.NetworkError: if Vault could not be reached
        :raises .errors.ParseError: if a TTL field is missing or invalid

        """
        jobj = self._json(self._request('GET', constants.LOOKUP_SELF_PATH))
        data = jobj.get('data') if isinstance(jobj, dict) else None
        if not isinstance(data, dict):
            raise errors.ParseError(
                "Token lookup response has no 'data' object")
        return TokenInfo(ttl=parse_seconds(data, 'ttl'),
                         creation_ttl=parse_seconds(data, 'creation_ttl'))

    def renew_self(self, increment: Optional[str] = None) -> Optional[int]:
        """Renews the client's token.

        The new TTL is read from ``data.ttl``, or from
        ``auth.lease_duration`` which is where Vault itself reports it.
        The renewal counts as successful even when neither field can be
        parsed; a warning is logged and None is returned.

        :param str increment: requested lease increment, e.g. ``1h``

        :returns: the new TTL in seconds, if the response carried one
        :rtype: int or None

        :raises .errors.HttpError: if Vault answered with a non 2xx status
        :raises .errors.NetworkError: if Vault could not be reached

        """
        body = {'increment': increment} if increment else None
        text = self._request('POST', constants.RENEW_SELF_PATH, json=body)
        try:
            return _renewed_ttl(self._json(text))
        except errors.ParseError as error:
            logger.warning("Could not parse new TTL from renewal response: %s", error)
            return None

    def _url(self, path: str) -> str:
        return f"{self.vault_addr}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> str:
        """Send HTTP request, check the response status and read the body.

        The whole call, transport retries and response body included, has
        to finish within ``total_timeout`` seconds. The body is read in
        small pieces so the deadline also holds against a server that
        keeps the connection busy with a trickle of bytes.

        :param str method: HTTP method
        :param str path: API path, relative to the Vault address

        :returns: response body
        :rtype: str

        :raises .errors.NetworkError: in case of any transport problem,
            or when the deadline passed
        :raises .errors.HttpError: if the status is outside of [200, 300)

        """
        url = self._url(path)
        deadline = time.monotonic() + self.total_timeout
        connect_timeout, read_timeout = self._default_timeout
        kwargs['timeout'] = (connect_timeout, min(read_timeout, self.total_timeout))
        kwargs['verify'] = self.verify
        logger.debug('Sending %s request to %s.', method, url)
        try:
            response = self.session.request(method, url, stream=True, **kwargs)
        except requests.exceptions.RequestException as error:
            raise errors.NetworkError(
                f"Vault API call to '{path}' failed: {error}") from error

        try:
            self._check_deadline(path, deadline)
            content = self._read_body(response, path, deadline)
        finally:
            response.close()

        # Vault answers with UTF-8 JSON, spare requests the guess
        text = content.decode('utf-8', errors='replace')
        logger.debug('Received response:\nHTTP %d\n%s',
                     response.status_code, _redact_body(text))
        if not 200 <= response.status_code < 300:
            raise errors.HttpError(response.status_code, text.strip(), path)
        return text

    def _read_body(self, response: requests.Response, path: str, deadline: float) -> bytes:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=_READ_CHUNK_SIZE):
                chunks.append(chunk)
                self._check_deadline(path, deadline)
        except requests.exceptions.RequestException as error:
            raise errors.NetworkError(
                f"Vault API call to '{path}' failed: {error}") from error
        return b''.join(chunks)

    def _check_deadline(self, path: str, deadline: float) -> None:
        if time.monotonic() > deadline:
            raise errors.NetworkError(
                f"Vault API call to '{path}' did not complete within "
                f"{self.total_timeout:g} seconds")

    @staticmethod
    def _json(text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError as error:
            raise errors.ParseError(
                f"Vault response is not JSON: {text[:200]!r}") from error


def parse_seconds(data: Mapping[str, Any], field: str) -> int:
    """Reads a non-negative number of seconds from ``data[field]``.

    JSON integers and strings of decimal digits are accepted. Booleans,
    fractions, negative numbers and anything else are rejected.

    :param dict data: object holding the field
    :param str field: name of the field

    :returns: number of seconds
    :rtype: int

    :raises .errors.ParseError: if the field is absent or invalid

    """
    if field not in data or data[field] is None:
        raise errors.ParseError(f"Field '{field}' is missing")
    value = data[field]
    if isinstance(value, bool):
        raise errors.ParseError(f"Field '{field}' is not a number of seconds: {value!r}")
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise errors.ParseError(f"Field '{field}' is not a number of seconds: {value!r}")


def _renewed_ttl(jobj: Any) -> int:
    if not isinstance(jobj, dict):
        raise errors.ParseError("Renewal response is not a JSON object")
    sections: Dict[str, Any] = {
        key: jobj.get(key) for key in ('data', 'auth') if isinstance(jobj.get(key), dict)}
    if 'data' in sections and 'ttl' in sections['data']:
        return parse_seconds(sections['data'], 'ttl')
    if 'auth' in sections and 'lease_duration' in sections['auth']:
        return parse_seconds(sections['auth'], 'lease_duration')
    raise errors.ParseError("Neither 'data.ttl' nor 'auth.lease_duration' is present")


def _redact_body(text: str) -> str:
    """Hide token material echoed back by Vault in debug logs."""
    if 'client_token' in text or '"id"' in text or 'accessor' in text:
        return '<response body with token material not logged>'
    return text
