"""vault-renewer errors."""
from typing import Optional


class Error(Exception):
    """Generic vault-renewer error."""


class ConfigurationError(Error):
    """Configuration sanity error."""


class ParseError(Error):
    """A Vault response did not carry the expected fields."""


class ApiError(Error):
    """Generic Vault API error."""


class HttpError(ApiError):
    """Vault answered with a status code outside of the 2xx range.

    :ivar int code: HTTP status code
    :ivar str body: response body, possibly empty
    :ivar str path: API path that was requested

    """
    def __init__(self, code: int, body: str, path: str = '') -> None:
        self.code = code
        self.body = body
        self.path = path
        super().__init__(code, body, path)

    def __str__(self) -> str:
        return "Vault API call to '{0}' failed with HTTP code {1}. Response: {2}".format(
            self.path, self.code, self.body or "No response body")


class NetworkError(ApiError):
    """Vault could not be reached, even after transport level retries."""


class SignalExit(Error):
    """A Unix signal was received while in the ExitHandler context manager.

    :ivar int signum: number of the received signal

    """
    def __init__(self, signum: Optional[int] = None) -> None:
        self.signum = signum
        super().__init__(signum)

    def __str__(self) -> str:
        return f"Received signal {self.signum}"
