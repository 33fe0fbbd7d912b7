"""Test utilities."""
import argparse
from contextlib import contextmanager
from functools import partial
from http.server import BaseHTTPRequestHandler
from http.server import ThreadingHTTPServer
import json
import logging
import os
import shutil
import sys
import tempfile
import threading
from typing import Any
from typing import Iterator
from typing import List
from typing import Sequence
from typing import Tuple
import unittest

from vault_renewer import configuration
from vault_renewer._internal import constants
from vault_renewer._internal import log

FAKE_ADDR = 'http://vault.test:8200'
FAKE_TOKEN = 's.not-a-real-token'


def make_namespace(**kwargs: Any) -> argparse.Namespace:
    """Namespace holding the CLI defaults, updated with kwargs."""
    values = dict(constants.CLI_DEFAULTS)
    values.update(vault_addr=FAKE_ADDR, token=FAKE_TOKEN)
    values.update(kwargs)
    return argparse.Namespace(**values)


def lookup_body(ttl: Any = 40, creation_ttl: Any = 100) -> dict:
    """JSON body of a lookup-self answer, as Vault returns it."""
    return {
        'request_id': '3b2e3b6a-0c5b-4fa4-8d9e-6f5d1f2c7a90',
        'lease_id': '',
        'renewable': False,
        'lease_duration': 0,
        'data': {
            'accessor': '8609694a-cdbc-db9b-d345-e782dbb562ed',
            'creation_time': 1523979354,
            'creation_ttl': creation_ttl,
            'display_name': 'token',
            'entity_id': '',
            'explicit_max_ttl': 0,
            'id': FAKE_TOKEN,
            'meta': None,
            'num_uses': 0,
            'orphan': False,
            'path': 'auth/token/create',
            'policies': ['default'],
            'renewable': True,
            'ttl': ttl,
            'type': 'service',
        },
        'wrap_info': None,
        'warnings': None,
        'auth': None,
    }


def renew_body(lease_duration: Any = 3600) -> dict:
    """JSON body of a renew-self answer, as Vault returns it."""
    return {
        'request_id': '9b1d2c4e-7a7f-4b49-9f0e-1b0a1c3a6d11',
        'lease_id': '',
        'renewable': False,
        'lease_duration': 0,
        'data': None,
        'wrap_info': None,
        'warnings': None,
        'auth': {
            'client_token': FAKE_TOKEN,
            'accessor': '8609694a-cdbc-db9b-d345-e782dbb562ed',
            'policies': ['default'],
            'metadata': None,
            'lease_duration': lease_duration,
            'renewable': True,
        },
    }


class FakeVaultResponse:
    """Canned answer of a `serving` server.

    :param int status: HTTP status code
    :param body: JSON serializable body, or raw bytes
    :param float byte_delay: seconds to wait before sending each body byte

    """
    def __init__(self, status: int = 200, body: Any = None, byte_delay: float = 0.0) -> None:
        self.status = status
        if isinstance(body, bytes):
            self.content = body
        else:
            self.content = json.dumps({} if body is None else body).encode('utf-8')
        self.byte_delay = byte_delay


class FakeVaultHandler(BaseHTTPRequestHandler):
    """A request handler which is quiet and answers from a script."""

    def __init__(self, responses: Sequence[FakeVaultResponse],
                 received: List[Tuple[str, str]], *args: Any, **kwargs: Any) -> None:
        """
        :arg responses: answers for consecutive requests, the last one repeats
        :arg received: list extended with the method and path of each request

        """
        self.responses = responses
        self.received = received
        BaseHTTPRequestHandler.__init__(self, *args, **kwargs)

    def log_message(self, format: str, *args: Any) -> None:  # pylint: disable=redefined-builtin
        """Don't log each request to the terminal."""

    def do_GET(self) -> None:
        """Serve a GET request."""
        self._answer()

    def do_POST(self) -> None:
        """Serve a POST request."""
        length = int(self.headers.get('Content-Length') or 0)
        if length:
            self.rfile.read(length)
        self._answer()

    def _answer(self) -> None:
        self.received.append((self.command, self.path))
        response = self.responses[min(len(self.received), len(self.responses)) - 1]
        self.send_response(response.status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(response.content)))
        self.end_headers()
        try:
            if not response.byte_delay:
                self.wfile.write(response.content)
                return
            for index in range(len(response.content)):
                if self.server.stopped.wait(response.byte_delay):  # type: ignore[attr-defined]
                    return
                self.wfile.write(response.content[index:index + 1])
        except OSError:
            # client gave up on the answer
            pass


@contextmanager
def serving(responses: Sequence[FakeVaultResponse]) -> Iterator[Tuple[str, List[Tuple[str, str]]]]:
    """Spin up a local HTTP server standing in for Vault.

    Yields its base URL and the list of requests it received so far.

    """
    received: List[Tuple[str, str]] = []
    server = ThreadingHTTPServer(
        ('127.0.0.1', 0), partial(FakeVaultHandler, list(responses), received))
    server.stopped = threading.Event()  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever)
    try:
        thread.start()
        yield f'http://127.0.0.1:{server.server_address[1]}', received
    finally:
        server.stopped.set()  # type: ignore[attr-defined]
        server.shutdown()
        server.server_close()
        thread.join()


class TempDirTestCase(unittest.TestCase):
    """Base test class which sets up and tears down a temporary directory"""

    def setUp(self) -> None:
        """Execute before test"""
        self.tempdir = tempfile.mkdtemp()
        self._excepthook = sys.excepthook

    def tearDown(self) -> None:
        """Execute after test"""
        # Remove logging handlers installed by the code under test so they
        # won't be accidentally used in future tests.
        log.reset()
        logging.getLogger().setLevel(logging.WARNING)
        sys.excepthook = self._excepthook

        shutil.rmtree(self.tempdir)


class ConfigTestCase(TempDirTestCase):
    """Test class which sets up a NamespaceConfig object."""
    def setUp(self) -> None:
        super().setUp()
        self.log_file = os.path.join(self.tempdir, 'logs', 'vault-renewer.log')
        self.config = self.make_config()

    def make_config(self, **kwargs: Any) -> configuration.NamespaceConfig:
        """NamespaceConfig logging into the temporary directory."""
        kwargs.setdefault('log_file', self.log_file)
        return configuration.NamespaceConfig(make_namespace(**kwargs))
