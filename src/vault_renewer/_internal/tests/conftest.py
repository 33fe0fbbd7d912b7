from unittest import mock

import pytest


# Retries sleep between attempts, tests don't need to wait.
@pytest.fixture(autouse=True)
def mock_sleep():
    with mock.patch("time.sleep") as mocked:
        yield mocked
