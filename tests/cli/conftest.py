"""Fixtures for CLI tests."""

from unittest.mock import MagicMock

import pytest

from orion_store.cli.runner import CLIRunner
from orion_store.config.settings import default_settings
from orion_store.core.auth import TokenStore
from orion_store.core.store import JsonFileStore


@pytest.fixture
def file_store(tmp_path):
    return JsonFileStore(tmp_path / "store")


@pytest.fixture
def token_store():
    mock = MagicMock(spec=TokenStore)
    mock.get.return_value = None
    mock.apply_auth.return_value = {}
    return mock


@pytest.fixture
def cli_runner(file_store, token_store):
    return CLIRunner(default_settings(), file_store, token_store)
