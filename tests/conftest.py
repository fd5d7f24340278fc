"""Pytest configuration and fixtures."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from reposcribe.config import Config
from reposcribe.handlers.api import BackendClient
from reposcribe.models import Repository
from reposcribe.state import AppState
from reposcribe.token_store import TokenStore


def http_error(status: int, body: dict | None = None) -> requests.HTTPError:
    """Build the HTTPError raise_for_status() would raise for `status`."""
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body or {"error": "boom"}).encode()
    resp.reason = "Error"
    return requests.HTTPError(f"{status} Error", response=resp)


def repo_payload(id: int, name: str, **extra) -> dict:
    data = {
        "id": id,
        "name": name,
        "full_name": f"alice/{name}",
        "description": None,
        "html_url": f"https://github.com/alice/{name}",
        "language": None,
        "stargazers_count": 0,
        "forks_count": 0,
        "updated_at": "2024-01-01T00:00:00Z",
        "private": False,
        "fork": False,
    }
    data.update(extra)
    return data


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        api_base_url="https://backend.test",
        public_url="http://localhost:5000",
        token_file=tmp_path / "storage.json",
        phase_delay=0.0,
    )


@pytest.fixture
def tokens(config: Config) -> TokenStore:
    return TokenStore(config.token_file)


@pytest.fixture
def backend() -> MagicMock:
    mock = MagicMock(spec=BackendClient)
    mock.login_url.return_value = "https://backend.test/auth/github/login"
    return mock


@pytest.fixture
def repo() -> Repository:
    return Repository.from_api(repo_payload(7, "widget", language="Python"))


@pytest.fixture
def app_state(config: Config, backend: MagicMock) -> AppState:
    return AppState.from_config(config, backend=backend)
