"""
Shared fixtures.

Vendors are faked with ``httpx.MockTransport`` and credentials come from
the environment only, so no test touches the network or a real keyring.
"""

import httpx
import pytest

from tests.fakes import KEY_VARS, FakeVendors
from vauban_ai.config import ConfigStore
from vauban_ai.credentials import CredentialManager, EnvironmentBackend
from vauban_ai.images import ObjectURLStore
from vauban_ai.orchestrator import AIOrchestrator


@pytest.fixture
def credentials(monkeypatch) -> CredentialManager:
    for var in KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    return CredentialManager(backends=[EnvironmentBackend()])


@pytest.fixture
def config_store(tmp_path, credentials) -> ConfigStore:
    return ConfigStore(tmp_path / "config.json", credentials=credentials)


@pytest.fixture
def vendors() -> FakeVendors:
    return FakeVendors()


@pytest.fixture
def client(vendors) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(vendors))


@pytest.fixture
def orchestrator(client, credentials, config_store) -> AIOrchestrator:
    return AIOrchestrator(
        client=client,
        credentials=credentials,
        config_store=config_store,
        object_urls=ObjectURLStore(),
    )
