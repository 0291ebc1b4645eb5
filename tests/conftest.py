"""Pytest configuration and shared fixtures."""

import os

import httpx
import pytest

from vault import AsyncVaultClient, VaultClient


@pytest.fixture(autouse=True)
def clean_vault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove VAULT_* variables so defaults are predictable in every test."""
    for name in list(os.environ):
        if name.startswith("VAULT_"):
            monkeypatch.delenv(name)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record backoff delays instead of actually sleeping."""
    recorded: list[float] = []

    async def fake_async_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr("vault._retry.time.sleep", recorded.append)
    monkeypatch.setattr("vault._retry.asyncio.sleep", fake_async_sleep)
    return recorded


@pytest.fixture
def make_client():
    """Build a VaultClient whose requests are answered by a handler."""
    clients: list[VaultClient] = []

    def _make(handler, **options) -> VaultClient:
        options.setdefault("address", "https://vault.test")
        client = VaultClient(transport=httpx.MockTransport(handler), **options)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
async def make_async_client():
    """Build an AsyncVaultClient whose requests are answered by a handler."""
    clients: list[AsyncVaultClient] = []

    def _make(handler, **options) -> AsyncVaultClient:
        options.setdefault("address", "https://vault.test")
        client = AsyncVaultClient(transport=httpx.MockTransport(handler), **options)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()
