"""Configuração de fixtures para testes."""

import pytest

from coalescing_cache import InMemoryBackend


@pytest.fixture
def sample_data() -> dict:
    """Dados de exemplo para testes."""
    return {"user_id": 123, "name": "Test User", "active": True}


@pytest.fixture
def backend() -> InMemoryBackend:
    """Backend em memória vazio."""
    return InMemoryBackend()
