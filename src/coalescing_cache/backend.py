"""Backends de armazenamento para o cache.

O CacheManager conversa com qualquer objeto que implemente o protocol
``CacheBackend``. Duas implementações acompanham a biblioteca:

- ``DaprStateBackend``: Dapr State Store via API HTTP do sidecar
- ``InMemoryBackend``: armazenamento local ao processo (dev/testes)

Falhas de backend nunca são mascaradas: todas sobem para quem chamou.
"""

import asyncio
import logging
import os
import time
from threading import Lock
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from .exceptions import (
    CacheBackendError,
    CacheConnectionError,
    CacheKeyError,
    CacheTimeoutError,
)

logger = logging.getLogger(__name__)

# Configuração do sidecar Dapr
DEFAULT_DAPR_HTTP_PORT = 3500
DEFAULT_TIMEOUT_SECONDS = 5.0
MIN_TTL_SECONDS = 1


class CacheBackend(Protocol):
    """Protocol para backends chave-valor com expiração."""

    async def get(self, key: str) -> str | None:
        """Busca valor; None se ausente ou expirado."""
        ...

    async def set(self, key: str, data: str, expire_seconds: int) -> None:
        """Armazena valor com TTL em segundos."""
        ...

    async def delete(self, key: str) -> None:
        """Remove valor."""
        ...


def _get_dapr_url() -> str:
    """Obtém a URL base do sidecar Dapr."""
    host = os.getenv("DAPR_HTTP_HOST", "127.0.0.1")
    port = os.getenv("DAPR_HTTP_PORT", str(DEFAULT_DAPR_HTTP_PORT))
    return f"http://{host}:{port}"


class DaprStateBackend:
    """Backend para Dapr State Store usando a API HTTP do sidecar.

    A API REST do Dapr State é simples:
    - GET /v1.0/state/{storename}/{key} - buscar valor
    - POST /v1.0/state/{storename} - salvar valor(es)
    - DELETE /v1.0/state/{storename}/{key} - deletar valor

    O TTL é repassado via metadata ``ttlInSeconds``, então o state store
    configurado precisa suportar expiração.

    Attributes:
        store_name: Nome do state store configurado no Dapr
        timeout: Timeout para operações HTTP em segundos
    """

    def __init__(
        self,
        store_name: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        dapr_url: str | None = None,
    ) -> None:
        """Inicializa o backend.

        Args:
            store_name: Nome do state store Dapr
            timeout: Timeout para operações HTTP
            dapr_url: URL do sidecar (usa env vars se não fornecido)

        Raises:
            CacheKeyError: Se store_name for vazio
        """
        if not store_name:
            raise CacheKeyError("store_name não pode ser vazio")

        self._store_name = store_name
        self._timeout = timeout
        self._base_url = dapr_url or _get_dapr_url()
        self._client: httpx.AsyncClient | None = None
        # asyncio.Lock é criado lazy para evitar "no current event loop"
        # quando o backend é instanciado antes de um event loop existir
        self._client_lock: asyncio.Lock | None = None

    @property
    def store_name(self) -> str:
        """Nome do state store."""
        return self._store_name

    def _get_lock(self) -> asyncio.Lock:
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()
        return self._client_lock

    async def _get_client(self) -> httpx.AsyncClient:
        """Obtém ou cria cliente HTTP assíncrono (double-checked locking)."""
        if self._client is None:
            async with self._get_lock():
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self._base_url,
                        timeout=self._timeout,
                    )
        return self._client

    def _state_url(self, key: str | None = None) -> str:
        """Constrói URL para operações de state.

        A chave vai percent-encoded no path: "?", "#" e "/" fazem parte da
        chave e não da URL.
        """
        if key:
            encoded_key = quote(key, safe="")
            return f"/v1.0/state/{self._store_name}/{encoded_key}"
        return f"/v1.0/state/{self._store_name}"

    async def _request(self, method: str, url: str, key: str, **kwargs: Any) -> httpx.Response:
        """Executa requisição traduzindo erros httpx para exceções de cache."""
        client = await self._get_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.ConnectError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}", key=key) from e
        except httpx.TimeoutException as e:
            raise CacheTimeoutError(f"Timeout na operação {method} para chave {key}: {e}", key=key) from e
        except httpx.HTTPError as e:
            raise CacheBackendError(f"Erro HTTP na operação {method} para chave {key}: {e}", key=key) from e

    async def get(self, key: str) -> str | None:
        """Busca valor do cache.

        Args:
            key: Chave do cache

        Returns:
            Valor armazenado ou None se não encontrado

        Raises:
            CacheKeyError: Se a chave for vazia
            CacheBackendError: Se o sidecar falhar ou responder status inesperado
        """
        if not key:
            raise CacheKeyError("Chave não pode ser vazia", key=key)

        response = await self._request("GET", self._state_url(key), key)

        if response.status_code == 204 or not response.content:
            logger.debug(f"Chave ausente no state store: {key}")
            return None

        if response.status_code != 200:
            raise CacheBackendError(f"Resposta inesperada do Dapr no get: {response.status_code}", key=key)

        try:
            value = response.json()
        except ValueError as e:
            raise CacheBackendError(f"Resposta do Dapr não é JSON válido para chave {key}: {e}", key=key) from e

        if value is None:
            return None
        if isinstance(value, str):
            return value
        # Valor gravado por outro cliente como JSON estruturado
        return response.text

    async def set(self, key: str, data: str, expire_seconds: int) -> None:
        """Armazena valor no cache.

        Args:
            key: Chave do cache
            data: Valor serializado
            expire_seconds: Tempo de vida em segundos

        Raises:
            CacheKeyError: Se a chave for vazia
            CacheBackendError: Se o TTL for inválido ou o sidecar falhar
        """
        if not key:
            raise CacheKeyError("Chave não pode ser vazia", key=key)
        if expire_seconds < MIN_TTL_SECONDS:
            raise CacheBackendError(f"TTL deve ser >= {MIN_TTL_SECONDS} segundo", key=key)

        payload = [
            {
                "key": key,
                "value": data,
                "metadata": {"ttlInSeconds": str(expire_seconds)},
            }
        ]
        response = await self._request("POST", self._state_url(), key, json=payload)

        if response.status_code not in (200, 201, 204):
            raise CacheBackendError(f"Falha ao salvar cache: {response.status_code}", key=key)

        logger.debug(f"Cache set para chave: {key}, TTL: {expire_seconds}s")

    async def delete(self, key: str) -> None:
        """Remove valor do cache.

        Args:
            key: Chave do cache

        Raises:
            CacheKeyError: Se a chave for vazia
            CacheBackendError: Se o sidecar falhar
        """
        if not key:
            raise CacheKeyError("Chave não pode ser vazia", key=key)

        response = await self._request("DELETE", self._state_url(key), key)

        if response.status_code not in (200, 204):
            raise CacheBackendError(f"Falha ao deletar cache: {response.status_code}", key=key)

        logger.debug(f"Cache delete para chave: {key}")

    async def aclose(self) -> None:
        """Fecha o cliente HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DaprStateBackend":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class InMemoryBackend:
    """Backend em memória com expiração por relógio monotônico.

    Útil para desenvolvimento e testes. Entradas expiradas são removidas
    na leitura da própria chave e a cada escrita.
    """

    def __init__(self) -> None:
        self._store: dict[str, tuple[float, str]] = {}
        self._lock = Lock()

    def _now(self) -> float:
        return time.monotonic()

    async def get(self, key: str) -> str | None:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            expires_at, data = item
            if self._now() >= expires_at:
                del self._store[key]
                return None
            return data

    async def set(self, key: str, data: str, expire_seconds: int) -> None:
        if expire_seconds < MIN_TTL_SECONDS:
            raise CacheBackendError(f"TTL deve ser >= {MIN_TTL_SECONDS} segundo", key=key)
        with self._lock:
            now = self._now()
            self._purge_expired(now)
            self._store[key] = (now + expire_seconds, data)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._store.items() if now >= expires_at]
        for key in expired:
            del self._store[key]

    def __len__(self) -> int:
        with self._lock:
            now = self._now()
            return sum(1 for expires_at, _ in self._store.values() if expires_at > now)
