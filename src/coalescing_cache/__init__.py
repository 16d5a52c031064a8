"""coalescing-cache: cache-aside com proteção contra stampede.

Orquestra a consulta a um backend chave-valor e a uma função de origem,
armazenando resultados com TTL e coalescendo chamadas concorrentes para
a mesma chave em uma única busca (single-flight).

Uso básico:
    ```python
    from coalescing_cache import CacheManager, DaprStateBackend

    manager = CacheManager(DaprStateBackend("cache"), expires=300)

    async def load_user(user_id: str) -> dict:
        return await db.query(user_id)

    user = await manager.get_with_cache(
        "123",
        prefix="users",
        getter=load_user,
        single_flight=True,
    )

    # Invalidação
    await manager.delete("123", prefix="users")

    # Estatísticas
    print(manager.stats.hits, manager.stats.misses, manager.stats.queue_map_size)
    ```
"""

__version__ = "0.1.0"

# Backends
from .backend import CacheBackend, DaprStateBackend, InMemoryBackend

# Orquestrador
from .cache import CacheManager

# Configuração
from .config import CacheOptions, Getter, ResolvedOptions, resolve_options

# Exceções
from .exceptions import (
    CacheBackendError,
    CacheConnectionError,
    CacheDecodeError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    CacheTimeoutError,
    ConfigurationError,
)

# Chaves
from .key_builder import build_cache_key

# Métricas
from .metrics import CacheMetrics, CacheStats, NoOpMetrics, OpenTelemetryMetrics, StatsCounter

# Serialização
from .serializer import JsonSerializer, MsgPackSerializer, RawSerializer, Serializer

# Coalescência (uso avançado)
from .singleflight import FetchGroup, SingleFlight

# Utilitários
from .utils import is_empty

__all__ = [
    # Orquestrador
    "CacheManager",
    # Backends
    "CacheBackend",
    "DaprStateBackend",
    "InMemoryBackend",
    # Configuração
    "CacheOptions",
    "Getter",
    "ResolvedOptions",
    "resolve_options",
    # Serialização
    "JsonSerializer",
    "MsgPackSerializer",
    "RawSerializer",
    "Serializer",
    # Chaves e utilitários
    "build_cache_key",
    "is_empty",
    # Métricas
    "CacheMetrics",
    "CacheStats",
    "NoOpMetrics",
    "OpenTelemetryMetrics",
    "StatsCounter",
    # Exceções
    "CacheError",
    "ConfigurationError",
    "CacheKeyError",
    "CacheSerializationError",
    "CacheDecodeError",
    "CacheBackendError",
    "CacheConnectionError",
    "CacheTimeoutError",
    # Coalescência
    "FetchGroup",
    "SingleFlight",
]
