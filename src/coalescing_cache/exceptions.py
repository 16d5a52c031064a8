"""Exceções do coalescing-cache."""


class CacheError(Exception):
    """Erro base para operações de cache."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class ConfigurationError(CacheError):
    """Configuração insuficiente ou inválida (ex: expires não resolvido).

    Sempre lançada antes de qualquer chamada ao backend ou ao getter.
    """

    pass


class CacheKeyError(ConfigurationError):
    """Erro relacionado à chave de cache (vazia, inválida, etc.)."""

    pass


class CacheSerializationError(CacheError):
    """Erro de serialização de dados."""

    pass


class CacheDecodeError(CacheSerializationError):
    """Valor armazenado no cache não pôde ser decodificado.

    O CacheManager trata este erro como cache miss.
    """

    pass


class CacheBackendError(CacheError):
    """Falha no backend de armazenamento."""

    pass


class CacheConnectionError(CacheBackendError):
    """Erro de conexão com o backend (ex: sidecar Dapr indisponível)."""

    pass


class CacheTimeoutError(CacheBackendError):
    """Operação no backend excedeu o timeout."""

    pass
