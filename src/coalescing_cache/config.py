"""Configuração do CacheManager.

Opções podem vir de três níveis, com a seguinte precedência:

1. Parâmetro explícito na chamada de ``get_with_cache`` (maior precedência)
2. Opções da instância (``CacheOptions``), opcionalmente lidas do ambiente
3. Valor padrão da biblioteca (menor precedência)

A mesclagem acontece uma única vez por chamada em ``resolve_options``,
que devolve um ``ResolvedOptions`` imutável e completo.
"""

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from .exceptions import ConfigurationError
from .serializer import JsonSerializer, Serializer

T = TypeVar("T")

Getter = Callable[[str], Union[T, Awaitable[T]]]
"""Função de origem: recebe a chave e devolve o valor (sync ou async)."""

# Variáveis de ambiente
ENV_DEFAULT_EXPIRES = "COALESCING_CACHE_DEFAULT_EXPIRES"
ENV_SINGLE_FLIGHT = "COALESCING_CACHE_SINGLE_FLIGHT"
ENV_MISSING_OR_EMPTY_EXPIRES = "COALESCING_CACHE_MISSING_OR_EMPTY_EXPIRES"

# Valores padrão
DEFAULT_SINGLE_FLIGHT = False
DEFAULT_MISSING_OR_EMPTY_EXPIRES = 0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CacheOptions(Generic[T]):
    """Opções padrão de uma instância de CacheManager.

    Todos os campos são opcionais; o que faltar aqui pode ser informado
    em cada chamada.

    Attributes:
        prefix: Prefixo do grupo de cache
        getter: Função de origem dos dados
        expires: TTL padrão em segundos
        single_flight: Habilita coalescência de chamadas concorrentes
        serializer: Serializer padrão
        missing_or_empty_expires: TTL para resultados vazios (0 = não armazena)
    """

    prefix: str | None = None
    getter: Getter[T] | None = None
    expires: int | None = None
    single_flight: bool | None = None
    serializer: Serializer[T] | None = None
    missing_or_empty_expires: int | None = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> "CacheOptions[Any]":
        """Cria opções a partir de variáveis de ambiente.

        Argumentos explícitos têm precedência sobre o ambiente.

        Args:
            **kwargs: Campos de CacheOptions informados explicitamente

        Returns:
            Opções com valores do ambiente preenchendo lacunas

        Raises:
            ConfigurationError: Se alguma variável tiver valor inválido
        """
        env_values: dict[str, Any] = {
            "expires": _read_int_env(ENV_DEFAULT_EXPIRES),
            "single_flight": _read_bool_env(ENV_SINGLE_FLIGHT),
            "missing_or_empty_expires": _read_int_env(ENV_MISSING_OR_EMPTY_EXPIRES),
        }
        for name, value in env_values.items():
            if kwargs.get(name) is None and value is not None:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ResolvedOptions(Generic[T]):
    """Opções efetivas de uma chamada, já mescladas e validadas."""

    prefix: str
    getter: Getter[T]
    expires: int
    force: bool = False
    single_flight: bool = DEFAULT_SINGLE_FLIGHT
    serializer: Serializer[T] = field(default_factory=JsonSerializer)
    missing_or_empty_expires: int = DEFAULT_MISSING_OR_EMPTY_EXPIRES


def _read_int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} deve ser inteiro, recebido {raw!r}") from e


def _read_bool_env(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} deve ser booleano, recebido {raw!r}")


def _pick(call_value: Any, instance_value: Any, default: Any = None) -> Any:
    """Primeiro valor não-None na ordem chamada > instância > padrão."""
    if call_value is not None:
        return call_value
    if instance_value is not None:
        return instance_value
    return default


def _validate_expires(expires: Any) -> int:
    if expires is None:
        raise ConfigurationError("expires não informado na instância nem na chamada")
    if isinstance(expires, bool) or not isinstance(expires, int) or expires <= 0:
        raise ConfigurationError(f"expires deve ser inteiro positivo, recebido {expires!r}")
    return expires


def _validate_missing_or_empty_expires(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"missing_or_empty_expires deve ser inteiro >= 0, recebido {value!r}")
    return value


def resolve_options(
    defaults: CacheOptions[T],
    *,
    prefix: str | None = None,
    getter: Getter[T] | None = None,
    force: bool | None = None,
    expires: int | None = None,
    single_flight: bool | None = None,
    serializer: Serializer[T] | None = None,
    missing_or_empty_expires: int | None = None,
) -> ResolvedOptions[T]:
    """Mescla opções da chamada com as da instância.

    ``None`` em qualquer argumento significa "não informado".

    Args:
        defaults: Opções da instância
        prefix: Prefixo do grupo de cache
        getter: Função de origem
        force: Ignora o cache e consulta a origem
        expires: TTL em segundos
        single_flight: Habilita coalescência
        serializer: Serializer a usar
        missing_or_empty_expires: TTL para resultados vazios

    Returns:
        Opções resolvidas

    Raises:
        ConfigurationError: Se expires, prefix ou getter não puderem ser
            resolvidos ou tiverem valores inválidos
    """
    resolved_expires = _validate_expires(_pick(expires, defaults.expires))

    resolved_prefix = _pick(prefix, defaults.prefix)
    if resolved_prefix is None:
        raise ConfigurationError("prefix não informado na instância nem na chamada")

    resolved_getter = _pick(getter, defaults.getter)
    if resolved_getter is None:
        raise ConfigurationError("getter não informado na instância nem na chamada")
    if not callable(resolved_getter):
        raise ConfigurationError(f"getter deve ser chamável, recebido {type(resolved_getter).__name__}")

    return ResolvedOptions(
        prefix=resolved_prefix,
        getter=resolved_getter,
        expires=resolved_expires,
        force=bool(force),
        single_flight=bool(_pick(single_flight, defaults.single_flight, DEFAULT_SINGLE_FLIGHT)),
        serializer=_pick(serializer, defaults.serializer) or JsonSerializer(),
        missing_or_empty_expires=_validate_missing_or_empty_expires(
            _pick(missing_or_empty_expires, defaults.missing_or_empty_expires, DEFAULT_MISSING_OR_EMPTY_EXPIRES)
        ),
    )
