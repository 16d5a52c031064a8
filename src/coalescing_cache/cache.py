"""Orquestrador cache-aside com coalescência de buscas.

Fluxo de ``get_with_cache``:

1. Resolve opções (instância + chamada) e monta a chave ``prefix:key``
2. Consulta o backend, a menos que ``force`` esteja ativo
3. Em miss, busca na origem diretamente ou via grupo single-flight
4. Armazena o resultado com TTL e o devolve
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Generic, TypeVar

from .backend import CacheBackend
from .config import CacheOptions, Getter, ResolvedOptions, resolve_options
from .exceptions import ConfigurationError
from .key_builder import build_cache_key
from .metrics import CacheMetrics, CacheStats, NoOpMetrics, StatsCounter
from .serializer import Serializer
from .singleflight import FetchGroup, SingleFlight
from .utils import is_empty

T = TypeVar("T")


class CacheManager(Generic[T]):
    """Cache-aside sobre um backend chave-valor e uma função de origem.

    Prefixo, getter e TTL podem ser definidos na instância e sobrescritos
    por chamada. Com ``single_flight`` ativo, chamadas concorrentes para a
    mesma chave disparam uma única busca na origem.

    Contabilidade:
    - hit: valor decodificado do cache, ou seguidor de um grupo bem sucedido
    - miss: a origem foi invocada com sucesso por esta chamada
    - error: falha no backend ao ler, falha na origem, ou seguidor de um
      grupo que falhou

    Example:
        ```python
        manager = CacheManager(DaprStateBackend("cache"), prefix="users", expires=60)

        user = await manager.get_with_cache("42", getter=load_user, single_flight=True)
        await manager.delete("42")
        print(manager.stats)
        ```
    """

    def __init__(
        self,
        backend: CacheBackend,
        *,
        options: CacheOptions[T] | None = None,
        prefix: str | None = None,
        getter: Getter[T] | None = None,
        expires: int | None = None,
        single_flight: bool | None = None,
        serializer: Serializer[T] | None = None,
        missing_or_empty_expires: int | None = None,
        metrics: CacheMetrics | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Inicializa o gerenciador.

        Args:
            backend: Backend de armazenamento
            options: Opções da instância; não combine com os campos avulsos
            prefix: Prefixo padrão
            getter: Função de origem padrão
            expires: TTL padrão em segundos
            single_flight: Coalescência habilitada por padrão
            serializer: Serializer padrão (default: JsonSerializer)
            missing_or_empty_expires: TTL para resultados vazios (0 = não armazena)
            metrics: Coletor de métricas externo (default: NoOpMetrics)
            logger: Logger a usar (default: logger do módulo)

        Raises:
            ValueError: Se options for combinado com campos avulsos
        """
        fields = {
            "prefix": prefix,
            "getter": getter,
            "expires": expires,
            "single_flight": single_flight,
            "serializer": serializer,
            "missing_or_empty_expires": missing_or_empty_expires,
        }
        if options is not None and any(value is not None for value in fields.values()):
            raise ValueError("Informe options ou campos avulsos, não ambos")

        self._backend = backend
        self._options: CacheOptions[T] = options or CacheOptions(**fields)
        self._metrics = metrics or NoOpMetrics()
        self._logger = logger or logging.getLogger(__name__)
        self._stats = StatsCounter()
        self._flight = SingleFlight(on_settle=self._record_group_outcome)

    @property
    def options(self) -> CacheOptions[T]:
        """Opções da instância."""
        return self._options

    @property
    def stats(self) -> CacheStats:
        """Snapshot das estatísticas, incluindo grupos em andamento."""
        return self._stats.snapshot(queue_map_size=self._flight.size)

    async def get_with_cache(
        self,
        key: str,
        *,
        prefix: str | None = None,
        getter: Getter[T] | None = None,
        force: bool = False,
        expires: int | None = None,
        single_flight: bool | None = None,
        serializer: Serializer[T] | None = None,
        missing_or_empty_expires: int | None = None,
    ) -> T:
        """Obtém valor do cache ou da origem.

        Args:
            key: Chave do item (não vazia)
            prefix: Prefixo do grupo de cache
            getter: Função de origem
            force: Ignora o cache e sempre consulta a origem
            expires: TTL em segundos
            single_flight: Coalesce chamadas concorrentes para a mesma chave
            serializer: Serializer a usar
            missing_or_empty_expires: TTL para resultados vazios

        Returns:
            Valor do cache ou da origem

        Raises:
            ConfigurationError: Se expires, prefix ou getter não puderem ser
                resolvidos (antes de qualquer I/O)
            CacheKeyError: Se key ou prefix forem vazios
            CacheBackendError: Se o backend falhar
            Exception: A exceção original do getter, sem encapsulamento
        """
        opts = resolve_options(
            self._options,
            prefix=prefix,
            getter=getter,
            force=force,
            expires=expires,
            single_flight=single_flight,
            serializer=serializer,
            missing_or_empty_expires=missing_or_empty_expires,
        )
        cache_key = build_cache_key(opts.prefix, key)
        start_time = time.perf_counter()

        if opts.force:
            self._logger.debug(f"Force ativo, ignorando cache: {cache_key}")
        else:
            found, value = await self._lookup(cache_key, opts.serializer, start_time)
            if found:
                return value

        if opts.single_flight:
            return await self._flight.do(cache_key, lambda: self._fetch_and_populate(key, cache_key, opts, start_time))

        return await self._fetch_and_populate(key, cache_key, opts, start_time)

    async def delete(self, key: str, prefix: str | None = None) -> None:
        """Remove entrada do cache.

        Buscas em andamento para a mesma chave não são afetadas.

        Args:
            key: Chave do item
            prefix: Prefixo (default: prefixo da instância)

        Raises:
            ConfigurationError: Se prefix não puder ser resolvido
            CacheBackendError: Se o backend falhar
        """
        resolved_prefix = prefix if prefix is not None else self._options.prefix
        if resolved_prefix is None:
            raise ConfigurationError("prefix não informado na instância nem na chamada", key=key)

        cache_key = build_cache_key(resolved_prefix, key)
        self._logger.debug(f"Removendo cache: {cache_key}")
        await self._backend.delete(cache_key)

    async def _lookup(self, cache_key: str, serializer: Serializer[T], start_time: float) -> tuple[bool, Any]:
        """Consulta o backend.

        Returns:
            Tupla (encontrado, valor). Valor corrompido conta como não encontrado.
        """
        try:
            data = await self._backend.get(cache_key)
        except Exception as e:
            self._record_error(cache_key, e)
            raise

        if data is None:
            return False, None

        # Serializers customizados podem lançar qualquer exceção
        try:
            value = serializer.decode(data)
        except Exception as e:
            self._logger.warning(f"Valor corrompido no cache para {cache_key}, tratando como miss: {e}")
            return False, None

        self._stats.add_hits()
        self._metrics.record_hit(cache_key, time.perf_counter() - start_time)
        self._logger.debug(f"Cache hit: {cache_key}")
        return True, value

    async def _fetch_and_populate(self, key: str, cache_key: str, opts: ResolvedOptions[T], start_time: float) -> T:
        """Busca na origem e armazena o resultado conforme a política de vazios."""
        try:
            value = await self._call_getter(opts.getter, key)
        except Exception as e:
            self._record_error(cache_key, e)
            raise

        self._stats.add_misses()
        self._metrics.record_miss(cache_key, time.perf_counter() - start_time)

        if not is_empty(value):
            ttl = opts.expires
        elif opts.missing_or_empty_expires > 0:
            ttl = opts.missing_or_empty_expires
        else:
            self._logger.debug(f"Resultado vazio, cache ignorado: {cache_key}")
            return value

        encoded = opts.serializer.encode(value)
        await self._backend.set(cache_key, encoded, ttl)
        self._metrics.record_write(cache_key, len(encoded.encode("utf-8")))
        self._logger.debug(f"Cache miss armazenado: {cache_key}, TTL: {ttl}s")
        return value

    async def _call_getter(self, getter: Getter[T], key: str) -> T:
        """Invoca a origem; funções síncronas rodam em thread separada."""
        if inspect.iscoroutinefunction(getter) or inspect.iscoroutinefunction(getattr(getter, "__call__", None)):
            return await getter(key)

        result = await asyncio.to_thread(getter, key)
        if inspect.isawaitable(result):
            return await result
        return result

    def _record_error(self, cache_key: str, error: BaseException) -> None:
        self._stats.add_errors()
        self._metrics.record_error(cache_key, error)

    def _record_group_outcome(self, group: FetchGroup, error: BaseException | None) -> None:
        """Contabiliza os seguidores de um grupo finalizado."""
        if group.followers == 0:
            return

        if error is None:
            self._stats.add_hits(group.followers)
            latency = time.perf_counter() - group.started_at
            for _ in range(group.followers):
                self._metrics.record_hit(group.cache_key, latency)
        else:
            self._stats.add_errors(group.followers)
            for _ in range(group.followers):
                self._metrics.record_error(group.cache_key, error)
