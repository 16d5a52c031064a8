"""Coalescência de buscas concorrentes (single-flight).

Quando múltiplas chamadas concorrentes precisam buscar o mesmo valor na
origem, apenas a primeira (líder) executa a busca. As demais se anexam ao
grupo em andamento e recebem o mesmo resultado, ou a mesma exceção.

O grupo existe apenas durante uma ida e volta à origem: é removido da
tabela no instante em que a busca termina.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FetchGroup:
    """Busca em andamento para uma chave de cache.

    Attributes:
        cache_key: Chave de cache coalescida
        future: Resultado compartilhado por todos os membros
        followers: Membros anexados além do líder
        started_at: Instante de criação (perf_counter)
    """

    cache_key: str
    future: "asyncio.Future[Any]"
    followers: int = 0
    started_at: float = field(default_factory=time.perf_counter)


SettleCallback = Callable[[FetchGroup, BaseException | None], None]


class SingleFlight:
    """Tabela de grupos de busca em andamento.

    Decidir entre criar um grupo ou se anexar a um existente é uma única
    seção crítica, então duas chamadas nunca se tornam líderes do mesmo
    grupo. O lock nunca é mantido durante um ``await``.

    Example:
        ```python
        flight = SingleFlight()

        async def fetch():
            await asyncio.sleep(1)
            return "result"

        # Apenas uma busca é executada, mesmo com 10 chamadas
        results = await asyncio.gather(*[flight.do("key", fetch) for _ in range(10)])
        ```
    """

    def __init__(self, on_settle: SettleCallback | None = None) -> None:
        """Inicializa a tabela.

        Args:
            on_settle: Chamado uma vez por grupo quando a busca termina,
                com o grupo e a exceção (None em caso de sucesso)
        """
        self._groups: dict[str, FetchGroup] = {}
        self._lock = Lock()
        self._on_settle = on_settle

    @property
    def size(self) -> int:
        """Número de grupos em andamento."""
        with self._lock:
            return len(self._groups)

    def is_pending(self, cache_key: str) -> bool:
        """Verifica se há busca em andamento para a chave."""
        with self._lock:
            return cache_key in self._groups

    def _join(self, cache_key: str) -> tuple[FetchGroup, bool]:
        """Anexa ao grupo existente ou cria um novo.

        Returns:
            Tupla (grupo, é_líder)
        """
        with self._lock:
            group = self._groups.get(cache_key)
            if group is not None:
                group.followers += 1
                return group, False

            group = FetchGroup(cache_key=cache_key, future=asyncio.get_running_loop().create_future())
            self._groups[cache_key] = group
            return group, True

    def _settle(self, group: FetchGroup, result: Any = None, error: BaseException | None = None) -> None:
        """Resolve o grupo com o resultado único e o remove da tabela."""
        with self._lock:
            if self._groups.get(group.cache_key) is group:
                del self._groups[group.cache_key]

            future = group.future
            if error is None:
                future.set_result(result)
            elif isinstance(error, Exception):
                future.set_exception(error)
                # Marca a exceção como consumida quando não há seguidores
                future.exception()
            else:
                future.cancel()

        logger.debug(f"Grupo finalizado para {group.cache_key}: {group.followers} seguidor(es)")

        if self._on_settle is not None:
            self._on_settle(group, error)

    async def do(self, cache_key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Executa ``fetch`` com coalescência por chave.

        Args:
            cache_key: Chave de coalescência
            fetch: Função async executada apenas pelo líder

        Returns:
            Resultado da busca (própria ou do grupo existente)

        Raises:
            Exception: A mesma exceção da busca, para todos os membros
            asyncio.CancelledError: Se a busca do líder for cancelada
        """
        group, is_leader = self._join(cache_key)

        if not is_leader:
            logger.debug(f"Aguardando busca existente para: {cache_key}")
            # shield: um seguidor cancelado não cancela o grupo
            return await asyncio.shield(group.future)

        logger.debug(f"Iniciando busca para: {cache_key}")
        try:
            result = await fetch()
        except BaseException as e:
            self._settle(group, error=e)
            raise

        self._settle(group, result=result)
        return result
