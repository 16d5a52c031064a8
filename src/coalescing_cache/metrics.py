"""Estatísticas e métricas do cache.

``StatsCounter`` mantém os contadores internos expostos por
``CacheManager.stats``. Coletores externos (ex: OpenTelemetry) recebem
os mesmos eventos pelo protocol ``CacheMetrics``.
"""

from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from opentelemetry import metrics as otel_metrics


class CacheMetrics(Protocol):
    """Protocol para coletores de métricas."""

    def record_hit(self, key: str, latency: float) -> None:
        """Registra cache hit."""
        ...

    def record_miss(self, key: str, latency: float) -> None:
        """Registra cache miss."""
        ...

    def record_write(self, key: str, size: int) -> None:
        """Registra escrita no cache."""
        ...

    def record_error(self, key: str, error: BaseException) -> None:
        """Registra erro de cache."""
        ...


class NoOpMetrics:
    """Coletor de métricas que não faz nada (default)."""

    def record_hit(self, key: str, latency: float) -> None:
        pass

    def record_miss(self, key: str, latency: float) -> None:
        pass

    def record_write(self, key: str, size: int) -> None:
        pass

    def record_error(self, key: str, error: BaseException) -> None:
        pass


@dataclass(frozen=True)
class CacheStats:
    """Snapshot das estatísticas de um CacheManager.

    Attributes:
        hits: Chamadas atendidas sem invocar a origem pessoalmente
        misses: Chamadas que invocaram a origem com sucesso
        errors: Chamadas que terminaram em erro
        queue_map_size: Grupos de coalescência em andamento (gauge)
    """

    hits: int = 0
    misses: int = 0
    errors: int = 0
    queue_map_size: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses + self.errors

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class StatsCounter:
    """Contadores cumulativos thread-safe."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def add_hits(self, count: int = 1) -> None:
        with self._lock:
            self._hits += count

    def add_misses(self, count: int = 1) -> None:
        with self._lock:
            self._misses += count

    def add_errors(self, count: int = 1) -> None:
        with self._lock:
            self._errors += count

    def snapshot(self, queue_map_size: int = 0) -> CacheStats:
        """Retorna cópia imutável dos contadores."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                errors=self._errors,
                queue_map_size=queue_map_size,
            )


class OpenTelemetryMetrics:
    """Coletor de métricas usando OpenTelemetry.

    Métricas exportadas:
    - cache.hits (counter): Número de cache hits
    - cache.misses (counter): Número de cache misses
    - cache.writes (counter): Número de escritas
    - cache.errors (counter): Número de erros
    - cache.latency (histogram): Latência das operações em segundos
    - cache.size (histogram): Tamanho dos dados escritos em bytes

    Example:
        ```python
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry import metrics

        metrics.set_meter_provider(MeterProvider())

        manager = CacheManager(backend, expires=60, metrics=OpenTelemetryMetrics())
        ```
    """

    def __init__(self, meter_name: str = "coalescing_cache") -> None:
        """Inicializa métricas OpenTelemetry.

        Args:
            meter_name: Nome do meter para agrupar métricas
        """
        meter = otel_metrics.get_meter(meter_name)

        self._hits_counter = meter.create_counter("cache.hits", description="Número de cache hits", unit="1")
        self._misses_counter = meter.create_counter("cache.misses", description="Número de cache misses", unit="1")
        self._writes_counter = meter.create_counter(
            "cache.writes", description="Número de escritas no cache", unit="1"
        )
        self._errors_counter = meter.create_counter("cache.errors", description="Número de erros de cache", unit="1")

        self._latency_histogram = meter.create_histogram(
            "cache.latency", description="Latência das operações de cache", unit="s"
        )
        self._size_histogram = meter.create_histogram(
            "cache.size", description="Tamanho dos dados escritos no cache", unit="By"
        )

    def record_hit(self, key: str, latency: float) -> None:
        self._hits_counter.add(1, {"key": key})
        self._latency_histogram.record(latency, {"operation": "hit", "key": key})

    def record_miss(self, key: str, latency: float) -> None:
        self._misses_counter.add(1, {"key": key})
        self._latency_histogram.record(latency, {"operation": "miss", "key": key})

    def record_write(self, key: str, size: int) -> None:
        self._writes_counter.add(1, {"key": key})
        self._size_histogram.record(size, {"key": key})

    def record_error(self, key: str, error: BaseException) -> None:
        self._errors_counter.add(1, {"key": key, "error_type": type(error).__name__})
