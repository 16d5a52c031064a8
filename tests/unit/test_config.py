"""Testes para resolução de configuração."""

from unittest.mock import patch

import pytest

from coalescing_cache.config import (
    ENV_DEFAULT_EXPIRES,
    ENV_MISSING_OR_EMPTY_EXPIRES,
    ENV_SINGLE_FLIGHT,
    CacheOptions,
    resolve_options,
)
from coalescing_cache.exceptions import ConfigurationError
from coalescing_cache.serializer import JsonSerializer, RawSerializer


def getter(key: str) -> str:
    return key


def other_getter(key: str) -> str:
    return key.upper()


class TestResolveOptions:
    """Testes para resolve_options."""

    def test_defaults_applied(self) -> None:
        """Deve aplicar padrões da biblioteca."""
        opts = resolve_options(CacheOptions(prefix="P", getter=getter, expires=60))

        assert opts.prefix == "P"
        assert opts.getter is getter
        assert opts.expires == 60
        assert opts.force is False
        assert opts.single_flight is False
        assert isinstance(opts.serializer, JsonSerializer)
        assert opts.missing_or_empty_expires == 0

    def test_call_level_overrides_instance(self) -> None:
        """Parâmetros da chamada têm precedência."""
        raw = RawSerializer()
        defaults = CacheOptions(prefix="P", getter=getter, expires=60, single_flight=True, missing_or_empty_expires=5)

        opts = resolve_options(
            defaults,
            prefix="Q",
            getter=other_getter,
            force=True,
            expires=10,
            single_flight=False,
            serializer=raw,
            missing_or_empty_expires=0,
        )

        assert opts.prefix == "Q"
        assert opts.getter is other_getter
        assert opts.force is True
        assert opts.expires == 10
        assert opts.single_flight is False
        assert opts.serializer is raw
        assert opts.missing_or_empty_expires == 0

    def test_none_means_not_given(self) -> None:
        """None na chamada mantém o valor da instância."""
        opts = resolve_options(CacheOptions(prefix="P", getter=getter, expires=60), expires=None, prefix=None)

        assert opts.expires == 60
        assert opts.prefix == "P"

    def test_resolved_options_immutable(self) -> None:
        """ResolvedOptions é imutável."""
        opts = resolve_options(CacheOptions(prefix="P", getter=getter, expires=60))

        with pytest.raises(AttributeError):
            opts.expires = 10  # type: ignore[misc]

    def test_missing_expires_raises(self) -> None:
        """Sem expires em nenhum nível deve falhar."""
        with pytest.raises(ConfigurationError, match="expires"):
            resolve_options(CacheOptions(prefix="P", getter=getter))

    @pytest.mark.parametrize("expires", [0, -1, 1.5, "60", True])
    def test_invalid_expires_raises(self, expires: object) -> None:
        """expires deve ser inteiro positivo."""
        with pytest.raises(ConfigurationError):
            resolve_options(CacheOptions(prefix="P", getter=getter), expires=expires)  # type: ignore[arg-type]

    def test_missing_prefix_raises(self) -> None:
        """Sem prefix em nenhum nível deve falhar."""
        with pytest.raises(ConfigurationError, match="prefix"):
            resolve_options(CacheOptions(getter=getter, expires=60))

    def test_missing_getter_raises(self) -> None:
        """Sem getter em nenhum nível deve falhar."""
        with pytest.raises(ConfigurationError, match="getter"):
            resolve_options(CacheOptions(prefix="P", expires=60))

    def test_non_callable_getter_raises(self) -> None:
        """getter precisa ser chamável."""
        with pytest.raises(ConfigurationError):
            resolve_options(CacheOptions(prefix="P", expires=60), getter="not callable")  # type: ignore[arg-type]

    def test_negative_missing_or_empty_expires_raises(self) -> None:
        """missing_or_empty_expires negativo é inválido."""
        with pytest.raises(ConfigurationError):
            resolve_options(CacheOptions(prefix="P", getter=getter, expires=60), missing_or_empty_expires=-1)


class TestCacheOptionsFromEnv:
    """Testes para CacheOptions.from_env."""

    def test_reads_environment(self) -> None:
        """Deve ler valores do ambiente."""
        env = {ENV_DEFAULT_EXPIRES: "120", ENV_SINGLE_FLIGHT: "true", ENV_MISSING_OR_EMPTY_EXPIRES: "5"}
        with patch.dict("os.environ", env, clear=True):
            options = CacheOptions.from_env(prefix="P")

        assert options.prefix == "P"
        assert options.expires == 120
        assert options.single_flight is True
        assert options.missing_or_empty_expires == 5

    def test_explicit_values_win(self) -> None:
        """Argumentos explícitos têm precedência sobre o ambiente."""
        with patch.dict("os.environ", {ENV_DEFAULT_EXPIRES: "120", ENV_SINGLE_FLIGHT: "1"}, clear=True):
            options = CacheOptions.from_env(expires=30, single_flight=False)

        assert options.expires == 30
        assert options.single_flight is False

    def test_empty_environment(self) -> None:
        """Sem variáveis, campos ficam None."""
        with patch.dict("os.environ", {}, clear=True):
            options = CacheOptions.from_env()

        assert options.expires is None
        assert options.single_flight is None

    def test_invalid_int_raises(self) -> None:
        """Valor inteiro malformado deve falhar."""
        with patch.dict("os.environ", {ENV_DEFAULT_EXPIRES: "soon"}, clear=True):
            with pytest.raises(ConfigurationError):
                CacheOptions.from_env()

    def test_invalid_bool_raises(self) -> None:
        """Valor booleano malformado deve falhar."""
        with patch.dict("os.environ", {ENV_SINGLE_FLIGHT: "maybe"}, clear=True):
            with pytest.raises(ConfigurationError):
                CacheOptions.from_env()
