"""Testes para os serializers."""

import pytest

from coalescing_cache.exceptions import CacheDecodeError, CacheSerializationError
from coalescing_cache.serializer import JsonSerializer, MsgPackSerializer, RawSerializer


class TestJsonSerializer:
    """Testes para JsonSerializer."""

    def test_encode_returns_compact_text(self) -> None:
        """Deve gerar JSON compacto."""
        serializer = JsonSerializer()

        assert serializer.encode({"name": "x"}) == '{"name":"x"}'

    def test_round_trip(self, sample_data: dict) -> None:
        """Deve preservar o valor original."""
        serializer = JsonSerializer()

        assert serializer.decode(serializer.encode(sample_data)) == sample_data

    def test_round_trip_nested(self) -> None:
        """Deve preservar a forma de estruturas aninhadas."""
        serializer = JsonSerializer()
        data = {"ids": [1, 2, 3], "meta": {"active": False, "score": 1.5, "tag": None}}

        assert serializer.decode(serializer.encode(data)) == data

    def test_round_trip_unicode(self) -> None:
        """Deve preservar caracteres não ASCII."""
        serializer = JsonSerializer()

        encoded = serializer.encode("ação")

        assert "ação" in encoded
        assert serializer.decode(encoded) == "ação"

    def test_encode_unsupported_type_raises(self) -> None:
        """Deve lançar CacheSerializationError para tipos não suportados."""
        serializer = JsonSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.encode({1, 2, 3})

    def test_decode_invalid_json_raises(self) -> None:
        """Deve lançar CacheDecodeError para JSON inválido."""
        serializer = JsonSerializer()

        with pytest.raises(CacheDecodeError):
            serializer.decode("{not json")

    def test_decode_non_string_raises(self) -> None:
        """Deve lançar CacheDecodeError quando não recebe str."""
        serializer = JsonSerializer()

        with pytest.raises(CacheDecodeError):
            serializer.decode(b"{}")  # type: ignore[arg-type]


class TestRawSerializer:
    """Testes para RawSerializer."""

    def test_identity(self) -> None:
        """Deve devolver a própria string."""
        serializer = RawSerializer()

        assert serializer.encode("plain text") == "plain text"
        assert serializer.decode("plain text") == "plain text"

    def test_encode_non_string_raises(self) -> None:
        """Deve recusar valores que não são str."""
        serializer = RawSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.encode({"a": 1})  # type: ignore[arg-type]


class TestMsgPackSerializer:
    """Testes para MsgPackSerializer."""

    def test_encode_returns_ascii_text(self) -> None:
        """Deve gerar texto base64 ASCII."""
        serializer = MsgPackSerializer()

        result = serializer.encode({"key": "value", "number": 42})

        assert isinstance(result, str)
        assert result.isascii()

    def test_round_trip(self) -> None:
        """Deve preservar dados, inclusive bytes."""
        serializer = MsgPackSerializer()
        data = {"list": [1, "two", None], "raw": b"binary", "flag": True}

        assert serializer.decode(serializer.encode(data)) == data

    def test_encode_unsupported_type_raises(self) -> None:
        """Deve lançar CacheSerializationError para objetos arbitrários."""
        serializer = MsgPackSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.encode(object())

    def test_decode_invalid_base64_raises(self) -> None:
        """Deve lançar CacheDecodeError para base64 inválido."""
        serializer = MsgPackSerializer()

        with pytest.raises(CacheDecodeError):
            serializer.decode("not base64!!")

    def test_decode_truncated_payload_raises(self) -> None:
        """Deve lançar CacheDecodeError para MsgPack truncado."""
        serializer = MsgPackSerializer()

        # 0x81 = fixmap com 1 entrada, sem conteúdo
        with pytest.raises(CacheDecodeError):
            serializer.decode("gQ==")
