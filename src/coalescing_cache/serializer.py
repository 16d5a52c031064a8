"""Estratégias de serialização para valores armazenados no cache.

O backend armazena apenas strings, então todo serializer converte
valores Python em texto e vice-versa.
"""

import base64
import binascii
import json
from typing import Any, Protocol, TypeVar

import msgpack

from .exceptions import CacheDecodeError, CacheSerializationError

T = TypeVar("T")


class Serializer(Protocol[T]):
    """Protocol para serializers customizados.

    Example:
        ```python
        class UpperSerializer:
            def encode(self, value: str) -> str:
                return value.upper()

            def decode(self, data: str) -> str:
                return data.lower()
        ```
    """

    def encode(self, value: T) -> str:
        """Serializa valor Python para texto.

        Raises:
            CacheSerializationError: Se o valor não for suportado
        """
        ...

    def decode(self, data: str) -> T:
        """Deserializa texto para valor Python.

        Raises:
            CacheDecodeError: Se o texto estiver corrompido
        """
        ...


class JsonSerializer:
    """Serializer JSON (padrão).

    Preserva a forma de valores JSON nativos: None, bool, int, float,
    str, list e dict com chaves string. Tuplas voltam como listas.
    """

    def encode(self, value: Any) -> str:
        """Serializa valor para JSON compacto.

        Args:
            value: Dados a serializar

        Returns:
            Texto JSON

        Raises:
            CacheSerializationError: Se o valor não for serializável
        """
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e

    def decode(self, data: str) -> Any:
        """Deserializa texto JSON.

        Args:
            data: Texto JSON

        Returns:
            Valor Python

        Raises:
            CacheDecodeError: Se o texto não for JSON válido
        """
        if not isinstance(data, str):
            raise CacheDecodeError(f"Esperado str, recebido {type(data).__name__}")

        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise CacheDecodeError(f"JSON inválido: {e}") from e


class RawSerializer:
    """Serializer identidade para valores que já são strings."""

    def encode(self, value: str) -> str:
        if not isinstance(value, str):
            raise CacheSerializationError(f"RawSerializer espera str, recebido {type(value).__name__}")
        return value

    def decode(self, data: str) -> str:
        if not isinstance(data, str):
            raise CacheDecodeError(f"Esperado str, recebido {type(data).__name__}")
        return data


class MsgPackSerializer:
    """Serializer usando MessagePack.

    MsgPack é um formato binário mais compacto que JSON. Como o backend
    trabalha com texto, os bytes são transportados em base64 ASCII.
    """

    def encode(self, value: Any) -> str:
        """Serializa dados Python para MsgPack em base64.

        Raises:
            CacheSerializationError: Se falhar ao serializar
        """
        try:
            packed = msgpack.packb(value, use_bin_type=True)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e
        return base64.b64encode(packed).decode("ascii")

    def decode(self, data: str) -> Any:
        """Deserializa texto base64 contendo MsgPack.

        Raises:
            CacheDecodeError: Se o base64 ou o MsgPack forem inválidos
        """
        if not isinstance(data, str):
            raise CacheDecodeError(f"Esperado str, recebido {type(data).__name__}")

        try:
            packed = base64.b64decode(data.encode("ascii"), validate=True)
            return msgpack.unpackb(packed, raw=False)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise CacheDecodeError(f"Base64 inválido: {e}") from e
        except (msgpack.UnpackException, ValueError, TypeError) as e:
            raise CacheDecodeError(f"Falha ao deserializar dados: {e}") from e
