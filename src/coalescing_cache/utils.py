"""Utilitários diversos."""

from typing import Any


def is_empty(value: Any) -> bool:
    """Verifica se um valor é considerado vazio para fins de cache.

    Vazios: None, string vazia, lista/tupla vazia e dict sem entradas.
    Qualquer outro valor (inclusive 0, False e set vazio) não é vazio.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False
