"""Composição de chaves de cache."""

from .exceptions import CacheKeyError

KEY_SEPARATOR = ":"


def build_cache_key(prefix: str, key: str) -> str:
    """Constrói chave de cache no formato ``{prefix}:{key}``.

    O prefixo identifica um grupo lógico de cache e a chave o item dentro
    dele. Dois-pontos embutidos não são escapados: quem chama deve evitar
    colisões na construção dos prefixos.

    Args:
        prefix: Prefixo do grupo de cache
        key: Chave do item

    Returns:
        Chave composta

    Raises:
        CacheKeyError: Se prefix ou key forem vazios
    """
    if not prefix:
        raise CacheKeyError("Prefix não pode ser vazio", key=key)
    if not key:
        raise CacheKeyError("Chave não pode ser vazia", key=key)
    return f"{prefix}{KEY_SEPARATOR}{key}"
