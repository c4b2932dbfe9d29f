"""Helpers de variantes de produto: nome derivado dos atributos e SKU gerado."""

import re
from typing import Iterable


def _clean(value: str, size: int) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value or "").upper()[:size]


def variant_name(attribute_values: Iterable[tuple[str, str]]) -> str:
    """
    Nome da variante a partir de pares (nome_do_atributo, valor).

    Ordena pelo nome do atributo e junta os valores com " - ".
    Sem atributos -> "Default".
    """
    pairs = sorted(attribute_values, key=lambda p: p[0] or "")
    name = " - ".join(value for _, value in pairs if value)
    return name or "Default"


def variant_sku(product_name: str, attribute_values: Iterable[tuple[str, str]], tenant_key: str) -> str:
    """
    SKU da variante: PROD-ATTR1-ATTR2-TNT.

    4 primeiros caracteres do produto, 3 de cada valor (ordem do nome do
    atributo) e 4 da chave do tenant, tudo alfanumérico em maiúsculas.
    """
    parts = [_clean(product_name, 4) or "PROD"]
    for _, value in sorted(attribute_values, key=lambda p: p[0] or ""):
        cleaned = _clean(value, 3)
        if cleaned:
            parts.append(cleaned)
    parts.append(_clean(tenant_key, 4) or "TNT")
    return "-".join(parts)


def effective_price(variant_price, sale_price, price):
    """Preço de venda: preço da variante, senão preço promocional, senão preço do produto."""
    if variant_price is not None:
        return variant_price
    if sale_price is not None:
        return sale_price
    return price
