"""
Cálculo de estoque a partir das variantes.

O valor persistido em `product.stock_quantity` é mantido por
`app.services.inventory_service.sync_product_stock_from_variants`;
aqui ficam só as funções puras (usadas em respostas da API e nos testes).
Aceitam tanto dicts quanto objetos (modelos SQLModel).
"""

from typing import Any, Iterable


def _value(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _variants(product: Any) -> list[Any]:
    variants = _value(product, "variants")
    return list(variants) if variants else []


def has_variants(product: Any) -> bool:
    return len(_variants(product)) > 0


def sum_variant_stock(variants: Iterable[Any]) -> int:
    # Estoque NULL conta como 0
    return sum((_value(v, "stock_quantity") or 0) for v in variants)


def calculate_stock_from_variants(product: Any) -> int:
    """Soma das variantes quando existem; senão o estoque do próprio produto (NULL -> 0)."""
    variants = _variants(product)
    if variants:
        return sum_variant_stock(variants)
    return _value(product, "stock_quantity") or 0
