"""
Registro dos temas embutidos e geração de CSS.

O CSS é o que a vitrine injeta no <head>: variáveis CSS com as cores do
tema mescladas às customizações do tenant, fontes e o CSS customizado.
"""

import copy
import re
from typing import Any

_DEFAULT_TYPOGRAPHY = {
    "headingFont": "Inter",
    "bodyFont": "Inter",
    "baseFontSize": 16,
    "headingWeight": 700,
    "bodyWeight": 400,
}

THEME_TEMPLATES: dict[str, dict[str, Any]] = {
    "default": {
        "title": "Default Theme",
        "industry": "electronics",
        "description": "A clean and professional default theme perfect for any store",
        "layout": {"header": "sticky", "productGrid": "grid", "sidebar": "none", "footer": "multi-column"},
        "colors": {
            "primary": "#3b82f6",
            "secondary": "#8b5cf6",
            "accent": "#10b981",
            "background": "#ffffff",
            "text": "#1f2937",
            "muted": "#6b7280",
        },
        "typography": dict(_DEFAULT_TYPOGRAPHY),
        "config": {"features": {"megaMenu": True, "quickView": True, "wishlist": True, "ajaxSearch": True, "stickyCart": True}},
    },
    "modern": {
        "title": "Modern Theme",
        "industry": "electronics",
        "description": "Clean, tech-focused theme perfect for electronics and gadgets",
        "layout": {"header": "sticky", "productGrid": "grid", "sidebar": "none", "footer": "multi-column"},
        "colors": {
            "primary": "#ec4899",
            "secondary": "#8b5cf6",
            "accent": "#f59e0b",
            "background": "#f9fafb",
            "text": "#111827",
            "muted": "#6b7280",
        },
        "typography": {**_DEFAULT_TYPOGRAPHY, "headingFont": "Poppins"},
        "config": {"features": {"megaMenu": True, "quickView": True, "wishlist": True, "ajaxSearch": True, "stickyCart": True}},
    },
    "hexfashion": {
        "title": "HexFashion",
        "industry": "fashion",
        "description": "Elegant fashion theme with catalog-style layouts",
        "layout": {"header": "minimal", "productGrid": "catalog", "sidebar": "none", "footer": "multi-column"},
        "colors": {
            "primary": "#111111",
            "secondary": "#c9a96e",
            "accent": "#e11d48",
            "background": "#ffffff",
            "text": "#111111",
            "muted": "#737373",
        },
        "typography": {**_DEFAULT_TYPOGRAPHY, "headingFont": "Playfair Display"},
        "config": {"features": {"quickView": True, "wishlist": True}},
    },
    "minimal": {
        "title": "Minimal Theme",
        "industry": "general",
        "description": "A minimal and elegant theme with clean lines and simple design",
        "layout": {"header": "minimal", "productGrid": "grid", "sidebar": "none", "footer": "minimal"},
        "colors": {
            "primary": "#000000",
            "secondary": "#6b7280",
            "accent": "#000000",
            "background": "#ffffff",
            "text": "#1f2937",
            "muted": "#9ca3af",
        },
        "typography": {**_DEFAULT_TYPOGRAPHY, "headingWeight": 600},
        "config": {"features": {"megaMenu": False, "quickView": False}},
    },
    "grocery": {
        "title": "Grocery",
        "industry": "grocery",
        "description": "Fresh and organic grocery theme perfect for food stores, farmers markets, and organic food retailers",
        "layout": {"header": "sticky", "productGrid": "grid", "sidebar": "none", "footer": "multi-column"},
        "colors": {
            "primary": "#16a34a",
            "secondary": "#f97316",
            "accent": "#facc15",
            "background": "#ffffff",
            "text": "#14532d",
            "muted": "#6b7280",
        },
        "typography": {**_DEFAULT_TYPOGRAPHY, "headingFont": "Nunito"},
        "config": {"features": {"quickView": True, "stickyCart": True}},
    },
}

DEFAULT_THEME_SLUG = "default"


def get_theme_template(slug: str) -> dict[str, Any]:
    """Template pelo slug; slug desconhecido cai no `default`."""
    template = THEME_TEMPLATES.get(slug) or THEME_TEMPLATES[DEFAULT_THEME_SLUG]
    return copy.deepcopy(template)


def get_theme_templates_by_industry(industry: str) -> list[dict[str, Any]]:
    return [
        {"slug": slug, **copy.deepcopy(t)}
        for slug, t in THEME_TEMPLATES.items()
        if t["industry"] == industry
    ]


def _merge(base: dict[str, Any] | None, override: dict[str, Any] | None) -> dict[str, Any]:
    merged = dict(base or {})
    for key, value in (override or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def merge_theme(theme: dict[str, Any], customization: dict[str, Any] | None) -> dict[str, Any]:
    """Mescla cores/tipografia/layout do tema com as customizações do tenant."""
    customization = customization or {}
    return {
        "colors": _merge(theme.get("colors"), customization.get("custom_colors")),
        "typography": _merge(theme.get("typography"), customization.get("custom_fonts")),
        "layout": _merge(theme.get("layout"), customization.get("custom_layouts")),
        "custom_css": customization.get("custom_css"),
    }


def _css_name(key: str) -> str:
    # camelCase -> kebab-case
    return re.sub(r"([A-Z])", r"-\1", key).lower()


def generate_theme_css(merged: dict[str, Any]) -> str:
    lines = [":root {"]
    for key, value in (merged.get("colors") or {}).items():
        lines.append(f"  --color-{_css_name(key)}: {value};")

    typography = merged.get("typography") or {}
    if typography.get("headingFont"):
        lines.append(f"  --font-heading: {typography['headingFont']};")
    if typography.get("bodyFont"):
        lines.append(f"  --font-body: {typography['bodyFont']};")
    if typography.get("baseFontSize"):
        lines.append(f"  --font-size-base: {typography['baseFontSize']}px;")

    layout = merged.get("layout") or {}
    if layout.get("containerMaxWidth"):
        lines.append(f"  --container-max-width: {layout['containerMaxWidth']}px;")
    lines.append("}")

    css = "\n".join(lines) + "\n"
    if merged.get("custom_css"):
        css += "\n" + merged["custom_css"].strip() + "\n"
    return css
