"""
Formatação de valores conforme a configuração da loja (locale + moeda).

Reutilizar sempre que uma data ou valor for apresentado em emails ou
respostas da API voltadas ao cliente final.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

# Mapeamento BCP 47 (locale) -> strftime para data curta.
# Fallback: ISO %Y-%m-%d.
_DATE_FORMAT_BY_LOCALE: dict[str, str] = {
    "en-KE": "%d/%m/%Y",
    "en-US": "%m/%d/%Y",
    "en-GB": "%d/%m/%Y",
    "en": "%d/%m/%Y",
    "sw": "%d/%m/%Y",
    "sw-KE": "%d/%m/%Y",
    "fr": "%d/%m/%Y",
    "de": "%d.%m.%Y",
}

# Moeda -> (símbolo, símbolo vem antes do valor)
CURRENCY_SYMBOLS: dict[str, tuple[str, bool]] = {
    "KES": ("KSh", True),
    "UGX": ("USh", True),
    "TZS": ("TSh", True),
    "USD": ("$", True),
    "EUR": ("€", True),
    "GBP": ("£", True),
    "NGN": ("₦", True),
    "ZAR": ("R", True),
}

SUPPORTED_CURRENCIES: tuple[str, ...] = tuple(CURRENCY_SYMBOLS)


def _format_for_locale(d: date, locale: str) -> str:
    if not locale or not locale.strip():
        return d.strftime("%Y-%m-%d")
    locale = locale.strip()
    fmt = _DATE_FORMAT_BY_LOCALE.get(locale)
    if not fmt:
        # Tentar só a parte da língua (ex: en de en-KE)
        fmt = _DATE_FORMAT_BY_LOCALE.get(locale.split("-")[0].lower())
    if not fmt:
        return d.strftime("%Y-%m-%d")
    return d.strftime(fmt)


def format_date_for_tenant(d: date, locale: str) -> str:
    """
    Formata uma data no formato da região da loja.

    :param d: Data (date) a formatar.
    :param locale: Locale BCP 47 da loja (ex: "en-KE", "en-US").
    """
    return _format_for_locale(d, locale or "")


def format_money(amount: Decimal | float | int | None, currency: str = "KES") -> str:
    """1234.5, "KES" -> "KSh 1,234.50". Moeda desconhecida usa o próprio código."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol, prefix = CURRENCY_SYMBOLS.get((currency or "").upper(), (currency or "", True))
    number = f"{value:,.2f}"
    return f"{symbol} {number}" if prefix else f"{number} {symbol}"
