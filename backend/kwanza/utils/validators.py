"""
Utilidades de validação de dados fiscais.
"""
import math
import re
from typing import Optional, Union
from datetime import date


VALID_TAX_RATES = (0, 5, 7, 14)


def validate_nif(nif: str) -> bool:
    """
    Valida o formato de um NIF angolano.
    Empresas: 9 ou 10 dígitos. Pessoas singulares: número do BI (9 dígitos,
    2 letras, 3 dígitos).
    """
    if not nif:
        return False
    clean = nif.strip().upper()
    if clean.isdigit():
        return 9 <= len(clean) <= 10
    return bool(re.match(r'^\d{9}[A-Z]{2}\d{3}$', clean))


def validate_tax_rate(rate: float) -> bool:
    """Taxas de IVA em vigor: 14%, 7%, 5% e isento."""
    return rate in VALID_TAX_RATES


def validate_period(year: int, month: Optional[int] = None) -> bool:
    """Ano razoável e, quando indicado, mês entre 1 e 12."""
    if not 2000 <= year <= date.today().year + 1:
        return False
    return month is None or 1 <= month <= 12


def validate_monetary_amount(amount: float) -> bool:
    """
    Valida que um montante seja válido.
    """
    if amount < 0:
        return False

    # Máximo razoável para evitar overflow
    if amount > 999_999_999_999:
        return False

    return True


def parse_override(value: Union[str, float, int, None]) -> Optional[float]:
    """
    Converte o texto de um campo manual da declaração.
    Vazio ou inválido -> None (sem valor manual), nunca 0.
    Aceita vírgula decimal ("1.234,56").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = value.strip().replace(" ", "")
    if not text:
        return None
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def sanitize_string(value: str) -> str:
    """
    Sanitiza um texto livre (motivos, descrições) para evitar XSS.
    """
    if not value:
        return value

    replacements = {
        '<': '&lt;',
        '>': '&gt;',
        '"': '&quot;',
        "'": '&#x27;',
    }

    for char, replacement in replacements.items():
        value = value.replace(char, replacement)

    return value
