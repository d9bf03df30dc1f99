"""
CEP validation and formatting.

A CEP is accepted in exactly two shapes: 8 contiguous digits
("01001000") or 5 digits, a hyphen and 3 digits ("01001-000").
The canonical form is the 8-digit string.
"""

import re
from typing import Any

from .errors import CepValidationError

# ASCII only: \d would also match other Unicode digits
_CEP_RE = re.compile(r"^(?:[0-9]{8}|[0-9]{5}-[0-9]{3})$")
_NON_DIGIT_RE = re.compile(r"[^0-9]")


def validate_cep(cep: Any) -> str:
    """
    Validate a raw CEP and return its canonical 8-digit form.

    Args:
        cep: Raw user input

    Returns:
        The CEP with the hyphen removed

    Raises:
        CepValidationError: If the input has any other shape
    """
    if not isinstance(cep, str) or not _CEP_RE.fullmatch(cep):
        raise CepValidationError(cep)
    return cep.replace("-", "")


def is_valid_cep(cep: Any) -> bool:
    try:
        validate_cep(cep)
    except CepValidationError:
        return False
    return True


def format_cep(cep: str) -> str:
    """Render a CEP as NNNNN-NNN."""
    digits = validate_cep(cep)
    return f"{digits[:5]}-{digits[5:]}"


def cep_digits(value: str) -> str:
    """Keep only the digits of a provider-formatted CEP ("01001.000" -> "01001000")."""
    return _NON_DIGIT_RE.sub("", value or "")
