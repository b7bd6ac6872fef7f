"""
Input masks for the registration form.

Each formatter takes the raw text of an input (whatever the user just typed
or pasted over the previous display value) and returns the masked display
string. They never keep state between calls: the whole value is re-derived
from its digits every time.
"""

import re

from schema import FIELDS_BY_ID

_NON_DIGIT = re.compile(r"\D")
_NON_HEX = re.compile(r"[^0-9a-fA-F]")

RANDOM_KEY_LENGTH = 36  # 32 hex + 4 hyphens


def digits_only(value) -> str:
    return _NON_DIGIT.sub("", value or "")


def _insert_separators(digits: str, marks) -> str:
    """
    marks: [(position_in_current_string, separator), ...] applied left to right,
    each one only when the string is already longer than that position.
    """
    out = digits
    for pos, sep in marks:
        if len(out) > pos:
            out = out[:pos] + sep + out[pos:]
    return out


def format_license_number(value: str) -> str:
    """COREN number: DD.DDD.DDD-D"""
    if not value:
        return value
    out = _insert_separators(digits_only(value), [(2, "."), (6, "."), (10, "-")])
    return out[:12]


def format_postal_code(value: str) -> str:
    """CEP: DDDDD-DDD"""
    if not value:
        return value
    return _insert_separators(digits_only(value), [(5, "-")])[:9]


def format_cpf(value: str) -> str:
    """CPF: DDD.DDD.DDD-DD"""
    if not value:
        return value
    out = _insert_separators(digits_only(value), [(3, "."), (7, "."), (11, "-")])
    return out[:14]


def format_cnpj(value: str) -> str:
    """CNPJ: DD.DDD.DDD/DDDD-DD"""
    if not value:
        return value
    out = _insert_separators(digits_only(value), [(2, "."), (6, "."), (10, "/"), (15, "-")])
    return out[:18]


def format_mobile(value: str, previous: str | None = None) -> str:
    """
    Brazilian mobile: (DD) D DDDD-DDDD

    When the input got shorter but kept the same digits, the user erased a
    mask character (a parenthesis, space or hyphen). Re-masking would put the
    character straight back, so the digit before it goes instead.
    """
    digits = digits_only(value)
    if previous is not None:
        prev_digits = digits_only(previous)
        if len(value or "") < len(previous) and len(digits) == len(prev_digits) and digits:
            digits = digits[:-1]

    out = ""
    if len(digits) > 0:
        out = f"({digits[0:2]}"
    if len(digits) > 2:
        out += f") {digits[2:3]}"
    if len(digits) > 3:
        out += f" {digits[3:7]}"
    if len(digits) > 7:
        out += f"-{digits[7:11]}"
    return out[:16]


def format_random_key(value: str) -> str:
    """Random PIX key, grouped like a UUID: 8-4-4-4-12 hex characters."""
    if not value:
        return value
    cleaned = _NON_HEX.sub("", value)
    out = _insert_separators(cleaned, [(8, "-"), (13, "-"), (18, "-"), (23, "-")])
    return out[:RANDOM_KEY_LENGTH]


def format_digits(value: str) -> str:
    return digits_only(value)


def format_payment_key(value: str, key_type: str, previous: str | None = None) -> str:
    if key_type == "cpf":
        return format_cpf(value)
    if key_type == "cnpj":
        return format_cnpj(value)
    if key_type == "celular":
        return format_mobile(value, previous)
    if key_type == "aleatoria":
        return format_random_key(value)
    # email or no type selected yet
    return value


def format_field(field_id: str, value, previous=None, record: dict | None = None):
    """
    Apply the mask configured for a schema field. Fields without a "format"
    entry are returned unchanged.
    """
    fdef = FIELDS_BY_ID.get(field_id)
    if fdef is None or not isinstance(value, str):
        return value
    fmt = fdef.get("format")
    if fmt == "license_number":
        return format_license_number(value)
    if fmt == "postal_code":
        return format_postal_code(value)
    if fmt == "digits":
        return format_digits(value)
    if fmt == "mobile":
        return format_mobile(value, previous)
    if fmt == "payment_key":
        key_type = (record or {}).get("payment_key_type", "")
        return format_payment_key(value, key_type, previous)
    return value
