"""Phone number and form value normalization helpers."""

import re
from dataclasses import dataclass
from typing import Any, Optional, Union

_PHONE_SEPARATORS = re.compile(r"[\s\-()]")
_INTEGER_PREFIX = re.compile(r"^[+-]?\d+")
_DECIMAL_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_E164_PATTERN = re.compile(r"^\+\d{8,15}$")


@dataclass(frozen=True)
class PhoneNormalizationPolicy:
    """Which country code to assume for numbers entered without one.

    A number whose digit count equals ``local_number_length`` is treated as
    a local number of ``default_country_code``. Numbers of other lengths are
    assumed to already contain a country code.
    """

    default_country_code: str = "+91"
    local_number_length: int = 10

    @classmethod
    def from_settings(cls, settings) -> "PhoneNormalizationPolicy":
        return cls(
            default_country_code=settings.default_country_code,
            local_number_length=settings.local_number_length,
        )


def normalize_phone_number(
    raw: str,
    policy: Optional[PhoneNormalizationPolicy] = None,
) -> str:
    """
    Canonicalize a phone number to international dialing form.

    Strips whitespace, parentheses and dashes. Numbers already starting with
    ``+`` are otherwise returned unchanged.
    """
    policy = policy or PhoneNormalizationPolicy()
    cleaned = _PHONE_SEPARATORS.sub("", raw or "")

    if not cleaned or cleaned.startswith("+"):
        return cleaned

    if len(cleaned) == policy.local_number_length:
        country_code = policy.default_country_code
        if not country_code.startswith("+"):
            country_code = f"+{country_code}"
        return f"{country_code}{cleaned}"

    return f"+{cleaned}"


def parse_number(value: Any, integer: bool = False) -> Optional[Union[int, float]]:
    """
    Parse a form value into a number.

    Empty input yields ``None``. Like browser number parsing, the leading
    numeric part of a string is used and anything unparseable yields
    ``None``; the result is never a string or NaN.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if value != value:  # NaN
            return None
        return int(value) if integer else float(value)

    text = str(value).strip()
    if not text:
        return None

    match = (_INTEGER_PREFIX if integer else _DECIMAL_PREFIX).match(text)
    if not match:
        return None

    if integer:
        return int(match.group(0))
    return float(match.group(0))


def is_valid_email(value: str) -> bool:
    """Best-effort email shape check."""
    return bool(value) and bool(_EMAIL_PATTERN.match(value.strip()))


def is_valid_phone_number(canonical: str) -> bool:
    """Check a normalized number has E.164 shape (plus sign, 8-15 digits)."""
    return bool(_E164_PATTERN.match(canonical or ""))
