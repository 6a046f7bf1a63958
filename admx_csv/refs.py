# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

from typing import Optional, Tuple

from .errors import ReferenceSyntaxError

STRING_PREFIX = "$(string."
PRESENTATION_PREFIX = "$(presentation."


def parse_reference(value: Optional[str], prefix: str) -> str:
    """Return the bare id inside `prefix` ... `)`.

    Raises ReferenceSyntaxError when the prefix or the closing parenthesis is
    missing, or when nothing sits between them.
    """
    expected = f"{prefix}ID)"
    if not value or not value.startswith(prefix) or not value.endswith(")"):
        raise ReferenceSyntaxError(value, expected)
    ref_id = value[len(prefix) : -1]
    if not ref_id or ")" in ref_id:
        raise ReferenceSyntaxError(value, expected)
    return ref_id


def parse_string_ref(value: Optional[str]) -> str:
    return parse_reference(value, STRING_PREFIX)


def parse_presentation_ref(value: Optional[str]) -> str:
    return parse_reference(value, PRESENTATION_PREFIX)


def split_prefixed(value: str) -> Tuple[Optional[str], str]:
    """Split `vendor:id` into its parts; the vendor is None without a separator."""
    if ":" in value:
        vendor, ref_id = value.split(":", 1)
        return vendor, ref_id
    return None, value
