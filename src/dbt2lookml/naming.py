"""Identifier transforms shared by every generator.

Warehouse metadata arrives in mixed casing (``BuyingItem_GTIN``,
``Classification.ItemGroup.Code``) while column paths are lowercase. LookML
identifiers must be snake_case, SQL references must keep the original casing,
and labels must be human readable. All three conversions live here so the
generators agree on them.
"""

from __future__ import annotations

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_LOWER_UPPER_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_WORD_BOUNDARY = re.compile(r"(.)([A-Z][a-z]+)")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_EXCESS_SEPARATORS = re.compile(r"_{3,}")
_TITLE_SEPARATORS = re.compile(r"[_\-.\s]+")
_SAFE_COLUMN = re.compile(r"^[A-Za-z0-9_]+$")

HIERARCHY_SEPARATOR = "__"


def camel_to_snake(value: str) -> str:
    """Convert PascalCase or camelCase to snake_case, keeping acronyms together.

    Args:
        value: Identifier in any casing (``GTINId``, ``ItemGroup``).

    Returns:
        Lowercase snake_case identifier (``gtin_id``, ``item_group``).
    """
    result = _ACRONYM_BOUNDARY.sub(r"\1_\2", value)
    result = _LOWER_UPPER_BOUNDARY.sub(r"\1_\2", result)
    result = _WORD_BOUNDARY.sub(r"\1_\2", result)
    result = _REPEATED_UNDERSCORES.sub("_", result)
    return result.lower()


def _normalize_part(part: str) -> str:
    snake = _INVALID_CHARS.sub("_", camel_to_snake(part))
    return _REPEATED_UNDERSCORES.sub("_", snake).strip("_")


def to_lookml_name(value: str) -> str:
    """Convert any identifier to a LookML field or view name.

    Dotted paths are split, each segment converted to snake_case and the
    segments joined with a double underscore.

    Args:
        value: Identifier, optionally dotted (``Classification.ItemGroup.Code``).

    Returns:
        LookML-safe name (``classification__item_group__code``).

    Examples:
        >>> to_lookml_name("GTINId")
        'gtin_id'
        >>> to_lookml_name("BuyingItem_GTIN")
        'buying_item_gtin'
    """
    if not value:
        return value

    joined = HIERARCHY_SEPARATOR.join(_normalize_part(p) for p in value.split("."))
    joined = _EXCESS_SEPARATORS.sub(HIERARCHY_SEPARATOR, joined).strip("_")

    if joined and joined[0].isdigit():
        joined = f"_{joined}"
    return joined


def to_title_case(value: str) -> str:
    """Turn an identifier into a human readable label.

    Splits on underscores, dashes, dots and whitespace, capitalizes every
    token and joins them with single spaces.

    Args:
        value: Identifier such as ``item_group.code``.

    Returns:
        Label such as ``Item Group Code``.
    """
    words = [w for w in _TITLE_SEPARATORS.split(value) if w]
    return " ".join(w[0].upper() + w[1:].lower() for w in words)


def quote_column_if_needed(value: str) -> str:
    """Wrap a column reference in backticks when BigQuery requires it.

    Dotted paths are struct references and are never quoted.

    Args:
        value: Column or relation reference.

    Returns:
        The reference, backtick-quoted if it contains unsafe characters.
    """
    if not value or "." in value:
        return value
    if value.startswith("`") and value.endswith("`"):
        return value
    if _SAFE_COLUMN.match(value):
        return value
    return f"`{value}`"
