"""Substitution tokens found in templated tile queries.

Tile queries carry placeholders such as ``!bbox!`` that the renderer fills in
per tile. They are not valid SQL, so they are replaced before any statement is
sent to the database for introspection.
"""

import re
from collections.abc import Mapping
from typing import Final

__all__ = ("SUBSTITUTION_TOKENS", "TILE_ZERO_VALUES", "has_tokens", "replace_tokens")


SUBSTITUTION_TOKENS: Final = {
    "bbox": re.compile(r"!bbox!"),
    "scale_denominator": re.compile(r"!scale_denominator!"),
    "pixel_width": re.compile(r"!pixel_width!"),
    "pixel_height": re.compile(r"!pixel_height!"),
    "var_zoom": re.compile(r"@zoom\b"),
    "var_bbox": re.compile(r"@bbox\b"),
    "var_x": re.compile(r"@x\b"),
    "var_y": re.compile(r"@y\b"),
}

_WEB_MERCATOR_MAX: Final = 20037508.342789244
_TILE_SIZE: Final = 256
_ZOOM_ZERO_RESOLUTION: Final = 2 * _WEB_MERCATOR_MAX / _TILE_SIZE
# OGC standardized rendering pixel size is 0.28mm
_ZOOM_ZERO_SCALE_DENOMINATOR: Final = _ZOOM_ZERO_RESOLUTION / 0.00028

# Values for the single tile covering the whole world at zoom 0
TILE_ZERO_VALUES: Final[Mapping[str, str]] = {
    "bbox": (
        f"ST_MakeEnvelope({-_WEB_MERCATOR_MAX},{-_WEB_MERCATOR_MAX},{_WEB_MERCATOR_MAX},{_WEB_MERCATOR_MAX},3857)"
    ),
    "scale_denominator": repr(_ZOOM_ZERO_SCALE_DENOMINATOR),
    "pixel_width": repr(_ZOOM_ZERO_RESOLUTION),
    "pixel_height": repr(_ZOOM_ZERO_RESOLUTION),
    "var_zoom": "0",
    "var_bbox": f"[{-_WEB_MERCATOR_MAX},{-_WEB_MERCATOR_MAX},{_WEB_MERCATOR_MAX},{_WEB_MERCATOR_MAX}]",
    "var_x": "0",
    "var_y": "0",
}


def has_tokens(sql: str) -> bool:
    """Check whether ``sql`` contains any substitution token."""
    return any(pattern.search(sql) for pattern in SUBSTITUTION_TOKENS.values())


def replace_tokens(sql: str, values: "Mapping[str, str]") -> str:
    """Replace every token named in ``values`` with its value.

    Tokens without a value are left in place.

    Args:
        sql: SQL text possibly containing tokens.
        values: Replacement text keyed by token name (``bbox``, ``var_zoom``, ...).

    Returns:
        The SQL text with tokens replaced.

    Raises:
        KeyError: When ``values`` names an unknown token.
    """
    for name, value in values.items():
        sql = SUBSTITUTION_TOKENS[name].sub(lambda _match, value=value: value, sql)
    return sql
