"""Tests for tile substitution tokens."""

import pytest

from querytables.tokens import SUBSTITUTION_TOKENS, TILE_ZERO_VALUES, has_tokens, replace_tokens


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT 1 FROM t1 WHERE 1 != !pixel_width!",
        "SELECT 1 FROM t1 WHERE 1 != !pixel_height!",
        "SELECT 1 FROM t1 WHERE 1 != !scale_denominator!",
        "SELECT 1 FROM t1 WHERE 1 != ST_Area(!bbox!)",
        "SELECT @zoom AS z",
        "SELECT @bbox",
        "SELECT @x, @y",
    ],
)
def test_has_tokens(sql: str) -> None:
    assert has_tokens(sql)


@pytest.mark.parametrize("sql", ["SELECT 1", "SELECT '!bbox' FROM t", "SELECT @xyz", "SELECT email@zoomcorp"])
def test_has_no_tokens(sql: str) -> None:
    assert not has_tokens(sql)


def test_replace_tile_zero_values() -> None:
    sql = "SELECT * FROM t WHERE the_geom && !bbox! AND !pixel_width! > 1 AND @zoom = 0"
    replaced = replace_tokens(sql, TILE_ZERO_VALUES)
    assert not has_tokens(replaced)
    assert "ST_MakeEnvelope(-20037508.342789244,-20037508.342789244,20037508.342789244,20037508.342789244,3857)" in (
        replaced
    )
    assert "156543.03392804097 > 1" in replaced
    assert replaced.endswith("0 = 0")


def test_replace_only_named_tokens() -> None:
    assert replace_tokens("!bbox! !pixel_width!", {"bbox": "B"}) == "B !pixel_width!"


def test_replacement_is_literal() -> None:
    assert replace_tokens("!bbox!", {"bbox": r"\1 \g<0>"}) == r"\1 \g<0>"


def test_every_token_has_a_tile_zero_value() -> None:
    assert set(TILE_ZERO_VALUES) == set(SUBSTITUTION_TOKENS)


def test_unknown_token_name() -> None:
    with pytest.raises(KeyError):
        replace_tokens("SELECT 1", {"nope": "1"})
