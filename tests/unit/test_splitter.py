"""Tests for the SQL statement splitter."""

import pytest

from querytables.splitter import QuoteState, StatementSplitter, split_sql_statements


class TestBasicSplitting:
    """Statements without any quoting."""

    def test_standard_query(self) -> None:
        assert split_sql_statements("SELECT * FROM geometry_columns;") == ["SELECT * FROM geometry_columns"]

    def test_query_without_terminator(self) -> None:
        assert split_sql_statements("SELECT * FROM geometry_columns") == ["SELECT * FROM geometry_columns"]

    def test_query_starting_with_terminators(self) -> None:
        assert split_sql_statements(";;;;SELECT * FROM geometry_columns") == ["SELECT * FROM geometry_columns"]
        assert split_sql_statements(";;;SELECT 1") == ["SELECT 1"]

    def test_single_statement(self) -> None:
        assert split_sql_statements("SELECT 1") == ["SELECT 1"]

    def test_multiple_statements(self) -> None:
        statements = split_sql_statements(
            """
SELECT * FROM geometry_columns;
SELECT 1;
SELECT 2 = 3;
"""
        )
        assert statements == ["SELECT * FROM geometry_columns", "SELECT 1", "SELECT 2 = 3"]

    def test_line_breaks_mid_statement(self) -> None:
        statements = split_sql_statements(
            """
SELECT
1 ; SELECT
2
"""
        )
        assert statements == ["SELECT\n1", "SELECT\n2"]

    @pytest.mark.parametrize("sql", ["", "   ", ";", ";;;", " ; \n ; \t"])
    def test_empty_input(self, sql: str) -> None:
        assert split_sql_statements(sql) == []

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT 1; SELECT 2",
            "a;;b; ;c;",
            "\n\tINSERT INTO t VALUES (1)\n;\nDELETE FROM t\n",
            "x = 1 ; y = 2 ;; z",
        ],
    )
    def test_unquoted_text_splits_like_plain_split(self, sql: str) -> None:
        expected = [part.strip() for part in sql.split(";") if part.strip()]
        assert split_sql_statements(sql) == expected


class TestQuotedRegions:
    """Semicolons inside quotes, identifiers and dollar quotes."""

    def test_double_quoted_identifier(self) -> None:
        statements = split_sql_statements("CREATE table \"my't;le\" (\"$\" int); SELECT 1")
        assert statements == ["CREATE table \"my't;le\" (\"$\" int)", "SELECT 1"]

    def test_quoted_commands(self) -> None:
        statements = split_sql_statements(
            """
CREATE table "my'tab;le" ("$" int);
SELECT '1','$$', '$hello$', "$" FROM "my'tab;le";
CREATE function "hi'there" ("'" text default '$') returns void as $h$ declare a int; b text; begin b='hi'; return; end; $h$ language 'plpgsql';
SELECT 5;
"""
        )
        assert statements == [
            "CREATE table \"my'tab;le\" (\"$\" int)",
            "SELECT '1','$$', '$hello$', \"$\" FROM \"my'tab;le\"",
            "CREATE function \"hi'there\" (\"'\" text default '$') returns void as "
            "$h$ declare a int; b text; begin b='hi'; return; end; $h$ language 'plpgsql'",
            "SELECT 5",
        ]

    def test_quoted_inserts(self) -> None:
        statements = split_sql_statements(
            """
INSER INTO "my''""t" values ('''','""'';;');
SELECT $qu;oted$ hi $qu;oted$;
"""
        )
        assert statements == ["INSER INTO \"my''\"\"t\" values ('''','\"\"'';;')", "SELECT $qu;oted$ hi $qu;oted$"]

    def test_dollar_quoted_body(self) -> None:
        assert split_sql_statements("SELECT $tag$ a; b $tag$; SELECT 2") == ["SELECT $tag$ a; b $tag$", "SELECT 2"]

    def test_dollar_quoted_value_keeps_newlines(self) -> None:
        assert split_sql_statements("\nSELECT $quoted$ hi\n$quoted$;\n") == ["SELECT $quoted$ hi\n$quoted$"]

    def test_empty_dollar_tag(self) -> None:
        assert split_sql_statements("SELECT $$;'\"$$; SELECT 2") == ["SELECT $$;'\"$$", "SELECT 2"]

    def test_dollar_quote_closed_only_by_same_tag(self) -> None:
        statements = split_sql_statements("SELECT $a$ x; $b$ y; $a$; SELECT 3")
        assert statements == ["SELECT $a$ x; $b$ y; $a$", "SELECT 3"]

    def test_lone_dollar_is_literal(self) -> None:
        assert split_sql_statements("SELECT $1 FROM t; SELECT $2 FROM u") == ["SELECT $1 FROM t", "SELECT $2 FROM u"]

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("SELECT f($1,$2); SELECT 3", ["SELECT f($1,$2)", "SELECT 3"]),
            ("SELECT $1||$2; DROP TABLE t", ["SELECT $1||$2", "DROP TABLE t"]),
            ("SELECT $1$2; SELECT 4", ["SELECT $1$2", "SELECT 4"]),
        ],
    )
    def test_positional_parameters_never_open_dollar_quote(self, sql: str, expected: "list[str]") -> None:
        assert split_sql_statements(sql) == expected

    def test_escaped_single_quote(self) -> None:
        assert split_sql_statements("SELECT 'it''s; fine'; SELECT 2") == ["SELECT 'it''s; fine'", "SELECT 2"]

    def test_escaped_double_quote(self) -> None:
        assert split_sql_statements('SELECT "a"";b" FROM t; SELECT 2') == ['SELECT "a"";b" FROM t', "SELECT 2"]

    def test_semicolon_in_string_literal(self) -> None:
        assert split_sql_statements("Select * from t3 where b = ';'; TABLE t2") == [
            "Select * from t3 where b = ';'",
            "TABLE t2",
        ]

    def test_newlines_inside_quotes_are_kept(self) -> None:
        assert split_sql_statements("SELECT 'a\n;b'\n;") == ["SELECT 'a\n;b'"]


class TestIdempotence:
    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT 1; SELECT 2",
            "CREATE table \"my'tab;le\" (\"$\" int); SELECT '1','$$'",
            "SELECT $h$ a; b $h$ ; SELECT 'x;y'",
            "INSER INTO \"my''\"\"t\" values ('''','\"\"'';;')",
        ],
    )
    def test_resplitting_a_statement_returns_it(self, sql: str) -> None:
        for statement in split_sql_statements(sql):
            assert split_sql_statements(statement + ";") == [statement]


class TestMalformedInput:
    """Illegal SQL must not hang or raise; the content of the result is unspecified."""

    def test_illegal_sql_does_not_crash(self) -> None:
        statements = split_sql_statements(
            """

    /a
    $b$
    $c$d
    ;
"""
        )
        assert isinstance(statements, list)

    @pytest.mark.parametrize("sql", ["SELECT 'unterminated; SELECT 2", 'SELECT "open', "SELECT $x$ never closed;"])
    def test_unterminated_quote_returns_best_effort(self, sql: str) -> None:
        statements = split_sql_statements(sql)
        assert statements == [sql.strip()]

    def test_long_pathological_input_terminates(self) -> None:
        sql = "$a" * 20000 + "'" + ";" * 20000
        statements = split_sql_statements(sql)
        assert all(statement for statement in statements)


class TestStatementSplitter:
    def test_instance_matches_module_function(self) -> None:
        sql = "SELECT 1; SELECT 'a;b'; SELECT $$c;$$"
        assert StatementSplitter().split(sql) == split_sql_statements(sql)

    def test_quote_states(self) -> None:
        assert {state.value for state in QuoteState} == {
            "normal",
            "single_quote",
            "double_quote",
            "dollar_quote",
        }
