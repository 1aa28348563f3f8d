"""Unit tests for the dialect compilers and the compiler registry."""

from __future__ import annotations

import pytest

from quillsql.compile.mysql import MySQLCompiler
from quillsql.compile.postgres import PostgresCompiler
from quillsql.compile.registry import CompilerFactory, default_compilers
from quillsql.compile.sqlite import SQLiteCompiler
from quillsql.errors import CompilationError
from tests.fixtures import RecordingConnection, recording_config


def _joined(connection):
    statement = connection.statement().add_table("users", "u")
    statement.add_table("orders", "o", "o.user_id = u.id")
    return statement


# ---------------------------------------------------------------------------
# SELECT
# ---------------------------------------------------------------------------


def test_select_all_clauses(mysql):
    statement = mysql.statement().add_table("users", "u")
    statement.add_field("u.id", "id").add_field("u.name")
    statement.add_filter("u.active = {filter.WHERE.active}", {"active": True})
    statement.add_sort("u.name").set_limit(10, 20)
    assert statement.get_select() == (
        "SELECT u.id AS `id`, u.name\n"
        "FROM users AS `u`\n"
        "WHERE (u.active = {filter.WHERE.active})\n"
        "ORDER BY u.name ASC\n"
        "LIMIT 10 OFFSET 20"
    )
    sql = mysql.apply(statement.get_select(), statement.get_context())
    assert "WHERE (u.active = 1)" in sql


def test_select_without_fields_or_limit(mysql):
    statement = mysql.statement().add_table("users").set_limit(0, 5)
    assert statement.get_select() == "SELECT *\nFROM users"


def test_limit_without_offset(mysql):
    statement = mysql.statement().add_table("users").set_limit(1)
    assert statement.get_select().endswith("\nLIMIT 1")


def test_joins_and_comma_tables(mysql):
    statement = _joined(mysql)
    statement.add_table("tags", "t")
    statement.add_table("notes", "n", "n.user_id = u.id", kind="left")
    assert statement.get_select() == (
        "SELECT *\n"
        "FROM users AS `u`\n"
        "INNER JOIN orders AS `o` ON o.user_id = u.id, tags AS `t`\n"
        "LEFT JOIN notes AS `n` ON n.user_id = u.id"
    )


def test_filters_are_parenthesized_and_glued(mysql):
    statement = mysql.statement().add_table("users")
    statement.add_filter("a = 1 OR b = 2").add_filter("c = 3").add_filter("d = 4", glue="OR")
    assert statement.get_select().endswith("WHERE (a = 1 OR b = 2) AND (c = 3) OR (d = 4)")


def test_group_having_and_flags(mysql, sqlite_recorder):
    for connection, group in ((mysql, "GROUP BY u.dept DESC"), (sqlite_recorder, "GROUP BY u.dept")):
        statement = connection.statement().add_table("users", "u")
        statement.add_field("COUNT(*)", "total").set_flag("distinct").set_flag("BOGUS")
        statement.add_group("u.dept", descending=True)
        statement.add_filter("COUNT(*) > 1", type="HAVING")
        assert statement.get_select() == (
            "SELECT DISTINCT COUNT(*) AS `total`\n"
            "FROM users AS `u`\n"
            f"{group}\n"
            "HAVING (COUNT(*) > 1)"
        )


def test_subselect_as_table_and_union(mysql):
    inner = mysql.statement().add_table("orders").add_field("user_id")
    admins = mysql.statement().add_table("admins").add_field("id")
    statement = mysql.statement().add_table(inner, "x").add_field("x.user_id", "id")
    statement.add_custom("union", admins).add_sort("id")
    assert statement.get_select() == (
        "SELECT x.user_id AS `id`\n"
        "FROM (SELECT user_id\nFROM orders) AS `x`\n"
        "UNION SELECT id\nFROM admins\n"
        "ORDER BY id ASC"
    )


def test_subselect_applies_its_own_context(mysql):
    inner = mysql.statement({"filter": {"WHERE": {"min": 5}}})
    inner.add_table("orders").add_field("user_id").add_filter("total > {filter.WHERE.min}")
    statement = mysql.statement().add_table("users").add_filter(mysql.expression(
        "id IN {orders}", {"orders": inner},
    ))
    assert statement.get_select().endswith(
        "WHERE (id IN (SELECT user_id\nFROM orders\nWHERE (total > 5)))"
    )


def test_lock_and_with(postgres, sqlite_recorder):
    statement = postgres.statement().add_table("jobs").add_custom("lock", "FOR UPDATE SKIP LOCKED")
    assert statement.get_select() == "SELECT *\nFROM jobs\nFOR UPDATE SKIP LOCKED"

    statement = sqlite_recorder.statement().add_table("recent")
    statement.add_custom("with", "recent AS (SELECT 1)")
    assert statement.get_select() == "WITH recent AS (SELECT 1)\nSELECT *\nFROM recent"


def test_postgres_quotes_aliases_with_double_quotes(postgres):
    statement = postgres.statement().add_table("users", "u").add_field("u.id", "id")
    assert statement.get_select() == 'SELECT u.id AS "id"\nFROM users AS "u"'


# ---------------------------------------------------------------------------
# INSERT
# ---------------------------------------------------------------------------


def test_insert_fields(mysql):
    statement = mysql.statement().add_table("users")
    statement.add_field("{name}", "name").add_field("NOW()", "created")
    assert statement.get_insert() == "INSERT INTO users (`name`,`created`)\nVALUES ({name}, NOW())"


def test_insert_value_rows_and_duplicate(mysql):
    statement = mysql.statement().add_table("users").set_field({"id": "id", "name": "name"})
    statement.add_custom("values", "(1, 'a')").add_custom("values", "(2, 'b')")
    statement.add_custom("duplicate", "name = VALUES(name)").set_flag("IGNORE")
    assert statement.get_insert() == (
        "INSERT IGNORE INTO users (`id`,`name`)\n"
        "VALUES (1, 'a'), (2, 'b')\n"
        "ON DUPLICATE KEY UPDATE name = VALUES(name)"
    )


def test_insert_without_fields(mysql, postgres):
    assert mysql.statement().add_table("t").get_insert() == "INSERT INTO t\nVALUES ()"
    assert postgres.statement().add_table("t").get_insert() == "INSERT INTO t\nDEFAULT VALUES"


def test_sqlite_insert_conflict_flags(sqlite_recorder):
    statement = sqlite_recorder.statement().add_table("users").add_field("{id}", "id")
    statement.set_flag("OR REPLACE").add_custom("returning", "id")
    assert statement.get_insert() == (
        "INSERT OR REPLACE INTO users (`id`)\nVALUES ({id})\nRETURNING id"
    )


def test_postgres_upsert(postgres):
    statement = postgres.statement().add_table("users").add_field("{id}", "id")
    statement.add_custom("conflict", "(id) DO NOTHING").add_custom("returning", "id")
    assert statement.get_insert() == (
        'INSERT INTO users ("id")\nVALUES ({id})\nON CONFLICT (id) DO NOTHING\nRETURNING id'
    )


def test_insert_needs_a_table(mysql):
    with pytest.raises(CompilationError) as exc_info:
        mysql.statement().add_field("1", "id").get_insert()
    assert exc_info.value.clause == "INSERT"


# ---------------------------------------------------------------------------
# UPDATE / DELETE
# ---------------------------------------------------------------------------


def test_mysql_single_table_update_keeps_sort_and_limit(mysql):
    statement = mysql.statement().add_table("users").add_field("{name}", "name")
    statement.add_filter("id = 1").add_sort("id").set_limit(1)
    assert statement.get_update() == (
        "UPDATE users\nSET `name` = {name}\nWHERE (id = 1)\nORDER BY id ASC\nLIMIT 1"
    )


def test_mysql_multi_table_update_and_delete(mysql):
    statement = _joined(mysql).add_field("{name}", "u.name").add_filter("o.total > 100")
    statement.set_limit(5)
    assert statement.get_update() == (
        "UPDATE users AS `u`\n"
        "INNER JOIN orders AS `o` ON o.user_id = u.id\n"
        "SET `u`.`name` = {name}\n"
        "WHERE (o.total > 100)"
    )
    assert statement.get_delete() == (
        "DELETE `u` FROM users AS `u`\n"
        "INNER JOIN orders AS `o` ON o.user_id = u.id\n"
        "WHERE (o.total > 100)"
    )


def test_postgres_update_and_delete_fold_join_filter(postgres):
    statement = _joined(postgres).add_field("{name}", "u.name").add_filter("o.total > 100")
    assert statement.get_update() == (
        'UPDATE users AS "u"\n'
        'SET "name" = {name}\n'
        'FROM orders AS "o"\n'
        "WHERE (o.user_id = u.id) AND (o.total > 100)"
    )
    assert statement.get_delete() == (
        'DELETE FROM users AS "u"\n'
        'USING orders AS "o"\n'
        "WHERE (o.user_id = u.id) AND (o.total > 100)"
    )


def test_sqlite_update_flags_and_returning(sqlite_recorder):
    statement = sqlite_recorder.statement().add_table("users").add_field("{name}", "name")
    statement.set_flag("OR IGNORE").add_filter("id = 1").add_custom("returning", "id")
    assert statement.get_update() == (
        "UPDATE OR IGNORE users\nSET `name` = {name}\nWHERE (id = 1)\nRETURNING id"
    )


def test_sqlite_rejects_multi_table_delete(sqlite_recorder):
    with pytest.raises(CompilationError):
        _joined(sqlite_recorder).get_delete()


def test_update_needs_fields(postgres):
    with pytest.raises(CompilationError) as exc_info:
        postgres.statement().add_table("users").get_update()
    assert exc_info.value.clause == "SET"


# ---------------------------------------------------------------------------
# Escaping and registry
# ---------------------------------------------------------------------------


def test_escape_functions():
    assert MySQLCompiler().escape("a'b\\c\x00") == "a\\'b\\\\c\\0"
    assert SQLiteCompiler().escape("a'b\\c") == "a''b\\c"
    assert PostgresCompiler().escape("it's") == "it''s"


def test_dialect_metadata():
    assert MySQLCompiler().dialect_name == "mysql"
    assert SQLiteCompiler().style.backslash_escapes is False
    assert PostgresCompiler().style.identifier_quote == '"'


def test_default_compilers():
    factory = default_compilers()
    assert factory.registered_targets() == ["mysql", "postgres", "sqlite"]
    assert isinstance(factory.create("postgres"), PostgresCompiler)


def test_unknown_dialect():
    with pytest.raises(CompilationError, match="Unsupported dialect target: 'oracle'"):
        default_compilers().create("oracle")


def test_factories_are_independent():
    first = CompilerFactory()
    second = CompilerFactory()

    @first.register("custom")
    class CustomCompiler(SQLiteCompiler):
        pass

    assert first.registered_targets() == ["custom"]
    assert second.registered_targets() == []
    connection = RecordingConnection(recording_config("custom"), compilers=first)
    assert isinstance(connection.compiler, CustomCompiler)
