from __future__ import annotations

import datetime
import unittest
import uuid
from decimal import Decimal

from hysteria_orm import Model, belongs_to, column, has_many, has_one, many_to_many
from hysteria_orm.core.metadata import get_relation
from hysteria_orm.errors import HysteriaError, UnsupportedDatabaseTypeError
from hysteria_orm.ports.db_api.dialects import (
    PLACEHOLDER,
    MariaDBDialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    get_dialect,
)
from hysteria_orm.core.templates import (
    DeleteTemplate,
    InsertTemplate,
    JoinTemplate,
    RelationQuery,
    RelationTemplate,
    SelectTemplate,
    UpdateTemplate,
    WhereTemplate,
    to_sql_literal,
)


class TemplateAccount(Model):
    table_name = "accounts"

    id = column(primary_key=True)
    user_name = column()
    tags = column(prepare=lambda value: ",".join(value))


class DialectTests(unittest.TestCase):
    def test_get_dialect(self) -> None:
        self.assertIsInstance(get_dialect("sqlite"), SQLiteDialect)
        self.assertIsInstance(get_dialect("postgres"), PostgresDialect)
        self.assertIsInstance(get_dialect("mysql"), MySQLDialect)
        self.assertIsInstance(get_dialect("mariadb"), MariaDBDialect)
        with self.assertRaises(UnsupportedDatabaseTypeError):
            get_dialect("oracle")

    def test_placeholder_conversion(self) -> None:
        query = f"a = {PLACEHOLDER} AND b = {PLACEHOLDER} AND c = {PLACEHOLDER}"
        self.assertEqual(get_dialect("sqlite").convert_placeholders(query), "a = ? AND b = ? AND c = ?")
        self.assertEqual(
            get_dialect("postgres").convert_placeholders(query), "a = $1 AND b = $2 AND c = $3"
        )
        self.assertEqual(
            get_dialect("mysql").convert_placeholders(query), "a = %s AND b = %s AND c = %s"
        )

    def test_mysql_escapes_percent_signs(self) -> None:
        query = f"name LIKE 'a%' AND id = {PLACEHOLDER}"
        self.assertEqual(
            get_dialect("mysql").convert_placeholders(query), "name LIKE 'a%%' AND id = %s"
        )

    def test_identifier_quoting(self) -> None:
        self.assertEqual(get_dialect("postgres").q('we"ird'), '"we""ird"')
        self.assertEqual(get_dialect("mysql").q("name"), "`name`")

    def test_sqlite_has_no_regexp(self) -> None:
        with self.assertRaises(HysteriaError):
            get_dialect("sqlite").regex("name")
        self.assertEqual(get_dialect("postgres").regex("name"), f"name ~ {PLACEHOLDER}")

    def test_sql_literals(self) -> None:
        self.assertEqual(to_sql_literal(3), "3")
        self.assertEqual(to_sql_literal("o'neil"), "'o''neil'")
        self.assertEqual(to_sql_literal(True), "TRUE")
        self.assertEqual(to_sql_literal(Decimal("1.50")), "1.50")
        self.assertEqual(to_sql_literal(datetime.date(2024, 1, 2)), "'2024-01-02'")
        key = uuid.UUID("12345678-1234-5678-1234-567812345678")
        self.assertEqual(
            to_sql_literal(key, get_dialect("postgres")),
            "'12345678-1234-5678-1234-567812345678'",
        )
        with self.assertRaises(HysteriaError):
            to_sql_literal(object())

    def test_backslashes_are_escaped_for_mysql_only(self) -> None:
        self.assertEqual(to_sql_literal("a\\", get_dialect("mysql")), "'a\\\\'")
        self.assertEqual(to_sql_literal("a\\", get_dialect("mariadb")), "'a\\\\'")
        self.assertEqual(to_sql_literal("a\\", get_dialect("postgres")), "'a\\'")

    def test_json_where_per_dialect(self) -> None:
        sqlite = WhereTemplate(get_dialect("sqlite")).where("WHERE", "meta", {"a": 1})
        self.assertEqual(sqlite.sql, f"\nWHERE JSON_EXTRACT(meta, '$') = {PLACEHOLDER}")
        self.assertEqual(sqlite.params, ['{"a":1}'])

        mysql = WhereTemplate(get_dialect("mysql")).where("WHERE", "meta", {"a": 1})
        self.assertEqual(
            mysql.sql, f"\nWHERE JSON_UNQUOTE(JSON_EXTRACT(meta, '$')) = {PLACEHOLDER}"
        )
        self.assertEqual(mysql.params, ['{"a": 1}'])

        pg = WhereTemplate(get_dialect("postgres")).where("WHERE", "meta", {"a": 1})
        self.assertEqual(pg.sql, f"\nWHERE meta::jsonb = {PLACEHOLDER}::jsonb")


class InsertTemplateTests(unittest.TestCase):
    def test_insert_per_dialect(self) -> None:
        pg = InsertTemplate(get_dialect("postgres"), TemplateAccount).insert(
            ["user_name", "id"], ["bob", 1]
        )
        self.assertEqual(
            pg.sql, 'INSERT INTO accounts ("user_name", "id")\nVALUES ($1, $2) RETURNING *;'
        )
        self.assertEqual(pg.params, ["bob", 1])

        sqlite = InsertTemplate(get_dialect("sqlite"), TemplateAccount).insert(["user_name"], ["bob"])
        self.assertEqual(sqlite.sql, "INSERT INTO accounts (`user_name`)\nVALUES (?);")

        mysql = InsertTemplate(get_dialect("mysql"), TemplateAccount).insert(["user_name"], ["bob"])
        self.assertEqual(mysql.sql, "INSERT INTO accounts (`user_name`)\nVALUES (%s);")

    def test_prepare_runs_and_additional_columns_are_dropped(self) -> None:
        statement = InsertTemplate(get_dialect("sqlite"), TemplateAccount).insert(
            ["tags", "$additionalColumns"], [["a", "b"], {"x": 1}]
        )
        self.assertEqual(statement.sql, "INSERT INTO accounts (`tags`)\nVALUES (?);")
        self.assertEqual(statement.params, ["a,b"])

    def test_mapping_values_are_bound_as_json(self) -> None:
        statement = InsertTemplate(get_dialect("postgres"), TemplateAccount).insert(
            ["user_name"], [{"a": 1}]
        )
        self.assertIn("VALUES ($1::jsonb)", statement.sql)
        self.assertEqual(statement.params, ['{"a": 1}'])

    def test_insert_many(self) -> None:
        statement = InsertTemplate(get_dialect("postgres"), TemplateAccount).insert_many(
            ["user_name"], [["a"], ["b"]]
        )
        self.assertEqual(
            statement.sql, 'INSERT INTO accounts ("user_name")\nVALUES ($1), ($2) RETURNING *;'
        )
        self.assertEqual(statement.params, ["a", "b"])


class UpdateDeleteTemplateTests(unittest.TestCase):
    def test_update_by_primary_key(self) -> None:
        statement = UpdateTemplate(get_dialect("postgres"), TemplateAccount).update(
            ["user_name"], ["bob"], "id", 3
        )
        self.assertEqual(statement.sql, 'UPDATE accounts\nSET "user_name" = $1\nWHERE "id" = $2;')
        self.assertEqual(statement.params, ["bob", 3])

    def test_massive_update_puts_set_params_first(self) -> None:
        statement = UpdateTemplate(get_dialect("postgres"), TemplateAccount).massive_update(
            ["user_name"], ["bob"], f"\nWHERE id > {PLACEHOLDER}", "", [10]
        )
        self.assertEqual(statement.sql, 'UPDATE accounts\nSET "user_name" = $1 WHERE id > $2')
        self.assertEqual(statement.params, ["bob", 10])

    def test_delete(self) -> None:
        statement = DeleteTemplate(get_dialect("sqlite"), TemplateAccount).delete("id", 3)
        self.assertEqual(statement.sql, "DELETE FROM accounts WHERE id = ?")
        self.assertEqual(statement.params, [3])

        massive = DeleteTemplate(get_dialect("mysql"), TemplateAccount).massive_delete(
            f"\nWHERE id IN ({PLACEHOLDER}, {PLACEHOLDER})", "", [1, 2]
        )
        self.assertEqual(massive.sql, "DELETE FROM accounts WHERE id IN (%s, %s)")
        self.assertEqual(massive.params, [1, 2])


class SelectJoinTemplateTests(unittest.TestCase):
    def test_format_column(self) -> None:
        template = SelectTemplate(get_dialect("postgres"), TemplateAccount)
        self.assertEqual(template.format_column("userName"), '"user_name"')
        self.assertEqual(template.format_column("accounts.id"), 'accounts."id"')
        self.assertEqual(template.format_column("accounts.*"), "accounts.*")
        self.assertEqual(template.format_column("COUNT(*) as total"), "COUNT(*) AS total")
        self.assertEqual(template.format_column("user_name as login"), '"user_name" AS login')

    def test_distinct_on_is_postgres_only(self) -> None:
        pg = SelectTemplate(get_dialect("postgres"), TemplateAccount)
        self.assertEqual(pg.distinct_on("user_name"), 'DISTINCT ON ("user_name")')
        with self.assertRaises(HysteriaError):
            SelectTemplate(get_dialect("sqlite"), TemplateAccount).distinct_on("user_name")

    def test_join(self) -> None:
        template = JoinTemplate(TemplateAccount, "posts", "accounts.id", "posts.account_id")
        self.assertEqual(
            template.inner_join(), "\nINNER JOIN posts ON posts.account_id = accounts.id "
        )
        self.assertEqual(template.left_join(), "\nLEFT JOIN posts ON posts.account_id = accounts.id ")

class RelAuthor(Model):
    table_name = "authors"

    id = column(primary_key=True)
    name = column()

    books = has_many(lambda: RelBook, "author_id")
    bio = has_one(lambda: RelBio, "author_id")
    genres = many_to_many(lambda: RelGenre, "author_genres", "author_id", "genre_id")


class RelBook(Model):
    table_name = "books"

    id = column(primary_key=True)
    author_id = column()
    title = column()

    author = belongs_to(lambda: RelAuthor, "author_id")


class RelBio(Model):
    table_name = "bios"

    id = column(primary_key=True)
    author_id = column()


class RelGenre(Model):
    table_name = "genres"

    id = column(primary_key=True)
    name = column()


PARENTS = [{"id": 1}, {"id": 2}]


class RelationTemplateTests(unittest.TestCase):
    def build(self, db_type, model, records, relation, query=None):
        return RelationTemplate(get_dialect(db_type), model).build(
            records, get_relation(model, relation), query or RelationQuery(relation)
        )

    def test_has_many_window_with_offset_uses_mysql_default_order(self) -> None:
        fragment = self.build(
            "mysql", RelAuthor, PARENTS, "books", RelationQuery("books", limit=2, offset=1)
        )
        self.assertEqual(
            fragment.sql,
            "WITH CTE AS (\n"
            "  SELECT books.*, 'books' as relation_name,\n"
            "    ROW_NUMBER() OVER (PARTITION BY books.author_id ORDER BY books.author_id) as row_num\n"
            "  FROM books\n"
            "  WHERE books.author_id IN (1, 2)\n"
            ")\n"
            "SELECT * FROM CTE WHERE row_num > 1 AND row_num <= (1 + 2);",
        )
        self.assertEqual(fragment.params, [])

    def test_has_many_binds_relation_filter_params(self) -> None:
        query = RelationQuery("books", where=f"AND books.title = {PLACEHOLDER}", params=["x"])
        fragment = self.build("postgres", RelAuthor, PARENTS, "books", query)
        self.assertIn("ORDER BY 1) as row_num", fragment.sql)
        self.assertIn("WHERE books.author_id IN (1, 2) AND books.title = $1", fragment.sql)
        self.assertTrue(fragment.sql.endswith("SELECT * FROM CTE WHERE row_num > 0;"))
        self.assertEqual(fragment.params, ["x"])

    def test_has_one(self) -> None:
        fragment = self.build("sqlite", RelAuthor, PARENTS, "bio")
        self.assertEqual(
            fragment.sql,
            "SELECT bios.*, 'bio' as relation_name FROM bios\nWHERE bios.author_id IN (1, 2);",
        )

    def test_belongs_to_deduplicates_foreign_keys(self) -> None:
        fragment = self.build("postgres", RelBook, [{"author_id": 7}, {"author_id": 7}], "author")
        self.assertEqual(
            fragment.sql,
            "SELECT authors.*, 'author' as relation_name FROM authors\nWHERE authors.id IN (7);",
        )

    def test_belongs_to_requires_foreign_keys(self) -> None:
        with self.assertLogs("hysteria_orm.core.templates.relation", "ERROR"):
            with self.assertRaisesRegex(HysteriaError, "Foreign key values are missing"):
                self.build("sqlite", RelBook, [{"author_id": None}], "author")

    def test_uuid_keys_are_quoted(self) -> None:
        key = uuid.UUID("12345678-1234-5678-1234-567812345678")
        fragment = self.build("postgres", RelAuthor, [{"id": key}], "books")
        self.assertIn(
            "WHERE books.author_id IN ('12345678-1234-5678-1234-567812345678')", fragment.sql
        )

    def test_many_to_many_postgres(self) -> None:
        fragment = self.build("postgres", RelAuthor, [{"id": 1}], "genres")
        self.assertEqual(
            fragment.sql,
            "SELECT\n"
            "  authors.id AS id,\n"
            "  'genres' AS relation_name,\n"
            "  (\n"
            "    SELECT json_agg(t.json_data)\n"
            "    FROM (\n"
            "      SELECT json_build_object(\n"
            "          'id', genres.id,\n"
            "          'name', genres.name\n"
            "        ) AS json_data\n"
            "        FROM genres\n"
            "        JOIN author_genres ON author_genres.genre_id = genres.id\n"
            "        WHERE author_genres.author_id = authors.id \n"
            "    ) t\n"
            "  ) AS genres\n"
            "FROM authors\n"
            "WHERE authors.id IN (1);",
        )

    def test_many_to_many_mysql_and_mariadb(self) -> None:
        mysql = self.build("mysql", RelAuthor, [{"id": 1}], "genres").sql
        self.assertIn("SELECT JSON_ARRAYAGG(t.json_data)", mysql)
        self.assertIn("SELECT JSON_OBJECT(", mysql)
        self.assertNotIn("JOIN authors ON", mysql)

        mariadb = self.build("mariadb", RelAuthor, [{"id": 1}], "genres").sql
        self.assertIn(
            "JOIN author_genres ON author_genres.genre_id = genres.id\n"
            "        JOIN authors ON author_genres.author_id = authors.id\n",
            mariadb,
        )

    def test_many_to_many_sqlite(self) -> None:
        sql = self.build("sqlite", RelAuthor, [{"id": 1}], "genres").sql
        self.assertIn("SELECT JSON_GROUP_ARRAY(JSON(t.json_data))", sql)


if __name__ == "__main__":
    unittest.main()
