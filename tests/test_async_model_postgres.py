from __future__ import annotations

import importlib.util
import os
import unittest
from urllib.parse import unquote, urlparse

from hysteria_orm import Model, SqlDataSource, belongs_to, column, has_many

POSTGRES_URL = os.getenv("HYSTERIA_TEST_POSTGRES_URL")
HAS_POSTGRES_DRIVER = importlib.util.find_spec("psycopg") is not None

SCHEMA = (
    "DROP TABLE IF EXISTS pg_articles",
    "DROP TABLE IF EXISTS pg_writers",
    "CREATE TABLE pg_writers (id SERIAL PRIMARY KEY, name VARCHAR(255) NOT NULL, email VARCHAR(255))",
    "CREATE TABLE pg_articles (id SERIAL PRIMARY KEY, writer_id INTEGER, title VARCHAR(255))",
)


class PgWriter(Model):
    id = column(primary_key=True)
    name = column()
    email = column()

    articles = has_many(lambda: PgArticle, "writer_id")


class PgArticle(Model):
    id = column(primary_key=True)
    writer_id = column()
    title = column()

    writer = belongs_to(lambda: PgWriter, "writer_id")


def _connection_input() -> dict:
    url = urlparse(POSTGRES_URL)
    return {
        "type": "postgres",
        "host": url.hostname or "localhost",
        "port": url.port or 5432,
        "username": unquote(url.username or "postgres"),
        "password": unquote(url.password or ""),
        "database": url.path.lstrip("/") or "postgres",
    }


@unittest.skipUnless(HAS_POSTGRES_DRIVER, "psycopg is not installed")
@unittest.skipUnless(POSTGRES_URL, "HYSTERIA_TEST_POSTGRES_URL is not set")
class AsyncModelPostgresTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        params = _connection_input()
        try:
            self.sql = await SqlDataSource.connect(**params)
        except Exception as exc:
            raise unittest.SkipTest(
                f"PostgreSQL is not reachable at {params['host']}:{params['port']} "
                f"with configured credentials: {exc}"
            ) from exc
        for statement in SCHEMA:
            await self.sql.raw_query(statement)

    async def asyncTearDown(self) -> None:
        await self.sql.raw_query("DROP TABLE IF EXISTS pg_articles")
        await self.sql.raw_query("DROP TABLE IF EXISTS pg_writers")
        await SqlDataSource.close_main_connection()

    async def test_insert_returns_the_stored_row(self) -> None:
        writer = await PgWriter.insert({"name": "ada", "email": "ada@example.com"})

        self.assertEqual(writer["name"], "ada")
        self.assertIsNotNone(writer["id"])
        self.assertEqual(await PgWriter.find_one_by_primary_key(writer["id"]), writer)

        writers = await PgWriter.insert_many([{"name": "b"}, {"name": "c"}])
        self.assertEqual([w["name"] for w in writers], ["b", "c"])
        self.assertEqual(await PgWriter.query().get_count(), 3)

    async def test_relations(self) -> None:
        ada = await PgWriter.insert({"name": "ada"})
        bob = await PgWriter.insert({"name": "bob"})
        await PgArticle.insert_many(
            [
                {"writer_id": ada["id"], "title": "p1"},
                {"writer_id": ada["id"], "title": "p2"},
                {"writer_id": bob["id"], "title": "p3"},
            ]
        )

        writers = await PgWriter.query().with_("articles").order_by("id", "ASC").many()
        self.assertEqual(sorted(a["title"] for a in writers[0]["articles"]), ["p1", "p2"])
        self.assertEqual([a["title"] for a in writers[1]["articles"]], ["p3"])

        article = await PgArticle.query().with_("writer").where("title", "p3").one()
        self.assertEqual(article["writer"]["name"], "bob")

    async def test_where_placeholders_are_numbered(self) -> None:
        await PgWriter.insert_many([{"name": "a"}, {"name": "b"}, {"name": "c"}])

        rows = await (
            PgWriter.query()
            .where("name", "a")
            .or_where("name", "c")
            .order_by("name", "DESC")
            .many()
        )
        self.assertEqual([row["name"] for row in rows], ["c", "a"])

    async def test_transaction_rollback(self) -> None:
        trx = await self.sql.start_transaction()
        await PgWriter.insert({"name": "ghost"}, trx=trx)
        await trx.rollback()

        self.assertEqual(await PgWriter.query().get_count(), 0)


if __name__ == "__main__":
    unittest.main()
