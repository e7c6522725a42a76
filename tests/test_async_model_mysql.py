from __future__ import annotations

import importlib.util
import os
import unittest
from urllib.parse import unquote, urlparse

from hysteria_orm import Model, SqlDataSource, belongs_to, column, has_many

MYSQL_URL = os.getenv("HYSTERIA_TEST_MYSQL_URL")
HAS_MYSQL_DRIVER = importlib.util.find_spec("pymysql") is not None

SCHEMA = (
    "DROP TABLE IF EXISTS my_comments",
    "DROP TABLE IF EXISTS my_readers",
    """CREATE TABLE my_readers (
        id INT AUTO_INCREMENT PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        discount VARCHAR(32)
    )""",
    "CREATE TABLE my_comments (id INT AUTO_INCREMENT PRIMARY KEY, reader_id INT, body TEXT)",
)


class MyReader(Model):
    id = column(primary_key=True)
    name = column()
    discount = column()

    comments = has_many(lambda: MyComment, "reader_id")


class MyComment(Model):
    id = column(primary_key=True)
    reader_id = column()
    body = column()

    reader = belongs_to(lambda: MyReader, "reader_id")


def _connection_input() -> dict:
    url = urlparse(MYSQL_URL)
    return {
        "type": "mariadb" if url.scheme == "mariadb" else "mysql",
        "host": url.hostname or "localhost",
        "port": url.port or 3306,
        "username": unquote(url.username or "root"),
        "password": unquote(url.password or ""),
        "database": url.path.lstrip("/") or "test",
    }


@unittest.skipUnless(HAS_MYSQL_DRIVER, "pymysql is not installed")
@unittest.skipUnless(MYSQL_URL, "HYSTERIA_TEST_MYSQL_URL is not set")
class AsyncModelMysqlTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        params = _connection_input()
        try:
            self.sql = await SqlDataSource.connect(**params)
        except Exception as exc:
            raise unittest.SkipTest(
                f"MySQL is not reachable at {params['host']}:{params['port']} "
                f"with configured credentials: {exc}"
            ) from exc
        for statement in SCHEMA:
            await self.sql.raw_query(statement)

    async def asyncTearDown(self) -> None:
        await self.sql.raw_query("DROP TABLE IF EXISTS my_comments")
        await self.sql.raw_query("DROP TABLE IF EXISTS my_readers")
        await SqlDataSource.close_main_connection()

    async def test_insert_refetches_by_last_row_id(self) -> None:
        reader = await MyReader.insert({"name": "ada"})

        self.assertEqual(reader, {"id": 1, "name": "ada", "discount": None})
        readers = await MyReader.insert_many([{"name": "b"}, {"name": "c"}])
        self.assertEqual([r["name"] for r in readers], ["b", "c"])
        self.assertEqual(await MyReader.query().get_count(), 3)

    async def test_percent_signs_in_values_survive(self) -> None:
        reader = await MyReader.insert({"name": "sale", "discount": "50%"})

        found = await MyReader.query().where("discount", "LIKE", "50%").one()
        self.assertEqual(found, reader)

    async def test_relations(self) -> None:
        ada = await MyReader.insert({"name": "ada"})
        bob = await MyReader.insert({"name": "bob"})
        await MyComment.insert_many(
            [
                {"reader_id": ada["id"], "body": "c1"},
                {"reader_id": ada["id"], "body": "c2"},
                {"reader_id": bob["id"], "body": "c3"},
            ]
        )

        readers = await MyReader.query().with_("comments").order_by("id", "ASC").many()
        self.assertEqual(sorted(c["body"] for c in readers[0]["comments"]), ["c1", "c2"])
        self.assertEqual([c["body"] for c in readers[1]["comments"]], ["c3"])

        comment = await MyComment.query().with_("reader").where("body", "c1").one()
        self.assertEqual(comment["reader"]["name"], "ada")

    async def test_transaction_commit_and_rollback(self) -> None:
        trx = await self.sql.start_transaction()
        await MyReader.insert({"name": "kept"}, trx=trx)
        await trx.commit()

        trx = await self.sql.start_transaction()
        await MyReader.insert({"name": "ghost"}, trx=trx)
        await trx.rollback()

        rows = await MyReader.find()
        self.assertEqual([row["name"] for row in rows], ["kept"])


if __name__ == "__main__":
    unittest.main()
