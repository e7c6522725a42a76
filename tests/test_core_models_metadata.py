from __future__ import annotations

import unittest

from hysteria_orm import (
    Model,
    RelationType,
    belongs_to,
    column,
    dynamic_column,
    get_dynamic_columns,
    get_model_columns,
    get_primary_key,
    get_relations,
    has_many,
    has_one,
    many_to_many,
)
from hysteria_orm.core.metadata import get_related_foreign_key, get_relation
from hysteria_orm.errors import ConfigurationError


class BlogPost(Model):
    id = column(primary_key=True)
    title = column()
    author_id = column()
    author = belongs_to(lambda: BlogAuthor, "author_id")


class BlogAuthor(Model):
    id = column(primary_key=True)
    name = column()
    password = column(hidden=True)
    posts = has_many(lambda: BlogPost, "author_id")
    address = has_one(lambda: Address, "author_id")
    groups = many_to_many(lambda: BlogGroup, "author_groups", "author_id")

    @staticmethod
    @dynamic_column("upper_name")
    def get_upper_name(record):
        return record["name"].upper()


class BlogGroup(Model):
    id = column(primary_key=True)
    members = many_to_many(lambda: BlogAuthor, lambda: "author_groups", "group_id")
    orphans = many_to_many(lambda: BlogAuthor, "other_pivot", "group_id")


class Address(Model):
    id = column(primary_key=True)
    author_id = column()


class Keyless(Model):
    table_name = "keyless_rows"

    value = column()


class ModelMetadataTests(unittest.TestCase):
    def test_table_names(self) -> None:
        self.assertEqual(BlogPost.table, "blog_posts")
        self.assertEqual(Address.table, "address")
        self.assertEqual(Keyless.table, "keyless_rows")

    def test_columns_and_primary_key(self) -> None:
        names = [c.column_name for c in get_model_columns(BlogAuthor)]
        self.assertEqual(names, ["id", "name", "password"])
        self.assertEqual(get_primary_key(BlogAuthor), "id")
        self.assertEqual(BlogAuthor.primary_key, "id")
        self.assertIsNone(get_primary_key(Keyless))
        self.assertTrue(get_model_columns(BlogAuthor)[2].hidden)

    def test_multiple_primary_keys_raise(self) -> None:
        with self.assertRaisesRegex(ConfigurationError, "Multiple primary keys are not allowed"):

            class TwoKeys(Model):
                a = column(primary_key=True)
                b = column(primary_key=True)

    def test_relations_are_resolved_lazily(self) -> None:
        relations = {relation.column_name: relation for relation in get_relations(BlogAuthor)}

        self.assertEqual(relations["posts"].type, RelationType.HAS_MANY)
        self.assertIs(relations["posts"].model, BlogPost)
        self.assertEqual(relations["posts"].related_table, "blog_posts")
        self.assertEqual(relations["address"].type, RelationType.HAS_ONE)
        self.assertEqual(relations["groups"].through_model, "author_groups")

    def test_through_accepts_callables(self) -> None:
        self.assertEqual(get_relation(BlogGroup, "members").through_model, "author_groups")

    def test_many_to_many_reciprocal_foreign_key(self) -> None:
        self.assertEqual(get_related_foreign_key(get_relation(BlogAuthor, "groups")), "group_id")
        self.assertEqual(get_related_foreign_key(get_relation(BlogGroup, "members")), "author_id")

    def test_missing_reciprocal_raises_at_query_time(self) -> None:
        relation = get_relation(BlogGroup, "orphans")
        with self.assertLogs("hysteria_orm.core.metadata", "ERROR"):
            with self.assertRaisesRegex(ConfigurationError, "Many to many relation not found"):
                get_related_foreign_key(relation)

    def test_unknown_relation(self) -> None:
        with self.assertLogs("hysteria_orm.core.metadata", "ERROR"):
            with self.assertRaisesRegex(ConfigurationError, "Relation comments not found in model BlogPost"):
                get_relation(BlogPost, "comments")

    def test_dynamic_columns(self) -> None:
        dynamic = get_dynamic_columns(BlogAuthor)
        self.assertEqual(len(dynamic), 1)
        self.assertEqual(dynamic[0].column_name, "upper_name")
        self.assertEqual(dynamic[0].function_name, "get_upper_name")
        self.assertEqual(dynamic[0].function({"name": "ada"}), "ADA")

    def test_related_model_must_be_callable(self) -> None:
        with self.assertRaises(TypeError):
            has_many(BlogPost.table, "author_id")


if __name__ == "__main__":
    unittest.main()
