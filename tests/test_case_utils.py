from __future__ import annotations

import re
import unittest

from hysteria_orm.core.case_utils import convert_case, convert_keys, to_camel_case, to_snake_case
from hysteria_orm.errors import ConfigurationError


class CaseUtilsTests(unittest.TestCase):
    def test_snake_and_camel_conversion(self) -> None:
        self.assertEqual(to_snake_case("userId"), "user_id")
        self.assertEqual(to_snake_case("createdAtUtc"), "created_at_utc")
        self.assertEqual(to_snake_case("name"), "name")
        self.assertEqual(to_camel_case("user_id"), "userId")
        self.assertEqual(to_camel_case("created_at_utc"), "createdAtUtc")

    def test_all_caps_identifiers_are_kept(self) -> None:
        self.assertEqual(to_camel_case("ID"), "ID")

    def test_round_trip(self) -> None:
        for name in ("user_id", "created_at_utc", "title"):
            self.assertEqual(to_snake_case(to_camel_case(name)), name)

    def test_convert_case_conventions(self) -> None:
        self.assertEqual(convert_case("userId", "snake"), "user_id")
        self.assertEqual(convert_case("user_id", "camel"), "userId")
        self.assertEqual(convert_case("user_id", "none"), "user_id")
        self.assertEqual(convert_case("user_id", re.compile(r"_\w")), "userId")
        self.assertEqual(convert_case("user_id", lambda value: value.upper()), "user_id")

    def test_unknown_convention_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            convert_case("user_id", "kebab")
        with self.assertRaises(ConfigurationError):
            convert_case("user_id", 42)  # type: ignore[arg-type]

    def test_convert_keys(self) -> None:
        self.assertEqual(
            convert_keys({"user_id": 1, "first_name": "a"}, "camel"),
            {"userId": 1, "firstName": "a"},
        )


if __name__ == "__main__":
    unittest.main()
