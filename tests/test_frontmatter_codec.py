"""
Unit tests for the frontmatter codec.
"""

import unittest
from datetime import datetime, timezone

from noteferry.documents import FrontmatterCodec


class TestFrontmatterRoundTrip(unittest.TestCase):
    """decode(encode(m)) must give back m."""

    def setUp(self):
        self.codec = FrontmatterCodec()

    def assertRoundTrip(self, fields):
        encoded = self.codec.encode(fields)
        self.assertEqual(self.codec.decode(encoded), fields, msg=f"Encoded block:\n{encoded}")

    def test_round_trip_with_awkward_strings(self):
        """Colons, hashes, quotes and padding survive a round trip."""
        self.assertRoundTrip({
            "title": "Meeting: notes for today",
            "heading": "#not-a-comment",
            "quoted": 'She said "hi"',
            "single": "it's fine",
            "spaced": "  padded  ",
            "tags": ["plain", "with: colon", "#hash", " spaced "],
            "empty": [],
        })

    def test_round_trip_strings_that_look_like_other_types(self):
        self.assertRoundTrip({
            "int_like": "42",
            "float_like": "-1.5",
            "bool_like": "true",
            "null_like": "null",
            "undefined_like": "undefined",
            "empty": "",
            "list_like": "[]",
            "dash": "- item",
            "trailing_colon": "key:",
        })

    def test_round_trip_exponent_and_non_finite_floats(self):
        self.assertRoundTrip({
            "big": 1e16,
            "small": 1.5e-07,
            "positive_infinity": float("inf"),
            "negative_infinity": float("-inf"),
            "plain": 2.25,
        })

    def test_round_trip_strings_that_look_like_exotic_floats(self):
        self.assertRoundTrip({"exp": "1e+16", "inf": "inf", "nan": "nan", "neg": "-inf"})

    def test_nan_decodes_as_float(self):
        decoded = self.codec.decode(self.codec.encode({"value": float("nan")}))
        self.assertIsInstance(decoded["value"], float)
        self.assertNotEqual(decoded["value"], decoded["value"])

    def test_round_trip_control_characters(self):
        self.assertRoundTrip({"text": "line1\nline2\r\nline3\ttab \\ backslash"})

    def test_round_trip_unicode(self):
        self.assertRoundTrip({"title": "Título Especial", "tags": ["日本語", "émoji ✓"]})


class TestFrontmatterEncode(unittest.TestCase):
    """Test the encoded layout."""

    def setUp(self):
        self.codec = FrontmatterCodec()

    def test_list_layout(self):
        encoded = self.codec.encode({"tags": ["a", "b"]})
        self.assertEqual(encoded, "tags:\n  - a\n  - b\n")

    def test_empty_list(self):
        self.assertEqual(self.codec.encode({"tags": []}), "tags: []\n")

    def test_absent_values_are_omitted(self):
        self.assertEqual(self.codec.encode({"a": "x", "b": None}), "a: x\n")

    def test_scalars(self):
        encoded = self.codec.encode({
            "flag": True,
            "count": 3,
            "when": datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=timezone.utc),
        })
        self.assertEqual(encoded, "flag: true\ncount: 3\nwhen: 2024-05-01T10:00:00.123Z\n")

    def test_quoting_escapes(self):
        self.assertEqual(self.codec.encode({"q": 'a "b" \\ c'}), 'q: "a \\"b\\" \\\\ c"\n')

    def test_block_always_ends_with_newline(self):
        self.assertTrue(self.codec.encode({"a": "b"}).endswith("\n"))
        self.assertEqual(self.codec.encode({}), "\n")

    def test_invalid_key(self):
        with self.assertRaises(ValueError):
            self.codec.encode({"bad:key": "x"})
        with self.assertRaises(ValueError):
            self.codec.encode({"": "x"})


class TestFrontmatterDecode(unittest.TestCase):
    """Test decoding of hand-written blocks."""

    def setUp(self):
        self.codec = FrontmatterCodec()

    def test_bare_scalars_are_coerced(self):
        decoded = self.codec.decode("count: 42\nratio: 1.5\nflag: true\noff: false\nname: plain text\n")
        self.assertEqual(decoded, {"count": 42, "ratio": 1.5, "flag": True, "off": False, "name": "plain text"})

    def test_null_tokens_remove_the_key(self):
        self.assertEqual(self.codec.decode("a: null\nb: undefined\nc: x\n"), {"c": "x"})

    def test_quoted_scalars_are_never_coerced(self):
        decoded = self.codec.decode("a: \"42\"\nb: 'true'\nc: 'it''s'\n")
        self.assertEqual(decoded, {"a": "42", "b": "true", "c": "it's"})

    def test_list_items_stay_strings(self):
        self.assertEqual(self.codec.decode("tags:\n  - 1\n  - true\n"), {"tags": ["1", "true"]})

    def test_list_ends_at_next_key(self):
        decoded = self.codec.decode("tags:\n  - a\ntitle: T\n  - stray\n")
        self.assertEqual(decoded, {"tags": ["a"], "title": "T"})

    def test_key_without_items_is_an_empty_list(self):
        self.assertEqual(self.codec.decode("tags:\n"), {"tags": []})

    def test_flow_list(self):
        decoded = self.codec.decode("tags: [a, \"b, c\", 'd']\n")
        self.assertEqual(decoded, {"tags": ["a", "b, c", "d"]})

    def test_comments_and_malformed_lines_are_skipped(self):
        decoded = self.codec.decode("# comment\nnot a pair\n\nkey: value\n")
        self.assertEqual(decoded, {"key": "value"})

    def test_value_may_contain_colons(self):
        self.assertEqual(self.codec.decode("created: 2024-05-01T10:00:00.000Z\n"),
                         {"created": "2024-05-01T10:00:00.000Z"})


if __name__ == '__main__':
    unittest.main(verbosity=2)
