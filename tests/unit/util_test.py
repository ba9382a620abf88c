from dataclasses import dataclass
from datetime import datetime, timezone
from ddt import ddt, data, unpack
import json
from pathlib import Path
from unittest import TestCase

from docrepo import util


@ddt
class TestClamp(TestCase):
    @data(
        (-1, 0, 3, 0),
        (0, 0, 3, 0),
        (1, 0, 3, 1),
        (2, 0, 3, 2),
        (3, 0, 3, 3),
        (4, 0, 3, 3),

        (0, -10, 10, 0),
        (-11, -10, 10, -10),
        (11, -10, 10, 10),
    )
    @unpack
    def test_clamp(self, value, min, max, expected):
        actual = util.clamp(value, min, max)
        self.assertEqual(expected, actual, 'The value should be clamped properly')


@dataclass
class Point:
    x: int
    y: int


class TestDataclassJSON(TestCase):
    def test_encodes_dataclasses_and_paths(self):
        encoded = json.dumps({'point': Point(1, 2), 'path': Path('a', 'b')}, cls=util.DataclassJSONEncoder)

        self.assertEqual({'point': {'x': 1, 'y': 2}, 'path': str(Path('a', 'b'))}, json.loads(encoded))

    def test_decodes_into_the_dataclass(self):
        decoded = json.loads('{"x": 3, "y": 4}', cls=util.DataclassJSONDecoder, class_type=Point)

        self.assertEqual(Point(3, 4), decoded)

    def test_decoding_mismatched_fields_fails(self):
        with self.assertRaises(TypeError):
            json.loads('{"x": 3}', cls=util.DataclassJSONDecoder, class_type=Point)


@ddt
class TestParseHttpDate(TestCase):
    @data(
        ('Sat, 01 Jul 2017 18:18:33 GMT', datetime(2017, 7, 1, 18, 18, 33, tzinfo=timezone.utc)),
        ('Sat, 01 Jul 2017 20:18:33 +0200', datetime(2017, 7, 1, 18, 18, 33, tzinfo=timezone.utc)),
        ('Sat, 01 Jul 2017 18:18:33 -0000', datetime(2017, 7, 1, 18, 18, 33, tzinfo=timezone.utc)),
        ('0', None),
        ('not a date', None),
        ('', None),
        (None, None),
    )
    @unpack
    def test_parse(self, value, expected):
        self.assertEqual(expected, util.parse_http_date(value))

    def test_parsed_dates_are_aware(self):
        parsed = util.parse_http_date('Sat, 01 Jul 2017 18:18:33 GMT')

        self.assertIsNotNone(parsed.tzinfo)
