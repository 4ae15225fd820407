import gzip

from geoplanet_records import (
    dequote,
    open_lines,
    open_writer,
    parse_record,
    read_fields,
    to_json_line,
)


def test_dequote():
    assert dequote('"foo"') == "foo"
    assert dequote("foo") == "foo"
    assert dequote('"foo') == '"foo'
    assert dequote('foo"') == 'foo"'


def test_dequote_strips_only_one_pair():
    assert dequote('""foo""') == '"foo"'
    assert dequote('""') == ""
    assert dequote('"') == '"'


def test_read_fields_dequotes_header():
    assert read_fields('"WOE_ID"\t"ISO"\tName\n') == ["WOE_ID", "ISO", "Name"]


def test_parse_record_omits_empty_values():
    fields = ["WOE_ID", "ISO", "Name", "Language"]
    record = parse_record('"1"\t""\t"Springfield"\t\n', fields)
    assert record == {"WOE_ID": "1", "Name": "Springfield"}


def test_parse_record_short_and_long_rows():
    fields = ["A", "B", "C"]
    assert parse_record("1\t2", fields) == {"A": "1", "B": "2"}
    # Extra values beyond the header are ignored.
    assert parse_record("1\t2\t3\t4\t5", fields) == {"A": "1", "B": "2", "C": "3"}


def test_gzip_round_trip(tmp_path):
    path = tmp_path / "nested" / "out.json.gz"
    with open_writer(path) as out:
        out.write(to_json_line({"title": "Zürich", "ids": ["1"]}))
    with gzip.open(path, "rt", encoding="utf-8") as f:
        assert f.read() == '{"title":"Zürich","ids":["1"]}\n'
    with open_lines(path) as f:
        assert list(f) == ['{"title":"Zürich","ids":["1"]}\n']
