import gzip
import json

from cleanup_places import cleanup, cleanup_place, default_output_path, fix_names
from join_config import JoinConfig

RAW = {
    "WOE_ID": "1",
    "ISO": "US",
    "Name": "Springfield",
    "Language": "ENG",
    "PlaceType": "Town",
    "Parent_ID": "10",
    "name": {"ENG": ["Springfield Town"], "FRA": ["Springfield"]},
    "neighbor_woeids": ["2"],
    "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]},
}


def test_cleanup_place_output_schema():
    result = cleanup_place(json.loads(json.dumps(RAW)))
    assert list(result) == [
        "id", "source", "name", "title", "categories",
        "parentId", "country", "neighborIds", "geometry",
    ]
    assert result["id"] == "1"
    assert result["source"] == "geoplanet"
    assert result["name"] == {"ENG": ["Springfield Town", "Springfield"], "FRA": ["Springfield"]}
    assert result["title"] == "Springfield"
    assert result["categories"] == {"geoplanet": ["Town"]}
    assert result["parentId"] == "10"
    assert result["country"] == "US"
    assert result["neighborIds"] == ["2"]
    assert result["geometry"] == RAW["geometry"]


def test_raw_name_without_language_uses_fallback():
    names, title = fix_names({"Name": "Ogdenville"}, fallback_language="ENG")
    assert names == {"ENG": ["Ogdenville"]}
    assert title == "Ogdenville"


def test_raw_name_not_duplicated():
    names, _ = fix_names({"Name": "Paris", "Language": "FRA", "name": {"FRA": ["Paris", "Lutèce"]}})
    assert names == {"FRA": ["Paris", "Lutèce"]}


def test_optional_fields_are_omitted():
    result = cleanup_place({"WOE_ID": "5"}, source="test")
    assert result == {"id": "5", "source": "test", "name": {}}


def test_cleanup_file(tmp_path):
    raw = tmp_path / "geoplanet.json.gz"
    with gzip.open(raw, "wt", encoding="utf-8") as f:
        f.write(json.dumps(RAW) + "\n")
        f.write("this is not json\n")
        f.write(json.dumps({"WOE_ID": "2", "Name": "Shelbyville"}) + "\n")

    out = tmp_path / "cleaned.json.gz"
    report = cleanup(raw, out, workers=2, capacity=2)

    assert report.ok == 2
    assert report.failed == {"parse_error": 1}
    with gzip.open(out, "rt", encoding="utf-8") as f:
        places = {p["id"]: p for p in map(json.loads, f)}
    assert places["2"]["name"] == {"ENG": ["Shelbyville"]}
    assert "geometry" not in places["2"]


def test_default_output_path_follows_join_naming(tmp_path):
    raw = tmp_path / "geoplanet.json.gz"
    expected = JoinConfig(output_dir=tmp_path).cleaned_output_path(1234)
    assert default_output_path(raw, millis=1234) == expected
    assert expected == tmp_path / "geoplanet_cleaned-1234.json.gz"
    assert default_output_path(raw).name.startswith("geoplanet_cleaned-")
