from pathlib import Path

import pytest
from conftest import build_scenario

from scenario_transcriber.scenario import (
    count_index_items,
    find_file_recursive,
    locate_item_descriptor,
    parse_item_descriptor,
    resolve_items_index,
)


def test_scenario_file_found_case_insensitively(tmp_path):
    export = build_scenario(tmp_path, 1)
    (export / "scenario.xml").rename(export / "Scenario.XML")

    assert find_file_recursive(tmp_path, ["scenario.xml"]) == export / "Scenario.XML"
    assert find_file_recursive(tmp_path, ["missing.xml"]) is None


def test_index_path_with_windows_separators_is_resolved(tmp_path):
    export = build_scenario(tmp_path, 3)

    index_path = resolve_items_index(export / "scenario.xml")
    assert index_path == export / "Recorded Items" / "Recorded Items.xml"
    assert count_index_items(index_path) == 3


def test_missing_index_file_names_the_file(tmp_path):
    export = build_scenario(tmp_path, 1, index_path="Recorded Items\\Gone.xml")

    with pytest.raises(FileNotFoundError, match="Gone.xml"):
        resolve_items_index(export / "scenario.xml")


def test_scenario_without_index_reference(tmp_path):
    scenario = tmp_path / "scenario.xml"
    scenario.write_text("<Scenario><Components/></Scenario>", encoding="utf-8")

    with pytest.raises(ValueError, match="RecordedItems"):
        resolve_items_index(scenario)


def test_index_with_single_or_no_items(tmp_path):
    single = tmp_path / "single.xml"
    single.write_text("<RecordedItems><Item/></RecordedItems>", encoding="utf-8")
    empty = tmp_path / "empty.xml"
    empty.write_text("<RecordedItems></RecordedItems>", encoding="utf-8")

    assert count_index_items(single) == 1
    assert count_index_items(empty) == 0


def test_item_descriptor_layouts(tmp_path):
    export = build_scenario(tmp_path, 3, flat_items=(2,), missing_descriptor=(3,))
    items_dir = export / "Recorded Items"

    assert locate_item_descriptor(items_dir, 1) == items_dir / "Item1" / "Item.xml"
    assert locate_item_descriptor(items_dir, 2) == items_dir / "Item2.xml"
    assert locate_item_descriptor(items_dir, 3) is None


def test_item_directory_without_xml_is_not_found(tmp_path):
    (tmp_path / "Item1").mkdir()
    (tmp_path / "Item1" / "rec1.wav").write_bytes(b"")
    (tmp_path / "Item1.xml").write_text("<Item/>", encoding="utf-8")

    # When the directory layout is used, the flat file is not considered
    assert locate_item_descriptor(tmp_path, 1) is None


def test_parse_item_descriptor_keeps_allow_listed_fields(tmp_path):
    export = build_scenario(tmp_path, 2)
    descriptor = parse_item_descriptor(export / "Recorded Items" / "Item2" / "Item.xml")

    assert descriptor.wave_file_name == "rec2.wav"
    assert descriptor.start_time == "2024-05-01 10:02:00"
    assert descriptor.fields == {
        "CallType": "Group",
        "IndividualAlias": "Patrol 2",
        "UnitID": "102",
        "Stop_Time": "2024-05-01 10:02:30",
    }


def test_parse_sparse_item_descriptor(tmp_path):
    path = Path(tmp_path) / "Item.xml"
    path.write_text(
        "<Item><RecordedItem><SearchResults><SearchResult><Fields>"
        '<Field Name="UnitID"><Value>7</Value></Field>'
        "</Fields></SearchResult></SearchResults></RecordedItem></Item>",
        encoding="utf-8",
    )

    descriptor = parse_item_descriptor(path)
    assert descriptor.wave_file_name is None
    assert descriptor.start_time is None
    assert descriptor.fields == {"UnitID": "7"}
