"""
Reading of the XML descriptors shipped in a scenario export.

A scenario export holds three kinds of descriptors:
- ``scenario.xml``: top-level file pointing (relative path) to the item index
- ``Recorded Items.xml``: the item index, one ``Item`` element per recording
- one descriptor per item, with the audio file name, start time and a list of
  named metadata fields

Descriptors are parsed with xmltodict; repeated elements come back as lists and
single ones as plain values, so lookups here always accept both shapes.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import xmltodict

logger = logging.getLogger(__name__)

SCENARIO_FILE_NAMES = ("scenario.xml",)

# Metadata copied from each item descriptor into the report
METADATA_FIELDS = (
    "CallType",
    "CallPriority",
    "TrunkGroup_Name",
    "IndividualAlias",
    "Agent_Name",
    "UnitID",
    "Stop_Time",
)


@dataclass
class ItemDescriptor:
    """The parts of a per-item descriptor the pipeline uses."""

    wave_file_name: Optional[str] = None
    start_time: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)


def read_descriptor(path: Path) -> Dict[str, Any]:
    """
    Parse an XML descriptor into nested mappings.

    Raises:
        xml.parsers.expat.ExpatError: If the file is not well-formed XML
    """
    with open(path, "rb") as f:
        return xmltodict.parse(f)


def _first(node: Any) -> Any:
    if isinstance(node, list):
        return node[0] if node else None
    return node


def _as_list(node: Any) -> List[Any]:
    if node is None:
        return []
    return node if isinstance(node, list) else [node]


def _lookup(node: Any, *keys: str) -> Any:
    """Follow ``keys`` down the tree, taking the first element of any list on the way."""
    for key in keys:
        node = _first(node)
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _text(node: Any, strip: bool = True) -> Optional[str]:
    node = _first(node)
    if isinstance(node, dict):
        node = node.get("#text")
    if node is None:
        return None
    text = str(node).strip() if strip else str(node)
    return text if text.strip() else None


def resolve_items_index(scenario_path: Path) -> Path:
    """
    Locate the item index referenced by ``scenario.xml``.

    The reference is a path relative to the scenario file, usually written with
    Windows separators.

    Raises:
        ValueError: If the scenario does not reference an item index
        FileNotFoundError: If the referenced index does not exist
    """
    scenario = read_descriptor(scenario_path)
    relative = _text(_lookup(scenario, "Scenario", "Components", "RecordedItems"))
    if not relative:
        raise ValueError(f"No RecordedItems path found in {scenario_path.name}")

    index_path = scenario_path.parent.joinpath(*[part for part in relative.replace("\\", "/").split("/") if part])
    logger.info(f"Recorded items index: {index_path}")
    if not index_path.is_file():
        raise FileNotFoundError(f"Recorded items index not found: {index_path}")
    return index_path


def count_index_items(index_path: Path) -> int:
    """Number of ``Item`` entries in the item index."""
    root = _first(_lookup(read_descriptor(index_path), "RecordedItems"))
    if not isinstance(root, dict) or "Item" not in root:
        return 0
    # Empty <Item/> elements parse to None but still count
    items = root["Item"]
    return len(items) if isinstance(items, list) else 1


def locate_item_descriptor(items_dir: Path, index: int) -> Optional[Path]:
    """
    Find the descriptor of item ``index`` (1-based).

    Two layouts are supported: a directory ``Item<n>/`` holding the item's XML
    file, or a flat ``Item<n>.xml`` beside the index. When the directory
    exists only its contents are considered.
    """
    name = f"Item{index}"
    item_dir = items_dir / name
    if item_dir.is_dir():
        candidates = sorted(p for p in item_dir.iterdir() if p.is_file() and p.suffix.lower() == ".xml")
        return candidates[0] if candidates else None

    flat = items_dir / f"{name}.xml"
    return flat if flat.is_file() else None


def parse_item_descriptor(path: Path) -> ItemDescriptor:
    """Extract the audio file name, start time and allow-listed fields of one item."""
    document = read_descriptor(path)
    item = _lookup(document, "Item")
    search_result = _lookup(item, "RecordedItem", "SearchResults", "SearchResult")

    fields = {}
    for entry in _as_list(_lookup(search_result, "Fields", "Field")):
        if not isinstance(entry, dict):
            continue
        name = entry.get("@Name")
        value = _text(entry.get("Value"), strip=False)
        if name in METADATA_FIELDS and value is not None:
            fields[name] = value

    return ItemDescriptor(
        wave_file_name=_text(_lookup(item, "AudioItem", "LoggerRecordings", "Recording", "WaveFileName")),
        start_time=_text(_lookup(search_result, "CallId", "StartTime")),
        fields=fields,
    )
