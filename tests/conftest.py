"""Shared fixtures: scenario archive builder and fake audio engines."""

import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from scenario_transcriber.engines import ProcessResult
from scenario_transcriber.server import JobQueue, JobStorage, ScenarioProcessor

SCENARIO_XML = """<?xml version="1.0" encoding="utf-8"?>
<Scenario>
  <Name>Night shift</Name>
  <Components>
    <RecordedItems>{index_path}</RecordedItems>
  </Components>
</Scenario>
"""

ITEM_XML = """<?xml version="1.0" encoding="utf-8"?>
<Item>
  <AudioItem>
    <LoggerRecordings>
      <Recording>
        <WaveFileName>{wave}</WaveFileName>
      </Recording>
    </LoggerRecordings>
  </AudioItem>
  <RecordedItem>
    <SearchResults>
      <SearchResult>
        <CallId>
          <StartTime>2024-05-01 10:0{index}:00</StartTime>
        </CallId>
        <Fields>
          <Field Name="CallType"><Value>Group</Value></Field>
          <Field Name="IndividualAlias"><Value>Patrol {index}</Value></Field>
          <Field Name="UnitID"><Value>10{index}</Value></Field>
          <Field Name="Stop_Time"><Value>2024-05-01 10:0{index}:30</Value></Field>
          <Field Name="Operator_Password"><Value>hunter2</Value></Field>
        </Fields>
      </SearchResult>
    </SearchResults>
  </RecordedItem>
</Item>
"""


def build_scenario(
    root: Path,
    item_count: int,
    missing_audio: tuple = (),
    missing_descriptor: tuple = (),
    flat_items: tuple = (),
    index_path: str = "Recorded Items\\Recorded Items.xml",
) -> Path:
    """
    Write an extracted scenario export under ``root`` and return its directory.

    Items are stored as ``Item<n>/Item.xml`` (or ``Item<n>.xml`` for indexes in
    ``flat_items``) next to the index, each with a ``rec<n>.wav`` recording.
    """
    export = root / "Export"
    items_dir = export / "Recorded Items"
    items_dir.mkdir(parents=True)
    (export / "scenario.xml").write_text(SCENARIO_XML.format(index_path=index_path), encoding="utf-8")

    index_entries = "".join(f'  <Item Id="{i}"/>\n' for i in range(1, item_count + 1))
    (items_dir / "Recorded Items.xml").write_text(
        f"<RecordedItems>\n{index_entries}</RecordedItems>\n", encoding="utf-8"
    )

    for i in range(1, item_count + 1):
        if i in missing_descriptor:
            continue
        if i in flat_items:
            item_dir = items_dir
            descriptor = items_dir / f"Item{i}.xml"
        else:
            item_dir = items_dir / f"Item{i}"
            item_dir.mkdir()
            descriptor = item_dir / "Item.xml"
        descriptor.write_text(ITEM_XML.format(wave=f"rec{i}.wav", index=i), encoding="utf-8")
        if i not in missing_audio:
            (item_dir / f"rec{i}.wav").write_bytes(b"RIFF" + bytes(64))
    return export


def zip_directory(source: Path, archive_path: Path) -> Path:
    with zipfile.ZipFile(archive_path, "w") as archive:
        for path in sorted(source.rglob("*")):
            if path.is_file():
                archive.write(path, path.relative_to(source.parent))
    return archive_path


class FakeNormalizer:
    """Copies the source to ``<stem>.san.wav``; fails for names in ``fail_for``."""

    def __init__(self, fail_for: tuple = ()):
        self.fail_for = set(fail_for)
        self.calls: List[Path] = []

    def normalize(self, source: Path) -> Optional[Path]:
        self.calls.append(source)
        if source.name in self.fail_for:
            return None
        target = source.with_name(source.stem + ".san.wav")
        target.write_bytes(source.read_bytes())
        return target


class FakeTranscriber:
    """Writes ``transcript of <stem>`` next to the audio; exits 1 for names in ``fail_for``."""

    def __init__(self, fail_for: tuple = (), texts: Optional[Dict[str, str]] = None):
        self.fail_for = set(fail_for)
        self.texts = texts or {}
        self.calls: List[Path] = []

    def transcribe(self, audio_path: Path, output_dir: Path) -> ProcessResult:
        self.calls.append(audio_path)
        args = ["whisper", str(audio_path)]
        if audio_path.name in self.fail_for:
            return ProcessResult(args=args, returncode=1, stderr="CUDA out of memory")
        text = self.texts.get(audio_path.name, f"transcript of {audio_path.stem}\nsecond line")
        (output_dir / f"{audio_path.stem}.txt").write_text(text, encoding="utf-8")
        return ProcessResult(args=args, returncode=0)


@pytest.fixture
def storage(tmp_path):
    return JobStorage(tmp_path / "uploads")


@pytest.fixture
def normalizer():
    return FakeNormalizer()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def processor(storage, normalizer, transcriber):
    return ScenarioProcessor(storage, normalizer, transcriber)


@pytest.fixture
def job_queue():
    queue = JobQueue()
    yield queue
    queue.shutdown(wait=True)


@pytest.fixture
def make_archive(tmp_path):
    """Build a scenario export and zip it into the uploads inbox area."""
    counter = {"n": 0}

    def _make(item_count: int, name: str = "Night Shift.zip", **kwargs) -> Path:
        counter["n"] += 1
        source_root = tmp_path / f"source{counter['n']}"
        export = build_scenario(source_root, item_count, **kwargs)
        return zip_directory(export, tmp_path / name)

    return _make
