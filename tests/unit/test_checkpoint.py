"""Tests for checkpoint persistence and the serialized journal."""

import asyncio
import json

import pytest

from media_ingest.batch.checkpoint import (
    CheckpointJournal,
    FileCheckpointStore,
    checkpoint_path,
)
from media_ingest.core.classifier import FileKind, Lane
from media_ingest.core.exceptions import CheckpointCorruptError
from media_ingest.core.models import (
    Checkpoint,
    IngestedFile,
    IngestTarget,
    RunParameters,
    UploadPlanEntry,
)
from media_ingest.testing.fakes import InMemoryCheckpointStore


TARGET = IngestTarget(scope="album", slug="spring")


def make_checkpoint(names):
    return Checkpoint(
        directory="/src",
        file_list_snapshot=list(names),
        run_parameters=RunParameters(target=TARGET, title="Spring"),
        plan=[
            UploadPlanEntry(source_filename=n, derived_key=f"k/{n}", lane=Lane.RAW)
            for n in names
        ],
    )


def make_result(name):
    return IngestedFile(
        id=name,
        source_filename=name,
        filename=name,
        key=f"k/{name}",
        kind=FileKind.FILE,
        mime_type="application/pdf",
        size=1,
        uploaded_bytes=1,
    )


class TestCheckpointPath:
    def test_hidden_and_scoped(self, tmp_path):
        path = checkpoint_path(str(tmp_path), TARGET)
        assert path.parent == tmp_path
        assert path.name == ".media-ingest.album.spring.checkpoint.json"

    def test_distinct_targets_do_not_collide(self, tmp_path):
        other = IngestTarget(scope="transfer", slug="spring")
        assert checkpoint_path(str(tmp_path), TARGET) != checkpoint_path(str(tmp_path), other)


class TestFileCheckpointStore:
    def test_missing_file_loads_none(self, tmp_path):
        assert FileCheckpointStore(tmp_path / "cp.json").load() is None

    def test_save_load_delete(self, tmp_path):
        store = FileCheckpointStore(tmp_path / "cp.json")
        checkpoint = make_checkpoint(["a.pdf", "b.pdf"])
        checkpoint.completed["a.pdf"] = make_result("a.pdf")

        store.save(checkpoint)
        assert store.load() == checkpoint
        payload = json.loads((tmp_path / "cp.json").read_text())
        assert payload["version"] == 1
        assert list(payload["completed"]) == ["a.pdf"]

        store.delete()
        assert not store.exists()
        store.delete()

    def test_no_temp_files_left_behind(self, tmp_path):
        store = FileCheckpointStore(tmp_path / "cp.json")
        store.save(make_checkpoint(["a.pdf"]))
        store.save(make_checkpoint(["a.pdf", "b.pdf"]))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cp.json"]

    @pytest.mark.parametrize(
        "content", [b"{not json", b'{"version": 1}', b'{"version": 9}', b"\xff\xfe{garbage"]
    )
    def test_corrupt_checkpoint_fails_closed(self, tmp_path, content):
        path = tmp_path / "cp.json"
        path.write_bytes(content)
        with pytest.raises(CheckpointCorruptError, match="Delete it") as info:
            FileCheckpointStore(path).load()
        assert info.value.path == str(path)
        assert path.read_bytes() == content


class TestCheckpointJournal:
    def test_every_write_contains_all_previous_completions(self):
        names = [f"f{i}.pdf" for i in range(12)]
        store = InMemoryCheckpointStore()
        journal = CheckpointJournal(store, make_checkpoint(names))

        async def complete(name):
            await asyncio.sleep(0)
            await journal.record(name, make_result(name))

        async def scenario():
            await asyncio.gather(*(complete(n) for n in names))

        asyncio.run(scenario())

        sizes = [len(saved.completed) for saved in store.saves]
        assert sizes == list(range(1, 13))
        for earlier, later in zip(store.saves, store.saves[1:]):
            assert set(earlier.completed) <= set(later.completed)
        assert journal.writes == 12

    def test_duplicate_completion_is_ignored(self):
        store = InMemoryCheckpointStore()
        journal = CheckpointJournal(store, make_checkpoint(["a.pdf"]))

        async def scenario():
            await journal.record("a.pdf", make_result("a.pdf"))
            await journal.record("a.pdf", make_result("a.pdf"))

        asyncio.run(scenario())
        assert len(store.saves) == 1
