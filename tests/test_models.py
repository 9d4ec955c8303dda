"""Tests for the pydantic data models."""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from media_ingest.core.classifier import FileKind, Lane
from media_ingest.core.models import (
    Checkpoint,
    FocalPoint,
    IngestedFile,
    IngestResult,
    IngestTarget,
    MediaVariant,
    RunParameters,
    UploadPlanEntry,
)


def _target(slug="summer-trip"):
    return IngestTarget(scope="album", slug=slug)


def _file(name, uploaded=10):
    return IngestedFile(
        id=name,
        source_filename=f"{name}.jpg",
        filename=f"{name}.jpg",
        key=f"albums/x/original/{name}.jpg",
        kind=FileKind.IMAGE,
        mime_type="image/jpeg",
        size=uploaded,
        uploaded_bytes=uploaded,
    )


class TestFocalPoint:
    def test_bounds(self):
        FocalPoint(x=0, y=100)
        with pytest.raises(ValidationError):
            FocalPoint(x=101, y=50)
        with pytest.raises(ValidationError):
            FocalPoint(x=50, y=-1)

    def test_center(self):
        assert FocalPoint.center() == FocalPoint(x=50, y=50)


class TestIngestTarget:
    def test_prefix_and_identity(self):
        target = IngestTarget(scope="transfer", slug="Client-Drop")
        assert target.slug == "client-drop"
        assert target.prefix == "transfers/client-drop/"
        assert target.identity == "transfer.client-drop"

    @pytest.mark.parametrize("slug", ["", "a b", "a--b", "-a", "a/b", "../x"])
    def test_rejects_unsafe_slugs(self, slug):
        with pytest.raises(ValidationError):
            IngestTarget(scope="album", slug=slug)

    def test_rejects_unknown_scope(self):
        with pytest.raises(ValidationError):
            IngestTarget(scope="bucket", slug="a")


class TestMediaVariant:
    def test_size_and_immutability(self):
        variant = MediaVariant(data=b"abc", content_type="image/webp", extension=".webp")
        assert variant.size == 3
        with pytest.raises(ValidationError):
            variant.data = b"x"


class TestCheckpoint:
    def _checkpoint(self):
        params = RunParameters(target=_target(), force=False, title="Summer")
        plan = [
            UploadPlanEntry(source_filename="a.jpg", derived_key="k/a.jpg", lane=Lane.IMAGE),
            UploadPlanEntry(source_filename="b.mp4", derived_key="k/b.mp4", lane=Lane.RAW),
        ]
        return Checkpoint(
            directory="/tmp/src",
            file_list_snapshot=["a.jpg", "b.mp4"],
            run_parameters=params,
            plan=plan,
        )

    def test_pending_and_completion(self):
        checkpoint = self._checkpoint()
        assert [e.source_filename for e in checkpoint.pending()] == ["a.jpg", "b.mp4"]
        assert not checkpoint.is_complete

        checkpoint.completed["a.jpg"] = _file("a")
        assert [e.source_filename for e in checkpoint.pending()] == ["b.mp4"]
        checkpoint.completed["b.mp4"] = _file("b")
        assert checkpoint.is_complete

    def test_on_disk_format_uses_camel_case(self):
        checkpoint = self._checkpoint()
        checkpoint.completed["a.jpg"] = _file("a")
        payload = json.loads(checkpoint.model_dump_json(by_alias=True))

        assert payload["version"] == 1
        assert payload["fileListSnapshot"] == ["a.jpg", "b.mp4"]
        assert payload["runParameters"]["title"] == "Summer"
        assert payload["plan"][0]["sourceFilename"] == "a.jpg"
        assert payload["completed"]["a.jpg"]["mimeType"] == "image/jpeg"

    def test_reload_is_equal(self):
        checkpoint = self._checkpoint()
        checkpoint.completed["a.jpg"] = _file("a")
        restored = Checkpoint.model_validate_json(checkpoint.model_dump_json(by_alias=True))
        assert restored == checkpoint

    def test_rejects_other_versions(self):
        payload = json.loads(self._checkpoint().model_dump_json(by_alias=True))
        payload["version"] = 2
        with pytest.raises(ValidationError):
            Checkpoint.model_validate(payload)


class TestRunParameters:
    def test_equality_covers_every_field(self):
        base = RunParameters(target=_target(), force=False, title="T")
        assert base == RunParameters(target=_target(), force=False, title="T")
        assert base != RunParameters(target=_target(), force=True, title="T")
        assert base != RunParameters(target=_target("other"), force=False, title="T")
        assert base != RunParameters(target=_target(), force=False, title="U")
        assert base != RunParameters(target=_target(), title="T", focal_strategy="neural")
        assert base != RunParameters(target=_target(), title="T", focal_preset="top")


class TestIngestResult:
    def test_uploaded_bytes(self):
        result = IngestResult(target=_target(), uploaded=[_file("a", 5), _file("b", 7)])
        assert result.uploaded_bytes == 12

    def test_captured_at_round_trip_keeps_timezone(self):
        item = _file("a")
        item.captured_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        restored = IngestedFile.model_validate_json(item.model_dump_json(by_alias=True))
        assert restored.captured_at == item.captured_at
