# tests/core/test_observability.py

import time
from unittest import mock

from media_ingest.core.observability import LogContext, MetricsCollector, StructuredLogger


def test_context_copies_do_not_share_metadata():
    base = LogContext(component="orchestrator").with_metadata(target="album.spring")
    child = base.with_operation("ingest").with_metadata(file="a.jpg")

    assert child.correlation_id == base.correlation_id
    assert base.metadata == {"target": "album.spring"}
    assert child.metadata == {"target": "album.spring", "file": "a.jpg"}
    assert child.operation == "ingest"


def test_structured_logger_formats_context():
    logger = StructuredLogger("media-ingest.test")
    context = LogContext(correlation_id="abc123", operation="ingest", metadata={"target": "x"})
    with mock.patch.object(logger, "_logger") as inner:
        logger.info("hello", context, count=2)
    inner.info.assert_called_once_with("[ingest] [abc123] hello (target=x, count=2)")


def test_structured_logger_without_context():
    logger = StructuredLogger("media-ingest.test")
    with mock.patch.object(logger, "_logger") as inner:
        logger.warning("plain")
        logger.error("extra", file="a.jpg")
    inner.warning.assert_called_once_with("plain")
    inner.error.assert_called_once_with("extra (file=a.jpg)")


def test_metrics_summary_per_operation():
    metrics = MetricsCollector()
    start = time.time()
    metrics.record("image-item", start, True, filename="a.jpg")
    metrics.record("image-item", start, False, "boom", filename="b.jpg")
    metrics.record("raw-item", start, True)

    summary = metrics.get_summary("image-item")
    assert summary["total_operations"] == 2
    assert summary["failed_operations"] == 1
    assert summary["success_rate"] == 0.5
    assert metrics.get_metrics("image-item")[1].error_message == "boom"
    assert metrics.get_summary("missing") == {}

    metrics.clear_metrics()
    assert metrics.get_metrics() == []
