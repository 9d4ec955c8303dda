"""Factory classes for creating configured service instances."""

from typing import Optional

from .config import IngestSettings
from .observability import MetricsCollector
from .protocols import LoggerProtocol, ManifestWriterProtocol, ObjectStoreProtocol


class IngestPipelineFactory:
    """Factory for wiring the ingestion pipeline from settings."""

    @staticmethod
    def create_detectors(settings: IngestSettings):
        """Registry with every focal strategy, the neural one pointing at the configured model."""
        from ..focal.base import build_default_registry

        return build_default_registry(settings.model_path)

    @staticmethod
    def create_generator(settings: IngestSettings):
        from ..processing.overlay import OverlayCompositor
        from ..processing.variants import VariantGenerator

        return VariantGenerator(compositor=OverlayCompositor(brand=settings.brand))

    @staticmethod
    def create_manifest_writer(settings: IngestSettings) -> ManifestWriterProtocol:
        from ..ingest.manifest import JsonManifestWriter

        return JsonManifestWriter(settings.manifest_dir)

    @staticmethod
    def create_orchestrator(
        settings: IngestSettings,
        store: ObjectStoreProtocol,
        manifest_writer: Optional[ManifestWriterProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Create a fully configured orchestrator around an open object store."""
        from ..ingest.orchestrator import IngestOrchestrator

        return IngestOrchestrator(
            store=store,
            manifest_writer=manifest_writer or IngestPipelineFactory.create_manifest_writer(settings),
            generator=IngestPipelineFactory.create_generator(settings),
            detectors=IngestPipelineFactory.create_detectors(settings),
            image_concurrency=settings.image_concurrency,
            raw_concurrency=settings.raw_concurrency,
            default_strategy=settings.focal_strategy,
            metrics=metrics,
            logger=logger,
        )
