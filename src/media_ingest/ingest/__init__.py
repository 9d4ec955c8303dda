"""Directory ingestion: key layout, orchestration and manifests."""

from .keys import derived_key, destination_keys, detect_collisions
from .manifest import JsonManifestWriter, build_manifest, sort_files
from .orchestrator import IngestOrchestrator, list_source_files

__all__ = [
    "IngestOrchestrator",
    "JsonManifestWriter",
    "build_manifest",
    "derived_key",
    "destination_keys",
    "detect_collisions",
    "list_source_files",
    "sort_files",
]
