"""Main module for the media-ingest CLI."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .batch.checkpoint import FileCheckpointStore, checkpoint_path
from .batch.resumable import job_state
from .core.classifier import format_bytes
from .core.config import DEFAULT_ENV_FILE, IngestSettings
from .core.exceptions import MediaIngestError
from .core.factories import IngestPipelineFactory
from .core.logging_config import set_level, setup_logger
from .core.models import SCOPE_ROOTS, IngestResult, IngestTarget, OverlaySpec
from .focal.base import FOCAL_PRESETS, FOCAL_SHORTHAND, preset_focal_point
from .store.s3 import S3ObjectStore

SCOPES = list(SCOPE_ROOTS)
STRATEGIES = ["auto", "neural", "saliency", "none"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="media-ingest",
        description="Media ingestion - resumable, checkpointed uploads of media directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest a directory into an album
  media-ingest ingest --dir ~/photos/wedding --scope album --slug wedding --title "Wedding"

  # Anchor every preview at the top of the frame
  media-ingest ingest --dir ./shots --scope album --slug beach --title Beach --focal top

  # Compare focal strategies on one image
  media-ingest focal ./shots/IMG_0001.jpg --compare

  # Regenerate one social preview with its overlay
  media-ingest preview ./shots/IMG_0001.jpg --title Beach --id img-0001 --out og.jpg

  # Inspect or remove a stuck checkpoint
  media-ingest checkpoint status --dir ./shots --scope album --slug beach
        """,
    )
    parser.add_argument("--env-file", default=DEFAULT_ENV_FILE, help="dotenv file to load")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ingest = subparsers.add_parser("ingest", help="Ingest a directory of media")
    ingest.add_argument("--dir", required=True, dest="directory", help="Source directory")
    _add_target_arguments(ingest)
    ingest.add_argument("--title", required=True, help="Batch title (manifest and preview overlay)")
    ingest.add_argument("--force", action="store_true", help="Overwrite files that already exist")
    ingest.add_argument(
        "--focal-strategy", choices=STRATEGIES, default=None, help="Focal detection strategy"
    )
    ingest.add_argument(
        "--focal",
        default=None,
        help=f"Fixed focal preset for every image ({', '.join(list(FOCAL_PRESETS) + list(FOCAL_SHORTHAND))})",
    )
    ingest.add_argument("--image-concurrency", type=int, default=None, help="Parallel image jobs")
    ingest.add_argument("--raw-concurrency", type=int, default=None, help="Parallel raw uploads")

    focal = subparsers.add_parser("focal", help="Run focal detection on one image")
    focal.add_argument("file", help="Image file")
    group = focal.add_mutually_exclusive_group()
    group.add_argument("--strategy", choices=STRATEGIES, default=None, help="Strategy to run")
    group.add_argument("--compare", action="store_true", help="Run every strategy")

    preview = subparsers.add_parser("preview", help="Regenerate the social preview of one image")
    preview.add_argument("file", help="Image file, usually an archival original")
    preview.add_argument("--title", required=True, help="Title shown in the overlay")
    preview.add_argument("--id", default=None, dest="item_id", help="Identifier shown on the right")
    preview.add_argument("--out", required=True, help="Where to write the JPEG preview")
    preview.add_argument("--svg", default=None, help="Also write the overlay as SVG")
    preview.add_argument("--no-overlay", action="store_true", help="Crop only, no text overlay")
    anchor = preview.add_mutually_exclusive_group()
    anchor.add_argument("--strategy", choices=STRATEGIES, default=None, help="Focal strategy")
    anchor.add_argument("--focal", default=None, help="Fixed focal preset")

    checkpoint = subparsers.add_parser("checkpoint", help="Inspect or delete a batch checkpoint")
    checkpoint.add_argument("action", choices=["status", "delete"])
    checkpoint.add_argument("--dir", required=True, dest="directory", help="Source directory")
    _add_target_arguments(checkpoint)

    listing = subparsers.add_parser("list", help="List stored objects or targets")
    listing.add_argument("--scope", required=True, choices=SCOPES)
    listing.add_argument("--slug", default=None, help="List objects of one target")

    delete = subparsers.add_parser("delete", help="Delete every object of a target")
    _add_target_arguments(delete)
    delete.add_argument("--yes", action="store_true", help="Actually delete (otherwise dry run)")

    subparsers.add_parser("version", help="Show version")
    return parser


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--scope", required=True, choices=SCOPES, help="Destination scope")
    parser.add_argument("--slug", required=True, help="Destination slug")


def _target(args: argparse.Namespace) -> IngestTarget:
    try:
        return IngestTarget(scope=args.scope, slug=args.slug)
    except ValueError as exc:
        raise MediaIngestError(f"Invalid target: {exc}") from exc


def _print_result(result: IngestResult) -> None:
    print(f"\nTarget: {result.target} ({result.target.prefix})")
    print(f"  Uploaded: {len(result.uploaded)} file(s), {format_bytes(result.uploaded_bytes)}")
    if result.resumed_count:
        print(f"  Resumed:  {result.resumed_count} file(s) completed by an earlier run")
    print(f"  Skipped:  {len(result.skipped)} file(s) already present (use --force to overwrite)")
    for filename in result.skipped:
        print(f"    - {filename}")
    if result.manifest_location:
        print(f"  Manifest: {result.manifest_location}")
    for lane, summary in result.metrics.items():
        if summary:
            print(
                f"  {lane} lane: {summary['total_operations']} item(s), "
                f"avg {summary['avg_duration']:.2f}s"
            )


async def run_ingest(args: argparse.Namespace, settings: IngestSettings) -> int:
    target = _target(args)
    if args.image_concurrency:
        settings = settings.model_copy(update={"image_concurrency": args.image_concurrency})
    if args.raw_concurrency:
        settings = settings.model_copy(update={"raw_concurrency": args.raw_concurrency})
    store_settings = settings.require_store_credentials()

    async with S3ObjectStore.connect(store_settings, settings.store_attempts) as store:
        orchestrator = IngestPipelineFactory.create_orchestrator(settings, store)
        result = await orchestrator.ingest(
            args.directory,
            target,
            args.title,
            force=args.force,
            focal_strategy=args.focal_strategy,
            focal_preset=args.focal,
        )
    _print_result(result)
    return 0


def run_focal(args: argparse.Namespace, settings: IngestSettings) -> int:
    path = Path(args.file)
    if not path.is_file():
        raise MediaIngestError(f"No such file: {args.file}")
    registry = IngestPipelineFactory.create_detectors(settings)
    data = path.read_bytes()
    if args.compare:
        for name, focal in registry.compare_strategies(data).items():
            print(f"{name:>9}: {f'x={focal.x} y={focal.y}' if focal else 'no detection (center)'}")
        return 0
    focal = registry.detect(data, args.strategy or settings.focal_strategy)
    print(f"x={focal.x} y={focal.y}" if focal else "no detection (center)")
    return 0


def run_preview(args: argparse.Namespace, settings: IngestSettings) -> int:
    from .processing.variants import PREVIEW_HEIGHT, PREVIEW_WIDTH

    path = Path(args.file)
    if not path.is_file():
        raise MediaIngestError(f"No such file: {args.file}")
    data = path.read_bytes()
    if args.focal:
        focal = preset_focal_point(args.focal)
    else:
        registry = IngestPipelineFactory.create_detectors(settings)
        focal = registry.detect(data, args.strategy or settings.focal_strategy)

    generator = IngestPipelineFactory.create_generator(settings)
    overlay = None if args.no_overlay else OverlaySpec(title=args.title, id=args.item_id)
    variant = generator.render_preview(data, focal, overlay)
    Path(args.out).write_bytes(variant.data)
    anchor = f"x={focal.x} y={focal.y}" if focal else "center"
    print(f"Wrote {args.out} ({format_bytes(variant.size)}, anchor {anchor})")

    if args.svg and overlay is not None:
        svg = generator.compositor.build_svg(overlay, PREVIEW_WIDTH, PREVIEW_HEIGHT)
        Path(args.svg).write_text(svg + "\n", encoding="utf-8")
        print(f"Wrote overlay {args.svg}")
    return 0


def run_checkpoint(args: argparse.Namespace) -> int:
    store = FileCheckpointStore(checkpoint_path(args.directory, _target(args)))
    if args.action == "delete":
        if not store.exists():
            print(f"No checkpoint at {store.location}")
            return 0
        store.delete()
        print(f"Deleted checkpoint {store.location}")
        return 0

    checkpoint = store.load()
    print(f"Checkpoint: {store.location}")
    print(f"  State: {job_state(checkpoint).value}")
    if checkpoint is not None:
        print(f"  Target: {checkpoint.run_parameters.target} (force={checkpoint.run_parameters.force})")
        print(f"  Title: {checkpoint.run_parameters.title}")
        print(
            f"  Focal: strategy={checkpoint.run_parameters.focal_strategy} "
            f"preset={checkpoint.run_parameters.focal_preset}"
        )
        print(f"  Completed: {len(checkpoint.completed)}/{len(checkpoint.plan)}")
        print(f"  Skipped: {len(checkpoint.skipped)}")
        for entry in checkpoint.pending():
            print(f"    pending: {entry.source_filename} -> {entry.derived_key}")
    return 0


async def run_list(args: argparse.Namespace, settings: IngestSettings) -> int:
    store_settings = settings.require_store_credentials()
    async with S3ObjectStore.connect(store_settings, settings.store_attempts) as store:
        if args.slug:
            target = _target(args)
            objects = await store.list(target.prefix)
            for info in objects:
                print(f"{format_bytes(info.size):>10}  {info.key}")
            print(f"{len(objects)} object(s), {format_bytes(sum(o.size for o in objects))}")
        else:
            for prefix in await store.list_prefixes(f"{SCOPE_ROOTS[args.scope]}/"):
                print(prefix)
    return 0


async def run_delete(args: argparse.Namespace, settings: IngestSettings) -> int:
    target = _target(args)
    store_settings = settings.require_store_credentials()
    async with S3ObjectStore.connect(store_settings, settings.store_attempts) as store:
        keys = [info.key for info in await store.list(target.prefix)]
        if not keys:
            print(f"Nothing stored under {target.prefix}")
            return 0
        if not args.yes:
            print(f"Would delete {len(keys)} object(s) under {target.prefix}; rerun with --yes")
            return 0
        deleted = await store.batch_delete(keys)
    print(f"Deleted {deleted} object(s) under {target.prefix}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the media-ingest command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger("media-ingest", level="DEBUG" if args.debug else None)
    if args.debug:
        set_level("DEBUG")

    if args.command is None:
        parser.print_help()
        return 1
    if args.command == "version":
        print(f"media-ingest {__version__}")
        return 0

    try:
        settings = IngestSettings.from_env(args.env_file)
        if args.command == "ingest":
            return asyncio.run(run_ingest(args, settings))
        if args.command == "focal":
            return run_focal(args, settings)
        if args.command == "preview":
            return run_preview(args, settings)
        if args.command == "checkpoint":
            return run_checkpoint(args)
        if args.command == "list":
            return asyncio.run(run_list(args, settings))
        if args.command == "delete":
            return asyncio.run(run_delete(args, settings))
    except MediaIngestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted. Rerun the same command to resume from the checkpoint.", file=sys.stderr)
        return 130

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
