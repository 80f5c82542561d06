"""Command line front end: run the API server or push photos through it."""
import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

import httpx
import uvicorn

from boatvision import settings
from boatvision.intake import intake_files
from boatvision.logging_conf import setup_logging
from boatvision.models import (
    DEFAULT_DYNAMIC,
    DEFAULT_LENS,
    LENS_PROFILES,
    LOCATION_EXAMPLES,
    SHOT_DYNAMICS,
    ProcessingStatus,
    StyleParameters,
)
from boatvision.orchestrator import QueueOrchestrator
from boatvision.queue_store import QueueItem, QueueStore

logger = logging.getLogger(__name__)


def status_label(item: QueueItem) -> str:
    if item.status == ProcessingStatus.COMPLETE:
        return "Ready for download"
    if item.status == ProcessingStatus.ERROR:
        return "Action required"
    return item.status.value.capitalize()


def render_card(item: QueueItem) -> str:
    lines = [f"{item.name}  [{status_label(item)}]"]
    lines += [f"  - {entry}" for entry in item.logs]

    if item.status == ProcessingStatus.COMPLETE and item.result:
        result = item.result
        lines.append("  Quality Report")
        lines.append(f"    {result.summary}")
        lines.append(f"    {result.quality_report}")
        if result.insights.boatOverview:
            lines.append(f"    Boat: {result.insights.boatOverview}")
        if result.insights.locationAdaptation:
            lines.append(f"    Locale: {result.insights.locationAdaptation}")
        if result.insights.visualFocalPoints:
            lines.append(f"    Focal Points: {result.insights.visualFocalPoints}")
    elif item.status == ProcessingStatus.ERROR:
        lines.append(f"  Error: {item.error}")
    return "\n".join(lines)


def export_result(item: QueueItem, output_dir: Path) -> Path:
    """Decode the render's data URI and write it next to the other exports."""
    header, _, encoded = item.result.final_image.partition(",")
    mime_type = header[len("data:"):].split(";")[0] or "image/png"
    extension = mimetypes.guess_extension(mime_type) or ".png"

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{item.source.stem}-on-water{extension}"
    path.write_bytes(base64.b64decode(encoded))
    return path


async def run_batch(store: QueueStore, style: StyleParameters, server: str,
                    transport: Optional[httpx.AsyncBaseTransport] = None):
    timeout = httpx.Timeout(settings.CLIENT_TIMEOUT)
    async with httpx.AsyncClient(base_url=server, timeout=timeout, transport=transport) as client:
        orchestrator = QueueOrchestrator(store, client)
        return await orchestrator.process_queue(style)


def cmd_process(args) -> int:
    style = StyleParameters(
        location=args.location,
        lens=args.lens,
        dynamic=args.dynamic,
        include_interiors=args.interiors,
    )

    with QueueStore() as store:
        queued = intake_files(store, args.files)
        logger.info(f"Queued {len(queued)} of {len(args.files)} file(s)")
        if not store.ready_for_processing:
            print("No supported images to process (JPEG, PNG, WEBP, HEIC, HEIF).")
            return 1

        asyncio.run(run_batch(store, style, args.server))

        failed = False
        for item in store:
            print(render_card(item))
            if item.status == ProcessingStatus.COMPLETE:
                print(f"  Saved: {export_result(item, Path(args.output))}")
            else:
                failed = True
            print()
        return 1 if failed else 0


def cmd_styles(args) -> int:
    print("Lens profiles:")
    for option in LENS_PROFILES:
        print(f"  {option.id:<16} {option.label}: {option.description}")
    print("Shot dynamics:")
    for option in SHOT_DYNAMICS:
        print(f"  {option.id:<16} {option.label}: {option.description}")
    print("Locale examples:")
    for example in LOCATION_EXAMPLES:
        print(f"  {example}")
    return 0


def cmd_serve(args) -> int:
    uvicorn.run("boatvision.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boatvision",
        description="Transform trailer-lot boat photos into on-water hero imagery.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the processing API")
    serve.add_argument("--host", default="127.0.0.1", help="Host for the API server")
    serve.add_argument("--port", type=int, default=8000, help="Port for the API server")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=cmd_serve)

    process = sub.add_parser("process", help="Queue photos and render them one by one")
    process.add_argument("files", nargs="+", type=Path, help="Boat photos to transform")
    process.add_argument("--server", default=settings.SERVER_URL, help="Base URL of the processing API")
    process.add_argument("--location", default="", help="Home waterway or dealership locale")
    process.add_argument("--lens", default=DEFAULT_LENS, choices=[o.id for o in LENS_PROFILES])
    process.add_argument("--dynamic", default=DEFAULT_DYNAMIC, choices=[o.id for o in SHOT_DYNAMICS])
    process.add_argument("--interiors", action=argparse.BooleanOptionalAction, default=True,
                         help="Also request an interior showcase vantage")
    process.add_argument("--output", default="renders", help="Directory for finished renders")
    process.set_defaults(func=cmd_process)

    styles = sub.add_parser("styles", help="List lens profiles, shot dynamics and locale examples")
    styles.set_defaults(func=cmd_styles)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
