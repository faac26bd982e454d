"""
Command-line entry point.

    laborcompare fetch [source ...]   run fetchers (all when none named)
    laborcompare build [stage ...]    run build stages from existing raw artifacts
    laborcompare run                  fetch everything, then build everything

Exit status is 0 on success or a deliberate skip, 1 when a required
stage fails.
"""
import argparse
import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional

from laborcompare import __version__
from laborcompare.core.config import get_settings
from laborcompare.pipeline.orchestrator import BUILD_BY_KEY, FETCH_BY_KEY, Pipeline

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="laborcompare",
        description="Fetch government labor statistics and publish read-optimized JSON indexes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--data-dir", type=str, default=None,
        help="Override DATA_DIR for this run"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Download raw artifacts")
    fetch.add_argument(
        "sources", nargs="*", metavar="source",
        help=f"Sources to fetch ({', '.join(FETCH_BY_KEY)}); default all"
    )

    build = subparsers.add_parser("build", help="Build published files from raw artifacts")
    build.add_argument(
        "stages", nargs="*", metavar="stage",
        help=f"Stages to build ({', '.join(BUILD_BY_KEY)}); default all"
    )

    subparsers.add_parser("run", help="Fetch every source, then build every stage")
    return parser


def _check_names(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.command == "fetch":
        unknown = [s for s in args.sources if s not in FETCH_BY_KEY]
    elif args.command == "build":
        unknown = [s for s in args.stages if s not in BUILD_BY_KEY]
    else:
        unknown = []
    if unknown:
        parser.error(f"unknown {args.command} target(s): {', '.join(unknown)}")


async def _execute(pipeline: Pipeline, args: argparse.Namespace) -> int:
    if args.command == "fetch":
        await pipeline.run_fetch(args.sources)
        return pipeline.exit_code()
    if args.command == "build":
        pipeline.run_build(args.stages)
        return pipeline.exit_code()
    return await pipeline.run()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _check_names(parser, args)

    settings = get_settings()
    if args.data_dir:
        settings = settings.model_copy(update={"data_dir": Path(args.data_dir)})

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    start = time.time()
    pipeline = Pipeline(settings)
    exit_code = asyncio.run(_execute(pipeline, args))

    summary = ", ".join(f"{count} {status}" for status, count in sorted(pipeline.summary().items()))
    logger.info(f"Completed '{args.command}' in {time.time() - start:.1f}s: {summary or 'nothing run'}")
    return exit_code
