#!/usr/bin/env python3
"""
SoundMap - Main Entry Point

Analyzes a local audio dataset through the worker/cache pipeline and
manages the analysis cache.

Usage:
    soundmap analyze data/clips/
    soundmap analyze data/clips/ --no-worker --fps 30
    soundmap cache stats
    soundmap cache export backup.json
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

# Load .env file (for local development)
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent / ".env")

from tqdm import tqdm

from soundmap import __version__
from soundmap.common.logging import setup_logging, get_logger
from soundmap.core.cache import AnalysisCache
from soundmap.core.config import get_settings
from soundmap.core.errors import ConfigurationError
from soundmap.core.monitoring import set_app_info
from soundmap.modules.analysis import AnalysisService
from soundmap.modules.analysis.pipelines import load_local_dataset

logger = get_logger(__name__)

DEFAULT_FPS = 10.0


# ============== Analyze ==============

async def render_loop(service: AnalysisService, bar: tqdm, fps: float) -> None:
    """Redraw the progress bar from the live batch status at a fixed rate."""
    interval = 1.0 / fps
    while True:
        processor = service.processor
        if processor is not None:
            status = processor.status
            bar.n = status.current
            bar.set_postfix(cached=status.cached, refresh=False)
            bar.set_description("Analyzing" if processor.ready.is_set() else "Loading")
            bar.refresh()
            if processor.ready.is_set() and status.done:
                return
        await asyncio.sleep(interval)


async def run_analyze(args, settings) -> int:
    directory = Path(args.directory).expanduser()
    if not directory.exists():
        print(f"Error: Folder not found: {args.directory}")
        return 1

    records = load_local_dataset(directory)
    if args.limit:
        records = records[:args.limit]
    if not records:
        print(f"No audio files found in {directory}")
        return 1

    async with AnalysisService(settings) as service:
        bar = tqdm(total=len(records), desc="Loading", unit="file")
        render = asyncio.create_task(render_loop(service, bar, args.fps))
        try:
            await service.start(records)
            result = await service.finish()
            await render
        finally:
            render.cancel()
            bar.close()

    print()
    print(f"Total files: {result.total_files}")
    print(f"From cache: {result.cached}")
    print(f"Analyzed:   {result.analyzed}")
    print(f"Synthetic:  {result.synthetic}")
    print(f"Total time: {result.total_time_sec:.1f}s")
    for structure, count in sorted(result.structure_counts.items()):
        print(f"  {structure:<11} {count}")

    if args.json:
        Path(args.json).write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        print(f"Results saved to {args.json}")
    return 0


# ============== Cache ==============

def _format_ms(timestamp: Optional[int]) -> str:
    if timestamp is None:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000).isoformat(timespec="seconds")


def run_cache(args, settings) -> int:
    cache = AnalysisCache.from_settings(settings)

    if args.cache_command == "stats":
        stats = cache.stats()
        print(f"Backend:  {settings.cache_backend.value} ({settings.cache_dir})")
        print(f"Entries:  {stats.total_entries} / {cache.max_entries}")
        print(f"Size:     {stats.cache_size_mb:.2f} MB")
        print(f"Oldest:   {_format_ms(stats.oldest_entry)}")
        print(f"Newest:   {_format_ms(stats.newest_entry)}")
        return 0

    if args.cache_command == "clear":
        cache.clear()
        print("Cache cleared")
        return 0

    if args.cache_command == "export":
        exported = cache.export_json()
        if args.file:
            Path(args.file).write_text(exported, encoding="utf-8")
            print(f"Exported {len(cache)} entries to {args.file}")
        else:
            print(exported)
        return 0

    if args.cache_command == "import":
        text = Path(args.file).read_text(encoding="utf-8")
        if cache.import_json(text):
            print(f"Imported {len(cache)} entries")
            return 0
        print("Error: cache import rejected (version mismatch or malformed file)")
        return 1

    return 2


# ============== CLI ==============

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soundmap",
        description="Analyze audio clips by music features",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a folder (cached files are not re-analyzed)
  soundmap analyze data/clips/

  # Without the worker process: every result is synthetic, nothing is cached
  soundmap analyze data/clips/ --no-worker

  # Cache maintenance
  soundmap cache stats
  soundmap cache export backup.json
  soundmap cache import backup.json
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command', required=True)

    analyze = subparsers.add_parser('analyze', help='Analyze all audio files in a folder')
    analyze.add_argument('directory', help='Folder containing audio files')
    analyze.add_argument('--no-worker', action='store_true',
                         help='Do not start the analysis worker (synthetic results)')
    analyze.add_argument('--fps', type=float, default=DEFAULT_FPS,
                         help=f'Progress redraw rate (default: {DEFAULT_FPS:g})')
    analyze.add_argument('--limit', type=int, default=None,
                         help='Limit number of files to process')
    analyze.add_argument('--json', type=str, default=None,
                         help='Save results as JSON to this file')

    cache = subparsers.add_parser('cache', help='Inspect or maintain the analysis cache')
    cache_sub = cache.add_subparsers(dest='cache_command', required=True)
    cache_sub.add_parser('stats', help='Show cache statistics')
    cache_sub.add_parser('clear', help='Remove every cached analysis')
    export = cache_sub.add_parser('export', help='Export the cache as JSON')
    export.add_argument('file', nargs='?', default=None, help='Output file (default: stdout)')
    imp = cache_sub.add_parser('import', help='Replace the cache with an exported file')
    imp.add_argument('file', help='Exported cache file')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        return 2

    if getattr(args, 'no_worker', False):
        settings.worker_enabled = False
    if getattr(args, 'fps', DEFAULT_FPS) <= 0:
        print("Error: --fps must be positive")
        return 2

    setup_logging(
        level=settings.log_level.value,
        log_file=os.getenv("LOG_FILE"),
        json_format=settings.log_json,
        component="cli",
    )
    set_app_info(__version__, os.getenv("ENVIRONMENT", "local"), sys.version.split()[0])
    logger.info("Starting SoundMap", data={"command": args.command})

    if args.command == 'analyze':
        return asyncio.run(run_analyze(args, settings))
    return run_cache(args, settings)


if __name__ == "__main__":
    sys.exit(main())
