"""
Command line entry point.

Usage:
    typo-ime search nihao --context 我 --limit 5
    typo-ime stats --dictionary data/dict.json --bigrams data/bigram_probabilities.json
"""

import argparse
import logging
import sys
from concurrent import futures

from .client import TypoClient
from .config import Settings
from .errors import TypoImeError
from .models import FIELDS
from .worker import MatchingEngine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='typo-ime', description='Fuzzy pinyin to hanzi lookup')
    parser.add_argument('--dictionary', help='Path or URL of dict.json (default: $TYPO_DICTIONARY)')
    parser.add_argument('--bigrams', help='Path or URL of bigram probabilities (default: $TYPO_BIGRAMS)')
    parser.add_argument('--mode', choices=['thread', 'process'], help='Worker mode (default: $TYPO_WORKER_MODE)')
    parser.add_argument('--log-level', help='Logging level (default: $TYPO_LOG_LEVEL)')
    sub = parser.add_subparsers(dest='command', required=True)

    search = sub.add_parser('search', help='Print ranked candidates for a query')
    search.add_argument('query')
    search.add_argument('--key', choices=FIELDS, default='pinyin')
    search.add_argument('--threshold', type=float, help='Minimum similarity')
    search.add_argument('--tolerance', type=int, help='Length tolerance')
    search.add_argument('--context', help='Previously committed hanzi character')
    search.add_argument('--limit', type=int, default=15)

    sub.add_parser('stats', help='Print index statistics')
    return parser


def _run_search(args, settings: Settings) -> int:
    with TypoClient.create(
        settings.data_source(),
        mode=settings.worker_mode,
        init_timeout=settings.init_timeout,
        threshold=settings.threshold,
        length_tolerance=settings.length_tolerance,
        slow_search_ms=settings.slow_search_ms,
    ) as client:
        results = client.search(
            args.query,
            key=args.key,
            threshold=args.threshold,
            length_tolerance=args.tolerance,
            previous_word_hanzi=args.context,
        ).result(timeout=settings.init_timeout)

    print(f"Found {len(results)} candidates for '{args.query}'")
    for i, result in enumerate(results[:args.limit], 1):
        record = result.record
        print(f"  {i}. {record.hanzi} ({record.pinyin}) "
              f"score: {result.similarity_score:.3f} bigram: {result.bigram_score:.3f}")
    return 0


def _run_stats(settings: Settings) -> int:
    engine = MatchingEngine(settings.data_source(), show_progress=True)
    engine.initialize()

    print("\n=== Index Statistics ===")
    for key, value in engine.stats.items():
        print(f"{key}: {value:,}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.dictionary:
        settings.dictionary = args.dictionary
    if args.bigrams:
        settings.bigrams = args.bigrams
    if args.mode:
        settings.worker_mode = args.mode
    if args.log_level:
        settings.log_level = args.log_level.upper()

    logging.basicConfig(level=settings.log_level, format='%(levelname)s: %(message)s')

    try:
        if args.command == 'search':
            return _run_search(args, settings)
        return _run_stats(settings)
    except (TypoImeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except futures.TimeoutError:
        print(f"Error: no reply from the engine within {settings.init_timeout}s", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
