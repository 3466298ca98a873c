"""
Story Shuffler CLI
==================

Shuffle the sections of a manuscript file from the command line.

COMMANDS:
- check:   Split the manuscript and validate the constraints
- shuffle: Print (or write) a shuffled manuscript

Exit codes: 0 success, 1 rejected constraints, 2 unreadable input or
unwritable output (argparse itself exits 2 on malformed arguments).

Section numbers are one-based, as writers count them. --fix positions
are one-based too (--fix 3:1 puts §3 first).

USAGE:
    python -m shuffler.cli shuffle draft.txt --pin 1 --before 2:4 --seed 7
    python -m shuffler.cli check draft.txt --regex --delimiter '^#+$'
"""
import argparse
import sys
from typing import Dict, List, Optional, Tuple

from .contracts.base import Error
from .core.shuffle import SEED_BITS
from .engine import BackendConfig, StoryShufflerBackend
from .manuscript import DEFAULT_DELIMITER, ManuscriptConfig, constraints_from_lists


def parse_before(value: str) -> Tuple[int, str]:
    """Parse 'N:LIST', e.g. '2:4,5' (§2 comes before §4 and §5)."""
    section, sep, targets = value.partition(":")
    if not sep or not section.strip().isdigit():
        raise argparse.ArgumentTypeError(f"expected N:LIST, got {value!r}")
    return int(section), targets


def parse_fix(value: str) -> Tuple[int, int]:
    """Parse 'N:POS' with a one-based position."""
    section, sep, position = value.partition(":")
    if not sep or not section.strip().isdigit() or not position.strip().isdigit():
        raise argparse.ArgumentTypeError(f"expected N:POS, got {value!r}")
    if int(position) < 1:
        raise argparse.ArgumentTypeError("positions are one-based")
    return int(section), int(position) - 1


def parse_seed(value: str) -> int:
    """Parse a seed in [0, 2**64)."""
    try:
        seed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer seed, got {value!r}")
    if not 0 <= seed < 2 ** SEED_BITS:
        raise argparse.ArgumentTypeError(f"seed must be in [0, 2**{SEED_BITS})")
    return seed


def _before_lists(pairs: List[Tuple[int, str]]) -> Dict[int, str]:
    lists: Dict[int, List[str]] = {}
    for section_id, targets in pairs:
        lists.setdefault(section_id, []).append(targets)
    return {section_id: ",".join(t for t in targets if t.strip()) for section_id, targets in lists.items()}


def _read(path: str) -> Optional[str]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        print(f"[FAIL] Cannot read {path}: {e}", file=sys.stderr)
        return None


def _report(error: Error):
    print(f"[FAIL] {error.code.name}: {error.message}", file=sys.stderr)
    for key, value in error.context:
        print(f"       {key}: {value}", file=sys.stderr)


def _backend(args) -> StoryShufflerBackend:
    return StoryShufflerBackend(BackendConfig(
        manuscript=ManuscriptConfig(
            delimiter=args.delimiter,
            delimiter_is_regex=args.regex
        )
    ))


def cmd_check(args) -> int:
    """Validate constraints without shuffling."""
    text = _read(args.file)
    if text is None:
        return 2

    backend = _backend(args)
    split = backend.split_manuscript(text, pinned=args.pin, fixed_positions=dict(args.fix))
    if split.is_failure:
        _report(split.error)
        return 1

    parsed = constraints_from_lists(_before_lists(args.before))
    if parsed.is_failure:
        _report(parsed.error)
        return 1

    result = backend.validate(split.value.sections, parsed.value)
    if result.is_failure:
        _report(result.error)
        return 1

    validated = result.value
    print(f"[PASS] {validated.section_count} sections, "
          f"{validated.graph.edge_count} constraints, "
          f"{len(validated.fixed_slots)} fixed")
    if args.verbose:
        for section_id, window in sorted(validated.windows().items()):
            print(f"  §{section_id}: positions {window.earliest + 1}..{window.latest + 1}")
    return 0


def cmd_shuffle(args) -> int:
    """Shuffle the manuscript and emit the reassembled text."""
    text = _read(args.file)
    if text is None:
        return 2

    backend = _backend(args)
    result = backend.shuffle_manuscript(
        text,
        before=_before_lists(args.before),
        pinned=args.pin,
        fixed_positions=dict(args.fix),
        seed=args.seed
    )
    if result.is_failure:
        _report(result.error)
        return 1

    outcome = result.value
    if args.output:
        try:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(outcome.text)
        except OSError as e:
            print(f"[FAIL] Cannot write {args.output}: {e}", file=sys.stderr)
            return 2
        print(f"[*] Wrote {len(outcome.permutation)} sections to {args.output}", file=sys.stderr)
    else:
        print(outcome.text)

    order = " ".join(f"§{section_id}" for section_id in outcome.permutation.order)
    print(f"[INFO] Order: {order}", file=sys.stderr)
    print(f"[INFO] Seed: {outcome.permutation.seed}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="story-shuffler",
        description="Reorder manuscript sections while honoring ordering constraints"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="Manuscript text file (UTF-8)")
    common.add_argument("--delimiter", default=DEFAULT_DELIMITER,
                        help=f"Section delimiter (default: {DEFAULT_DELIMITER!r})")
    common.add_argument("--regex", action="store_true",
                        help="Treat the delimiter as a regular expression")
    common.add_argument("--pin", type=int, action="append", default=[], metavar="N",
                        help="Keep section N at its original position")
    common.add_argument("--fix", type=parse_fix, action="append", default=[], metavar="N:POS",
                        help="Fix section N at one-based position POS")
    common.add_argument("--before", type=parse_before, action="append", default=[],
                        metavar="N:LIST", help="Section N comes before the listed sections")

    check = subparsers.add_parser("check", parents=[common], help="Validate constraints")
    check.add_argument("-v", "--verbose", action="store_true",
                       help="Show the position window of every section")
    check.set_defaults(func=cmd_check)

    shuffle = subparsers.add_parser("shuffle", parents=[common], help="Shuffle the manuscript")
    shuffle.add_argument("--seed", type=parse_seed, default=None,
                         help="Seed for a reproducible shuffle")
    shuffle.add_argument("-o", "--output", help="Write the shuffled manuscript here")
    shuffle.set_defaults(func=cmd_shuffle)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
