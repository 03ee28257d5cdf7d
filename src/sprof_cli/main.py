#!/usr/bin/env python3
"""
Command-line interface for sprof.
"""
import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

from pydantic import ValidationError

from sprof.callgraph.builder import CallGraphBuilder
from sprof.callgraph.loader import format_callgraph_json, load_call_graph
from sprof.config import ProfileConfig, load_config
from sprof.errors import SprofError
from sprof.pprof import Profile, ProfileEncoder, read_profile, write_profile
from sprof.profiler import StaticProfiler
from sprof.types import CallGraph
from sprof.utils.fs import CachedLocalFileSystem

logger = logging.getLogger(__name__)


def format_top(profile: Profile, n: int) -> str:
    """Format the n heaviest functions of a profile, by flat and cumulative count."""
    names = {f.id: f.name for f in profile.functions}
    leaf_of = {loc.id: names[loc.lines[0].function_id] for loc in profile.locations}

    flat: Counter = Counter()
    cum: Counter = Counter()
    for sample in profile.samples:
        count = sample.values[0]
        frames = [leaf_of[loc_id] for loc_id in sample.location_ids]
        if frames:
            flat[frames[0]] += count
        for name in set(frames):
            cum[name] += count

    total = sum(s.values[0] for s in profile.samples) or 1
    output = []
    output.append(f"{'flat':>10} {'flat%':>7} {'cum':>10} {'cum%':>7}  function")
    for name, count in flat.most_common(n):
        output.append(
            f"{count:>10} {100 * count / total:>6.2f}% {cum[name]:>10} {100 * cum[name] / total:>6.2f}%  {name}")
    return "\n".join(output)


def load_graph(input_path: Path, config: ProfileConfig) -> CallGraph:
    """Load a saved call graph or build one from Python source."""
    fs = CachedLocalFileSystem()
    if input_path.suffix == ".json":
        return load_call_graph(fs, str(input_path))

    builder = CallGraphBuilder(fs=fs, entry=config.entry)
    return builder.run(str(input_path))


def run(args: argparse.Namespace) -> int:
    input_path = Path(args.package)
    if not input_path.exists():
        raise SprofError(f"path does not exist: {args.package}")

    try:
        config = load_config(args.config)
    except ValidationError as e:
        raise SprofError(f"invalid configuration: {e}") from e
    logger.debug(f"Using config: {config}")

    print("analyzing source code ...", file=sys.stderr)
    call_graph = load_graph(input_path, config)
    print(f"Found {len(call_graph.nodes)} functions and {len(call_graph.edges)} calls.", file=sys.stderr)

    if args.graph_out:
        graph_path = Path(args.graph_out)
        graph_path.parent.mkdir(parents=True, exist_ok=True)
        with open(graph_path, 'w') as f:
            f.write(format_callgraph_json(call_graph))
        print(f"Call graph written to: {graph_path}", file=sys.stderr)

    print("performing static profiling ...", file=sys.stderr)
    samples = StaticProfiler(call_graph, max_depth=config.max_depth).run()

    print("writing pprof file ...", file=sys.stderr)
    profile = ProfileEncoder().encode(samples)
    write_profile(profile, args.output)
    print(f"Profile with {len(profile.samples)} samples written to: {args.output}", file=sys.stderr)

    if args.top:
        print(format_top(read_profile(args.output), args.top))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="sprof",
        description="Static profiling: estimate a pprof profile from a program's call graph without running it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s path/to/project/ cpu.pprof
  %(prog)s path/to/app.py cpu.pprof --config "max_depth=6 entry=run" --top 10
  %(prog)s callgraph.json cpu.pprof

The input is a Python file, a directory of Python sources, or a call graph
saved as JSON with --graph-out. The package should have a main function.
        """
    )

    parser.add_argument(
        "package",
        type=str,
        help="Python file or directory to analyze, or a call graph .json file"
    )

    parser.add_argument(
        "output",
        type=str,
        help="Output path for the pprof profile"
    )

    parser.add_argument(
        "--config",
        type=str,
        dest="config",
        default="",
        help="Profile configuration as 'key1=value1 key2=value2'. Keys: max_depth (default 8), entry (default main)"
    )

    parser.add_argument(
        "--graph-out",
        type=str,
        dest="graph_out",
        help="Also write the analyzed call graph as JSON to this path"
    )

    parser.add_argument(
        "--top",
        type=int,
        default=0,
        help="Print the N heaviest functions of the written profile"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args)
    except (SprofError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
