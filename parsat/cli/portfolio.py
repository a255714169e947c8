"""CLI for parallel portfolio SAT solving over seed-variable cubes."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from parsat.portfolio.launcher import STDIN, run
from parsat.portfolio.models import ASSUMPTION_MODES, LAUNCHERS, PortfolioConfig
from parsat.utils.exceptions import ConfigurationError, ParsatException, WriteError
from parsat.utils.logs import configure_logging

logger = logging.getLogger(__name__)


def _seed_list(text: str) -> List[int]:
    try:
        seeds = [int(tok) for tok in text.replace(",", " ").split()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid seed variable list: {text!r}") from exc
    if not seeds:
        raise argparse.ArgumentTypeError("empty seed variable list")
    return seeds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parsat",
        description=(
            "Solve a CNF with several workers, each restricted to one sign "
            "combination of the seed variables. Input may be plain or gzipped DIMACS."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", type=str, help="DIMACS file, or '-' for standard input")
    parser.add_argument(
        "result", type=str, nargs="?", default=None, help="Result output file (optional)"
    )
    parser.add_argument(
        "-w", "--workers", type=int, default=None,
        help="Number of workers (default: 4 locally, the world size under MPI)",
    )
    parser.add_argument(
        "--seed-vars", type=_seed_list, default=None,
        help="Comma-separated seed variables (default: 1..ceil(log2 W))",
    )
    parser.add_argument(
        "--launcher", choices=LAUNCHERS, default="local",
        help="local: start W processes here; mpi: this process is one rank of mpiexec",
    )
    parser.add_argument(
        "--engine", type=str, default="m22",
        help="PySAT solver name (m22, g3, g4, cd, ...) or 'z3' (default: m22)",
    )
    parser.add_argument(
        "--assumptions", choices=ASSUMPTION_MODES, default="permanent",
        help="Assert the cube as unit clauses (permanent) or as solver assumptions",
    )
    parser.add_argument("--cpu-lim", type=int, default=0, help="CPU time limit in seconds")
    parser.add_argument("--mem-lim", type=int, default=0, help="Memory limit in megabytes")
    parser.add_argument(
        "--conflict-budget", type=int, default=0, help="Conflict budget per worker (PySAT)"
    )
    parser.add_argument(
        "--recv-timeout", type=float, default=None,
        help="Collector timeout per contributor in seconds (default: cpu-lim + 60, or 3600)",
    )
    parser.add_argument(
        "--strict", action="store_true", help="Validate the DIMACS header during parsing"
    )
    parser.add_argument(
        "--verb", type=int, choices=[0, 1, 2], default=1,
        help="Verbosity level (0=silent, 1=some, 2=more)",
    )
    parser.add_argument(
        "--worker-output-dir", type=str, default=None,
        help="Directory for per-worker local result files",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> PortfolioConfig:
    workers = args.workers
    if workers is None and args.launcher == "local":
        workers = 4
    return PortfolioConfig(
        num_workers=workers,
        seed_variables=args.seed_vars,
        engine=args.engine,
        assumption_mode=args.assumptions,
        cpu_limit=args.cpu_lim,
        mem_limit=args.mem_lim,
        conflict_budget=args.conflict_budget,
        receive_timeout=args.recv_timeout,
        strict=args.strict,
        verbosity=args.verb,
        result_path=args.result,
        worker_output_dir=args.worker_output_dir,
        launcher=args.launcher,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns 10 (SAT), 20 (UNSAT), 0 (unknown) or 1 (error)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verb)

    if args.input != STDIN and not Path(args.input).exists():
        print(f"ERROR! Could not open file: {args.input}", file=sys.stderr)
        return 1
    if args.input == STDIN and args.verb > 0:
        print("Reading from standard input... Use '--help' for help.", file=sys.stderr)

    config = config_from_args(args)
    try:
        return run(config, args.input)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except WriteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ParsatException as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verb >= 2:
            import traceback  # pylint: disable=import-outside-toplevel
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
