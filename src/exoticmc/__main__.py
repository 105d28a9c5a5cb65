# src/exoticmc/__main__.py
"""CLI that prices the reference path-dependent option set and checks the Asian value.

Usage:
    python -m exoticmc [--num-sims N] [--threads-per-block T] [--blocks B]
                       [--seed S] [--reference-seed S] [--precision P]
                       [--device D] [--expected V] [--tolerance TOL]
                       [--log-level LEVEL] [--no-reference]

Examples:
    # Default run: 100000 single-precision paths on device 0
    python -m exoticmc

    # Double precision, fixed grid, verbose device logging
    python -m exoticmc --precision float64 --blocks 64 --log-level DEBUG

    # Run on the Numba CUDA simulator with a small path count
    NUMBA_ENABLE_CUDASIM=1 python -m exoticmc --num-sims 2048 --threads-per-block 64

Exit status is 0 when the Asian value matches the expected value within the
tolerance, 1 when it does not, and 2 when validation or pricing fails.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import NoReturn, Sequence

from exoticmc.backend import NumbaCudaBackend
from exoticmc.config import SimulationConfig, build_simulation_config
from exoticmc.engine import PricingEngine, price_with_reference
from exoticmc.errors.device import PricingError
from exoticmc.models.numerical import Precision
from exoticmc.option import OptionResult, OptionSpec, OptionType, build_option_spec
from exoticmc.report import check_expected, format_result
from exoticmc.result import Failure, Success


LOG_LEVEL_ENV = "EXOTICMC_LOG_LEVEL"

# Reference contract and its expected Asian value
DEFAULT_SPOT = 40.0
DEFAULT_STRIKE = 35.0
DEFAULT_RATE = 0.03
DEFAULT_VOLATILITY = 0.20
DEFAULT_TENOR = 1.0 / 3.0
DEFAULT_TIME_STEP = 1.0 / 261
DEFAULT_BARRIER = 45.0
DEFAULT_EXPECTED = 5.162534
DEFAULT_TOLERANCE = 0.1
DEFAULT_NUM_SIMS = 100_000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m exoticmc",
        description="Monte Carlo pricing of path-dependent options on a CUDA device",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--num-sims", type=int, default=DEFAULT_NUM_SIMS, help="Number of simulated paths"
    )
    parser.add_argument(
        "--threads-per-block",
        type=int,
        default=256,
        choices=[32, 64, 128, 256, 512, 1024],
        help="Threads per block (default: 256)",
    )
    parser.add_argument(
        "--blocks", type=int, default=None, help="Override the number of blocks"
    )
    parser.add_argument("--seed", type=int, default=1234, help="Seed of the device streams")
    parser.add_argument(
        "--reference-seed", type=int, default=0, help="Seed of the reference pricer"
    )
    parser.add_argument(
        "--precision",
        type=Precision,
        default=Precision.float32,
        choices=list(Precision),
        help="Floating format of every kernel (default: float32)",
    )
    parser.add_argument("--device", type=int, default=0, help="CUDA device id")
    parser.add_argument(
        "--expected",
        type=float,
        default=DEFAULT_EXPECTED,
        help=f"Expected Asian value (default: {DEFAULT_EXPECTED})",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help=f"Allowed deviation from the expected value (default: {DEFAULT_TOLERANCE})",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )
    parser.add_argument(
        "--no-reference",
        action="store_true",
        help="Skip the serial reference pricer",
    )
    return parser


def reference_option() -> OptionSpec:
    match build_option_spec(
        spot=DEFAULT_SPOT,
        strike=DEFAULT_STRIKE,
        risk_free_rate=DEFAULT_RATE,
        volatility=DEFAULT_VOLATILITY,
        tenor=DEFAULT_TENOR,
        time_step=DEFAULT_TIME_STEP,
        barrier=DEFAULT_BARRIER,
        option_type=OptionType.call,
    ):
        case Success(spec):
            return spec
        case Failure(error):
            raise AssertionError(f"Reference option is invalid: {error.error}")


def cmd_price(args: argparse.Namespace) -> int:
    """Price the reference option set; return the process exit code."""
    spec = reference_option()
    match build_simulation_config(
        num_paths=args.num_sims,
        threads_per_block=args.threads_per_block,
        blocks=args.blocks,
        seed=args.seed,
        precision=args.precision,
        reference_seed=args.reference_seed,
    ):
        case Failure(error):
            print(f"✗ Invalid configuration:\n{error.error}", file=sys.stderr)
            return 2
        case Success(config):
            try:
                result = _price(spec, config, args)
            except PricingError as e:
                print(f"✗ Pricing failed: {e}", file=sys.stderr)
                return 2

    print(format_result(result))
    if check_expected(result):
        return 0
    print(
        f"✗ Computed result ({result.value_asian:e}) does not match "
        f"expected result ({args.expected:e})",
        file=sys.stderr,
    )
    return 1


def _price(spec: OptionSpec, config: SimulationConfig, args: argparse.Namespace) -> OptionResult:
    backend = NumbaCudaBackend(args.device)
    if args.no_reference:
        return PricingEngine(config, backend).price(
            spec, expected_value=args.expected, tolerance=args.tolerance
        )
    return price_with_reference(
        spec, config, backend, expected_value=args.expected, tolerance=args.tolerance
    )


def run(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.tolerance < 0:
        parser.error("--tolerance must be non-negative")
    return cmd_price(args)


def main() -> NoReturn:
    """Main CLI entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
