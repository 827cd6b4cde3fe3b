# cli.py
"""
Command-line entry point.

    thyrosim run --t-start 0 --t-end 24 --variant hill-ratio > run.txt
    thyrosim run --params euthyroid.params --dial 0.5 1 0.5 1 --initic
    thyrosim personalize --sex female --height 1.67 --weight 64.1
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import load_initial_state, load_parameters
from .errors import ThyrosimError
from .integrator import SamplingMode, Tolerances
from .odes import ModelVariant
from .output import write_samples
from .parameters import get_default_parameters
from .personalization import personalize
from .simulation import simulate

logger = logging.getLogger(__name__)

DEFAULT_VARIANT = ModelVariant.HILL_RATIO


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thyrosim",
        description="Simulate the hypothalamic-pituitary-thyroid axis.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More logging on stderr (-v info, -vv debug)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Integrate one scenario and print one line per sample")
    run.add_argument("--params", type=str, default=None, help="Parameter file (.params or .yaml)")
    run.add_argument("--initial", type=str, default=None, help="File with 19 initial values")
    run.add_argument("--t-start", type=float, default=0.0, help="Start time in hours")
    run.add_argument("--t-end", type=float, required=True, help="End time in hours")
    run.add_argument(
        "--variant",
        choices=[v.value for v in ModelVariant],
        default=DEFAULT_VARIANT.value,
        help=f"Model variant (default: {DEFAULT_VARIANT.value})",
    )
    run.add_argument(
        "--dial",
        type=float,
        nargs=4,
        metavar=("D1", "D2", "D3", "D4"),
        default=None,
        help="Secretion/absorption dials in [0, 1]",
    )
    run.add_argument("--inf1", type=float, default=None, help="T4 infusion rate (umol/h)")
    run.add_argument("--inf4", type=float, default=None, help="T3 infusion rate (umol/h)")
    run.add_argument(
        "--initic",
        action="store_true",
        help="Only print the state at --t-end (to seed a later run)",
    )
    run.add_argument(
        "--grid-step",
        type=float,
        default=None,
        help="Print samples every GRID_STEP hours instead of one per solver step",
    )
    run.add_argument("--min-step", type=float, default=Tolerances.min_step)
    run.add_argument("--max-step", type=float, default=Tolerances.max_step)
    run.add_argument("--atol", type=float, default=Tolerances.atol)
    run.add_argument("--rtol", type=float, default=Tolerances.rtol)
    run.add_argument("--plot", type=str, default=None, help="Save T4/T3/TSH plots to this file")

    pers = sub.add_parser("personalize", help="Plasma volume, TSH volume and T3 clearance")
    pers.add_argument("--sex", required=True, help="male/female (or m/f)")
    pers.add_argument("--height", type=float, required=True, help="Height in metres")
    pers.add_argument("--weight", type=float, required=True, help="Body weight in kg")

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run(args: argparse.Namespace) -> int:
    params = load_parameters(args.params) if args.params else get_default_parameters()
    if args.dial is not None:
        params = params.with_dials(*args.dial)
    if args.inf1 is not None or args.inf4 is not None:
        params = params.with_infusion(
            params.inf1 if args.inf1 is None else args.inf1,
            params.inf4 if args.inf4 is None else args.inf4,
        )
    y0 = load_initial_state(args.initial) if args.initial else None

    if args.initic:
        mode = SamplingMode.FINAL_ONLY
    elif args.grid_step is not None:
        mode = SamplingMode.GRID
    else:
        mode = SamplingMode.CONTINUOUS

    tolerances = Tolerances(
        min_step=args.min_step,
        max_step=args.max_step,
        atol=args.atol,
        rtol=args.rtol,
    )
    result = simulate(
        params,
        args.variant,
        t_span=(args.t_start, args.t_end),
        y0=y0,
        tolerances=tolerances,
        mode=mode,
        grid_step=args.grid_step,
    )
    n = write_samples(result.samples, sys.stdout)
    logger.info("wrote %d sample line(s)", n)

    if args.plot:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        from .plotting import plot_hormones

        axes = plot_hormones(result, in_days=False)
        fig = axes[0].figure
        fig.tight_layout()
        fig.savefig(args.plot)
        plt.close(fig)
        logger.info("saved plot to %s", args.plot)
    return 0


def _personalize(args: argparse.Namespace) -> int:
    profile = personalize(args.sex, args.height, args.weight)
    print(f"Vp_new {profile.plasma_volume!r}")
    print(f"Vtsh_new {profile.tsh_volume!r}")
    print(f"k05_new {profile.t3_clearance!r}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "run":
            return _run(args)
        return _personalize(args)
    except ThyrosimError as exc:
        print(f"thyrosim: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        # bad tolerances or body measurements from the command line
        print(f"thyrosim: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
