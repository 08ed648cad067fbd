import argparse
import logging
import sys

from .analysis.summary import write_outputs
from .config import (
    DATA_PATH,
    GRID_POINTS,
    LOG_FORMAT,
    MAX_MISSING_RATE,
    OUTPUT_DIR,
    RANDOM_STATE,
    TEST_SIZE,
)
from .errors import LoanDataError
from .pipeline import run_pipeline
from .process_data import load_raw

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fit a loan repayment classifier and pick accuracy- and profit-maximising thresholds."
    )
    parser.add_argument("--input", default=str(DATA_PATH))
    parser.add_argument("--output-dir", default=str(OUTPUT_DIR))
    parser.add_argument("--seed", type=int, default=RANDOM_STATE)
    parser.add_argument("--test-size", type=float, default=TEST_SIZE)
    parser.add_argument("--max-missing-rate", type=float, default=MAX_MISSING_RATE)
    parser.add_argument(
        "--grid-points",
        type=int,
        default=GRID_POINTS,
        help="Evaluate a fixed grid of this many thresholds instead of the exact breakpoints.",
    )
    parser.add_argument("--save-model", action="store_true", help="Write the fitted model with joblib.")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    try:
        raw = load_raw(args.input)
        results = run_pipeline(
            raw,
            random_state=args.seed,
            test_size=args.test_size,
            max_missing_rate=args.max_missing_rate,
            grid_points=args.grid_points,
        )
    except LoanDataError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    output_dir = write_outputs(results, args.output_dir)
    if args.save_model:
        results["model"].save(output_dir / "log_reg_model.pkl")

    print(results["summary"])
    for name, value in results["metrics"].items():
        print(f"{name}: {value:.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
