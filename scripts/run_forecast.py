#!/usr/bin/env python
"""
Sales Forecast Runner

Trains the LSTM regressor on a sales CSV and forecasts the next months for
every product.

Usage:
    python run_forecast.py DATA_CSV [--output OUTPUT_CSV] [--epochs N]
                           [--window-size W] [--horizon H]
                           [--windowing {global,per_product}] [--parallel]
"""

import argparse
import logging
import os
import sys

from tqdm import tqdm

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sales_forecast.data import load_observations
from sales_forecast.errors import ForecastError
from sales_forecast.models import TrainingProgress
from sales_forecast.pipeline import run_forecast
from configs import get_default_config, ExperimentConfig


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main(config: ExperimentConfig) -> int:
    """Run the pipeline and write the forecast table. Returns an exit code."""
    try:
        observations = load_observations(config.data.filepath)

        with tqdm(total=config.lstm.epochs, desc="Training", disable=not config.verbose) as pbar:
            def on_progress(event: TrainingProgress):
                pbar.update(1)
                pbar.set_postfix(loss=f"{event.loss:.4f}")

            report = run_forecast(observations, config, progress_callback=on_progress)
    except ForecastError as exc:
        logger.error(f"Forecast failed: {exc}")
        return 1

    for failure in report.failures:
        logger.warning(f"[{failure.kind}] {failure.message}")

    forecast_df = report.to_frame()
    if config.verbose:
        print("\n", forecast_df.to_string(index=False))

    forecast_df.to_csv(config.output_path, index=False)
    logger.info(f"[OK] Saved: {config.output_path} ({report.summary()})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Forecast per-product monthly sales")
    parser.add_argument("data", type=str, help="Sales CSV (sales_date, quantity_sold[, product_description])")
    parser.add_argument("--output", type=str, default="forecast.csv", help="Output CSV path")
    parser.add_argument("--epochs", type=int, default=None, help="Training epochs")
    parser.add_argument("--window-size", type=int, default=None, help="Input window length")
    parser.add_argument("--horizon", type=int, default=None, help="Months to forecast")
    parser.add_argument("--windowing", choices=["global", "per_product"], default=None,
                        help="Training window strategy")
    parser.add_argument("--parallel", action="store_true", help="Forecast products in parallel")
    parser.add_argument("--device", type=str, default=None, help="Device (cpu/cuda)")
    parser.add_argument("--quiet", action="store_true", help="No progress bar or table output")

    args = parser.parse_args()

    # Create config with command line overrides
    config = get_default_config()
    config.data.filepath = args.data
    config.output_path = args.output
    config.forecast.parallel = args.parallel
    config.verbose = not args.quiet

    if args.epochs:
        config.lstm.epochs = args.epochs
    if args.window_size:
        config.data.window_size = args.window_size
    if args.horizon:
        config.forecast.horizon = args.horizon
    if args.windowing:
        config.data.windowing = args.windowing
    if args.device:
        config.device = args.device

    sys.exit(main(config))
