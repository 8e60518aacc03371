#!/usr/bin/env python3
"""
Data Quality Check - Command Line Entry Point

Validates a CSV, TSV, JSON, XLSX or Parquet file, profiles its columns,
scores its quality and optionally runs the statistical analyzers.

Usage:
    python check_quality.py data.csv [options]

The full result is written as JSON when --output is given; a summary with
the quality score and top recommendations is always printed.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from dqcheck import __version__
from dqcheck.error_handler import DataQualityError, log_system_info
from dqcheck.models import CLEANING_ACTIONS, IMPUTATION_STRATEGIES, OUTLIER_METHODS, ValidationConfig
from dqcheck.orchestrator import QualityCheckOrchestrator
from dqcheck.sources import read_data_file, write_data_file
from logging_setup import configure_logging


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Validate, profile and score the quality of a tabular data file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python check_quality.py customers.csv
    python check_quality.py orders.json --schema orders_schema.json --output result.json
    python check_quality.py sales.xlsx --benford --correlation --seasonal --verbose
    python check_quality.py events.csv --history-dir .dq_history --source-id events
    python check_quality.py people.csv --pii --clean-output people_clean.csv --clean trim remove_duplicates
        """
    )

    parser.add_argument("input", type=Path, help="Data file to check")

    parser.add_argument(
        "--schema",
        type=Path,
        help="JSON file with a list of column definitions (name, type, required, unique, constraints)"
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="JSON file with configuration options; command line flags override it"
    )

    parser.add_argument("--output", type=Path, help="Write the full result as JSON to this path")

    parser.add_argument("--sheet", help="Worksheet name for spreadsheet input (default: first sheet)")

    parser.add_argument(
        "--outlier-method",
        choices=OUTLIER_METHODS,
        help="Outlier detection method (default: iqr)"
    )

    parser.add_argument("--fuzzy", action="store_true", help="Enable fuzzy duplicate detection")
    parser.add_argument("--no-duplicates", action="store_true", help="Disable duplicate detection")
    parser.add_argument("--benford", action="store_true", help="Run Benford's law analysis")
    parser.add_argument("--correlation", action="store_true", help="Run correlation analysis")
    parser.add_argument("--seasonal", action="store_true", help="Run seasonal pattern analysis")
    parser.add_argument("--patterns", action="store_true", help="Run pattern detection")
    parser.add_argument("--all-analyzers", action="store_true", help="Run every optional analyzer")
    parser.add_argument("--pii", action="store_true", help="Scan values for personal data")

    parser.add_argument(
        "--clean-output",
        type=Path,
        help="Write a cleaned copy of the data (CSV, or JSON for a .json path)"
    )

    parser.add_argument(
        "--clean",
        nargs="+",
        choices=CLEANING_ACTIONS,
        help="Cleaning actions applied in order for --clean-output"
    )

    parser.add_argument(
        "--impute",
        choices=IMPUTATION_STRATEGIES,
        help="Fill missing values in the cleaned copy with this strategy"
    )

    parser.add_argument(
        "--history-dir",
        type=Path,
        help="Compare against and record into the run history kept in this directory"
    )

    parser.add_argument("--source-id", help="Identifier of the data source in the run history")

    parser.add_argument(
        "--sample-size",
        type=int,
        help="Validate only the first N rows (default: all rows)"
    )

    parser.add_argument(
        "--max-issues",
        type=int,
        help="Maximum number of issues kept per issue type (default: 100)"
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress reporting and visual output"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Data Quality Check {__version__}"
    )

    return parser.parse_args(argv)


def _load_json(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def create_config_from_args(args) -> ValidationConfig:
    """Create ValidationConfig from the optional config file and command line arguments."""
    options = _load_json(args.config) if args.config else {}
    if not isinstance(options, dict):
        raise ValueError("Configuration file must contain a JSON object")

    options["enable_progress_reporting"] = not args.no_progress

    if args.outlier_method:
        options["detect_outliers"] = args.outlier_method
    if args.fuzzy:
        options["fuzzy_duplicates"] = True
    if args.no_duplicates:
        options["check_duplicates"] = False
    if args.benford or args.all_analyzers:
        options["enable_benfords_law"] = True
    if args.correlation or args.all_analyzers:
        options["enable_correlation_analysis"] = True
    if args.seasonal or args.all_analyzers:
        options["enable_seasonal_analysis"] = True
    if args.patterns or args.all_analyzers:
        options["enable_pattern_detection"] = True
    if args.pii:
        options["detect_pii"] = True
    if args.clean_output:
        options["generate_clean_data"] = True
    if args.clean:
        options["cleaning_actions"] = args.clean
    if args.impute:
        options["imputation_strategy"] = args.impute
    if args.history_dir:
        options["enable_historical_analysis"] = True
        options["history_directory"] = str(args.history_dir)
    if args.source_id:
        options["data_source_identifier"] = args.source_id
    if args.sample_size is not None:
        options["sample_size"] = args.sample_size
    if args.max_issues is not None:
        options["max_issues_per_type"] = args.max_issues

    return ValidationConfig.from_mapping(options)


def display_result(result, console: Console) -> None:
    """Print the headline numbers and the top recommendations."""
    summary = result.summary()

    table = Table(title="Data Quality Summary", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Rows", str(summary["total_rows"]))
    table.add_row("Valid rows", str(summary["valid_rows"]))
    table.add_row("Issues", str(summary["total_issues"]))
    if result.quality_score is not None:
        score = result.quality_score
        table.add_row("Quality score", f"{score.overall}/100 (grade {score.grade})")
        table.add_row("Completeness", f"{score.completeness:.1f}")
        table.add_row("Validity", f"{score.validity:.1f}")
        table.add_row("Uniqueness", f"{score.uniqueness:.1f}")
        table.add_row("Consistency", f"{score.consistency:.1f}")
    if result.pii is not None:
        table.add_row("PII findings", str(result.pii.total_findings))
    if result.cleaned is not None:
        table.add_row("Cleaned rows", f"{len(result.cleaned.rows)} ({result.cleaned.rows_removed} removed)")
    console.print(table)

    for recommendation in result.recommendations[:5]:
        console.print(f"[{recommendation.priority}] {recommendation.title}: {recommendation.action}",
                      markup=False)


def main(argv=None) -> int:
    """
    Main entry point for the data quality check.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    logger = logging.getLogger(__name__)
    try:
        args = parse_arguments(argv)

        configure_logging(verbose=args.verbose)

        if args.verbose:
            log_system_info()

        try:
            config = create_config_from_args(args)
        except (ValueError, TypeError, OSError, json.JSONDecodeError) as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        console = Console() if config.enable_progress_reporting else Console(quiet=True)

        if not args.input.exists():
            logger.error(f"Input file not found: {args.input}")
            return 1

        try:
            rows, headers = read_data_file(args.input, args.sheet)
            schema = _load_json(args.schema) if args.schema else None
        except DataQualityError as e:
            logger.error(e.message)
            if e.suggestion:
                logger.info(e.suggestion)
            return 1
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read schema {args.schema}: {e}")
            return 1

        orchestrator = QualityCheckOrchestrator(config, console)
        result = orchestrator.run(rows, headers, schema, source_url=str(args.input.resolve()))

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(result.to_dict(), f, indent=2, default=str)
            logger.info(f"Result written to {args.output}")

        if args.clean_output and result.cleaned is not None:
            write_data_file(result.cleaned.rows, result.cleaned.headers, args.clean_output)

        if not result.success:
            logger.error("Quality check failed")
            for error in result.errors_encountered:
                logger.error(f"  - {error}")
            return 1

        display_result(result, Console())

        if result.warnings:
            logger.warning(f"Quality check completed with {len(result.warnings)} warnings")
            for warning in result.warnings:
                logger.warning(f"  - {warning}")

        return 0

    except KeyboardInterrupt:
        print("\nQuality check interrupted by user")
        return 1

    except Exception as e:
        logger.exception("Unexpected error in main")
        print(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
