#!/usr/bin/env python3
"""Generate a sample loan portfolio and export it.

Loans are originated and paid through the servicer, so the output reflects
real allocations, notices and defaults. Events go to JSON Lines files and,
optionally, to Kafka.
"""

import argparse
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_engine.config import EngineConfig
from loan_engine.generators import PortfolioGenerator
from loan_engine.logging import setup_logging
from loan_engine.reports import PortfolioReports
from loan_engine.services import LoanServicer
from loan_engine.sinks import ConsoleSink, JsonFileSink, KafkaSink

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate a sample land-contract loan portfolio")
    parser.add_argument(
        "--loans",
        type=int,
        default=50,
        help="Number of loans to originate (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=24,
        help="Months of history to simulate, ending today (default: 24)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory (default: OUTPUT_DIR or ./output)",
    )
    parser.add_argument(
        "--kafka",
        action="store_true",
        help="Also publish events to Kafka (KAFKA_BOOTSTRAP_SERVERS)",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Echo events to stdout",
    )
    parser.add_argument(
        "--log-format",
        choices=["standard", "json"],
        default="standard",
        help="Log format (default: standard)",
    )
    args = parser.parse_args()

    config = EngineConfig.from_env()
    setup_logging(config.log_level, args.log_format)
    output_dir = args.output_dir or config.output.json_output_dir

    json_sink = JsonFileSink(output_dir, pretty=True)
    sinks: list = [json_sink]
    if args.console:
        sinks.append(ConsoleSink(pretty=config.output.pretty_json, max_records=5))
    if args.kafka:
        sinks.append(KafkaSink(config.kafka))

    servicer = LoanServicer(config=config, sinks=sinks)
    end = date.today()
    start = end - timedelta(days=30 * args.months)

    logger.info("=" * 60)
    logger.info("Generating %d loans from %s to %s (seed=%d)", args.loans, start, end, args.seed)
    logger.info("=" * 60)

    summary = PortfolioGenerator(servicer, seed=args.seed).generate(args.loans, start, end)

    ledger = servicer.ledger
    json_sink.write_snapshot("customers", list(ledger.customers.values()))
    json_sink.write_snapshot("properties", list(ledger.properties.values()))
    json_sink.write_snapshot("loans", list(ledger.loans.values()))
    json_sink.write_snapshot("payments", list(ledger.iter_payments()))
    json_sink.write_snapshot("notices", ledger.notices)

    reports = PortfolioReports(ledger, servicer.classifier)
    json_sink.write_snapshot("report_financial", [reports.financial_report()])
    json_sink.write_snapshot("report_outstanding", [reports.outstanding_report(end)])
    json_sink.write_snapshot("report_defaulted", [reports.defaulted_loans_report()])
    json_sink.write_snapshot("report_tax_summary", [reports.tax_summary(end.year)])

    for sink in sinks:
        sink.close()

    logger.info("Ledger: %s", ledger.summary())
    logger.info("Summary: %s", summary)


if __name__ == "__main__":
    main()
