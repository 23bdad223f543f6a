#!/usr/bin/env python3
"""Command-line interface for the institutional flow scanner."""

from __future__ import annotations

import argparse
import logging
import sys


def _fmt(value: object, spec: str = "") -> str:
    """Format a value for display; None renders as blank."""
    if value is None:
        return ""
    return format(value, spec)


def cmd_scan(args: argparse.Namespace) -> int:
    """Scan the configured tickers and print overview, flows and picks."""
    from pathlib import Path

    from flowscan.commands.scan import load_scan_config
    from flowscan.data.sources import (MappingNameLookup, resolve_flow_source,
                                       resolve_price_source)
    from flowscan.exceptions import ConfigError, DataSourceError, FlowscanError
    from flowscan.export import write_csv
    from flowscan.pipeline import Scanner

    try:
        config = load_scan_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        price_source = resolve_price_source(config.prices)
        flow_source = resolve_flow_source(config.flows)
    except DataSourceError as e:
        print(f"Data source error: {e}")
        return 1

    print("=" * 60)
    print("INSTITUTIONAL FLOW SCAN")
    print("=" * 60)
    print(f"Tickers:     {', '.join(config.tickers)}")
    print(f"Prices:      {config.prices.source} ({config.engine.price_days} days)")
    print(f"Flows:       {config.flows.source} ({config.engine.flow_days} days)")
    print(f"Selection:   {config.selection_rule.value}")

    scanner = Scanner(
        price_source=price_source,
        flow_source=flow_source,
        name_lookup=MappingNameLookup(config.names),
        config=config.engine,
    )
    result = scanner.run(config.tickers, rule=config.selection_rule)

    print("\n" + "=" * 60)
    print("OVERVIEW")
    print("=" * 60)
    for row in result.overview:
        print(
            f"{row.ticker_id:>6} {row.name:<8} {row.date:>10} "
            f"close {row.close:>9.2f}  entry {_fmt(row.entry, '.2f'):>8}  "
            f"stop {_fmt(row.stop, '.2f'):>8}  target {_fmt(row.target, '.2f'):>8}  "
            f"{row.signal}"
        )
        if row.advice:
            print(f"{'':>16}{row.advice}")

    print("\n" + "=" * 60)
    print("INSTITUTIONAL FLOW SUMMARY")
    print("=" * 60)
    for s in result.summaries:
        momentum = ",".join(sorted(c.value for c in s.momentum_flags)) or "-"
        print(
            f"{s.ticker_id:>6}  foreign {s.foreign_net_total:>+12,}  "
            f"trust {s.trust_net_total:>+10,}  dealer {s.dealer_net_total:>+10,}  "
            f"total {s.total_net_sum:>+12,}  streaks {s.foreign_streak}/"
            f"{s.trust_streak}/{s.dealer_streak}  momentum {momentum}"
        )

    if args.show_history and result.flow_history:
        print("\n📋 Flow History:")
        for f in result.flow_history:
            print(
                f"   {f.ticker_id:>6} {f.date} | foreign {f.foreign_net:>+10,} "
                f"trust {f.trust_net:>+9,} dealer {f.dealer_net:>+9,} "
                f"total {f.total_net:>+10,}"
            )

    print("\n" + "=" * 60)
    print(f"CANDIDATES ({config.selection_rule.value})")
    print("=" * 60)
    for c in result.candidates:
        print(
            f"{c.ticker_id:>6} {c.name:<8} close {c.close:>9.2f}  "
            f"MA10 {c.ma10:>9.2f}  MA20 {c.ma20:>9.2f}  "
            f"entry {_fmt(c.entry, '.2f'):>8}  foreign streak {c.foreign_streak}  "
            f"flow streak {c.total_signed_streak:+d}"
        )
    print(f"   {len(result.candidates)} candidate(s)")

    if result.skipped:
        print(f"\n⚠️  No data for: {', '.join(result.skipped)}")

    if args.output_dir:
        out = Path(args.output_dir)
        try:
            write_csv(result.overview, out / "overview.csv")
            write_csv(result.flow_history, out / "flow_history.csv")
            write_csv(result.summaries, out / "flow_summary.csv")
            write_csv(result.candidates, out / "candidates.csv")
            for scan in result.scans:
                if scan.bars:
                    write_csv(scan.bars, out / f"{scan.ticker_id}_bars.csv")
        except FlowscanError as e:
            print(f"Failed to write results: {e}")
            return 1
        print(f"\n💾 Results written to {out}/")

    return 0


def main() -> int:
    """Entry point for the ``flowscan`` command."""
    parser = argparse.ArgumentParser(
        description="Institutional flow and technical signal scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser(
        "scan", help="Scan tickers from a YAML configuration"
    )
    scan_parser.add_argument("config", help="Path to YAML configuration file")
    scan_parser.add_argument(
        "-o", "--output-dir", help="Directory for CSV exports of the results"
    )
    scan_parser.add_argument(
        "--show-history", action="store_true", help="Show daily flow history"
    )
    scan_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "scan":
        return cmd_scan(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
