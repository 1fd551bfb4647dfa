"""
Command-line interface for the Bluetooth remote telemetry simulator.

Provides commands for:
- Running batches of simulated user sessions (OTLP, JSONL file or dry run)
- Listing the persona, device and scenario catalogs
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import CONFIG_PATH, SimulationConfig
from .errors import SimulationError
from .exporters.file_exporter import FileSpanExporter
from .exporters.otlp_exporter import create_otlp_trace_exporter, parse_headers
from .generators.tracing import InMemoryTracingClient, OtelTracingClient, TracingClient
from .scenarios.runner import BatchRunner, BatchSummary
from .validators.trace_tree_validator import validate_span_records

_DEFAULT_ENDPOINT = "http://localhost:4318"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="remotesim",
        description="Synthetic session telemetry for a simulated Bluetooth audio remote",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Send 50 sessions to a local OTLP collector, 10x faster than real time
  remotesim run --count 50 --time-scale 0.1

  # Export to file instead of OTLP
  remotesim run --count 10 --output-file traces.jsonl

  # Instant in-memory run with tree validation
  remotesim run --count 200 --dry-run --time-scale 0 --validate --seed 7
        """,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config YAML (default: {CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run a batch of simulated sessions")
    run_parser.add_argument(
        "--count", type=int, default=10, help="Number of sessions to simulate (default: 10)"
    )
    run_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    run_parser.add_argument(
        "--time-scale",
        type=float,
        default=None,
        help="Real seconds per simulated second; 0 = no waiting (default: from config)",
    )
    run_parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Sessions simulated concurrently (default: 1)",
    )
    run_parser.add_argument(
        "--endpoint",
        type=str,
        default=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", _DEFAULT_ENDPOINT),
        help=f"OTLP endpoint (default: {_DEFAULT_ENDPOINT})",
    )
    run_parser.add_argument(
        "--protocol",
        type=str,
        default="http",
        choices=["http", "grpc"],
        help="OTLP protocol (default: http)",
    )
    run_parser.add_argument(
        "--service-name", type=str, default=None, help="Service name (default: from config)"
    )
    run_parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="Output file path (if set, exports to JSONL file instead of OTLP)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep spans in memory; nothing is exported",
    )
    run_parser.add_argument(
        "--strict",
        action="store_true",
        help="Raise instead of warn when a span finishes with open children",
    )
    run_parser.add_argument(
        "--show-spans",
        action="store_true",
        help="Print every finished span with its attributes",
    )
    run_parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the emitted span tree after the run (requires --dry-run)",
    )

    subparsers.add_parser("list", help="List personas, devices and environment scenarios")
    return parser


def _load_config(args: argparse.Namespace) -> SimulationConfig:
    config = SimulationConfig.load(args.config)
    if getattr(args, "time_scale", None) is not None:
        config.time_scale = max(0.0, args.time_scale)
    if getattr(args, "strict", False):
        config.strict_spans = True
    if getattr(args, "service_name", None):
        config.service_name = args.service_name
    return config


def _create_client(args: argparse.Namespace, config: SimulationConfig) -> TracingClient:
    if args.dry_run:
        print("   Output: in-memory (dry run)")
        return InMemoryTracingClient()
    if args.output_file:
        exporter = FileSpanExporter(args.output_file)
        print(f"   Output: {args.output_file}")
    else:
        exporter = create_otlp_trace_exporter(
            args.endpoint,
            protocol=args.protocol,
            headers=parse_headers(os.environ.get("OTEL_EXPORTER_OTLP_HEADERS")),
        )
        print(f"   Output: OTLP ({args.protocol}) {args.endpoint}")
        print(f"   Service: {config.service_name}")
    return OtelTracingClient(
        exporter, service_name=config.service_name, show_full_spans=args.show_spans
    )


def _print_summary(summary: BatchSummary) -> None:
    print()
    status = "cancelled" if summary.cancelled else "completed"
    print(f"Batch {status}: {summary.sessions_completed}/{summary.sessions_requested} sessions")
    print(f"   Spans emitted: {summary.spans_emitted}")
    print(
        f"   Connections: {summary.connections_succeeded} ok, "
        f"{summary.connections_failed} failed "
        f"({summary.connection_success_rate:.1%} success)"
    )
    print(
        f"   Commands: {summary.commands_succeeded} ok, {summary.commands_failed} failed"
    )
    print(
        f"   Command latency: avg {summary.avg_command_latency_ms:.1f}ms, "
        f"p95 {summary.p95_command_latency_ms:.1f}ms"
    )
    if summary.scan_outcomes:
        outcomes = ", ".join(f"{k}={v}" for k, v in sorted(summary.scan_outcomes.items()))
        print(f"   Scans: {outcomes}")
    print(f"   Elapsed: {summary.elapsed_s:.2f}s")


def cmd_run(args: argparse.Namespace):
    """Run a batch of sessions."""
    config = _load_config(args)
    print("Starting Bluetooth remote session simulation...")
    print(f"   Sessions: {args.count}")
    print(f"   Concurrency: {args.concurrency}")
    print(f"   Time scale: {config.time_scale}")
    if args.seed is not None:
        print(f"   Seed: {args.seed}")
    client = _create_client(args, config)
    print()

    def progress_callback(current: int, total: int):
        if args.show_spans or current % 10 == 0 or current == total:
            print(f"   Sessions simulated: {current}/{total}")

    runner = BatchRunner(
        client,
        config,
        session_count=args.count,
        seed=args.seed,
        concurrency=args.concurrency,
        progress_callback=progress_callback,
        on_complete=_print_summary,
    )
    try:
        runner.start()
    except KeyboardInterrupt:
        runner.cancel()
        print("\nSimulation interrupted")
        sys.exit(0)
    finally:
        client.shutdown()

    if args.validate and isinstance(client, InMemoryTracingClient):
        result = validate_span_records(client.records, client.open_spans.keys())
        print()
        if result.valid:
            print(f"Span tree valid: {result.sessions} sessions, {result.spans} spans")
        else:
            print(f"Span tree invalid: {len(result.issues)} issues")
            for rule, count in sorted(result.by_rule().items()):
                print(f"   {rule}: {count}")
            sys.exit(1)


def cmd_list(args: argparse.Namespace):
    """List catalogs."""
    config = _load_config(args)
    print("Personas:")
    for p in config.personas:
        low, high = p.action_count
        print(
            f"  - {p.id}: {low}-{high} commands, "
            f"error p={p.error_probability}, think {p.think_time_s[0]}-{p.think_time_s[1]}s"
        )
    print()
    print("Devices:")
    for d in config.effective_devices():
        battery = f", battery {d.battery_level}%" if d.battery_level is not None else ""
        print(
            f"  - {d.name} [{d.device_type}]: reliability {d.reliability}, "
            f"latency {d.base_latency_ms[0]:.0f}-{d.base_latency_ms[1]:.0f}ms, "
            f"signal {d.signal_strength}{battery}"
        )
    print()
    print("Scenarios:")
    for s in config.scenarios:
        print(f"  - {s.name}: latency x{s.latency_multiplier}, error rate {s.error_rate}")


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        if args.validate and not args.dry_run:
            parser.error("--validate requires --dry-run")
        if args.count < 1:
            parser.error("--count must be >= 1")
        if args.concurrency < 1:
            parser.error("--concurrency must be >= 1")

    try:
        if args.command == "run":
            cmd_run(args)
        elif args.command == "list":
            cmd_list(args)
        else:
            parser.print_help()
            sys.exit(1)
    except SimulationError as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
