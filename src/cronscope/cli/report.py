"""Command-line entrypoint for inspecting scheduled ECS task executions."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from ..common.observability import configure_logging, configure_tracing, shutdown_tracing
from ..common.settings import DESIRED_STATUSES, InspectorSettings
from ..inspector import (
    Aggregator,
    InspectOptions,
    ProviderCall,
    ProviderClients,
    ProviderSetupError,
    Report,
    RuleResolutionError,
    RuleResolver,
    TaskFetcher,
    TriggerLookup,
    build_clients,
    inspect_with_timeout,
)


USAGE = "usage: cronscope --rule <rule-name-or-prefix> --cluster <cluster-name>"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cronscope",
        description="Inspect when scheduled EventBridge rules fired and which ECS tasks they started",
    )
    parser.add_argument("rule_name", nargs="?", help="Rule name (legacy positional form, implies --exact)")
    parser.add_argument("cluster_name", nargs="?", help="Cluster name (legacy positional form)")
    parser.add_argument("-r", "--rule", help="Rule name or name prefix")
    parser.add_argument("-c", "--cluster", help="ECS cluster name or ARN")
    parser.add_argument("--exact", action="store_true", help="Treat the rule as an exact name and resolve its targets")
    parser.add_argument(
        "--desired-status",
        type=str.upper,
        choices=DESIRED_STATUSES,
        help="ECS desired status filter (default: STOPPED)",
    )
    parser.add_argument("--lookback-days", type=int, help="Trigger metric lookback window in days (default: 7)")
    parser.add_argument("--max-concurrency", type=int, help="Maximum simultaneous AWS calls")
    parser.add_argument("--timeout", type=float, help="Overall run timeout in seconds")
    parser.add_argument("--region", help="AWS region override")
    parser.add_argument("--profile", help="AWS profile override")
    parser.add_argument("--log-level", help="Log level (default: WARNING)")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> InspectorSettings:
    overrides: dict[str, Any] = {
        "aws_region": getattr(args, "region", None),
        "aws_profile": getattr(args, "profile", None),
        "desired_status": getattr(args, "desired_status", None),
        "lookback_days": getattr(args, "lookback_days", None),
        "max_concurrency": getattr(args, "max_concurrency", None),
        "run_timeout_seconds": getattr(args, "timeout", None),
        "log_level": getattr(args, "log_level", None),
    }
    return InspectorSettings(**{k: v for k, v in overrides.items() if v is not None})


def build_aggregator(clients: ProviderClients, settings: InspectorSettings) -> Aggregator:
    call = ProviderCall(settings.max_concurrency)
    return Aggregator(
        RuleResolver(clients.events, call=call),
        TriggerLookup(clients.cloudwatch, call=call),
        TaskFetcher(clients.ecs, clients.events, call=call),
    )


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "never (in lookback window)"
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def print_report(report: Report, pattern: str) -> None:
    print(f"Cluster: {report.cluster} (desired status {report.desired_status})")
    if not report.entries:
        print(f"No rules matched {pattern!r}")
        return
    for entry in report.entries:
        print()
        print(f"Rule: {entry.rule_name}")
        print(f"  last triggered: {format_timestamp(entry.last_triggered)}")
        if entry.task_definition_arn is not None:
            print(f"  target task definition: {entry.task_definition_arn}")
        if not entry.tasks:
            print("  matched tasks: none")
            continue
        print(f"  matched tasks ({len(entry.tasks)}):")
        for task in entry.tasks:
            print(f"    {task.task_definition_arn or '-'}")


def _fail(message: str) -> int:
    print(f"error: {message}", file=sys.stderr)
    return 1


async def run() -> int:
    args = parse_args()
    flag_form = args.rule is not None or args.cluster is not None
    positional_form = args.rule_name is not None or args.cluster_name is not None
    if flag_form and positional_form:
        print(USAGE, file=sys.stderr)
        return 2
    pattern = args.rule or args.rule_name
    cluster = args.cluster or args.cluster_name
    if not pattern or not cluster:
        print(USAGE, file=sys.stderr)
        return 2

    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return 2

    options = InspectOptions(
        pattern=pattern,
        cluster=cluster,
        desired_status=settings.desired_status,
        lookback=timedelta(days=settings.lookback_days),
        # The positional form predates prefix matching and always meant one rule.
        exact=bool(args.exact or positional_form),
    )
    configure_logging(settings, pattern=pattern, cluster=cluster)
    tracer_provider = configure_tracing(settings)
    try:
        return await _inspect(args, settings, options)
    finally:
        shutdown_tracing(tracer_provider)


async def _inspect(args: argparse.Namespace, settings: InspectorSettings, options: InspectOptions) -> int:
    try:
        clients = build_clients(settings)
    except ProviderSetupError as exc:
        return _fail(str(exc))

    aggregator = build_aggregator(clients, settings)
    try:
        report = await inspect_with_timeout(aggregator, options, settings.run_timeout_seconds)
    except RuleResolutionError as exc:
        return _fail(str(exc))
    except TimeoutError:
        return _fail(f"inspection did not finish within {settings.run_timeout_seconds:g}s")

    if args.json:
        print(json.dumps(report.to_payload(), indent=2))
    else:
        print_report(report, options.pattern)
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(run()))


if __name__ == "__main__":
    main()
