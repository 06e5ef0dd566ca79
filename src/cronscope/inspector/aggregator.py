"""Fan-out inspection across every resolved rule and join the results."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog
from opentelemetry import trace

from .models import Report, ReportEntry, TaskRecord
from .rules import RuleResolver
from .tasks import TaskFetcher
from .triggers import DEFAULT_LOOKBACK, TriggerLookup


LOGGER = structlog.get_logger("cronscope.inspector.aggregator")
TRACER = trace.get_tracer("cronscope.inspector")


@dataclass(frozen=True)
class InspectOptions:
    pattern: str
    cluster: str
    desired_status: str = "STOPPED"
    lookback: timedelta = DEFAULT_LOOKBACK
    # Legacy single-rule mode: no prefix listing, tasks gated on a target lookup.
    exact: bool = False


class Aggregator:
    """Resolve rules, then query triggers and tasks for each rule concurrently.

    Entries are collected positionally, so the report keeps the resolver's
    order no matter which rule finishes first. Only rule resolution errors
    propagate; trigger and task failures have already been degraded to
    empty results by the components.
    """

    def __init__(self, resolver: RuleResolver, triggers: TriggerLookup, tasks: TaskFetcher) -> None:
        self._resolver = resolver
        self._triggers = triggers
        self._tasks = tasks

    async def inspect(self, options: InspectOptions) -> Report:
        rule_names = await self._resolver.resolve(options.pattern, exact=options.exact)
        if not rule_names:
            LOGGER.info("No rules matched", pattern=options.pattern)
        entries = await asyncio.gather(*(self._inspect_rule(name, options) for name in rule_names))
        return Report(
            cluster=options.cluster,
            desired_status=options.desired_status,
            entries=list(entries),
        )

    async def _inspect_rule(self, rule_name: str, options: InspectOptions) -> ReportEntry:
        with TRACER.start_as_current_span("cronscope.inspect_rule") as span:
            span.set_attribute("cronscope.rule_name", rule_name)
            if options.exact:
                trigger, task_definition, tasks = await self._inspect_exact(rule_name, options)
            else:
                task_definition = None
                trigger, tasks = await asyncio.gather(
                    self._triggers.lookup(rule_name, options.lookback),
                    self._tasks.tasks_started_by(rule_name, options.cluster, options.desired_status),
                )
            span.set_attribute("cronscope.task_count", len(tasks))
        LOGGER.debug(
            "Rule inspected",
            rule_name=rule_name,
            last_triggered=trigger.last_triggered.isoformat() if trigger.last_triggered else None,
            tasks=len(tasks),
        )
        return ReportEntry(
            rule_name=rule_name,
            last_triggered=trigger.last_triggered,
            task_definition_arn=task_definition,
            tasks=tasks,
        )

    async def _inspect_exact(self, rule_name: str, options: InspectOptions):
        # Tasks are only listed once the rule is known to target a task definition.
        trigger, task_definition = await asyncio.gather(
            self._triggers.lookup(rule_name, options.lookback),
            self._tasks.task_definition_for_rule(rule_name),
        )
        tasks: list[TaskRecord] = []
        if task_definition is not None:
            tasks = await self._tasks.tasks_started_by(rule_name, options.cluster, options.desired_status)
        else:
            LOGGER.info("Rule has no ECS task definition target", rule_name=rule_name)
        return trigger, task_definition, tasks


async def inspect_with_timeout(
    aggregator: Aggregator,
    options: InspectOptions,
    timeout: Optional[float] = None,
) -> Report:
    """Run an inspection under one overall deadline; raises ``TimeoutError``."""

    if timeout is None:
        return await aggregator.inspect(options)
    return await asyncio.wait_for(aggregator.inspect(options), timeout=timeout)
