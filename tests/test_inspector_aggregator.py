from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from cronscope.inspector import (
    Aggregator,
    InspectOptions,
    ProviderCall,
    RuleResolutionError,
    RuleResolver,
    TaskFetcher,
    TriggerLookup,
    inspect_with_timeout,
)

from tests.utils.providers import client_error


NOW = datetime(2023, 1, 3, tzinfo=UTC)
BACKUP_TASK = "arn:aws:ecs:us-east-1:123456789012:task/main/backup-1"
BACKUP_DEF = "arn:aws:ecs:task-def/backup:7"


def _aggregator(provider, *, max_concurrency: int | None = None) -> Aggregator:
    call = ProviderCall(max_concurrency)
    return Aggregator(
        RuleResolver(provider, call=call),
        TriggerLookup(provider, call=call, clock=lambda: NOW),
        TaskFetcher(provider, provider, call=call),
    )


@pytest.mark.asyncio
async def test_nightly_prefix_scenario(fake_provider_factory):
    provider = fake_provider_factory(
        rules=["nightly-backup", "nightly-cleanup"],
        datapoints={
            "nightly-backup": [{"Timestamp": datetime(2023, 1, 1, tzinfo=UTC), "Sum": 1.0}],
            "nightly-cleanup": client_error("GetMetricStatistics"),
        },
        task_arns={"nightly-backup": [BACKUP_TASK], "nightly-cleanup": []},
        tasks={"nightly-backup": [{"taskArn": BACKUP_TASK, "taskDefinitionArn": BACKUP_DEF}]},
    )

    report = await _aggregator(provider).inspect(InspectOptions(pattern="nightly-", cluster="main"))

    assert [entry.rule_name for entry in report.entries] == ["nightly-backup", "nightly-cleanup"]
    backup, cleanup = report.entries
    assert backup.last_triggered == datetime(2023, 1, 1, tzinfo=UTC)
    assert [task.task_definition_arn for task in backup.tasks] == [BACKUP_DEF]
    assert cleanup.last_triggered is None
    assert cleanup.tasks == []
    assert report.cluster == "main"
    assert report.desired_status == "STOPPED"
    assert all(kwargs["desiredStatus"] == "STOPPED" for kwargs in provider.operations("list_tasks"))


@pytest.mark.asyncio
async def test_report_order_follows_resolver_when_first_rule_is_slowest(fake_provider_factory):
    provider = fake_provider_factory(
        rules=["alpha", "bravo", "charlie"],
        datapoints={name: [{"Timestamp": NOW - timedelta(days=1), "Sum": 1.0}] for name in ("alpha", "bravo", "charlie")},
        task_arns={"alpha": [], "bravo": [], "charlie": []},
        delays={"alpha": 0.2},
    )
    finished: list[str] = []
    aggregator = _aggregator(provider)
    original = aggregator._inspect_rule

    async def recording(rule_name, options):
        entry = await original(rule_name, options)
        finished.append(rule_name)
        return entry

    aggregator._inspect_rule = recording  # type: ignore[method-assign]

    report = await aggregator.inspect(InspectOptions(pattern="", cluster="main"))

    assert finished[-1] == "alpha"
    assert [entry.rule_name for entry in report.entries] == ["alpha", "bravo", "charlie"]


@pytest.mark.asyncio
async def test_prefix_without_rules_yields_empty_report(fake_provider_factory):
    provider = fake_provider_factory(rules=[])

    report = await _aggregator(provider).inspect(InspectOptions(pattern="does-not-exist", cluster="main"))

    assert report.entries == []
    assert [operation for operation, _ in provider.calls] == ["list_rules"]


@pytest.mark.asyncio
async def test_resolution_failure_propagates(fake_provider_factory):
    provider = fake_provider_factory(rules=client_error("ListRules", "AccessDeniedException"))

    with pytest.raises(RuleResolutionError):
        await _aggregator(provider).inspect(InspectOptions(pattern="nightly-", cluster="main"))
    assert provider.operations("get_metric_statistics") == []


@pytest.mark.asyncio
async def test_exact_mode_unknown_rule_degrades_to_trigger_only(fake_provider_factory):
    provider = fake_provider_factory()

    report = await _aggregator(provider).inspect(InspectOptions(pattern="does-not-exist", cluster="main", exact=True))

    (entry,) = report.entries
    assert entry.rule_name == "does-not-exist"
    assert entry.task_definition_arn is None
    assert entry.last_triggered is None
    assert entry.tasks == []
    assert provider.operations("list_rules") == []
    assert provider.operations("list_tasks") == []
    assert len(provider.operations("get_metric_statistics")) == 1


@pytest.mark.asyncio
async def test_exact_mode_lists_tasks_for_targeted_rule(fake_provider_factory):
    provider = fake_provider_factory(
        targets={
            "nightly-backup": [
                {"Id": "backup", "Arn": "arn:aws:ecs:cluster/main", "EcsParameters": {"TaskDefinitionArn": BACKUP_DEF}}
            ]
        },
        task_arns={"nightly-backup": [BACKUP_TASK]},
        tasks={"nightly-backup": [{"taskArn": BACKUP_TASK, "taskDefinitionArn": BACKUP_DEF}]},
    )

    report = await _aggregator(provider).inspect(
        InspectOptions(pattern="nightly-backup", cluster="main", desired_status="RUNNING", exact=True)
    )

    (entry,) = report.entries
    assert entry.task_definition_arn == BACKUP_DEF
    assert [task.task_definition_arn for task in entry.tasks] == [BACKUP_DEF]
    assert provider.operations("list_tasks")[0]["desiredStatus"] == "RUNNING"


@pytest.mark.asyncio
async def test_lookback_window_is_forwarded(fake_provider_factory):
    provider = fake_provider_factory(rules=["weekly"], task_arns={"weekly": []})

    await _aggregator(provider).inspect(InspectOptions(pattern="weekly", cluster="main", lookback=timedelta(days=14)))

    (query,) = provider.operations("get_metric_statistics")
    assert query["EndTime"] - query["StartTime"] == timedelta(days=14)
    assert query["Period"] == 86400


@pytest.mark.asyncio
async def test_concurrency_limit_bounds_in_flight_calls(fake_provider_factory):
    names = [f"rule-{index}" for index in range(6)]
    provider = fake_provider_factory(
        rules=names,
        task_arns={name: [] for name in names},
        delays={name: 0.05 for name in names},
    )

    report = await _aggregator(provider, max_concurrency=2).inspect(InspectOptions(pattern="rule-", cluster="main"))

    assert len(report.entries) == 6
    assert provider.max_in_flight <= 2


class _StalledResolver:
    async def resolve(self, pattern: str, *, exact: bool = False) -> list[str]:
        await asyncio.sleep(5)
        return [pattern]


@pytest.mark.asyncio
async def test_overall_timeout_aborts_inspection(fake_provider_factory):
    provider = fake_provider_factory()
    aggregator = Aggregator(_StalledResolver(), TriggerLookup(provider), TaskFetcher(provider))

    with pytest.raises(TimeoutError):
        await inspect_with_timeout(aggregator, InspectOptions(pattern="nightly-", cluster="main"), timeout=0.05)
