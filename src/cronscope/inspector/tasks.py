"""Find the ECS tasks a scheduled rule started."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .clients import ProviderCall
from .models import TaskRecord


LOGGER = structlog.get_logger("cronscope.inspector.tasks")

STARTED_BY_PREFIX = "events-rule/"
STARTED_BY_MAX_LENGTH = 36


def started_by_marker(rule_name: str) -> str:
    """The ``startedBy`` value EventBridge stamps on tasks it launches.

    ECS caps the field at 36 characters, so long rule names are cut off.
    """

    return f"{STARTED_BY_PREFIX}{rule_name}"[:STARTED_BY_MAX_LENGTH]


class TaskFetcher:
    def __init__(
        self,
        ecs_client: Any,
        events_client: Any = None,
        *,
        call: Optional[ProviderCall] = None,
    ) -> None:
        self._ecs = ecs_client
        self._events = events_client
        self._call = call or ProviderCall()

    async def tasks_started_by(self, rule_name: str, cluster: str, desired_status: str) -> list[TaskRecord]:
        """List and describe the tasks ``rule_name`` started in ``cluster``.

        Any provider error collapses the result to an empty list.
        """

        marker = started_by_marker(rule_name)
        try:
            listing = await self._call(
                self._ecs.list_tasks,
                cluster=cluster,
                desiredStatus=desired_status,
                startedBy=marker,
            )
            task_arns = listing.get("taskArns", [])
            if not task_arns:
                return []
            described = await self._call(self._ecs.describe_tasks, cluster=cluster, tasks=task_arns)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning(
                "Task lookup failed",
                rule_name=rule_name,
                cluster=cluster,
                started_by=marker,
                error=str(exc),
            )
            return []

        records = [
            TaskRecord(task_definition_arn=task.get("taskDefinitionArn") or "", task=task)
            for task in described.get("tasks", [])
        ]
        LOGGER.info("Matched tasks", rule_name=rule_name, cluster=cluster, count=len(records))
        return records

    async def task_definition_for_rule(self, rule_name: str) -> Optional[str]:
        """First ECS task definition among the rule's targets, if any."""

        if self._events is None:
            raise RuntimeError("task definition lookup requires an events client")
        try:
            response = await self._call(self._events.list_targets_by_rule, Rule=rule_name)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning("Target lookup failed", rule_name=rule_name, error=str(exc))
            return None
        for target in response.get("Targets", []):
            arn = (target.get("EcsParameters") or {}).get("TaskDefinitionArn")
            if arn:
                return arn
        return None
