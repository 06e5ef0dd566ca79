"""Report data models produced by an inspection run."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TriggerRecord(BaseModel):
    """Most recent trigger of a rule inside the lookback window."""

    model_config = ConfigDict(frozen=True)

    rule_name: str
    last_triggered: Optional[datetime] = None


class TaskRecord(BaseModel):
    """A task started by a rule; ``task`` is the raw ``describe_tasks`` entry."""

    model_config = ConfigDict(frozen=True)

    task_definition_arn: str = ""
    task: dict[str, Any] = Field(default_factory=dict)


class ReportEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_name: str
    last_triggered: Optional[datetime] = None
    # Only filled in exact mode, where targets are looked up per rule.
    task_definition_arn: Optional[str] = None
    tasks: list[TaskRecord] = Field(default_factory=list)


class Report(BaseModel):
    """Joined inspection result; entries follow rule resolution order."""

    model_config = ConfigDict(frozen=True)

    cluster: str
    desired_status: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    entries: list[ReportEntry] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
