"""Look up when a rule last fired using the AWS/Events TriggeredRules metric."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .clients import ProviderCall
from .models import TriggerRecord


LOGGER = structlog.get_logger("cronscope.inspector.triggers")

METRIC_NAMESPACE = "AWS/Events"
METRIC_NAME = "TriggeredRules"
BUCKET_SECONDS = 86400
DEFAULT_LOOKBACK = timedelta(weeks=1)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def latest_datapoint(datapoints: Iterable[dict[str, Any]]) -> Optional[datetime]:
    """Return the newest timestamp among datapoints that recorded a trigger.

    Provider ordering is not relied on. Datapoints with an explicit zero sum
    carry no trigger and are skipped.
    """

    latest: Optional[datetime] = None
    for datapoint in datapoints:
        timestamp = datapoint.get("Timestamp")
        if timestamp is None or datapoint.get("Sum") == 0:
            continue
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        else:
            timestamp = timestamp.astimezone(UTC)
        if latest is None or timestamp > latest:
            latest = timestamp
    return latest


class TriggerLookup:
    def __init__(
        self,
        cloudwatch_client: Any,
        *,
        call: Optional[ProviderCall] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cloudwatch = cloudwatch_client
        self._call = call or ProviderCall()
        self._clock = clock

    async def last_trigger(self, rule_name: str, lookback: timedelta = DEFAULT_LOOKBACK) -> Optional[datetime]:
        """Most recent trigger time within ``[now - lookback, now)``, or ``None``.

        Provider failures are logged and reported as ``None``.
        """

        now = self._clock()
        try:
            response = await self._call(
                self._cloudwatch.get_metric_statistics,
                Namespace=METRIC_NAMESPACE,
                MetricName=METRIC_NAME,
                Dimensions=[{"Name": "RuleName", "Value": rule_name}],
                StartTime=now - lookback,
                EndTime=now,
                Period=BUCKET_SECONDS,
                Statistics=["Sum"],
            )
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning("Trigger lookup failed", rule_name=rule_name, error=str(exc))
            return None
        return latest_datapoint(response.get("Datapoints", []))

    async def lookup(self, rule_name: str, lookback: timedelta = DEFAULT_LOOKBACK) -> TriggerRecord:
        return TriggerRecord(rule_name=rule_name, last_triggered=await self.last_trigger(rule_name, lookback))
