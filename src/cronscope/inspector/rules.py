"""Expand a rule argument into concrete EventBridge rule names."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .clients import ProviderCall
from .errors import RuleResolutionError


LOGGER = structlog.get_logger("cronscope.inspector.rules")


class RuleResolver:
    """Resolves a rule name or prefix.

    Prefix mode lists every rule whose name starts with the pattern (first
    page only). Exact mode trusts the caller and returns the pattern as the
    single rule name without asking the provider.
    """

    def __init__(self, events_client: Any, *, call: Optional[ProviderCall] = None) -> None:
        self._events = events_client
        self._call = call or ProviderCall()

    async def resolve(self, pattern: str, *, exact: bool = False) -> list[str]:
        if exact:
            return [pattern]
        try:
            response = await self._call(self._events.list_rules, NamePrefix=pattern)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.error("Rule listing failed", prefix=pattern, error=str(exc))
            raise RuleResolutionError(f"unable to list rules with prefix {pattern!r}: {exc}") from exc
        names = [rule["Name"] for rule in response.get("Rules", []) if rule.get("Name")]
        LOGGER.info("Resolved rules", prefix=pattern, count=len(names))
        return names
