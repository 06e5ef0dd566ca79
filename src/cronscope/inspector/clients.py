"""Process-wide AWS clients shared by every inspector component."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from ..common.settings import InspectorSettings
from .errors import ProviderSetupError


LOGGER = structlog.get_logger("cronscope.inspector.clients")


@dataclass(frozen=True)
class ProviderClients:
    """Events, CloudWatch and ECS clients built from one session and config."""

    events: Any
    cloudwatch: Any
    ecs: Any


def client_config(settings: InspectorSettings) -> Config:
    # Single attempt per call; no retry policy anywhere in the run.
    return Config(
        connect_timeout=settings.http_timeout_seconds,
        read_timeout=settings.http_timeout_seconds,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def build_clients(settings: InspectorSettings) -> ProviderClients:
    config = client_config(settings)
    session_args: dict[str, Optional[str]] = {
        "profile_name": settings.aws_profile,
        "region_name": settings.aws_region,
    }
    try:
        session = boto3.session.Session(**{k: v for k, v in session_args.items() if v})
        clients = ProviderClients(
            events=session.client("events", config=config),
            cloudwatch=session.client("cloudwatch", config=config),
            ecs=session.client("ecs", config=config),
        )
    except BotoCoreError as exc:
        raise ProviderSetupError(f"unable to construct AWS clients: {exc}") from exc
    LOGGER.debug(
        "Provider clients ready",
        region=clients.ecs.meta.region_name,
        timeout_seconds=settings.http_timeout_seconds,
    )
    return clients


class ProviderCall:
    """Runs blocking SDK calls off the event loop under a shared concurrency cap."""

    def __init__(self, max_concurrency: Optional[int] = None) -> None:
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency)) if max_concurrency else None

    async def __call__(self, func: Callable[..., Any], **kwargs: Any) -> Any:
        if self._semaphore is None:
            return await asyncio.to_thread(func, **kwargs)
        async with self._semaphore:
            return await asyncio.to_thread(func, **kwargs)
