"""Scheduled task inspection: rules, triggers, tasks and the joined report."""

from .aggregator import Aggregator, InspectOptions, inspect_with_timeout
from .clients import ProviderCall, ProviderClients, build_clients
from .errors import CronscopeError, ProviderSetupError, RuleResolutionError
from .models import Report, ReportEntry, TaskRecord, TriggerRecord
from .rules import RuleResolver
from .tasks import TaskFetcher, started_by_marker
from .triggers import TriggerLookup

__all__ = [
    "Aggregator",
    "CronscopeError",
    "InspectOptions",
    "ProviderCall",
    "ProviderClients",
    "ProviderSetupError",
    "Report",
    "ReportEntry",
    "RuleResolutionError",
    "RuleResolver",
    "TaskFetcher",
    "TaskRecord",
    "TriggerLookup",
    "TriggerRecord",
    "build_clients",
    "inspect_with_timeout",
    "started_by_marker",
]
