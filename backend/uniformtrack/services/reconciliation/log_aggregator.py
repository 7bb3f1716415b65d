"""Log Aggregator - reduce a student's uniform log into per-uniform totals."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from uniformtrack.schemas.student import LogEntry


@dataclass(frozen=True)
class LogAggregate:
    """Received quantity and open size requests for one uniform."""

    uniform_id: str
    received_quantity: int
    pending_requests: Tuple[LogEntry, ...]
    entries: Tuple[LogEntry, ...]


def entries_for(log: Optional[Iterable[LogEntry]], uniform_id: str) -> List[LogEntry]:
    return [entry for entry in log or () if entry.uniform_id == uniform_id]


def aggregate(log: Optional[Iterable[LogEntry]], uniform_id: str) -> LogAggregate:
    """Sum received quantity and collect unresolved size requests.

    Size-request entries carry quantity 0, so summing every entry for the
    uniform never inflates the total. The log is only read.
    """
    entries = tuple(entries_for(log, uniform_id))
    received = sum(entry.quantity_received or 0 for entry in entries)
    pending = tuple(entry for entry in entries if entry.is_size_request)
    return LogAggregate(
        uniform_id=uniform_id,
        received_quantity=received,
        pending_requests=pending,
        entries=entries,
    )


def received_totals(log: Optional[Iterable[LogEntry]]) -> Dict[str, int]:
    """Received quantity keyed by uniform id, for every uniform in the log."""
    totals: Dict[str, int] = {}
    for entry in log or ():
        totals[entry.uniform_id] = totals.get(entry.uniform_id, 0) + (entry.quantity_received or 0)
    return totals


def pending_size_requests(log: Optional[Iterable[LogEntry]]) -> List[LogEntry]:
    """Every unresolved size request in the log, across uniforms."""
    return [entry for entry in log or () if entry.is_size_request]
