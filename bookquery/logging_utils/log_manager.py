"""
Event log for catalog runs.

Each run appends one JSON line per event to ``events.jsonl``: the run's
start and end, and the start and completion of every catalog step.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..utils.directories import get_app_data_directory
from .events import LogEvent


class LogManager:
    """Appends run and step events to ``events.jsonl``."""

    def __init__(self, log_dir: Optional[str] = None):
        if log_dir is None:
            self.log_dir = get_app_data_directory("bookquery", "logs")
        else:
            self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("LogManager")
        self.event_log_file = self.log_dir / "events.jsonl"

    async def emit_event(self, event: LogEvent) -> None:
        """Append an event to the event log."""
        record = self._to_record(event)
        try:
            with open(self.event_log_file, "a") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError as e:
            # Write failures are logged, never raised
            self.logger.error(
                f"Failed to write event to file: {e}",
                extra={"event_type": event.event_type, "run_id": event.run_id},
            )

    def _to_record(self, event: LogEvent) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "event_type": event.event_type,
            "timestamp": event.timestamp.isoformat() if event.timestamp else "",
            "correlation_id": event.correlation_id,
            "run_id": event.run_id,
        }
        record.update(event.payload())
        if event.metadata:
            record["metadata"] = event.metadata
        return record
