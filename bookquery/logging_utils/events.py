"""
Log events for a catalog run.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class LogEvent:
    """Base class for all log events."""

    correlation_id: str
    event_type: str = ""
    timestamp: Optional[datetime] = None
    run_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def payload(self) -> Dict[str, Any]:
        """Fields specific to this event type."""
        return {}


@dataclass
class RunStarted(LogEvent):
    """Event emitted when a catalog run starts."""

    database: str = ""
    collection: str = ""
    total_steps: int = 0

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "run_started"

    def payload(self) -> Dict[str, Any]:
        return {
            "database": self.database,
            "collection": self.collection,
            "total_steps": self.total_steps,
        }


@dataclass
class RunCompleted(LogEvent):
    """Event emitted when a catalog run ends, successfully or not."""

    success: bool = False
    duration_seconds: float = 0.0
    steps_completed: int = 0
    error_message: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "run_completed"

    def payload(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "duration_seconds": round(self.duration_seconds, 3),
            "steps_completed": self.steps_completed,
        }
        if self.error_message:
            data["error_message"] = self.error_message
        return data


@dataclass
class StepStarted(LogEvent):
    """Event emitted when a catalog step starts."""

    step_id: str = ""
    step_name: str = ""

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "step_started"

    def payload(self) -> Dict[str, Any]:
        return {"step_id": self.step_id, "step_name": self.step_name}


@dataclass
class StepCompleted(LogEvent):
    """Event emitted when a catalog step completes."""

    step_id: str = ""
    step_name: str = ""
    success: bool = False
    status: Optional[str] = None
    duration_seconds: float = 0.0
    error_message: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "step_completed"

    def payload(self) -> Dict[str, Any]:
        data = {
            "step_id": self.step_id,
            "step_name": self.step_name,
            "success": self.success,
            "duration_seconds": round(self.duration_seconds, 3),
        }
        # A failed step has an error instead of a result status
        if self.success:
            data["status"] = self.status
        else:
            data["error_message"] = self.error_message
        return data
