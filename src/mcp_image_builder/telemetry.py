"""
Build telemetry: one JSON line per build attempt.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional


@dataclass
class BuildEvent:
    """Result of one docker build"""
    server: str
    tag: str
    success: bool
    duration_s: float
    timestamp: float
    error: Optional[str] = None


class Telemetry:
    """Collects build events and logs them"""

    def __init__(self, log_file: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.log_file = log_file
        self.events: list[BuildEvent] = []

    def log_build(
        self,
        server: str,
        tag: str,
        success: bool,
        duration_s: float = 0.0,
        error: Optional[str] = None,
    ) -> BuildEvent:
        """Record a build attempt"""
        event = BuildEvent(
            server=server,
            tag=tag,
            success=success,
            duration_s=round(duration_s, 3),
            timestamp=time.time(),
            error=error,
        )
        self.events.append(event)

        log_data = asdict(event)
        log_data["timestamp"] = datetime.fromtimestamp(event.timestamp).isoformat()
        self.logger.info(json.dumps(log_data))

        if self.log_file:
            try:
                with open(self.log_file, "a") as f:
                    f.write(json.dumps(log_data) + "\n")
            except OSError as e:
                self.logger.warning(f"Failed to write telemetry to file: {e}")

        return event

    def get_stats(self) -> dict:
        if not self.events:
            return {}

        total = len(self.events)
        successful = sum(1 for e in self.events if e.success)
        return {
            "total_builds": total,
            "successful": successful,
            "failed": total - successful,
            "total_duration_s": round(sum(e.duration_s for e in self.events), 3),
        }
