"""Process runtime facts captured once at startup."""

import os
import platform
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import psutil
from fastapi import Request

MB = 1024 * 1024


@dataclass(frozen=True)
class RuntimeInfo:
    """Start time and host facts for uptime reporting."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    pid: int = field(default_factory=os.getpid)

    def uptime_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(UTC)
        return max((now - self.start_time).total_seconds(), 0.0)

    def uptime_minutes(self, now: datetime | None = None) -> int:
        return int(self.uptime_seconds(now) // 60)

    def environment(self) -> dict[str, Any]:
        return {
            "python_version": platform.python_version(),
            "python_implementation": platform.python_implementation(),
            "os_name": platform.system(),
            "os_version": platform.release(),
            "os_arch": platform.machine(),
            "executable": sys.executable,
        }

    def resources(self) -> dict[str, Any]:
        process = psutil.Process(self.pid)
        memory = psutil.virtual_memory()
        return {
            "available_processors": psutil.cpu_count() or 1,
            "process_rss_mb": process.memory_info().rss // MB,
            "total_memory_mb": memory.total // MB,
            "free_memory_mb": memory.available // MB,
        }


def get_runtime(request: Request) -> RuntimeInfo:
    """Runtime info captured when the application was created."""
    return request.app.state.runtime
