# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

from __future__ import annotations

import json
import sys
from typing import Any

from .base import Reporter, TaskRecord, get_verbosity


class JsonLinesReporter(Reporter):
    """Machine-readable reporter: one JSON object per event on stdout."""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream or sys.stdout

    def _emit(self, event: str, **payload: Any) -> None:
        obj = {"event": event, **payload}
        self.stream.write(json.dumps(obj, sort_keys=True, default=str) + "\n")

    def _task_started(self, rec: TaskRecord) -> None:
        self._emit("task_start", id=rec.task_id, name=rec.name, **rec.meta)

    def _task_finished(self, rec: TaskRecord) -> None:
        self._emit(
            "task_end",
            id=rec.task_id,
            status=rec.status.name.lower(),
            duration=round(rec.duration(), 6),
            **rec.meta,
        )

    def status(self, message: str, **fields: Any) -> None:
        self._emit("status", message=message, **fields)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._emit("verbose", level=level, message=message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("warning", message=message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("error", message=message, **fields)

    def section(self, title: str) -> None:
        self._emit("section", title=title)

    def flush(self) -> None:
        self.stream.flush()
