# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

from __future__ import annotations

import sys
from typing import Any

from .base import Reporter, TaskRecord, TaskStatus, get_verbosity

ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
}


class PlainReporter(Reporter):
    """Plain deterministic reporter with minimal icons and optional color."""

    def __init__(self, stream=None, use_color: bool | None = None):
        super().__init__()
        self.stream = stream or sys.stderr
        self.use_color = (
            use_color
            if use_color is not None
            else getattr(self.stream, "isatty", lambda: False)()
        )

    def _c(self, code: str, text: str):
        if not self.use_color:
            return text
        return f"\x1b[{code}m{text}\x1b[0m"

    def _line(self, prefix: str, color: str, message: str) -> None:
        self.stream.write(f"{self._c(color, prefix)}: {message}\n")

    def _task_finished(self, rec: TaskRecord) -> None:
        icon = ICONS.get(rec.status, "?")
        self.stream.write(
            f" {icon} {rec.name} ({rec.duration():.2f}s){rec.stats_suffix()}\n"
        )

    def status(self, message: str, **fields: Any) -> None:
        self._line("INFO", "32", message)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._line(f"VERB{level}", "36", message)

    def warning(self, message: str, **fields: Any) -> None:
        self._line("WARN", "33", message)

    def error(self, message: str, **fields: Any) -> None:
        self._line("ERROR", "31", message)

    def section(self, title: str) -> None:
        self.stream.write(f"\n[{title}]\n")

    def flush(self) -> None:
        self.stream.flush()
