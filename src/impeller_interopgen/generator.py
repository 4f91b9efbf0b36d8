# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Generator orchestration: load config, parse, build, render, write."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .builder import HandlePredicate, ModelBuilder, default_is_handle
from .codegen import GenerationResult, generate_module
from .config import InteropConfig, load_config
from .errors import IneligibleFunctionWarning, output_error
from .ingest import parse_header
from .logging import get_logger, section, step
from .model import NativeModel
from .reporting import get_reporter, task

logger = get_logger("generator")

OUTPUT_SUFFIX = "_bindings.py"


def output_path_for(header: str | Path) -> Path:
    """``<header dir>/<header stem>_bindings.py``."""
    p = Path(header)
    return p.with_name(f"{p.stem}{OUTPUT_SUFFIX}")


def atomic_write(path: str | Path, content: str) -> bool:
    """Write ``content`` through a temp file; unchanged files are left alone.

    Returns True when the target changed.
    """
    path = str(path)
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                old = f.read()
            if old == content:
                os.remove(tmp)
                return False
        os.replace(tmp, path)
    except OSError as e:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise output_error(
            f"Failed to write {path}: {e}", {"path": path}
        ) from e
    return True


@dataclass
class GenerateOutcome:
    output: Path
    written: bool
    model: NativeModel
    warnings: List[IneligibleFunctionWarning] = field(default_factory=list)
    text: str = ""


def report_warnings(warnings: List[IneligibleFunctionWarning]) -> None:
    rep = get_reporter()
    for w in warnings:
        if w.listed:
            rep.verbose(str(w), function=w.function, handle=w.handle)
        else:
            rep.warning(
                str(w),
                function=w.function,
                handle=w.handle,
                reason=w.reason,
                position=w.position,
            )


def generate(
    header: str | Path,
    *,
    output: str | Path | None = None,
    config: Optional[InteropConfig] = None,
    dry_run: bool = False,
    is_handle: HandlePredicate = default_is_handle,
) -> GenerateOutcome:
    """Generate the bindings module for ``header``.

    Any fatal error propagates before the output file is touched.
    """
    header = Path(header)
    out = Path(output) if output is not None else output_path_for(header)
    if config is None:
        config = load_config()

    with section(header.name):
        with task("parse", "Parse header") as t:
            decls = parse_header(header, config)
            t["functions"] = len(decls.functions)

        with task("model", "Build model") as t:
            model = ModelBuilder(decls, config, is_handle=is_handle).build()
            t.update(
                handles=len(model.handles),
                structs=len(model.structs),
                enums=len(model.enums),
                functions=len(model.functions),
            )

        with task("render", "Render bindings") as t:
            result: GenerationResult = generate_module(
                model, config, source=header.name
            )
            t["skipped"] = len(result.warnings)
            t["bytes"] = len(result.text.encode("utf-8"))

        report_warnings(result.warnings)

        written = False
        if dry_run:
            logger.info("dry run: %s not written", out)
        else:
            written = atomic_write(out, result.text)
            if written:
                step(f"wrote {out}")
            else:
                logger.info("%s is up to date", out)

    return GenerateOutcome(
        output=out,
        written=written,
        model=model,
        warnings=result.warnings,
        text=result.text,
    )


__all__ = [
    "generate",
    "GenerateOutcome",
    "atomic_write",
    "output_path_for",
    "report_warnings",
    "OUTPUT_SUFFIX",
]
