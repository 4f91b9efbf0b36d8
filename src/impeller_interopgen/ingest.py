# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Header ingest: text pre-processing and libclang parsing.

The Impeller header is parsed as a self-contained C11 translation unit:

- ``#include`` directives are stripped and replaced by a prelude of
  fixed-width integer typedefs.
- The nullability macros are rewritten into ``annotate`` attributes, which
  libclang keeps on the declaration cursor (``ANNOTATE_ATTR`` children).
- A sentinel enum is appended so the version macro survives parsing as an
  enumerator value.

Parsing failures and error diagnostics raise :class:`ParseError` after every
diagnostic has been logged.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

import clang.cindex
from clang.cindex import CursorKind, TranslationUnit

from .config import InteropConfig
from .errors import parse_error
from .logging import get_logger

logger = get_logger("ingest")

LIBCLANG_ENV_VAR = "IMPELLER_INTEROPGEN_LIBCLANG"

NULLABLE_ANNOTATION = "nullable"
NONNULL_ANNOTATION = "notnull"

SENTINEL_ENUM = "InteropGenVersionSentinel"

SYSTEM_TYPES = """\
typedef unsigned char       uint8_t;
typedef signed char         int8_t;
typedef unsigned short      uint16_t;
typedef signed short        int16_t;
typedef unsigned int        uint32_t;
typedef signed int          int32_t;
typedef unsigned long long  uint64_t;
typedef signed long long    int64_t;
typedef int                 bool;
"""

CLANG_ARGS = ["-x", "c", "-std=c11", "-ferror-limit=0"]

_INCLUDE_RE = re.compile(r"^[ \t]*#[ \t]*include\b.*$", re.MULTILINE)

_SEVERITY_NAMES = {
    clang.cindex.Diagnostic.Ignored: "ignored",
    clang.cindex.Diagnostic.Note: "note",
    clang.cindex.Diagnostic.Warning: "warning",
    clang.cindex.Diagnostic.Error: "error",
    clang.cindex.Diagnostic.Fatal: "fatal",
}


def _annotate(kind: str) -> str:
    return f'__attribute__((annotate("{kind}")))'


def _define_re(macro: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*#[ \t]*define[ \t]+{re.escape(macro)}\b.*$", re.MULTILINE
    )


def prelude(config: InteropConfig) -> str:
    return (
        SYSTEM_TYPES
        + f"#define {config.nullable_macro} {_annotate(NULLABLE_ANNOTATION)}\n"
        + f"#define {config.nonnull_macro} {_annotate(NONNULL_ANNOTATION)}\n"
    )


def sentinel(config: InteropConfig) -> str:
    return (
        f"\ntypedef enum {SENTINEL_ENUM} {{\n"
        f"  {config.version_constant} = {config.version_macro}\n"
        f"}} {SENTINEL_ENUM};\n"
    )


def preprocess(
    text: str, config: InteropConfig, header_name: str = "impeller.h"
) -> str:
    """Return the translation unit text clang is asked to parse."""
    text = _INCLUDE_RE.sub("", text)
    text = _define_re(config.nullable_macro).sub(
        f"#define {config.nullable_macro} {_annotate(NULLABLE_ANNOTATION)}",
        text,
    )
    text = _define_re(config.nonnull_macro).sub(
        f"#define {config.nonnull_macro} {_annotate(NONNULL_ANNOTATION)}",
        text,
    )
    if not text.endswith("\n"):
        text += "\n"
    line_marker = f'#line 1 "{header_name}"\n'
    return prelude(config) + line_marker + text + sentinel(config)


@dataclass(frozen=True)
class Diagnostic:
    severity: int
    message: str
    text: str

    @property
    def is_error(self) -> bool:
        return self.severity >= clang.cindex.Diagnostic.Error

    @property
    def severity_name(self) -> str:
        return _SEVERITY_NAMES.get(self.severity, str(self.severity))

    def __str__(self) -> str:
        return self.text


@dataclass
class HeaderDeclarations:
    """Top-level declaration cursors of a parsed header, in source order."""

    path: str
    typedefs: List[Any] = field(default_factory=list)
    enums: List[Any] = field(default_factory=list)
    structs: List[Any] = field(default_factory=list)
    functions: List[Any] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    translation_unit: Any = field(default=None, repr=False)


_BUCKETS = {
    CursorKind.TYPEDEF_DECL: "typedefs",
    CursorKind.ENUM_DECL: "enums",
    CursorKind.STRUCT_DECL: "structs",
    CursorKind.FUNCTION_DECL: "functions",
}


def _configure_libclang() -> None:
    path = os.environ.get(LIBCLANG_ENV_VAR)
    if not path or clang.cindex.Config.loaded:
        return
    if os.path.isfile(path):
        clang.cindex.Config.set_library_file(path)
    else:
        clang.cindex.Config.set_library_path(path)
    logger.debug("using libclang from %s", path)


def _create_index():
    _configure_libclang()
    try:
        return clang.cindex.Index.create()
    except clang.cindex.LibclangError as e:
        raise parse_error(
            f"libclang is not available: {e}",
            {"env": LIBCLANG_ENV_VAR},
        ) from e


def _collect(tu, path: str) -> HeaderDeclarations:
    decls = HeaderDeclarations(path=path, translation_unit=tu)
    for cursor in tu.cursor.get_children():
        # implicit builtin typedefs carry no source file
        if cursor.location.file is None:
            continue
        bucket = _BUCKETS.get(cursor.kind)
        if bucket is not None:
            getattr(decls, bucket).append(cursor)
    return decls


def parse_source(
    text: str, config: InteropConfig, path: str = "impeller.h"
) -> HeaderDeclarations:
    """Parse header text (already read) into top-level declarations."""
    source = preprocess(text, config, header_name=Path(path).name)
    index = _create_index()
    try:
        tu = index.parse(
            path,
            args=CLANG_ARGS,
            unsaved_files=[(path, source)],
            options=TranslationUnit.PARSE_SKIP_FUNCTION_BODIES,
        )
    except clang.cindex.TranslationUnitLoadError as e:
        raise parse_error(
            f"Failed to parse {path}: {e}", {"path": path}
        ) from e

    diagnostics = [
        Diagnostic(d.severity, d.spelling, d.format()) for d in tu.diagnostics
    ]
    for d in diagnostics:
        if d.is_error:
            logger.error("%s", d)
        elif d.severity >= clang.cindex.Diagnostic.Warning:
            logger.warning("%s", d)
        else:
            logger.debug("%s", d)

    errors = [d for d in diagnostics if d.is_error]
    if errors:
        raise parse_error(
            f"{path} failed to parse ({len(errors)} error(s))",
            {
                "path": path,
                "diagnostics": [str(d) for d in errors],
            },
        )

    decls = _collect(tu, path)
    decls.diagnostics = diagnostics
    logger.debug(
        "parsed %s: %d typedefs, %d enums, %d structs, %d functions",
        path,
        len(decls.typedefs),
        len(decls.enums),
        len(decls.structs),
        len(decls.functions),
    )
    return decls


def parse_header(path: str | Path, config: InteropConfig) -> HeaderDeclarations:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise parse_error(f"Cannot read {p}: {e}", {"path": str(p)}) from e
    return parse_source(text, config, path=str(p))


__all__ = [
    "HeaderDeclarations",
    "Diagnostic",
    "preprocess",
    "prelude",
    "sentinel",
    "parse_source",
    "parse_header",
    "SENTINEL_ENUM",
    "SYSTEM_TYPES",
    "NULLABLE_ANNOTATION",
    "NONNULL_ANNOTATION",
    "LIBCLANG_ENV_VAR",
]
