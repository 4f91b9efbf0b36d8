# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Error definitions for the interop generator.

Fatal conditions are coded exceptions derived from :class:`InteropGenError`
and abort the run with no artifact. Functions that cannot be wrapped
automatically are not errors: they are recorded as
:class:`IneligibleFunctionWarning` and reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

E_PARSE = "E_PARSE"
E_UNKNOWN_TYPE = "E_UNKNOWN_TYPE"
E_UNKNOWN_PROGRAM_TYPE = "E_UNKNOWN_PROGRAM_TYPE"
E_MISSING_RETAIN_RELEASE = "E_MISSING_RETAIN_RELEASE"
E_CONFIG = "E_CONFIG"
E_WRITE_IO = "E_WRITE_IO"


@dataclass
class InteropGenError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class ParseError(InteropGenError):
    pass


class UnknownTypeError(InteropGenError):
    pass


class UnknownProgramTypeError(InteropGenError):
    pass


class MissingRetainReleasePairError(InteropGenError):
    pass


class ConfigError(InteropGenError):
    pass


class OutputError(InteropGenError):
    pass


@dataclass(frozen=True)
class IneligibleFunctionWarning:
    """A function skipped by automatic wrapping (recoverable)."""

    function: str
    handle: str
    reason: str
    position: str = ""
    listed: bool = False

    def __str__(self) -> str:
        if self.listed:
            return f"{self.function} is marked for manual interop; skipped"
        where = f" ({self.position})" if self.position else ""
        return (
            f"{self.function} needs manual interop but is not marked as such:"
            f" {self.reason}{where}"
        )


def parse_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> ParseError:
    return ParseError(code=E_PARSE, message=message, context=context)


def unknown_type_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> UnknownTypeError:
    return UnknownTypeError(
        code=E_UNKNOWN_TYPE, message=message, context=context
    )


def unknown_program_type_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> UnknownProgramTypeError:
    return UnknownProgramTypeError(
        code=E_UNKNOWN_PROGRAM_TYPE, message=message, context=context
    )


def missing_retain_release_error(
    missing: Dict[str, list[str]],
) -> MissingRetainReleasePairError:
    detail = "; ".join(
        f"{handle} lacks {', '.join(names)}"
        for handle, names in sorted(missing.items())
    )
    return MissingRetainReleasePairError(
        code=E_MISSING_RETAIN_RELEASE,
        message=f"Handles without a Retain/Release pair: {detail}",
        context={"missing": missing},
    )


def config_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> ConfigError:
    return ConfigError(code=E_CONFIG, message=message, context=context)


def output_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> OutputError:
    return OutputError(code=E_WRITE_IO, message=message, context=context)


__all__ = [
    "InteropGenError",
    "ParseError",
    "UnknownTypeError",
    "UnknownProgramTypeError",
    "MissingRetainReleasePairError",
    "ConfigError",
    "OutputError",
    "IneligibleFunctionWarning",
    "parse_error",
    "unknown_type_error",
    "unknown_program_type_error",
    "missing_retain_release_error",
    "config_error",
    "output_error",
    "E_PARSE",
    "E_UNKNOWN_TYPE",
    "E_UNKNOWN_PROGRAM_TYPE",
    "E_MISSING_RETAIN_RELEASE",
    "E_CONFIG",
    "E_WRITE_IO",
]
