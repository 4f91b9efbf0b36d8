# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Per-function eligibility for automatic wrapping.

Eligibility is decided for a whole function before any text is emitted: a
single parameter (or the result) that the wrapper layer cannot express
makes the function ineligible, and the first offending position is kept
for the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Tuple, Union

from .config import InteropConfig
from .errors import IneligibleFunctionWarning
from .model import NativeFunction, NativeHandle, NativeVar
from .type_mapping import (
    Conversion,
    Ineligible,
    IneligibleReason,
    WrapperType,
    wrapper_type,
)


@dataclass(frozen=True)
class Eligible:
    parameters: Tuple[Tuple[NativeVar, WrapperType], ...]
    result: WrapperType


Assessment = Union[Eligible, Ineligible]


def is_lifecycle_name(name: str) -> bool:
    return name.endswith(("Retain", "Release"))


def assess_function(
    fn: NativeFunction,
    handle: NativeHandle | None,
    is_factory: bool,
    config: InteropConfig,
) -> Assessment:
    """Decide whether ``fn`` can be wrapped automatically.

    For methods (``is_factory`` false with a ``handle``) the first parameter
    is the receiver and is not part of the public signature.
    """
    if config.is_manual_interop(fn.name):
        return Ineligible(IneligibleReason.MANUAL_INTEROP_LISTED)

    params = fn.parameters
    if handle is not None and not is_factory:
        params = params[1:]

    result = wrapper_type(fn.return_type, allow_handles=True)
    if isinstance(result, Ineligible):
        return replace(result, position="return value")
    if result.conversion is Conversion.MARSHALLED:
        return Ineligible(
            IneligibleReason.EXTERNAL_TYPE,
            f"({result.marshaller})",
            position="return value",
        )

    mapped = []
    for p in params:
        w = wrapper_type(p.type, allow_handles=True)
        if isinstance(w, Ineligible):
            return replace(w, position=f"parameter '{p.name}'")
        mapped.append((p, w))
    return Eligible(tuple(mapped), result)


@dataclass(frozen=True)
class SurfaceEntry:
    function: NativeFunction
    is_factory: bool
    plan: Eligible


@dataclass
class HandleSurface:
    """The wrapped members of one handle class and the ones skipped."""

    handle: NativeHandle
    entries: List[SurfaceEntry] = field(default_factory=list)
    skipped: List[IneligibleFunctionWarning] = field(default_factory=list)


def plan_handle(handle: NativeHandle, config: InteropConfig) -> HandleSurface:
    surface = HandleSurface(handle)
    candidates = [(f, False) for f in handle.methods] + [
        (f, True) for f in handle.factories
    ]
    for fn, is_factory in candidates:
        if is_lifecycle_name(fn.name):
            continue
        outcome = assess_function(fn, handle, is_factory, config)
        if isinstance(outcome, Ineligible):
            surface.skipped.append(
                IneligibleFunctionWarning(
                    function=fn.name,
                    handle=handle.name,
                    reason=str(outcome),
                    position=outcome.position,
                    listed=(
                        outcome.reason
                        is IneligibleReason.MANUAL_INTEROP_LISTED
                    ),
                )
            )
            continue
        surface.entries.append(SurfaceEntry(fn, is_factory, outcome))
    return surface


__all__ = [
    "Eligible",
    "Assessment",
    "assess_function",
    "is_lifecycle_name",
    "SurfaceEntry",
    "HandleSurface",
    "plan_handle",
]
