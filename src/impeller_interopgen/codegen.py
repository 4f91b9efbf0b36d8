# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Render a :class:`~impeller_interopgen.model.NativeModel` as a Python module.

The module is emitted in a fixed layer order; each layer only refers to
names defined by earlier layers (or resolved at call time):

1. enums (``enum.IntEnum``)
2. handle resources (``<Handle>Handle``) bound to the Retain/Release pair
3. value types (``ctypes.Structure``)
4. the raw ABI table (``UnsafeNativeMethods``)
5. safe wrapper classes (``<Handle>``)
"""

from __future__ import annotations

import keyword
import re
from dataclasses import dataclass, field
from typing import Dict, List

from .config import InteropConfig
from .eligibility import HandleSurface, SurfaceEntry, plan_handle
from .errors import IneligibleFunctionWarning, missing_retain_release_error
from .logging import get_logger
from .model import NativeFunction, NativeHandle, NativeModel, NativeStruct
from .templates import (
    RUNTIME_PREAMBLE,
    TEMPLATE_HEADER,
    TEMPLATE_NATIVE_METHODS_TAIL,
    TEMPLATE_VERSION_CHECK,
)
from .type_mapping import Conversion, WrapperType, ctypes_type
from ._version import __version__ as TOOL_VERSION

logger = get_logger("codegen")

INDENT = "    "

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@dataclass
class GenerationResult:
    text: str
    warnings: List[IneligibleFunctionWarning] = field(default_factory=list)
    surfaces: List[HandleSurface] = field(default_factory=list)

    @property
    def listed(self) -> List[IneligibleFunctionWarning]:
        return [w for w in self.warnings if w.listed]

    @property
    def unlisted(self) -> List[IneligibleFunctionWarning]:
        return [w for w in self.warnings if not w.listed]


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def safe_identifier(name: str) -> str:
    if keyword.iskeyword(name) or keyword.issoftkeyword(name):
        return f"{name}_"
    return name


def check_lifecycle(model: NativeModel) -> None:
    """Every handle needs its Retain/Release pair before anything is emitted."""
    missing: Dict[str, list[str]] = {}
    for h in model.handles:
        names = []
        if h.retain is None:
            names.append(h.retain_name)
        if h.release is None:
            names.append(h.release_name)
        if names:
            missing[h.name] = names
    if missing:
        raise missing_retain_release_error(missing)


# Layers ----------------------------------------------------------------------


def render_enums(model: NativeModel) -> List[str]:
    lines: List[str] = []
    for en in model.enums:
        lines += ["", "", f"class {en.name}(enum.IntEnum):"]
        if not en.members:
            lines.append(f"{INDENT}pass")
        for member, value in en.members:
            lines.append(f"{INDENT}{member} = {value}")
    return lines


def render_handle_resources(model: NativeModel) -> List[str]:
    lines: List[str] = []
    for h in model.handles:
        lines += [
            "",
            "",
            f"class {h.resource_name}(NativeHandle):",
            f"{INDENT}__slots__ = ()",
        ]
        for op, fn in (("retain", h.retain_name), ("release", h.release_name)):
            lines += [
                "",
                f"{INDENT}@staticmethod",
                f"{INDENT}def _unsafe_{op}(address):",
                f"{INDENT * 2}UnsafeNativeMethods.{fn}(address)",
            ]
    return lines


def _struct_fields(s: NativeStruct) -> List[str]:
    if not s.members:
        return [f"{s.name}._fields_ = []"]
    lines = [f"{s.name}._fields_ = ["]
    for m in s.members:
        lines.append(
            f'{INDENT}("{m.name}", {ctypes_type(m.type, allow_strings=False)}),'
        )
    lines.append("]")
    return lines


def render_structs(model: NativeModel) -> List[str]:
    lines: List[str] = []
    # Shells first: fields may reference structs declared later.
    for s in model.structs:
        lines += ["", "", f"class {s.name}(ctypes.Structure):", f"{INDENT}pass"]
    if model.structs:
        lines.append("")
    for s in model.structs:
        lines.append("")
        lines += _struct_fields(s)
    return lines


def _raw_function(fn: NativeFunction) -> List[str]:
    if fn.is_lifecycle:
        restype = "None"
        argtypes = "ctypes.c_void_p"
    else:
        restype = str(ctypes_type(fn.return_type, for_return=True))
        argtypes = ", ".join(str(ctypes_type(p.type)) for p in fn.parameters)
    return [
        f"{INDENT}# {fn}",
        f"{INDENT}{fn.name} = RawFunction(",
        f'{INDENT * 2}"{fn.name}", {restype}, [{argtypes}]',
        f"{INDENT})",
    ]


def render_native_methods(
    model: NativeModel, config: InteropConfig
) -> List[str]:
    lines = [
        "",
        "",
        "class UnsafeNativeMethods:",
        f'{INDENT}"""Raw ABI table; one entry per exported function."""',
        "",
        f"{INDENT}{config.version_constant} = {model.version}",
    ]
    for fn in model.functions:
        lines.append("")
        lines += _raw_function(fn)
    version_check = ""
    if model.function(config.version_function) is not None:
        version_check = TEMPLATE_VERSION_CHECK.format(
            version_function=config.version_function,
            version_constant=config.version_constant,
        )
    tail = TEMPLATE_NATIVE_METHODS_TAIL.format(
        version_check=version_check, library=config.library_name
    )
    lines += tail.rstrip("\n").split("\n")
    return lines


# Safe wrapper layer -----------------------------------------------------------


def member_name(fn: NativeFunction, handle: NativeHandle, prefix: str) -> str:
    name = fn.name
    if name.startswith(handle.name):
        name = name[len(handle.name):]
    elif name.startswith(prefix):
        name = name[len(prefix):]
    if not name:
        name = fn.name
    return safe_identifier(snake_case(name))


def _argument(name: str, w: WrapperType) -> str:
    if w.conversion is Conversion.HANDLE:
        expr = f"{name}.handle.address"
    elif w.conversion is Conversion.BY_REFERENCE:
        expr = f"ctypes.byref({name})"
    elif w.conversion is Conversion.ENUM:
        return f"int({name})"
    elif w.conversion is Conversion.MARSHALLED:
        return f"_marshal_{name}"
    else:
        return name
    if w.optional:
        return f"None if {name} is None else {expr}"
    return expr


def _result(fn: NativeFunction, w: WrapperType) -> List[str]:
    """Statements turning the native value ``_ret`` into the wrapper result."""
    if w.conversion is Conversion.HANDLE:
        h = w.handle
        lines = []
        if w.optional:
            lines += ["if not _ret:", f"{INDENT}return None"]
        if fn.name.endswith("New"):
            lines.append(f"return {h.name}({h.resource_name}(_ret))")
        else:
            lines.append(
                f"return {h.name}({h.resource_name}.retain_from_native(_ret))"
            )
        return lines
    if w.conversion is Conversion.ENUM:
        return [f"return {w.annotation}(_ret)"]
    if w.conversion is Conversion.STRING:
        return ['return None if _ret is None else _ret.decode("utf-8")']
    if w.conversion is Conversion.BY_REFERENCE:
        lines = []
        if w.optional:
            lines += ["if not _ret:", f"{INDENT}return None"]
        return lines + ["return _ret.contents"]
    return ["return _ret"]


def render_wrapper_method(
    entry: SurfaceEntry, handle: NativeHandle, name: str
) -> List[str]:
    fn = entry.function
    plan = entry.plan
    params = [
        (safe_identifier(p.name), w) for p, w in plan.parameters
    ]
    signature = ", ".join(f"{n}: {w.hint}" for n, w in params)
    lines: List[str] = []
    if entry.is_factory:
        lines.append("@staticmethod")
        lines.append(f"def {name}({signature}) -> {plan.result.hint}:")
    else:
        sig = f"self, {signature}" if signature else "self"
        lines.append(f"def {name}({sig}) -> {plan.result.hint}:")
    lines.append(f'{INDENT}"""Wraps ``{fn.name}``."""')

    body: List[str] = []
    depth = 1
    for n, w in params:
        if w.conversion is Conversion.MARSHALLED:
            body.append(
                f"{INDENT * depth}with {w.marshaller}.marshal({n})"
                f" as _marshal_{n}:"
            )
            depth += 1

    args = [_argument(n, w) for n, w in params]
    if not entry.is_factory:
        args.insert(0, "self.handle.address")
    call = f"UnsafeNativeMethods.{fn.name}({', '.join(args)})"

    pad = INDENT * depth
    if plan.result.conversion is Conversion.VOID:
        body.append(f"{pad}{call}")
    elif _result(fn, plan.result) == ["return _ret"]:
        body.append(f"{pad}return {call}")
    else:
        body.append(f"{pad}_ret = {call}")
        body += [f"{pad}{line}" for line in _result(fn, plan.result)]
    return lines + body


def render_wrappers(
    surfaces: List[HandleSurface], config: InteropConfig
) -> List[str]:
    lines: List[str] = []
    for surface in surfaces:
        h = surface.handle
        lines += [
            "",
            "",
            f"class {h.name}(NativeObject):",
            f'{INDENT}"""Safe wrapper owning one ``{h.name}`` reference."""',
            "",
            f"{INDENT}__slots__ = ()",
        ]
        used = set()
        for entry in surface.entries:
            name = member_name(entry.function, h, config.symbol_prefix)
            if name in used or name in ("handle", "dispose"):
                name = safe_identifier(snake_case(entry.function.name))
            used.add(name)
            lines.append("")
            lines += [
                f"{INDENT}{line}" if line else line
                for line in render_wrapper_method(entry, h, name)
            ]
    return lines


# Module ----------------------------------------------------------------------


def _marshaller_imports(model: NativeModel, config: InteropConfig) -> str:
    names = sorted({t.marshaller for t in model.external_types})
    if not names:
        return ""
    return f"\nfrom {config.marshaller_module} import {', '.join(names)}\n"


def generate_module(
    model: NativeModel, config: InteropConfig, *, source: str
) -> GenerationResult:
    """Render the bindings module for ``model``.

    Raises :class:`MissingRetainReleasePairError` before emitting anything
    when a handle lacks its lifecycle pair.
    """
    check_lifecycle(model)

    surfaces = [plan_handle(h, config) for h in model.handles]
    warnings = [w for s in surfaces for w in s.skipped]

    header = TEMPLATE_HEADER.format(
        src=source,
        tool_ver=TOOL_VERSION,
        version_constant=config.version_constant,
        version=model.version,
        extra_imports=_marshaller_imports(model, config),
    )
    lines = header.rstrip("\n").split("\n")
    lines += RUNTIME_PREAMBLE.rstrip("\n").split("\n")
    lines += render_enums(model)
    lines += render_handle_resources(model)
    lines += render_structs(model)
    lines += render_native_methods(model, config)
    lines += render_wrappers(surfaces, config)
    text = "\n".join(lines) + "\n"

    logger.debug(
        "rendered %d handles (%d wrapped functions, %d skipped)",
        len(model.handles),
        sum(len(s.entries) for s in surfaces),
        len(warnings),
    )
    return GenerationResult(text=text, warnings=warnings, surfaces=surfaces)


__all__ = [
    "GenerationResult",
    "generate_module",
    "check_lifecycle",
    "member_name",
    "snake_case",
    "render_enums",
    "render_handle_resources",
    "render_structs",
    "render_native_methods",
    "render_wrappers",
]
