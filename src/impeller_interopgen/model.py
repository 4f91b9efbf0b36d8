# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Semantic model of the native API.

Types are plain descriptive objects built once per run by
:class:`impeller_interopgen.builder.ModelBuilder` and frozen into a
:class:`NativeModel` snapshot. Structural predicates (``is_string`` and
friends) are computed from the shape of the type, never tagged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class NativeType:
    """Base of all native types."""

    def _single_pointee(self) -> Optional["NativeType"]:
        t = unwrap(self)
        if isinstance(t, NativePointerType) and t.level == 1:
            return unwrap(t.element)
        return None

    def _points_to_primitive(self, name: str) -> bool:
        pointee = self._single_pointee()
        return isinstance(pointee, NativePrimitiveType) and pointee.name == name

    @property
    def is_string(self) -> bool:
        return self._points_to_primitive("int8")

    @property
    def is_generic_data_pointer(self) -> bool:
        return self._points_to_primitive("uint8")

    @property
    def is_void_pointer(self) -> bool:
        return self._points_to_primitive("void")


@dataclass(frozen=True, eq=False)
class NativePrimitiveType(NativeType):
    name: str
    ctypes_name: Optional[str]
    python_name: str

    def __str__(self) -> str:
        return self.name


# Closed set of machine primitives: (name, ctypes spelling, Python annotation)
PRIMITIVES: Dict[str, NativePrimitiveType] = {
    p.name: p
    for p in (
        NativePrimitiveType("void", None, "None"),
        NativePrimitiveType("int8", "ctypes.c_int8", "int"),
        NativePrimitiveType("uint8", "ctypes.c_uint8", "int"),
        NativePrimitiveType("int16", "ctypes.c_int16", "int"),
        NativePrimitiveType("uint16", "ctypes.c_uint16", "int"),
        NativePrimitiveType("int32", "ctypes.c_int32", "int"),
        NativePrimitiveType("uint32", "ctypes.c_uint32", "int"),
        NativePrimitiveType("int64", "ctypes.c_int64", "int"),
        NativePrimitiveType("uint64", "ctypes.c_uint64", "int"),
        NativePrimitiveType("float", "ctypes.c_float", "float"),
        NativePrimitiveType("double", "ctypes.c_double", "float"),
        NativePrimitiveType("bool", "ctypes.c_bool", "bool"),
    )
}


class NativeEnum(NativeType):
    def __init__(self, name: str, members: Tuple[Tuple[str, int], ...] = ()):
        self.name = name
        self.members = tuple(members)

    def __repr__(self) -> str:
        return f"NativeEnum({self.name!r}, {len(self.members)} members)"

    def __str__(self) -> str:
        return self.name


class NativeStruct(NativeType):
    """A C struct; ``members`` keeps declaration (layout) order."""

    def __init__(self, name: str):
        self.name = name
        self._members: Tuple[NativeVar, ...] | None = None

    @property
    def members(self) -> Tuple["NativeVar", ...]:
        return self._members or ()

    def set_members(self, members) -> None:
        if self._members is not None:
            raise RuntimeError(f"members of struct {self.name} already set")
        self._members = tuple(members)

    def __repr__(self) -> str:
        return f"NativeStruct({self.name!r})"

    def __str__(self) -> str:
        return self.name


class NativeHandle(NativeType):
    """Opaque reference-counted resource; identity is the handle name."""

    def __init__(self, name: str):
        self.name = name
        self.methods: Tuple[NativeFunction, ...] = ()
        self.factories: Tuple[NativeFunction, ...] = ()
        self.retain: Optional[NativeFunction] = None
        self.release: Optional[NativeFunction] = None

    @property
    def retain_name(self) -> str:
        return f"{self.name}Retain"

    @property
    def release_name(self) -> str:
        return f"{self.name}Release"

    @property
    def resource_name(self) -> str:
        return f"{self.name}Handle"

    def __eq__(self, other) -> bool:
        return isinstance(other, NativeHandle) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("handle", self.name))

    def __repr__(self) -> str:
        return f"NativeHandle({self.name!r})"

    def __str__(self) -> str:
        return self.name


class ExternalNativeType(NativeType):
    """A struct marshalled by hand-written code; never elaborated."""

    def __init__(self, name: str, marshaller: str):
        self.name = name
        self.marshaller = marshaller

    def __repr__(self) -> str:
        return f"ExternalNativeType({self.name!r})"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class NativePointerType(NativeType):
    element: NativeType
    level: int = 1

    def __str__(self) -> str:
        return f"{self.element}{'*' * self.level}"


@dataclass(frozen=True, eq=False)
class NativeFixedArray(NativeType):
    element: NativeType
    size: int

    def __str__(self) -> str:
        return f"{self.element}[{self.size}]"


@dataclass(frozen=True, eq=False)
class NativeFunctionPointer(NativeType):
    return_type: NativeType
    parameters: Tuple["NativeVar", ...] = ()

    def __str__(self) -> str:
        params = ", ".join(str(p.type) for p in self.parameters)
        return f"{self.return_type} (*)({params})"


@dataclass(frozen=True, eq=False)
class NativeNamedFunctionPointer(NativeFunctionPointer):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class NativeNullableType(NativeType):
    """Nullability annotation around a pointer or handle type."""

    element: NativeType
    nullable: bool

    def __str__(self) -> str:
        return f"{self.element}{'?' if self.nullable else '!'}"


def unwrap(t: NativeType) -> NativeType:
    return t.element if isinstance(t, NativeNullableType) else t


def is_optional(t: NativeType) -> bool:
    return isinstance(t, NativeNullableType) and t.nullable


@dataclass(frozen=True)
class NativeVar:
    name: str
    type: NativeType

    def __str__(self) -> str:
        return f"{self.name} : {self.type}"


@dataclass(frozen=True, eq=False)
class NativeFunction:
    name: str
    return_type: NativeType
    parameters: Tuple[NativeVar, ...] = ()

    @property
    def first_parameter_handle(self) -> Optional[NativeHandle]:
        if not self.parameters:
            return None
        t = unwrap(self.parameters[0].type)
        return t if isinstance(t, NativeHandle) else None

    @property
    def returned_handle(self) -> Optional[NativeHandle]:
        t = unwrap(self.return_type)
        return t if isinstance(t, NativeHandle) else None

    @property
    def is_lifecycle(self) -> bool:
        """Retain/Release taking exactly one handle."""
        return (
            self.name.endswith(("Retain", "Release"))
            and len(self.parameters) == 1
            and isinstance(unwrap(self.parameters[0].type), NativeHandle)
        )

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"{self.name}({params}) -> {self.return_type}"


class FunctionKind(Enum):
    METHOD = "method"
    FACTORY = "factory"
    GLOBAL = "global"


@dataclass(frozen=True)
class Classification:
    kind: FunctionKind
    handle: Optional[str] = None


@dataclass(frozen=True)
class NativeModel:
    """Immutable snapshot of one parsed header."""

    handles: Tuple[NativeHandle, ...] = ()
    structs: Tuple[NativeStruct, ...] = ()
    enums: Tuple[NativeEnum, ...] = ()
    external_types: Tuple[ExternalNativeType, ...] = ()
    functions: Tuple[NativeFunction, ...] = ()
    global_functions: Tuple[NativeFunction, ...] = ()
    version: int = 0
    classification: Dict[str, Classification] = field(default_factory=dict)

    def handle(self, name: str) -> Optional[NativeHandle]:
        for h in self.handles:
            if h.name == name:
                return h
        return None

    def struct(self, name: str) -> Optional[NativeStruct]:
        for s in self.structs:
            if s.name == name:
                return s
        return None

    def enum(self, name: str) -> Optional[NativeEnum]:
        for e in self.enums:
            if e.name == name:
                return e
        return None

    def function(self, name: str) -> Optional[NativeFunction]:
        for f in self.functions:
            if f.name == name:
                return f
        return None


__all__ = [
    "NativeType",
    "NativePrimitiveType",
    "PRIMITIVES",
    "NativeEnum",
    "NativeStruct",
    "NativeHandle",
    "ExternalNativeType",
    "NativePointerType",
    "NativeFixedArray",
    "NativeFunctionPointer",
    "NativeNamedFunctionPointer",
    "NativeNullableType",
    "NativeVar",
    "NativeFunction",
    "FunctionKind",
    "Classification",
    "NativeModel",
    "unwrap",
    "is_optional",
]
