# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Translation of native types into generated Python expressions.

Two mappings are provided:

- :func:`ctypes_type` renders the exact ABI type used by the raw function
  table and by struct bodies. Handles are opaque addresses there.
- :func:`wrapper_type` decides how a value crosses the safe wrapper layer.
  It returns a :class:`WrapperType` or an :class:`Ineligible` outcome; shapes
  the wrapper layer cannot express are reported, not raised.

Both raise :class:`~impeller_interopgen.errors.UnknownProgramTypeError` for
types no rule covers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import unknown_program_type_error
from .model import (
    ExternalNativeType,
    NativeEnum,
    NativeFixedArray,
    NativeFunctionPointer,
    NativeHandle,
    NativeNullableType,
    NativePointerType,
    NativePrimitiveType,
    NativeStruct,
    NativeType,
    unwrap,
)

STRING_PARAM_TYPE = "Utf8String"
ENUM_CTYPE = "ctypes.c_int32"
ADDRESS_CTYPE = "ctypes.c_void_p"


class Conversion(Enum):
    VALUE = "value"
    VOID = "void"
    ENUM = "enum"
    HANDLE = "handle"
    STRING = "string"
    BY_REFERENCE = "by_reference"
    MARSHALLED = "marshalled"


class IneligibleReason(Enum):
    MANUAL_INTEROP_LISTED = "listed for manual interop"
    GENERIC_DATA_POINTER = "unsized data pointer"
    FUNCTION_POINTER = "function pointer"
    MULTI_LEVEL_POINTER = "pointer indirection level > 1"
    HANDLE_INDIRECTION = "handle behind a pointer"
    EXTERNAL_TYPE = "hand-marshalled struct passed by value"


@dataclass(frozen=True)
class WrapperType:
    annotation: str
    conversion: Conversion
    handle: Optional[NativeHandle] = None
    marshaller: Optional[str] = None
    optional: bool = False

    @property
    def hint(self) -> str:
        """Annotation as written in a signature."""
        if self.optional and self.conversion is not Conversion.VOID:
            return f"Optional[{self.annotation}]"
        return self.annotation


@dataclass(frozen=True)
class Ineligible:
    reason: IneligibleReason
    detail: str = ""
    position: str = ""

    def __str__(self) -> str:
        text = self.reason.value
        if self.detail:
            text += f" {self.detail}"
        return text


WrapperMapping = Union[WrapperType, Ineligible]


# Raw (ABI) mapping -----------------------------------------------------------


_ADDRESS_ELEMENTS = (ExternalNativeType, NativeHandle, NativeFunctionPointer)


def _is_void(t: NativeType) -> bool:
    return isinstance(t, NativePrimitiveType) and t.name == "void"


def _pointer(inner: str, levels: int) -> str:
    for _ in range(levels):
        inner = f"ctypes.POINTER({inner})"
    return inner


def ctypes_type(
    t: NativeType, allow_strings: bool = True, for_return: bool = False
) -> Optional[str]:
    """Return the ``ctypes`` expression for ``t``; ``None`` means void."""
    if isinstance(t, NativeHandle):
        return ADDRESS_CTYPE
    if isinstance(t, NativeNullableType):
        return ctypes_type(t.element, allow_strings, for_return)
    if t.is_string and allow_strings:
        return "ctypes.c_char_p" if for_return else STRING_PARAM_TYPE
    if t.is_void_pointer:
        return ADDRESS_CTYPE
    if isinstance(t, NativePrimitiveType):
        return t.ctypes_name
    if isinstance(t, NativeEnum):
        return ENUM_CTYPE
    if isinstance(t, NativeStruct):
        return t.name
    if isinstance(t, NativePointerType):
        element = unwrap(t.element)
        # Addresses with no richer ctypes spelling: one level is consumed.
        if isinstance(element, _ADDRESS_ELEMENTS) or _is_void(element):
            return _pointer(ADDRESS_CTYPE, t.level - 1)
        inner = ctypes_type(element, allow_strings=False)
        return _pointer(inner, t.level)
    if isinstance(t, NativeFixedArray):
        return f"{ctypes_type(t.element, allow_strings=False)} * {t.size}"
    if isinstance(t, NativeFunctionPointer):
        return ADDRESS_CTYPE
    raise unknown_program_type_error(
        f"No ctypes mapping for type {t}", {"type": str(t)}
    )


# Safe (wrapper) mapping ------------------------------------------------------


_REFERENCE_ELEMENTS = (NativeStruct, NativePrimitiveType, NativeEnum)


def wrapper_type(t: NativeType, allow_handles: bool = True) -> WrapperMapping:
    if isinstance(t, NativeNullableType):
        inner = wrapper_type(t.element, allow_handles)
        if isinstance(inner, Ineligible) or not t.nullable:
            return inner
        return WrapperType(
            inner.annotation,
            inner.conversion,
            handle=inner.handle,
            marshaller=inner.marshaller,
            optional=True,
        )

    if isinstance(t, NativeHandle):
        if not allow_handles:
            return Ineligible(
                IneligibleReason.HANDLE_INDIRECTION, f"({t.name})"
            )
        return WrapperType(t.name, Conversion.HANDLE, handle=t)

    if isinstance(t, NativePointerType) and t.level == 1:
        element = unwrap(t.element)
        if isinstance(element, ExternalNativeType):
            return WrapperType(
                "object", Conversion.MARSHALLED, marshaller=element.marshaller
            )

    if t.is_string:
        return WrapperType("str", Conversion.STRING)
    if t.is_generic_data_pointer:
        return Ineligible(IneligibleReason.GENERIC_DATA_POINTER)
    if t.is_void_pointer:
        return WrapperType("int", Conversion.VALUE)

    if isinstance(t, NativePrimitiveType):
        if t.name == "void":
            return WrapperType("None", Conversion.VOID)
        return WrapperType(t.python_name, Conversion.VALUE)
    if isinstance(t, NativeEnum):
        return WrapperType(t.name, Conversion.ENUM)
    if isinstance(t, NativeStruct):
        return WrapperType(t.name, Conversion.VALUE)
    if isinstance(t, ExternalNativeType):
        return Ineligible(IneligibleReason.EXTERNAL_TYPE, f"({t.name})")

    if isinstance(t, NativePointerType):
        if t.level != 1:
            return Ineligible(IneligibleReason.MULTI_LEVEL_POINTER, f"({t})")
        element = unwrap(t.element)
        if isinstance(element, NativeHandle):
            return wrapper_type(element, allow_handles=False)
        if isinstance(element, NativeFunctionPointer):
            return Ineligible(IneligibleReason.FUNCTION_POINTER, f"({t})")
        if isinstance(element, _REFERENCE_ELEMENTS):
            return WrapperType(
                ctypes_type(element, allow_strings=False),
                Conversion.BY_REFERENCE,
            )

    if isinstance(t, NativeFunctionPointer):
        return Ineligible(IneligibleReason.FUNCTION_POINTER, f"({t})")

    raise unknown_program_type_error(
        f"No wrapper mapping for type {t}", {"type": str(t)}
    )


__all__ = [
    "Conversion",
    "IneligibleReason",
    "WrapperType",
    "Ineligible",
    "WrapperMapping",
    "ctypes_type",
    "wrapper_type",
    "STRING_PARAM_TYPE",
]
