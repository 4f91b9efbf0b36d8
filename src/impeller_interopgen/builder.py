# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Semantic model builder.

Turns the libclang declaration stream produced by :mod:`.ingest` into a
:class:`~impeller_interopgen.model.NativeModel`. Passes run in dependency
order (typedefs, enums, structs, functions, classification); named types
are memoized so every reference to a declaration yields the same model
object.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from clang.cindex import CursorKind, TypeKind

from .config import InteropConfig
from .errors import unknown_type_error
from .ingest import (
    NONNULL_ANNOTATION,
    NULLABLE_ANNOTATION,
    SENTINEL_ENUM,
    HeaderDeclarations,
)
from .logging import get_logger
from .model import (
    PRIMITIVES,
    Classification,
    ExternalNativeType,
    FunctionKind,
    NativeEnum,
    NativeFixedArray,
    NativeFunction,
    NativeFunctionPointer,
    NativeHandle,
    NativeModel,
    NativeNamedFunctionPointer,
    NativeNullableType,
    NativePointerType,
    NativeStruct,
    NativeType,
    NativeVar,
)

logger = get_logger("builder")

HandlePredicate = Callable[[object, InteropConfig], bool]

_PRIMITIVE_KINDS = {
    TypeKind.VOID: "void",
    TypeKind.CHAR_S: "int8",
    TypeKind.SCHAR: "int8",
    TypeKind.CHAR_U: "int8",
    TypeKind.UCHAR: "uint8",
    TypeKind.SHORT: "int16",
    TypeKind.USHORT: "uint16",
    TypeKind.INT: "int32",
    TypeKind.UINT: "uint32",
    TypeKind.LONGLONG: "int64",
    TypeKind.ULONGLONG: "uint64",
    TypeKind.FLOAT: "float",
    TypeKind.DOUBLE: "double",
    TypeKind.BOOL: "bool",
}

_FUNCTION_KINDS = (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO)

_ANONYMOUS_RE = re.compile(r"\((unnamed|anonymous)\b")


def _strip_elaborated(t):
    while t.kind == TypeKind.ELABORATED:
        t = t.get_named_type()
    return t


def _is_function(t) -> bool:
    return t.get_canonical().kind in _FUNCTION_KINDS


def _function_type(t):
    """Strip typedef, elaborated and paren sugar down to the function type."""
    while t.kind not in _FUNCTION_KINDS:
        if t.kind == TypeKind.ELABORATED:
            t = t.get_named_type()
        elif t.kind == TypeKind.TYPEDEF:
            t = t.get_declaration().underlying_typedef_type
        else:
            t = t.get_canonical()
    return t


def _argument_types(fn) -> list:
    if fn.kind != TypeKind.FUNCTIONPROTO:
        return []
    return list(fn.argument_types())


def _tag_key(decl) -> str:
    usr = decl.get_usr()
    if usr:
        return usr
    loc = decl.location
    return f"{loc.file}:{loc.line}:{loc.column}"


def _nullability(cursor) -> Optional[bool]:
    notes = {
        c.spelling
        for c in cursor.get_children()
        if c.kind == CursorKind.ANNOTATE_ATTR
    }
    if NULLABLE_ANNOTATION in notes:
        return True
    if NONNULL_ANNOTATION in notes:
        return False
    return None


def _location(cursor) -> str:
    loc = cursor.location
    name = loc.file.name if loc.file is not None else "<unknown>"
    return f"{name}:{loc.line}"


def default_is_handle(cursor, config: InteropConfig) -> bool:
    """``typedef struct Name_* Name;`` with an incomplete ``Name_``."""
    name = cursor.spelling
    if not name.startswith(config.symbol_prefix):
        return False
    underlying = _strip_elaborated(cursor.underlying_typedef_type)
    if underlying.kind != TypeKind.POINTER:
        return False
    pointee = _strip_elaborated(underlying.get_pointee())
    if pointee.kind != TypeKind.RECORD:
        return False
    decl = pointee.get_declaration()
    return (
        decl.kind == CursorKind.STRUCT_DECL
        and decl.spelling == f"{name}_"
        and decl.get_definition() is None
    )


class ModelBuilder:
    """Builds one immutable :class:`NativeModel` from parsed declarations."""

    def __init__(
        self,
        declarations: HeaderDeclarations,
        config: InteropConfig,
        *,
        is_handle: HandlePredicate = default_is_handle,
    ):
        self.decls = declarations
        self.config = config
        self.is_handle = is_handle

        self._handles: List[NativeHandle] = []
        self._structs: List[NativeStruct] = []
        self._enums: List[NativeEnum] = []
        self._externals: List[ExternalNativeType] = []
        self._functions: List[NativeFunction] = []
        self._version = 0

        # memoized named types
        self._typedefs: Dict[str, NativeType] = {}
        self._fn_typedef_cursors: Dict[str, object] = {}
        self._tags: Dict[str, NativeType] = {}
        self._enum_by_name: Dict[str, NativeEnum] = {}
        self._anonymous_names: Dict[str, str] = {}
        self._handle_storage: Dict[str, NativeHandle] = {}

        self._model: Optional[NativeModel] = None

    # Passes -------------------------------------------------------------------
    def build(self) -> NativeModel:
        if self._model is not None:
            return self._model
        self._typedef_pass()
        self._enum_pass()
        self._struct_pass()
        for name in list(self._fn_typedef_cursors):
            self._named_function_pointer(name)
        self._function_pass()
        classification = self._classification_pass()
        self._model = NativeModel(
            handles=tuple(self._handles),
            structs=tuple(self._structs),
            enums=tuple(self._enums),
            external_types=tuple(self._externals),
            functions=tuple(self._functions),
            global_functions=tuple(
                f
                for f in self._functions
                if classification[f.name].kind is FunctionKind.GLOBAL
            ),
            version=self._version,
            classification=classification,
        )
        logger.debug(
            "model: %d handles, %d structs, %d enums, %d functions, version %d",
            len(self._handles),
            len(self._structs),
            len(self._enums),
            len(self._functions),
            self._version,
        )
        return self._model

    def _typedef_pass(self) -> None:
        for td in self.decls.typedefs:
            name = td.spelling
            if name in self._typedefs or name in self._fn_typedef_cursors:
                continue
            if self.is_handle(td, self.config):
                handle = NativeHandle(name)
                self._handles.append(handle)
                self._typedefs[name] = handle
                self._handle_storage[f"{name}_"] = handle
                continue
            underlying = _strip_elaborated(td.underlying_typedef_type)
            if underlying.kind == TypeKind.POINTER and _is_function(
                underlying.get_pointee()
            ):
                self._fn_typedef_cursors[name] = td
            elif underlying.kind in (TypeKind.RECORD, TypeKind.ENUM):
                tag = underlying.get_declaration()
                if not tag.spelling or _ANONYMOUS_RE.search(tag.spelling):
                    self._anonymous_names[_tag_key(tag)] = name

    def _enum_pass(self) -> None:
        for decl in self.decls.enums:
            if not decl.is_definition():
                continue
            name = self._tag_name(decl)
            members = tuple(
                (c.spelling, int(c.enum_value))
                for c in decl.get_children()
                if c.kind == CursorKind.ENUM_CONSTANT_DECL
            )
            if name == SENTINEL_ENUM:
                for member, value in members:
                    if member == self.config.version_constant:
                        self._version = value
                continue
            if name in self._enum_by_name:
                continue
            en = NativeEnum(name, members)
            self._enums.append(en)
            self._enum_by_name[name] = en

    def _struct_pass(self) -> None:
        # Shells first so structs can reference each other in any order.
        defined = []
        for decl in self.decls.structs:
            name = self._tag_name(decl)
            marshaller = self.config.marshaller_for(name)
            if marshaller is not None:
                if name not in self._tags:
                    ext = ExternalNativeType(name, marshaller)
                    self._externals.append(ext)
                    self._tags[name] = ext
                continue
            if not decl.is_definition() or name in self._handle_storage:
                continue
            if name in self._tags:
                continue
            s = NativeStruct(name)
            self._structs.append(s)
            self._tags[name] = s
            defined.append((s, decl))

        for s, decl in defined:
            members = []
            for f in decl.get_children():
                if f.kind != CursorKind.FIELD_DECL:
                    continue
                if f.is_bitfield():
                    raise unknown_type_error(
                        f"Bit-field {s.name}.{f.spelling} is not supported",
                        {"struct": s.name, "at": _location(f)},
                    )
                members.append(
                    NativeVar(f.spelling, self._annotated(f.type, f))
                )
            s.set_members(members)

    def _function_pass(self) -> None:
        seen = set()
        for decl in self.decls.functions:
            name = decl.spelling
            if name in seen:
                continue
            seen.add(name)
            params = tuple(
                NativeVar(p.spelling or f"arg{i}", self._annotated(p.type, p))
                for i, p in enumerate(decl.get_arguments())
            )
            self._functions.append(
                NativeFunction(
                    name=name,
                    return_type=self._annotated(decl.result_type, decl),
                    parameters=params,
                )
            )

    def _classification_pass(self) -> Dict[str, Classification]:
        methods: Dict[str, list] = {h.name: [] for h in self._handles}
        factories: Dict[str, list] = {h.name: [] for h in self._handles}
        classification: Dict[str, Classification] = {}
        for f in self._functions:
            owner = f.first_parameter_handle
            if owner is not None:
                methods[owner.name].append(f)
                classification[f.name] = Classification(
                    FunctionKind.METHOD, owner.name
                )
                continue
            produced = f.returned_handle
            if produced is not None and f.name.endswith("New"):
                factories[produced.name].append(f)
                classification[f.name] = Classification(
                    FunctionKind.FACTORY, produced.name
                )
                continue
            classification[f.name] = Classification(FunctionKind.GLOBAL)

        for h in self._handles:
            h.methods = tuple(methods[h.name])
            h.factories = tuple(factories[h.name])
            for f in h.methods:
                if not f.is_lifecycle:
                    continue
                if f.name == h.retain_name:
                    h.retain = f
                elif f.name == h.release_name:
                    h.release = f
        return classification

    # Type mapping ------------------------------------------------------------
    def _tag_name(self, decl) -> str:
        name = decl.spelling
        if name and not _ANONYMOUS_RE.search(name):
            return name
        alias = self._anonymous_names.get(_tag_key(decl))
        if alias is None:
            raise unknown_type_error(
                f"Anonymous {decl.kind.name.lower()} has no typedef name",
                {"at": _location(decl)},
            )
        return alias

    def _annotated(self, t, cursor) -> NativeType:
        mapped = self._map_type(t)
        nullable = _nullability(cursor)
        if nullable is None:
            return mapped
        return NativeNullableType(mapped, nullable)

    def _named_function_pointer(self, name: str) -> NativeType:
        mapped = self._typedefs.get(name)
        if mapped is not None:
            return mapped
        td = self._fn_typedef_cursors[name]
        fn = _function_type(
            _strip_elaborated(td.underlying_typedef_type).get_pointee()
        )
        arg_types = _argument_types(fn)
        parm_decls = [
            c for c in td.get_children() if c.kind == CursorKind.PARM_DECL
        ]
        if len(parm_decls) == len(arg_types):
            params = tuple(
                NativeVar(p.spelling or f"arg{i}", self._annotated(p.type, p))
                for i, p in enumerate(parm_decls)
            )
        else:
            params = tuple(
                NativeVar(f"arg{i}", self._map_type(a))
                for i, a in enumerate(arg_types)
            )
        mapped = NativeNamedFunctionPointer(
            return_type=self._annotated(fn.get_result(), td),
            parameters=params,
            name=name,
        )
        self._typedefs[name] = mapped
        return mapped

    def _function_pointer(self, pointee) -> NativeFunctionPointer:
        fn = _function_type(pointee)
        arg_types = _argument_types(fn)
        return NativeFunctionPointer(
            return_type=self._map_type(fn.get_result()),
            parameters=tuple(
                NativeVar(f"arg{i}", self._map_type(a))
                for i, a in enumerate(arg_types)
            ),
        )

    def _map_type(self, t) -> NativeType:
        kind = t.kind
        if kind == TypeKind.ELABORATED:
            return self._map_type(t.get_named_type())

        if kind == TypeKind.TYPEDEF:
            decl = t.get_declaration()
            name = decl.spelling
            mapped = self._typedefs.get(name)
            if mapped is not None:
                return mapped
            if name in self._fn_typedef_cursors:
                return self._named_function_pointer(name)
            return self._map_type(decl.underlying_typedef_type)

        if kind == TypeKind.RECORD:
            decl = t.get_declaration()
            if decl.kind != CursorKind.STRUCT_DECL:
                raise unknown_type_error(
                    f"Unknown type {t.spelling} (unions are not supported)",
                    {"type": t.spelling, "at": _location(decl)},
                )
            name = self._tag_name(decl)
            mapped = self._tags.get(name)
            if mapped is None:
                raise unknown_type_error(
                    f"Unknown type {t.spelling} (struct {name} is not defined)",
                    {"type": t.spelling, "at": _location(decl)},
                )
            return mapped

        if kind == TypeKind.ENUM:
            decl = t.get_declaration()
            en = self._enum_by_name.get(self._tag_name(decl))
            if en is None:
                raise unknown_type_error(
                    f"Unknown enum {t.spelling}", {"type": t.spelling}
                )
            return en

        if kind == TypeKind.POINTER:
            pointee = t.get_pointee()
            if _is_function(pointee):
                return self._function_pointer(pointee)
            storage = _strip_elaborated(pointee)
            if storage.kind == TypeKind.RECORD:
                handle = self._handle_storage.get(
                    storage.get_declaration().spelling
                )
                if handle is not None:
                    return handle
            level = 0
            cur = t
            while cur.kind == TypeKind.POINTER and not _is_function(
                cur.get_pointee()
            ):
                level += 1
                cur = cur.get_pointee()
            return NativePointerType(self._map_type(cur), level)

        if kind == TypeKind.CONSTANTARRAY:
            return NativeFixedArray(
                self._map_type(t.element_type), t.element_count
            )

        prim = _PRIMITIVE_KINDS.get(kind)
        if prim is not None:
            return PRIMITIVES[prim]

        raise unknown_type_error(
            f"Unknown type {t.spelling} ({kind.spelling})",
            {"type": t.spelling, "kind": kind.spelling},
        )


def build_model(
    declarations: HeaderDeclarations,
    config: InteropConfig,
    *,
    is_handle: HandlePredicate = default_is_handle,
) -> NativeModel:
    return ModelBuilder(declarations, config, is_handle=is_handle).build()


__all__ = [
    "ModelBuilder",
    "build_model",
    "default_is_handle",
    "HandlePredicate",
]
