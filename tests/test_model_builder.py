# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Tests for the semantic model builder."""

import pytest

from conftest import PAINT_HEADER

from impeller_interopgen.builder import ModelBuilder
from impeller_interopgen.errors import E_UNKNOWN_TYPE, UnknownTypeError
from impeller_interopgen.model import (
    ExternalNativeType,
    FunctionKind,
    NativeEnum,
    NativeFixedArray,
    NativeHandle,
    NativeNamedFunctionPointer,
    NativeNullableType,
    NativePointerType,
    NativePrimitiveType,
    NativeStruct,
)

LIFECYCLE = """
typedef struct ImpellerContext_* ImpellerContext;
typedef struct ImpellerSurface_* ImpellerSurface;
void ImpellerContextRetain(ImpellerContext IMPELLER_NULLABLE context);
void ImpellerContextRelease(ImpellerContext IMPELLER_NULLABLE context);
void ImpellerSurfaceRetain(ImpellerSurface IMPELLER_NULLABLE surface);
void ImpellerSurfaceRelease(ImpellerSurface IMPELLER_NULLABLE surface);
"""


def test_handle_with_factory_and_method(build):
    model = build(PAINT_HEADER)
    assert [h.name for h in model.handles] == ["ImpellerPaint"]
    paint = model.handles[0]
    assert [f.name for f in paint.factories] == ["ImpellerPaintNew"]
    assert [f.name for f in paint.methods] == [
        "ImpellerPaintRetain",
        "ImpellerPaintRelease",
        "ImpellerPaintSetColor",
    ]
    assert paint.retain is model.function("ImpellerPaintRetain")
    assert paint.release is model.function("ImpellerPaintRelease")
    assert model.version == 3


def test_struct_member_order(build):
    model = build(PAINT_HEADER)
    color = model.struct("ImpellerColor")
    assert [m.name for m in color.members] == ["red", "green", "blue", "alpha"]
    assert all(
        isinstance(m.type, NativePrimitiveType) and m.type.name == "float"
        for m in color.members
    )
    again = build(PAINT_HEADER).struct("ImpellerColor")
    assert [m.name for m in again.members] == [m.name for m in color.members]


def test_handle_storage_struct_is_not_modeled(build):
    model = build(PAINT_HEADER)
    assert model.struct("ImpellerPaint_") is None
    assert [s.name for s in model.structs] == ["ImpellerColor"]


def test_enums_keep_declaration_order_and_values(build):
    model = build(
        """
        typedef enum ImpellerBlendMode {
          kImpellerBlendModeClear = 0,
          kImpellerBlendModeSource = 5,
          kImpellerBlendModeDestination = 2,
        } ImpellerBlendMode;
        typedef enum ImpellerFillType {
          kImpellerFillTypeNonZero,
          kImpellerFillTypeOdd,
        } ImpellerFillType;
        """
    )
    assert [e.name for e in model.enums] == [
        "ImpellerBlendMode",
        "ImpellerFillType",
    ]
    assert model.enum("ImpellerBlendMode").members == (
        ("kImpellerBlendModeClear", 0),
        ("kImpellerBlendModeSource", 5),
        ("kImpellerBlendModeDestination", 2),
    )
    assert model.enum("ImpellerFillType").members == (
        ("kImpellerFillTypeNonZero", 0),
        ("kImpellerFillTypeOdd", 1),
    )


def test_version_sentinel_is_not_an_enum(build):
    model = build("")
    assert model.enums == ()
    assert model.version == 3


def test_nullability_annotations(build):
    model = build(
        LIFECYCLE
        + """
        ImpellerSurface IMPELLER_NULLABLE ImpellerSurfaceCreateNew(
            ImpellerContext IMPELLER_NONNULL context,
            const char* IMPELLER_NONNULL label,
            int count);
        """
    )
    fn = model.function("ImpellerSurfaceCreateNew")
    assert isinstance(fn.return_type, NativeNullableType)
    assert fn.return_type.nullable is True
    assert fn.return_type.element is model.handle("ImpellerSurface")

    context, label, count = fn.parameters
    assert isinstance(context.type, NativeNullableType)
    assert context.type.nullable is False
    assert isinstance(label.type, NativeNullableType)
    assert label.type.is_string
    assert isinstance(count.type, NativePrimitiveType)


def test_integer_typedefs_and_bool(build):
    model = build(
        """
        void ImpellerFoo(uint8_t a, int16_t b, uint32_t c, int64_t d,
                         uint64_t e, bool f, double g);
        """
    )
    names = [p.type.name for p in model.function("ImpellerFoo").parameters]
    assert names == [
        "uint8",
        "int16",
        "uint32",
        "int64",
        "uint64",
        "int32",
        "double",
    ]


def test_pointer_levels_and_fixed_arrays(build):
    model = build(
        """
        typedef struct ImpellerMatrix { float m[16]; } ImpellerMatrix;
        void ImpellerFoo(const ImpellerMatrix* matrix, char** names,
                         const uint8_t* data, void* user);
        """
    )
    m = model.struct("ImpellerMatrix").members[0]
    assert isinstance(m.type, NativeFixedArray)
    assert m.type.size == 16
    matrix, names, data, user = model.function("ImpellerFoo").parameters
    assert isinstance(matrix.type, NativePointerType)
    assert matrix.type.level == 1
    assert matrix.type.element is model.struct("ImpellerMatrix")
    assert names.type.level == 2
    assert not names.type.is_string
    assert data.type.is_generic_data_pointer
    assert user.type.is_void_pointer


def test_struct_references_share_one_object(build):
    model = build(
        """
        typedef struct ImpellerNode {
          struct ImpellerLeaf* leaf;
        } ImpellerNode;
        typedef struct ImpellerLeaf { int value; } ImpellerLeaf;
        void ImpellerA(ImpellerLeaf* a);
        void ImpellerB(ImpellerLeaf b);
        """
    )
    leaf = model.struct("ImpellerLeaf")
    node = model.struct("ImpellerNode")
    assert node.members[0].type.element is leaf
    assert model.function("ImpellerA").parameters[0].type.element is leaf
    assert model.function("ImpellerB").parameters[0].type is leaf


def test_anonymous_struct_takes_typedef_name(build):
    model = build(
        """
        typedef struct { int width; int height; } ImpellerISize;
        void ImpellerUse(ImpellerISize size);
        """
    )
    size = model.struct("ImpellerISize")
    assert isinstance(size, NativeStruct)
    assert model.function("ImpellerUse").parameters[0].type is size


def test_manual_marshal_struct_becomes_external(build):
    model = build(
        """
        typedef struct ImpellerMapping {
          const uint8_t* IMPELLER_NONNULL data;
          uint64_t length;
        } ImpellerMapping;
        void ImpellerTake(const ImpellerMapping* IMPELLER_NONNULL contents);
        """
    )
    assert model.struct("ImpellerMapping") is None
    (ext,) = model.external_types
    assert isinstance(ext, ExternalNativeType)
    assert ext.marshaller == "ImpellerMappingMarshaller"
    param = model.function("ImpellerTake").parameters[0].type.element
    assert param.element is ext


def test_named_function_pointer_typedef(build):
    model = build(
        """
        typedef void (*ImpellerCallback)(void* IMPELLER_NULLABLE user_data);
        typedef int (*ImpellerNoNames)(int, float);
        void ImpellerSetCallback(ImpellerCallback IMPELLER_NULLABLE cb);
        void ImpellerOther(ImpellerNoNames cb);
        """
    )
    cb = model.function("ImpellerSetCallback").parameters[0].type.element
    assert isinstance(cb, NativeNamedFunctionPointer)
    assert cb.name == "ImpellerCallback"
    assert [p.name for p in cb.parameters] == ["user_data"]
    assert cb.parameters[0].type.nullable is True

    other = model.function("ImpellerOther").parameters[0].type
    assert isinstance(other, NativeNamedFunctionPointer)
    assert [p.name for p in other.parameters] == ["arg0", "arg1"]


def test_unnamed_parameters_get_positional_names(build):
    model = build("void ImpellerFoo(int, float);")
    assert [p.name for p in model.function("ImpellerFoo").parameters] == [
        "arg0",
        "arg1",
    ]


def test_duplicate_prototypes_collapse(build):
    model = build("void ImpellerFoo(int a);\nvoid ImpellerFoo(int a);\n")
    assert [f.name for f in model.functions] == ["ImpellerFoo"]


@pytest.mark.parametrize(
    "body",
    [
        "void ImpellerFoo(long value);",
        "typedef union ImpellerU { int a; float b; } ImpellerU;\n"
        "void ImpellerFoo(ImpellerU u);",
        "struct ImpellerOpaque;\nvoid ImpellerFoo(struct ImpellerOpaque* o);",
    ],
)
def test_unknown_types_are_fatal(build, body):
    with pytest.raises(UnknownTypeError) as ei:
        build(body)
    assert ei.value.code == E_UNKNOWN_TYPE


def test_classification_precedence_and_partition(build):
    model = build(
        LIFECYCLE
        + """
        ImpellerContext IMPELLER_NULLABLE ImpellerContextCreateNew(int v);
        ImpellerSurface IMPELLER_NULLABLE ImpellerSurfaceCreateWrappedNew(
            ImpellerContext IMPELLER_NONNULL context, uint64_t fbo);
        ImpellerContext ImpellerContextGetDefault(void);
        uint32_t ImpellerGetVersion(void);
        """
    )
    kinds = {name: c.kind for name, c in model.classification.items()}
    # first parameter wins over "returns a handle and ends in New"
    assert kinds["ImpellerSurfaceCreateWrappedNew"] is FunctionKind.METHOD
    assert model.classification[
        "ImpellerSurfaceCreateWrappedNew"
    ].handle == "ImpellerContext"
    assert kinds["ImpellerContextCreateNew"] is FunctionKind.FACTORY
    # returns a handle but is not named *New
    assert kinds["ImpellerContextGetDefault"] is FunctionKind.GLOBAL
    assert kinds["ImpellerGetVersion"] is FunctionKind.GLOBAL

    buckets = [f for h in model.handles for f in h.methods + h.factories]
    buckets += list(model.global_functions)
    names = [f.name for f in buckets]
    assert len(names) == len(set(names))
    assert set(names) == {f.name for f in model.functions}


def test_pluggable_handle_predicate(parse, config):
    decls = parse(
        """
        typedef struct Widget_* Widget;
        void WidgetRetain(Widget w);
        void WidgetRelease(Widget w);
        """
    )
    # without the prefix, Widget_ is just an undefined struct
    with pytest.raises(UnknownTypeError):
        ModelBuilder(decls, config).build()

    def is_widget(cursor, cfg):
        return cursor.spelling == "Widget"

    model = ModelBuilder(decls, config, is_handle=is_widget).build()
    (widget,) = model.handles
    assert isinstance(widget, NativeHandle)
    assert widget.retain is not None and widget.release is not None


def test_build_returns_same_snapshot(parse, config):
    builder = ModelBuilder(parse(PAINT_HEADER), config)
    assert builder.build() is builder.build()


def test_enum_parameter_maps_to_model_enum(build):
    model = build(
        """
        typedef enum ImpellerFillType { kA, kB } ImpellerFillType;
        void ImpellerFoo(ImpellerFillType t);
        """
    )
    t = model.function("ImpellerFoo").parameters[0].type
    assert isinstance(t, NativeEnum)
    assert t is model.enum("ImpellerFillType")
