# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""String templates used by the binding generator."""

TEMPLATE_HEADER = '''\
# Generated file - do not edit.
# Source: {src}
# Tool: impeller-interopgen {tool_ver}
# {version_constant}: {version}

"""ctypes bindings for ``{src}``.

Layers, in order: enums, handle resources, value types, the raw ABI table
(:class:`UnsafeNativeMethods`) and the safe wrapper classes. Call
``UnsafeNativeMethods.load()`` (or ``bind()`` with an already loaded
library) before using any wrapper.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import enum
import weakref
from typing import Optional
{extra_imports}'''

# Runtime support emitted verbatim after the imports (not a format string).
RUNTIME_PREAMBLE = '''

class Utf8String:
    """Argument adapter passing ``str`` values as UTF-8 ``char*``."""

    @classmethod
    def from_param(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            value = value.encode("utf-8")
        return ctypes.c_char_p(value)


class NativeHandle:
    """Owns exactly one strong reference to a native object.

    The reference is released once, by :meth:`dispose` or when the handle
    is garbage collected, whichever happens first. Handles cannot be copied.
    """

    __slots__ = ("_address", "_finalizer", "__weakref__")

    def __init__(self, address):
        if not address:
            raise ValueError(f"{type(self).__name__}: null native reference")
        self._address = address
        self._finalizer = weakref.finalize(
            self, type(self)._unsafe_release, address
        )

    @staticmethod
    def _unsafe_retain(address):
        raise NotImplementedError

    @staticmethod
    def _unsafe_release(address):
        raise NotImplementedError

    @classmethod
    def retain_from_native(cls, address):
        """Take a new reference to a borrowed object (retain, then adopt)."""
        if not address:
            raise ValueError(f"{cls.__name__}: null native reference")
        cls._unsafe_retain(address)
        return cls(address)

    @property
    def address(self):
        if not self._finalizer.alive:
            raise ValueError(f"{type(self).__name__} is disposed")
        return self._address

    @property
    def disposed(self):
        return not self._finalizer.alive

    def dispose(self):
        self._finalizer()

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __reduce__(self):
        raise TypeError(f"{type(self).__name__} cannot be pickled")

    def __repr__(self):
        state = "disposed" if self.disposed else hex(self._address)
        return f"<{type(self).__name__} {state}>"


class NativeObject:
    """Base of the safe wrapper classes; holds one :class:`NativeHandle`."""

    __slots__ = ("_handle",)

    def __init__(self, handle):
        self._handle = handle

    @property
    def handle(self):
        return self._handle

    def dispose(self):
        self._handle.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __reduce__(self):
        raise TypeError(f"{type(self).__name__} cannot be pickled")


class RawFunction:
    """One native export, bound to a loaded library by ``bind``."""

    def __init__(self, name, restype, argtypes):
        self.name = name
        self.restype = restype
        self.argtypes = list(argtypes)
        self._fn = None

    def bind(self, lib):
        fn = getattr(lib, self.name)
        fn.restype = self.restype
        fn.argtypes = self.argtypes
        self._fn = fn

    def __call__(self, *args):
        if self._fn is None:
            raise RuntimeError(
                f"{self.name} is not bound; call UnsafeNativeMethods.load()"
            )
        return self._fn(*args)
'''

TEMPLATE_NATIVE_METHODS_TAIL = '''
    @classmethod
    def functions(cls):
        return [v for v in vars(cls).values() if isinstance(v, RawFunction)]

    @classmethod
    def bind(cls, lib):
        """Bind every raw function to ``lib`` and check the ABI version."""
        for fn in cls.functions():
            fn.bind(lib)
{version_check}        return lib

    @classmethod
    def load(cls, path=None):
        """Open the native library with the platform C calling convention."""
        path = path or ctypes.util.find_library({library!r})
        if not path:
            raise OSError("native library {library!r} not found")
        return cls.bind(ctypes.CDLL(path))
'''

TEMPLATE_VERSION_CHECK = '''\
        version = cls.{version_function}()
        if version != cls.{version_constant}:
            raise RuntimeError(
                f"{{cls.__name__}}: library version {{version}} does not match"
                f" {{cls.{version_constant}}}"
            )
'''
