# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Shared helpers: header snippets, model building and a fake native library."""

import importlib.util
import itertools
import sys
import textwrap

import pytest

from impeller_interopgen.builder import ModelBuilder
from impeller_interopgen.config import load_config
from impeller_interopgen.ingest import parse_source
from impeller_interopgen.reporting import (
    SilentReporter,
    set_reporter,
    set_verbosity,
)

HEADER_PRELUDE = """\
#include <stdint.h>
#include <stdbool.h>

#define IMPELLER_VERSION 3
#define IMPELLER_NULLABLE _Nullable
#define IMPELLER_NONNULL _Nonnull
"""

# One handle with a factory and a by-value struct method.
PAINT_HEADER = """
typedef struct ImpellerColor {
  float red;
  float green;
  float blue;
  float alpha;
} ImpellerColor;

typedef struct ImpellerPaint_* ImpellerPaint;

ImpellerPaint ImpellerPaintNew(void);
void ImpellerPaintRetain(ImpellerPaint IMPELLER_NULLABLE paint);
void ImpellerPaintRelease(ImpellerPaint IMPELLER_NULLABLE paint);
void ImpellerPaintSetColor(ImpellerPaint IMPELLER_NONNULL paint,
                           ImpellerColor color);
"""

_module_ids = itertools.count()


@pytest.fixture(autouse=True)
def _reset_reporting():
    # Reporters bind to the stream current at creation time; never let one
    # outlive the test (and its captured stderr).
    set_reporter(SilentReporter())
    yield
    set_reporter(SilentReporter())
    set_verbosity(0)


def header_text(body: str) -> str:
    return HEADER_PRELUDE + textwrap.dedent(body)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def parse(config):
    def _parse(body: str, name: str = "impeller.h"):
        return parse_source(header_text(body), config, path=name)

    return _parse


@pytest.fixture
def build(parse, config):
    def _build(body: str, **kwargs):
        return ModelBuilder(parse(body), config, **kwargs).build()

    return _build


@pytest.fixture
def write_header(tmp_path):
    def _write(body: str, name: str = "impeller.h"):
        path = tmp_path / name
        path.write_text(header_text(body), encoding="utf-8")
        return path

    return _write


def load_module(path):
    """Import a generated bindings file under a unique module name."""
    name = f"generated_bindings_{next(_module_ids)}"
    spec = importlib.util.spec_from_file_location(name, str(path))
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


class FakeFunction:
    def __init__(self, lib, name):
        self.lib = lib
        self.name = name
        self.restype = None
        self.argtypes = None

    def __call__(self, *args):
        self.lib.calls.append((self.name, args))
        value = self.lib.returns.get(self.name)
        if callable(value):
            return value(*args)
        return value


class FakeLibrary:
    """Stands in for a ``ctypes.CDLL``; exports are created on first use."""

    def __init__(self, returns=None):
        self.calls = []
        self.returns = dict(returns or {})

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        fn = FakeFunction(self, name)
        setattr(self, name, fn)
        return fn

    def count(self, name):
        return sum(1 for n, _ in self.calls if n == name)

    def args(self, name):
        return [a for n, a in self.calls if n == name]


@pytest.fixture
def fake_library():
    return FakeLibrary


@pytest.fixture
def load_bindings():
    return load_module


@pytest.fixture
def generated(write_header, fake_library, load_bindings):
    """Generate, import and bind bindings for a header body.

    Returns ``(module, library, outcome)``.
    """
    from impeller_interopgen.generator import generate

    def _generated(body: str, returns=None, **kwargs):
        outcome = generate(write_header(body), **kwargs)
        module = load_bindings(outcome.output)
        lib = fake_library(returns)
        module.UnsafeNativeMethods.bind(lib)
        return module, lib, outcome

    return _generated
