# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""impeller-interopgen package

Reads the Impeller C header, builds a semantic model of its handles,
structs, enums and functions, and emits a Python ``ctypes`` binding module
with a raw ABI table and reference-counted wrapper classes.

The CLI entry point lives in :mod:`impeller_interopgen.cli` and the
programmatic generator in :mod:`impeller_interopgen.generator`.
"""

from ._version import __version__  # noqa: F401

__all__ = ["__version__"]
