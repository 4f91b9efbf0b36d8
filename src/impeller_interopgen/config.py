# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Generator configuration: manual interop registry and naming conventions.

The registry is YAML data shipped next to this module (``interop.yaml``).
An alternative file may be selected through the
``IMPELLER_INTEROPGEN_CONFIG`` environment variable or passed explicitly to
:func:`load_config`.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import config_error
from .logging import get_logger

CONFIG_ENV_VAR = "IMPELLER_INTEROPGEN_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "interop.yaml"

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MODULE_RE = re.compile(r"^\.*[A-Za-z_][A-Za-z0-9_.]*$")

logger = get_logger("config")


@dataclass(frozen=True)
class InteropConfig:
    symbol_prefix: str = "Impeller"
    library_name: str = "impeller"
    nullable_macro: str = "IMPELLER_NULLABLE"
    nonnull_macro: str = "IMPELLER_NONNULL"
    version_macro: str = "IMPELLER_VERSION"
    version_constant: str = "ImpellerVersion"
    version_function: str = "ImpellerGetVersion"
    manual_interop_functions: frozenset[str] = field(default_factory=frozenset)
    manual_marshal_structs: Mapping[str, str] = field(default_factory=dict)
    marshaller_module: str = "impeller_manual_interop"
    source: str | None = None

    def is_manual_interop(self, function_name: str) -> bool:
        return function_name in self.manual_interop_functions

    def marshaller_for(self, struct_name: str) -> str | None:
        return self.manual_marshal_structs.get(struct_name)


def _require_ident(value: Any, key: str, source: str) -> str:
    if not isinstance(value, str) or not _IDENT_RE.match(value):
        raise config_error(
            f"'{key}' must be a C identifier, got {value!r}",
            {"key": key, "source": source},
        )
    return value


def config_from_dict(
    data: Mapping[str, Any], source: str = "<memory>"
) -> InteropConfig:
    """Validate raw registry data and build an :class:`InteropConfig`.

    Missing keys fall back to the defaults of :class:`InteropConfig`.
    """
    if not isinstance(data, Mapping):
        raise config_error(
            "Root of interop configuration must be a mapping",
            {"source": source},
        )
    defaults = InteropConfig()
    kwargs: dict[str, Any] = {"source": source}

    for key in (
        "symbol_prefix",
        "library_name",
        "version_constant",
        "version_function",
    ):
        if key in data:
            kwargs[key] = _require_ident(data[key], key, source)

    macros = data.get("macros") or {}
    if not isinstance(macros, Mapping):
        raise config_error("'macros' must be a mapping", {"source": source})
    for key, attr in (
        ("nullable", "nullable_macro"),
        ("nonnull", "nonnull_macro"),
        ("version", "version_macro"),
    ):
        if key in macros:
            kwargs[attr] = _require_ident(macros[key], f"macros.{key}", source)

    functions = data.get("manual_interop_functions") or []
    if not isinstance(functions, list):
        raise config_error(
            "'manual_interop_functions' must be a list", {"source": source}
        )
    kwargs["manual_interop_functions"] = frozenset(
        _require_ident(f, "manual_interop_functions", source) for f in functions
    )

    structs = data.get("manual_marshal_structs") or {}
    if not isinstance(structs, Mapping):
        raise config_error(
            "'manual_marshal_structs' must be a mapping of struct name to"
            " marshaller name",
            {"source": source},
        )
    kwargs["manual_marshal_structs"] = {
        _require_ident(k, "manual_marshal_structs", source): _require_ident(
            v, f"manual_marshal_structs.{k}", source
        )
        for k, v in structs.items()
    }

    module = data.get("marshaller_module", defaults.marshaller_module)
    if not isinstance(module, str) or not _MODULE_RE.match(module):
        raise config_error(
            f"'marshaller_module' must be a module path, got {module!r}",
            {"source": source},
        )
    kwargs["marshaller_module"] = module

    return InteropConfig(**kwargs)


def load_config(path: str | Path | None = None) -> InteropConfig:
    """Load the interop registry from ``path``, the environment or the default."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    p = Path(path)
    if not p.exists():
        raise config_error(
            f"Interop configuration not found: {p}", {"path": str(p)}
        )
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise config_error(
            f"Invalid YAML in {p}: {e}", {"path": str(p)}
        ) from e
    if data is None:
        data = {}
    cfg = config_from_dict(data, source=str(p))
    logger.debug(
        "loaded interop config %s (%d manual functions, %d marshalled structs)",
        p,
        len(cfg.manual_interop_functions),
        len(cfg.manual_marshal_structs),
    )
    return cfg


__all__ = [
    "InteropConfig",
    "config_from_dict",
    "load_config",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
]
