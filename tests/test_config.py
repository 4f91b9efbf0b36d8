# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

"""Tests for the interop registry loader."""

import pytest

from impeller_interopgen.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    InteropConfig,
    config_from_dict,
    load_config,
)
from impeller_interopgen.errors import E_CONFIG, ConfigError


def test_default_registry():
    cfg = load_config()
    assert cfg.source == str(DEFAULT_CONFIG_PATH)
    assert cfg.symbol_prefix == "Impeller"
    assert len(cfg.manual_interop_functions) == 6
    assert cfg.is_manual_interop("ImpellerParagraphBuilderAddText")
    assert cfg.is_manual_interop("ImpellerContextCreateVulkanNew")
    assert not cfg.is_manual_interop("ImpellerPaintNew")
    assert cfg.marshaller_for("ImpellerMapping") == "ImpellerMappingMarshaller"
    assert cfg.marshaller_for("ImpellerColor") is None


def test_environment_override(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(
        "symbol_prefix: Widget\n"
        "manual_interop_functions: [WidgetDoThing]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    cfg = load_config()
    assert cfg.symbol_prefix == "Widget"
    assert cfg.manual_interop_functions == frozenset({"WidgetDoThing"})
    # unspecified keys keep their defaults
    assert cfg.version_function == "ImpellerGetVersion"
    assert cfg.manual_marshal_structs == {}


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(path)
    defaults = InteropConfig()
    assert cfg.nullable_macro == defaults.nullable_macro
    assert cfg.marshaller_module == defaults.marshaller_module


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(tmp_path / "missing.yaml")
    assert ei.value.code == E_CONFIG


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("manual_interop_functions: [a, b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"symbol_prefix": "has space"},
        {"macros": {"nullable": "1BAD"}},
        {"manual_interop_functions": "ImpellerFoo"},
        {"manual_interop_functions": ["Impeller-Foo"]},
        {"manual_marshal_structs": ["ImpellerMapping"]},
        {"manual_marshal_structs": {"ImpellerMapping": "not valid"}},
        {"marshaller_module": "bad module"},
    ],
)
def test_invalid_values_are_rejected(data):
    with pytest.raises(ConfigError):
        config_from_dict(data)


def test_relative_marshaller_module_is_accepted():
    cfg = config_from_dict({"marshaller_module": "..interop.marshal"})
    assert cfg.marshaller_module == "..interop.marshal"
    assert cfg.source == "<memory>"


def test_default_marshaller_module_is_absolute():
    assert not load_config().marshaller_module.startswith(".")
    assert InteropConfig().marshaller_module == "impeller_manual_interop"
