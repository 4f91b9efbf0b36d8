# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

from pathlib import Path

import pytest

from conftest import PAINT_HEADER

from impeller_interopgen.errors import E_WRITE_IO, OutputError, ParseError
from impeller_interopgen.generator import (
    atomic_write,
    generate,
    output_path_for,
)


def test_output_path_is_next_to_header():
    assert output_path_for(Path("include/impeller.h")) == Path(
        "include/impeller_bindings.py"
    )


def test_atomic_write_skips_unchanged(tmp_path):
    target = tmp_path / "out.py"
    assert atomic_write(target, "a = 1\n") is True
    assert atomic_write(target, "a = 1\n") is False
    assert atomic_write(target, "a = 2\n") is True
    assert target.read_text(encoding="utf-8") == "a = 2\n"
    assert not (tmp_path / "out.py.tmp").exists()


def test_atomic_write_reports_io_errors(tmp_path):
    with pytest.raises(OutputError) as ei:
        atomic_write(tmp_path / "missing" / "out.py", "x")
    assert ei.value.code == E_WRITE_IO


def test_regeneration_is_stable(write_header):
    header = write_header(PAINT_HEADER)
    first = generate(header)
    assert first.written
    second = generate(header)
    assert not second.written
    assert first.text == second.text


def test_explicit_output_path(write_header, tmp_path):
    target = tmp_path / "pkg_bindings.py"
    outcome = generate(write_header(PAINT_HEADER), output=target)
    assert outcome.output == target
    assert target.read_text(encoding="utf-8") == outcome.text


def test_fatal_error_leaves_previous_output(write_header):
    header = write_header(PAINT_HEADER)
    out = generate(header).output
    before = out.read_text(encoding="utf-8")
    write_header("void ImpellerBroken(int x;\n")
    with pytest.raises(ParseError):
        generate(header)
    assert out.read_text(encoding="utf-8") == before


def test_outcome_carries_model(write_header):
    outcome = generate(write_header(PAINT_HEADER), dry_run=True)
    assert not outcome.written
    assert not outcome.output.exists()
    assert [h.name for h in outcome.model.handles] == ["ImpellerPaint"]
    assert outcome.warnings == []
