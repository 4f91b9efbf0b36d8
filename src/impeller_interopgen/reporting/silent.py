# ===-----------------------------------------------------------------------===#
# Distributed under the 3-Clause BSD License. See accompanying file LICENSE or
# copy at https://opensource.org/licenses/BSD-3-Clause.
# SPDX-License-Identifier: BSD-3-Clause
# ===-----------------------------------------------------------------------===#

from __future__ import annotations

from .base import Reporter


class SilentReporter(Reporter):
    """Discards every task and message (``-q``).

    Task records are still tracked by :class:`Reporter`, so tasks nest and
    fail the same way as with a visible backend.
    """
