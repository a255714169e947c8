# coding: utf-8
"""Result artifact written once by the collector.

    SAT
    1 -2 3 0

Line 2 is present only for SAT and lists the assigned variables in
increasing order, negated when false; unassigned variables are left out.
"""

from __future__ import annotations

import logging
from typing import Optional

from parsat.utils.exceptions import WriteError
from parsat.utils.types import Verdict

from .models import AggregateVerdict, model_to_literals

logger = logging.getLogger(__name__)


def format_result(aggregate: AggregateVerdict) -> str:
    lines = [aggregate.verdict.token]
    if aggregate.verdict is Verdict.SAT:
        lits = model_to_literals(aggregate.model or ())
        lines.append(" ".join(str(lit) for lit in lits + [0]))
    return "\n".join(lines) + "\n"


def report(aggregate: AggregateVerdict, path: Optional[str]) -> None:
    """Write the artifact to path (nothing to write when path is None)."""
    if path is None:
        return
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(format_result(aggregate))
    except OSError as exc:
        raise WriteError(f"could not write result file {path}: {exc}") from exc
    logger.info("result written to %s", path)
