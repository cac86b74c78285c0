"""
Built-in arithmetic curriculum.

Three paths (addition, multiplication, division), each with one stitch per
operand from 1 to 12. Fact ids follow ``<op>-<a>-<b>``, e.g. ``mult-7-8``.
"""
from __future__ import annotations

from zenjin.core.models import Fact, PathDefinition, Stitch

TABLE_SIZE = 12

DEFAULT_PATHS = [
    PathDefinition("addition", "Addition Facts", "Basic addition facts from 1+1 to 12+12"),
    PathDefinition("multiplication", "Multiplication Facts", "Basic multiplication facts from 1x1 to 12x12"),
    PathDefinition("division", "Division Facts", "Basic division facts"),
]

_OPERATIONS = {
    "addition": ("add", lambda a, b: (a, b, a + b)),
    "multiplication": ("mult", lambda a, b: (a, b, a * b)),
    "division": ("div", lambda a, b: (a * b, b, a)),
}


def build_facts() -> dict[str, Fact]:
    facts: dict[str, Fact] = {}
    for path_id, (prefix, relate) in _OPERATIONS.items():
        for a in range(1, TABLE_SIZE + 1):
            for b in range(1, TABLE_SIZE + 1):
                left, right, answer = relate(a, b)
                fact_id = f"{prefix}-{left}-{right}"
                facts[fact_id] = Fact(id=fact_id, operation=path_id, operands=(left, right), answer=answer)
    return facts


def build_stitches() -> dict[str, list[Stitch]]:
    stitches: dict[str, list[Stitch]] = {}
    for path_id, (prefix, relate) in _OPERATIONS.items():
        path_stitches = []
        for b in range(1, TABLE_SIZE + 1):
            fact_ids = []
            for a in range(1, TABLE_SIZE + 1):
                left, right, _ = relate(a, b)
                fact_ids.append(f"{prefix}-{left}-{right}")
            path_stitches.append(
                Stitch(
                    id=f"{prefix}-s{b:02d}",
                    path_id=path_id,
                    name=f"{path_id.title()} with {b}",
                    fact_ids=tuple(fact_ids),
                    difficulty=1 + (b - 1) * 5 // TABLE_SIZE,
                )
            )
        stitches[path_id] = path_stitches
    return stitches
