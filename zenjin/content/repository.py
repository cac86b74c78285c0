"""
In-memory content collaborators.

Reference implementations of FactRepository and StitchContentProvider, used
by the CLI and the tests. Production hosts back these with their own stores.
"""
from __future__ import annotations

from collections.abc import Iterable

from zenjin.content.curriculum import DEFAULT_PATHS, build_facts, build_stitches
from zenjin.core.errors import FactNotFound, InvalidInput
from zenjin.core.models import Fact, PathDefinition, Stitch


class InMemoryFactRepository:
    """Fact lookup backed by a dict."""

    def __init__(self, facts: Iterable[Fact] = ()):
        self._facts = {fact.id: fact for fact in facts}

    def __len__(self) -> int:
        return len(self._facts)

    def get_fact_by_id(self, fact_id: str) -> Fact:
        try:
            return self._facts[fact_id]
        except KeyError:
            raise FactNotFound(fact_id) from None

    def fact_exists(self, fact_id: str) -> bool:
        return fact_id in self._facts

    def add(self, fact: Fact) -> None:
        self._facts[fact.id] = fact

    @classmethod
    def default(cls) -> InMemoryFactRepository:
        return cls(build_facts().values())


class StaticContentProvider:
    """Paths and stitches fixed at construction time."""

    def __init__(self, paths: list[PathDefinition], stitches: dict[str, list[Stitch]]):
        unknown = set(stitches) - {path.id for path in paths}
        if unknown:
            raise InvalidInput(f"Stitches supplied for unknown paths: {sorted(unknown)}")
        for path_id, path_stitches in stitches.items():
            for stitch in path_stitches:
                if stitch.path_id != path_id:
                    raise InvalidInput(f"Stitch {stitch.id!r} belongs to {stitch.path_id!r}, not {path_id!r}")
                if not stitch.fact_ids:
                    raise InvalidInput(f"Stitch {stitch.id!r} has no facts")
        self._paths = list(paths)
        self._stitches = {path_id: list(items) for path_id, items in stitches.items()}

    def get_paths(self) -> list[PathDefinition]:
        return list(self._paths)

    def get_initial_stitches(self, path_id: str) -> list[Stitch]:
        return list(self._stitches.get(path_id, []))

    @classmethod
    def default(cls) -> StaticContentProvider:
        return cls(DEFAULT_PATHS, build_stitches())
