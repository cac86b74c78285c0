"""
JSON file persistence for user snapshots.

One file per user: ``{states_dir}/{user_id}.json``. Hosts call ``save`` after
each mutating engine call and ``load`` before the first call of a session.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonStateStore:
    """Stores engine snapshots as JSON files."""

    def __init__(self, states_dir: Path):
        self.states_dir = states_dir
        self.states_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self.states_dir / f"{_UNSAFE_CHARS.sub('_', user_id)}.json"

    def save(self, user_id: str, snapshot: dict[str, Any]) -> Path:
        """Write a snapshot, replacing any previous one atomically."""
        filepath = self._path(user_id)
        tmp_path = filepath.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        tmp_path.replace(filepath)
        return filepath

    def load(self, user_id: str) -> dict[str, Any] | None:
        """Load a user's snapshot, or None if none was saved or the file is unreadable."""
        filepath = self._path(user_id)
        if not filepath.exists():
            return None

        try:
            with open(filepath, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as exc:
            logger.warning(f"Ignoring corrupted state file {filepath.name}: {exc}")
            return None

    def delete(self, user_id: str) -> bool:
        filepath = self._path(user_id)
        if filepath.exists():
            filepath.unlink()
            return True
        return False

    def list_users(self) -> list[str]:
        """User ids with a saved snapshot."""
        users = []
        for filepath in sorted(self.states_dir.glob("*.json")):
            try:
                with open(filepath, encoding="utf-8") as f:
                    users.append(json.load(f)["user_id"])
            except (json.JSONDecodeError, KeyError, TypeError):
                continue
        return users
