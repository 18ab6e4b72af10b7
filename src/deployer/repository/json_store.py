"""JSON-based repository for deployment session snapshots."""

from __future__ import annotations

from pathlib import Path

from deployer.savegame import SessionSnapshot


class JsonSessionRepository:
    """Persist session snapshots as JSON files on disk."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, session_id: int) -> Path:
        return self.base_path / f"session_{int(session_id)}.json"

    def save(self, session_id: int, snapshot: SessionSnapshot) -> Path:
        """Serialize a snapshot to disk and return its path."""

        path = self._path_for(session_id)
        path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        return path

    def load(self, session_id: int) -> SessionSnapshot:
        """Load a previously saved snapshot or raise ``FileNotFoundError``."""

        path = self._path_for(session_id)
        data = path.read_bytes()
        return SessionSnapshot.model_validate_json(data)

    def list_sessions(self) -> list[int]:
        """Return all session ids currently persisted in the repository."""

        ids: list[int] = []
        prefix = "session_"
        suffix = ".json"
        for path in self.base_path.glob("session_*.json"):
            stem = path.name
            if stem.startswith(prefix) and stem.endswith(suffix):
                raw = stem[len(prefix) : -len(suffix)]
                try:
                    ids.append(int(raw))
                except ValueError:  # pragma: no cover - ignored malformed file
                    continue
        return sorted(ids)

    def delete(self, session_id: int) -> None:
        """Remove a snapshot if it exists."""

        path = self._path_for(session_id)
        if path.exists():
            path.unlink()
