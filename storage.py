from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol
from pydantic import ValidationError
from models import AppState
from paths import default_state_path

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    def load(self) -> AppState: ...

    def save(self, state: AppState) -> None: ...


def _backup_file(path: Path, content: str) -> None:
    try:
        backup = path.with_suffix(path.suffix + ".bak")
        backup.write_text(content, encoding="utf-8")
    except OSError:
        # If backup fails we still continue with a reset
        logger.warning("Could not back up unreadable file %s", path)


def _backup_bytes(path: Path) -> None:
    try:
        backup = path.with_suffix(path.suffix + ".bak")
        backup.write_bytes(path.read_bytes())
    except OSError:
        logger.warning("Could not back up unreadable file %s", path)


def load_json(path: Path | str, default: Any = None) -> Any:
    """
    Load JSON from path with safety:
    - If missing: return default ({} when not given)
    - If empty or invalid: write .bak and reset to {}
    """
    path = Path(path)
    fallback = {} if default is None else default
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        return fallback

    try:
        raw_text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning("Undecodable bytes in %s, backed up and reset", path)
        _backup_bytes(path)
        save_json(path, {})
        return fallback
    except OSError:
        logger.warning("Could not read %s, using defaults", path)
        return fallback

    text = raw_text.strip()
    if not text:
        _backup_file(path, raw_text)
        save_json(path, {})
        return fallback

    try:
        return json.loads(text)
    except ValueError:
        logger.warning("Corrupt JSON in %s, backed up and reset", path)
        _backup_file(path, raw_text)
        save_json(path, {})
        return fallback


def save_json(path: Path | str, payload: Any) -> None:
    """
    Atomic JSON write: write to temp file then replace target.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = path.with_suffix(path.suffix + ".tmp")
    temp.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    temp.replace(path)


class JsonStateStore:
    """
    Whole-state JSON file. Every save overwrites the file; the last writer wins.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path is not None else default_state_path()

    def load(self) -> AppState:
        raw = load_json(self.path, {})
        if not isinstance(raw, dict):
            logger.warning("Unexpected state layout in %s, starting fresh", self.path)
            return AppState()
        try:
            return AppState.model_validate(raw)
        except ValidationError as e:
            logger.warning("Stored state in %s failed validation (%d errors), starting fresh",
                           self.path, e.error_count())
            return AppState()

    def save(self, state: AppState) -> None:
        save_json(self.path, state.model_dump(mode="json"))
        logger.debug("Saved state to %s", self.path)
