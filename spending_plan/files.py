"""File helpers shared by the per-user JSON stores."""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Dict, Optional

from .logging_setup import get_logger

logger = get_logger(__name__)

_REGISTRY_LOCK = threading.Lock()
_DOCUMENT_LOCKS: Dict[str, threading.RLock] = {}


def safe_filename(name: str, default: str = 'file', max_length: Optional[int] = None) -> str:
    """Create a safe filename from a user-provided identifier.

    Keeps alphanumerics, underscores and hyphens; spaces become underscores.

    Example:
        >>> safe_filename("My Plan 2024!")
        'My_Plan_2024'
        >>> safe_filename("", default="user")
        'user'
    """
    if not name:
        return default

    cleaned = ''.join(c for c in str(name) if c.isalnum() or c in {' ', '_', '-'})
    cleaned = cleaned.strip().replace(' ', '_')
    while '__' in cleaned:
        cleaned = cleaned.replace('__', '_')
    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    cleaned = cleaned.rstrip('_')

    return cleaned if cleaned else default


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_json_document(path: Path) -> Dict[str, Any]:
    """Load a JSON object from ``path``.

    A missing file is an empty document. Unreadable or non-object content is
    logged and also treated as empty.
    """
    if not path.exists():
        return {}
    try:
        with path.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring corrupt document %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object document %s", path)
        return {}
    return data


def document_lock(path: Path) -> threading.RLock:
    """Process-wide lock guarding read-modify-write cycles on ``path``.

    Every store instance pointing at the same file shares one lock, so two
    ``SettingsStore`` objects over one directory still serialise their writes.
    """
    key = str(Path(path).resolve())
    with _REGISTRY_LOCK:
        lock = _DOCUMENT_LOCKS.get(key)
        if lock is None:
            lock = _DOCUMENT_LOCKS[key] = threading.RLock()
        return lock


def write_json_document(path: Path, payload: Dict[str, Any]) -> None:
    """Write ``payload`` to ``path``, replacing the previous file in one step.

    Each call writes through its own temporary file in the target directory,
    so overlapping writers never share a scratch file.
    """
    ensure_directory(path.parent)
    handle = tempfile.NamedTemporaryFile(
        'w',
        encoding='utf-8',
        dir=path.parent,
        prefix=f'.{path.name}.',
        suffix='.tmp',
        delete=False,
    )
    tmp = Path(handle.name)
    try:
        with handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise
