"""Crash-safe file writes."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def write_atomically(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file renamed into place.

    The temp file lives in the destination directory so the rename stays on
    one filesystem. If the rename itself is refused, the content is written
    over the destination directly (degraded, non-atomic).
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    prefix = path.name if len(path.name) >= 3 else "tmp"
    fd, temp_name = tempfile.mkstemp(prefix=f"{prefix}.", suffix=".tmp", dir=str(path.parent))
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    try:
        os.replace(temp_path, path)
    except OSError as exc:
        logger.debug("Atomic rename into %s failed (%s); overwriting in place", path, exc)
        try:
            path.write_text(content, encoding="utf-8")
        finally:
            temp_path.unlink(missing_ok=True)


__all__ = ["write_atomically"]
