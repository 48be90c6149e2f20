"""
Artifact lifecycle — every file a job creates, and its guaranteed removal.

Strategies register a path at the moment they decide to create it, before
the file exists. `release()` then removes whatever is actually on disk,
whichever step the job stopped at.

## Usage

    with ArtifactRegistry(job_id) as artifacts:
        palette = artifacts.register(work_dir / f"{job_id}_palette.png")
        ...
    # every registered file is gone here

The HTTP layer does not use the ``with`` form on success: it hands
`release` to the response so deletion happens once the body has been
written.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Tracks the transient files of one job."""

    def __init__(self, job_id: str = ""):
        self.job_id = job_id
        self._paths: List[Path] = []
        self._lock = threading.Lock()
        self._released = False
        self._preserve_reason: Optional[str] = None

    def register(self, path: Path) -> Path:
        """Track `path` for removal and return it unchanged."""
        path = Path(path)
        with self._lock:
            if path not in self._paths:
                self._paths.append(path)
        return path

    def register_all(self, paths: Iterable[Path]) -> List[Path]:
        return [self.register(p) for p in paths]

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    @property
    def preserved(self) -> bool:
        return self._preserve_reason is not None

    @property
    def released(self) -> bool:
        return self._released

    def existing(self) -> List[Path]:
        """Registered paths currently present on disk."""
        return [p for p in self._paths if p.exists()]

    def preserve(self, reason: str) -> None:
        """Keep every artifact on disk for post-hoc debugging."""
        self._preserve_reason = reason

    def release(self) -> None:
        """Delete every registered file that exists. Safe to call twice."""
        with self._lock:
            if self._released:
                return
            self._released = True
            paths = list(self._paths)

        if self._preserve_reason is not None:
            kept = [str(p) for p in paths if p.exists()]
            logger.warning(
                f"[{self.job_id}] Keeping {len(kept)} artifact(s) for debugging "
                f"({self._preserve_reason}): {', '.join(kept) or 'none'}"
            )
            return

        removed = 0
        for path in paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                # Never created, or already held open elsewhere
                logger.debug(f"[{self.job_id}] Could not remove {path}: {e}")
        logger.debug(f"[{self.job_id}] Released {removed}/{len(paths)} artifact(s)")

    def __enter__(self) -> "ArtifactRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
