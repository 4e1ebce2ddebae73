"""Upload storage and scheduled deletion."""

import asyncio
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def reset_upload_dir(upload_dir: Path) -> None:
    """Remove any uploads left from a previous run and recreate the directory."""
    if upload_dir.exists():
        shutil.rmtree(upload_dir)
    upload_dir.mkdir(parents=True)


def save_upload(directory: Path, name: str, content: bytes) -> Path:
    """Write upload content into directory and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(content)
    return path


def delete_file(path: Path) -> bool:
    """Delete a stored upload, returning False if it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as err:
        logger.warning("Failed to remove file %s: %s", path, err)
        return False
    logger.info("Deleted image: %s", path)
    return True


def is_writable(directory: Path) -> bool:
    """Test that files can be created in directory."""
    marker = directory / ".write-test"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        marker.write_bytes(b"")
        marker.unlink()
    except OSError:
        return False
    else:
        return True


class DeletionScheduler:
    """Deletes uploads after a delay on the running event loop."""

    def __init__(self) -> None:
        self._handles: dict[Path, asyncio.TimerHandle] = {}

    def schedule(self, path: Path, delay: float) -> asyncio.TimerHandle:
        """Delete path once delay seconds have passed.

        Must be called from a coroutine, the timer lives on its event loop.
        """
        previous = self._handles.pop(path, None)
        if previous is not None:
            previous.cancel()
        handle = asyncio.get_running_loop().call_later(delay, self._expire, path)
        self._handles[path] = handle
        logger.debug("Scheduled deletion of %s in %ss", path, delay)
        return handle

    def _expire(self, path: Path) -> None:
        self._handles.pop(path, None)
        delete_file(path)

    def pending(self) -> list[Path]:
        return list(self._handles)

    def cancel_all(self) -> None:
        """Stop every pending timer without deleting the files."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()


# Global scheduler instance
scheduler = DeletionScheduler()


def get_scheduler() -> DeletionScheduler:
    """Dependency to get the deletion scheduler."""
    return scheduler
