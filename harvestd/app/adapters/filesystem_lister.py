"""Tree lister over a local directory."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from harvestd.app.ports import Fingerprint, TreeEntry, TreeListerPort
from harvestd.errors import ConfigurationError, ResourceUnavailableError, UnreachableError
from harvestd.utils.paths import relative_posix

logger = logging.getLogger(__name__)


class FileSystemTreeLister(TreeListerPort):
    """Lists regular files under a directory root.

    Symlinks are not followed. Files that vanish between the walk and the
    ``stat`` call are skipped; they will be picked up or reported deleted on
    the next poll.
    """

    def validate(self, root: str) -> None:
        path = Path(root)
        if not path.exists():
            raise ConfigurationError(f"File [{root}] does not exist.")
        if not path.is_dir():
            raise ConfigurationError(f"File [{root}] is not a directory.")
        if not os.access(path, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Insufficient read privileges from [{root}].")

    def list_entries(self, root: str) -> list[TreeEntry]:
        base = Path(root)
        if not base.is_dir():
            raise UnreachableError(f"Directory [{root}] is not reachable.")

        walk_errors: list[OSError] = []

        def _on_error(exc: OSError) -> None:
            if Path(exc.filename or "") == base:
                walk_errors.append(exc)
            else:
                logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

        entries: list[TreeEntry] = []
        for dirpath, dirnames, filenames in os.walk(base, onerror=_on_error):
            dirnames.sort()
            for filename in filenames:
                file_path = Path(dirpath) / filename
                try:
                    info = file_path.lstat()
                except FileNotFoundError:
                    logger.debug("File vanished during listing: %s", file_path)
                    continue
                except OSError as exc:
                    logger.debug("Skipping %s: %s", file_path, exc)
                    continue
                if not stat.S_ISREG(info.st_mode):
                    continue
                entries.append(
                    TreeEntry(
                        path=relative_posix(file_path, base),
                        fingerprint=Fingerprint(size=info.st_size, modified=str(info.st_mtime_ns)),
                    )
                )

        if walk_errors:
            raise UnreachableError(f"Directory [{root}] could not be listed: {walk_errors[0]}")

        entries.sort(key=lambda entry: entry.path)
        return entries

    def location(self, root: str, path: str) -> str:
        return (Path(root) / path).absolute().as_uri()

    def read(self, root: str, path: str) -> bytes:
        file_path = Path(root) / path
        try:
            return file_path.read_bytes()
        except OSError as exc:
            raise ResourceUnavailableError(f"Cannot read [{file_path}]: {exc}") from exc
