"""Filesystem helpers for grpc-docker-tools."""

import fnmatch
import logging
import os
from typing import List

from rich.console import Console

from grpcdocker.errors import GrpcDockerError


class FileSystemService:
    """Encapsulates local file side effects before a dockerfile push."""

    EDITOR_BACKUP_PATTERNS = ("*~", "#*#")

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def remove_editor_backups(self, root: str) -> List[str]:
        removed = []
        for current_root, _dirs, files in os.walk(root):
            for file_name in files:
                if not any(fnmatch.fnmatch(file_name, pattern) for pattern in self.EDITOR_BACKUP_PATTERNS):
                    continue
                path = os.path.join(current_root, file_name)
                try:
                    os.remove(path)
                except OSError as exc:
                    raise GrpcDockerError(f"failed: cleanup of tmp files in {root}: {exc}") from exc
                self.console.print(f"removed '{path}'", markup=False, highlight=False)
                self.logger.debug("Removed editor backup: %s", path)
                removed.append(path)
        return removed
