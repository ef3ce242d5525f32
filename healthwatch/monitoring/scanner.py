# healthwatch/monitoring/scanner.py

import os
import stat
from typing import Optional

from ..core.config import ScanConfig
from ..core.exceptions import DeadlineExceededError, ScanTimeoutError
from ..core.models import DirectoryUsage
from ..utils.logger import LoggerSetup
from ..utils.time import Deadline

logger = LoggerSetup.setup(__name__)


class DirectoryScanner:
    """
    Computes the total byte size and file count of a directory tree.

    The walk is iterative and remembers every directory it entered by
    ``(st_dev, st_ino)``, so symlink cycles and bind-mount loops are
    entered once. Entries that cannot be read contribute nothing and are
    counted in ``skipped_entries``. Results are a lower bound when the tree
    changes during the scan.
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def scan_size(self, path: str, deadline: Optional[Deadline] = None) -> DirectoryUsage:
        """
        Scan a directory tree.

        Args:
            path: Directory to scan
            deadline: Optional deadline checked once per directory

        Returns:
            DirectoryUsage: size and file count; ``exists=False`` when the
            path is not a readable directory

        Raises:
            ScanTimeoutError: if the deadline expires during the walk
        """
        try:
            root_stat = os.stat(path)
        except OSError as e:
            logger.debug(f"Directory {path} not accessible: {e}")
            return DirectoryUsage(path=path, exists=False)

        if not stat.S_ISDIR(root_stat.st_mode):
            return DirectoryUsage(path=path, exists=False)

        max_depth = self.config.max_depth
        max_entries = self.config.max_entries
        follow_symlinks = self.config.follow_symlinks

        visited = {(root_stat.st_dev, root_stat.st_ino)}
        stack = [(path, 0)]
        total_size = 0
        file_count = 0
        skipped = 0
        entries_seen = 0
        truncated = False
        exhausted = False

        while stack and not exhausted:
            if deadline is not None:
                try:
                    deadline.check(f"Scan of {path}")
                except DeadlineExceededError as e:
                    raise ScanTimeoutError(str(e)) from e

            current, depth = stack.pop()
            try:
                with os.scandir(current) as it:
                    for entry in it:
                        entries_seen += 1
                        if max_entries is not None and entries_seen > max_entries:
                            truncated = exhausted = True
                            break

                        try:
                            if entry.is_dir(follow_symlinks=follow_symlinks):
                                if max_depth is not None and depth >= max_depth:
                                    truncated = True
                                    continue
                                entry_stat = entry.stat(follow_symlinks=follow_symlinks)
                                identity = (entry_stat.st_dev, entry_stat.st_ino)
                                if identity in visited:
                                    continue
                                visited.add(identity)
                                stack.append((entry.path, depth + 1))
                            elif entry.is_file(follow_symlinks=follow_symlinks):
                                total_size += entry.stat(follow_symlinks=follow_symlinks).st_size
                                file_count += 1
                        except OSError as e:
                            skipped += 1
                            logger.debug(f"Skipping {entry.path}: {e}")
            except OSError as e:
                skipped += 1
                logger.debug(f"Cannot read directory {current}: {e}")

        if truncated:
            logger.warning(
                f"Scan of {path} stopped early (max_depth={max_depth}, max_entries={max_entries})"
            )

        return DirectoryUsage(
            path=path,
            size_bytes=total_size,
            file_count=file_count,
            exists=True,
            truncated=truncated,
            skipped_entries=skipped
        )
