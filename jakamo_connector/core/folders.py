"""
Folder set helpers: creation at startup and collision-safe relocation.
"""

import errno
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jakamo_connector.core.exceptions import RelocationFailure
from jakamo_connector.core.logging import get_logger

log = get_logger(__name__)

# Appended to the stem when the destination name is taken
COLLISION_SUFFIX_FORMAT = "%Y%m%d_%H%M%S"

# link() errors that mean "cannot hard-link here", not "cannot move"
LINK_UNSUPPORTED = {errno.EXDEV, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}


@dataclass(frozen=True)
class FolderSet:
    """The four folders the connector works with."""

    inbound: Path
    processed: Path
    failed: Path
    responses: Path

    @classmethod
    def from_settings(cls, settings) -> "FolderSet":
        return cls(
            inbound=Path(settings.folders_inbound_orders),
            processed=Path(settings.folders_processed_orders),
            failed=Path(settings.folders_failed_orders),
            responses=Path(settings.folders_order_responses),
        )

    def ensure(self) -> None:
        """Create every folder (and parents) if missing."""
        for folder in (self.inbound, self.processed, self.failed, self.responses):
            folder.mkdir(parents=True, exist_ok=True)
        log.info(
            "folders_ready",
            inbound=str(self.inbound),
            processed=str(self.processed),
            failed=str(self.failed),
            responses=str(self.responses),
        )


def collision_free_path(dest_dir: Path, file_name: str, now: datetime | None = None) -> Path:
    """
    Pick the destination path for a file moved into dest_dir.

    Returns dest_dir/file_name when free, otherwise the name with
    ``_<YYYYMMDD_HHMMSS>`` appended to the stem.

    Raises:
        RelocationFailure: if the timestamped name is taken as well.
    """
    dest = dest_dir / file_name
    if not dest.exists():
        return dest

    stamp = (now or datetime.now()).strftime(COLLISION_SUFFIX_FORMAT)
    stem, suffix = Path(file_name).stem, Path(file_name).suffix
    dest = dest_dir / f"{stem}_{stamp}{suffix}"
    if dest.exists():
        # Second move of the same name within one second
        raise RelocationFailure(f"{file_name}: {dest.name} already exists in {dest_dir}")
    return dest


def _move_exclusive(src: Path, dest: Path) -> None:
    """Move src to dest, failing with FileExistsError if dest exists."""
    try:
        os.link(src, dest)
    except FileExistsError:
        raise
    except OSError as e:
        if e.errno not in LINK_UNSUPPORTED:
            raise
        # Other filesystem, or no hard links: copy into a newly created file
        with open(src, "rb") as reader, open(dest, "xb") as writer:
            try:
                shutil.copyfileobj(reader, writer)
            except OSError:
                dest.unlink(missing_ok=True)
                raise
        shutil.copystat(src, dest)

    try:
        os.unlink(src)
    except OSError:
        # Leave the file only where it was
        dest.unlink(missing_ok=True)
        raise


def relocate(src: Path, dest_dir: Path) -> Path:
    """
    Move src into dest_dir without overwriting anything.

    The destination is claimed atomically, so a file that appears under
    the chosen name after the collision check is never replaced.

    Returns:
        Final path of the moved file.

    Raises:
        RelocationFailure: if the move cannot be performed.
    """
    dest = collision_free_path(dest_dir, src.name)
    try:
        _move_exclusive(src, dest)
    except FileExistsError as e:
        raise RelocationFailure(f"{src.name}: {dest.name} appeared in {dest_dir} during the move") from e
    except OSError as e:
        raise RelocationFailure(f"Could not move {src} to {dest_dir}: {e}") from e

    log.debug("file_relocated", source=str(src), destination=str(dest))
    return dest
