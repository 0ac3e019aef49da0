"""Local directory host: content-addressed releases behind an atomically swapped symlink"""

import logging
import os
import shutil
import tarfile
from pathlib import Path

from mdsite.errors import TransferError
from mdsite.hosts.host import Host


logger = logging.getLogger(__name__)

RELEASES_DIR = "releases"
CURRENT_LINK = "current"


class DirectoryHost(Host):
    """Serve from <root>/current, a symlink into <root>/releases/<release_id>.

    Bundles are extracted into their own release directory first; the live
    link is repointed with os.replace only after extraction succeeded, so
    readers see either the old release or the new one.
    """

    name = "directory"

    def __init__(self, root: Path | str):
        self.root = Path(root)

    @property
    def current(self) -> Path:
        return self.root / CURRENT_LINK

    def live_release(self) -> str | None:
        """Return the release id currently served, or None before the first deploy."""
        if not self.current.is_symlink():
            return None
        return Path(os.readlink(self.current)).name

    def _extract(self, bundle: Path, dest: Path) -> None:
        partial = dest.with_name(f".{dest.name}.partial")
        if partial.exists():
            shutil.rmtree(partial)
        try:
            with tarfile.open(bundle, "r:gz") as tar:
                tar.extractall(partial, filter="data")
            partial.rename(dest)
        except (OSError, tarfile.TarError) as e:
            shutil.rmtree(partial, ignore_errors=True)
            raise TransferError(f"Could not unpack bundle into {dest}: {e}") from e

    def deploy(self, bundle: Path, release_id: str, digest: str) -> str:
        releases = self.root / RELEASES_DIR
        dest = releases / release_id
        try:
            releases.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(f"Deploy target not writable: {self.root}: {e}") from e

        if dest.is_dir():
            logger.info("Release %s already present, reusing", release_id)
        else:
            self._extract(bundle, dest)

        tmp_link = self.root / f".{CURRENT_LINK}.{release_id}.tmp"
        try:
            if tmp_link.is_symlink():
                tmp_link.unlink()
            os.symlink(Path(RELEASES_DIR) / release_id, tmp_link, target_is_directory=True)
            os.replace(tmp_link, self.current)
        except OSError as e:
            if tmp_link.is_symlink():
                tmp_link.unlink()
            raise TransferError(f"Could not switch {self.current} to release {release_id}: {e}") from e

        logger.info("Release %s (sha256 %s) is live at %s", release_id, digest[:12], self.current)
        return str(self.current)
