"""Publisher: package a built artifact and hand it to a hosting target"""

import gzip
import logging
import tarfile
import tempfile
from pathlib import Path

from mdsite.config import Settings
from mdsite.core.models import Artifact, DeployResult
from mdsite.core.utils.hashing import sha256_file
from mdsite.errors import EmptyArtifactError
from mdsite.hosts.directory_host import DirectoryHost
from mdsite.hosts.host import Host
from mdsite.hosts.http_host import HttpHost


logger = logging.getLogger(__name__)

BUNDLE_NAME = "site.tar.gz"


def make_host(settings: Settings) -> Host:
    """Build the configured Host. Raises ValueError for incomplete http settings."""
    if settings.host == "http":
        if not settings.deploy_url:
            raise ValueError("host 'http' requires deploy_url (MDSITE_DEPLOY_URL)")
        return HttpHost(settings.deploy_url, settings.deploy_token)
    return DirectoryHost(settings.deploy_target)


def artifact_files(output_dir: Path) -> list[Path]:
    """Regular files under output_dir, sorted by relative POSIX path."""
    files = [p for p in output_dir.rglob("*") if p.is_file()]
    return sorted(files, key=lambda p: p.relative_to(output_dir).as_posix())


def package_artifact(output_dir: Path, bundle: Path) -> int:
    """Write output_dir as a reproducible .tar.gz; returns the number of files packed.

    Entries are sorted with zeroed timestamps and ownership so an unchanged
    artifact always yields the same bytes (and the same digest).
    """
    files = artifact_files(output_dir)
    with bundle.open("wb") as raw, gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
            for path in files:
                info = tarfile.TarInfo(path.relative_to(output_dir).as_posix())
                info.size = path.stat().st_size
                info.mode = 0o644
                info.mtime = 0
                with path.open("rb") as f:
                    tar.addfile(info, f)
    return len(files)


def publish(artifact: Artifact | Path | str, host: Host) -> DeployResult:
    """Package the artifact directory and deploy it through host.

    Fails closed with EmptyArtifactError when there is nothing to publish;
    TransferError from the host propagates with the live site untouched.
    """
    if isinstance(artifact, Artifact):
        if not artifact.success:
            raise EmptyArtifactError(f"Build of {artifact.output_dir} processed no items")
        output_dir = artifact.output_dir
    else:
        output_dir = Path(artifact)
    if not output_dir.is_dir() or not artifact_files(output_dir):
        raise EmptyArtifactError(f"Nothing to publish in {output_dir}")

    with tempfile.TemporaryDirectory(prefix="mdsite-") as tmp:
        bundle = Path(tmp) / BUNDLE_NAME
        count = package_artifact(output_dir, bundle)
        digest = sha256_file(bundle)
        release_id = digest[:12]
        logger.info("Publishing %d file(s) from %s as release %s via %s", count, output_dir, release_id, host.name)
        location = host.deploy(bundle, release_id, digest)

    return DeployResult(
        host=host.name,
        release_id=release_id,
        digest=digest,
        file_count=count,
        location=location,
    )
