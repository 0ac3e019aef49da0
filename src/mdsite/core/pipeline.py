"""Pipeline orchestration: build -> publish with run serialization"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from mdsite.config import Settings
from mdsite.core.build import build
from mdsite.core.models import Artifact, DeployResult, RunState
from mdsite.core.publish import publish
from mdsite.errors import EmptyArtifactError, PipelineBusyError, SiteError
from mdsite.hosts.host import Host


logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Record of one pipeline run: visited states, outputs, and the fatal error if any."""
    states:   list[RunState] = field(default_factory=lambda: [RunState.idle])
    artifact: Optional[Artifact] = None
    deploy:   Optional[DeployResult] = None
    error:    Optional[SiteError] = None

    @property
    def state(self) -> RunState:
        return self.states[-1]

    @property
    def ok(self) -> bool:
        return self.state == RunState.published

    def advance(self, state: RunState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.states.append(state)


@contextmanager
def run_lock(lock_file: Path | str) -> Iterator[Path]:
    """Hold an exclusive lock file for the duration of a run.

    A second run started while the file exists is rejected with
    PipelineBusyError rather than queued.
    """
    lock = Path(lock_file)
    try:
        fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as e:
        raise PipelineBusyError(f"Another run holds {lock}; remove it if no run is active") from e
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield lock
    finally:
        lock.unlink(missing_ok=True)


def run_pipeline(source_root: Path | str, settings: Settings, host: Host) -> RunResult:
    """Build source_root then publish the artifact through host.

    Fatal errors end the run in BuildFailed or PublishFailed and are stored
    on the result; the publisher is never invoked after a failed build.
    Raises PipelineBusyError when another run is in progress.
    """
    result = RunResult()
    with run_lock(settings.lock_file):
        result.advance(RunState.building)
        try:
            artifact = build(source_root, settings.output_dir, settings)
            if not artifact.success:
                raise EmptyArtifactError(f"Build of {source_root} processed no items")
        except SiteError as e:
            logger.error("Build failed: %s", e)
            result.error = e
            result.advance(RunState.build_failed)
            return result
        result.artifact = artifact
        result.advance(RunState.build_succeeded)

        result.advance(RunState.publishing)
        try:
            result.deploy = publish(artifact, host)
        except SiteError as e:
            logger.error("Publish failed: %s", e)
            result.error = e
            result.advance(RunState.publish_failed)
            return result
        result.advance(RunState.published)
    logger.info("Published release %s to %s", result.deploy.release_id, result.deploy.location)
    return result
