"""Data models for content items, build artifacts, and deploy results"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from mdsite.errors import ContentItemError, InvalidDateError


@dataclass(frozen=True)
class ContentItem:
    """One parsed content file; immutable for the duration of a build."""
    path:         str              # relative to source root, POSIX separators
    front_matter: dict[str, Any]
    body:         str              # markdown without front matter
    date:         Optional[date]   # None when missing or unparseable
    output_path:  str              # relative to the artifact root
    date_error:   Optional[InvalidDateError] = field(default=None, compare=False)

    @property
    def title(self) -> Optional[str]:
        title = self.front_matter.get("title")
        return str(title) if title not in (None, "") else None

    @property
    def layout(self) -> Optional[str]:
        layout = self.front_matter.get("layout")
        return layout if isinstance(layout, str) else None

    @property
    def tags(self) -> list[str]:
        tags = self.front_matter.get("tags") or []
        if isinstance(tags, str):
            return tags.split()
        if not isinstance(tags, list):
            return [str(tags)]
        return [str(t) for t in tags]

    @property
    def listable(self) -> bool:
        """True when the item carries both a title and a parsed date."""
        return self.title is not None and self.date is not None


@dataclass
class Artifact:
    """Handle on a rendered output directory."""
    output_dir: Path
    processed:  int = 0
    skipped:    int = 0
    errors:     list[ContentItemError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.processed > 0


class DeployResult(BaseModel):
    """Outcome of a successful transfer to a hosting target."""
    model_config = ConfigDict(frozen=True)

    host:       str
    release_id: str
    digest:     str     # sha256 of the uploaded bundle
    file_count: int
    location:   str     # where the host reports the live site


class RunState(str, Enum):
    idle            = "idle"
    building        = "building"
    build_failed    = "build_failed"
    build_succeeded = "build_succeeded"
    publishing      = "publishing"
    publish_failed  = "publish_failed"
    published       = "published"
