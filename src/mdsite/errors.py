"""Error hierarchy for the build and publish stages"""

from pathlib import Path


class SiteError(Exception):
    """Base class for every error raised by mdsite."""


# --- per item (recoverable) ---

class ContentItemError(SiteError):
    """A single content file could not be processed; the build continues."""

    def __init__(self, path: Path | str, message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class FrontMatterParseError(ContentItemError):
    """Front matter block is not valid YAML, not a mapping, or has a mistyped key."""


class InvalidDateError(ContentItemError):
    """Front matter `date` could not be parsed as a calendar date."""


class InvalidPermalinkError(ContentItemError):
    """Front matter `permalink` points outside the output directory."""


class OutputCollisionError(ContentItemError):
    """Two content files resolve to the same output path."""


class RenderError(ContentItemError):
    """Layout rendering failed for a content file."""


# --- build level (fatal) ---

class SourceNotFound(SiteError):
    """Source root is missing or not a readable directory."""


class EmptyBuildError(SiteError):
    """The build produced no content items."""


# --- publish level (fatal) ---

class EmptyArtifactError(SiteError):
    """Artifact directory is missing or contains no files."""


class TransferError(SiteError):
    """The hosting target did not accept the bundle."""


class PipelineBusyError(SiteError):
    """Another pipeline run holds the run lock."""
