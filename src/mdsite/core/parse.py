"""Source discovery, front matter extraction, and content item construction"""

import posixpath
import re
from datetime import date, datetime
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

import yaml

from mdsite.core.models import ContentItem
from mdsite.core.utils.slug import slugify
from mdsite.errors import ContentItemError, FrontMatterParseError, InvalidDateError, InvalidPermalinkError


FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)
DATE_FORMATS = ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M %z", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M")
SCALAR_TYPES = (str, int, float, bool, date)


class FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as strings; `parse_date` owns date handling."""


FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split_front_matter(text: str, path: Path | str = "<string>") -> tuple[dict[str, Any], str]:
    """Return (front_matter, body). Raises FrontMatterParseError naming `path` on a bad block."""
    m = FRONTMATTER_RE.match(text)
    if not m:
        return {}, text
    try:
        fm = yaml.load(m.group(1), Loader=FrontMatterLoader) or {}
    except (yaml.YAMLError, ValueError, TypeError) as e:
        # explicit tags (!!timestamp, !!int) still reach PyYAML's constructors
        raise FrontMatterParseError(path, f"invalid YAML front matter: {e}") from e
    if not isinstance(fm, dict):
        raise FrontMatterParseError(path, f"front matter must be a mapping, got {type(fm).__name__}")
    return fm, text[m.end():]


def parse_date(value: Any, path: Path | str = "<string>") -> Optional[date]:
    """Coerce a front matter date to a calendar date; None when absent.

    Front matter dates arrive as strings (FrontMatterLoader keeps timestamps
    unresolved) and are tried as ISO 8601, then as
    'YYYY-MM-DD HH:MM[:SS] [+ZZZZ]'.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidDateError(path, f"unparseable date {text!r}")


def output_path_for(rel_path: str, front_matter: dict[str, Any]) -> str:
    """Derive the artifact-relative output path for a content file.

    A `permalink` wins ('/about/' -> 'about/index.html'); otherwise the
    source stem is slugified and given an .html suffix. A permalink that
    normalises to a path above the output root raises InvalidPermalinkError.
    """
    permalink = front_matter.get("permalink")
    if permalink:
        raw = str(permalink).strip().lstrip("/")
        link = posixpath.normpath(raw) if raw else "."
        if link == ".." or link.startswith("../"):
            raise InvalidPermalinkError(rel_path, f"permalink {str(permalink)!r} leaves the output directory")
        if link == "." or raw.endswith("/"):
            return "index.html" if link == "." else f"{link}/index.html"
        if not PurePosixPath(link).suffix:
            link += ".html"
        return link
    src = PurePosixPath(rel_path)
    return str(src.with_name(f"{slugify(src.stem)}.html"))


def _excluded(rel: PurePosixPath, layouts_dir: str) -> bool:
    if any(part.startswith(".") for part in rel.parts):
        return True
    return rel.parts[0] == layouts_dir


def discover_files(
    root: Path,
    extensions: Iterable[str],
    layouts_dir: str = "_layouts",
    exclude: Iterable[Path] = (),
    ) -> tuple[list[Path], list[Path]]:
    """Return (content_files, asset_files) under root, each sorted by path.

    Hidden paths, the layouts directory, and anything under `exclude`
    (output and staging directories nested in the source) are skipped.
    """
    exts = {e.lower() for e in extensions}
    skip = [p.resolve() for p in exclude]
    content, assets = [], []
    for p in root.rglob("*"):
        if not p.is_file():
            continue
        rel = PurePosixPath(p.relative_to(root).as_posix())
        if _excluded(rel, layouts_dir):
            continue
        resolved = p.resolve()
        if any(resolved == s or s in resolved.parents for s in skip):
            continue
        (content if p.suffix.lower() in exts else assets).append(p)
    return sorted(content), sorted(assets)


def check_front_matter(front_matter: dict[str, Any], path: Path | str = "<string>") -> None:
    """Reject recognised keys whose values have the wrong shape."""
    layout = front_matter.get("layout")
    if layout is not None and not isinstance(layout, str):
        raise FrontMatterParseError(path, f"layout must be a string, got {type(layout).__name__}")
    for key in ("title", "permalink"):
        value = front_matter.get(key)
        if value is not None and not isinstance(value, SCALAR_TYPES):
            raise FrontMatterParseError(path, f"{key} must be a scalar, got {type(value).__name__}")
    tags = front_matter.get("tags")
    if tags is None or isinstance(tags, str):
        return
    if not isinstance(tags, list) or not all(isinstance(t, SCALAR_TYPES) for t in tags):
        raise FrontMatterParseError(path, "tags must be a string or a list of strings")


def parse_file(path: Path, root: Path) -> ContentItem:
    """Read one content file into a ContentItem.

    Raises ContentItemError (or a subclass) for unreadable files, malformed
    front matter and permalinks outside the output root. An unparseable
    date leaves `date` as None and the error on `date_error`.
    """
    rel = path.relative_to(root).as_posix()
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ContentItemError(rel, f"unreadable: {e}") from e
    front_matter, body = split_front_matter(raw, rel)
    check_front_matter(front_matter, rel)
    parsed, err = None, None
    try:
        parsed = parse_date(front_matter.get("date"), rel)
    except InvalidDateError as e:
        err = e
    return ContentItem(
        path=rel,
        front_matter=front_matter,
        body=body,
        date=parsed,
        output_path=output_path_for(rel, front_matter),
        date_error=err,
    )
