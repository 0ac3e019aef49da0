"""Site builder: content source tree -> rendered static artifact"""

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Iterable, Optional

from markdown_it import MarkdownIt

from mdsite.config import CONFIG_FILE, Settings
from mdsite.core.models import Artifact, ContentItem
from mdsite.core.parse import discover_files, parse_file
from mdsite.core.render import LayoutRegistry, make_markdown, make_registry
from mdsite.errors import (
    ContentItemError,
    EmptyBuildError,
    InvalidPermalinkError,
    OutputCollisionError,
    SourceNotFound,
)


logger = logging.getLogger(__name__)

INDEX_LAYOUT = "index"


def _url(base_url: str, output_path: str) -> str:
    return f"{base_url.rstrip('/')}/{output_path}"


def _page(item: ContentItem, settings: Settings) -> dict[str, Any]:
    """Template context for a single item: front matter plus derived fields."""
    page = dict(item.front_matter)
    page.update(
        path=item.path,
        url=_url(settings.base_url, item.output_path),
        title=item.title,
        date=item.date.isoformat() if item.date else None,
        date_display=item.date.strftime(settings.date_format) if item.date else None,
        tags=item.tags,
    )
    return page


def site_index(items: Iterable[ContentItem], index_path: str = "index.html") -> list[ContentItem]:
    """Listable items by date descending, ties by source path ascending."""
    listed = [i for i in items if i.listable and i.output_path != index_path]
    return sorted(listed, key=lambda i: (-i.date.toordinal(), i.path))


def _skip(artifact: Artifact, error: ContentItemError) -> None:
    logger.warning("Skipping %s", error)
    artifact.errors.append(error)
    artifact.skipped += 1


def _write(dest: Path, text: str) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8")
    logger.debug("Wrote %s", dest)


def _collect(files: list[Path], source_root: Path, artifact: Artifact) -> list[ContentItem]:
    """Parse content files; per-item failures are recorded on the artifact."""
    items: list[ContentItem] = []
    claimed: dict[str, str] = {}
    for path in files:
        try:
            item = parse_file(path, source_root)
        except ContentItemError as e:
            _skip(artifact, e)
            continue
        if item.output_path in claimed:
            _skip(artifact, OutputCollisionError(
                item.path, f"output {item.output_path} already produced by {claimed[item.output_path]}"))
            continue
        if item.date_error:
            logger.warning("%s; rendered but left out of the index", item.date_error)
            artifact.errors.append(item.date_error)
        claimed[item.output_path] = item.path
        items.append(item)
    return items


def _render_items(
    items: list[ContentItem],
    staging: Path,
    registry: LayoutRegistry,
    md: MarkdownIt,
    settings: Settings,
    artifact: Artifact,
    ) -> tuple[list[ContentItem], Optional[tuple[ContentItem, str]]]:
    """Render every item except the index page. Returns (rendered, (index_item, index_html) or None).

    Item layouts see `site.posts` empty: the listing is only known once every
    item has rendered, so it is handed to the index layout alone.
    """
    site = {"title": settings.site_title, "base_url": settings.base_url, "posts": []}
    root = staging.resolve()
    rendered: list[ContentItem] = []
    index_page = None
    for item in items:
        content_html = md.render(item.body)
        if item.output_path == settings.index_path:
            index_page = (item, content_html)
            continue
        dest = staging / item.output_path
        if not dest.resolve().is_relative_to(root):
            _skip(artifact, InvalidPermalinkError(item.path, f"output {item.output_path} leaves the output directory"))
            continue
        try:
            html = registry.render(item.layout, content_html, _page(item, settings), site, path=item.path)
        except ContentItemError as e:
            _skip(artifact, e)
            continue
        _write(dest, html)
        rendered.append(item)
        artifact.processed += 1
    return rendered, index_page


def _render_index(
    rendered: list[ContentItem],
    index_page: Optional[tuple[ContentItem, str]],
    staging: Path,
    registry: LayoutRegistry,
    settings: Settings,
    artifact: Artifact,
    ) -> None:
    """Write the post listing, with the index page's body (if any) above it."""
    posts = [_page(i, settings) for i in site_index(rendered, settings.index_path)]
    site = {"title": settings.site_title, "base_url": settings.base_url, "posts": posts}
    if index_page:
        item, content_html = index_page
        page = _page(item, settings)
    else:
        content_html, page = "", {"path": settings.index_path, "url": _url(settings.base_url, settings.index_path)}
    html = registry.render(INDEX_LAYOUT, content_html, page, site, path=page["path"])
    _write(staging / settings.index_path, html)
    if index_page:
        artifact.processed += 1
    logger.info("Index lists %d item(s)", len(posts))


def _copy_assets(assets: list[Path], source_root: Path, staging: Path, artifact: Artifact) -> int:
    copied = 0
    for src in assets:
        rel = src.relative_to(source_root).as_posix()
        dest = staging / rel
        if dest.exists():
            err = OutputCollisionError(rel, "asset shadowed by a rendered page")
            logger.warning("Not copying %s", err)
            artifact.errors.append(err)
            continue
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        copied += 1
    return copied


def _swap(staging: Path, output_dir: Path) -> None:
    """Replace output_dir with the fully rendered staging tree."""
    old = output_dir.with_name(f".{output_dir.name}.old")
    if old.exists():
        shutil.rmtree(old)
    if output_dir.exists():
        output_dir.rename(old)
    staging.rename(output_dir)
    if old.exists():
        shutil.rmtree(old)


def _discover(
    source_root: Path,
    output_dir: Path,
    settings: Settings,
    exclude: Iterable[Path] = (),
    ) -> tuple[list[Path], list[Path]]:
    """Validate the source root and return (content_files, assets), failing on no content."""
    if not source_root.is_dir() or not os.access(source_root, os.R_OK | os.X_OK):
        raise SourceNotFound(f"Source directory not found or unreadable: {source_root}")
    skip = [output_dir, output_dir.with_name(f".{output_dir.name}.staging"),
            output_dir.with_name(f".{output_dir.name}.old"),
            source_root / CONFIG_FILE, Path(settings.lock_file), *exclude]
    if settings.host == "directory":
        skip.append(Path(settings.deploy_target))
    content_files, assets = discover_files(source_root, settings.content_extensions, settings.layouts_dir, skip)
    if not content_files:
        raise EmptyBuildError(f"No content files ({', '.join(settings.content_extensions)}) under {source_root}")
    return content_files, assets


def load_items(source_root: Path | str, settings: Settings = None) -> tuple[list[ContentItem], list[ContentItemError]]:
    """Parse every content item without rendering. Returns (items, per-item errors)."""
    settings = settings or Settings()
    source_root = Path(source_root)
    content_files, _ = _discover(source_root, Path(settings.output_dir), settings)
    scratch = Artifact(output_dir=Path(settings.output_dir))
    return _collect(content_files, source_root, scratch), scratch.errors


def build(
    source_root: Path | str,
    output_dir: Path | str,
    settings: Settings = None,
    exclude: Iterable[Path] = (),
    ) -> Artifact:
    """Render source_root into output_dir and return the Artifact.

    The site is rendered into a sibling staging directory and swapped into
    output_dir only once complete, so a failed build leaves the previous
    output in place. Malformed items are skipped and recorded on the
    artifact; a missing source or an empty result raises.
    """
    settings = settings or Settings()
    source_root, output_dir = Path(source_root), Path(output_dir)
    content_files, assets = _discover(source_root, output_dir, settings, exclude)
    logger.info("Discovered %d content file(s) and %d asset(s) in %s", len(content_files), len(assets), source_root)

    registry = make_registry(source_root / settings.layouts_dir)
    md = make_markdown(settings.parser_config)
    artifact = Artifact(output_dir=output_dir)

    staging = output_dir.with_name(f".{output_dir.name}.staging")
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)
    try:
        items = _collect(content_files, source_root, artifact)
        rendered, index_page = _render_items(items, staging, registry, md, settings, artifact)
        if artifact.processed == 0 and index_page is None:
            raise EmptyBuildError(f"No content items rendered from {source_root} ({artifact.skipped} skipped)")
        _render_index(rendered, index_page, staging, registry, settings, artifact)
        copied = _copy_assets(assets, source_root, staging, artifact)
        _swap(staging, output_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info(
        "Built %s: %d processed, %d skipped, %d asset(s)",
        output_dir, artifact.processed, artifact.skipped, copied,
    )
    return artifact
