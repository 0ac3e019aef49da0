"""Markdown rendering and the layout registry (layout name -> render function)"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, TemplateError
from markdown_it import MarkdownIt
from markupsafe import Markup

from mdsite.errors import RenderError


logger = logging.getLogger(__name__)

DEFAULT_LAYOUT = "default"

RenderFn = Callable[[str, dict[str, Any], dict[str, Any]], str]

BUILTIN_TEMPLATES = {
    "base.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{% if page.title %}{{ page.title }} | {% endif %}{{ site.title }}</title>
</head>
<body>
<header><a href="{{ site.base_url }}">{{ site.title }}</a></header>
<main>
{% block main %}{{ content }}{% endblock %}
</main>
</body>
</html>
""",
    "default.html": """\
{% extends "base.html" %}
""",
    "page.html": """\
{% extends "base.html" %}
{% block main %}
<article>
{% if page.title %}<h1>{{ page.title }}</h1>{% endif %}
{{ content }}
</article>
{% endblock %}
""",
    "post.html": """\
{% extends "base.html" %}
{% block main %}
<article>
{% if page.title %}<h1>{{ page.title }}</h1>{% endif %}
{% if page.date_display %}<time datetime="{{ page.date }}">{{ page.date_display }}</time>{% endif %}
{% if page.img %}<img src="{{ page.img }}" alt="">{% endif %}
{{ content }}
{% if page.tags %}<ul class="tags">{% for tag in page.tags %}<li>{{ tag }}</li>{% endfor %}</ul>{% endif %}
</article>
{% endblock %}
""",
    "index.html": """\
{% extends "base.html" %}
{% block main %}
{{ content }}
<ul class="posts">
{% for post in site.posts %}
<li><a href="{{ post.url }}">{{ post.title }}</a> <time datetime="{{ post.date }}">{{ post.date_display }}</time>{% if post.tags %} <span class="tags">{{ post.tags | join(", ") }}</span>{% endif %}</li>
{% endfor %}
</ul>
{% endblock %}
""",
}
BUILTIN_LAYOUTS = ("default", "page", "post", "index")


def make_markdown(preset: str = "gfm-like") -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def make_environment(layouts_dir: Optional[Path] = None) -> Environment:
    """Jinja2 environment: source layouts first, built-in templates as fallback."""
    loaders = []
    if layouts_dir is not None and layouts_dir.is_dir():
        loaders.append(FileSystemLoader(str(layouts_dir)))
    loaders.append(DictLoader(BUILTIN_TEMPLATES))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        keep_trailing_newline=True,
    )


def template_layout(env: Environment, template_name: str) -> RenderFn:
    """Wrap a Jinja2 template as a layout render function."""
    def render(content_html: str, page: dict[str, Any], site: dict[str, Any]) -> str:
        template = env.get_template(template_name)
        return template.render(content=Markup(content_html), page=page, site=site)
    return render


class LayoutRegistry:
    """Maps layout names to render functions with a default fallback."""

    def __init__(self, default: str = DEFAULT_LAYOUT):
        self.default = default
        self._layouts: dict[str, RenderFn] = {}

    def register(self, name: str, fn: RenderFn) -> None:
        self._layouts[name] = fn

    def __contains__(self, name: str) -> bool:
        return name in self._layouts

    def names(self) -> list[str]:
        return sorted(self._layouts)

    def get(self, name: Optional[str]) -> RenderFn:
        """Return the layout for name, or the default layout when unknown or unset."""
        if isinstance(name, str) and name in self._layouts:
            return self._layouts[name]
        if name:
            logger.debug("Unknown layout %r, using %r", name, self.default)
        return self._layouts[self.default]

    def render(self, name: Optional[str], content_html: str, page: dict[str, Any], site: dict[str, Any], path: str = "") -> str:
        """Render through the selected layout. Template failures raise RenderError naming path."""
        try:
            return self.get(name)(content_html, page, site)
        except TemplateError as e:
            raise RenderError(path or page.get("path", "<page>"), f"layout {name or self.default!r} failed: {e}") from e


def make_registry(layouts_dir: Optional[Path] = None) -> LayoutRegistry:
    """Register built-in layouts, then every <layouts_dir>/<name>.html as layout <name>."""
    env = make_environment(layouts_dir)
    registry = LayoutRegistry()
    for name in BUILTIN_LAYOUTS:
        registry.register(name, template_layout(env, f"{name}.html"))
    if layouts_dir is not None and layouts_dir.is_dir():
        for p in sorted(layouts_dir.glob("*.html")):
            registry.register(p.stem, template_layout(env, p.name))
            logger.debug("Registered layout %r from %s", p.stem, p)
    return registry
