"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "MDSITE_"


class Settings(BaseModel):
    site_title:    str = "Blog"
    base_url:      str = Field(default="/", description="URL prefix for links in generated pages")
    source_dir:    str = Field(default=".",     description="Content source tree")
    output_dir:    str = Field(default="_site", description="Build artifact directory")
    layouts_dir:   str = Field(default="_layouts", description="Layout templates, relative to source_dir")
    content_extensions: list[str] = Field(default=[".md", ".markdown"])
    index_path:    str = Field(default="index.html", description="Output path of the post listing")
    date_format:   str = Field(default="%b %d, %Y", description="strftime format for listing dates")
    parser_config: str = Field(default="gfm-like",  description="MarkdownIt parser preset name")
    host:          str = Field(default="directory", pattern="^(directory|http)$", description="directory or http")
    deploy_target: str = Field(default="public",  description="Target root for the directory host")
    deploy_url:    str = Field(default="",        description="Upload endpoint for the http host")
    deploy_token:  str = Field(default="",        description="Bearer token for the http host")
    lock_file:     str = Field(default=".mdsite.lock", description="Run lock serializing pipeline runs")
    log_level:     str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")

    @field_validator("content_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value: Any) -> Any:
        """Accept a comma-separated string (env vars) and normalise to lowercase '.ext'."""
        if isinstance(value, str):
            value = [v for v in value.split(",") if v.strip()]
        return [f".{v.strip().lstrip('.').lower()}" for v in value]


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDSITE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e
