"""Site configuration for forgesite.

Loads forge.yaml from the project root into a SiteConfig. The configuration is
read once at startup and treated as immutable afterwards.

Key functions:
- load_config: Parse forge.yaml into a SiteConfig.
- to_template_data: Convert a YAML tree into JSON-like template values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "forge.yaml"

DEFAULT_CONFIG = {
    "output_dir": "dist",
    "static_dir": "static",
    "content_dir": "content",
    "templates_dir": "templates",
    "port": 8080,
    "ws_port": 8081,
}

MINIFY_KINDS = ("html", "css", "js")
MINIFY_ENGINES = ("library", "builtin")


@dataclass
class CollectionConfig:
    """Per-collection settings.

    Attributes:
        name: Collection (content-type) name.
        sort_by: Front matter field used as the sort key.
        sort_order: "asc" or "desc".
        template: Content template filename overriding the convention.
        url_pattern: Reserved URL pattern, kept for templates.
    """

    name: str
    sort_by: str = "date"
    sort_order: str = "desc"
    template: str | None = None
    url_pattern: str | None = None

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"


@dataclass
class MinifyConfig:
    html: bool = True
    css: bool = True
    js: bool = True
    engine: str = "library"


@dataclass
class SiteConfig:
    """Site configuration loaded from forge.yaml.

    Attributes:
        project_root: Directory containing forge.yaml.
        data: Whole configuration document, exposed to templates as ``site``.
    """

    project_root: Path
    site_name: str = ""
    author: str = ""
    description: str = ""
    url: str = ""
    keywords: list[str] = field(default_factory=list)
    github_url: str = ""
    x_twitter_url: str = ""
    output_dir: str = DEFAULT_CONFIG["output_dir"]
    static_dir: str = DEFAULT_CONFIG["static_dir"]
    content_dir: str = DEFAULT_CONFIG["content_dir"]
    templates_dir: str = DEFAULT_CONFIG["templates_dir"]
    port: int = DEFAULT_CONFIG["port"]
    ws_port: int = DEFAULT_CONFIG["ws_port"]
    minify_output: bool = False
    minify: MinifyConfig = field(default_factory=MinifyConfig)
    collections: dict[str, CollectionConfig] = field(default_factory=dict)
    defaults: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def content_path(self) -> Path:
        return self.project_root / self.content_dir

    @property
    def templates_path(self) -> Path:
        return self.project_root / self.templates_dir

    @property
    def static_path(self) -> Path:
        return self.project_root / self.static_dir

    @property
    def output_path(self) -> Path:
        return self.project_root / self.output_dir

    def minify_enabled(self, kind: str) -> bool:
        """Return True when output of the given kind should be minified.

        Args:
            kind: One of "html", "css" or "js".
        """
        if not self.minify_output or kind not in MINIFY_KINDS:
            return False
        return bool(getattr(self.minify, kind))


def to_template_data(value: Any) -> Any:
    """Convert a YAML tree into JSON-like values for template contexts.

    Mapping keys become strings and dates become ISO-8601 strings; other
    scalars are kept as parsed.

    Args:
        value: Value produced by the YAML parser.

    Returns:
        Equivalent structure made of dicts, lists and scalars.
    """
    if isinstance(value, dict):
        return {str(key): to_template_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_template_data(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from forge.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with defaults applied for missing keys.

    Raises:
        ConfigError: If the file is missing, malformed, or not a mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return _parse_config(project_root, loaded)


def _parse_config(project_root: Path, raw: dict[str, Any]) -> SiteConfig:
    values = {**DEFAULT_CONFIG, **{k: v for k, v in raw.items() if v is not None}}
    keywords = values.get("keywords") or []
    if isinstance(keywords, str):
        keywords = [keywords]

    try:
        config = SiteConfig(
            project_root=project_root,
            site_name=_str(values.get("site_name")),
            author=_str(values.get("author")),
            description=_str(values.get("description")),
            url=_str(values.get("url")),
            keywords=[str(k) for k in keywords],
            github_url=_str(values.get("github_url")),
            x_twitter_url=_str(values.get("x_twitter_url")),
            output_dir=str(values["output_dir"]),
            static_dir=str(values["static_dir"]),
            content_dir=str(values["content_dir"]),
            templates_dir=str(values["templates_dir"]),
            port=int(values["port"]),
            ws_port=int(values["ws_port"]),
            minify_output=bool(values.get("minify_output", False)),
            minify=_parse_minify(values.get("minify")),
            collections=_parse_collections(values.get("collections")),
            defaults={str(k): _str(v) for k, v in (values.get("defaults") or {}).items()},
            data=to_template_data(raw),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc
    return config


def _parse_minify(raw: Any) -> MinifyConfig:
    if not raw:
        return MinifyConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'minify' must be a mapping of html/css/js flags")
    return MinifyConfig(
        html=bool(raw.get("html", True)),
        css=bool(raw.get("css", True)),
        js=bool(raw.get("js", True)),
        engine=_minify_engine(raw.get("engine", "library")),
    )


def _minify_engine(value: Any) -> str:
    engine = str(value)
    if engine not in MINIFY_ENGINES:
        raise ConfigError(
            f"Unknown minify engine '{engine}' (expected one of: "
            f"{', '.join(MINIFY_ENGINES)})"
        )
    return engine


def _parse_collections(raw: Any) -> dict[str, CollectionConfig]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("'collections' must be a mapping of collection names")
    collections: dict[str, CollectionConfig] = {}
    for name, settings in raw.items():
        settings = settings or {}
        collections[str(name)] = CollectionConfig(
            name=str(name),
            sort_by=str(settings.get("sort_by", "date")),
            sort_order=str(settings.get("sort_order", "desc")),
            template=settings.get("template"),
            url_pattern=settings.get("url_pattern"),
        )
    return collections


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)
