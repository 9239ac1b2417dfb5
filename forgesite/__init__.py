"""Forgesite static site generator.

This package turns a tree of Markdown/HTML content documents and Jinja2 templates
into a static website, and serves that site with automatic rebuild-and-reload
while it is being edited.

The main entry point is the CLI module, which provides commands for running the
development server, exporting the static site, and previewing an exported build.

Architecture:
- Content pipeline: discovery, page/collection model, rendering, export.
- Minification engine: HTML/CSS/JS transforms with a delegated fallback path.
- Dev server: render-on-demand HTTP routes, file watching, live reload.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
