"""Shared fixtures: throwaway site directories with local plugins and an in-memory tracer."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

SiteFactory = Callable[..., Path]


def write_plugin(site: Path, name: str, source: str, *, filename: str = "site_node.py") -> Path:
    plugin_dir = site / "plugins" / name
    plugin_dir.mkdir(parents=True, exist_ok=True)
    (plugin_dir / filename).write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return plugin_dir


@pytest.fixture()
def make_site(tmp_path: Path) -> SiteFactory:
    """Create ``tmp_path/site`` with ``site.toml`` text and ``{name: site_node source}`` plugins."""

    def factory(config: str = "", plugins: dict[str, str] | None = None) -> Path:
        site = tmp_path / "site"
        site.mkdir(exist_ok=True)
        (site / "site.toml").write_text(textwrap.dedent(config).lstrip(), encoding="utf-8")
        for name, source in (plugins or {}).items():
            write_plugin(site, name, source)
        return site

    return factory


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture()
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider
