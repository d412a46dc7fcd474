"""Sequential facts report built from a registry of sections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from rich.console import Console

from adminops.config.settings import FactsConfig
from adminops.facts import formatting
from adminops.facts.sources import FactsSource

logger = logging.getLogger(__name__)

CollectFunc = Callable[[FactsSource, FactsConfig], Awaitable[Any]]
RenderFunc = Callable[[Any], list[str]]


@dataclass
class Section:
    key: str
    title: str
    collect: CollectFunc
    render: RenderFunc


@dataclass
class SectionOutcome:
    key: str
    lines: list[str]
    available: bool = True
    error: str = ""


class SectionRegistry:
    """Ordered collection of report sections."""

    def __init__(self) -> None:
        self._sections: dict[str, Section] = {}

    def register(self, section: Section) -> None:
        if section.key in self._sections:
            raise ValueError(f"Duplicate report section: {section.key}")
        self._sections[section.key] = section

    def get(self, key: str) -> Section | None:
        return self._sections.get(key)

    def sections(self) -> list[Section]:
        return list(self._sections.values())

    def keys(self) -> list[str]:
        return list(self._sections)


def build_default_registry() -> SectionRegistry:
    """The nine report sections in reporting order."""
    registry = SectionRegistry()

    async def uptime(src: FactsSource, cfg: FactsConfig):
        return await src.uptime()

    async def system_info(src: FactsSource, cfg: FactsConfig):
        return await src.system_info()

    async def recent_events(src: FactsSource, cfg: FactsConfig):
        return await src.recent_log_entries(cfg.recent_events)

    async def links(src: FactsSource, cfg: FactsConfig):
        return await src.adapter_links()

    async def processes(src: FactsSource, cfg: FactsConfig):
        return await src.top_processes(cfg.top_processes)

    async def services(src: FactsSource, cfg: FactsConfig):
        return await src.service_statuses(cfg.watched_services)

    async def updates(src: FactsSource, cfg: FactsConfig):
        return await src.pending_updates()

    async def disk_health(src: FactsSource, cfg: FactsConfig):
        return await src.disk_health()

    async def firewall(src: FactsSource, cfg: FactsConfig):
        return await src.firewall_profiles()

    registry.register(Section("uptime", "Uptime", uptime,
                              formatting.render_uptime))
    registry.register(Section("system", "System Information", system_info,
                              formatting.render_system_info))
    registry.register(Section("events", "Recent Errors and Warnings", recent_events,
                              formatting.render_log_entries))
    registry.register(Section("links", "Network Adapter Links", links,
                              formatting.render_links))
    registry.register(Section("processes", "Top Processes by CPU", processes,
                              formatting.render_processes))
    registry.register(Section("services", "Service Status", services,
                              formatting.render_services))
    registry.register(Section("updates", "Pending Updates", updates,
                              formatting.render_updates))
    registry.register(Section("disk_health", "Storage Failure Prediction", disk_health,
                              formatting.render_disk_health))
    registry.register(Section("firewall", "Firewall Profiles", firewall,
                              formatting.render_firewall))
    return registry


class FactsReporter:
    """Collects each section and prints it before moving to the next."""

    def __init__(
        self,
        source: FactsSource,
        config: FactsConfig | None = None,
        console: Console | None = None,
        registry: SectionRegistry | None = None,
    ) -> None:
        self._source = source
        self._config = config or FactsConfig()
        self._console = console or Console(highlight=False, emoji=False)
        self._registry = registry or build_default_registry()

    async def collect_section(self, section: Section) -> SectionOutcome:
        try:
            data = await section.collect(self._source, self._config)
            lines = section.render(data) if data else []
        except Exception as exc:
            logger.warning("Section %s unavailable: %s", section.key, exc)
            return SectionOutcome(
                key=section.key,
                lines=[f"Unavailable: {exc}"],
                available=False,
                error=str(exc),
            )
        return SectionOutcome(key=section.key, lines=lines or ["(none)"])

    def _print(self, text: str) -> None:
        self._console.print(text, markup=False, highlight=False,
                            emoji=False, soft_wrap=True)

    async def run(self) -> list[SectionOutcome]:
        outcomes: list[SectionOutcome] = []
        logger.debug("Collecting %d sections from %s",
                     len(self._registry.keys()), self._source.source_name)
        for section in self._registry.sections():
            outcome = await self.collect_section(section)
            self._print(f"=== {section.title} ===")
            for line in outcome.lines:
                self._print(line)
            self._print("")
            outcomes.append(outcome)
        return outcomes
