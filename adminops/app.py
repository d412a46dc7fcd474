"""Command runners wiring config, logging and components together."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from adminops.actions.unisolate import run_unisolate
from adminops.audit.job import run_audit_export
from adminops.config.settings import Settings, load_config
from adminops.errors import (
    AdminOpsError,
    AuthenticationError,
    ExportWriteError,
    RemoteCallError,
)
from adminops.facts.local import LocalFactsSource
from adminops.facts.report import FactsReporter
from adminops.graph.auth import Credential

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_AUTH = 3
EXIT_TRUNCATED = 4


class Application:
    """Holds settings and consoles for a single command invocation."""

    def __init__(self, config_path: str | Path | None = None,
                 verbose: bool = False,
                 console: Console | None = None,
                 err_console: Console | None = None) -> None:
        self.settings: Settings = load_config(config_path)
        self.verbose = verbose
        self.console = console or Console(highlight=False, emoji=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def setup_logging(self) -> None:
        level_name = "DEBUG" if self.verbose else self.settings.logging.level.upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.settings.logging.level}")
        logging.root.setLevel(level)

        handler = RichHandler(console=self.err_console, show_path=False,
                              rich_tracebacks=self.verbose)
        logging.root.addHandler(handler)

        if self.settings.logging.file:
            log_path = Path(self.settings.logging.file).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s",
            ))
            logging.root.addHandler(file_handler)

        # Per-request chatter from the HTTP and identity stacks
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("msal").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    def _fail(self, exc: Exception) -> int:
        if self.verbose:
            logger.exception("Command failed")
        if isinstance(exc, AuthenticationError):
            self.err_console.print(f"[bold red]Authentication failed:[/] {escape(str(exc))}",
                                   highlight=False)
            return EXIT_AUTH
        if isinstance(exc, RemoteCallError):
            self.err_console.print(f"[bold red]Remote call failed:[/] {escape(str(exc))}",
                                   highlight=False)
            return EXIT_FAILURE
        if isinstance(exc, ExportWriteError):
            self.err_console.print(f"[bold red]Export failed:[/] {escape(str(exc))}",
                                   highlight=False)
            return EXIT_FAILURE
        self.err_console.print(f"[bold red]Error:[/] {escape(str(exc))}", highlight=False)
        return EXIT_FAILURE

    async def unisolate(self, device_id: str, app_id: str, tenant_id: str,
                        thumbprint: str, private_key: str | None = None,
                        **kwargs) -> int:
        creds = self.settings.credentials
        credential = Credential(
            tenant_id=tenant_id,
            client_id=app_id,
            thumbprint=thumbprint,
            private_key_path=private_key or creds.private_key_path,
            client_secret=creds.client_secret,
        )
        try:
            result = await run_unisolate(self.settings, credential, device_id, **kwargs)
        except (AdminOpsError, ValueError) as exc:
            return self._fail(exc)
        self.console.print(
            f"Unisolate request accepted for device {result.device_id} "
            f"(HTTP {result.status_code})",
            markup=False,
        )
        return EXIT_OK

    async def facts(self, source=None) -> int:
        cfg = self.settings.facts
        source = source or LocalFactsSource(
            command_timeout=cfg.command_timeout,
            cpu_sample_seconds=cfg.cpu_sample_seconds,
        )
        reporter = FactsReporter(source, cfg, console=self.console)
        outcomes = await reporter.run()
        missing = [o.key for o in outcomes if not o.available]
        if missing:
            logger.info("Report finished; unavailable sections: %s", ", ".join(missing))
        return EXIT_OK

    async def audit_export(self, output: str | None = None, **kwargs) -> int:
        credential = Credential.from_config(self.settings.credentials)
        try:
            result = await run_audit_export(
                self.settings, credential, export_path=output, **kwargs,
            )
        except (AdminOpsError, ValueError) as exc:
            return self._fail(exc)

        self.console.print(f"Exported {result.rows} events to {result.path}",
                           markup=False)
        if result.truncated:
            self.err_console.print(
                f"[bold yellow]Warning:[/] result cap of "
                f"{self.settings.audit_export.result_cap} reached; more matching "
                f"events exist and were not exported. Narrow the window or "
                f"raise audit_export.result_cap.",
                highlight=False,
            )
            if self.settings.audit_export.fail_on_truncation:
                return EXIT_TRUNCATED
        return EXIT_OK
