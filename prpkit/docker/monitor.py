"""
Live progress monitor for Compose test services run in parallel.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from prpkit.docker.compose import ComposeProject, inspect_state, last_log_line

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2

STARTING = "starting"
RUNNING = "running"
PASSED = "passed"
FAILED = "failed"
UNKNOWN = "unknown"

_STYLES = {
    STARTING: ("⏳", "yellow", "Starting..."),
    RUNNING: ("🔄", "blue", "Running"),
    PASSED: ("✅", "green", "Completed successfully"),
    FAILED: ("❌", "red", "Failed"),
    UNKNOWN: ("❓", "yellow", "Status unknown"),
}


@dataclass
class ServiceResult:
    """Observed state of one service."""
    service: str
    status: str
    exit_code: int | None = None
    detail: str = ""

    @property
    def finished(self) -> bool:
        return self.status in (PASSED, FAILED)


class ServiceMonitor:
    """Start services detached and poll them until all have exited."""

    def __init__(
        self,
        compose: ComposeProject,
        services: list[str],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        console: Console | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.compose = compose
        self.services = list(services)
        self.poll_interval = poll_interval
        self.console = console or Console()
        self.sleep = sleep

    def poll_service(self, service: str) -> ServiceResult:
        container_id = self.compose.container_id(service)
        if not container_id:
            return ServiceResult(service, STARTING)

        state = inspect_state(container_id)
        if state.status == "running":
            return ServiceResult(service, RUNNING, detail=last_log_line(container_id))
        if state.status == "exited":
            status = PASSED if state.exit_code == 0 else FAILED
            return ServiceResult(service, status, exit_code=state.exit_code)
        return ServiceResult(service, UNKNOWN, detail=state.status)

    def poll(self) -> list[ServiceResult]:
        return [self.poll_service(s) for s in self.services]

    def render(self, results: list[ServiceResult], elapsed: float) -> Table:
        table = Table(title=f"Test Progress Monitor ({elapsed:.0f}s elapsed)")
        table.add_column("Service")
        table.add_column("Status")
        table.add_column("Detail", overflow="fold")

        for result in results:
            icon, style, label = _STYLES[result.status]
            if result.status == FAILED:
                label = f"Failed (exit code: {result.exit_code})"
            elif result.status == UNKNOWN:
                label = f"Status unknown ({result.detail})"
            detail = result.detail if result.status == RUNNING else ""
            table.add_row(result.service, Text(f"{icon} {label}", style=style), detail)

        passed = sum(1 for r in results if r.status == PASSED)
        failed = sum(1 for r in results if r.status == FAILED)
        table.caption = f"Progress: {passed}/{len(results)} completed, {failed} failed"
        return table

    def run(self) -> list[ServiceResult]:
        """
        Start the services and block until every one has exited.

        KeyboardInterrupt stops the services before propagating.
        """
        logger.info(f"Starting parallel test execution: {', '.join(self.services)}")
        self.compose.up(self.services, detach=True)
        start = time.monotonic()

        try:
            with Live(console=self.console, refresh_per_second=4) as live:
                while True:
                    results = self.poll()
                    live.update(self.render(results, time.monotonic() - start))
                    if all(r.finished for r in results):
                        return results
                    self.sleep(self.poll_interval)
        except KeyboardInterrupt:
            self.console.print("[yellow]Interrupted! Stopping tests...[/yellow]")
            self.compose.stop(self.services)
            raise
