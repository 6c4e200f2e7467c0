from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Iterator, Sequence

import typer

from .container import Container
from ..config.tokens import mask_secret
from ..core.domain.models import PullRequestRecord


app = typer.Typer(help="Dependabot PR monitor for a GitHub App installation")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@app.callback()
def main(verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


@contextmanager
def provide_container() -> Iterator[Container]:
    container = Container()
    container.init_resources()
    try:
        yield container
    finally:
        container.shutdown_resources()


@app.command("list", help="List open Dependabot PRs. Columns: repository, #number, dependency, current -> proposed version, conflicts.")
def list_cmd(
    repo: str | None = typer.Option(None, "--repo", "-r", help="Only this repository (default: every configured repository)"),
    as_json: bool = typer.Option(False, "--json", help="Print records as a JSON array"),
) -> None:
    with provide_container() as container:
        uc = container.list_uc()
        prs = uc.for_repository(repo) if repo else uc.for_all()
        if as_json:
            print(json.dumps([pr.as_dict() for pr in prs], ensure_ascii=False, indent=2))
        else:
            _print_list(prs)


@app.command(help="Run one refresh cycle now (evict cache, refetch every configured repository).")
def refresh() -> None:
    with provide_container() as container:
        orchestrator = container.orchestrator()
        ok = orchestrator.refresh()
        stats = orchestrator.stats
        cache = container.cache()
        if not ok:
            typer.echo("Refresh failed (see log for details)", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Refreshed {len(cache)} repositories in {stats.last_execution_duration_ms}ms")


@app.command(help="Start the cron refresh scheduler and block until interrupted.")
def run(
    refresh_now: bool = typer.Option(False, "--refresh-now", help="Run one refresh cycle before waiting for the schedule"),
) -> None:
    with provide_container() as container:
        timer = container.refresh_timer()
        if refresh_now:
            container.orchestrator().refresh()
        if not timer.start():
            typer.echo("Scheduler is disabled (set DEPENDABOT_PRS_SCHEDULER_ENABLED=true)", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Scheduler running; next refresh at {timer.next_run_time()}")

        stop = threading.Event()
        signal.signal(signal.SIGTERM, lambda *_: stop.set())
        try:
            stop.wait()
        except KeyboardInterrupt:
            pass
        finally:
            timer.stop()


@app.command("config", help="Print the effective configuration with secrets masked.")
def config_cmd() -> None:
    with provide_container() as container:
        cfg = dict(container.config())
        cfg["private_key"] = mask_secret(cfg.get("private_key"))
        for key in sorted(cfg):
            print(f"{key:26} {cfg[key]}")


def _print_list(prs: Sequence[PullRequestRecord]) -> None:
    print(f"{'Repository':25} {'#':>6} {'Dependency':35} {'Current':>12}    {'Proposed':12} {'Conflicts':9}")
    for pr in prs:
        conflicts = "yes" if pr.has_conflicts else "-"
        print(
            f"{pr.repository:25} {pr.number:>6} {pr.dependency or '-':35} "
            f"{pr.current_version or '-':>12} -> {pr.proposed_version or '-':12} {conflicts:9}"
        )


if __name__ == "__main__":  # pragma: no cover
    app()
