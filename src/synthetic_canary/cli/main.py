"""CLI entry point for synthetic-canary.

Invoked as::

    synthetic-canary [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m synthetic_canary.cli.main

Available commands
------------------
* ``validate``  — run synthetic users against a deployment and score the run
* ``rollout``   — progressively roll out a branch's feature flags
* ``rollback``  — disable every feature flag immediately
* ``profiles``  — list the synthetic user profiles
* ``version``   — show detailed version information
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from synthetic_canary.settings import CanarySettings
    from synthetic_canary.timing import Clock, MonotonicClock, Sleeper

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="synthetic-canary")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the log level.",
    show_default=True,
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML settings file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_path: str | None) -> None:
    """Synthetic-user canary validation and progressive feature-flag rollout."""
    from synthetic_canary.errors import ConfigurationError
    from synthetic_canary.settings import load_settings

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s — %(message)s",
    )
    try:
        ctx.obj = load_settings(config_path)
    except ConfigurationError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise SystemExit(1) from exc


def _time_sources(simulated: bool) -> tuple[Sleeper, Clock, MonotonicClock]:
    """Return (sleep, clock, monotonic) for real or simulated time."""
    from synthetic_canary.timing import VirtualClock, default_sleep, monotonic, utc_now

    if not simulated:
        return default_sleep, utc_now, monotonic
    virtual = VirtualClock()
    return virtual.sleep, virtual.now, virtual.monotonic


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from synthetic_canary import __version__

    console.print(f"[bold]synthetic-canary[/bold] v{__version__}")
    console.print(f"Python {sys.version}")


# ---------------------------------------------------------------------------
# profiles
# ---------------------------------------------------------------------------


@cli.command(name="profiles")
def profiles_command() -> None:
    """List the standard synthetic user profiles."""
    from synthetic_canary.profiles.registry import create_standard_registry

    registry = create_standard_registry()
    table = Table(title="Synthetic User Profiles", show_header=True)
    table.add_column("ID", style="bold")
    table.add_column("Archetype")
    table.add_column("Device")
    table.add_column("Think time (ms)")
    table.add_column("Scenarios")
    for profile in registry:
        think = profile.behavior.think_time_ms
        table.add_row(
            profile.id,
            profile.archetype.value,
            f"{profile.device.device_class.value} / {profile.device.network.value}",
            f"{think.min:.0f}-{think.max:.0f}",
            ", ".join(s.value for s in profile.scenarios),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.argument("deployment_url")
@click.option("--branch-name", default="main", show_default=True, help="Branch under test.")
@click.option("--commit-sha", default="unknown", show_default=True, help="Commit under test.")
@click.option("--seed", default=None, type=int, help="RNG seed for reproducibility.")
@click.option(
    "--simulated-time",
    is_flag=True,
    default=False,
    help="Run pauses in simulated time instead of waiting for real.",
)
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write the JSON result to this path.",
)
@click.pass_obj
def validate_command(
    settings: CanarySettings,
    deployment_url: str,
    branch_name: str,
    commit_sha: str,
    seed: int | None,
    simulated_time: bool,
    output: str | None,
) -> None:
    """Run every synthetic user against DEPLOYMENT_URL and score the run.

    Prints the CI JSON payload on stdout and a one-line summary on stderr.
    Exits 0 when validation passes and 1 otherwise.
    """
    import pathlib

    from synthetic_canary.canary.context import DeploymentContext
    from synthetic_canary.canary.pipeline import CanaryPipeline
    from synthetic_canary.execution.steps import SimulatedStepExecutor
    from synthetic_canary.rollout.flags import flags_for_branch

    execution = settings.execution
    random_seed = seed if seed is not None else execution.random_seed
    sleep, clock, monotonic_clock = _time_sources(simulated_time)

    try:
        driver = SimulatedStepExecutor(
            failure_rate=execution.failure_rate,
            random_seed=random_seed,
            sleep=sleep,
        )
        pipeline = CanaryPipeline(
            step_executor=driver,
            random_seed=random_seed,
            inter_profile_pause_s=execution.inter_profile_pause_s,
            sleep=sleep,
            clock=clock,
            monotonic_clock=monotonic_clock,
        )
        deployment = DeploymentContext(
            deployment_url=deployment_url, branch_name=branch_name, commit_sha=commit_sha
        )
        flags = flags_for_branch(branch_name, settings.flags)
        result = asyncio.run(pipeline.execute(deployment, flags, settings.criteria))
        payload = result.to_ci_payload()
        passed = result.passed
    except Exception as exc:
        logger.error("validate: canary run failed: %s", exc)
        payload = {
            "passed": False,
            "score": 0,
            "summary": f"Validation failed: {exc}",
            "timestamp": clock().isoformat(),
            "deploymentUrl": deployment_url,
        }
        passed = False

    text = json.dumps(payload, indent=2)
    click.echo(text)
    if output:
        pathlib.Path(output).write_text(text, encoding="utf-8")

    colour = "green" if passed else "red"
    err_console.print(f"[{colour}]{payload['summary']}[/{colour}]")
    if not passed:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# rollout
# ---------------------------------------------------------------------------


@cli.command(name="rollout")
@click.option("--deployment-url", required=True, help="Deployment being rolled out.")
@click.option(
    "--test-score",
    required=True,
    type=click.FloatRange(0, 100),
    help="Canary validation score (0-100).",
)
@click.option("--branch-name", required=True, help="Branch whose flags are rolled out.")
@click.option(
    "--strategy",
    default="conservative",
    show_default=True,
    type=click.Choice(["conservative", "aggressive", "instant"], case_sensitive=False),
    help="Requested rollout strategy.",
)
@click.option(
    "--simulated-time",
    is_flag=True,
    default=False,
    help="Run monitoring windows in simulated time.",
)
@click.pass_obj
def rollout_command(
    settings: CanarySettings,
    deployment_url: str,
    test_score: float,
    branch_name: str,
    strategy: str,
    simulated_time: bool,
) -> None:
    """Progressively roll out the feature flags matching BRANCH_NAME.

    Exits 0 only when the rollout completes.  Any failure rolls every flag
    back to 0% and exits 1.
    """
    from synthetic_canary.errors import ConfigurationError
    from synthetic_canary.rollout.controller import ProgressiveRolloutController
    from synthetic_canary.rollout.flags import flags_for_branch
    from synthetic_canary.rollout.memory import InMemoryFlagService
    from synthetic_canary.rollout.strategy import select_strategy
    from synthetic_canary.settings import (
        build_flag_service,
        build_health_check,
        build_notifier,
    )

    console.print(
        f"[bold cyan]rollout[/bold cyan] — {deployment_url} "
        f"score={test_score:.0f}/100 branch={branch_name!r} strategy={strategy}"
    )

    flags = flags_for_branch(branch_name, settings.flags)
    if not flags:
        console.print("No feature flags found for this branch. Nothing to roll out.")
        return

    try:
        flag_service = build_flag_service(settings)
        health_check = build_health_check(settings)
        notifier = build_notifier(settings)
    except ConfigurationError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise SystemExit(1) from exc

    if isinstance(flag_service, InMemoryFlagService):
        console.print("[yellow]Note:[/yellow] no flag service configured; this is a dry run.")

    ladder = select_strategy(test_score, strategy)
    table = Table(title=f"{ladder.name.value.title()} rollout", show_header=True)
    table.add_column("Step", style="bold")
    table.add_column("Percentage")
    table.add_column("Monitoring (min)")
    for index, step in enumerate(ladder.steps, start=1):
        table.add_row(str(index), f"{step.percentage}%", f"{step.monitoring_minutes:g}")
    console.print(table)
    for flag in flags:
        console.print(f"  - {flag.key}: {flag.description}")

    sleep, clock, _ = _time_sources(simulated_time)
    controller = ProgressiveRolloutController(
        flag_service, health_check, notifier, sleep=sleep, clock=clock
    )
    outcome = asyncio.run(controller.run([flag.key for flag in flags], ladder))

    if outcome.succeeded:
        console.print(
            f"[green]Rollout completed[/green] — {outcome.final_percentage}% of users."
        )
        return
    err_console.print(
        f"[red]Rollout {outcome.status.value}[/red] at step {outcome.steps_applied}: "
        f"{outcome.reason}"
    )
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# rollback
# ---------------------------------------------------------------------------


@cli.command(name="rollback")
@click.option("--deployment-url", default="unknown", show_default=True, help="Failing deployment.")
@click.option(
    "--score",
    default=0.0,
    type=click.FloatRange(0, 100),
    show_default=True,
    help="Canary score (0-100).",
)
@click.option("--reason", default="Unknown failure", show_default=True, help="Why to roll back.")
@click.option(
    "--incident-output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the incident report as JSON to this path.",
)
@click.pass_obj
def rollback_command(
    settings: CanarySettings,
    deployment_url: str,
    score: float,
    reason: str,
    incident_output: str | None,
) -> None:
    """Disable every known feature flag immediately.

    Exits 1 when any flag could not be disabled.
    """
    from synthetic_canary.errors import ConfigurationError
    from synthetic_canary.rollout.emergency import DEFAULT_EMERGENCY_FLAGS, EmergencyRollback
    from synthetic_canary.settings import build_flag_service, build_notifier

    err_console.print("[bold red]EMERGENCY ROLLBACK INITIATED[/bold red]")
    err_console.print(f"Deployment: {deployment_url}  Score: {score:.0f}/100  Reason: {reason}")

    try:
        flag_service = build_flag_service(settings)
        notifier = build_notifier(settings)
    except ConfigurationError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise SystemExit(1) from exc

    flag_keys = list(dict.fromkeys([*(f.key for f in settings.flags), *DEFAULT_EMERGENCY_FLAGS]))
    report = asyncio.run(
        EmergencyRollback(flag_service, notifier).execute(
            flag_keys, reason=reason, score=score, deployment_url=deployment_url
        )
    )

    table = Table(title=f"Incident {report.id}", show_header=True)
    table.add_column("Flag", style="bold")
    table.add_column("Status")
    for key in report.disabled_flags:
        table.add_row(key, "[green]disabled[/green]")
    for key in report.failed_flags:
        table.add_row(key, "[red]FAILED[/red]")
    console.print(table)

    if incident_output:
        path = report.write_json(incident_output)
        console.print(f"\nIncident report saved to: [bold]{path}[/bold]")

    if not report.fully_disabled:
        err_console.print("[bold red]MANUAL INTERVENTION REQUIRED[/bold red]")
        raise SystemExit(1)
    console.print("[green]Emergency rollback completed.[/green]")


if __name__ == "__main__":
    cli()
