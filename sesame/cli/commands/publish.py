from __future__ import annotations

from pathlib import Path

import typer

from sesame.cli.commands._helpers import exit_with_code, resolve_project_dir
from sesame.cli.context import build_context, global_options
from sesame.output.errors import release_exit_code
from sesame.release.model import BuildOutcome, PublishOptions, ReleasePhase
from sesame.release.orchestrator import ReleaseOrchestrator


def publish(
    ctx: typer.Context,
    refresh_server: bool = typer.Option(
        False, "--refresh-server", help="Choose the git hosting server again"
    ),
    refresh_token: bool = typer.Option(False, "--refresh-token", help="Enter a new access token"),
    refresh_owner: bool = typer.Option(
        False, "--refresh-owner", help="Choose the repository owner again"
    ),
    refresh_publish_type: bool = typer.Option(
        False, "--refresh-publish-type", help="Choose the publish target again"
    ),
    build_cmd: str = typer.Option(
        "", "--build-cmd", help="Build command run by the build service (default: npm run build)"
    ),
    prod: bool = typer.Option(False, "--prod", help="Production release: tag and merge on success"),
    ssh_user: str | None = typer.Option(None, "--ssh-user", help="Template upload user"),
    ssh_ip: str | None = typer.Option(None, "--ssh-ip", help="Template upload host"),
    ssh_path: str | None = typer.Option(None, "--ssh-path", help="Template upload path"),
    project_dir: Path | None = typer.Option(
        None, "--project-dir", help="Project directory (default: current directory)"
    ),
) -> None:
    """Commit, build and (with --prod) promote the project in one run.

    The version is negotiated against the remote release tags, the working
    tree is committed and pushed to its development branch, the build
    service builds that branch, and a successful production build is tagged
    and merged into master. With all three --ssh-* options, the built
    index.html is copied to the template host after a successful build.

    Exits 0 whenever the run reaches the end, whatever the build outcome.
    """
    cli = build_context(debug=global_options(ctx).debug)
    console = cli.console

    working_dir = resolve_project_dir(project_dir, console)
    options = PublishOptions(
        build_cmd=build_cmd,
        prod=prod,
        refresh_server=refresh_server,
        refresh_token=refresh_token,
        refresh_owner=refresh_owner,
        refresh_publish_type=refresh_publish_type,
        ssh_user=ssh_user,
        ssh_ip=ssh_ip,
        ssh_path=ssh_path,
    )
    if (ssh_user or ssh_ip or ssh_path) and options.template_destination is None:
        console.warning("template upload needs --ssh-user, --ssh-ip and --ssh-path; skipped")

    report = ReleaseOrchestrator(
        config=cli.config,
        working_dir=working_dir,
        options=options,
        console=console,
        prompter=cli.prompter,
    ).run()

    if report.phase is ReleasePhase.FAILED and report.failure is not None:
        exit_with_code(release_exit_code(report.failure.error))

    if report.outcome is not BuildOutcome.SUCCEEDED:
        console.warning(f"finished without a successful build (outcome: {report.outcome})")
