"""
Console rendering for the fleet CLI.

Thin presentation over the listing and run results: a
stack → layer → instance / load balancer tree, CSV for instances, and
the per-stack outcome of a dispatched command.
"""

from __future__ import annotations

import click

from opsfleet.core.engine.aggregator import FleetReport, console_url
from opsfleet.core.models import Deployment, Instance, LoadBalancerMember, Stack
from opsfleet.core.use_cases.listing import ListingResult
from opsfleet.core.use_cases.run import RunResult

INSTANCE_COLORS = {
    "booting": "blue",
    "connection_lost": "red",
    "online": "green",
    "pending": "blue",
    "rebooting": "blue",
    "requested": "blue",
    "running_setup": "blue",
    "setup_failed": "red",
    "shutting_down": "red",
    "start_failed": "red",
    "stop_failed": "red",
    "stopped": "white",
    "stopping": "blue",
    "terminated": "bright_black",
    "terminating": "blue",
}

DEPLOYMENT_COLORS = {"running": "blue", "failed": "red", "successful": "green"}
REPORT_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


def _instance_label(instance: Instance) -> str:
    label = click.style(instance.hostname, fg=INSTANCE_COLORS.get(instance.status))
    if instance.status != "online":
        label += " - " + click.style(
            instance.status, fg=INSTANCE_COLORS.get(instance.status)
        )
    label += f" - {instance.instance_type or 'OnPremises'}"
    if instance.address:
        label += f" ({instance.address})"
    return label


def _member_lines(member: LoadBalancerMember) -> list[str]:
    instance, health = member.instance, member.health
    suffix = f" - {instance.instance_type or 'OnPremises'}"
    if instance.address:
        suffix += f" ({instance.address})"
    if health.in_service:
        return [click.style(f"● {instance.hostname}", fg="green") + suffix]
    return [
        click.style(f"● {instance.hostname} - OutOfService", fg="red") + suffix,
        click.style(f"ReasonCode: {health.reason_code}", fg="red"),
        click.style(f"Description: {health.description}", fg="red"),
    ]


def _deployment_lines(stack: Stack, deployment: Deployment) -> list[str]:
    color = DEPLOYMENT_COLORS.get(deployment.status)
    lines = [
        click.style(f"{deployment.created_at or '?'} - ", fg=color)
        + click.style(deployment.command_name, fg=color, bold=True)
    ]
    if deployment.failed:
        url = console_url(stack.region, stack.id, deployment.id)
        lines.append(click.style("Logs: ", fg="red", bold=True) + url)
    lines.append(f"Author: {deployment.iam_user_arn or 'Automatic AWS Deployment'}")
    lines.append(f"Status: {deployment.status}")
    if deployment.duration:
        lines.append(f"Duration: {deployment.duration}s")
    if deployment.command and deployment.command.recipes:
        lines.append(f"Recipes: {','.join(deployment.command.recipes)}")
    if deployment.comment:
        lines.append(f"Comment: {deployment.comment}")
    if deployment.custom_json:
        lines.append(f"JSON: {deployment.custom_json}")
    return lines


def echo_tree(result: ListingResult) -> None:
    """Print stacks with whatever each view attached to them."""
    click.secho("Stacks", bold=True)
    if not result.stacks:
        click.secho("   (no stacks match your filters)", fg="yellow")

    for stack in result.stacks:
        click.echo(
            "├─ "
            + click.style(stack.name, fg="green", bold=True, underline=True)
            + f" - {stack.region}"
        )

        for app in stack.apps:
            click.echo("│  ├─ " + click.style(app.shortname, fg="green"))
            for key, value in app.display_source().items():
                click.echo(f"│  │    {key}: {value}")

        for layer in stack.layers:
            click.echo(f"│  ├─ {layer.shortname}")
            if result.view == "instances":
                for instance in layer.instances:
                    click.echo(f"│  │  ├─ {_instance_label(instance)}")
            elif result.view == "elbs":
                for lb in layer.load_balancers:
                    click.echo(
                        "│  │  ├─ " + click.style(lb.name, fg="magenta") + f" - {lb.region}"
                    )
                    for member in lb.members:
                        first, *rest = _member_lines(member)
                        click.echo(f"│  │  │  ├─ {first}")
                        for line in rest:
                            click.echo(f"│  │  │  │    {line}")

        for deployment in stack.deployments:
            first, *rest = _deployment_lines(stack, deployment)
            click.echo(f"│  ├─ {first}")
            for line in rest:
                click.echo(f"│  │    {line}")


def echo_csv(result: ListingResult) -> None:
    """stack,layer,hostname,status,public_ip,private_ip — one line per instance."""
    for stack in result.stacks:
        for layer in stack.layers:
            for i in layer.instances:
                click.echo(
                    f"{stack.name},{layer.shortname},{i.hostname},{i.status},"
                    f"{i.public_ip or ''},{i.private_ip or ''}"
                )


def confirm_targets(stacks: list[Stack], commands: list[str]) -> bool:
    """Show what is about to run where, then ask."""
    click.echo()
    click.secho(
        f"/!\\ Running {click.style(', '.join(commands), fg='red')} on stacks /!\\",
        bold=True,
    )
    for stack in stacks:
        click.echo(f"   {click.style(stack.name, fg='green')}: {', '.join(stack.layer_names)}")
    click.echo()
    return click.confirm("Confirm the command?", default=False)


def _echo_report(report: FleetReport) -> None:
    click.secho(f"\n⚡ {report.command}", fg="cyan", bold=True)
    failed_ids = {f.deployment_id: f for f in report.failures}
    for deployment in report.deployments:
        stack = report.stacks_by_deployment.get(deployment.id)
        name = stack.name if stack else deployment.stack_id
        if deployment.successful:
            click.secho(f"   ✓ {name}", fg="green")
        elif deployment.id in failed_ids:
            click.secho(f"   ✗ {name}", fg="red")
            click.echo(f"     │ logs: {failed_ids[deployment.id].log_url}")
        else:
            click.secho(f"   ⊘ {name} ({deployment.status})", fg="yellow")

    click.secho(
        f"   Result: {report.succeeded}/{report.total} succeeded",
        fg=REPORT_COLORS.get(report.status, "white"),
        bold=True,
    )
    if not report.all_ok:
        click.secho(f"   {report.summary}", fg="red")


def echo_run(result: RunResult) -> None:
    """Per-stack outcome of every dispatched command."""
    for report in result.reports:
        _echo_report(report)
    if result.report is None and result.reports:
        click.secho(f"\n   {result.command} was not run", fg="red", bold=True)
    click.echo()
