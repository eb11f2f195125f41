"""blend CLI — vendor and synchronize fragments of other git repositories."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from blend import __version__
from blend.errors import BlendError

console = Console()
err_console = Console(stderr=True)

USAGE = """\
Usage: blend add <repo> <remotePath> [localPath]
       blend update
       blend commit <localPath> <message>
       blend remove <localPath>"""


def _print_usage(ctx: click.Context, unknown: str | None = None) -> None:
    if unknown is not None:
        console.print(f"Unknown command: {unknown}\n", markup=False, highlight=False)
    console.print(USAGE, markup=False, highlight=False)
    ctx.exit(0)


class BlendGroup(click.Group):
    """Command group with blend's exit-code conventions.

    No, unknown or ``help`` subcommands print usage and exit 0. A
    ``BlendError`` raised by a command is printed and exits 1.
    """

    def resolve_command(self, ctx: click.Context, args: list[str]):
        cmd_name = args[0] if args else None
        if cmd_name == "help":
            _print_usage(ctx)
        if (
            cmd_name is not None
            and not cmd_name.startswith("-")
            and self.get_command(ctx, cmd_name) is None
        ):
            _print_usage(ctx, unknown=cmd_name)
        return super().resolve_command(ctx, args)

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except BlendError as e:
            err_console.print(f"[red]Error:[/] {escape(e.message)}", highlight=False)
            ctx.exit(1)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("blend")
    if not logger.handlers:
        handler = RichHandler(console=err_console, show_time=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group(
    cls=BlendGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__)
@click.option(
    "--directory",
    "-C",
    envvar="BLEND_DIR",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Working tree containing blend.yml",
)
@click.option("--verbose", "-v", is_flag=True, envvar="BLEND_VERBOSE", help="Log git activity")
@click.pass_context
def main(ctx: click.Context, directory: str, verbose: bool):
    """blend — vendor files and directories from other git repositories.

    Dependencies are recorded in blend.yml together with the upstream
    revision they were copied at, so local edits can be pushed back and
    upstream changes pulled in without losing either.
    """
    from blend.sync.workflows import Workspace
    from blend.utils import processes

    if ctx.invoked_subcommand is None:
        _print_usage(ctx)

    _configure_logging(verbose)
    processes.install_signal_handlers()
    ctx.obj = ctx.with_resource(Workspace(directory))


# ── Add ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("repo")
@click.argument("remote_path")
@click.argument("local_path", required=False)
@click.pass_obj
def add(ws, repo: str, remote_path: str, local_path: str | None):
    """Vendor REMOTE_PATH of REPO into LOCAL_PATH.

    REPO is a URL or local path, optionally suffixed with #branch.
    LOCAL_PATH defaults to REMOTE_PATH.
    """
    dep = ws.add(repo, remote_path, local_path)
    console.print(
        f"[green]Added[/] {escape(dep.local_path)} from "
        f"{escape(dep.repo)}:{escape(dep.remote_path)} ([dim]{dep.hash[:12]}[/])",
        highlight=False,
    )


# ── Update ───────────────────────────────────────────────────────────


@main.command()
@click.pass_obj
def update(ws):
    """Pull newer upstream revisions into every dependency."""
    from blend.sync.workflows import UpdateStatus

    status_labels = {
        UpdateStatus.UP_TO_DATE: "[dim]up to date[/]",
        UpdateStatus.UPDATED: "[green]updated[/]",
        UpdateStatus.RESTORED: "[green]restored[/]",
        UpdateStatus.LOCAL_CHANGES: "[yellow]local changes[/]",
        UpdateStatus.CONFLICT: "[red]conflict[/]",
    }

    results = ws.update()

    table = Table(title=f"Dependencies ({len(results)})")
    table.add_column("Local path", style="cyan")
    table.add_column("Repository", overflow="fold")
    table.add_column("Revision", style="dim")
    table.add_column("Status", no_wrap=True)

    for result in results:
        dep = result.dependency
        revision = dep.hash[:12]
        if result.previous_hash and result.previous_hash != dep.hash:
            revision = f"{result.previous_hash[:12]} -> {dep.hash[:12]}"
        table.add_row(
            escape(dep.local_path), escape(dep.repo), revision, status_labels[result.status]
        )

    console.print(table)

    for result in results:
        path = escape(result.dependency.local_path)
        if result.status == UpdateStatus.CONFLICT:
            console.print(
                f"  [red]![/] {path} changed locally and upstream. Resolve the conflict manually."
            )
        elif result.status == UpdateStatus.LOCAL_CHANGES:
            console.print(f"  [yellow]![/] {path} has local changes, commit them with 'blend commit'.")


# ── Commit ───────────────────────────────────────────────────────────


@main.command()
@click.argument("local_path")
@click.argument("message")
@click.pass_obj
def commit(ws, local_path: str, message: str):
    """Push local edits of LOCAL_PATH upstream with MESSAGE."""
    dep = ws.commit(local_path, message)
    console.print(
        f"[green]Committed[/] {escape(dep.local_path)} to {escape(dep.repo)} "
        f"([dim]{dep.hash[:12]}[/])",
        highlight=False,
    )


# ── Remove ───────────────────────────────────────────────────────────


@main.command()
@click.argument("local_path")
@click.pass_obj
def remove(ws, local_path: str):
    """Delete LOCAL_PATH and stop tracking it."""
    dep = ws.remove(local_path)
    console.print(f"[green]Removed[/] {escape(dep.local_path)}", highlight=False)


if __name__ == "__main__":
    main()
