"""
squashflow - squash a feature branch into a clean pull request
===============================================================

Command line interface. Library code raises SquashflowError subclasses;
this module is the only place that prints them and picks the exit code.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

import click
from git import GitCommandError
from rich.markup import escape

from squashflow.config import RepoConfig, console, err_console
from squashflow.errors import BenignExit, SquashflowError
from squashflow.executor import PromptReviewer, StepExecutor, accept_command
from squashflow.guard import default_process_table
from squashflow.history import CommandHistory
from squashflow.inspector import BranchInspector
from squashflow.squash import SquashPipeline, refuse_hook_invocation, wants_push
from squashflow.sync_check import SyncChecker


@dataclass
class Settings:
    """Global options, shared by every subcommand through the click context."""
    debug: bool = False
    dry_run: bool = False
    yes: bool = False
    history: CommandHistory = field(default_factory=CommandHistory)

    def inspector(self) -> BranchInspector:
        return BranchInspector(history=self.history)

    def executor(self, inspector: BranchInspector) -> StepExecutor:
        reviewer = accept_command if self.yes else PromptReviewer()
        return StepExecutor(reviewer=reviewer, cwd=inspector.root,
                            dry_run=self.dry_run, history=self.history)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Print squashflow errors and exit with their code."""
    try:
        yield
    except BenignExit as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        sys.exit(e.exit_code)
    except SquashflowError as e:
        err_console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        sys.exit(e.exit_code)
    except GitCommandError as e:
        err_console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("[red]interrupted[/red]")
        sys.exit(1)


main_branch_argument = click.argument(
    "main_branch", required=False, envvar=RepoConfig.MAIN_BRANCH_ENV
)


@click.group(invoke_without_command=True)
@click.option('--debug', '-d', is_flag=True, help='Show every git command, including read-only queries')
@click.option('--dry-run', '-n', is_flag=True, help='Show the steps without running them')
@click.option('--yes', '-y', is_flag=True, help='Run every step without asking first')
@click.option('--save-history', is_flag=True, help=f'Save command history to {RepoConfig.HISTORY_FILE}')
@click.pass_context
def cli(ctx, debug, dry_run, yes, save_history):
    """
    Squash a feature branch into one clean commit for a pull request.

    Common workflow:

        sqf check-sync            # is my branch reconciled with main?

        sqf prepare               # squash into one commit, review each step

        sqf prepare-push          # same, then force-push to origin

    MAIN_BRANCH defaults to the first of master, main that exists locally.
    """
    ctx.obj = Settings(debug=debug, dry_run=dry_run, yes=yes,
                       history=CommandHistory(debug=debug))

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

    if save_history and ctx.invoked_subcommand:
        ctx.call_on_close(lambda: ctx.obj.history.save())


@cli.command('check-sync')
@main_branch_argument
@click.option('--fetch', is_flag=True, help='Fetch origin before comparing')
@click.pass_obj
def check_sync(settings, main_branch, fetch):
    """Verify the current branch matches origin, origin's main and local main."""
    with reported_errors():
        SyncChecker(settings.inspector()).check(main_branch, fetch=fetch)


@cli.command('prepare')
@main_branch_argument
@click.pass_context
def prepare(ctx, main_branch):
    """
    Squash the current branch into one commit on top of main.

    Invoked as prepare-push (or through a program name containing "push"),
    the branch is force-pushed to origin at the end.
    """
    settings = ctx.obj
    # sqf prepare-push, or the whole tool installed under a name like sqf-push
    push = wants_push(ctx.info_name) or wants_push(ctx.find_root().info_name)
    with reported_errors():
        table = default_process_table()
        refuse_hook_invocation(table)
        inspector = settings.inspector()
        pipeline = SquashPipeline(inspector, settings.executor(inspector), table)
        pipeline.run(main_branch, push=push)


cli.add_command(prepare, 'prepare-push')


if __name__ == "__main__":
    cli()
