"""
Interactive step executor.

Runs one shell command of a larger pipeline. Before anything happens the
operator may review the command, edit it or skip it; what finally runs is
the reviewed text, not the original.
"""

import subprocess
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional

import click
from rich.markup import escape
from rich.prompt import Prompt

from squashflow.config import console, err_console
from squashflow.errors import OperatorAbort, StepFailed
from squashflow.history import CommandHistory

# Receives the proposed command; returns the command to run, or None to skip it
Reviewer = Callable[[str], Optional[str]]


@dataclass
class PipelineContext:
    """Per-run state threaded through every executor call."""
    main: str
    feature: str
    temp: str
    push: bool = False
    step: int = 0


@dataclass(frozen=True)
class StepOptions:
    """
    How a single step is shown and run.

    Attributes:
        pause: Let the reviewer see (and edit, or skip) the command first
        header: Print the "Step N" banner
        advance: Increment the step counter (off for sub-steps)
        echo: Print the command before running it
        execute: Actually run the command
        abort_on_error: Raise StepFailed on a non-zero exit status
    """
    pause: bool = True
    header: bool = True
    advance: bool = True
    echo: bool = True
    execute: bool = True
    abort_on_error: bool = True

    def substep(self) -> "StepOptions":
        return replace(self, header=False, advance=False)


def accept_command(command: str) -> Optional[str]:
    """Non-interactive reviewer: run every command as proposed."""
    return command


class PromptReviewer:
    """Asks the operator to run, edit, skip or quit before each command."""

    choices = ["y", "e", "s", "q"]

    def __call__(self, command: str) -> Optional[str]:
        while True:
            console.print(f"  [bold]$ {escape(command)}[/bold]", highlight=False)
            answer = Prompt.ask(
                "  Run it? (y)es / (e)dit / (s)kip / (q)uit",
                choices=self.choices,
                default="y",
                show_choices=False,
                console=console,
            )
            if answer == "y":
                return command
            if answer == "s":
                return None
            if answer == "q":
                raise OperatorAbort("stopped by operator")
            edited = click.edit(command + "\n", require_save=False)
            if edited and edited.strip():
                # multi-line edits run as written; the shell handles newlines
                command = edited.rstrip("\n")


class StepExecutor:
    """
    Runs pipeline steps through the shell.

    Args:
        reviewer: Callback consulted when a step pauses
        cwd: Directory commands run in
        dry_run: Display every step without running any of them
        history: Where steps are recorded
    """

    def __init__(self, reviewer: Reviewer = accept_command, cwd: Optional[Path] = None,
                 dry_run: bool = False, history: Optional[CommandHistory] = None):
        self.reviewer = reviewer
        self.cwd = cwd
        self.dry_run = dry_run
        self.history = history or CommandHistory()

    def run(self, context: PipelineContext, header: str, command: str,
            options: StepOptions = StepOptions()) -> int:
        """
        Show, review and run one command.

        Args:
            context: Pipeline context; its step counter is advanced here
            header: Human description of the step
            command: Shell command to run
            options: Per-step behaviour

        Returns:
            Exit status of the command (0 when skipped or not executed)

        Raises:
            StepFailed: On non-zero status with abort_on_error set
            OperatorAbort: If the operator quits at the review prompt
        """
        if options.advance:
            context.step += 1
        if options.header:
            console.print(f"\n[cyan]Step {context.step}:[/cyan] {escape(header)}")

        if options.pause:
            reviewed = self.reviewer(command)
            if reviewed is None:
                entry = self.history.log(command, header)
                entry.skipped = True
                console.print("  [yellow]skipped[/yellow]")
                return 0
            command = reviewed

        entry = self.history.log(command, header)
        if options.echo:
            console.print(f"[dim]+[/dim] {escape(command)}", highlight=False)

        if self.dry_run or not options.execute:
            if self.dry_run:
                console.print(f"[yellow][DRY-RUN][/yellow] Would execute: {escape(command)}", highlight=False)
            return 0

        entry.executed = True
        status = subprocess.run(command, shell=True, cwd=self.cwd).returncode
        entry.status = status

        if status != 0:
            err_console.print(f"[red]command failed with status {status}:[/red] {escape(command)}", highlight=False)
            if options.abort_on_error:
                raise StepFailed(command, status)
        return status
