"""
Command history for squashflow runs.

Every step the executor handles is recorded here, whether it ran, was
only displayed, or was skipped by the operator.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from rich.markup import escape

from squashflow.config import RepoConfig, console


@dataclass
class CommandEntry:
    """Record of a shell command handled by squashflow."""
    command: str
    description: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    executed: bool = False
    skipped: bool = False
    status: Optional[int] = None


class CommandHistory:
    """
    Logs and documents every command squashflow runs or would run.

    Read-only git queries are logged too (with ``executed`` left False)
    so that ``--debug`` shows the bash equivalent of everything.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.commands: List[CommandEntry] = []

    def log(self, bash_cmd: str, description: Optional[str] = None) -> CommandEntry:
        """
        Record a command with optional description.

        Args:
            bash_cmd: The bash command that is (or would be) executed
            description: Optional description of what the command does

        Returns:
            The new entry, so callers can fill in the outcome
        """
        entry = CommandEntry(command=bash_cmd, description=description)
        self.commands.append(entry)

        if self.debug:
            console.print(f"[cyan][BASH][/cyan] {escape(bash_cmd)}", highlight=False)
            if description:
                console.print(f"       [dim]{description}[/dim]")

        return entry

    def to_json(self) -> List[dict]:
        return [
            {
                "command": entry.command,
                "description": entry.description,
                "timestamp": entry.timestamp.isoformat(),
                "executed": entry.executed,
                "skipped": entry.skipped,
                "status": entry.status,
            }
            for entry in self.commands
        ]

    def save(self, filepath: str = RepoConfig.HISTORY_FILE) -> None:
        """Save command history for audit."""
        with open(filepath, "w") as f:
            json.dump(self.to_json(), f, indent=2)

        if self.debug:
            console.print(f"[green]Command history saved to {filepath}[/green]")
