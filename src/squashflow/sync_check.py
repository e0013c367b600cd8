"""
Branch-sync checker.

Answers "are my feature branch and main fully reconciled, locally and on
origin?" with four ordered checks, stopping at the first that fails.
"""

from typing import Optional

from squashflow.config import RepoConfig, console
from squashflow.errors import PreconditionError, SyncCheckFailed
from squashflow.inspector import BranchInspector


class SyncChecker:

    def __init__(self, inspector: BranchInspector):
        self.inspector = inspector

    def check(self, main_override: Optional[str] = None, fetch: bool = False) -> None:
        """
        Run the four checks in order.

        Bash equivalents:
            git diff --quiet HEAD
            git diff --quiet {branch} origin/{branch}
            git diff --quiet {branch} origin/{main}
            git diff --quiet {branch} {main}

        Args:
            main_override: Main branch name to try before the usual guesses
            fetch: Fetch origin before comparing against it

        Raises:
            SyncCheckFailed: Naming the first check that did not hold
        """
        remote = RepoConfig.ORIGIN_REMOTE
        if not self.inspector.has_remote(remote):
            raise PreconditionError(f"no '{remote}' remote configured")

        main = self.inspector.detect_main_branch(main_override)
        branch = self.inspector.current_branch()
        console.print(f"[cyan]Checking {branch} against {main}...[/cyan]")

        if fetch:
            self.inspector.fetch(remote)

        if not self.inspector.is_clean():
            raise SyncCheckFailed(1, "branch not clean, need to commit or stash")
        console.print("[green]✓ 1. working tree is clean[/green]")

        remote_branch = self.inspector.remote_ref(branch)
        if not self.inspector.same_content(branch, remote_branch):
            raise SyncCheckFailed(2, f"{branch} differs from {remote_branch}, need to push")
        console.print(f"[green]✓ 2. {branch} matches {remote_branch}[/green]")

        remote_main = self.inspector.remote_ref(main)
        if not self.inspector.same_content(branch, remote_main):
            raise SyncCheckFailed(3, f"{branch} differs from {remote_main}, need to remote-merge")
        console.print(f"[green]✓ 3. {branch} matches {remote_main}[/green]")

        if not self.inspector.same_content(branch, main):
            raise SyncCheckFailed(4, f"{branch} differs from {main}, need to pull in local main")
        console.print(f"[green]✓ 4. {branch} matches {main}[/green]")

        console.print(f"\n[green]✓ {branch} is in sync with {main}[/green]")
