"""
Guided squash-merge pipeline.

Turns a feature branch into a single commit holding its cumulative diff
against main, ready to be opened as a pull request:

    1. update main and the feature branch from origin/main
    2. create the temporary branch from main
    3. squash-merge the feature branch onto it
    4. commit (the message becomes the pull request text)
    5. verify the temporary branch has exactly the feature branch content
    6. reset the feature branch to the temporary branch
    7. delete the temporary branch
    8. force-push the feature branch (push variant only)

Nothing destructive happens before step 6, and step 6 only runs once
step 5 has verified the content.
"""

import os
from shlex import quote
from typing import Optional

from squashflow.config import RepoConfig, console
from squashflow.errors import (
    HookInvocation,
    NothingToDo,
    PreconditionError,
    VerificationError,
)
from squashflow.executor import PipelineContext, StepExecutor, StepOptions
from squashflow.guard import ProcessTable, default_process_table, find_hook_ancestor
from squashflow.inspector import BranchInspector


def wants_push(invocation_name: str) -> bool:
    """Whether the tool was invoked under a name asking for a force-push."""
    return RepoConfig.PUSH_MARKER in os.path.basename(invocation_name or "")


def refuse_hook_invocation(table: ProcessTable) -> None:
    """
    Raise HookInvocation when a git process is among our ancestors.

    Checked before the repository is even opened, so a hook run from
    anywhere exits quietly.
    """
    ancestor = find_hook_ancestor(table, target=RepoConfig.HOOK_PROCESS_NAME)
    if ancestor is not None:
        raise HookInvocation(
            f"running under '{ancestor.name}' (pid {ancestor.pid}), probably from a hook; nothing to do"
        )


class SquashPipeline:

    def __init__(self, inspector: BranchInspector, executor: StepExecutor,
                 process_table: Optional[ProcessTable] = None):
        self.inspector = inspector
        self.executor = executor
        self.process_table = process_table or default_process_table()

    def initial_checks(self, main_override: Optional[str] = None, push: bool = False) -> PipelineContext:
        """
        Validate everything before any branch is touched.

        Raises:
            HookInvocation: Running underneath a git process
            PreconditionError: Branches missing or clashing, dirty tree
            NothingToDo: The feature branch already has main's content
        """
        refuse_hook_invocation(self.process_table)

        main = self.inspector.detect_main_branch(main_override)
        temp = RepoConfig.TEMP_BRANCH
        feature = self.inspector.current_branch()

        if feature == temp:
            raise PreconditionError(
                f"you are on the temporary branch '{temp}'; check out your feature branch, then delete it with: "
                f"git branch -D {temp}"
            )
        if self.inspector.branch_exists(temp):
            raise PreconditionError(
                f"temporary branch '{temp}' already exists; inspect it, then delete it with: git branch -D {temp}"
            )
        if not self.inspector.branch_exists(main):
            raise PreconditionError(f"main branch '{main}' does not exist locally")
        if not self.inspector.branch_exists(feature):
            raise PreconditionError(f"feature branch '{feature}' does not exist locally")
        if feature == main:
            raise PreconditionError(f"you are on the main branch '{main}'; check out a feature branch")

        remote = RepoConfig.ORIGIN_REMOTE
        if not self.inspector.has_remote(remote):
            raise PreconditionError(f"no '{remote}' remote configured")

        if not self.inspector.is_clean():
            raise PreconditionError(f"branch '{feature}' is not clean, commit or stash your changes first")

        if self.inspector.same_content(feature, main):
            raise NothingToDo(f"'{feature}' has the same content as '{main}'; nothing to prepare")

        return PipelineContext(main=main, feature=feature, temp=temp, push=push)

    def run(self, main_override: Optional[str] = None, push: bool = False) -> PipelineContext:
        """
        Run the initial checks and then every pipeline step.

        Args:
            main_override: Main branch name to try before the usual guesses
            push: Force-push the feature branch at the end

        Returns:
            The finished pipeline context
        """
        ctx = self.initial_checks(main_override, push)
        run = self.executor.run
        opts = StepOptions()
        main, feature, temp = quote(ctx.main), quote(ctx.feature), quote(ctx.temp)
        origin = RepoConfig.ORIGIN_REMOTE

        console.print(
            f"[cyan]Preparing '{ctx.feature}' as a single commit on top of '{ctx.main}'[/cyan]"
        )

        pull = f"git pull --no-rebase --no-edit {origin} {main}"
        run(ctx, f"Update {ctx.main} and {ctx.feature} from {origin}/{ctx.main}", f"git checkout {main}", opts)
        run(ctx, f"Merge {origin}/{ctx.main} into {ctx.main}", pull, opts.substep())
        run(ctx, f"Switch back to {ctx.feature}", f"git checkout {feature}", opts.substep())
        run(ctx, f"Merge {origin}/{ctx.main} into {ctx.feature}", pull, opts.substep())

        run(ctx, f"Create {ctx.temp} from {ctx.main}", f"git checkout -b {temp} {main}", opts)

        run(ctx, f"Squash the changes of {ctx.feature} onto {ctx.temp}", f"git merge --squash {feature}", opts)

        run(ctx, "Commit; this message becomes the pull request description", "git commit", opts)

        status = run(
            ctx,
            f"Verify {ctx.temp} has the same content as {ctx.feature}",
            f"git diff --quiet {temp} {feature}",
            StepOptions(pause=False, abort_on_error=False),
        )
        if status != 0:
            raise VerificationError(
                f"'{ctx.temp}' does not match '{ctx.feature}' after the squash; "
                f"'{ctx.feature}' was left untouched, inspect '{ctx.temp}'"
            )
        if self.executor.dry_run:
            console.print("  [yellow]not verified (dry run)[/yellow]")

        run(ctx, f"Reset {ctx.feature} to the squashed commit", f"git checkout {feature}", opts)
        run(ctx, f"Reset {ctx.feature} to {ctx.temp}", f"git reset --hard {temp}", opts.substep())

        run(ctx, f"Delete {ctx.temp}", f"git branch -D {temp}", opts)

        if ctx.push:
            run(ctx, f"Force-push {ctx.feature} to {origin}", f"git push --force -u {origin} {feature}", opts)

        console.print(f"\n[green]✓ '{ctx.feature}' is now a single commit on top of '{ctx.main}'[/green]")
        if not ctx.push:
            console.print(f"  To publish it: git push --force -u {origin} {ctx.feature}")
        return ctx
