"""
Repository configuration for squashflow.

When using squashflow in a repository with different conventions,
update these values first.
"""

from rich.console import Console


class RepoConfig:
    """
    Repository-specific configuration - modify these for your repo.
    This centralizes all repo-specific settings for easy customization.
    """

    # Remote holding the shared main branch and the published feature branch
    ORIGIN_REMOTE = "origin"

    # Main branch guesses, tried in order after any explicit override
    MAIN_BRANCH_CANDIDATES = ("master", "main")

    # Scratch branch used to stage the squash; must not exist before a run
    TEMP_BRANCH = "squashflow-tmp"

    # A parent process with exactly this command name means we run from a hook
    HOOK_PROCESS_NAME = "git"

    # Invocation names containing this marker force-push after preparing
    PUSH_MARKER = "push"

    # Where --save-history writes the command log
    HISTORY_FILE = ".squashflow_history.json"

    # Environment variable read for the main branch override
    MAIN_BRANCH_ENV = "SQUASHFLOW_MAIN_BRANCH"


# Global consoles for rich output
console = Console()
err_console = Console(stderr=True)
