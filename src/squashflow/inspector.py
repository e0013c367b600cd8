"""
Read-only repository queries used by the checker and the pipeline.

Every query documents its bash equivalent for transparency and logs it
to the command history, so ``--debug`` shows what is being asked of git.
"""

from pathlib import Path
from typing import Optional

import git
from git import Repo

from squashflow.config import RepoConfig
from squashflow.errors import NotARepository, PreconditionError
from squashflow.history import CommandHistory


class BranchInspector:
    """Answers questions about branches and content; never mutates refs."""

    def __init__(self, path=None, history: Optional[CommandHistory] = None):
        self.history = history or CommandHistory()
        self.history.log("git rev-parse --show-toplevel", "Find repository root")
        try:
            self.repo = Repo(path or Path.cwd(), search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise NotARepository("not inside a git repository") from e
        if self.repo.bare:
            raise NotARepository("cannot work in a bare repository")
        self.root = Path(self.repo.working_tree_dir)

    def current_branch(self) -> str:
        """
        Name of the checked-out branch.

        Bash equivalent:
            git rev-parse --abbrev-ref HEAD

        Raises:
            PreconditionError: If HEAD is detached
        """
        self.history.log("git rev-parse --abbrev-ref HEAD", "Show current branch")
        try:
            return self.repo.active_branch.name
        except TypeError as e:
            raise PreconditionError("HEAD is detached, check out your feature branch first") from e

    def branch_exists(self, name: str) -> bool:
        """
        Bash equivalent:
            git show-ref --verify --quiet refs/heads/{name}
        """
        self.history.log(f"git show-ref --verify --quiet refs/heads/{name}", "Test for local branch")
        return bool(name) and name in self.repo.heads

    def has_remote(self, name: str = RepoConfig.ORIGIN_REMOTE) -> bool:
        return name in self.repo.remotes

    def detect_main_branch(self, override: Optional[str] = None) -> str:
        """
        Guess the main branch name.

        The override is tried first (when non-empty), then each of
        RepoConfig.MAIN_BRANCH_CANDIDATES; the first one that exists as a
        local branch wins.

        Args:
            override: Caller supplied main branch name

        Returns:
            Name of an existing local branch

        Raises:
            PreconditionError: If no candidate exists locally
        """
        candidates = [override] if override else []
        candidates.extend(RepoConfig.MAIN_BRANCH_CANDIDATES)
        for name in candidates:
            if self.branch_exists(name):
                return name
        raise PreconditionError(
            f"cannot detect main branch (tried: {', '.join(candidates)}); "
            "pass the main branch name as an argument"
        )

    def is_clean(self) -> bool:
        """
        True when tracked files match HEAD. Untracked files do not count.

        Bash equivalent:
            git diff --quiet HEAD
        """
        self.history.log("git diff --quiet HEAD", "Check for uncommitted changes")
        return not self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    def tree_of(self, ref: str) -> Optional[str]:
        """
        Tree SHA of a revision, or None when it does not resolve.

        Bash equivalent:
            git rev-parse --verify --quiet {ref}^{tree}
        """
        self.history.log(f"git rev-parse --verify --quiet {ref}^{{tree}}", "Resolve tree")
        try:
            return self.repo.commit(ref).tree.hexsha
        except (git.BadName, git.BadObject, ValueError):
            return None

    def same_content(self, a: str, b: str) -> bool:
        """
        Whether two revisions have identical tracked content.

        Equal tree hashes mean byte-identical content, whatever the
        history behind each revision.

        Bash equivalent:
            git diff --quiet {a} {b}
        """
        tree_a = self.tree_of(a)
        tree_b = self.tree_of(b)
        return tree_a is not None and tree_a == tree_b

    def remote_ref(self, branch: str, remote: str = RepoConfig.ORIGIN_REMOTE) -> str:
        return f"{remote}/{branch}"

    def fetch(self, remote: str = RepoConfig.ORIGIN_REMOTE) -> None:
        """
        Bash equivalent:
            git fetch {remote}
        """
        self.history.log(f"git fetch {remote}", "Update remote-tracking branches")
        self.repo.remote(remote).fetch()
