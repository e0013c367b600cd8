import os
import subprocess
import sys
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from squashflow.executor import StepExecutor
from squashflow.guard import ProcessInfo
from squashflow.inspector import BranchInspector
from squashflow.squash import SquashPipeline

__all__ = ["Git", "repo", "upstream", "FakeProcessTable", "ScriptedReviewer", "make_pipeline"]


class Directory:

    def __init__(self, path: Path):
        self.path = path

    def __truediv__(self, rel: str) -> Path:
        return self.path / rel

    def s(self, command: str):
        "run a shell command"
        sys.stdout.flush()
        sys.stderr.flush()
        subprocess.run(command, shell=True, check=True, cwd=self.path, stderr=sys.stdout)

    def t(self, command: str) -> bool:
        "run a shell command and return success or failure"
        sys.stdout.flush()
        sys.stderr.flush()
        proc = subprocess.run(command, shell=True, cwd=self.path, stderr=sys.stdout)
        return proc.returncode == 0

    def o(self, command: str) -> str:
        "run a shell command and return its output"
        proc = subprocess.run(command, shell=True, check=True, cwd=self.path,
                              capture_output=True, text=True)
        return proc.stdout.strip()

    def w(self, filename: str, content: str):
        "write a file"
        with open(self / filename, "w") as f:
            f.write(textwrap.dedent(content).strip())
            f.write("\n")


class Git(Directory):

    def commit(self, filename: str, content: Optional[str] = None, message: Optional[str] = None):
        self.w(filename, content if content is not None else filename)
        self.s(f"git add {filename}")
        self.s(f"git commit -q -m {message or filename}")

    def rev(self, ref: str) -> str:
        return self.o(f"git rev-parse {ref}")

    def tree(self, ref: str) -> str:
        return self.o(f"git rev-parse {ref}^{{tree}}")

    def branch(self) -> str:
        return self.o("git rev-parse --abbrev-ref HEAD")

    def has_branch(self, name: str) -> bool:
        return self.t(f"git show-ref --verify --quiet refs/heads/{name}")

    def count(self, revs: str) -> int:
        return int(self.o(f"git rev-list --count {revs}"))

    def log(self) -> List[str]:
        return self.o("git log --reverse --format=%s").splitlines()


class FakeProcessTable:
    """A process table made of (ppid, name) entries keyed by pid."""

    def __init__(self, entries: Optional[Dict[int, Tuple[int, str]]] = None):
        self.entries = entries or {}
        self.lookups: List[int] = []

    def lookup(self, pid: int) -> Optional[ProcessInfo]:
        self.lookups.append(pid)
        if pid not in self.entries:
            return None
        ppid, name = self.entries[pid]
        return ProcessInfo(pid, ppid, name)

    @classmethod
    def chain(cls, *names: str) -> "FakeProcessTable":
        "this process, then the given ancestors from nearest to furthest, then init"
        pids = [os.getpid()] + [1000 + i for i in range(len(names))] + [1]
        entries = {}
        for pid, ppid, name in zip(pids, pids[1:], ["python", *names]):
            entries[pid] = (ppid, name)
        entries[1] = (0, "init")
        return cls(entries)


class ScriptedReviewer:
    """Reviewer that answers from a mapping, accepting anything not in it."""

    def __init__(self, answers: Optional[Dict[str, Optional[str]]] = None):
        self.answers = answers or {}
        self.seen: List[str] = []

    def __call__(self, command: str) -> Optional[str]:
        self.seen.append(command)
        return self.answers.get(command, command)


def make_pipeline(repo: Git, reviewer=None, dry_run=False, table=None) -> SquashPipeline:
    executor = StepExecutor(reviewer=reviewer or ScriptedReviewer(), cwd=repo.path, dry_run=dry_run)
    return SquashPipeline(BranchInspector(repo.path), executor, table or FakeProcessTable.chain("bash"))


@pytest.fixture(scope="function")
def repo(tmp_path: Path, monkeypatch) -> Git:
    "a clone with one commit on master, whose origin is a bare repository"
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Squash Tester")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tester@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Squash Tester")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tester@example.com")
    monkeypatch.setenv("GIT_EDITOR", "true")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)
    monkeypatch.delenv("SQUASHFLOW_MAIN_BRANCH", raising=False)

    work = Git(tmp_path / "work")
    work.path.mkdir()
    work.s("git init -q")
    work.s("git symbolic-ref HEAD refs/heads/master")
    work.commit("README", "hello")
    work.s("git clone -q --bare . ../origin.git")
    work.s("git remote add origin ../origin.git")
    work.s("git fetch -q origin")
    work.s("git branch -q --set-upstream-to=origin/master master")

    monkeypatch.chdir(work.path)
    return work


@pytest.fixture(scope="function")
def upstream(repo: Git) -> Git:
    "a second clone of the same origin, standing in for other contributors"
    other = Git(repo.path.parent / "upstream")
    repo.s(f"git clone -q ../origin.git {other.path}")
    return other
