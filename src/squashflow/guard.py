"""
Hook guard.

The squash pipeline hard-resets and force-deletes branches, so it must
never run as a side effect of a git hook. We detect that by walking the
parent-process chain looking for a git process.
"""

import os
import subprocess
from typing import NamedTuple, Optional, Protocol


class ProcessInfo(NamedTuple):
    pid: int
    ppid: int
    name: str


class HookAncestor(NamedTuple):
    pid: int
    name: str


class ProcessTable(Protocol):
    def lookup(self, pid: int) -> Optional[ProcessInfo]:
        ...


class ProcfsProcessTable:
    """
    Process lookups through /proc (Linux).

    Bash equivalent:
        cat /proc/{pid}/stat
    """

    def __init__(self, root: str = "/proc"):
        self.root = root

    def lookup(self, pid: int) -> Optional[ProcessInfo]:
        try:
            with open(os.path.join(self.root, str(pid), "stat")) as f:
                stat = f.read()
        except OSError:
            return None
        # "pid (comm) state ppid ...", and comm itself may contain ")"
        start, end = stat.find("("), stat.rfind(")")
        fields = stat[end + 2:].split()
        return ProcessInfo(pid, int(fields[1]), stat[start + 1:end])


class PsProcessTable:
    """
    Process lookups through ps(1).

    Bash equivalent:
        ps -o ppid=,comm= -p {pid}
    """

    def lookup(self, pid: int) -> Optional[ProcessInfo]:
        try:
            proc = subprocess.run(
                ["ps", "-o", "ppid=,comm=", "-p", str(pid)],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return None
        if proc.returncode != 0:
            return None
        line = proc.stdout.strip()
        if not line:
            return None
        ppid, _, name = line.partition(" ")
        # comm may be a path on some platforms
        return ProcessInfo(pid, int(ppid), os.path.basename(name.strip()))


def default_process_table() -> ProcessTable:
    if os.path.isdir("/proc/self"):
        return ProcfsProcessTable()
    return PsProcessTable()


def find_hook_ancestor(
    table: ProcessTable, start_pid: Optional[int] = None, target: str = "git"
) -> Optional[HookAncestor]:
    """
    Walk from the parent of ``start_pid`` up to pid 1 looking for ``target``.

    Args:
        table: Process table to query
        start_pid: Process to start from (default: this process)
        target: Command name to match exactly

    Returns:
        The first matching ancestor, or None if the chain has none
    """
    pid = os.getpid() if start_pid is None else start_pid
    me = table.lookup(pid)
    if me is None:
        return None

    seen = {pid}
    pid = me.ppid
    while pid > 0 and pid not in seen:
        seen.add(pid)
        info = table.lookup(pid)
        if info is None:
            return None
        if info.name == target:
            return HookAncestor(info.pid, info.name)
        if pid == 1:
            break
        pid = info.ppid
    return None
