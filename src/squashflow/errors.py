"""Exceptions raised by squashflow. The CLI maps them to exit codes."""


class SquashflowError(Exception):
    """Base class; ``exit_code`` is what the CLI exits with."""

    exit_code = 1


class NotARepository(SquashflowError):
    pass


class PreconditionError(SquashflowError):
    pass


class OperatorAbort(SquashflowError):
    pass


class SyncCheckFailed(SquashflowError):
    """One of the numbered branch-sync checks did not hold."""

    def __init__(self, number: int, reason: str):
        self.number = number
        self.reason = reason
        super().__init__(f"check {number} failed: {reason}")


class StepFailed(SquashflowError):
    """A pipeline command exited non-zero while abort-on-error was set."""

    def __init__(self, command: str, status: int):
        self.command = command
        self.status = status
        super().__init__(f"command failed with status {status}: {command}")


class VerificationError(SquashflowError):
    pass


class BenignExit(SquashflowError):
    """Stops the run without it being an error."""

    exit_code = 0


class NothingToDo(BenignExit):
    pass


class HookInvocation(BenignExit):
    pass
