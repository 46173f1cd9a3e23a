"""Exception hierarchy for triagealign.

Everything the CLI reports with exit status 1 derives from TriageAlignError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

# Lines of tool stderr carried into the error message
STDERR_TAIL_LINES = 5


class TriageAlignError(Exception):
    """Base exception for all triagealign errors."""


class ConfigurationError(TriageAlignError):
    """Missing inputs, bad thresholds or an unreadable YAML file."""


class ExternalToolError(TriageAlignError):
    """bowtie, bfast or samtools failed, timed out or could not be started.

    ``stderr`` holds the tail of the stage's log; its last lines and the exit
    status are part of the message so the CLI shows the tool's own complaint.
    """

    def __init__(
        self,
        message: str = "",
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.command = list(command) if command is not None else None
        self.returncode = returncode
        self.stderr = stderr

    @property
    def stderr_tail(self) -> str:
        if not self.stderr:
            return ""
        lines = [line for line in self.stderr.splitlines() if line.strip()]
        return "\n".join(lines[-STDERR_TAIL_LINES:])

    def __str__(self) -> str:
        text = self.message
        if self.returncode is not None:
            text += f" (exit status {self.returncode})"
        tail = self.stderr_tail
        if tail:
            text += f"\n{tail}"
        return text


class PipelineError(TriageAlignError):
    """A pipeline step could not run or did not finish.

    ``step`` names the failed step when the executor raised it.
    """

    def __init__(self, message: str = "", step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class ValidationError(TriageAlignError):
    """Merged output breaks the two-pass contract."""

    def __init__(self, message: str = "", read_names: Iterable[str] = ()):
        super().__init__(message)
        self.read_names = sorted(read_names)


class FileFormatError(TriageAlignError):
    """Malformed csfasta, qual, FASTQ or SAM text."""

    def __init__(
        self,
        message: str = "",
        path: Optional[Union[str, Path]] = None,
        line: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.line = line

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        location = str(self.path) if self.line is None else f"{self.path}:{self.line}"
        return f"{location}: {self.message}"


class DependencyError(TriageAlignError):
    """Required aligners are not installed."""

    def __init__(self, message: str = "", missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = list(missing)
