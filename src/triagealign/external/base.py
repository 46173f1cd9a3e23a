"""Base class for external tool execution."""

from __future__ import annotations

import subprocess
import logging
import shutil
import re
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence, Optional, Any
from packaging import version
from triagealign.exceptions import ExternalToolError
from triagealign.utils.logging import get_logger


LineFilter = Callable[[Iterable[str]], Iterable[str]]


def read_log_tail(path: Optional[Path], max_bytes: int = 32_000) -> str:
    """Return the last ``max_bytes`` of a log file, or an empty string."""
    if path is None:
        return ""
    try:
        with open(path, "rb") as handle:
            try:
                handle.seek(0, 2)
                size = handle.tell()
                handle.seek(max(0, size - max_bytes))
            except OSError:
                pass
            data = handle.read()
        return data.decode(errors="replace")
    except OSError:
        return ""


def _format_cmd(cmd: Sequence[Any]) -> str:
    return " ".join(str(c) for c in cmd)


class ExternalTool:
    """Base class for external tool wrappers."""

    tool_name: str = ""
    required_version: Optional[str] = None
    version_command: Optional[str] = "--version"
    version_regex: Optional[str] = r"(\d+\.\d+(?:\.\d+)*)"

    # Default timeout for external tool execution (None = no timeout)
    DEFAULT_TIMEOUT: Optional[int] = None

    def __init__(self, logger: Optional[logging.Logger] = None, threads: int = 1):
        self.threads = threads
        # Namespace under triagealign.external.<tool>
        self.logger = logger or get_logger(f"external.{self.tool_name}")
        self._check_installation()

    def check_tool_availability(self, tool_name: str) -> bool:
        """Check if a tool is available in PATH."""
        return shutil.which(tool_name) is not None

    def _check_installation(self) -> None:
        """Check if the tool is installed and meets version requirements."""
        if not self.check_tool_availability(self.tool_name):
            raise ExternalToolError(
                f"{self.tool_name} not found in PATH. "
                f"Please install it via: conda install -c bioconda {self.tool_name}"
            )

        if self.required_version:
            current_version = self.get_tool_version(self.tool_name)
            if current_version and not self.check_minimum_version(
                current_version, self.required_version
            ):
                raise ExternalToolError(
                    f"{self.tool_name} version {current_version} is below "
                    f"required version {self.required_version}"
                )
            self.logger.debug(f"{self.tool_name} version: {current_version}")

    def get_tool_version(self, tool_name: str) -> Optional[str]:
        """Get tool version string."""
        if not self.version_command:
            return None

        version_commands = [
            [tool_name, self.version_command],
            [tool_name, "--version"],
            [tool_name],  # bfast and samtools print their version in the bare usage text
        ]

        for cmd in version_commands:
            try:
                result = subprocess.run(
                    cmd, capture_output=True, text=True, check=False, timeout=10
                )
            except (subprocess.TimeoutExpired, OSError):
                continue

            output = result.stdout + result.stderr
            if self.version_regex:
                match = re.search(self.version_regex, output)
                if match:
                    return match.group(1)

        self.logger.debug(f"Could not get version for {tool_name}")
        return None

    def check_minimum_version(self, current_version: str, required_version: str) -> bool:
        """Check if current version meets minimum requirement.

        Unparseable version strings log a warning and pass, so that odd
        version banners never block a run.
        """
        current_match = re.search(r"(\d+\.\d+(?:\.\d+)*)", current_version)
        required_match = re.search(r"(\d+\.\d+(?:\.\d+)*)", required_version)

        if not current_match or not required_match:
            self.logger.warning(
                f"Could not compare versions '{current_version}' and '{required_version}'. "
                "Proceeding with caution - please verify tool version manually."
            )
            return True

        current_ver = version.parse(current_match.group(1))
        required_ver = version.parse(required_match.group(1))

        if current_ver < required_ver:
            self.logger.warning(
                f"Version {current_version} is below minimum required {required_version}"
            )
            return False
        return True

    def run(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        check: bool = True,
        capture_output: bool = True,
        timeout: Optional[int] = None,
        stdout_file: Optional[Path] = None,
        stderr_log: Optional[Path] = None,
    ) -> tuple[str, str]:
        """Execute command with enhanced error handling.

        Args:
            cmd: Command and arguments to execute
            cwd: Working directory for the command
            check: Whether to raise on non-zero exit code
            capture_output: Whether to capture stdout/stderr
            timeout: Timeout in seconds (defaults to DEFAULT_TIMEOUT if None)
            stdout_file: Write raw standard output to this file instead of capturing it
            stderr_log: Append standard error to this log instead of capturing it

        Returns:
            Tuple of (stdout, stderr); entries redirected to files come back empty
        """
        effective_timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        cmd_str = _format_cmd(cmd)
        if stdout_file is not None:
            self.logger.info(f"Running: {cmd_str} > {stdout_file}")
        else:
            self.logger.info(f"Running: {cmd_str}")

        out_handle = err_handle = None
        try:
            if stdout_file is not None:
                stdout_file.parent.mkdir(parents=True, exist_ok=True)
                out_handle = open(stdout_file, "wb")
            if stderr_log is not None:
                stderr_log.parent.mkdir(parents=True, exist_ok=True)
                err_handle = open(stderr_log, "ab")

            if out_handle is None and err_handle is None:
                result = subprocess.run(
                    cmd,
                    cwd=cwd,
                    capture_output=capture_output,
                    text=True,
                    check=check,
                    timeout=effective_timeout,
                )
                if result.stderr and not result.returncode:
                    self.logger.debug(f"Command stderr: {result.stderr[:500]}")
                if capture_output:
                    return result.stdout, result.stderr
                return "", ""

            raw = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=out_handle if out_handle is not None else subprocess.PIPE,
                stderr=err_handle if err_handle is not None else subprocess.PIPE,
                check=check,
                timeout=effective_timeout,
            )
            stdout = "" if out_handle is not None else raw.stdout.decode(errors="replace")
            stderr = "" if err_handle is not None else raw.stderr.decode(errors="replace")
            return stdout, stderr

        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out after {effective_timeout}s: {cmd_str}")
            raise ExternalToolError(
                f"{self.tool_name} timed out",
                command=list(cmd),
                returncode=-1,
                stderr=f"Process timed out after {effective_timeout} seconds",
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode(errors="replace")
            if err_handle is not None:
                err_handle.flush()
                stderr = read_log_tail(stderr_log)
            self.logger.error(f"Command failed: {cmd_str}")
            self.logger.error(f"Return code: {e.returncode}")
            self.logger.error(f"Error: {stderr[-1000:] if stderr else 'No error output'}")
            raise ExternalToolError(
                f"{self.tool_name} failed", command=list(cmd), returncode=e.returncode, stderr=stderr
            )
        except OSError as e:
            self.logger.error(f"OS error running command: {cmd_str}")
            self.logger.error(f"Error: {e}")
            raise ExternalToolError(
                f"Failed to execute {self.tool_name}", command=list(cmd), returncode=-1, stderr=str(e)
            )
        finally:
            for handle in (out_handle, err_handle):
                if handle is not None:
                    handle.close()

    def run_piped(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        line_filter: Optional[LineFilter] = None,
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Run ``producer | [line_filter] | consumer`` and fail if either side fails.

        Without a filter the producer's stdout is handed straight to the
        consumer. With a filter the producer's text output is read line by line
        in this process and the filtered lines are written to the consumer's
        stdin. A consumer that exits early surfaces as a broken pipe and is
        reported as a failure, as is any non-zero exit status.
        """
        cmd_str = f"{_format_cmd(producer)} | {_format_cmd(consumer)}"
        self.logger.info(f"Running: {cmd_str}")

        if stderr_log is not None:
            stderr_log.parent.mkdir(parents=True, exist_ok=True)
            err_handle = open(stderr_log, "ab")
        else:
            err_handle = None
        err_target = err_handle if err_handle is not None else subprocess.DEVNULL

        p1: Optional[subprocess.Popen] = None
        p2: Optional[subprocess.Popen] = None
        broken_pipe = False
        try:
            try:
                p1 = subprocess.Popen(
                    producer, stdout=subprocess.PIPE, stderr=err_target, text=True
                )
                if line_filter is None:
                    p2 = subprocess.Popen(consumer, stdin=p1.stdout, stderr=err_target)
                    # Allow p1 to receive SIGPIPE if p2 exits
                    if p1.stdout:
                        p1.stdout.close()
                else:
                    p2 = subprocess.Popen(
                        consumer, stdin=subprocess.PIPE, stderr=err_target, text=True
                    )
                    assert p1.stdout is not None and p2.stdin is not None
                    try:
                        for line in line_filter(p1.stdout):
                            p2.stdin.write(line)
                        p2.stdin.close()
                    except BrokenPipeError:
                        broken_pipe = True
                        p1.terminate()
            except OSError as e:
                if isinstance(e, BrokenPipeError):
                    raise
                self.logger.error(f"OS error running command: {cmd_str}")
                raise ExternalToolError(
                    f"Failed to execute {self.tool_name}",
                    command=list(producer),
                    returncode=-1,
                    stderr=str(e),
                )
            except BaseException:
                # Filter errors and interrupts stop both sides before propagating
                for proc in (p1, p2):
                    if proc is not None and proc.poll() is None:
                        proc.kill()
                        proc.wait()
                raise

            rc2 = p2.wait()
            if p1.stdout and not p1.stdout.closed:
                p1.stdout.close()
            rc1 = p1.wait()
        finally:
            if p2 is not None and p2.stdin is not None and not p2.stdin.closed:
                try:
                    p2.stdin.close()
                except BrokenPipeError:
                    broken_pipe = True
            if err_handle is not None:
                err_handle.close()

        stderr_tail = read_log_tail(stderr_log)
        if broken_pipe or rc2 != 0:
            self.logger.error(f"Command failed: {_format_cmd(consumer)} (exit {rc2})")
            raise ExternalToolError(
                f"{Path(consumer[0]).name} failed"
                + (" (broken pipe)" if broken_pipe else ""),
                command=list(consumer),
                returncode=rc2,
                stderr=stderr_tail,
            )
        if rc1 != 0:
            self.logger.error(f"Command failed: {_format_cmd(producer)} (exit {rc1})")
            raise ExternalToolError(
                f"{Path(producer[0]).name} failed",
                command=list(producer),
                returncode=rc1,
                stderr=stderr_tail,
            )

    def stream_lines(self, cmd: Sequence[str], stderr_log: Optional[Path] = None) -> Iterator[str]:
        """Yield stdout lines of ``cmd``; raise once it exits non-zero.

        Standard error is appended to ``stderr_log``, or discarded; it is never
        left in an unread pipe.
        """
        self.logger.info(f"Running: {_format_cmd(cmd)}")
        if stderr_log is not None:
            stderr_log.parent.mkdir(parents=True, exist_ok=True)
            err_handle = open(stderr_log, "ab")
        else:
            err_handle = None
        try:
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=err_handle if err_handle is not None else subprocess.DEVNULL,
                    text=True,
                )
            except OSError as e:
                raise ExternalToolError(
                    f"Failed to execute {self.tool_name}",
                    command=list(cmd),
                    returncode=-1,
                    stderr=str(e),
                )
            assert proc.stdout is not None
            try:
                for line in proc.stdout:
                    yield line.rstrip("\n")
            finally:
                proc.stdout.close()
                proc.wait()
        finally:
            if err_handle is not None:
                err_handle.close()

        if proc.returncode != 0:
            self.logger.error(f"Command failed: {_format_cmd(cmd)} (exit {proc.returncode})")
            raise ExternalToolError(
                f"{self.tool_name} failed",
                command=list(cmd),
                returncode=proc.returncode,
                stderr=read_log_tail(stderr_log),
            )
