"""Dependency checker for triagealign.

Pre-flight check that every aligner the pipeline shells out to is on PATH.
"""

import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from packaging import version as pkg_version

from triagealign.constants import MIN_BOWTIE_VERSION, MIN_SAMTOOLS_VERSION
from triagealign.utils.logging import get_logger


@dataclass
class Tool:
    """Tool dependency definition."""

    name: str
    required: bool
    purpose: str
    install_hint: str
    min_version: Optional[str] = None
    # bfast has no --version flag; its usage banner carries the version
    version_args: Optional[List[str]] = None


def find_tool(name: str) -> Optional[str]:
    """Return the resolved executable path for ``name``, or None."""
    return shutil.which(name)


def get_tool_version(tool_name: str, version_args: Optional[List[str]] = None) -> Optional[str]:
    """Get version string from a tool, or None when it cannot be determined."""
    try:
        result = subprocess.run(
            [tool_name, *(version_args if version_args is not None else ["--version"])],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    output = result.stdout + result.stderr
    match = re.search(r"(\d+\.\d+(?:\.\d+)?)", output)
    if match:
        return match.group(1)
    return None


def compare_versions(current: str, minimum: str) -> bool:
    """Return True if ``current`` >= ``minimum``; unparseable versions pass."""
    try:
        return pkg_version.parse(current) >= pkg_version.parse(minimum)
    except pkg_version.InvalidVersion:
        return True


TOOLS = [
    Tool(
        name="bowtie",
        required=True,
        purpose="Fast pass colour-space alignment",
        install_hint="conda install -c bioconda bowtie",
        min_version=MIN_BOWTIE_VERSION,
    ),
    Tool(
        name="bfast",
        required=True,
        purpose="Slow pass match/localalign/postprocess",
        install_hint="conda install -c bioconda bfast",
        version_args=[],
    ),
    Tool(
        name="samtools",
        required=True,
        purpose="BAM encoding, sorting, merging and calmd",
        install_hint="conda install -c bioconda samtools",
        min_version=MIN_SAMTOOLS_VERSION,
    ),
]


class DependencyChecker:
    """Check and report on tool dependencies."""

    def __init__(self, logger=None, tools: Optional[List[Tool]] = None):
        self.logger = logger or get_logger("dependency_checker")
        self.tools = tools if tools is not None else TOOLS
        self.missing_required: List[Tool] = []
        self.missing_optional: List[Tool] = []
        self.found_tools: List[str] = []
        self.version_warnings: List[str] = []

    def check_all(self) -> bool:
        """Check all dependencies.

        Returns:
            True if all required tools are available
        """
        self.logger.info("Checking dependencies...")

        for tool in self.tools:
            if find_tool(tool.name) is None:
                if tool.required:
                    self.missing_required.append(tool)
                    self.logger.error(f"✗ {tool.name} not found (REQUIRED)")
                else:
                    self.missing_optional.append(tool)
                    self.logger.warning(f"⚠ {tool.name} not found (optional)")
                continue

            self.found_tools.append(tool.name)
            if not tool.min_version:
                self.logger.debug(f"✓ {tool.name} found")
                continue

            current_version = get_tool_version(tool.name, tool.version_args)
            if current_version is None:
                self.logger.debug(f"✓ {tool.name} found (version unknown)")
            elif not compare_versions(current_version, tool.min_version):
                warning = (
                    f"{tool.name}: version {current_version} < recommended {tool.min_version}"
                )
                self.version_warnings.append(warning)
                self.logger.warning(f"⚠ {warning}")
            else:
                self.logger.debug(f"✓ {tool.name} v{current_version}")

        return not self.missing_required

    def print_report(self) -> None:
        """Print a detailed dependency report."""
        print("\n" + "=" * 70)
        print("triagealign Dependency Check")
        print("=" * 70)

        if self.found_tools:
            print("\n✓ Found tools:")
            for name in sorted(self.found_tools):
                print(f"  - {name}")

        if self.version_warnings:
            print("\n⚠ Version warnings:")
            for warning in self.version_warnings:
                print(f"  - {warning}")

        if self.missing_optional:
            print("\n⚠ Missing optional tools:")
            for tool in self.missing_optional:
                print(f"  - {tool.name}")
                print(f"    Purpose: {tool.purpose}")
                print(f"    Install: {tool.install_hint}")

        if self.missing_required:
            print("\n✗ Missing REQUIRED tools:")
            for tool in self.missing_required:
                print(f"  - {tool.name}")
                print(f"    Purpose: {tool.purpose}")
                print(f"    Install: {tool.install_hint}")
            print("\n" + "=" * 70)
            print("ERROR: Cannot proceed without required dependencies.")
            print("=" * 70 + "\n")
        else:
            print("\n" + "=" * 70)
            print("✓ All required dependencies satisfied!")
            print("=" * 70 + "\n")
