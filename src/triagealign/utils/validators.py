"""Validation utilities for triagealign."""

from __future__ import annotations

import importlib
from typing import List

from triagealign.utils.dependency_checker import TOOLS, find_tool


def validate_installation(full_check: bool = False) -> List[str]:
    """
    Validate the triagealign installation and dependencies.

    Args:
        full_check: If True, also look for the external aligners on PATH

    Returns:
        List of validation issues (empty if all good)
    """
    issues = []

    # Import names differ from distribution names for pyyaml
    for module in ("click", "yaml", "packaging", "numpy", "pandas", "tqdm"):
        try:
            importlib.import_module(module)
        except ImportError:
            issues.append(f"Missing Python module: {module}")

    if full_check:
        for tool in TOOLS:
            if find_tool(tool.name) is None:
                issues.append(f"External tool not found: {tool.name}")

    try:
        from triagealign.core.pipeline import Pipeline  # noqa: F401
        from triagealign.config import Config  # noqa: F401
        from triagealign.modules.mapq_rescore import MapqRescorer  # noqa: F401
        from triagealign.modules.quality_trim import QualityTrimmer  # noqa: F401
    except ImportError as e:
        issues.append(f"triagealign module import error: {e}")

    return issues
