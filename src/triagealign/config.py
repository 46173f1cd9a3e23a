"""Configuration management for triagealign."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any
import yaml

from triagealign.constants import DEFAULT_SEED, DEFAULT_THREADS, SELECT_BEST_SCORE, SELECTION_MODES
from triagealign.exceptions import ConfigurationError


@dataclass
class RuntimeConfig:
    """Runtime configuration."""

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    # Keep .bmf/.baf intermediates and the checkpoint after a successful run
    keep_tmp: bool = False
    # Policy when config changes vs. checkpoint: 'continue' | 'reset' | 'fail'
    checkpoint_policy: str = "continue"
    enable_progress: bool = True
    # Stream read names from both passes after the merge and fail on overlap
    verify_disjoint: bool = False


@dataclass
class PerformanceConfig:
    """Performance-related configuration."""

    threads: int = DEFAULT_THREADS
    # Per-thread memory handed to `samtools sort -m`
    sort_memory: str = "768M"


@dataclass
class ToolConfig:
    """External tool configuration."""

    bowtie: Dict[str, Any] = field(
        default_factory=lambda: {
            "seed": DEFAULT_SEED,
            # Reads with more than this many placements are diverted
            "max_placements": 1,
            "seed_mismatches": 2,
            "mapq": None,
            "additional_args": "",
        }
    )
    quality_trim: Dict[str, Any] = field(
        default_factory=lambda: {
            "moving_average": "5:18",
            "min_qual": 10,
            "min_length": 25,
        }
    )
    bfast: Dict[str, Any] = field(
        default_factory=lambda: {
            "max_candidates": 384,
            "min_mapq": 0,
            "additional_match_args": "",
            "additional_localalign_args": "",
        }
    )


@dataclass
class Config:
    """Main configuration class."""

    # Required parameters (set via CLI or config file)
    reads: Optional[Path] = None
    qualities: Optional[Path] = None
    reference: Optional[Path] = None
    output_prefix: Optional[Path] = None
    # Colour-space bowtie index basename; derived from the reference when unset
    bowtie_index: Optional[Path] = None

    # BFAST postprocess selection: 3 best score, 2 unique only
    mode: int = SELECT_BEST_SCORE

    # Sub-configurations
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)

    # Convenience properties
    @property
    def threads(self) -> int:
        return self.performance.threads

    @threads.setter
    def threads(self, value: int):
        self.performance.threads = value

    @property
    def keep_tmp(self) -> bool:
        return self.runtime.keep_tmp

    @keep_tmp.setter
    def keep_tmp(self, value: bool):
        self.runtime.keep_tmp = value

    def resolved_bowtie_index(self) -> Path:
        """Return the colour-space index basename (``<reference stem>_cs`` by default)."""
        if self.bowtie_index is not None:
            return Path(self.bowtie_index)
        if self.reference is None:
            raise ConfigurationError("Reference genome is required")
        reference = Path(self.reference)
        return reference.with_name(f"{reference.stem}_cs")

    def validate(self) -> None:
        """Validate configuration."""
        if not self.reference:
            raise ConfigurationError("Reference genome is required")
        if not self.output_prefix:
            raise ConfigurationError("Output prefix is required")
        if not self.reads or not self.qualities:
            raise ConfigurationError("Read and quality files are required")
        for label, path in (
            ("Reference", self.reference),
            ("Read", self.reads),
            ("Quality", self.qualities),
        ):
            if not Path(path).exists():
                raise ConfigurationError(f"{label} file not found: {path}")

        if str(self.output_prefix).endswith("/"):
            raise ConfigurationError(
                f"Output prefix must name a file stem, not a directory: {self.output_prefix}"
            )

        if self.performance.threads < 1:
            raise ConfigurationError("Threads must be >= 1")
        if self.mode not in SELECTION_MODES:
            raise ConfigurationError(
                f"Mode must be one of {', '.join(str(m) for m in SELECTION_MODES)}, got {self.mode}"
            )
        if self.runtime.checkpoint_policy not in ("continue", "reset", "fail"):
            raise ConfigurationError(
                f"Invalid runtime.checkpoint_policy: {self.runtime.checkpoint_policy}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""

        def path_to_str(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: path_to_str(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [path_to_str(item) for item in obj]
            return obj

        return path_to_str(asdict(self))


_PATH_FIELDS = ("reads", "qualities", "reference", "output_prefix", "bowtie_index")


def load_config(path: Path) -> Config:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")

    cfg = Config()

    for key in _PATH_FIELDS:
        if data.get(key) is not None:
            setattr(cfg, key, Path(data[key]))
    if data.get("mode") is not None:
        cfg.mode = int(data["mode"])
    if data.get("threads") is not None:
        cfg.performance.threads = int(data["threads"])

    if "runtime" in data and data["runtime"]:
        for key, value in data["runtime"].items():
            if hasattr(cfg.runtime, key):
                if key == "log_file" and value:
                    value = Path(value)
                setattr(cfg.runtime, key, value)

    if "performance" in data and data["performance"]:
        for key, value in data["performance"].items():
            if hasattr(cfg.performance, key):
                setattr(cfg.performance, key, value)

    # Tool sections are merged over the defaults so partial sections keep the rest
    if "tools" in data and data["tools"]:
        for tool, params in data["tools"].items():
            if not hasattr(cfg.tools, tool):
                raise ConfigurationError(f"Unknown tool section: tools.{tool}")
            if params is None:
                continue
            if not isinstance(params, dict):
                raise ConfigurationError(
                    f"Invalid tools.{tool} config; expected mapping, got {type(params).__name__}"
                )
            merged = dict(getattr(cfg.tools, tool))
            merged.update(params)
            setattr(cfg.tools, tool, merged)

    return cfg


def save_config(cfg: Config, path: Path) -> None:
    """Save configuration to YAML file."""
    data = cfg.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
