"""Resource files and configuration templates."""


def get_default_config() -> str:
    """Return default configuration YAML content."""
    return """# triagealign configuration file

# Inputs (can be overridden by CLI arguments)
reads: ~
qualities: ~
reference: ~
output_prefix: ~
# Colour-space bowtie index basename; defaults to <reference stem>_cs
bowtie_index: ~

# BFAST postprocess selection: 3 = best score (ties allowed), 2 = unique only
mode: 3

# Runtime settings
runtime:
  log_level: "WARNING"
  log_file: ~
  keep_tmp: false
  checkpoint_policy: "continue"
  enable_progress: true
  verify_disjoint: false

# Performance settings
performance:
  threads: 8
  sort_memory: "768M"

# External tool parameters
tools:
  bowtie:
    seed: 0
    max_placements: 1
    seed_mismatches: 2
    mapq: ~
    additional_args: ""
  quality_trim:
    moving_average: "5:18"
    min_qual: 10
    min_length: 25
  bfast:
    max_candidates: 384
    min_mapq: 0
    additional_match_args: ""
    additional_localalign_args: ""
"""
