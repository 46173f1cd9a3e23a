"""In-process pipeline modules (triagealign)."""
