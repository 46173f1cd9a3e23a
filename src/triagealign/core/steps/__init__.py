"""Step executors, one function per pipeline stage."""
