"""Subcommands of ``triagealign-tools``."""
