"""Compile, run, verify, watch and grade small Rust exercises."""

__version__ = "5.5.1"