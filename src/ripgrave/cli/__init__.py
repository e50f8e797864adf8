"""CLI entrypoints for ripgrave."""

from ripgrave.cli.rip import app as rip_app
from ripgrave.cli.rip import run_cli

__all__ = ["rip_app", "run_cli"]
