"""Command-line interface for web-tester."""

from .main import app, cli_main
from .runner import CaptureRunner, RunnerConfig, RunSummary

__all__ = ["app", "cli_main", "CaptureRunner", "RunnerConfig", "RunSummary"]
