"""
Utility functions for compactpipe.

Includes logging setup driven by topology files and console rendering of
pipelines.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

if TYPE_CHECKING:
    from compactpipe.config import TopologyConfig
    from compactpipe.pipeline import CompactPipeline


# Global console for pretty output
console = Console()

# LogRecord attributes set through extra= by compactpipe modules
RECORD_EXTRAS = ("event", "stage", "metadata")


def _file_handler(log_file: Path, log_format: str) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    if log_format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    return handler


def _console_handler(log_format: str) -> logging.Handler:
    if log_format == "pretty":
        # stdout carries `synth` output
        return RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_time=False)
    handler = logging.StreamHandler()
    if log_format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    return handler


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    log_format: str = "structured",
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up the compactpipe logger.

    Args:
        log_file: Path to log file (None = no file output)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        console_output: Also log registrations to stderr

    Returns:
        Configured logger
    """
    logger = logging.getLogger("compactpipe")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers = []

    if log_file is not None:
        logger.addHandler(_file_handler(log_file, log_format))
    if console_output:
        logger.addHandler(_console_handler(log_format))
    return logger


def setup_logging_from_config(config: "TopologyConfig", verbose: bool = False) -> logging.Logger:
    """Apply a topology file's logging section; verbose forces DEBUG on the console."""
    return setup_logging(
        config.get_log_file_path(),
        "DEBUG" if verbose else config.get_log_level(),
        config.get_log_format(),
        console_output=verbose or config.should_log_to_console(),
    )


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, carrying the registration extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in RECORD_EXTRAS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def print_pipeline(pipeline: "CompactPipeline", title: str) -> None:
    """
    Print a pipeline as a table of stages and actions.

    Actions are listed in registration order; an empty run order means the
    platform sequences the action by append order.
    """
    console.rule(f"[bold blue]{title}[/bold blue]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Action")
    table.add_column("Kind")
    table.add_column("Run order", justify="right")
    table.add_column("Inputs")
    table.add_column("Outputs")
    for stage in pipeline.stages:
        for action in stage.actions:
            table.add_row(
                stage.name,
                action.name,
                action.kind.value,
                "" if action.run_order is None else str(action.run_order),
                ", ".join(a.name for a in action.inputs),
                ", ".join(a.name for a in action.outputs),
            )
    console.print(table)

    for fn in pipeline.companion_functions:
        console.print(f"[bold cyan]+[/bold cyan] companion function {fn.function_name} ({fn.handler})")
    if not pipeline.has_deploy_stage:
        console.print("[bold yellow]⚠[/bold yellow] No deployments registered; the pipeline stops after the build stage")
