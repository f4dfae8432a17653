"""Integrations with external command-line tools."""

from musicdrop.infrastructure.integrations.process_runner import (
    ProcessOutput,
    ProcessRunner,
    count_files,
)

__all__ = ["ProcessOutput", "ProcessRunner", "count_files"]
