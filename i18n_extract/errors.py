"""
Exception types raised by the extraction engine.

ParseError and IOWriteError are recovered per file by the pipeline;
NamingError marks a single literal that fell back to a heuristic key;
NamingBatchFailure aborts the naming pass as a whole.
"""

from __future__ import annotations

from typing import Optional


class I18nExtractError(Exception):
    """Base class for all i18n-extract errors."""


class ParseError(I18nExtractError):
    """Source text is malformed for the detected dialect."""

    def __init__(
        self,
        message: str,
        file_path: str = "",
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.file_path = file_path
        self.line = line
        self.column = column
        location = file_path or "<source>"
        if line is not None:
            location += f":{line}"
            if column is not None:
                location += f":{column}"
        super().__init__(f"{location}: {message}")


class NamingError(I18nExtractError):
    """The naming collaborator could not name one literal."""

    def __init__(self, literal: str, reason: str = ""):
        self.literal = literal
        self.reason = reason
        super().__init__(f"Could not name {literal!r}: {reason}" if reason else f"Could not name {literal!r}")


class NamingBatchFailure(I18nExtractError):
    """The naming collaborator failed for the whole batch."""


class IOWriteError(I18nExtractError):
    """Flushing a rewritten file to disk failed."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Failed to write {file_path}: {reason}")
