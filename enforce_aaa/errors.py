"""Structured error objects for enforce-aaa.

The marker rule itself never fails; errors come from the host layer:
PHP sources the adapter cannot split into statements, unreadable files,
and broken configuration files. Each error is machine-readable so the
`--format json` output can carry it verbatim.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    SYNTAX_ERROR = "syntax_error"
    IO_ERROR = "io_error"
    CONFIG_ERROR = "config_error"


@dataclass
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class AaaError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def syntax_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> AaaError:
    return AaaError(
        kind=ErrorKind.SYNTAX_ERROR,
        message=message,
        location=location,
    )


def io_error(path: str, reason: str, action: str = "read") -> AaaError:
    return AaaError(
        kind=ErrorKind.IO_ERROR,
        message=f"Cannot {action} '{path}': {reason}",
        details={"path": path, "action": action},
    )


def config_error(path: str, reason: str) -> AaaError:
    return AaaError(
        kind=ErrorKind.CONFIG_ERROR,
        message=f"Invalid configuration in '{path}': {reason}",
        details={"path": path},
    )


class ParseError(Exception):
    """Exception wrapping one or more AaaErrors raised while reading PHP."""

    def __init__(self, errors: list[AaaError] | AaaError):
        if isinstance(errors, AaaError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)


class ConfigError(Exception):
    """Raised when a configuration file exists but cannot be used."""

    def __init__(self, error: AaaError):
        self.error = error
        super().__init__(str(error))
