"""Shared warning/error channel for the parser, move extractor and engine.

Every component reports malformed input through a :class:`Diagnostics`
instance instead of printing or exiting on its own.  Warnings are counted and
logged; errors are exceptions (see :mod:`core.errors`) that travel up to the
nearest per-item boundary established with :meth:`Diagnostics.item`.  Whether
that boundary swallows the error and lets a batch job continue with the next
file or game is decided by the caller-supplied :class:`DiagnosticsPolicy`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from core.errors import SgfError, StrictModeError

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_WARNINGS = 2


@dataclass
class DiagnosticsPolicy:
    """How warnings and errors are handled.

    Parameters
    ----------
    ignore_errors:
        When ``True`` an error aborts only the current item (file or game)
        and processing continues with the next one.
    strict:
        Turn every warning into a :class:`~core.errors.StrictModeError`.
    quiet:
        Count but do not log warnings, nor errors that are being ignored.
    """

    ignore_errors: bool = False
    strict: bool = False
    quiet: bool = False

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "DiagnosticsPolicy":
        """Build a policy from a configuration mapping, ignoring unknown keys."""
        return cls(
            ignore_errors=bool(data.get("ignore_errors", False)),
            strict=bool(data.get("strict", False)),
            quiet=bool(data.get("quiet", False)),
        )


@dataclass
class Diagnostic:
    """A single recorded message."""

    severity: str
    message: str
    filename: str = ""
    line: int = 0


@dataclass
class Diagnostics:
    """Counting sink for warnings and errors."""

    policy: DiagnosticsPolicy = field(default_factory=DiagnosticsPolicy)
    program: str = "sgfreplay"
    filename: str = ""
    warnings: int = 0
    errors: int = 0
    records: List[Diagnostic] = field(default_factory=list)
    last_error: Optional[BaseException] = None
    _depth: int = 0

    def __post_init__(self) -> None:
        self.logger = logging.getLogger(self.program)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def _prefix(self, line: int) -> str:
        parts = [self.program]
        if self.filename:
            parts.append(self.filename)
        prefix = " ".join(parts)
        if line:
            prefix += f" (line {line})"
        return prefix + ": "

    def warn(self, message: str, *args: Any, line: int = 0) -> None:
        """Record a warning; raise :class:`StrictModeError` in strict mode."""
        if args:
            message = message % args
        self.warnings += 1
        self.records.append(Diagnostic("warning", message, self.filename, line))
        if not self.policy.quiet or self.policy.strict:
            self.logger.warning("%s%s", self._prefix(line), message)
        if self.policy.strict:
            raise StrictModeError(message)

    def error(self, exc: BaseException) -> None:
        """Record an error that has reached an item boundary."""
        self.errors += 1
        self.last_error = exc
        line = getattr(exc, "line", 0) or 0
        self.records.append(Diagnostic("error", str(exc), self.filename, line))
        if self.policy.quiet and self.policy.ignore_errors:
            return
        self.logger.error("%s%s", self._prefix(0), exc)

    # ------------------------------------------------------------------
    # Per-item boundary
    # ------------------------------------------------------------------
    @contextmanager
    def item(self, name: Optional[str] = None) -> Iterator["Diagnostics"]:
        """Scope a unit of work (a file, or a game inside a file).

        An :class:`~core.errors.SgfError` raised inside the block is counted
        and logged once.  With ``ignore_errors`` it is swallowed here, so the
        caller's loop simply proceeds to the next item; otherwise it is
        re-raised unchanged.
        """
        previous = self.filename
        if name is not None:
            self.filename = name
        self._depth += 1
        try:
            yield self
        except SgfError as exc:
            if self.policy.ignore_errors or self._depth == 1:
                self.error(exc)
            if not self.policy.ignore_errors:
                raise
        finally:
            self._depth -= 1
            self.filename = previous

    # ------------------------------------------------------------------
    def messages(self, severity: Optional[str] = None) -> List[str]:
        """Return recorded messages, optionally filtered by ``severity``."""
        return [r.message for r in self.records if severity is None or r.severity == severity]

    def exit_status(self) -> int:
        """Return a process exit code summarising what was recorded."""
        if self.errors:
            return EXIT_ERRORS
        if self.warnings:
            return EXIT_WARNINGS
        return EXIT_OK


__all__ = [
    "Diagnostic",
    "Diagnostics",
    "DiagnosticsPolicy",
    "EXIT_OK",
    "EXIT_ERRORS",
    "EXIT_WARNINGS",
]
