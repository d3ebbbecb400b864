"""Shared issue record produced by the post linter and the series checks."""

from typing import Any, Dict, Optional

ERROR = 'error'
WARNING = 'warning'


class LintIssue:
    """A single problem found in a post file."""

    def __init__(self, path: str, rule: str, message: str,
                 severity: str = ERROR, line: Optional[int] = None):
        self.path = path
        self.rule = rule
        self.message = message
        self.severity = severity
        self.line = line

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'line': self.line,
            'rule': self.rule,
            'severity': self.severity,
            'message': self.message,
        }

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}" if self.line else self.path
        return f"{location}: {self.severity} [{self.rule}] {self.message}"

    def __repr__(self) -> str:
        return f"LintIssue({self.path!r}, {self.rule!r}, line={self.line!r})"
