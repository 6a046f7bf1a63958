# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

from typing import Optional


class AdmxCsvError(Exception):
    """Base exception for admx-csv errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class PolicyScopedError(AdmxCsvError):
    """An error that stops processing of one policy, not the whole run.

    `policy` and `field` are filled in by the row emitter so the diagnostic
    can point at the offending attribute.
    """

    def __init__(self, message: str, suggestion: Optional[str] = None, *, policy: str = "", field: str = "") -> None:
        self.detail = message
        self.policy = policy
        self.field = field
        super().__init__(self._describe(), suggestion)

    def _describe(self) -> str:
        if not self.policy:
            return self.detail
        where = f"policy '{self.policy}'"
        if self.field:
            where += f", field '{self.field}'"
        return f"{where}: {self.detail}"

    def attach(self, *, policy: str, field: str) -> "PolicyScopedError":
        self.policy = self.policy or policy
        self.field = self.field or field
        self.message = self._describe()
        self.args = (self.message,)
        return self


class ReferenceSyntaxError(PolicyScopedError):
    """A `$(string.ID)` / `$(presentation.ID)` reference is malformed."""

    def __init__(self, value: Optional[str], expected: str, *, policy: str = "", field: str = "") -> None:
        self.value = value
        self.expected = expected
        super().__init__(f"malformed reference {value!r}, expected {expected}", policy=policy, field=field)


class PolicyStructureError(PolicyScopedError):
    """A policy breaks a structural rule the report relies on."""


class DocumentError(AdmxCsvError):
    """An ADMX or ADML file could not be loaded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to load {path}: {reason}")


class ConfigError(AdmxCsvError):
    """Invalid configuration file or command-line settings."""
