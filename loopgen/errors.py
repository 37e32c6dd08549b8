"""Exception hierarchy for loopgen.

Every error a generator raises on bad input derives from ``LoopgenError`` so
the CLI can report it in one place.
"""

from __future__ import annotations

from collections.abc import Iterable


class LoopgenError(Exception):
    """Base class for all loopgen errors."""


class InvalidSelectionError(LoopgenError):
    """Raised when a user selection is not one of the available choices.

    The message names the rejected value and lists the alternatives, e.g.
    ``Invalid LoopBack version: 4.x. Available versions are 2.x, 3.x.``
    """

    def __init__(
        self,
        kind: str,
        value: str,
        choices: Iterable[str],
        *,
        plural: str | None = None,
        scope: str | None = None,
        message: str | None = None,
    ) -> None:
        self.kind = kind
        self.value = value
        self.choices = list(choices)
        if message is None:
            noun = plural or f"{kind}s"
            where = f" {scope}" if scope else ""
            listed = ", ".join(self.choices) if self.choices else "(none)"
            message = f"Invalid {kind}: {value}. Available {noun}{where} are {listed}."
        super().__init__(message)


class WorkspaceError(LoopgenError):
    """Raised when the project directory is missing files or holds invalid JSON."""


class MiddlewareError(LoopgenError):
    """Raised for invalid middleware phases, sub-phases or parameters."""


class WsdlError(LoopgenError):
    """Raised when a WSDL document cannot be read or parsed."""


class UnsupportedConstructError(WsdlError):
    """Raised when a WSDL uses a schema construct the mapper cannot express."""

    def __init__(self, construct: str, context: str) -> None:
        self.construct = construct
        self.context = context
        super().__init__(f"Unsupported WSDL construct {construct} in {context}")
