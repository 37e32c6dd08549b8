"""Ordered-phase editing for ``server/middleware.json``.

A middleware document maps phase names (``initial``, ``routes:before``, ...)
to the middleware registered in that phase.  Phase order is the order the
framework runs them in, so the document is handled as an explicit list of
``(phase_key, entries)`` pairs and every operation returns a new list.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import MiddlewareError

PhaseList = list[tuple[str, dict[str, Any]]]

SUB_PHASES: tuple[str, ...] = ("before", "after")

SEPARATOR = ":"


def from_document(document: Mapping[str, Any]) -> PhaseList:
    """Convert a parsed middleware document into a phase list."""
    return [(key, dict(value or {})) for key, value in document.items()]


def to_document(phases: Iterable[tuple[str, dict[str, Any]]]) -> dict[str, Any]:
    """Convert a phase list back into a JSON-serialisable document."""
    return {key: value for key, value in phases}


def phase_key(phase: str, sub_phase: str | None = None) -> str:
    """Build the document key for *phase* and an optional sub-phase.

    Raises:
        MiddlewareError: If the phase name is empty or already compound, or
            the sub-phase is not ``before``/``after``.
    """
    if not phase or not phase.strip():
        raise MiddlewareError("Phase name must not be empty")
    if SEPARATOR in phase:
        raise MiddlewareError(
            f"Invalid phase: {phase}. Use a sub-phase instead of '{SEPARATOR}' in the name"
        )
    if not sub_phase:
        return phase
    if sub_phase not in SUB_PHASES:
        raise MiddlewareError(
            f"Invalid sub-phase: {sub_phase}. Available sub-phases are {', '.join(SUB_PHASES)}."
        )
    return f"{phase}{SEPARATOR}{sub_phase}"


def split_key(key: str) -> tuple[str, str | None]:
    """Split ``routes:after`` into ``("routes", "after")``."""
    phase, sep, sub_phase = key.partition(SEPARATOR)
    return phase, (sub_phase if sep else None)


def phase_names(phases: PhaseList) -> list[str]:
    """Return the distinct base phase names in execution order."""
    seen: list[str] = []
    for key, _ in phases:
        base, _sub = split_key(key)
        if base not in seen:
            seen.append(base)
    return seen


def add_middleware(
    phases: PhaseList,
    phase: str,
    key: str,
    config: Mapping[str, Any],
    *,
    sub_phase: str | None = None,
    before: str | None = None,
    after: str | None = None,
) -> PhaseList:
    """Register middleware *key* with *config* in *phase*.

    * An existing phase keeps its position; the entry is appended to it, or
      replaces an entry with the same key in place.
    * A new phase is inserted immediately before the *before* anchor or
      immediately after the *after* anchor.  Without an anchor, a new
      ``phase:before``/``phase:after`` sub-phase is placed next to its base
      phase when that exists; anything else goes at the end.

    The input list is not modified.

    Raises:
        MiddlewareError: For invalid names, both anchors at once, or an
            anchor that is not a phase of the document.
    """
    if not key:
        raise MiddlewareError("Middleware name must not be empty")
    if before and after:
        raise MiddlewareError("Specify at most one of 'before' and 'after'")

    target = phase_key(phase, sub_phase)
    result: PhaseList = [(k, copy.deepcopy(v)) for k, v in phases]
    keys = [k for k, _ in result]

    if target in keys:
        index = keys.index(target)
        entries = result[index][1]
        entries[key] = copy.deepcopy(dict(config))
        return result

    new_phase = (target, {key: copy.deepcopy(dict(config))})
    anchor = before or after
    if anchor:
        if anchor not in keys:
            raise MiddlewareError(
                f"Invalid phase: {anchor}. Available phases are {', '.join(keys) or '(none)'}."
            )
        index = keys.index(anchor)
        result.insert(index if before else index + 1, new_phase)
        return result

    result.insert(_default_position(keys, target), new_phase)
    return result


def _default_position(keys: list[str], target: str) -> int:
    """Where a new phase goes when no anchor was requested."""
    base, sub_phase = split_key(target)
    if sub_phase == "before" and base in keys:
        return keys.index(base)
    if sub_phase == "after" and base in keys:
        return keys.index(base) + 1
    return len(keys)
