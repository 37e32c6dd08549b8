"""Middleware phase editing and registration.

Quick usage::

    from loopgen.middleware import MiddlewareGenerator, MiddlewareRequest

    gen = MiddlewareGenerator(workspace)
    await gen.generate(MiddlewareRequest(name="./middleware/log", phase="initial"))
"""

from loopgen.middleware.generator import MiddlewareGenerator, MiddlewareRequest
from loopgen.middleware.phases import PhaseList, add_middleware, phase_key

__all__ = [
    "MiddlewareGenerator",
    "MiddlewareRequest",
    "PhaseList",
    "add_middleware",
    "phase_key",
]
