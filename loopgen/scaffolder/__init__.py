"""loopgen scaffolder -- generates LoopBack application skeletons.

Quick usage::

    from loopgen.config import GeneratorConfig
    from loopgen.scaffolder import AppGenerator, AppRequest

    generator = AppGenerator(GeneratorConfig(project_root=Path("/tmp")))
    project_path = await generator.generate(
        AppRequest(name="my-app", template="notes", directory="my-app")
    )
"""

from loopgen.scaffolder.app import APP_TEMPLATES, AppGenerator, AppRequest, validate_selection
from loopgen.scaffolder.renderer import TemplateRenderer

__all__ = [
    "APP_TEMPLATES",
    "AppGenerator",
    "AppRequest",
    "TemplateRenderer",
    "validate_selection",
]
