"""Jinja2 rendering of the LoopBack project templates.

Templates live in ``loopgen/scaffolder/templates/`` and end in ``.j2``; the
rendered file keeps the rest of the name (``server/server.js.j2`` becomes
``server/server.js``).  Generated JavaScript and JSON must never contain a
silently empty placeholder, so every variable a template uses has to be in
the context.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..utils import camel_case, dump_json, kebab_case, pascal_case, write_file

TEMPLATE_SUFFIX = ".j2"

_PACKAGED_TEMPLATES = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders single templates or whole template directories.

    Args:
        template_dir: Root of the template tree; defaults to the templates
            shipped with loopgen.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else _PACKAGED_TEMPLATES
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters.update(
            kebab_case=kebab_case,
            pascal_case=pascal_case,
            camel_case=camel_case,
            json=_json_filter,
        )

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (relative to the template root) to a string.

        Raises:
            jinja2.UndefinedError: If the template uses a name missing from
                *context*.
        """
        return self.env.get_template(template_path).render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template into *output_path*, creating parent directories."""
        target = Path(output_path)
        await asyncio.to_thread(write_file, target, self.render(template_path, context))
        return target

    async def render_tree(
        self,
        template_prefix: str,
        output_dir: str | Path,
        context: dict[str, Any],
    ) -> list[Path]:
        """Render every template below *template_prefix* into *output_dir*.

        ``app/base/server/server.js.j2`` rendered with the prefix
        ``app/base`` lands in ``<output_dir>/server/server.js``.  A prefix
        with no directory renders nothing.
        """
        written: list[Path] = []
        for name in self.list_templates(template_prefix):
            relative = name[len(template_prefix) + 1 : -len(TEMPLATE_SUFFIX)]
            written.append(await self.render_to_file(name, Path(output_dir) / relative, context))
        return written

    def list_templates(self, prefix: str = "") -> list[str]:
        """Sorted template names (POSIX paths from the root) below *prefix*."""
        base = self.template_dir / prefix if prefix else self.template_dir
        if not base.is_dir():
            return []
        return sorted(
            path.relative_to(self.template_dir).as_posix()
            for path in base.rglob(f"*{TEMPLATE_SUFFIX}")
        )


def _json_filter(value: Any, indent: int = 0) -> str:
    """``{{ deps|json(2) }}``: JSON with continuation lines shifted by *indent*."""
    text = dump_json(value).rstrip("\n")
    return text.replace("\n", "\n" + " " * indent) if indent else text
