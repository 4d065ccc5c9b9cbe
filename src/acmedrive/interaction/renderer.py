"""Jinja2 template renderer for user instructions.

Resolves templates with a two-tier loader:
1. User-specified ``templates_path`` (overrides)
2. Built-in templates shipped with the package

Each prompt has a ``<name>_title.txt`` and a ``<name>_body.txt``
template.  Challenge prompts are named after the challenge type
(``http-01``, ``dns-01``, ``tls-sni-01``); the terms of service prompt
is ``agreement``.
"""

from __future__ import annotations

from typing import Any

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader, StrictUndefined

AGREEMENT = "agreement"


class InstructionRenderer:
    """Renders prompt titles and bodies from Jinja2 templates."""

    def __init__(self, templates_path: str | None = None) -> None:
        loaders: list[BaseLoader] = []
        if templates_path:
            loaders.append(FileSystemLoader(templates_path))
        loaders.append(PackageLoader("acmedrive.interaction", "templates"))

        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,  # noqa: S701
            keep_trailing_newline=False,
            undefined=StrictUndefined,
        )

    def render(self, name: str, context: dict[str, Any]) -> tuple[str, str]:
        """Render title and body for the prompt *name*.

        Returns
        -------
        tuple[str, str]
            ``(title, body)``

        """
        title_tpl = self._env.get_template(f"{name}_title.txt")
        body_tpl = self._env.get_template(f"{name}_body.txt")

        title = title_tpl.render(**context).strip()
        body = body_tpl.render(**context).strip()

        return title, body
