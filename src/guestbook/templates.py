"""
=============================================================================
TEMPLATES
=============================================================================

Jinja2 rendering for the HTML pages.

Every ``*.html`` file in the template directory is compiled once at
startup; a missing directory, an empty one, or a syntax error anywhere
is a TemplateLoadError and the server never binds. After that the
compiled templates are read-only and shared by all workers.

    Templates.load("templates/")
        ├── base.html     layout: <head>, nav, {% block content %}
        ├── index.html    form + message list
        └── about.html

    templates.render("index.html", PageData(title="Home", messages=[...]))

Templates see the PageData fields as top-level names: ``title``,
``flash``, ``messages`` and ``now``. HTML autoescaping is on, so message
content is always escaped.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Union

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    select_autoescape,
)

from .errors import RenderError, TemplateLoadError
from .store import Message


logger = logging.getLogger(__name__)


@dataclass
class PageData:
    """What a page template gets to see."""

    title: str
    flash: str = ""
    messages: List[Message] = field(default_factory=list)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def context(self) -> dict:
        return {
            "title": self.title,
            "flash": self.flash,
            "messages": self.messages,
            "now": self.now,
        }


def format_timestamp(value: datetime, fmt: str = "%Y-%m-%d %H:%M:%S %Z") -> str:
    """Jinja filter: ``{{ message.created | timestamp }}``."""
    return value.strftime(fmt).strip()


class Templates:
    """Compiled page templates."""

    def __init__(self, environment: Environment, templates: Dict[str, Template]):
        self.environment = environment
        self._templates = templates

    @classmethod
    def load(cls, directory: Union[str, Path]) -> "Templates":
        """
        Compile every ``*.html`` in ``directory``.

        Raises:
            TemplateLoadError: Directory missing or empty, or a template
                does not compile.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise TemplateLoadError(f"template directory not found: {directory}")

        names = sorted(p.name for p in directory.glob("*.html") if p.is_file())
        if not names:
            raise TemplateLoadError(f"no *.html templates in {directory}")

        environment = Environment(
            loader=FileSystemLoader(str(directory)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
        )
        environment.filters["timestamp"] = format_timestamp

        compiled: Dict[str, Template] = {}
        for name in names:
            try:
                compiled[name] = environment.get_template(name)
            except TemplateError as e:
                raise TemplateLoadError(f"loading {directory / name}: {e}") from e

        logger.info("Loaded %d templates from %s", len(compiled), directory)
        return cls(environment, compiled)

    @property
    def names(self) -> List[str]:
        return sorted(self._templates)

    def render(self, name: str, data: PageData) -> str:
        """
        Render ``name`` with ``data``.

        Raises:
            RenderError: Unknown template, or the template failed while
                rendering (undefined variable, bad filter argument, ...).
        """
        template = self._templates.get(name)
        if template is None:
            raise RenderError(name, LookupError(f"no template named {name!r}"))

        try:
            return template.render(**data.context())
        except Exception as e:
            raise RenderError(name, e) from e
