"""Template loader for phase guidance prompts.

Templates ship inside the package under ``phasekeeper/prompts/templates``.
An extra directory may be placed in front of them to override individual
templates without touching the installed package.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    select_autoescape,
)

if TYPE_CHECKING:
    from jinja2 import Template

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateLoader:
    """Loads and caches Jinja2 prompt templates.

    Attributes:
        template_dirs: Directories searched in order.
        env: Jinja2 environment shared by every render.
    """

    def __init__(self, override_dir: Path | None = None) -> None:
        """Initialize the template loader.

        Args:
            override_dir: Optional directory searched before the packaged
                templates.
        """
        self.template_dirs = [TEMPLATE_DIR]
        if override_dir is not None:
            self.template_dirs.insert(0, Path(override_dir))

        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in self.template_dirs]),
            autoescape=select_autoescape(),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            auto_reload=False,
        )

    def load_template(self, template_name: str) -> Template:
        """Load a template by name.

        Raises:
            jinja2.TemplateNotFound: If no directory contains the template.
        """
        return self.env.get_template(template_name)

    def list_templates(self) -> list[str]:
        return sorted(self.env.list_templates())

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
        except TemplateNotFound:
            return False
        return True
