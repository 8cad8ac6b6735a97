"""Jinja template engine for system prompts."""

from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
    UndefinedError,
    meta,
)

from ..types import TemplateError
from .filters import register_default_filters

TEMPLATE_SUFFIX = ".jinja"


class TemplateEngine:
    """
    Renders the system prompts sent to participants.

    Built-in templates ship with the package. A ``template_dir`` holding
    ``<name>.jinja`` files takes precedence, so any built-in prompt can be
    replaced without touching code. Undefined variables are errors.
    """

    def __init__(self, template_dir: Path | str | None = None):
        """
        Args:
            template_dir: Optional directory of templates overriding the built-ins
        """
        self._template_dir = Path(template_dir) if template_dir else None

        loaders: list[Any] = []
        if self._template_dir and self._template_dir.exists():
            loaders.append(FileSystemLoader(str(self._template_dir)))
        loaders.append(PackageLoader("chorus", "templating/templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            autoescape=False,  # prompts, not HTML
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        register_default_filters(self.env)

    def has(self, name: str) -> bool:
        """Whether a template with this name can be loaded."""
        try:
            self.env.get_template(name + TEMPLATE_SUFFIX)
        except TemplateNotFound:
            return False
        return True

    def render(self, name: str, variables: dict[str, Any] | None = None) -> str:
        """
        Render a named template.

        Args:
            name: Template name without the ``.jinja`` suffix
            variables: Variables to pass to the template

        Returns:
            Rendered text with surrounding whitespace stripped

        Raises:
            TemplateError: If the template is missing or rendering fails
        """
        variables = variables or {}
        try:
            tpl = self.env.get_template(name + TEMPLATE_SUFFIX)
            return tpl.render(**variables).strip()
        except TemplateNotFound as e:
            raise TemplateError(f"Template not found: {name}") from e
        except UndefinedError as e:
            raise TemplateError(f"Missing template variable: {e}") from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {e}") from e

    def render_string(self, source: str, variables: dict[str, Any] | None = None) -> str:
        """Render an inline template string."""
        try:
            return self.env.from_string(source).render(**(variables or {})).strip()
        except UndefinedError as e:
            raise TemplateError(f"Missing template variable: {e}") from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {e}") from e

    def get_variables(self, name: str) -> set[str]:
        """Variables referenced by a named template."""
        try:
            source, _, _ = self.env.loader.get_source(self.env, name + TEMPLATE_SUFFIX)
        except TemplateNotFound as e:
            raise TemplateError(f"Template not found: {name}") from e
        return meta.find_undeclared_variables(self.env.parse(source))
