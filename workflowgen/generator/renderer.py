"""Snippet template rendering."""

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Union

import jinja2
import structlog

from workflowgen.generator.errors import SnippetRenderError

logger = structlog.get_logger(__name__)


class SnippetRenderer(ABC):
    """Turns snippet template text plus a context into text."""

    @abstractmethod
    async def render(self, source: str, context: Dict[str, Any], snippet_file: str) -> str:
        """Render ``source`` against ``context``."""
        pass


class JinjaSnippetRenderer(SnippetRenderer):
    """Render snippets with Jinja2.

    Templates may include or import other files from the snippet search
    folders. JSON-producing filters are registered so snippets can emit
    model values safely::

        {"{{ node.name | safe_name }}": {"type": "Compose", "inputs": {{ node.properties | tojson }}}}
    """

    def __init__(self, template_folders: List[Union[str, Path]]):
        if template_folders is None:
            raise ValueError("template_folders must not be None")
        self.template_folders = [str(folder) for folder in template_folders]
        self._templates: Dict[str, jinja2.Template] = {}
        self._setup_jinja()

    def _setup_jinja(self):
        """Setup Jinja2 environment."""
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(self.template_folders),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined
        )

        self.jinja_env.filters['tojson'] = self._tojson
        self.jinja_env.filters['safe_name'] = self._safe_name
        self.jinja_env.filters['camel_case'] = self._camel_case
        self.jinja_env.filters['pascal_case'] = self._pascal_case

    async def render(self, source: str, context: Dict[str, Any], snippet_file: str) -> str:
        try:
            return self._template(source).render(**context)
        except jinja2.TemplateError as e:
            logger.error("snippet_render_failed", snippet=snippet_file, error=str(e))
            raise SnippetRenderError(snippet_file, str(e)) from e
        except Exception as e:
            # errors raised by expressions, filters or model attributes
            reason = f"{type(e).__name__}: {e}"
            logger.error("snippet_render_failed", snippet=snippet_file, error=reason)
            raise SnippetRenderError(snippet_file, reason) from e

    def _template(self, source: str) -> jinja2.Template:
        """Compile ``source`` once per distinct snippet text."""
        template = self._templates.get(source)
        if template is None:
            template = self.jinja_env.from_string(source)
            self._templates[source] = template
        return template

    def _tojson(self, value: Any, indent: int = None) -> str:
        """Serialize a value as JSON without HTML escaping."""
        return json.dumps(value, indent=indent, ensure_ascii=False, default=str)

    def _safe_name(self, text: str) -> str:
        """Reduce text to characters valid in an action name."""
        return re.sub(r'[^A-Za-z0-9_\-]', '_', str(text))

    def _camel_case(self, text: str) -> str:
        """Convert to camelCase."""
        components = re.sub(r'[\s\-]', '_', str(text)).split('_')
        return components[0][:1].lower() + components[0][1:] + ''.join(x.capitalize() for x in components[1:])

    def _pascal_case(self, text: str) -> str:
        """Convert to PascalCase."""
        components = re.sub(r'[\s\-]', '_', str(text)).split('_')
        return ''.join(x[:1].upper() + x[1:] for x in components)
