"""Locate, render and parse snippet files."""

import json
from pathlib import Path
from typing import Any, Awaitable, Dict, Iterable, Optional

import structlog

from workflowgen.generator.context import GenerationContext, safe_file_name
from workflowgen.generator.errors import SnippetFileError, SnippetParseError
from workflowgen.generator.renderer import SnippetRenderer
from workflowgen.generator.repository import FileRepository
from workflowgen.model.constants import TEMPLATE_EXTENSIONS
from workflowgen.model.target import ProcessManager, TargetResourceSnippet, TargetResourceTemplate
from workflowgen.model.workflow import WorkflowChannel, WorkflowObject

logger = structlog.get_logger(__name__)


class SnippetLoader:
    """Turns a snippet definition into a document fragment for one node.

    Each call stamps the node with the next unique id, finds the snippet
    file in the first template folder that has it, renders it when it is a
    template and parses the result as a JSON object. When the snippet has an
    output path, the rendered text (or the untouched file) is also written
    under the generation folder for inspection.
    """

    def __init__(
        self,
        repository: FileRepository,
        renderer: SnippetRenderer,
        context: GenerationContext,
        template_extensions: Iterable[str] = TEMPLATE_EXTENSIONS
    ):
        if repository is None:
            raise ValueError("repository must not be None")
        if renderer is None:
            raise ValueError("renderer must not be None")
        if context is None:
            raise ValueError("context must not be None")

        self.repository = repository
        self.renderer = renderer
        self.context = context
        self.template_extensions = {ext.lower() for ext in template_extensions}

    async def load(
        self,
        process_manager: ProcessManager,
        node: WorkflowObject,
        resource_template: TargetResourceTemplate,
        snippet: TargetResourceSnippet,
        channel: Optional[WorkflowChannel] = None
    ) -> Optional[Dict[str, Any]]:
        node.unique_id = self.context.unique_ids.next()

        snippet_path = await self._find_snippet_file(snippet.resource_snippet_file)
        if snippet_path is None:
            logger.warning(
                "snippet_file_not_found",
                snippet=snippet.resource_snippet_file,
                process_manager=process_manager.name
            )
            return None

        base_name = safe_file_name(f"{node.unique_id}.{node.name}")
        try:
            content = await self.repository.load_text(snippet_path)
        except (UnicodeDecodeError, OSError) as e:
            logger.error("snippet_read_failed", snippet=str(snippet_path), error=str(e))
            raise SnippetFileError(snippet.resource_snippet_file, str(e)) from e

        if snippet_path.suffix.lower() in self.template_extensions:
            logger.debug("rendering_snippet", snippet=str(snippet_path), node=node.name, node_type=node.type)
            render_context = {
                "node": node,
                "process_manager": process_manager,
                "resource_template": resource_template,
                "snippet": snippet,
                "model": process_manager.workflow_model,
                "channel": channel,
            }
            content = await self.renderer.render(content, render_context, snippet.resource_snippet_file)

            if snippet.output_path:
                output_file = self._output_folder(snippet) / f"{base_name}.{snippet_path.stem}"
                await self._write_debug_copy(snippet, self.repository.save_text(output_file, content))
        elif snippet.output_path:
            output_file = self._output_folder(snippet) / f"{base_name}.{snippet_path.name}"
            await self._write_debug_copy(snippet, self.repository.copy_file(snippet_path, output_file))

        return self._parse(snippet.resource_snippet_file, content)

    @staticmethod
    async def _write_debug_copy(snippet: TargetResourceSnippet, write: Awaitable[None]) -> None:
        try:
            await write
        except OSError as e:
            logger.error("snippet_output_failed", snippet=snippet.resource_snippet_file, error=str(e))
            raise SnippetFileError(snippet.resource_snippet_file, str(e)) from e

    async def _find_snippet_file(self, file_name: str) -> Optional[Path]:
        for folder in self.context.template_folders:
            candidate = folder / file_name
            if await self.repository.file_exists(candidate):
                return candidate
        return None

    def _output_folder(self, snippet: TargetResourceSnippet) -> Path:
        return self.context.generation_folder / snippet.output_path

    @staticmethod
    def _parse(snippet_file: str, content: str) -> Dict[str, Any]:
        try:
            fragment = json.loads(content)
        except json.JSONDecodeError as e:
            raise SnippetParseError(snippet_file, str(e)) from e

        if not isinstance(fragment, dict):
            raise SnippetParseError(snippet_file, f"expected a JSON object, got {type(fragment).__name__}")
        return fragment
