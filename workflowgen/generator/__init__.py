"""Snippet-driven workflow definition generator."""

from workflowgen.generator.binder import ActionBinder
from workflowgen.generator.context import GenerationContext, UniqueIdCounter, safe_file_name
from workflowgen.generator.document import Document, select, select_all
from workflowgen.generator.engine import GenerationResult, WorkflowGenerator
from workflowgen.generator.errors import (
    DocumentError,
    DuplicateKeyError,
    GenerationError,
    PathSyntaxError,
    SnippetParseError,
    SnippetRenderError,
)
from workflowgen.generator.messages import ErrorMessage
from workflowgen.generator.renderer import JinjaSnippetRenderer, SnippetRenderer
from workflowgen.generator.repository import FileRepository, LocalFileRepository
from workflowgen.generator.resolver import SnippetResolver
from workflowgen.generator.snippets import SnippetLoader

__all__ = [
    'ActionBinder',
    'GenerationContext',
    'UniqueIdCounter',
    'safe_file_name',
    'Document',
    'select',
    'select_all',
    'GenerationResult',
    'WorkflowGenerator',
    'DocumentError',
    'DuplicateKeyError',
    'GenerationError',
    'PathSyntaxError',
    'SnippetParseError',
    'SnippetRenderError',
    'ErrorMessage',
    'JinjaSnippetRenderer',
    'SnippetRenderer',
    'FileRepository',
    'LocalFileRepository',
    'SnippetResolver',
    'SnippetLoader',
]
