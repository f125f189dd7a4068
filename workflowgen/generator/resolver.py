"""Lookup of snippet definitions by resource type key."""

from typing import List, Optional

import structlog

from workflowgen.model.target import TargetResourceSnippet

logger = structlog.get_logger(__name__)


class SnippetResolver:
    """Pure lookups over one process manager's snippets."""

    def __init__(self, snippets: List[TargetResourceSnippet]):
        if snippets is None:
            raise ValueError("snippets must not be None")
        self.snippets = list(snippets)

    @staticmethod
    def resource_type_key(prefix: str, node_type: str) -> str:
        """Build ``prefix.type`` with the type lower-cased."""
        return f"{prefix}.{(node_type or '').lower()}"

    def find_exact(self, key: str) -> Optional[TargetResourceSnippet]:
        for snippet in self.snippets:
            if snippet.resource_type == key:
                return snippet
        return None

    def find_with_placeholder(self, key: str, placeholder: str) -> Optional[TargetResourceSnippet]:
        """Exact match, else the placeholder snippet, else None."""
        snippet = self.find_exact(key)
        if snippet is not None:
            return snippet

        snippet = self.find_exact(placeholder)
        if snippet is not None:
            logger.debug("using_placeholder_snippet", resource_type=key, placeholder=placeholder)
            return snippet

        logger.info("no_snippet_found", resource_type=key, placeholder=placeholder)
        return None

    def find_all(self, key: str) -> List[TargetResourceSnippet]:
        return [s for s in self.snippets if s.resource_type == key]

    def find_prefixed(self, prefix: str) -> List[TargetResourceSnippet]:
        """Snippets whose type sits under ``prefix.`` (case-insensitive), in order.

        The exact ``prefix`` key itself is never part of the set.
        """
        wanted = prefix.lower() + "."
        return [
            s for s in self.snippets
            if s.resource_type.lower().startswith(wanted)
        ]
