"""Error records and the text used when recording them."""

from dataclasses import dataclass
from typing import Optional


UNABLE_TO_FIND_NODE = (
    "Unable to find the node at path '{path}' in the workflow definition "
    "for process manager '{name}'"
)
UNABLE_TO_FIND_SWITCH = (
    "Unable to find a Switch action for decision branch '{branch}' "
    "in process manager '{name}'"
)
AMBIGUOUS_SWITCH = (
    "Found {count} Switch actions for decision branch '{branch}' "
    "in process manager '{name}', expected exactly one"
)
INVALID_ACTIONS_NODE = (
    "The actions of '{action}' in process manager '{name}' is not an object"
)
DUPLICATE_KEY = (
    "Unable to add '{key}' at path '{path}' in the workflow definition "
    "for process manager '{name}', the name is already in use"
)
PROCESS_MANAGER_FAILED = "Generation of process manager '{name}' failed: {error}"
DOCUMENT_FAILED = "Generation of '{document}' for process manager '{name}' failed: {error}"


@dataclass
class ErrorMessage:
    """An error recorded against a process manager during generation."""
    message: str
    process_manager: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        return self.message
