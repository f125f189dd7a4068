"""Shared state for one generator run."""

import re
import threading
from pathlib import Path
from typing import List, Optional, Union

import structlog

from workflowgen.generator.messages import ErrorMessage

logger = structlog.get_logger(__name__)

_INVALID_FILE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_file_name(text: str) -> str:
    """Replace characters that are not valid in a file name."""
    cleaned = _INVALID_FILE_CHARS.sub("_", text or "").strip()
    return cleaned.rstrip(".") or "_"


class UniqueIdCounter:
    """Monotonic counter shared by every loader of a generator."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        with self._lock:
            return self._value


class GenerationContext:
    """Search paths, output root and accumulated errors for a run."""

    def __init__(
        self,
        template_folders: List[Union[str, Path]],
        generation_folder: Union[str, Path],
        unique_ids: Optional[UniqueIdCounter] = None
    ):
        if template_folders is None:
            raise ValueError("template_folders must not be None")
        if generation_folder is None:
            raise ValueError("generation_folder must not be None")

        self.template_folders = [Path(folder) for folder in template_folders]
        self.generation_folder = Path(generation_folder)
        self.unique_ids = unique_ids or UniqueIdCounter()
        self.errors: List[ErrorMessage] = []

    def record_error(
        self,
        message: str,
        process_manager: Optional[str] = None,
        path: Optional[str] = None
    ) -> ErrorMessage:
        error = ErrorMessage(message=message, process_manager=process_manager, path=path)
        self.errors.append(error)
        logger.error("generation_error", message=message, process_manager=process_manager, path=path)
        return error

    def errors_for(self, process_manager: str) -> List[ErrorMessage]:
        return [e for e in self.errors if e.process_manager == process_manager]
