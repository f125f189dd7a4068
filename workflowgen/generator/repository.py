"""File storage used by the generator."""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Union

import aiofiles
import aiofiles.os
import structlog

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


class FileRepository(ABC):
    """Abstract base class for snippet and output file access."""

    @abstractmethod
    async def file_exists(self, path: PathLike) -> bool:
        """Check whether a regular file exists."""
        pass

    @abstractmethod
    async def directory_exists(self, path: PathLike) -> bool:
        """Check whether a directory exists."""
        pass

    @abstractmethod
    async def create_directory(self, path: PathLike) -> None:
        """Create a directory and any missing parents."""
        pass

    @abstractmethod
    async def copy_file(self, source: PathLike, target: PathLike) -> None:
        """Copy a file byte for byte."""
        pass

    @abstractmethod
    async def load_text(self, path: PathLike) -> str:
        """Read a UTF-8 text file."""
        pass

    @abstractmethod
    async def save_text(self, path: PathLike, content: str) -> None:
        """Write a UTF-8 text file, creating parent directories."""
        pass

    @abstractmethod
    async def write_json_file(self, path: PathLike, data: Any, indent: int = 2) -> None:
        """Serialize ``data`` as JSON and write it."""
        pass


class LocalFileRepository(FileRepository):
    """Local filesystem repository backed by aiofiles."""

    async def file_exists(self, path: PathLike) -> bool:
        return await aiofiles.os.path.isfile(str(path))

    async def directory_exists(self, path: PathLike) -> bool:
        return await aiofiles.os.path.isdir(str(path))

    async def create_directory(self, path: PathLike) -> None:
        await aiofiles.os.makedirs(str(path), exist_ok=True)

    async def copy_file(self, source: PathLike, target: PathLike) -> None:
        await self.create_directory(Path(target).parent)
        async with aiofiles.open(source, 'rb') as src:
            content = await src.read()
        async with aiofiles.open(target, 'wb') as dst:
            await dst.write(content)
        logger.debug("file_copied", source=str(source), target=str(target))

    async def load_text(self, path: PathLike) -> str:
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            return await f.read()

    async def save_text(self, path: PathLike, content: str) -> None:
        await self.create_directory(Path(path).parent)
        async with aiofiles.open(path, 'w', encoding='utf-8') as f:
            await f.write(content)
        logger.debug("file_saved", path=str(path))

    async def write_json_file(self, path: PathLike, data: Any, indent: int = 2) -> None:
        await self.save_text(path, json.dumps(data, indent=indent, ensure_ascii=False))
