"""
Pytest configuration and fixtures for the workflow snippet generator.
"""

import sys
from pathlib import Path

# Add the project root and the tests folder to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from helpers import write_snippets


@pytest.fixture
def snippet_folder(tmp_path):
    """Snippet library with every standard snippet file."""
    return write_snippets(tmp_path / "snippets")


@pytest.fixture
def output_folder(tmp_path):
    return tmp_path / "output"
