"""
Pytest configuration and fixtures for Quiver tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from quiver.tools import ToolCompiler, ToolRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry() -> ToolRegistry:
    """A fresh, empty registry (never the global default)."""
    return ToolRegistry()


@pytest.fixture
def compiler(registry: ToolRegistry) -> ToolCompiler:
    """A compiler publishing to the fresh registry."""
    return ToolCompiler(registry)


@pytest.fixture
def sample_manifest_yaml() -> str:
    """A manifest declaring two tools backed by sample_effectors."""
    return """
version: "1.0"
tools:
  - name: word count
    function: sample_effectors:word_count
    category: text
    tags: [count]
    args:
      - {name: text, type: string, description: Text to count}
      - "&optional"
      - {name: unique, type: boolean, description: Count distinct words only}
  - name: delayed-echo
    function: sample_effectors:delayed_echo
    description: Echo a message through the callback
    category: text
    async: true
    include: true
    args:
      - {name: message, type: string}
"""
