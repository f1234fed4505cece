"""
Tool registry for Quiver.

The registry is the index of compiled tools. Consumers query it by name,
category or tag and hand the resulting ToolSpecs to their client adapter.

Design:
    - Single global registry (default_registry) for convenience
    - Any number of independent registries for testing/isolation
    - Insert-or-replace only; there is no deletion
    - Re-registering a name replaces its ToolSpec in place (iteration order kept)
    - Writes are serialized and reads copy a snapshot under the same lock,
      so readers never see a half-published registry

Usage:
    from quiver.tools.registry import default_registry, get_by_category

    for spec in get_by_category("filesystem"):
        print(spec.name)
"""

import threading
from typing import Iterator

from quiver.errors import ToolNotFoundError
from quiver.schema import ToolSpec


class ToolRegistry:
    """
    Ordered index of ToolSpecs keyed by name.

    Attributes:
        _tools: Mapping of tool names to specs, in first-registration order
        _lock: Guards _tools for writers and snapshotting readers
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, ToolSpec] = {}
        self._lock = threading.Lock()

    def insert_or_replace(self, spec: ToolSpec) -> ToolSpec | None:
        """
        Publish a spec.

        If a spec with the same name exists it is replaced in place: the new
        spec takes the old one's position in iteration order.

        Args:
            spec: A fully built ToolSpec

        Returns:
            The ToolSpec that was replaced, or None for a new name

        Raises:
            ValueError: If spec is None
        """
        if spec is None:
            msg = "Cannot register None as a tool"
            raise ValueError(msg)

        with self._lock:
            previous = self._tools.get(spec.name)
            self._tools[spec.name] = spec
        return previous

    def all_tools(self) -> list[ToolSpec]:
        """Return every registered spec in registration order."""
        with self._lock:
            return list(self._tools.values())

    def by_category(self, category: str) -> list[ToolSpec]:
        """Return the ToolSpecs in a category (empty list if none)."""
        return [spec for spec in self.all_tools() if spec.category == category]

    def by_tag(self, tag: str) -> list[ToolSpec]:
        """Return the ToolSpecs carrying a tag (empty list if none)."""
        return [spec for spec in self.all_tools() if tag in spec.tags]

    def get(self, name: str) -> ToolSpec:
        """
        Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool with that name is registered
        """
        spec = self.get_optional(name)
        if spec is None:
            raise ToolNotFoundError(tool=name)
        return spec

    def get_optional(self, name: str) -> ToolSpec | None:
        """Look up a tool by name, returning None if not found."""
        with self._lock:
            return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        with self._lock:
            return name in self._tools

    def categories(self) -> list[str]:
        """Distinct categories in first-seen order."""
        return list(dict.fromkeys(spec.category for spec in self.all_tools()))

    def tags(self) -> list[str]:
        """Distinct tags in first-seen order."""
        return list(dict.fromkeys(tag for spec in self.all_tools() for tag in spec.tags))

    def list_tools(self) -> list[str]:
        """List all registered tool names in sorted order."""
        return sorted(spec.name for spec in self.all_tools())

    def __len__(self) -> int:
        """Return the number of registered tools."""
        with self._lock:
            return len(self._tools)

    def __iter__(self) -> Iterator[ToolSpec]:
        """Iterate over a snapshot of the registered tools."""
        return iter(self.all_tools())

    def __contains__(self, name: str) -> bool:
        """Check if a tool is registered using 'in' operator."""
        return self.has(name)

    def __repr__(self) -> str:
        """String representation of the registry."""
        tools = ", ".join(self.list_tools())
        return f"<ToolRegistry: [{tools}]>"


# Global default registry instance
# Empty at import; filled only by explicit compile_tool/register_* calls
default_registry = ToolRegistry()


def get_all() -> list[ToolSpec]:
    """Return every tool in the default registry."""
    return default_registry.all_tools()


def get_by_category(category: str) -> list[ToolSpec]:
    """Return the default registry's tools in a category."""
    return default_registry.by_category(category)


def get_by_tag(tag: str) -> list[ToolSpec]:
    """Return the default registry's tools carrying a tag."""
    return default_registry.by_tag(tag)


def get_tool(name: str) -> ToolSpec:
    """
    Get a tool from the default registry.

    Raises:
        ToolNotFoundError: If no tool with that name is registered
    """
    return default_registry.get(name)
