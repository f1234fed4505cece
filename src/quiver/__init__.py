"""
Quiver - declare agent tools once, expose them to any LLM runtime.

Quiver sits between the code that implements tools and the agent that calls
them. It provides:
- A compiler from tool declarations to normalized capability schemas
- A registry indexing tools by name, category and tag
- An invoker that threads synchronous and callback-based calling conventions
- Text primitives for windowed reads, unique edits and line search

Example usage:
    $ quiver tools --category filesystem
    $ quiver schema --format openai > tools.json
    $ quiver invoke read_file --args '{"path": "README.md", "limit": 20}'
"""

__version__ = "0.1.0"
__author__ = "Quiver Contributors"

__all__ = [
    "__version__",
    "__author__",
]
