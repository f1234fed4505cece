"""
Unit tests for schema models and configuration loading.

Tests cover:
- ParameterSpec shape invariants
- ToolSpec validation and derived properties
- QuiverConfig defaults and YAML loading
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from quiver.errors import ConfigError
from quiver.schema import (
    ParameterSpec,
    ParamType,
    QuiverConfig,
    ToolSpec,
    load_config,
    load_config_from_string,
)


def _noop(*args: object) -> None:
    return None


class TestParameterSpec:
    """Tests for ParameterSpec."""

    def test_scalar(self) -> None:
        """A scalar parameter needs only a type."""
        param = ParameterSpec(name="path", type=ParamType.STRING)
        assert param.optional is False
        assert param.to_dict() == {"name": "path", "type": "string", "description": "", "optional": False}

    def test_array_requires_items(self) -> None:
        """Arrays without items are rejected."""
        with pytest.raises(ValidationError, match="items"):
            ParameterSpec(name="cmd", type=ParamType.ARRAY)

    def test_items_only_for_arrays(self) -> None:
        """Items on a non-array are rejected."""
        with pytest.raises(ValidationError, match="items"):
            ParameterSpec(name="x", type=ParamType.STRING, items=ParameterSpec(type=ParamType.STRING))

    def test_object_requires_properties(self) -> None:
        """Objects without properties are rejected."""
        with pytest.raises(ValidationError, match="properties"):
            ParameterSpec(name="opts", type=ParamType.OBJECT)

    def test_required_subset_of_properties(self) -> None:
        """Required names must be declared properties."""
        with pytest.raises(ValidationError, match="unknown properties"):
            ParameterSpec(
                name="opts",
                type=ParamType.OBJECT,
                properties={"a": ParameterSpec(name="a", type=ParamType.STRING)},
                required=("a", "b"),
            )

    def test_nested_to_dict(self) -> None:
        """Serialization recurses and omits unset fields."""
        param = ParameterSpec(
            name="cmd",
            type=ParamType.ARRAY,
            items=ParameterSpec(type=ParamType.STRING),
        )
        data = param.to_dict()
        assert data["items"]["type"] == "string"
        assert "enum" not in data
        assert "properties" not in data

    def test_frozen(self) -> None:
        """Specs cannot be mutated."""
        param = ParameterSpec(name="x", type=ParamType.STRING)
        with pytest.raises(ValidationError):
            param.name = "y"  # type: ignore[misc]


class TestToolSpec:
    """Tests for ToolSpec."""

    def test_minimal(self) -> None:
        """Name, category and binding are enough."""
        spec = ToolSpec(name="ping", category="net", binding=_noop)
        assert spec.parameters == ()
        assert spec.is_async is False
        assert spec.requires_confirmation is False
        assert spec.include_result is False

    @pytest.mark.parametrize("name", ["read file", "a-b", "", "x/y"])
    def test_invalid_names(self, name: str) -> None:
        """Names are identity tokens."""
        with pytest.raises(ValidationError):
            ToolSpec(name=name, category="c", binding=_noop)

    def test_dotted_name_allowed(self) -> None:
        """Dots are allowed for namespacing."""
        assert ToolSpec(name="fs.read", category="c", binding=_noop).name == "fs.read"

    @pytest.mark.parametrize("category", ["", "   "])
    def test_blank_category(self, category: str) -> None:
        """Category must be non-blank."""
        with pytest.raises(ValidationError):
            ToolSpec(name="t", category=category, binding=_noop)

    def test_tags_deduplicated(self) -> None:
        """Repeated tags collapse, first occurrence wins."""
        spec = ToolSpec(name="t", category="c", tags=("b", "a", "b"), binding=_noop)
        assert spec.tags == ("b", "a")

    def test_optional_before_required_rejected(self) -> None:
        """Required parameters may not follow optional ones."""
        with pytest.raises(ValidationError, match="follows an optional"):
            ToolSpec(
                name="t",
                category="c",
                parameters=(
                    ParameterSpec(name="a", type=ParamType.STRING, optional=True),
                    ParameterSpec(name="b", type=ParamType.STRING),
                ),
                binding=_noop,
            )

    def test_flags_from_metadata(self) -> None:
        """Derived flags read the metadata bag."""
        spec = ToolSpec(
            name="t",
            category="c",
            metadata={"async": True, "confirm": True, "include": True, "owner": "me"},
            binding=_noop,
        )
        assert spec.is_async
        assert spec.requires_confirmation
        assert spec.include_result
        assert spec.metadata["owner"] == "me"

    def test_required_and_optional_partition(self) -> None:
        """required_parameters and optional_parameters split the list."""
        spec = ToolSpec(
            name="t",
            category="c",
            parameters=(
                ParameterSpec(name="a", type=ParamType.STRING),
                ParameterSpec(name="b", type=ParamType.INTEGER, optional=True),
            ),
            binding=_noop,
        )
        assert [p.name for p in spec.required_parameters] == ["a"]
        assert [p.name for p in spec.optional_parameters] == ["b"]

    def test_binding_excluded_from_dump(self) -> None:
        """The binding never appears in serialized output."""
        spec = ToolSpec(name="t", category="c", binding=_noop)
        assert "binding" not in spec.model_dump()


class TestQuiverConfig:
    """Tests for configuration models and loading."""

    def test_defaults(self) -> None:
        """Defaults need no file."""
        config = QuiverConfig()
        assert config.working_dir == "."
        assert config.log_level == "WARNING"
        assert config.shell.timeout_seconds == 60
        assert config.http.max_response_bytes == 2 * 1024 * 1024

    def test_log_level_normalized(self) -> None:
        """Log levels are case-insensitive."""
        assert QuiverConfig(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self) -> None:
        """Unknown levels are rejected."""
        with pytest.raises(ValidationError):
            QuiverConfig(log_level="chatty")

    def test_load_from_string(self) -> None:
        """Nested sections are parsed."""
        config = load_config_from_string(
            """
working_dir: /tmp
shell:
  timeout_seconds: 5
http:
  timeout_seconds: 2.5
"""
        )
        assert config.working_dir == "/tmp"
        assert config.shell.timeout_seconds == 5
        assert config.http.timeout_seconds == 2.5

    def test_empty_document(self) -> None:
        """An empty document yields the defaults."""
        assert load_config_from_string("") == QuiverConfig()

    def test_unknown_key(self) -> None:
        """Unknown keys are configuration errors."""
        with pytest.raises(ConfigError):
            load_config_from_string("shel:\n  timeout_seconds: 5\n")

    def test_not_a_mapping(self) -> None:
        """The top level must be a mapping."""
        with pytest.raises(ConfigError, match="mapping"):
            load_config_from_string("- a\n- b\n")

    def test_invalid_yaml(self) -> None:
        """YAML syntax errors become ConfigError."""
        with pytest.raises(ConfigError):
            load_config_from_string("shell: [unclosed\n")

    def test_load_from_file(self, temp_dir: Path) -> None:
        """Files are read as UTF-8 YAML."""
        path = temp_dir / "quiver.yaml"
        path.write_text("log_level: info\n", encoding="utf-8")
        assert load_config(path).log_level == "INFO"

    def test_missing_file(self, temp_dir: Path) -> None:
        """A missing file is a ConfigError naming the path."""
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir / "absent.yaml")
        assert "absent.yaml" in exc_info.value.path
