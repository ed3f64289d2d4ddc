"""Load field declarations and message templates from YAML.

Document layout:

    messages:
      required: "%l is required"
    fields:
      - key: search
        type: input
        required: true
        templateOptions:
          label: Search
        validators:
          onlyTest:
            expression: 'model.search == "test"'
            message: '%l must be "test", got %v'
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from fieldforge.errors import FieldDefinitionError
from fieldforge.messages import MessageRegistry
from fieldforge.types import Field


@dataclass
class FormDefinition:
    """Fields plus the message templates declared alongside them."""

    fields: list[Field] = field(default_factory=list)
    messages: MessageRegistry = field(default_factory=MessageRegistry)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FormDefinition":
        if not isinstance(data, dict):
            raise FieldDefinitionError("Form definition must be a mapping")
        return cls(
            fields=fields_from_dicts(data.get("fields") or []),
            messages=MessageRegistry.from_dict(data.get("messages")),
        )

    def get_field(self, key: str) -> Field:
        for f in self.fields:
            if f.key == key:
                return f
        raise KeyError(key)


def fields_from_dicts(items: list[dict[str, Any]]) -> list[Field]:
    """Build Fields from declarations, rejecting duplicate keys."""
    if not isinstance(items, list):
        raise FieldDefinitionError("'fields' must be a list")

    fields: list[Field] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise FieldDefinitionError(f"Field #{index} must be a mapping, got {item!r}")
        f = Field.from_dict(item)
        if f.key in seen:
            raise FieldDefinitionError(f"Duplicate field key '{f.key}'")
        seen.add(f.key)
        fields.append(f)
    return fields


def _read_yaml(path: Path) -> Any:
    with open(path) as f:
        return yaml.safe_load(f)


def load_definition(path: Path) -> FormDefinition:
    """Load a form definition YAML file."""
    data = _read_yaml(path)
    if data is None:
        return FormDefinition()
    return FormDefinition.from_dict(data)


def load_fields(path: Path) -> list[Field]:
    return load_definition(path).fields


def load_model(path: Path) -> dict[str, Any]:
    """Load a model YAML file (a flat mapping of field key to value)."""
    data = _read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FieldDefinitionError(f"Model file {path} must contain a mapping")
    return data
