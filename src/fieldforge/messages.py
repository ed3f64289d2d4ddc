"""Validation message templates.

Templates support two placeholders:
- ``%l`` - the field's label (``templateOptions.label``)
- ``%v`` - the field's current value

``%%`` renders a literal percent sign; any other ``%x`` is left untouched.
"""

import re
from collections.abc import Mapping
from typing import Any

from fieldforge.types import Field

_PLACEHOLDER = re.compile(r"%(.)", re.DOTALL)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class MessageFormatter:
    """Renders message templates against a field and its model.

    Rendering never fails: a missing label or value renders as an empty
    string.
    """

    def render(self, template: str, field: Field, model: Mapping[str, Any]) -> str:
        def replace(match: re.Match) -> str:
            token = match.group(1)
            if token == "l":
                return field.label
            if token == "v":
                return _stringify(model.get(field.key))
            if token == "%":
                return "%"
            return match.group(0)

        return _PLACEHOLDER.sub(replace, template)


class MessageRegistry:
    """Default message templates keyed by validator name.

    Consulted when a validator declares no inline ``message``. Controllers
    receive a registry explicitly; ``default_messages`` is the instance used
    when none is passed.

    Example:
        messages = MessageRegistry({"required": "%l is required"})
        messages.set("minLength", "%l is too short")
    """

    def __init__(self, templates: Mapping[str, str] | None = None):
        self._templates: dict[str, str] = dict(templates or {})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "MessageRegistry":
        """Build a registry from a YAML/JSON mapping, ignoring null entries."""
        return cls({
            name: str(template)
            for name, template in (data or {}).items()
            if template is not None
        })

    def set(self, name: str, template: str) -> None:
        self._templates[name] = template

    def get(self, name: str) -> str | None:
        return self._templates.get(name)

    def update(self, templates: Mapping[str, str]) -> None:
        self._templates.update(templates)

    def remove(self, name: str) -> None:
        self._templates.pop(name, None)

    def names(self) -> list[str]:
        return sorted(self._templates)

    def clear(self) -> None:
        self._templates.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)


default_messages = MessageRegistry()
