"""Field type registry.

Maps a field's ``type`` to the implementation that renders it. An
implementation is any callable taking a FieldContext and returning an
Element; the engine treats it as a black box.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from fieldforge.errors import UnknownTypeError
from fieldforge.types import FieldContext

if TYPE_CHECKING:
    from fieldforge.wrapper import Element

logger = logging.getLogger(__name__)

FieldImplementation = Callable[[FieldContext], "Element"]


class TypeRegistry:
    """Registry of field implementations keyed by type name.

    Registration is host-managed; the controller only resolves.

    Example:
        registry = TypeRegistry()

        @registry.field_type("input")
        def render_input(ctx: FieldContext) -> Element:
            return Element("input", attrs={"name": ctx.key}, value=ctx.value)

        impl = registry.resolve("input")
    """

    def __init__(self) -> None:
        self._types: dict[str, FieldImplementation] = {}

    def register(self, name: str, implementation: FieldImplementation) -> None:
        """Register an implementation, replacing any previous one for ``name``."""
        if not name:
            raise ValueError("Field type name must be a non-empty string")
        if name in self._types:
            logger.debug("Replacing implementation for field type '%s'", name)
        self._types[name] = implementation

    def resolve(self, name: str) -> FieldImplementation:
        """Look up the implementation for a type.

        Raises:
            UnknownTypeError: If nothing is registered under ``name``
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownTypeError(name, self.list_registered()) from None

    def is_registered(self, name: str) -> bool:
        return name in self._types

    def list_registered(self) -> list[str]:
        return sorted(self._types)

    def unregister(self, name: str) -> None:
        self._types.pop(name, None)

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._types.clear()

    def field_type(
        self, name: str
    ) -> Callable[[FieldImplementation], FieldImplementation]:
        """Decorator registering the decorated callable under ``name``."""

        def decorator(fn: FieldImplementation) -> FieldImplementation:
            self.register(name, fn)
            return fn

        return decorator


default_registry = TypeRegistry()


def field_type(name: str) -> Callable[[FieldImplementation], FieldImplementation]:
    """Register an implementation with the default registry.

    Usage:
        @field_type("input")
        def render_input(ctx: FieldContext) -> Element:
            ...
    """
    return default_registry.field_type(name)
