"""Registry of functions callable from validator expressions.

Expressions such as ``len(model.password) >= 8`` or
``matches(field.value, "^[0-9]+$")`` resolve their function names here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class FunctionCategory(Enum):
    """Groups used when listing functions."""

    STRING = "string"
    MATH = "math"
    COLLECTION = "collection"
    LOGIC = "logic"


@dataclass
class FunctionDefinition:
    """A named expression function.

    Attributes:
        name: Name used in expressions
        description: Human-readable description
        category: Listing group
        implementation: The Python callable
        arity: Exact number of arguments, or None for variadic functions
        examples: Example expressions
    """

    name: str
    description: str
    category: FunctionCategory
    implementation: Callable[..., Any]
    arity: int | None = None
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "arity": self.arity,
            "examples": self.examples,
        }


class FunctionRegistry:
    """Process-wide registry of expression functions.

    Example:
        FunctionRegistry.register(FunctionDefinition(
            name="isZip",
            description="True for five digit zip codes",
            category=FunctionCategory.STRING,
            implementation=lambda v: bool(re.fullmatch(r"\\d{5}", v or "")),
            arity=1,
        ))
    """

    _functions: dict[str, FunctionDefinition] = {}

    @classmethod
    def register(cls, func_def: FunctionDefinition) -> None:
        """Register a function, replacing any previous one with that name."""
        cls._functions[func_def.name] = func_def

    @classmethod
    def get(cls, name: str) -> FunctionDefinition:
        """Look up a function.

        Raises:
            ValueError: If no function is registered under ``name``
        """
        if name not in cls._functions:
            raise ValueError(f"Unknown function: {name}")
        return cls._functions[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._functions

    @classmethod
    def call(cls, name: str, *args: Any) -> Any:
        func_def = cls.get(name)
        if func_def.arity is not None and len(args) != func_def.arity:
            raise ValueError(
                f"Function '{name}' takes {func_def.arity} argument(s), "
                f"got {len(args)}"
            )
        return func_def.implementation(*args)

    @classmethod
    def list_all(cls) -> list[FunctionDefinition]:
        return sorted(cls._functions.values(), key=lambda f: f.name)

    @classmethod
    def list_by_category(cls, category: FunctionCategory) -> list[FunctionDefinition]:
        return [f for f in cls.list_all() if f.category == category]

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._functions.clear()
