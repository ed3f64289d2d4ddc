"""Built-in expression functions.

Registered at package import; call ``register_all_builtins()`` again after
``FunctionRegistry.clear()``.

- String: len, isEmpty, trim, lower, upper, matches, startsWith, endsWith
- Math: min, max, isNumber
- Collection: contains
- Logic: coalesce
"""

import re
from decimal import Decimal
from typing import Any

from fieldforge.expressions.functions import (
    FunctionCategory,
    FunctionDefinition,
    FunctionRegistry,
)


def register_all_builtins() -> None:
    """Register every built-in function with the FunctionRegistry."""
    for func_def in _BUILTINS:
        FunctionRegistry.register(func_def)


def _len(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, list, tuple, dict)):
        return len(value)
    return len(str(value))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _trim(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _lower(value: Any) -> str:
    return "" if value is None else str(value).lower()


def _upper(value: Any) -> str:
    return "" if value is None else str(value).upper()


def _matches(value: Any, pattern: str) -> bool:
    """Full-string regex match; None never matches."""
    if value is None:
        return False
    try:
        return re.fullmatch(pattern, str(value)) is not None
    except re.error as e:
        raise ValueError(f"Invalid pattern {pattern!r}: {e}")


def _starts_with(value: Any, prefix: str) -> bool:
    return value is not None and str(value).startswith(prefix)


def _ends_with(value: Any, suffix: str) -> bool:
    return value is not None and str(value).endswith(suffix)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    try:
        float(str(value))
    except ValueError:
        return False
    return True


def _min(*args: Any) -> Any:
    values = [a for a in args if a is not None]
    return min(values) if values else None


def _max(*args: Any) -> Any:
    values = [a for a in args if a is not None]
    return max(values) if values else None


def _contains(collection: Any, item: Any) -> bool:
    if collection is None:
        return False
    if isinstance(collection, str):
        return item is not None and str(item) in collection
    return item in collection


def _coalesce(*args: Any) -> Any:
    for arg in args:
        if arg is not None and arg != "":
            return arg
    return None


_BUILTINS = [
    FunctionDefinition(
        name="len",
        description="Length of a string or collection; 0 for null",
        category=FunctionCategory.STRING,
        implementation=_len,
        arity=1,
        examples=["len(model.password) >= 8"],
    ),
    FunctionDefinition(
        name="isEmpty",
        description="True for null, blank strings and empty collections",
        category=FunctionCategory.STRING,
        implementation=_is_empty,
        arity=1,
        examples=["!isEmpty(field.value)"],
    ),
    FunctionDefinition(
        name="trim",
        description="Strip surrounding whitespace",
        category=FunctionCategory.STRING,
        implementation=_trim,
        arity=1,
    ),
    FunctionDefinition(
        name="lower",
        description="Lowercase a string",
        category=FunctionCategory.STRING,
        implementation=_lower,
        arity=1,
    ),
    FunctionDefinition(
        name="upper",
        description="Uppercase a string",
        category=FunctionCategory.STRING,
        implementation=_upper,
        arity=1,
    ),
    FunctionDefinition(
        name="matches",
        description="True if the whole value matches the regex",
        category=FunctionCategory.STRING,
        implementation=_matches,
        arity=2,
        examples=['matches(field.value, "^[0-9]{5}$")'],
    ),
    FunctionDefinition(
        name="startsWith",
        description="True if the value starts with the prefix",
        category=FunctionCategory.STRING,
        implementation=_starts_with,
        arity=2,
    ),
    FunctionDefinition(
        name="endsWith",
        description="True if the value ends with the suffix",
        category=FunctionCategory.STRING,
        implementation=_ends_with,
        arity=2,
    ),
    FunctionDefinition(
        name="isNumber",
        description="True for numbers and numeric strings",
        category=FunctionCategory.MATH,
        implementation=_is_number,
        arity=1,
    ),
    FunctionDefinition(
        name="min",
        description="Smallest non-null argument",
        category=FunctionCategory.MATH,
        implementation=_min,
    ),
    FunctionDefinition(
        name="max",
        description="Largest non-null argument",
        category=FunctionCategory.MATH,
        implementation=_max,
    ),
    FunctionDefinition(
        name="contains",
        description="Membership test for strings and collections",
        category=FunctionCategory.COLLECTION,
        implementation=_contains,
        arity=2,
        examples=['contains(model.tags, "urgent")'],
    ),
    FunctionDefinition(
        name="coalesce",
        description="First argument that is neither null nor empty string",
        category=FunctionCategory.LOGIC,
        implementation=_coalesce,
    ),
]
