"""Types for the validation pipeline."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fieldforge.types import Field, Model

# Callback that receives a validator's verdict; True means valid.
Done = Callable[[bool], None]

# Uniform executable form: may call ``done`` now, later, or return an
# awaitable whose result is the verdict.
ValidatorFn = Callable[[Field, Model, Done], Any]


@dataclass
class NormalizedValidator:
    """A validator declaration reduced to ``run`` plus an optional message.

    Attributes:
        name: Key the result is stored under in ``form.errors[field.key]``
        run: Executes the check
        message: Template rendered when the check fails, or None for a
            boolean-only entry
        source: The original declaration, kept for diagnostics
        builtin: True for the implicit ``required`` validator
    """

    name: str
    run: ValidatorFn
    message: str | None = None
    source: Any = None
    builtin: bool = False
