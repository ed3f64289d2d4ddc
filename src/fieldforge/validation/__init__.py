"""Field validation pipeline.

- normalize: turns expression / callback / {expression, message}
  declarations into NormalizedValidators
- runner: executes them and publishes results into ``form.errors``
"""

from fieldforge.validation.normalize import (
    REQUIRED,
    expression_validator,
    normalize_validator,
    normalize_validators,
    required_validator,
)
from fieldforge.validation.runner import ValidatorRunner
from fieldforge.validation.types import Done, NormalizedValidator, ValidatorFn

__all__ = [
    "REQUIRED",
    "Done",
    "NormalizedValidator",
    "ValidatorFn",
    "ValidatorRunner",
    "expression_validator",
    "normalize_validator",
    "normalize_validators",
    "required_validator",
]
