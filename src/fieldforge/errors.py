"""Exceptions raised by the field engine.

Every error is scoped to a single field or validator; the controller
isolates them so sibling fields and validators keep running.
"""


class FieldForgeError(Exception):
    """Base class for field engine errors."""


class FieldDefinitionError(FieldForgeError):
    """A field declaration is malformed (empty key, duplicate key, bad shape)."""


class UnknownTypeError(FieldForgeError):
    """No implementation is registered for a field's type."""

    def __init__(self, type_name: str, available: list[str] | None = None):
        self.type_name = type_name
        self.available = available or []
        message = f"No field type registered under '{type_name}'"
        if self.available:
            message += ". Available types: " + ", ".join(self.available)
        super().__init__(message)


class ValidatorDefinitionError(FieldForgeError):
    """A validator declaration has an unsupported shape."""

    def __init__(self, field_key: str, validator: str, message: str):
        self.field_key = field_key
        self.validator = validator
        super().__init__(f"Validator '{validator}' on field '{field_key}': {message}")


class ExpressionError(FieldForgeError):
    """A validator expression failed to lex, parse or evaluate.

    Attributes:
        field_key: Key of the field the validator belongs to
        validator: Validator name
        expression: The offending expression source
        position: Character offset of the problem, when known
    """

    def __init__(
        self,
        field_key: str,
        validator: str,
        expression: str,
        cause: Exception,
    ):
        self.field_key = field_key
        self.validator = validator
        self.expression = expression
        self.cause = cause
        self.position: int | None = getattr(cause, "position", None)
        super().__init__(
            f"Validator '{validator}' on field '{field_key}' "
            f"failed on expression {expression!r}: {cause}"
        )


class ValidatorExecutionError(FieldForgeError):
    """A callback validator raised instead of reporting through ``done``."""

    def __init__(self, field_key: str, validator: str, cause: Exception):
        self.field_key = field_key
        self.validator = validator
        self.cause = cause
        super().__init__(f"Validator '{validator}' on field '{field_key}' raised: {cause}")


class InvalidWrapperError(FieldForgeError):
    """Wrapper markup does not describe exactly one root container."""


class LifecycleError(FieldForgeError):
    """A controller operation was called in the wrong lifecycle state."""


class StaleWriteIgnored(FieldForgeError):
    """A validator result arrived for a superseded run or a destroyed controller.

    Never raised by the engine; it is what gets logged at debug level when
    a late write is dropped.
    """

    def __init__(self, field_key: str, validator: str, reason: str):
        self.field_key = field_key
        self.validator = validator
        self.reason = reason
        super().__init__(
            f"Dropped result of validator '{validator}' on field '{field_key}': {reason}"
        )
