"""Normalization of validator declarations.

A field's ``validators`` map accepts three shapes per entry:

    validators:
      onlyTest: 'model.search == "test"'                  # expression
      available: check_username                            # callback
      exact:                                               # with message
        expression: 'model.search == "test"'
        message: '%l must be "test", you entered %v'

Each becomes a NormalizedValidator. Messages resolve from the inline
``message`` first, then the MessageRegistry entry for the validator name.
"""

from collections.abc import Mapping
from typing import Any

from fieldforge.errors import (
    ExpressionError,
    FieldForgeError,
    ValidatorDefinitionError,
)
from fieldforge.expressions import (
    CompiledExpression,
    EvaluationError,
    LexerError,
    ParseError,
)
from fieldforge.messages import MessageRegistry
from fieldforge.types import Field, Model, is_empty_value
from fieldforge.validation.types import Done, NormalizedValidator, ValidatorFn

REQUIRED = "required"


def expression_validator(field: Field, name: str, source: str) -> ValidatorFn:
    """Compile ``source`` and return a validator evaluating it.

    Raises:
        ExpressionError: If the expression does not lex or parse
    """
    try:
        compiled = CompiledExpression(source)
    except (LexerError, ParseError) as e:
        raise ExpressionError(field.key, name, source, e) from e

    def run(field: Field, model: Model, done: Done) -> None:
        variables = {
            "field": field.expression_view(model.get(field.key)),
            "model": model,
        }
        try:
            valid = compiled.evaluate_bool(variables)
        except EvaluationError as e:
            raise ExpressionError(field.key, name, source, e) from e
        done(valid)

    return run


def required_validator(field: Field, model: Model, done: Done) -> None:
    done(not is_empty_value(model.get(field.key)))


def _runnable(field: Field, name: str, expression: Any) -> ValidatorFn:
    if isinstance(expression, str):
        return expression_validator(field, name, expression)
    if callable(expression):
        return expression
    raise ValidatorDefinitionError(
        field.key,
        name,
        f"expected an expression string or callable, got {type(expression).__name__}",
    )


def normalize_validator(
    field: Field,
    name: str,
    declaration: Any,
    messages: MessageRegistry | None = None,
) -> NormalizedValidator:
    """Normalize one declaration.

    Raises:
        ExpressionError: The expression does not compile
        ValidatorDefinitionError: The declaration has an unsupported shape
    """
    message = None
    expression = declaration

    if isinstance(declaration, Mapping):
        if "expression" not in declaration:
            raise ValidatorDefinitionError(
                field.key, name, "mapping declarations need an 'expression'"
            )
        expression = declaration["expression"]
        message = declaration.get("message")

    if message is None and messages is not None:
        message = messages.get(name)

    return NormalizedValidator(
        name=name,
        run=_runnable(field, name, expression),
        message=message,
        source=declaration,
    )


def normalize_validators(
    field: Field,
    messages: MessageRegistry | None = None,
) -> tuple[list[NormalizedValidator], dict[str, FieldForgeError]]:
    """Normalize every validator on a field.

    A declaration that fails to normalize does not stop the others; its
    error is returned keyed by validator name.

    Returns:
        (validators, failures)
    """
    validators: list[NormalizedValidator] = []
    failures: dict[str, FieldForgeError] = {}

    if field.required and REQUIRED not in field.validators:
        validators.append(NormalizedValidator(
            name=REQUIRED,
            run=required_validator,
            message=messages.get(REQUIRED) if messages is not None else None,
            builtin=True,
        ))

    for name, declaration in field.validators.items():
        try:
            validators.append(normalize_validator(field, name, declaration, messages))
        except (ExpressionError, ValidatorDefinitionError) as e:
            failures[name] = e

    return validators, failures
