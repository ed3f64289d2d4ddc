"""fieldforge: declarative form field engine.

Resolves a field declaration to a registered implementation, binds it to a
shared model, and publishes validation results into a shared form:

    from fieldforge import Field, FieldController, Form, Model, TypeRegistry

    registry = TypeRegistry()
    registry.register("input", render_input)

    form, model = Form(), Model({"search": ""})
    controller = FieldController(
        form,
        model,
        Field(key="search", type="input", required=True),
        registry=registry,
    )
    controller.mount()
    form.errors["search"]["required"]  # True

    # Host writes go through the Model so the controller sees them.
    model["search"] = "found"
    form.errors["search"]["required"]  # False

    # A write made straight on the wrapped dict needs a touch().
    model.data["search"] = ""
    model.touch("search")
"""

from fieldforge.controller import ControllerState, FieldController, mount_fields
from fieldforge.errors import (
    ExpressionError,
    FieldDefinitionError,
    FieldForgeError,
    InvalidWrapperError,
    LifecycleError,
    StaleWriteIgnored,
    UnknownTypeError,
    ValidatorDefinitionError,
    ValidatorExecutionError,
)
from fieldforge.expressions.builtins import register_all_builtins
from fieldforge.loader import FormDefinition, load_definition, load_fields
from fieldforge.messages import MessageFormatter, MessageRegistry, default_messages
from fieldforge.registry import TypeRegistry, default_registry, field_type
from fieldforge.types import Field, FieldContext, Form, Model
from fieldforge.validation import NormalizedValidator, ValidatorRunner
from fieldforge.wrapper import Element, compose, parse_wrapper

register_all_builtins()

__all__ = [
    # Types
    "Field",
    "FieldContext",
    "Form",
    "Model",
    "Element",
    # Controller
    "ControllerState",
    "FieldController",
    "mount_fields",
    # Registry
    "TypeRegistry",
    "default_registry",
    "field_type",
    # Validation
    "NormalizedValidator",
    "ValidatorRunner",
    # Messages
    "MessageFormatter",
    "MessageRegistry",
    "default_messages",
    # Wrapper
    "compose",
    "parse_wrapper",
    # Loading
    "FormDefinition",
    "load_definition",
    "load_fields",
    # Setup
    "register_all_builtins",
    # Errors
    "ExpressionError",
    "FieldDefinitionError",
    "FieldForgeError",
    "InvalidWrapperError",
    "LifecycleError",
    "StaleWriteIgnored",
    "UnknownTypeError",
    "ValidatorDefinitionError",
    "ValidatorExecutionError",
]
