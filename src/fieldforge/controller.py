"""Field controller: binds one field to a shared form and model.

Lifecycle:
    UNMOUNTED --mount()--> MOUNTED --destroy()--> DESTROYED

While mounted the controller watches ``model[field.key]``. Every write
schedules one validation pass and one re-render; writes that arrive before
the scheduled pass runs are coalesced into it. With an asyncio loop running
the pass is deferred to the next loop iteration, otherwise it runs inline.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from fieldforge.errors import (
    FieldDefinitionError,
    FieldForgeError,
    InvalidWrapperError,
    LifecycleError,
    UnknownTypeError,
)
from fieldforge.messages import MessageFormatter, MessageRegistry, default_messages
from fieldforge.registry import FieldImplementation, TypeRegistry, default_registry
from fieldforge.types import ErrorValue, Field, FieldContext, Form, Model
from fieldforge.validation import ValidatorRunner
from fieldforge.wrapper import Element, compose

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    UNMOUNTED = "unmounted"
    MOUNTED = "mounted"
    DESTROYED = "destroyed"


class FieldController:
    """Owns one field's lifecycle, binding and validation.

    Args:
        form: Shared form (a Form, or a ``{"$errors", "$valid"}`` dict)
        model: Shared model (a Model, or a dict wrapped by reference)
        field: The field declaration (a Field, or its dict form)
        registry: Where the field's type is resolved
        messages: Fallback message templates by validator name
        formatter: Message renderer
        on_error: Receives expression and validator failures; they are
            logged as warnings when not given
    """

    def __init__(
        self,
        form: Form | dict[str, Any],
        model: Model | dict[str, Any],
        field: Field | dict[str, Any],
        registry: TypeRegistry | None = None,
        messages: MessageRegistry | None = None,
        formatter: MessageFormatter | None = None,
        on_error: Callable[[FieldForgeError], None] | None = None,
    ):
        self.form = form if isinstance(form, Form) else Form.from_dict(form)
        self.model = Model.wrap(model)
        self.field = field if isinstance(field, Field) else Field.from_dict(field)
        self.registry = registry if registry is not None else default_registry
        self.messages = messages if messages is not None else default_messages
        self.formatter = formatter or MessageFormatter()
        self.on_error = on_error

        self.state = ControllerState.UNMOUNTED
        self.implementation: FieldImplementation | None = None
        self.context: FieldContext | None = None
        self.runner: ValidatorRunner | None = None
        self.rendered: Element | None = None
        self.element: Element | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._scheduled: asyncio.Handle | None = None

    def __repr__(self) -> str:
        return f"FieldController(key={self.field.key!r}, state={self.state.value})"

    @property
    def key(self) -> str:
        return self.field.key

    @property
    def mounted(self) -> bool:
        return self.state == ControllerState.MOUNTED

    @property
    def value(self) -> Any:
        return self.model.get(self.field.key)

    def set_value(self, value: Any) -> None:
        """Write the field's value into the shared model in place."""
        self.model[self.field.key] = value

    @property
    def errors(self) -> dict[str, ErrorValue]:
        return self.form.errors.get(self.field.key, {})

    @property
    def is_valid(self) -> bool:
        return self.form.field_valid(self.field.key)

    @property
    def is_validating(self) -> bool:
        return self.runner is not None and self.runner.is_validating

    @property
    def failures(self) -> dict[str, FieldForgeError]:
        """Expression and validator failures from the latest pass."""
        return dict(self.runner.failures) if self.runner is not None else {}

    def mount(self) -> Element:
        """Resolve, validate and render the field.

        Raises:
            UnknownTypeError: The field's type is not registered
            InvalidWrapperError: The wrapper is not a single container
            LifecycleError: The controller was already mounted or destroyed
        """
        if self.state != ControllerState.UNMOUNTED:
            raise LifecycleError(f"Cannot mount field '{self.key}' in state {self.state.value}")

        self.implementation = self.registry.resolve(self.field.type)
        self.context = FieldContext(
            form=self.form,
            model=self.model,
            field=self.field,
            to=self.field.template_options,
        )
        self.form.errors[self.key] = {}
        self._start_runner()
        self.state = ControllerState.MOUNTED

        try:
            self._validate_now()
            self.render()
        except Exception:
            self._teardown()
            self.state = ControllerState.UNMOUNTED
            self.form.errors.pop(self.key, None)
            self.form.recompute_valid()
            raise

        logger.debug("Mounted field '%s' as type '%s'", self.key, self.field.type)
        return self.element

    def render(self) -> Element:
        """Render through the implementation and apply the wrapper."""
        if self.implementation is None or self.context is None:
            raise LifecycleError(f"Field '{self.key}' is not mounted")
        self.rendered = self.implementation(self.context)
        self.element = compose(self.rendered, self.field.wrapper)
        return self.element

    def validate(self) -> dict[str, ErrorValue]:
        """Run a validation pass now, absorbing any scheduled one."""
        if not self.mounted:
            raise LifecycleError(f"Field '{self.key}' is not mounted")
        self._cancel_scheduled()
        self._validate_now()
        return self.errors

    def update_field(self, field: Field | dict[str, Any]) -> None:
        """Swap in a new declaration for the same key and type."""
        field = field if isinstance(field, Field) else Field.from_dict(field)
        if field.key != self.field.key or field.type != self.field.type:
            raise FieldDefinitionError(
                f"Field '{self.key}' cannot change key or type while bound "
                f"(got key={field.key!r}, type={field.type!r})"
            )
        self.field = field
        if not self.mounted:
            return
        self.context.field = field
        self.context.to = field.template_options
        self._restart()

    def bind_model(self, model: Model | dict[str, Any]) -> None:
        """Point the controller at a different model object."""
        model = Model.wrap(model)
        if model is self.model:
            return
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.model = model
        if not self.mounted:
            return
        self.context.model = model
        self._restart()

    def destroy(self) -> None:
        """Stop watching the model; late validator results become no-ops."""
        if self.state == ControllerState.DESTROYED:
            return
        self._teardown()
        self.state = ControllerState.DESTROYED
        logger.debug("Destroyed field '%s'", self.key)

    def _start_runner(self) -> None:
        self.runner = ValidatorRunner(
            self.field,
            self.model,
            self.form,
            messages=self.messages,
            formatter=self.formatter,
            on_error=self._handle_error,
            on_result=self._on_result,
        )
        if self._unsubscribe is None:
            self._unsubscribe = self.model.subscribe(self.key, self._on_model_change)

    def _restart(self) -> None:
        self._cancel_scheduled()
        if self.runner is not None:
            self.runner.close()
        self._start_runner()
        self.form.errors[self.key] = {}
        self._validate_now()
        self.render()

    def _teardown(self) -> None:
        self._cancel_scheduled()
        if self.runner is not None:
            self.runner.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _validate_now(self) -> None:
        self.runner.run_all()
        self.form.recompute_valid()

    def _on_model_change(self, key: str, value: Any) -> None:
        if not self.mounted:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._flush()
            return
        if self._scheduled is None:
            self._scheduled = loop.call_soon(self._flush)

    def _flush(self) -> None:
        self._scheduled = None
        if not self.mounted:
            return
        self._validate_now()
        self.render()

    def _cancel_scheduled(self) -> None:
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None

    def _on_result(self, name: str, value: ErrorValue) -> None:
        self.form.recompute_valid()

    def _handle_error(self, error: FieldForgeError) -> None:
        if self.on_error is not None:
            self.on_error(error)
        else:
            logger.warning("%s", error)


def mount_fields(
    form: Form,
    model: Model | dict[str, Any],
    fields: Iterable[Field],
    registry: TypeRegistry | None = None,
    messages: MessageRegistry | None = None,
    on_error: Callable[[FieldForgeError], None] | None = None,
) -> tuple[list[FieldController], dict[str, FieldForgeError]]:
    """Mount a collection of fields against one form and model.

    A field whose type does not resolve or whose wrapper is invalid renders
    nothing; its error is returned keyed by field key and the remaining
    fields still mount.

    Raises:
        FieldDefinitionError: Two fields share a key

    Returns:
        (mounted controllers, failures by field key)
    """
    fields = list(fields)
    seen: set[str] = set()
    for field in fields:
        if field.key in seen:
            raise FieldDefinitionError(f"Duplicate field key '{field.key}'")
        seen.add(field.key)

    model = Model.wrap(model)
    controllers: list[FieldController] = []
    failures: dict[str, FieldForgeError] = {}

    for field in fields:
        controller = FieldController(
            form,
            model,
            field,
            registry=registry,
            messages=messages,
            on_error=on_error,
        )
        try:
            controller.mount()
        except (UnknownTypeError, InvalidWrapperError) as e:
            logger.warning("Field '%s' not rendered: %s", field.key, e)
            failures[field.key] = e
            continue
        controllers.append(controller)

    return controllers, failures
