"""Core types shared by the field engine.

- Field: declarative descriptor of one form input
- Model: shared, observable mapping the field values live in
- Form: shared validity flag and per-field error registry
- FieldContext: what a resolved implementation receives
"""

from collections.abc import Callable, Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from fieldforge.errors import FieldDefinitionError

# Validator declarations: expression string, callback, or {expression, message}.
ValidatorDeclaration = Any

ErrorValue = bool | str

ChangeCallback = Callable[[str, Any], None]


def is_empty_value(value: Any) -> bool:
    """Empty as the required check sees it: missing, None or empty string."""
    return value is None or value == ""


@dataclass
class Field:
    """A field declaration.

    Attributes:
        key: Model key the field reads and writes; unique within a form
        type: Name of the registered implementation that renders the field
        required: Adds the built-in ``required`` validator
        template_options: Options passed through to the implementation
            (declared as ``templateOptions``)
        validators: Validator name -> expression, callback or
            ``{"expression": ..., "message": ...}``
        wrapper: Optional markup or descriptor of a single wrapping container
    """

    key: str
    type: str
    required: bool = False
    template_options: dict[str, Any] = field(default_factory=dict)
    validators: dict[str, ValidatorDeclaration] = field(default_factory=dict)
    wrapper: str | dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise FieldDefinitionError("Field key must be a non-empty string")
        if not isinstance(self.type, str) or not self.type:
            raise FieldDefinitionError(f"Field '{self.key}' has no type")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Field":
        """Create a Field from its camelCase declaration."""
        if "key" not in data:
            raise FieldDefinitionError(f"Field declaration has no key: {data!r}")
        return cls(
            key=data["key"],
            type=data.get("type", ""),
            required=bool(data.get("required", False)),
            template_options=data.get("templateOptions") or {},
            validators=data.get("validators") or {},
            wrapper=data.get("wrapper"),
        )

    @property
    def label(self) -> str:
        label = self.template_options.get("label")
        return "" if label is None else str(label)

    def expression_view(self, value: Any) -> dict[str, Any]:
        """The ``field`` object as validator expressions see it."""
        return {
            "key": self.key,
            "type": self.type,
            "required": self.required,
            "templateOptions": self.template_options,
            "value": value,
        }


class Model(MutableMapping):
    """Observable view over a host-owned dict.

    The wrapped dict is held by reference: writes through the Model land in
    the host's dict in place, and every write made through the Model notifies
    the subscribers of the written key, even when the same object is stored
    again (so a list mutated in place can be reassigned to trigger a pass).
    Writes that bypass the Model (on the raw dict) are not observed; call
    ``touch(key)`` afterwards.
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self.data = data if data is not None else {}
        self._subscribers: dict[str, list[ChangeCallback]] = {}

    @classmethod
    def wrap(cls, model: "Model | dict[str, Any]") -> "Model":
        if isinstance(model, Model):
            return model
        return cls(model)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value
        self._notify(key, value)

    def __delitem__(self, key: str) -> None:
        del self.data[key]
        self._notify(key, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"Model({self.data!r})"

    def subscribe(self, key: str, callback: ChangeCallback) -> Callable[[], None]:
        """Call ``callback(key, value)`` whenever ``key`` is written.

        Returns a function that removes the subscription.
        """
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(key, None)

        return unsubscribe

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, []))

    def touch(self, key: str) -> None:
        """Notify subscribers of ``key`` after the raw dict was changed directly."""
        self._notify(key, self.data.get(key))

    def _notify(self, key: str, value: Any) -> None:
        for callback in list(self._subscribers.get(key, [])):
            callback(key, value)


@dataclass
class Form:
    """Shared form state.

    Attributes:
        errors: Field key -> validator name -> error value. ``True`` or a
            message string means the validator is failing; ``False`` means
            it passes.
        valid: Aggregate validity across every field
        host: The adopted host mapping, if any; its ``$valid`` is kept in
            step with ``valid``
    """

    errors: dict[str, dict[str, ErrorValue]] = field(default_factory=dict)
    valid: bool = True
    host: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Form":
        """Adopt a ``{"$errors": ..., "$valid": ...}`` mapping.

        Both keys are shared with the host: ``$errors`` by reference and
        ``$valid`` rewritten on every ``recompute_valid``.
        """
        errors = data.get("$errors")
        if errors is None:
            errors = data["$errors"] = {}
        return cls(errors=errors, valid=bool(data.get("$valid", True)), host=data)

    def field_valid(self, key: str) -> bool:
        return not any(
            value is not False and value is not None
            for value in self.errors.get(key, {}).values()
        )

    def recompute_valid(self) -> bool:
        """Recompute ``valid`` from every field's error entries."""
        self.valid = all(self.field_valid(key) for key in self.errors)
        if self.host is not None:
            self.host["$valid"] = self.valid
        return self.valid

    def to_dict(self) -> dict[str, Any]:
        return {"$valid": self.valid, "$errors": self.errors}


@dataclass
class FieldContext:
    """Everything a resolved implementation is handed.

    Attributes:
        form: The shared form state
        model: The shared model
        field: The field declaration (same object the host owns)
        to: The field's template options
    """

    form: Form
    model: Model
    field: Field
    to: dict[str, Any]

    @property
    def key(self) -> str:
        return self.field.key

    @property
    def value(self) -> Any:
        return self.model.get(self.field.key)

    def set_value(self, value: Any) -> None:
        """Write the field's value into the shared model."""
        self.model[self.field.key] = value

    @property
    def props(self) -> dict[str, Any]:
        """Template options merged with the form/model/field bindings."""
        return {
            **self.to,
            "form": self.form,
            "model": self.model,
            "field": self.field,
            "to": self.to,
        }
