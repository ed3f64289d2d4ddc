"""Shared fixtures: a registry with a ``test`` field type, empty form and model."""

import pytest

from fieldforge import Element, FieldContext, Form, MessageRegistry, Model, TypeRegistry


def render_test(ctx: FieldContext) -> Element:
    """Echoes the field type, like a component printing ``field.type``."""
    return Element("div", attrs={"id": "testComponent"}, children=[ctx.field.type])


def render_input(ctx: FieldContext) -> Element:
    """A text input bound to ``model[field.key]``."""
    return Element("input", attrs={"type": "text", "name": ctx.key}, value=ctx.value)


@pytest.fixture
def registry():
    registry = TypeRegistry()
    registry.register("test", render_test)
    registry.register("input", render_input)
    return registry


@pytest.fixture
def form():
    return Form()


@pytest.fixture
def model():
    return Model({"search": ""})


@pytest.fixture
def messages():
    return MessageRegistry()


@pytest.fixture
def reported():
    """Collects errors passed to on_error."""
    return []
