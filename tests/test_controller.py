"""Tests for the field controller.

Tests cover:
- Type resolution and rendering
- Template options and wrappers
- Two-way binding with the shared model
- Required, expression and callback validators through the lifecycle
- Message rendering from inline and registry templates
- Late results, coalescing and teardown
- Mounting collections of fields
"""

import asyncio

import pytest

from fieldforge import (
    ControllerState,
    Element,
    ExpressionError,
    Field,
    FieldController,
    FieldDefinitionError,
    Form,
    InvalidWrapperError,
    LifecycleError,
    MessageRegistry,
    Model,
    UnknownTypeError,
    mount_fields,
)


def make_controller(form, model, registry, messages=None, on_error=None, **field_kwargs):
    field_kwargs.setdefault("key", "search")
    field_kwargs.setdefault("type", "test")
    return FieldController(
        form,
        model,
        Field(**field_kwargs),
        registry=registry,
        messages=messages if messages is not None else MessageRegistry(),
        on_error=on_error,
    )


# =============================================================================
# Rendering
# =============================================================================


class TestRendering:
    def test_renders_registered_type(self, form, model, registry):
        controller = make_controller(form, model, registry)

        element = controller.mount()

        assert element.id == "testComponent"
        assert element.text_content == "test"
        assert controller.state == ControllerState.MOUNTED

    def test_template_options_reach_implementation(self, form, model, registry):
        seen = {}

        def render_label(ctx):
            seen.update(ctx.props)
            return Element("label", children=[ctx.to["label"]])

        registry.register("label", render_label)
        controller = make_controller(
            form, model, registry, type="label", template_options={"label": "Search"}
        )

        element = controller.mount()

        assert element.text_content == "Search"
        assert seen["label"] == "Search"
        assert seen["to"] is controller.field.template_options
        assert seen["form"] is form
        assert seen["model"] is model
        assert seen["field"] is controller.field

    def test_wrapper_becomes_parent(self, form, model, registry):
        controller = make_controller(
            form, model, registry, wrapper='<div id="test_wrapper_element"></div>'
        )

        element = controller.mount()

        assert element.id == "test_wrapper_element"
        assert element.first_child is controller.rendered
        assert controller.rendered.id == "testComponent"

    def test_wrapper_descriptor(self, form, model, registry):
        controller = make_controller(
            form, model, registry, wrapper={"tag": "div", "attrs": {"class": "group"}}
        )

        element = controller.mount()

        assert element.attrs == {"class": "group"}
        assert element.first_child is controller.rendered

    def test_accepts_plain_dicts(self, registry):
        host_form = {"$errors": {}, "$valid": True}
        host_model = {"search": ""}

        controller = FieldController(
            host_form,
            host_model,
            {"key": "search", "type": "input", "required": True,
             "templateOptions": {"label": "Search"}},
            registry=registry,
            messages=MessageRegistry(),
        )
        controller.mount()
        assert host_form["$valid"] is False

        controller.set_value("found")

        assert host_model["search"] == "found"
        assert host_form["$errors"]["search"]["required"] is False
        assert host_form["$valid"] is True
        assert controller.field.label == "Search"


# =============================================================================
# Binding
# =============================================================================


class TestBinding:
    @pytest.mark.asyncio
    async def test_model_change_updates_rendered_value(self, form, model, registry):
        controller = make_controller(form, model, registry, type="input")
        controller.mount()
        assert controller.element.value == ""

        model["search"] = "bar"
        await asyncio.sleep(0)

        assert controller.element.value == "bar"

    def test_model_change_without_loop_updates_inline(self, form, model, registry):
        controller = make_controller(form, model, registry, type="input")
        controller.mount()

        model["search"] = "bar"

        assert controller.element.value == "bar"

    def test_context_write_lands_in_host_dict(self, form, registry):
        host = {"search": ""}
        model = Model(host)
        controller = make_controller(form, model, registry, type="input")
        controller.mount()

        controller.context.set_value("foo")

        assert host["search"] == "foo"
        assert controller.element.value == "foo"

    def test_raw_dict_write_needs_touch(self, form, registry):
        host = {"search": ""}
        model = Model(host)
        controller = make_controller(form, model, registry, type="input")
        controller.mount()

        host["search"] = "direct"
        assert controller.element.value == ""

        model.touch("search")
        assert controller.element.value == "direct"

    def test_reassigning_mutated_list_revalidates(self, form, registry):
        items = ["a"]
        model = Model({"search": items})
        make_controller(
            form, model, registry, validators={"pair": "len(field.value) >= 2"}
        ).mount()
        assert form.errors["search"]["pair"] is True

        items.append("b")
        model["search"] = items

        assert form.errors["search"]["pair"] is False

    def test_only_watches_own_key(self, form, registry):
        model = Model({"search": "", "other": ""})
        renders = []

        def render(ctx):
            renders.append(ctx.value)
            return Element("input", value=ctx.value)

        registry.register("counted", render)
        make_controller(form, model, registry, type="counted").mount()

        model["other"] = "changed"

        assert renders == [""]


# =============================================================================
# Validation
# =============================================================================


class TestRequired:
    def test_required_truth_table(self, form, model, registry):
        controller = make_controller(form, model, registry, required=True)
        controller.mount()

        assert form.errors["search"]["required"] is True
        assert form.valid is False

        model["search"] = "x"
        assert form.errors["search"]["required"] is False
        assert form.valid is True

        model["search"] = ""
        assert form.errors["search"]["required"] is True
        assert controller.is_valid is False

    def test_non_required_has_no_entry(self, form, model, registry):
        make_controller(form, model, registry).mount()

        assert form.errors["search"] == {}
        assert form.valid is True


class TestExpressions:
    def test_model_expression(self, form, model, registry):
        make_controller(
            form, model, registry, validators={"expression": 'model.search == "test"'}
        ).mount()

        model["search"] = "testing"
        assert form.errors["search"]["expression"] is True

        model["search"] = "test"
        assert form.errors["search"]["expression"] is False

    def test_field_value_expression(self, form, model, registry):
        make_controller(
            form, model, registry, validators={"expression": 'field.value == "test"'}
        ).mount()

        assert form.errors["search"]["expression"] is False

        model["search"] = "testing"
        assert form.errors["search"]["expression"] is True

        model["search"] = "test"
        assert form.errors["search"]["expression"] is False

    def test_expression_with_builtin_function(self, form, model, registry):
        make_controller(
            form, model, registry, validators={"short": "len(field.value) <= 3"}
        ).mount()

        model["search"] = "abcd"
        assert form.errors["search"]["short"] is True

        model["search"] = "abc"
        assert form.errors["search"]["short"] is False

    def test_expression_error_reported(self, form, model, registry, reported):
        controller = make_controller(
            form,
            model,
            registry,
            on_error=reported.append,
            validators={"bad": "model.search > 1", "ok": "true"},
        )
        controller.mount()

        model["search"] = "x"

        assert "bad" not in form.errors["search"]
        assert form.errors["search"]["ok"] is False
        assert isinstance(reported[0], ExpressionError)
        assert isinstance(controller.failures["bad"], ExpressionError)


class TestCallbacks:
    def test_sync_callback(self, form, model, registry):
        def check(field, model, done):
            done(model["search"] == "test")

        make_controller(form, model, registry, validators={"expression": check}).mount()

        model["search"] = "testing"
        assert form.errors["search"]["expression"] is True

        model["search"] = "test"
        assert form.errors["search"]["expression"] is False

    @pytest.mark.asyncio
    async def test_delayed_callback(self, form, model, registry):
        def check(field, model, done):
            loop = asyncio.get_running_loop()
            loop.call_later(0.01, done, model["search"] == "test")

        controller = make_controller(
            form, model, registry, validators={"expression": check}
        )
        controller.mount()

        model["search"] = "testing"
        await asyncio.sleep(0.03)
        assert form.errors["search"]["expression"] is True

        model["search"] = "test"
        await asyncio.sleep(0)
        assert controller.is_validating
        await asyncio.sleep(0.03)
        assert form.errors["search"]["expression"] is False
        assert not controller.is_validating

    @pytest.mark.asyncio
    async def test_async_def_validator(self, form, model, registry):
        async def check(field, model, done):
            await asyncio.sleep(0.01)
            return model["search"] == "test"

        make_controller(form, model, registry, validators={"remote": check}).mount()

        model["search"] = "nope"
        await asyncio.sleep(0.03)

        assert form.errors["search"]["remote"] is True
        assert form.valid is False


class TestMessages:
    def test_inline_message(self, form, model, registry):
        make_controller(
            form,
            model,
            registry,
            validators={
                "validatorMessage": {
                    "expression": 'model.search == "test"',
                    "message": "Must equal test",
                },
            },
        ).mount()

        model["search"] = "testing"
        assert form.errors["search"]["validatorMessage"] == "Must equal test"

        model["search"] = "test"
        assert form.errors["search"]["validatorMessage"] is False

    def test_inline_message_with_label_and_value(self, form, model, registry):
        make_controller(
            form,
            model,
            registry,
            template_options={"label": "test"},
            validators={
                "validatorMessage": {
                    "expression": 'model.search == "test"',
                    "message": "%l and %v",
                },
            },
        ).mount()

        model["search"] = "testing"

        assert form.errors["search"]["validatorMessage"] == "test and testing"

    def test_registry_message(self, form, model, registry):
        messages = MessageRegistry({"validatorMessage": "%l and %v"})
        make_controller(
            form,
            model,
            registry,
            messages=messages,
            template_options={"label": "test"},
            validators={"validatorMessage": 'model.search == "test"'},
        ).mount()

        model["search"] = "testing"

        assert form.errors["search"]["validatorMessage"] == "test and testing"


# =============================================================================
# Late results and scheduling
# =============================================================================


class TestScheduling:
    @pytest.mark.asyncio
    async def test_writes_coalesce_into_one_pass(self, form, model, registry):
        calls = []

        def check(field, model, done):
            calls.append(model["search"])
            done(True)

        make_controller(form, model, registry, validators={"check": check}).mount()
        assert calls == []  # empty optional value skips the check

        model["search"] = "a"
        model["search"] = "ab"
        model["search"] = "abc"
        await asyncio.sleep(0)

        assert calls == ["abc"]

    @pytest.mark.asyncio
    async def test_older_result_arriving_late_is_dropped(self, form, model, registry):
        def check(field, model, done):
            value = model["search"]
            delay = 0.05 if value == "slow" else 0.01
            asyncio.get_running_loop().call_later(delay, done, value == "fast")

        make_controller(form, model, registry, validators={"check": check}).mount()

        model["search"] = "slow"
        await asyncio.sleep(0)
        model["search"] = "fast"
        await asyncio.sleep(0.1)

        assert form.errors["search"]["check"] is False

    @pytest.mark.asyncio
    async def test_explicit_validate_absorbs_scheduled_pass(self, form, model, registry):
        calls = []

        def check(field, model, done):
            calls.append(model["search"])
            done(True)

        controller = make_controller(form, model, registry, validators={"check": check})
        controller.mount()

        model["search"] = "x"
        errors = controller.validate()
        await asyncio.sleep(0)

        assert calls == ["x"]
        assert errors == {"check": False}


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    def test_unknown_type_leaves_field_unmounted(self, form, model, registry):
        controller = make_controller(form, model, registry, type="missing", required=True)

        with pytest.raises(UnknownTypeError):
            controller.mount()

        assert controller.state == ControllerState.UNMOUNTED
        assert "search" not in form.errors
        assert model.subscriber_count("search") == 0

    def test_invalid_wrapper_rolls_back(self, form, model, registry):
        controller = make_controller(
            form, model, registry, required=True, wrapper="<div></div><div></div>"
        )

        with pytest.raises(InvalidWrapperError):
            controller.mount()

        assert controller.state == ControllerState.UNMOUNTED
        assert "search" not in form.errors
        assert form.valid is True
        assert model.subscriber_count("search") == 0

    def test_double_mount_rejected(self, form, model, registry):
        controller = make_controller(form, model, registry)
        controller.mount()

        with pytest.raises(LifecycleError):
            controller.mount()

    def test_mount_after_destroy_rejected(self, form, model, registry):
        controller = make_controller(form, model, registry)
        controller.mount()
        controller.destroy()

        with pytest.raises(LifecycleError):
            controller.mount()

    def test_validate_requires_mount(self, form, model, registry):
        controller = make_controller(form, model, registry)

        with pytest.raises(LifecycleError):
            controller.validate()

    def test_destroy_is_idempotent(self, form, model, registry):
        controller = make_controller(form, model, registry)
        controller.mount()

        controller.destroy()
        controller.destroy()

        assert controller.state == ControllerState.DESTROYED
        assert model.subscriber_count("search") == 0

    def test_destroy_stops_watching(self, form, model, registry):
        controller = make_controller(form, model, registry, required=True)
        controller.mount()
        controller.destroy()

        model["search"] = "x"

        assert form.errors["search"]["required"] is True

    @pytest.mark.asyncio
    async def test_destroy_while_validation_pending(self, form, model, registry):
        def check(field, model, done):
            asyncio.get_running_loop().call_later(0.01, done, False)

        model["search"] = "x"
        controller = make_controller(form, model, registry, validators={"check": check})
        controller.mount()
        assert controller.is_validating

        controller.destroy()
        await asyncio.sleep(0.03)

        assert form.errors["search"] == {}
        assert not controller.is_validating

    @pytest.mark.asyncio
    async def test_destroy_cancels_scheduled_pass(self, form, model, registry):
        calls = []

        def check(field, model, done):
            calls.append(model["search"])
            done(True)

        controller = make_controller(form, model, registry, validators={"check": check})
        controller.mount()

        model["search"] = "x"
        controller.destroy()
        await asyncio.sleep(0)

        assert calls == []


class TestUpdates:
    def test_update_field_revalidates(self, form, model, registry):
        controller = make_controller(form, model, registry)
        controller.mount()
        assert form.errors["search"] == {}

        controller.update_field(Field(key="search", type="test", required=True))

        assert form.errors["search"]["required"] is True

    def test_update_field_drops_removed_validator_entries(self, form, model, registry):
        controller = make_controller(
            form, model, registry, validators={"expression": 'model.search == "test"'}
        )
        controller.mount()
        model["search"] = "testing"
        assert form.errors["search"]["expression"] is True
        assert form.valid is False

        controller.update_field(Field(key="search", type="test", validators={}))

        assert "expression" not in form.errors["search"]
        assert form.valid is True

    def test_update_field_rejects_type_change(self, form, model, registry):
        controller = make_controller(form, model, registry)
        controller.mount()

        with pytest.raises(FieldDefinitionError):
            controller.update_field(Field(key="search", type="input"))

    def test_bind_model_switches_source(self, form, model, registry):
        controller = make_controller(form, model, registry, type="input", required=True)
        controller.mount()

        replacement = Model({"search": "new"})
        controller.bind_model(replacement)

        assert controller.element.value == "new"
        assert form.errors["search"]["required"] is False
        assert model.subscriber_count("search") == 0

        model["search"] = ""
        assert form.errors["search"]["required"] is False

        replacement["search"] = ""
        assert form.errors["search"]["required"] is True


# =============================================================================
# Collections
# =============================================================================


class TestMountFields:
    def test_form_valid_aggregates_fields(self, form, registry):
        model = Model({"first": "", "last": ""})
        controllers, failures = mount_fields(
            form,
            model,
            [
                Field(key="first", type="input", required=True),
                Field(key="last", type="input", required=True),
            ],
            registry=registry,
            messages=MessageRegistry(),
        )

        assert failures == {}
        assert [c.key for c in controllers] == ["first", "last"]
        assert form.valid is False

        model["first"] = "Ada"
        assert form.valid is False

        model["last"] = "Lovelace"
        assert form.valid is True

    def test_failing_field_does_not_block_siblings(self, form, registry):
        model = Model({"a": "", "b": "", "c": ""})
        controllers, failures = mount_fields(
            form,
            model,
            [
                Field(key="a", type="input"),
                Field(key="b", type="missing"),
                Field(key="c", type="input", wrapper="<div></div><div></div>"),
            ],
            registry=registry,
            messages=MessageRegistry(),
        )

        assert [c.key for c in controllers] == ["a"]
        assert isinstance(failures["b"], UnknownTypeError)
        assert isinstance(failures["c"], InvalidWrapperError)
        assert list(form.errors) == ["a"]

    def test_duplicate_keys_rejected(self, form, registry):
        with pytest.raises(FieldDefinitionError):
            mount_fields(
                form,
                Model({}),
                [Field(key="a", type="input"), Field(key="a", type="test")],
                registry=registry,
            )

        assert form.errors == {}

    def test_shared_host_dict(self, form, registry):
        host = {"a": "", "b": ""}
        controllers, _ = mount_fields(
            form,
            host,
            [Field(key="a", type="input"), Field(key="b", type="input")],
            registry=registry,
        )

        controllers[0].set_value("one")

        assert host == {"a": "one", "b": ""}
        assert controllers[0].model is controllers[1].model
