"""Check a model against YAML field definitions."""

import json
from pathlib import Path

import click
import yaml

from fieldforge.controller import mount_fields
from fieldforge.errors import FieldDefinitionError, FieldForgeError
from fieldforge.expressions import FunctionRegistry
from fieldforge.loader import load_definition, load_model
from fieldforge.registry import TypeRegistry
from fieldforge.types import FieldContext, Form
from fieldforge.wrapper import Element


def render_headless(ctx: FieldContext) -> Element:
    """Stand-in implementation used when no UI is attached."""
    return Element(
        "field",
        attrs={"name": ctx.key, "type": ctx.field.type},
        value=ctx.value,
    )


def _parse_override(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"expected KEY=VALUE, got {raw!r}", param_hint="--set")
    return key, value


@click.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--model",
    "model_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML mapping of field key to value.",
)
@click.option(
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Set a model value (string), applied after --model.",
)
def check(definition: Path, model_path: Path | None, overrides: tuple[str, ...]):
    """Validate a model against the fields declared in DEFINITION.

    Prints the form's $valid flag and $errors registry as JSON and exits
    with status 1 when the form is invalid.
    """
    try:
        form_def = load_definition(definition)
        model = load_model(model_path) if model_path else {}
    except (FieldDefinitionError, yaml.YAMLError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    for raw in overrides:
        key, value = _parse_override(raw)
        model[key] = value

    registry = TypeRegistry()
    for field in form_def.fields:
        registry.register(field.type, render_headless)

    problems: list[FieldForgeError] = []
    form = Form()
    controllers, failures = mount_fields(
        form,
        model,
        form_def.fields,
        registry=registry,
        messages=form_def.messages,
        on_error=problems.append,
    )
    for controller in controllers:
        controller.destroy()

    click.echo(json.dumps(form.to_dict(), indent=2, sort_keys=True, default=str))

    for error in [*failures.values(), *problems]:
        click.echo(click.style(str(error), fg="yellow"), err=True)

    if not form.valid or failures or problems:
        raise SystemExit(1)


@click.command()
def functions():
    """List the functions available in validator expressions."""
    for func_def in FunctionRegistry.list_all():
        click.echo(f"{func_def.name:<12} {func_def.description}")
