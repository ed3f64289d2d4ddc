"""Executes a field's validators and publishes results into the form.

Results land in ``form.errors[field.key][validator_name]``:
- no message: ``True`` when the check fails, ``False`` when it passes
- with message: the rendered message when it fails, ``False`` when it passes

Every run of a validator gets a generation number. A verdict from an
older generation than the latest started run is dropped, so a slow
asynchronous check can never overwrite the result for a newer value.
After ``close()`` every verdict is dropped.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fieldforge.errors import (
    ExpressionError,
    FieldForgeError,
    StaleWriteIgnored,
    ValidatorExecutionError,
)
from fieldforge.messages import MessageFormatter, MessageRegistry
from fieldforge.types import ErrorValue, Field, Form, Model, is_empty_value
from fieldforge.validation.normalize import normalize_validators
from fieldforge.validation.types import NormalizedValidator

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[FieldForgeError], None]
ResultHandler = Callable[[str, ErrorValue], None]


class ValidatorRunner:
    """Runs the validators of one field.

    Args:
        field: The field declaration
        model: The shared model
        form: The shared form whose ``errors[field.key]`` this runner owns
        messages: Fallback message templates by validator name
        formatter: Renders message templates
        on_error: Called with every ExpressionError or ValidatorExecutionError;
            defaults to logging a warning
        on_result: Called after each published result
    """

    def __init__(
        self,
        field: Field,
        model: Model,
        form: Form,
        messages: MessageRegistry | None = None,
        formatter: MessageFormatter | None = None,
        on_error: ErrorHandler | None = None,
        on_result: ResultHandler | None = None,
    ):
        self.field = field
        self.model = model
        self.form = form
        self.messages = messages
        self.formatter = formatter or MessageFormatter()
        self.on_error = on_error
        self.on_result = on_result

        self.validators, self.definition_failures = normalize_validators(field, messages)
        self.failures: dict[str, FieldForgeError] = dict(self.definition_failures)
        self._generations: dict[str, int] = {}
        self._pending: set[tuple[str, int]] = set()
        self._tasks: set[asyncio.Future] = set()
        self.closed = False

        for error in self.definition_failures.values():
            self._report(error)

    @property
    def names(self) -> list[str]:
        return [v.name for v in self.validators]

    @property
    def is_validating(self) -> bool:
        """True while any started run has not reported its verdict."""
        return bool(self._pending)

    @property
    def errors(self) -> dict[str, ErrorValue]:
        return self.form.errors.setdefault(self.field.key, {})

    def run_all(self) -> dict[str, FieldForgeError]:
        """Start one run of every validator.

        Synchronous validators have published their result when this
        returns; asynchronous ones publish when they call ``done``.

        Returns:
            Failures raised while starting this pass, by validator name
        """
        if self.closed:
            return {}

        self.failures = dict(self.definition_failures)
        pass_failures: dict[str, FieldForgeError] = {}
        for validator in self.validators:
            error = self.run(validator)
            if error is not None:
                pass_failures[validator.name] = error
        self.failures.update(pass_failures)
        return pass_failures

    def run(self, validator: NormalizedValidator) -> FieldForgeError | None:
        """Start one run of ``validator``; returns the failure, if any."""
        generation = self._generations.get(validator.name, 0) + 1
        self._generations[validator.name] = generation
        self._pending.add((validator.name, generation))
        observed = self.model.get(self.field.key)

        # Optional fields with no value pass every check but required.
        if not validator.builtin and not self.field.required and is_empty_value(observed):
            self._publish(validator, generation, True, observed)
            return None

        done = self._make_done(validator, generation, observed)
        try:
            result = validator.run(self.field, self.model, done)
        except ExpressionError as e:
            return self._fail(validator, generation, e)
        except Exception as e:
            return self._fail(
                validator,
                generation,
                ValidatorExecutionError(self.field.key, validator.name, e),
            )

        if inspect.isawaitable(result):
            self._await_verdict(validator, generation, result, done)
        return None

    def close(self) -> None:
        """Drop all future verdicts and cancel awaitable validators in flight."""
        self.closed = True
        self._pending.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _make_done(
        self, validator: NormalizedValidator, generation: int, observed: Any
    ) -> Callable[[bool], None]:
        called = False

        def done(valid: bool = True) -> None:
            nonlocal called
            if called:
                logger.debug(
                    "Validator '%s' on field '%s' reported more than once; ignoring",
                    validator.name,
                    self.field.key,
                )
                return
            called = True
            self._publish(validator, generation, bool(valid), observed)

        return done

    def _await_verdict(
        self,
        validator: NormalizedValidator,
        generation: int,
        awaitable: Awaitable[Any],
        done: Callable[[bool], None],
    ) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            try:
                verdict = asyncio.run(_resolve(awaitable))
            except Exception as e:
                self._fail(validator, generation, ValidatorExecutionError(
                    self.field.key, validator.name, e
                ))
                return
            if verdict is not None:
                done(bool(verdict))
            return

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def finished(task: asyncio.Future) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                self._fail(validator, generation, ValidatorExecutionError(
                    self.field.key, validator.name, error
                ))
                return
            verdict = task.result()
            if verdict is not None:
                done(bool(verdict))

        task.add_done_callback(finished)

    def _is_current(self, validator: NormalizedValidator, generation: int) -> bool:
        self._pending.discard((validator.name, generation))
        if self.closed:
            logger.debug("%s", StaleWriteIgnored(
                self.field.key, validator.name, "controller destroyed"
            ))
            return False
        if self._generations.get(validator.name) != generation:
            logger.debug("%s", StaleWriteIgnored(
                self.field.key, validator.name, "superseded by a newer run"
            ))
            return False
        return True

    def _publish(
        self,
        validator: NormalizedValidator,
        generation: int,
        valid: bool,
        observed: Any,
    ) -> None:
        if not self._is_current(validator, generation):
            return

        value: ErrorValue
        if valid:
            value = False
        elif validator.message is not None:
            value = self.formatter.render(
                validator.message, self.field, {self.field.key: observed}
            )
        else:
            value = True

        self.errors[validator.name] = value
        self.failures.pop(validator.name, None)
        if self.on_result is not None:
            self.on_result(validator.name, value)

    def _fail(
        self,
        validator: NormalizedValidator,
        generation: int,
        error: FieldForgeError,
    ) -> FieldForgeError:
        if self._is_current(validator, generation):
            self.errors.pop(validator.name, None)
            self.failures[validator.name] = error
            self._report(error)
        return error

    def _report(self, error: FieldForgeError) -> None:
        if self.on_error is not None:
            self.on_error(error)
        else:
            logger.warning("%s", error)


async def _resolve(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
