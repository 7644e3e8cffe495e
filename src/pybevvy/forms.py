"""Inline feedback for the target-temperature and device-name forms.

A :class:`FormController` submits one value to the command sink, refreshes
telemetry, then shows success or the device's rejection message next to the
form. The input's valid/invalid marking and the feedback message revert
after the delays in :class:`~pybevvy.config.FeedbackTiming`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from pybevvy.config import FeedbackTiming
from pybevvy.exceptions import BevvyCommandRejectedError, BevvyError
from pybevvy.models.command import CommandResult

_logger = logging.getLogger(__name__)


class FeedbackLevel(StrEnum):
    NONE = "none"
    SUCCESS = "success"
    DANGER = "danger"


class InputValidity(StrEnum):
    NONE = "none"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class FormState:
    feedback_text: str = ""
    feedback_level: FeedbackLevel = FeedbackLevel.NONE
    feedback_visible: bool = False
    validity: InputValidity = InputValidity.NONE
    input_value: str = ""
    section_open: bool = False


class FormController:
    """State machine behind one command form.

    Parameters
    ----------
    submit
        Coroutine sending the value; raises
        :class:`~pybevvy.exceptions.BevvyCommandRejectedError` on rejection.
    refresh
        Coroutine run after every submission (typically a poller refresh).
    success_text
        Builds the success message from the device's reply.
    close_on_success
        Close the form section once the success marking reverts.
    on_change
        Called with the new :class:`FormState` after every transition.
    """

    def __init__(
        self,
        submit: Callable[[str], Awaitable[CommandResult]],
        refresh: Callable[[], Awaitable[Any]] | None = None,
        *,
        success_text: Callable[[CommandResult], str],
        timing: FeedbackTiming | None = None,
        close_on_success: bool = False,
        on_change: Callable[[FormState], None] | None = None,
    ) -> None:
        self._submit = submit
        self._refresh = refresh
        self._success_text = success_text
        self._timing = timing or FeedbackTiming()
        self._close_on_success = close_on_success
        self._on_change = on_change
        self._state = FormState()
        self._timers: list[asyncio.TimerHandle] = []

    @property
    def state(self) -> FormState:
        return self._state

    def _set(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        if self._on_change is not None:
            try:
                self._on_change(self._state)
            except Exception:
                _logger.warning("Form change callback failed", exc_info=True)

    def _later(self, delay: float, **changes: Any) -> None:
        loop = asyncio.get_running_loop()
        self._timers.append(loop.call_later(delay, lambda: self._set(**changes)))

    def _cancel_timers(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

    def open(self, prefill: str = "") -> None:
        self._set(section_open=True, input_value=prefill)

    def close(self) -> None:
        self._set(section_open=False)

    def toggle(self, prefill: str = "") -> None:
        if self._state.section_open:
            self.close()
        else:
            self.open(prefill)

    async def submit(self, value: str) -> bool:
        """Submit *value*; returns ``True`` if the device accepted it."""
        self._cancel_timers()
        value = value.strip()
        try:
            result = await self._submit(value)
        except BevvyCommandRejectedError as exc:
            await self._after_submit()
            self._set(
                feedback_text=exc.message,
                feedback_level=FeedbackLevel.DANGER,
                feedback_visible=True,
                validity=InputValidity.INVALID,
            )
            self._later(self._timing.error_revert, validity=InputValidity.NONE)
            self._later(self._timing.feedback_hide, feedback_visible=False)
            return False
        except BevvyError:
            # Transport failures are logged only; the form is left untouched.
            _logger.warning("Error submitting %r", value, exc_info=True)
            return False

        await self._after_submit()
        self._set(
            feedback_text=self._success_text(result),
            feedback_level=FeedbackLevel.SUCCESS,
            feedback_visible=True,
            validity=InputValidity.VALID,
        )
        if self._close_on_success:
            self._later(self._timing.success_revert, validity=InputValidity.NONE, section_open=False)
        else:
            self._later(self._timing.success_revert, validity=InputValidity.NONE)
        self._later(self._timing.feedback_hide, feedback_visible=False)
        return True

    async def _after_submit(self) -> None:
        self._set(input_value="")
        if self._refresh is not None:
            await self._refresh()

    def dispose(self) -> None:
        self._cancel_timers()


def target_success_text(result: CommandResult) -> str:
    target = result.target
    if target is None:
        text = ""
    elif target.is_integer():
        text = str(int(target))
    else:
        text = repr(target)
    return f"Success: The new target temperature is {text}˚C"


def name_success_text(_result: CommandResult) -> str:
    return "Success: Name saved."
