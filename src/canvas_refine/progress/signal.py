"""
Single-write completion cell shared by the generation task and the monitor.

The generation side writes exactly once (success or error); the progress
monitor reads it on every tick. Reads never change state.
"""

from typing import Any, Optional


class SignalAlreadySetError(RuntimeError):
    """Raised on a second write to a CompletionSignal."""


class CompletionSignal:
    """
    Outcome slot for one asynchronous operation.

    States: pending -> succeeded | failed. Terminal states are final.
    """

    def __init__(self) -> None:
        self._done = False
        self._value: Any = None
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def succeeded(self) -> bool:
        return self._done and self._error is None

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def value(self) -> Any:
        return self._value

    def succeed(self, value: Any = None) -> None:
        self._check_unset()
        self._value = value
        self._done = True

    def fail(self, error: BaseException) -> None:
        self._check_unset()
        self._error = error
        self._done = True

    def poll(self) -> bool:
        """
        Completion predicate for the progress monitor.

        Returns True once succeeded, False while pending.

        Raises:
            The stored error once failed.
        """
        if self._error is not None:
            raise self._error
        return self._done

    def _check_unset(self) -> None:
        if self._done:
            raise SignalAlreadySetError("Completion signal was already written")

    def __repr__(self) -> str:
        if not self._done:
            state = "pending"
        elif self._error is not None:
            state = f"failed({type(self._error).__name__})"
        else:
            state = "succeeded"
        return f"CompletionSignal({state})"
