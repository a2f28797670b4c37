"""Result type used across the release pipeline.

Every pipeline step returns either ``Ok(value)`` or ``Err(error)`` so the
orchestrator can stop at the first failing step and report which one it was,
without exceptions leaking out of the service layer.

Usage:
    match render_template(path, variables, out_dir):
        case Ok(artifact):
            console.success(f"rendered {artifact}")
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

__all__ = ["Err", "Ok", "Result"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome of a step.

    Attributes:
        value: The produced value.
    """

    value: T

    def unwrap(self) -> T:
        """Return the value."""
        return self.value

    def map_err[F](self, f: Callable[[object], F]) -> Ok[T]:
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome of a step.

    Attributes:
        error: The error payload (usually a frozen dataclass with kind/message).
    """

    error: E

    def unwrap(self) -> None:
        """Raise with the error payload."""
        raise ValueError(f"called unwrap on Err: {self.error}")

    def map_err[F](self, f: Callable[[E], F]) -> Err[F]:
        """Translate the error payload, e.g. a TemplateError into a PublishError."""
        return Err(f(self.error))

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
