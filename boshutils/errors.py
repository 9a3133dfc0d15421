"""Error types that carry a message and, optionally, the error that caused them."""

from __future__ import annotations


class BoshError(Exception):
    """Base error raised throughout the package."""


class ComplexError(BoshError):
    """An error wrapping a cause, rendered as ``"<err>: <cause>"``."""

    def __init__(self, err: BaseException, cause: BaseException) -> None:
        self.err = err
        self.cause = cause
        super().__init__(f"{err}: {cause}")

    def short_error(self) -> str:
        """Render the error using the short form of its parts where they have one."""
        return f"{_short(self.err)}: {_short(self.cause)}"


def _short(error: BaseException) -> str:
    shortener = getattr(error, "short_error", None)
    if callable(shortener):
        return shortener()
    return str(error)


class UserError(BoshError):
    """An error meant to be shown to a user as is."""

    def __init__(self, message: str) -> None:
        self.err = BoshError(message)
        super().__init__(message)


class MultiError(BoshError):
    """A collection of errors rendered one per line."""

    def __init__(self, *errors: BaseException) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(str(error) for error in self.errors))


def wrap_error(cause: BaseException | None, msg: str, *args: object) -> ComplexError:
    """Wrap ``cause`` in an error whose message is ``msg`` formatted with ``args``."""
    message = msg % args if args else msg
    return wrap_complex_error(cause, BoshError(message))


def wrap_complex_error(cause: BaseException | None, err: BaseException) -> ComplexError:
    """Wrap ``cause`` with ``err``; a missing cause is rendered as ``<nil cause>``."""
    if cause is None:
        cause = BoshError("<nil cause>")
    return ComplexError(err, cause)