from __future__ import annotations


class RewriteNote:
    """A diagnostic emitted while rewriting a page.

    Notes are informational: the rewriter never raises during a page pass,
    it records what it skipped or could not handle instead.
    """

    __slots__ = ("code", "element", "message")

    code: str
    message: str
    element: str | None

    def __init__(self, code: str, message: str | None = None, *, element: str | None = None) -> None:
        self.code = code
        self.message = message if message is not None else code
        self.element = element

    def __repr__(self) -> str:
        return f"RewriteNote({self.code!r}, {self.message!r})"

    def __str__(self) -> str:
        if self.element is None:
            return f"{self.code}: {self.message}"
        return f"{self.code}: {self.message} ({self.element})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RewriteNote):
            return NotImplemented
        return self.code == other.code and self.message == other.message and self.element == other.element

    def __hash__(self) -> int:
        return hash((self.code, self.message, self.element))


class RegistrationError:
    """Returned (not raised) when a filter is registered twice on one owner."""

    __slots__ = ("code", "message")

    code: str
    message: str

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"RegistrationError({self.code!r}, {self.message!r})"

    def __bool__(self) -> bool:
        return False
