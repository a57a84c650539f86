"""Exception types raised by document construction, embedding and decoding"""


class DastError(Exception):
    """Base class for every error raised by dastkit."""


class StructuralError(DastError, TypeError):
    """A container was given a child kind it does not permit."""

    def __init__(self, kind: str, parent: str, allowed: frozenset[str]):
        self.kind = kind
        self.parent = parent
        self.allowed = allowed
        permitted = ", ".join(sorted(allowed)) or "none"
        super().__init__(f"'{kind}' is not allowed inside '{parent}' (allowed: {permitted})")


class EmptyChildrenError(DastError):
    """A node that requires visible link text was built without children."""


class RangeError(DastError):
    """A bounded integer attribute (e.g. heading level) is out of range."""


class AmbiguousAttributeError(DastError):
    """Attributes of a new embedded entity collide with the reserved type key."""


class DecodeError(DastError, ValueError):
    """Wire data that cannot be mapped to any known node shape."""

    def __init__(self, message: str, path: tuple = ()):
        self.path = tuple(path)
        where = "/".join(str(p) for p in self.path) or "<document>"
        super().__init__(f"{message} at {where}")
