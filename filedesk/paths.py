"""Canonical path helpers shared by the server and the client core.

Every path that crosses the wire or is used as a cache key is in canonical
form: it starts with ``/``, the root is exactly ``/``, there is no trailing
slash and no empty segment.  Comparisons are plain string comparisons of
canonical forms, without case folding or symlink resolution.

Prefix checks are always segment-aware (``path + "/"``) so ``/a`` never
matches ``/ab``.
"""

ROOT = "/"


def segments(p: str | None) -> list[str]:
    """Return the non-empty segments of *p*."""
    return [seg for seg in (p or "").split("/") if seg]


def normalize(p: str | None) -> str:
    """Return the canonical form of *p*.

    >>> normalize("a/b/")
    '/a/b'
    >>> normalize("/a//b")
    '/a/b'
    >>> normalize("")
    '/'
    """
    parts = segments(p)
    if not parts:
        return ROOT
    return ROOT + "/".join(parts)


def parent(p: str | None) -> str | None:
    """Return the parent of *p*, or ``None`` for the root."""
    parts = segments(p)
    if not parts:
        return None
    return normalize("/".join(parts[:-1]))


def basename(p: str | None) -> str:
    """Return the last segment of *p* (``""`` for the root)."""
    parts = segments(p)
    return parts[-1] if parts else ""


def depth(p: str | None) -> int:
    return len(segments(p))


def join(folder: str | None, name: str) -> str:
    """Return the canonical path of *name* inside *folder*."""
    return normalize(normalize(folder) + "/" + name)


def is_descendant(ancestor: str | None, candidate: str | None) -> bool:
    """True iff *candidate* is *ancestor* itself or lives underneath it."""
    ancestor = normalize(ancestor)
    candidate = normalize(candidate)
    if ancestor == ROOT:
        return True
    return candidate == ancestor or candidate.startswith(ancestor + "/")


def ancestors(p: str | None) -> list[str]:
    """Return the proper ancestors of *p* below the root, outermost first.

    >>> ancestors("/a/b/c")
    ['/a', '/a/b']
    """
    parts = segments(p)
    return [ROOT + "/".join(parts[:i]) for i in range(1, len(parts))]


def rewrite(p: str, old: str, new: str) -> str:
    """Apply the rename ``old -> new`` to a single stored path *p*.

    * ``p == old``            → ``new``
    * ``p`` is under ``old``  → ``new`` + the remaining suffix
    * anything else           → unchanged
    """
    p = normalize(p)
    old = normalize(old)
    new = normalize(new)
    if p == old:
        return new
    if old != ROOT and p.startswith(old + "/"):
        return new + p[len(old):]
    return p
