"""Namespace annotation lookup protocol."""

from typing import Mapping, Optional, Protocol


class NamespaceLookup(Protocol):
    """Callable returning the annotations of a namespace.

    A lookup is the engine's only collaborator that can block or fail. It is
    usually backed by a read against the cluster API, but any callable with
    this shape works, which keeps the engine testable with in-memory data.

    Example:
        def static_lookup(namespace: str) -> Optional[Mapping[str, str]]:
            return {"team-a": {"change-ndots": "false"}}.get(namespace)
    """

    def __call__(self, namespace: str) -> Optional[Mapping[str, str]]:
        """Return annotations for ``namespace``.

        Args:
            namespace: Namespace name

        Returns:
            Annotation mapping, or None when the namespace has none.

        Raises:
            Exception: Any transport failure. Callers degrade it to
                "no annotations".
        """
        ...
