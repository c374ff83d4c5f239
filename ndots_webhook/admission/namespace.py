"""Namespace include/exclude filtering."""

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


class NamespaceFilter:
    """Allow/deny decision over a namespace name.

    Exclusion always wins, even when the same name is also included. An
    empty include set means every namespace not excluded is allowed.
    """

    def __init__(self, include: Iterable[str] = (), exclude: Iterable[str] = ()):
        self.include = frozenset(include)
        self.exclude = frozenset(exclude)

    def decide(self, namespace: str) -> bool:
        """Return True if Pods in ``namespace`` may be mutated."""
        if namespace in self.exclude:
            logger.debug("namespace excluded", extra={"namespace": namespace})
            return False

        if self.include:
            allowed = namespace in self.include
            if not allowed:
                logger.debug("namespace not in include list", extra={"namespace": namespace})
            return allowed

        return True
