"""Annotation-driven mutation policy.

The decision combines three tiers, highest precedence first:

1. The Pod's own annotation
2. The annotation on the Pod's Namespace
3. The configured mode's default

Each annotation is classified into a TriState. Only a definite TRUE or FALSE
settles the decision; NEUTRAL (missing key or a value that is not a boolean
literal) defers to the next tier. ``always`` mode skips annotations entirely.
"""

from enum import Enum
from typing import Mapping, Optional


class AnnotationMode(Enum):
    """Process-wide default for Pods without a definite annotation."""

    ALWAYS = "always"
    OPT_IN = "opt-in"
    OPT_OUT = "opt-out"

    @classmethod
    def parse(cls, text: str) -> "AnnotationMode":
        """Parse a mode name case-insensitively.

        Args:
            text: "always", "opt-in" or "opt-out" in any case

        Returns:
            Matching AnnotationMode

        Raises:
            ValueError: If the text names no mode
        """
        normalized = text.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(f"Unknown annotation mode: {text!r}. Valid: {[m.value for m in cls]}")


class TriState(Enum):
    """Parsed outcome of one annotation lookup."""

    TRUE = "true"
    FALSE = "false"
    NEUTRAL = "neutral"


_TRUE_LITERALS = {"1", "t", "true"}
_FALSE_LITERALS = {"0", "f", "false"}


def parse_bool_literal(text: str) -> TriState:
    """Classify a string as a boolean literal.

    Accepts 1/t/true and 0/f/false in any case. Anything else, including
    surrounding whitespace, is NEUTRAL rather than an error.
    """
    lowered = text.lower()
    if lowered in _TRUE_LITERALS:
        return TriState.TRUE
    if lowered in _FALSE_LITERALS:
        return TriState.FALSE
    return TriState.NEUTRAL


class AnnotationPolicy:
    """Resolves Pod and Namespace annotations into a mutate/skip decision.

    Attributes:
        key: Annotation key consulted on both Pods and Namespaces
        mode: Default applied when neither annotation is definite
    """

    def __init__(self, key: str, mode: AnnotationMode):
        self.key = key
        self.mode = mode

    def classify(self, annotations: Optional[Mapping[str, str]]) -> TriState:
        """Classify the policy annotation in ``annotations``.

        Args:
            annotations: Annotation mapping, or None when absent

        Returns:
            TriState for the annotation value; NEUTRAL if missing
        """
        if not annotations or self.key not in annotations:
            return TriState.NEUTRAL
        return parse_bool_literal(annotations[self.key])

    def evaluate(
        self,
        pod_annotations: Optional[Mapping[str, str]],
        namespace_annotations: Optional[Mapping[str, str]],
    ) -> bool:
        """Decide whether the Pod should be mutated.

        Args:
            pod_annotations: Pod annotations, None when absent
            namespace_annotations: Namespace annotations, None when absent
                                   or the lookup failed

        Returns:
            True if the Pod should be mutated
        """
        if self.mode is AnnotationMode.ALWAYS:
            return True

        for annotations in (pod_annotations, namespace_annotations):
            result = self.classify(annotations)
            if result is TriState.TRUE:
                return True
            if result is TriState.FALSE:
                return False

        return self.mode is AnnotationMode.OPT_OUT
