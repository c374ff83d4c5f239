"""Admission policy: namespace filtering, annotation precedence, patch building.

The MutationDecisionEngine in this package is the only component with
decision logic. AdmissionHandler wraps it with the admission-review codec.
"""

from ndots_webhook.admission.annotation import (
    AnnotationMode,
    AnnotationPolicy,
    TriState,
    parse_bool_literal,
)
from ndots_webhook.admission.engine import EngineConfig, MutationDecisionEngine
from ndots_webhook.admission.namespace import NamespaceFilter
from ndots_webhook.admission.patch_builder import PatchBuilder, find_ndots_index

__all__ = [
    "AnnotationMode",
    "AnnotationPolicy",
    "EngineConfig",
    "MutationDecisionEngine",
    "NamespaceFilter",
    "PatchBuilder",
    "TriState",
    "find_ndots_index",
    "parse_bool_literal",
]
