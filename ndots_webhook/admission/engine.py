"""Mutation decision engine.

Orchestrates the namespace filter, the annotation policy and the patch
builder for one Pod:

1. Namespace filter (deny short-circuits to no patch)
2. Namespace annotation lookup (failure degrades to "no annotations")
3. Annotation policy (False short-circuits to no patch)
4. Patch builder

The engine keeps no per-request state. Its only attributes are immutable
configuration and stateless collaborators, so one instance can serve
concurrent requests from any number of worker threads.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, List, Mapping, Optional

from ndots_webhook.admission.annotation import AnnotationMode, AnnotationPolicy
from ndots_webhook.admission.namespace import NamespaceFilter
from ndots_webhook.admission.patch_builder import PatchBuilder
from ndots_webhook.core.schema.lookup import NamespaceLookup
from ndots_webhook.core.schema.patch import PatchOperation
from ndots_webhook.core.schema.pod import PodDescriptor, pod_summary

if TYPE_CHECKING:
    from ndots_webhook.core.config import WebhookConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """Immutable policy configuration for one engine instance.

    Attributes:
        ndots_value: Desired ndots value as a decimal string
        annotation_key: Annotation consulted on Pods and Namespaces
        annotation_mode: Default when no annotation is definite
        namespace_include: If non-empty, only these namespaces are mutated
        namespace_exclude: Namespaces never mutated
    """

    ndots_value: str = "2"
    annotation_key: str = "change-ndots"
    annotation_mode: AnnotationMode = AnnotationMode.OPT_OUT
    namespace_include: FrozenSet[str] = field(default_factory=frozenset)
    namespace_exclude: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_webhook_config(cls, cfg: "WebhookConfig") -> "EngineConfig":
        """Derive engine policy from the process configuration.

        Args:
            cfg: Validated WebhookConfig

        Returns:
            EngineConfig with the ndots value rendered as a decimal string
        """
        return cls(
            ndots_value=str(cfg.ndots_value),
            annotation_key=cfg.annotation_key,
            annotation_mode=AnnotationMode.parse(cfg.annotation_mode),
            namespace_include=frozenset(cfg.namespace_include),
            namespace_exclude=frozenset(cfg.namespace_exclude),
        )


class MutationDecisionEngine:
    """Decides the JSON Patch, if any, for one Pod admission.

    Attributes:
        config: Policy configuration
        namespace_lookup: Default namespace annotation lookup (optional)
    """

    def __init__(
        self, config: EngineConfig, namespace_lookup: Optional[NamespaceLookup] = None
    ):
        self.config = config
        self.namespace_lookup = namespace_lookup
        self.namespace_filter = NamespaceFilter(
            include=config.namespace_include, exclude=config.namespace_exclude
        )
        self.annotation_policy = AnnotationPolicy(config.annotation_key, config.annotation_mode)
        self.patch_builder = PatchBuilder()

    def decide(
        self, pod: PodDescriptor, namespace_lookup: Optional[NamespaceLookup] = None
    ) -> List[PatchOperation]:
        """Return the patch operations for ``pod``.

        Args:
            pod: Pod being admitted
            namespace_lookup: Lookup for this call; overrides the one given
                              at construction

        Returns:
            List with zero or one PatchOperation. Empty means "allow
            unmodified".
        """
        if not self.namespace_filter.decide(pod.namespace):
            logger.debug("skipping mutation due to namespace filter", extra=pod_summary(pod))
            return []

        ns_annotations = self._namespace_annotations(
            pod.namespace, namespace_lookup or self.namespace_lookup
        )

        if not self.annotation_policy.evaluate(pod.annotations, ns_annotations):
            logger.debug("skipping mutation due to annotation", extra=pod_summary(pod))
            return []

        op = self.patch_builder.build(pod.dns_config, self.config.ndots_value)
        return [op] if op is not None else []

    def _namespace_annotations(
        self, namespace: str, lookup: Optional[NamespaceLookup]
    ) -> Optional[Mapping[str, str]]:
        if lookup is None:
            logger.warning("no namespace lookup configured, skipping namespace annotation check")
            return None

        try:
            return lookup(namespace)
        except Exception as e:
            logger.error(
                f"failed to get namespace: {e}",
                extra={"namespace": namespace},
            )
            return None
