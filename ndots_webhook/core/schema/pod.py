"""Pod descriptor built from an admission request's Pod object.

Only the parts of a Pod the webhook reasons about are kept: identity,
annotations and the DNS configuration state. The DNS state is three-valued
and the distinction matters for the patch that gets emitted:

- ``dns_config is None``: the Pod has no ``spec.dnsConfig`` at all
- ``dns_config.options is None``: dnsConfig exists but has no options list
- ``dns_config.options == (...)``: the ordered options as submitted
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ndots_webhook.core.errors import PodDecodeError


@dataclass(frozen=True)
class DnsOption:
    """One entry of ``spec.dnsConfig.options``.

    Attributes:
        name: Resolver option name (e.g., "ndots")
        value: Option value, None when the entry has no value
    """

    name: str
    value: Optional[str] = None


@dataclass(frozen=True)
class DnsConfig:
    """State of ``spec.dnsConfig``.

    Attributes:
        options: Ordered options, or None when the list is absent/null
    """

    options: Optional[Tuple[DnsOption, ...]] = None


@dataclass(frozen=True)
class PodDescriptor:
    """Per-request view of a Pod.

    Attributes:
        namespace: Namespace the Pod is being admitted into
        name: Pod name (may be empty for generateName Pods)
        annotations: Pod annotations, None when absent
        dns_config: DNS configuration state, None when absent
    """

    namespace: str
    name: str = ""
    annotations: Optional[Mapping[str, str]] = None
    dns_config: Optional[DnsConfig] = None

    @classmethod
    def from_manifest(cls, obj: Any, namespace: str = "") -> "PodDescriptor":
        """Decode a Pod object into a PodDescriptor.

        Args:
            obj: Pod object as decoded from JSON or YAML
            namespace: Namespace from the admission request. Takes precedence
                       over ``metadata.namespace`` when non-empty.

        Returns:
            PodDescriptor for the Pod

        Raises:
            PodDecodeError: If the object does not have the shape of a Pod
        """
        if not isinstance(obj, Mapping):
            raise PodDecodeError(f"expected a mapping, got {type(obj).__name__}")

        metadata = _mapping_field(obj, "metadata")
        spec = _mapping_field(obj, "spec")

        annotations = metadata.get("annotations")
        if annotations is not None:
            if not isinstance(annotations, Mapping):
                raise PodDecodeError("metadata.annotations must be a mapping")
            annotations = {str(k): str(v) for k, v in annotations.items()}

        return cls(
            namespace=namespace or str(metadata.get("namespace") or ""),
            name=str(metadata.get("name") or ""),
            annotations=annotations,
            dns_config=_decode_dns_config(spec.get("dnsConfig")),
        )


def _mapping_field(obj: Mapping, key: str) -> Mapping:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise PodDecodeError(f"{key} must be a mapping")
    return value


def _decode_dns_config(raw: Any) -> Optional[DnsConfig]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise PodDecodeError("spec.dnsConfig must be a mapping")

    raw_options = raw.get("options")
    if raw_options is None:
        return DnsConfig(options=None)
    if not isinstance(raw_options, list):
        raise PodDecodeError("spec.dnsConfig.options must be a list")

    options = []
    for entry in raw_options:
        # Placeholder keeps later entries at their document index
        if not isinstance(entry, Mapping):
            options.append(DnsOption(name=""))
            continue
        value = entry.get("value")
        options.append(
            DnsOption(
                name=str(entry.get("name") or ""),
                value=None if value is None else str(value),
            )
        )
    return DnsConfig(options=tuple(options))


def pod_summary(pod: PodDescriptor) -> Dict[str, str]:
    """Return the identifying fields of a Pod for log records."""
    return {"namespace": pod.namespace, "pod": pod.name}
