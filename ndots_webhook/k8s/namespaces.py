"""Namespace annotation lookup backed by the Kubernetes API."""

import logging
from typing import Dict, Optional

from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)


class KubernetesNamespaceLookup:
    """Reads namespace annotations with the official Kubernetes client.

    Every call is a fresh ``GET /api/v1/namespaces/{name}``; nothing is
    cached and nothing is retried. Errors (including 404) propagate to the
    engine, which treats them as "no annotations".

    Attributes:
        core_v1: CoreV1Api client
        timeout: Per-request timeout in seconds, None for the client default
    """

    def __init__(self, core_v1: client.CoreV1Api, timeout: Optional[float] = None):
        self.core_v1 = core_v1
        self.timeout = timeout

    def __call__(self, namespace: str) -> Optional[Dict[str, str]]:
        ns = self.core_v1.read_namespace(namespace, _request_timeout=self.timeout)
        metadata = ns.metadata
        if metadata is None or not metadata.annotations:
            return None
        return dict(metadata.annotations)


def build_namespace_lookup(timeout: Optional[float] = None) -> Optional[KubernetesNamespaceLookup]:
    """Create a lookup from in-cluster config, falling back to kubeconfig.

    Kubeconfig is read from ``KUBECONFIG`` or ``~/.kube/config``. When no
    configuration can be loaded the webhook still runs, just without
    namespace-level annotations.

    Args:
        timeout: Per-request timeout in seconds

    Returns:
        KubernetesNamespaceLookup, or None if no cluster config is available
    """
    try:
        kube_config.load_incluster_config()
    except ConfigException:
        try:
            kube_config.load_kube_config()
        except (ConfigException, OSError) as e:
            logger.warning(
                f"failed to create kubernetes client config, proceeding without namespace support: {e}"
            )
            return None

    return KubernetesNamespaceLookup(client.CoreV1Api(), timeout=timeout)
