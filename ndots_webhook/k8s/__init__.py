"""Kubernetes integration for ndots_webhook.

This package provides the cluster-facing pieces around the decision engine:
- KubernetesNamespaceLookup: namespace annotations from the API server
- apply_patch: JSON Patch application to Pod manifests (via jsonpatch)
- Manifest helpers: format-preserving YAML load/dump via ruamel.yaml
"""
