"""
ndots-admission-webhook: DNS ndots tuning for Kubernetes Pods.

A mutating admission webhook that decides, per Pod create/update review,
whether the Pod's resolver ``ndots`` option should be injected or corrected,
and emits the smallest JSON Patch that converges the Pod to the configured
value.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
