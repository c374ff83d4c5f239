"""
Schema definitions for Pods, JSON Patch operations and namespace lookups.

These dataclasses and protocols are what the admission engine consumes and
produces; they carry no behaviour beyond decoding and serialization.
"""

from ndots_webhook.core.schema.lookup import NamespaceLookup
from ndots_webhook.core.schema.patch import (
    OP_ADD,
    OP_REPLACE,
    PatchOperation,
    patch_to_json,
)
from ndots_webhook.core.schema.pod import DnsConfig, DnsOption, PodDescriptor

__all__ = [
    "DnsConfig",
    "DnsOption",
    "NamespaceLookup",
    "OP_ADD",
    "OP_REPLACE",
    "PatchOperation",
    "PodDescriptor",
    "patch_to_json",
]
