"""JSON Patch application for Pod manifests.

Thin wrapper over ``jsonpatch`` that applies the webhook's operations to a
copy of a manifest and reports failures as PatchApplyError.
"""

import copy
from typing import Any, Sequence

import jsonpatch
from jsonpointer import JsonPointerException

from ndots_webhook.core.errors import PatchApplyError
from ndots_webhook.core.schema.patch import PatchOperation


def apply_patch(document: Any, ops: Sequence[PatchOperation]) -> Any:
    """Apply patch operations in order to a copy of ``document``.

    Args:
        document: Manifest as decoded from JSON or YAML
        ops: Operations to apply sequentially

    Returns:
        Patched copy of the document

    Raises:
        PatchApplyError: If an operation is invalid or its target location
                         does not exist

    Example:
        >>> pod = {"spec": {"containers": []}}
        >>> op = PatchOperation("add", "/spec/dnsConfig", {"options": []})
        >>> apply_patch(pod, [op])["spec"]["dnsConfig"]
        {'options': []}
    """
    result = copy.deepcopy(document)
    for op in ops:
        try:
            result = jsonpatch.apply_patch(result, [copy.deepcopy(op.to_json())], in_place=True)
        except (jsonpatch.JsonPatchException, JsonPointerException) as e:
            raise PatchApplyError(f"Failed to apply {op.op} at {op.path!r}: {e}", patch_op=op) from e
    return result
