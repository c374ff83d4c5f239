"""JSON Patch operations emitted by the webhook.

Operations follow RFC 6902 restricted to ``add`` and ``replace``, which is
all the webhook ever needs to converge a Pod's DNS options.

JSON Transport Format
---------------------

The admission response carries the patch list as a JSON array::

    [
      {
        "op": "add",
        "path": "/spec/dnsConfig",
        "value": {"options": [{"name": "ndots", "value": "2"}]}
      }
    ]

An empty list means "allow unmodified" and is never serialized into a
response; the response simply omits the patch.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

OP_ADD = "add"
OP_REPLACE = "replace"


@dataclass(frozen=True)
class PatchOperation:
    """Single JSON Patch operation.

    Attributes:
        op: Operation name, "add" or "replace"
        path: JSON-Pointer to the target location (e.g., "/spec/dnsConfig")
        value: JSON value to write at the target
    """

    op: str
    path: str
    value: Any

    def to_json(self) -> Dict[str, Any]:
        """Convert operation to its RFC 6902 dict form."""
        return {"op": self.op, "path": self.path, "value": self.value}


def patch_to_json(ops: Sequence[PatchOperation]) -> bytes:
    """Serialize a patch list to UTF-8 JSON bytes.

    Args:
        ops: Patch operations in application order

    Returns:
        JSON array bytes suitable for an admission response patch body
    """
    payload: List[Dict[str, Any]] = [op.to_json() for op in ops]
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")
