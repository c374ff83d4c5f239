"""Exception types raised by ndots_webhook."""

from typing import Any, Optional


class ConfigError(Exception):
    """Raised when process configuration fails validation.

    The message names the offending setting so the operator can fix the
    environment or config file without reading code.
    """


class PodDecodeError(Exception):
    """Raised when a Pod object cannot be decoded into a PodDescriptor.

    This covers objects whose shape does not match a Pod at all:
    - The object is not a JSON mapping
    - ``metadata``, ``spec`` or ``spec.dnsConfig`` is not a mapping
    - ``spec.dnsConfig.options`` is not a list
    """


class AdmissionRequestError(Exception):
    """Raised when an inbound admission review cannot be processed.

    The transport answers these with HTTP 400. The error type is the label
    recorded on the errors counter (``read`` or ``decode``).

    Attributes:
        message: Description of the failure
        error_type: Metrics label for the failure
    """

    def __init__(self, message: str, error_type: str = "decode") -> None:
        """Initialize AdmissionRequestError exception.

        Args:
            message: Error message returned to the API server
            error_type: Metrics label for the failure (default: "decode")
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type


class PatchApplyError(Exception):
    """Raised when a JSON Patch operation cannot be applied to a manifest.

    Attributes:
        message: Description of the failure
        patch_op: The PatchOperation that failed (optional)
    """

    def __init__(self, message: str, patch_op: Optional[Any] = None) -> None:
        """Initialize PatchApplyError exception.

        Args:
            message: Error message describing the failure
            patch_op: The PatchOperation that failed (optional)
        """
        super().__init__(message)
        self.patch_op = patch_op
