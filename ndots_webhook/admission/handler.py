"""Admission review codec and failure policy.

The handler turns a raw ``AdmissionReview`` body into a response review:

- Envelope problems (empty body, bad JSON, no request) raise
  AdmissionRequestError, which the transport answers with HTTP 400.
- Non-Pod resources are allowed untouched.
- A Pod object that cannot be decoded is denied with a status message.
- Anything that goes wrong while deciding or serializing the patch is
  fail-open: the Pod is allowed without a patch and the error is logged and
  counted.
"""

import base64
import logging
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ndots_webhook.admission.engine import MutationDecisionEngine
from ndots_webhook.core.errors import AdmissionRequestError, PodDecodeError
from ndots_webhook.core.schema.lookup import NamespaceLookup
from ndots_webhook.core.schema.patch import patch_to_json
from ndots_webhook.core.schema.pod import PodDescriptor
from ndots_webhook.metrics import MetricsSink

logger = logging.getLogger(__name__)

ADMISSION_API_VERSION = "admission.k8s.io/v1"
PATCH_TYPE_JSON = "JSONPatch"


class GroupVersionKind(BaseModel):
    """Kind of the object under review."""

    model_config = ConfigDict(extra="allow")

    group: str = ""
    version: str = ""
    kind: str = ""


class AdmissionRequest(BaseModel):
    """The ``request`` half of an AdmissionReview.

    Only the fields the webhook reads are declared; everything else the API
    server sends is accepted and ignored.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    uid: str = ""
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    namespace: str = ""
    name: str = ""
    operation: str = ""
    pod_object: Optional[Any] = Field(default=None, alias="object")


class AdmissionResponse(BaseModel):
    """The ``response`` half of an AdmissionReview."""

    model_config = ConfigDict(populate_by_name=True)

    uid: str = ""
    allowed: bool = True
    patch: Optional[str] = None
    patch_type: Optional[str] = Field(default=None, alias="patchType")
    status: Optional[Dict[str, Any]] = None


class AdmissionReview(BaseModel):
    """AdmissionReview envelope exchanged with the API server."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = "AdmissionReview"
    request: Optional[AdmissionRequest] = None
    response: Optional[AdmissionResponse] = None


class AdmissionHandler:
    """Runs the decision engine behind the admission-review codec.

    Attributes:
        engine: Decision engine for Pods
        metrics: Optional metrics sink; None disables recording
        namespace_lookup: Optional lookup passed to every decide() call
    """

    def __init__(
        self,
        engine: MutationDecisionEngine,
        metrics: Optional[MetricsSink] = None,
        namespace_lookup: Optional[NamespaceLookup] = None,
    ):
        self.engine = engine
        self.metrics = metrics
        self.namespace_lookup = namespace_lookup

    def handle(self, body: bytes) -> Dict[str, Any]:
        """Process one admission review body.

        Args:
            body: Raw request body

        Returns:
            Response AdmissionReview as a JSON-ready dict

        Raises:
            AdmissionRequestError: If the body is not a usable AdmissionReview
        """
        start = time.perf_counter()
        try:
            review = self._decode(body)
            response = self._mutate(review.request)
            response.uid = review.request.uid
            result = AdmissionReview(
                api_version=review.api_version or ADMISSION_API_VERSION,
                response=response,
            )
            return result.model_dump(by_alias=True, exclude_none=True)
        finally:
            if self.metrics is not None:
                self.metrics.observe_request_duration(time.perf_counter() - start)

    def _decode(self, body: bytes) -> AdmissionReview:
        if not body:
            self._record_error("read")
            raise AdmissionRequestError("empty body", error_type="read")

        try:
            review = AdmissionReview.model_validate_json(body)
        except ValidationError as e:
            logger.error(f"failed to decode admission review: {e.error_count()} error(s)")
            self._record_error("decode")
            raise AdmissionRequestError("failed to decode admission review") from e

        if review.request is None:
            logger.error("admission review request is nil")
            self._record_error("decode")
            raise AdmissionRequestError("admission review request is nil")

        return review

    def _mutate(self, request: AdmissionRequest) -> AdmissionResponse:
        if request.kind.kind != "Pod":
            return AdmissionResponse(allowed=True)

        try:
            pod = PodDescriptor.from_manifest(request.pod_object, namespace=request.namespace)
        except PodDecodeError as e:
            self._record_error("decode")
            return AdmissionResponse(
                allowed=False, status={"message": f"failed to decode pod: {e}"}
            )

        try:
            ops = self.engine.decide(pod, namespace_lookup=self.namespace_lookup)
        except Exception as e:
            logger.error(f"mutation failed: {e}", extra={"namespace": pod.namespace})
            self._record_error("mutation")
            return AdmissionResponse(allowed=True)

        log_fields = {"namespace": pod.namespace, "pod": pod.name}

        if not ops:
            logger.info("skipped mutation", extra={**log_fields, "reason": "no changes needed"})
            self._record_mutation(pod.namespace, "skipped")
            return AdmissionResponse(allowed=True)

        try:
            patch = base64.b64encode(patch_to_json(ops)).decode("ascii")
        except (TypeError, ValueError) as e:
            logger.error(f"failed to marshal patch: {e}")
            self._record_error("marshal")
            return AdmissionResponse(allowed=True)

        logger.info("mutated pod", extra=log_fields)
        self._record_mutation(pod.namespace, "mutated")
        return AdmissionResponse(allowed=True, patch=patch, patch_type=PATCH_TYPE_JSON)

    def _record_error(self, error_type: str) -> None:
        if self.metrics is not None:
            self.metrics.record_error(error_type)

    def _record_mutation(self, namespace: str, action: str) -> None:
        if self.metrics is not None:
            self.metrics.record_mutation(namespace, action)
