"""Tests for the admission review handler."""

import base64
import json

import pytest

from ndots_webhook.admission.annotation import AnnotationMode
from ndots_webhook.admission.engine import EngineConfig, MutationDecisionEngine
from ndots_webhook.admission.handler import AdmissionHandler
from ndots_webhook.core.errors import AdmissionRequestError


class RecordingMetrics:
    """Metrics sink that keeps every call for assertions."""

    def __init__(self):
        self.mutations = []
        self.errors = []
        self.durations = []

    def record_mutation(self, namespace, action):
        self.mutations.append((namespace, action))

    def record_error(self, error_type):
        self.errors.append(error_type)

    def observe_request_duration(self, seconds):
        self.durations.append(seconds)


class ExplodingEngine:
    """Engine stand-in whose decide() always fails."""

    def decide(self, pod, namespace_lookup=None):
        raise RuntimeError("boom")


def review_body(pod=None, kind="Pod", namespace="default", uid="test-uid"):
    request = {
        "uid": uid,
        "kind": {"group": "", "version": "v1", "kind": kind},
        "resource": {"group": "", "version": "v1", "resource": "pods"},
        "namespace": namespace,
        "operation": "CREATE",
        "object": pod if pod is not None else {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "web"}},
    }
    return json.dumps(
        {"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview", "request": request}
    ).encode()


def decode_patch(response):
    return json.loads(base64.b64decode(response["patch"]))


@pytest.fixture
def metrics():
    return RecordingMetrics()


@pytest.fixture
def handler(metrics):
    engine = MutationDecisionEngine(
        EngineConfig(ndots_value="2", annotation_mode=AnnotationMode.OPT_OUT),
        namespace_lookup=lambda namespace: None,
    )
    return AdmissionHandler(engine, metrics=metrics)


class TestEnvelopeErrors:
    """Tests for bodies that are not usable AdmissionReviews."""

    def test_empty_body(self, handler, metrics):
        """Test that an empty body is rejected as a read error."""
        with pytest.raises(AdmissionRequestError) as exc_info:
            handler.handle(b"")

        assert exc_info.value.message == "empty body"
        assert metrics.errors == ["read"]
        assert len(metrics.durations) == 1

    def test_invalid_json(self, handler, metrics):
        """Test that garbage is rejected as a decode error."""
        with pytest.raises(AdmissionRequestError, match="failed to decode admission review"):
            handler.handle(b'"invalid-json"')

        assert metrics.errors == ["decode"]

    def test_missing_request(self, handler, metrics):
        """Test that a review without a request is rejected."""
        body = json.dumps({"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview"}).encode()

        with pytest.raises(AdmissionRequestError, match="request is nil"):
            handler.handle(body)

        assert metrics.errors == ["decode"]


class TestHandle:
    """Tests for successful review handling."""

    def test_mutates_pod(self, handler, metrics):
        """Test that a plain Pod receives the dnsConfig patch."""
        review = handler.handle(review_body())
        response = review["response"]

        assert review["apiVersion"] == "admission.k8s.io/v1"
        assert review["kind"] == "AdmissionReview"
        assert response["uid"] == "test-uid"
        assert response["allowed"] is True
        assert response["patchType"] == "JSONPatch"
        assert decode_patch(response) == [
            {
                "op": "add",
                "path": "/spec/dnsConfig",
                "value": {"options": [{"name": "ndots", "value": "2"}]},
            }
        ]
        assert metrics.mutations == [("default", "mutated")]
        assert metrics.errors == []
        assert len(metrics.durations) == 1

    def test_skips_converged_pod(self, handler, metrics):
        """Test that a Pod already at the desired value is allowed untouched."""
        pod = {
            "metadata": {"name": "web"},
            "spec": {"dnsConfig": {"options": [{"name": "ndots", "value": "2"}]}},
        }

        response = handler.handle(review_body(pod))["response"]

        assert response == {"uid": "test-uid", "allowed": True}
        assert metrics.mutations == [("default", "skipped")]

    def test_non_pod_allowed(self, handler, metrics):
        """Test that other kinds pass through without a patch."""
        response = handler.handle(review_body(kind="Deployment"))["response"]

        assert response == {"uid": "test-uid", "allowed": True}
        assert metrics.mutations == []

    def test_request_namespace_used(self, metrics):
        """Test that the request namespace drives filtering."""
        engine = MutationDecisionEngine(
            EngineConfig(namespace_exclude=frozenset({"kube-system"})),
            namespace_lookup=lambda namespace: None,
        )
        handler = AdmissionHandler(engine, metrics=metrics)
        pod = {"metadata": {"name": "dns", "namespace": "default"}}

        response = handler.handle(review_body(pod, namespace="kube-system"))["response"]

        assert "patch" not in response
        assert metrics.mutations == [("kube-system", "skipped")]

    def test_undecodable_pod_denied(self, handler, metrics):
        """Test that a Pod object of the wrong shape is denied."""
        response = handler.handle(review_body(pod={"metadata": "broken"}))["response"]

        assert response["allowed"] is False
        assert response["status"]["message"].startswith("failed to decode pod")
        assert metrics.errors == ["decode"]

    def test_engine_failure_fails_open(self, metrics):
        """Test that an engine exception still allows the Pod."""
        handler = AdmissionHandler(ExplodingEngine(), metrics=metrics)

        response = handler.handle(review_body())["response"]

        assert response == {"uid": "test-uid", "allowed": True}
        assert metrics.errors == ["mutation"]

    def test_handler_lookup_passed_to_engine(self, metrics):
        """Test that the handler's namespace lookup reaches the engine."""
        engine = MutationDecisionEngine(EngineConfig(annotation_mode=AnnotationMode.OPT_IN))
        handler = AdmissionHandler(
            engine, metrics=metrics, namespace_lookup=lambda ns: {"change-ndots": "true"}
        )

        response = handler.handle(review_body())["response"]

        assert response["patchType"] == "JSONPatch"

    def test_without_metrics(self):
        """Test that metrics are optional."""
        engine = MutationDecisionEngine(EngineConfig(), namespace_lookup=lambda ns: None)

        response = AdmissionHandler(engine).handle(review_body())["response"]

        assert response["allowed"] is True
