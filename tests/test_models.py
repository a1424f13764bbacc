import base64
import json

import pydantic
import pytest

from models import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionReview,
    Container,
    Patch,
    PatchOperation,
    Pod,
)


PATCH = Patch(
    [
        PatchOperation(
            op="add",
            path="/spec/containers/0/env",
            value=[{"name": "RAVEN_URLS", "value": "foo"}],
        )
    ]
)


def test_patch_is_base64_encoded():
    res = AdmissionResponse(uid="1234", allowed=True, patchType="JSONPatch", patch=PATCH)
    assert json.loads(base64.b64decode(res.patch)) == [
        {
            "op": "add",
            "path": "/spec/containers/0/env",
            "value": [{"name": "RAVEN_URLS", "value": "foo"}],
        }
    ]


def test_patch_requires_patch_type():
    with pytest.raises(pydantic.ValidationError):
        AdmissionResponse(uid="1234", allowed=True, patch=PATCH)


def test_patch_type_requires_patch():
    with pytest.raises(pydantic.ValidationError):
        AdmissionResponse(uid="1234", allowed=True, patchType="JSONPatch")


def test_invalid_encoded_patch():
    """A string patch must be base64 encoded JSON Patch data."""
    with pytest.raises(pydantic.ValidationError):
        AdmissionResponse(
            uid="1234",
            allowed=True,
            patchType="JSONPatch",
            patch=base64.b64encode(b'[{"op": "move"}]').decode(),
        )


def test_review_defaults():
    review = AdmissionReview(response=AdmissionResponse(uid="1234", allowed=True))
    assert review.model_dump(exclude_none=True) == {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "response": {"uid": "1234", "allowed": True},
    }


def test_object_as_pod():
    req = AdmissionRequest(
        uid="1234",
        object={
            "metadata": {"name": "test-pod"},
            "spec": {"containers": [{"name": "nginx", "env": None}]},
        },
    )
    pod = req.object_as(Pod)
    assert pod.metadata.name == "test-pod"
    assert pod.spec.containers[0].env == []
    assert pod.spec.initContainers == []


def test_object_as_without_object():
    with pytest.raises(ValueError):
        AdmissionRequest(uid="1234").object_as(Pod)


def test_unknown_request_fields_are_kept():
    req = AdmissionRequest.model_validate({"uid": "1234", "somethingNew": True})
    assert req.model_dump()["somethingNew"] is True


def test_has_env():
    container = Container(env=[{"name": "RAVEN_URLS", "value": "x"}])
    assert container.has_env("RAVEN_URLS")
    assert not container.has_env("FOO")
    assert not Container().has_env("RAVEN_URLS")
