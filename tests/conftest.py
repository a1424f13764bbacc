import pytest

import mutate
from injector import EnvInjector
from models import EnvVar


@pytest.fixture()
def injector():
    return EnvInjector(
        EnvVar(name="RAVEN_URLS", value="foo"), [EnvVar(name="FOO", value="Bar")]
    )


@pytest.fixture()
def app():
    app = mutate.create_app(TESTING=True)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admission_review():
    """Returns a function that wraps a pod in an AdmissionReview request."""

    def _admission_review(pod, uid="1234", **kwargs):
        return {
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "request": {
                "uid": uid,
                "kind": {"group": "", "version": "v1", "kind": "Pod"},
                "resource": {"group": "", "version": "v1", "resource": "pods"},
                "namespace": "default",
                "operation": "CREATE",
                "userInfo": {"username": "system:serviceaccount:default:deployer"},
                "object": pod,
                **kwargs,
            },
        }

    return _admission_review


@pytest.fixture()
def pod_with():
    """Returns a function that builds a pod from lists of containers."""

    def _pod_with(containers=None, init_containers=None):
        spec = {"containers": containers or []}
        if init_containers is not None:
            spec["initContainers"] = init_containers

        return {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": "test-pod", "namespace": "default"},
            "spec": spec,
        }

    return _pod_with
