import functools
import logging
import sys

from flask import Flask, request, jsonify, current_app

from models import (
    BaseModel,
    AdmissionReview,
    AdmissionResponse,
    AdmissionReviewStatus,
    EnvVar,
    Patch,
    PatchType,
    Pod,
    ReviewUid,
    StatusType,
)

from injector import EnvInjector, parse_env_pairs
from exc import (
    UNKNOWN_UID,
    ApplicationError,
    ConfigurationError,
    InjectionFailure,
    MalformedEnvelope,
    MalformedObject,
    MissingRequest,
    SerializationFailure,
)

LOG = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


class DEFAULTS:
    SENTINEL_NAME = "RAVEN_URLS"
    SENTINEL_VALUE = "foo"
    EXTRA_ENV = "FOO=Bar"
    INJECTOR = EnvInjector
    BIND_ADDRESS = "0.0.0.0"
    PORT = 8443


def jsonresponse(status=200):
    """Transforms the response from a view function into a JSON object."""

    def _outer(func):
        @functools.wraps(func)
        def _inner(*args, **kwargs):
            res = func(*args, **kwargs)
            if isinstance(res, BaseModel):
                return jsonify(res.model_dump(exclude_none=True)), status
            else:
                return jsonify(res), status

        return _inner

    return _outer


def recover_uid(data):
    """Find the request uid in a body that is not a valid AdmissionReview."""

    try:
        return ReviewUid.model_validate_json(data).request.uid
    except ValueError:
        return UNKNOWN_UID


@jsonresponse()
def mutate_pod():
    data = request.get_data()
    try:
        body = AdmissionReview.model_validate_json(data)
    except ValueError as err:
        raise MalformedEnvelope(
            f"invalid AdmissionReview: {err}", uid=recover_uid(data)
        )

    if body.request is None:
        raise MissingRequest("AdmissionReview does not contain a request")

    uid = body.request.uid
    LOG.info(
        "received admission review %s: %s %s/%s",
        uid,
        body.request.operation,
        body.request.namespace,
        body.request.name,
    )

    try:
        pod = body.request.object_as(Pod)
    except ValueError as err:
        raise MalformedObject(f"invalid pod: {err}", uid=uid)

    try:
        patches = current_app.injector.compute_patches(pod)
    except Exception as err:
        LOG.error("failed to compute patches: %s", err)
        raise InjectionFailure(f"failed to compute patches: {err}", uid=uid)

    # No patches means the pod is admitted unmodified
    if not patches:
        LOG.info("no patches needed for %s", uid)
        return AdmissionReview(response=AdmissionResponse(uid=uid, allowed=True))

    try:
        response = AdmissionResponse(
            uid=uid,
            allowed=True,
            patchType=PatchType.JSONPatch,
            patch=Patch(patches),
        )
    except ValueError as err:
        raise SerializationFailure(f"failed to serialize patch: {err}", uid=uid)

    LOG.info("generated %d patches for %s", len(patches), uid)
    return AdmissionReview(response=response)


@jsonresponse(status=500)
def handle_applicationerror(err):
    LOG.error("failed to process admission review %s: %s", err.uid, err)
    return AdmissionReview(
        response=AdmissionResponse(
            uid=err.uid,
            allowed=False,
            status=AdmissionReviewStatus(
                status=StatusType.FAILURE,
                message=f"Failed to process admission review: {err}",
                code=500,
            ),
        )
    )


def health():
    return "OK", 200, {"content-type": "text/plain"}


def create_injector(config):
    if not config.get("SENTINEL_NAME"):
        raise ConfigurationError("SENTINEL_NAME must not be empty")

    sentinel = EnvVar(name=config["SENTINEL_NAME"], value=config["SENTINEL_VALUE"])
    extra = parse_env_pairs(config.get("EXTRA_ENV") or "")
    return config["INJECTOR"](sentinel, extra)


def create_app(**config) -> Flask:
    """Use an application factory [1] to create the Flask app.

    This makes it much easier to write tests for the application, since we can
    set up the test environment before instantiating the app. This is difficult
    to do if the app is created at `import` time.

    [1]: https://flask.palletsprojects.com/en/3.0.x/patterns/appfactories/
    """

    app = Flask(__name__)
    app.config.from_object(DEFAULTS)
    # Keep environment values as text; RAVEN_SENTINEL_VALUE=true means "true".
    app.config.from_prefixed_env("RAVEN", loads=str)
    if config:
        app.config.update(config)

    try:
        app.injector = create_injector(app.config)
    except ConfigurationError as err:
        LOG.error("invalid configuration: %s", err)
        sys.exit(1)

    app.errorhandler(ApplicationError)(handle_applicationerror)
    app.add_url_rule("/health", view_func=health)
    app.add_url_rule("/healthz", endpoint="healthz", view_func=health)
    app.add_url_rule("/mutate", view_func=mutate_pod, methods=["POST"])

    return app


def main():
    app = create_app()

    ssl_context = None
    if app.config.get("TLS_CERT") and app.config.get("TLS_KEY"):
        ssl_context = (app.config["TLS_CERT"], app.config["TLS_KEY"])
    else:
        LOG.warning("TLS_CERT and TLS_KEY are not set; serving plain HTTP")

    app.run(
        host=app.config["BIND_ADDRESS"],
        port=int(app.config["PORT"]),
        ssl_context=ssl_context,
    )


if __name__ == "__main__":
    main()
