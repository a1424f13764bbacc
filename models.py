import base64
from typing import Any, Literal, TypeVar
from pydantic import (
    BaseModel,
    ConfigDict,
    RootModel,
    model_validator,
    field_validator,
)
from enum import StrEnum

T = TypeVar("T", bound=BaseModel)


class ApiVersion(StrEnum):
    V1 = "admission.k8s.io/v1"


class Operation(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class PatchType(StrEnum):
    JSONPatch = "JSONPatch"


class PatchOp(StrEnum):
    ADD = "add"


class StatusType(StrEnum):
    SUCCESS = "Success"
    FAILURE = "Failure"


class PatchOperation(BaseModel):
    op: PatchOp
    path: str
    value: Any


# https://jsonpatch.com/
Patch = RootModel[list[PatchOperation]]


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#status-v1-meta
class AdmissionReviewStatus(BaseModel):
    status: StatusType | None = None
    message: str
    reason: str | None = None
    code: int | None = None


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionResponse
class AdmissionResponse(BaseModel):
    allowed: bool
    status: AdmissionReviewStatus | None = None
    uid: str
    patchType: PatchType | None = None
    patch: str | None = None
    auditAnnotations: dict[str, str] | None = None
    warnings: list[str] | None = None

    @field_validator("patch", mode="before")
    @classmethod
    def validate_patch(cls, val):
        if isinstance(val, Patch):
            val = base64.b64encode(val.model_dump_json().encode()).decode()
        elif isinstance(val, (str, bytes)):
            # Make sure the base64 string contains valid data.
            Patch.model_validate_json(base64.b64decode(val))
        return val

    @model_validator(mode="after")
    def validate_model(self):
        if self.patch and not self.patchType:
            raise ValueError("missing patchType field")
        if self.patchType and not self.patch:
            raise ValueError(f"patchType is {self.patchType} but there is no patch")

        return self


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionRequest
class AdmissionRequest(BaseModel):
    """The admission request.

    Only the uid is required. Fields the webhook does not act on are kept as
    raw JSON data, so an unexpected value in one of them does not cause the
    request to be rejected.
    """

    model_config = ConfigDict(extra="allow")

    uid: str
    kind: Any = None
    resource: Any = None
    subResource: Any = None
    requestKind: Any = None
    requestResource: Any = None
    requestSubResource: Any = None
    name: Any = None
    namespace: Any = None
    operation: str = Operation.CREATE
    userInfo: Any = None
    object: Any = None
    oldObject: Any = None
    dryRun: Any = None
    options: Any = None

    def object_as(self, model: type[T]) -> T:
        """Decode the embedded object into the given model.

        The object is kept as raw JSON data until a caller asks for a
        specific schema. Raises ValueError if there is no object, if it is not
        a JSON object, or if it does not validate against the model.
        """

        if self.object is None:
            raise ValueError("request does not contain an object")
        if not isinstance(self.object, dict):
            raise ValueError(
                f"object must be a JSON object, not {type(self.object).__name__}"
            )
        return model.model_validate(self.object)


class RequestUid(BaseModel):
    uid: str


class ReviewUid(BaseModel):
    """Just enough of an AdmissionReview to find the request uid."""

    request: RequestUid


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionReview
class AdmissionReview(BaseModel):
    apiVersion: Literal["admission.k8s.io/v1"] = ApiVersion.V1
    kind: Literal["AdmissionReview"] = "AdmissionReview"
    request: AdmissionRequest | None = None
    response: AdmissionResponse | None = None


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#envvar-v1-core
class EnvVar(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str | None = None
    valueFrom: dict[str, Any] | None = None


class Container(BaseModel):
    name: str | None = None
    image: str | None = None
    env: list[EnvVar] = []

    @field_validator("env", mode="before")
    @classmethod
    def validate_env(cls, val):
        # A null env list means the same thing as an empty one.
        if val is None:
            return []
        return val

    def has_env(self, name: str) -> bool:
        return any(var.name == name for var in self.env)


class PodSpec(BaseModel):
    containers: list[Container] = []
    initContainers: list[Container] = []

    @field_validator("containers", "initContainers", mode="before")
    @classmethod
    def validate_containers(cls, val):
        if val is None:
            return []
        return val


class Metadata(BaseModel):
    name: str | None = None
    generateName: str | None = None
    namespace: str | None = None
    labels: dict[str, str] = {}
    annotations: dict[str, str] = {}


class Pod(BaseModel):
    apiVersion: str | None = None
    kind: str | None = None
    metadata: Metadata = Metadata()
    spec: PodSpec = PodSpec()
