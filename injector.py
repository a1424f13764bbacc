import logging

from models import Container, EnvVar, PatchOp, PatchOperation, Pod
from exc import ConfigurationError

LOG = logging.getLogger(__name__)

# Pod spec fields that hold containers, in the order they are patched.
CONTAINER_FIELDS = ("containers", "initContainers")


def parse_env_pairs(val: str) -> list[EnvVar]:
    """Parse a comma separated list of NAME=VALUE pairs into EnvVars."""

    env = []
    for pair in val.split(","):
        pair = pair.strip()
        if not pair:
            continue

        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"invalid environment variable: {pair!r}")

        env.append(EnvVar(name=name, value=value))

    return env


class EnvInjector:
    """Adds a sentinel environment variable to every container in a pod.

    A container that already has a variable named like the sentinel is left
    alone, so running the injector against a pod it has already mutated
    produces no patches. When a container has no environment at all, the
    env list is created with the sentinel followed by the extra variables.
    When the container already has environment variables, only the sentinel
    is appended.
    """

    def __init__(self, sentinel: EnvVar, extra: list[EnvVar] | None = None):
        self._sentinel = sentinel
        self._extra = tuple(extra or ())

    @property
    def sentinel(self) -> EnvVar:
        return self._sentinel

    @property
    def extra(self) -> tuple[EnvVar, ...]:
        return self._extra

    def container_patches(
        self, container: Container, path: str
    ) -> list[PatchOperation]:
        if container.has_env(self._sentinel.name):
            LOG.debug(
                "container %s already has %s", container.name, self._sentinel.name
            )
            return []

        # JSON Patch cannot append to an array that does not exist, so a
        # missing env list has to be added in a single operation.
        if not container.env:
            LOG.debug("creating env list for container %s", container.name)
            return [
                PatchOperation(
                    op=PatchOp.ADD,
                    path=path,
                    value=[
                        var.model_dump(exclude_none=True)
                        for var in (self._sentinel, *self._extra)
                    ],
                )
            ]

        LOG.debug("appending %s to container %s", self._sentinel.name, container.name)
        return [
            PatchOperation(
                op=PatchOp.ADD,
                path=f"{path}/-",
                value=self._sentinel.model_dump(exclude_none=True),
            )
        ]

    def compute_patches(self, pod: Pod) -> list[PatchOperation]:
        patches = []
        for field in CONTAINER_FIELDS:
            for index, container in enumerate(getattr(pod.spec, field)):
                patches.extend(
                    self.container_patches(container, f"/spec/{field}/{index}/env")
                )

        return patches
