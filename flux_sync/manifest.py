"""Representation of the objects watched by the reconciler.

A `Kustomization` declares where to find a versioned configuration artifact and
how to apply it. The artifact itself is published by a source object such as a
`GitRepository`, which exposes the address of the artifact in its status.

Objects are parsed from kubernetes style documents:
```python
import yaml
from flux_sync import manifest

doc = yaml.safe_load(open("kustomization.yaml"))
ks = manifest.Kustomization.parse_doc(doc)
print(ks.spec.source_ref.name, ks.spec.interval)
```
"""

from dataclasses import dataclass, field
import datetime
import re
from typing import Any, ClassVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_encode
from mashumaro.config import BaseConfig

from .exceptions import InputException

__all__ = [
    "NamedResource",
    "ObjectMeta",
    "SourceReference",
    "KustomizationSpec",
    "Condition",
    "KustomizationStatus",
    "Kustomization",
    "SourceArtifact",
    "GitRepository",
    "parse_raw_obj",
    "parse_duration",
]


# Match a prefix of apiVersion to ensure we have the right type of object.
# We don't check specific versions for forward compatibility on upgrade.
KUSTOMIZE_DOMAIN = "kustomize."
SOURCE_DOMAIN = "source."
FLUX_DOMAIN_SUFFIX = "fluxcd.io"
KUSTOMIZE_KIND = "Kustomization"
GIT_REPOSITORY = "GitRepository"
DEFAULT_NAMESPACE = "default"
DEFAULT_INTERVAL = 300.0

READY_CONDITION = "Ready"
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

# Setting or changing this annotation requests an immediate sync
SYNC_AT_ANNOTATION = "kustomize.fluxcd.io/syncAt"

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> float:
    """Parse a Go style duration string (e.g. `1h30m`, `45s`) into seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if not text:
        raise InputException("Invalid empty duration")
    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise InputException(f"Invalid duration '{value}'")
    return total


def format_duration(seconds: float) -> str:
    """Format seconds as a compact Go style duration string."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    remaining = int(seconds)
    out = ""
    for unit, size in (("h", 3600), ("m", 60)):
        if remaining >= size:
            out += f"{remaining // size}{unit}"
            remaining %= size
    if remaining or not out:
        out += f"{remaining}s"
    return out


def _check_version(doc: dict[str, Any], prefix: str) -> None:
    """Assert that the resource belongs to the expected flux api group."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    group = api_version.split("/", 1)[0]
    if not group.startswith(prefix) or not group.endswith(FLUX_DOMAIN_SUFFIX):
        raise InputException(
            f"Invalid object expected '{prefix}*{FLUX_DOMAIN_SUFFIX}': {doc}"
        )


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ObjectMeta(BaseManifest):
    """Metadata common to all watched objects."""

    name: str
    """The name of the object."""

    namespace: str = DEFAULT_NAMESPACE
    """The namespace of the object."""

    generation: int = 1
    """Sequence number bumped on every spec change."""

    resource_version: int = field(
        metadata=field_options(alias="resourceVersion"), default=1
    )
    """Sequence number bumped on every write, used for optimistic concurrency."""

    annotations: dict[str, str] = field(default_factory=dict)
    """Annotations on the object."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ObjectMeta":
        """Parse the metadata of a kubernetes resource."""
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid object missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid object missing metadata.name: {doc}")
        return cls(
            name=name,
            namespace=metadata.get("namespace", DEFAULT_NAMESPACE),
            generation=int(metadata.get("generation", 1)),
            resource_version=int(metadata.get("resourceVersion", 1)),
            annotations={
                str(k): str(v) for k, v in (metadata.get("annotations") or {}).items()
            },
        )


@dataclass
class SourceReference(BaseManifest):
    """A reference to the source object that publishes the artifact."""

    name: str
    """The name of the source object."""

    kind: str = GIT_REPOSITORY
    """The kind of the source object."""


@dataclass
class KustomizationSpec(BaseManifest):
    """Desired state of a Kustomization."""

    source_ref: SourceReference = field(metadata=field_options(alias="sourceRef"))
    """The source of the artifact to build."""

    path: str = ""
    """Path to the directory inside the artifact containing a kustomization.yaml."""

    prune: str = ""
    """Label selector used to prune stale objects, empty disables pruning."""

    interval: float = field(
        default=DEFAULT_INTERVAL,
        metadata={"serialize": format_duration},
    )
    """Interval in seconds at which to re-sync."""


@dataclass
class Condition(BaseManifest):
    """State of one aspect of an object."""

    type: str
    """The type of the condition, e.g. Ready."""

    status: str
    """One of True, False or Unknown."""

    reason: str
    """Machine readable reason for the last transition."""

    message: str
    """Human readable details about the last transition."""

    last_transition_time: datetime.datetime | None = field(
        metadata=field_options(alias="lastTransitionTime"), default=None
    )
    """When the condition was last written."""


@dataclass
class KustomizationStatus(BaseManifest):
    """Observed state of a Kustomization."""

    conditions: list[Condition] = field(default_factory=list)
    """The latest observations of the Kustomization."""

    observed_generation: int = field(
        metadata=field_options(alias="observedGeneration"), default=0
    )
    """The generation of the spec last reconciled."""

    last_applied_revision: str | None = field(
        metadata=field_options(alias="lastAppliedRevision"), default=None
    )
    """The source revision last applied successfully."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "KustomizationStatus":
        """Parse a previously persisted status, ignoring timestamps."""
        conditions = [
            Condition(
                type=str(cond.get("type", "")),
                status=str(cond.get("status", CONDITION_UNKNOWN)),
                reason=str(cond.get("reason", "")),
                message=str(cond.get("message", "")),
            )
            for cond in doc.get("conditions") or ()
        ]
        return cls(
            conditions=conditions,
            observed_generation=int(doc.get("observedGeneration", 0)),
            last_applied_revision=doc.get("lastAppliedRevision"),
        )

    @property
    def ready_condition(self) -> Condition | None:
        """Return the Ready condition if present."""
        for condition in self.conditions:
            if condition.type == READY_CONDITION:
                return condition
        return None

    def set_condition(self, condition: Condition) -> None:
        """Replace any existing condition of the same type."""
        self.conditions = [
            c for c in self.conditions if c.type != condition.type
        ] + [condition]


@dataclass
class Kustomization(BaseManifest):
    """A flux Kustomization, the desired state for a sync."""

    kind: ClassVar[str] = KUSTOMIZE_KIND
    """The kind of the object."""

    metadata: ObjectMeta
    """Object metadata."""

    spec: KustomizationSpec
    """Desired state."""

    status: KustomizationStatus = field(default_factory=KustomizationStatus)
    """Observed state."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Kustomization":
        """Parse a Kustomization from a kubernetes resource."""
        _check_version(doc, KUSTOMIZE_DOMAIN)
        metadata = ObjectMeta.parse_doc(doc)
        if not (spec := doc.get("spec")):
            raise InputException(f"Invalid {cls.__name__} missing spec: {doc}")
        source_ref = spec.get("sourceRef") or {}
        if not (source_name := source_ref.get("name")):
            raise InputException(
                f"Invalid {cls.__name__} missing spec.sourceRef.name: {doc}"
            )
        interval = parse_duration(spec.get("interval", DEFAULT_INTERVAL))
        if interval <= 0:
            raise InputException(
                f"Invalid {cls.__name__} spec.interval must be positive: {doc}"
            )
        return cls(
            metadata=metadata,
            spec=KustomizationSpec(
                source_ref=SourceReference(
                    name=source_name, kind=source_ref.get("kind", GIT_REPOSITORY)
                ),
                path=spec.get("path") or "",
                prune=spec.get("prune") or "",
                interval=interval,
            ),
            status=KustomizationStatus.parse_doc(doc.get("status") or {}),
        )

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def namespaced_name(self) -> str:
        """Return the namespace and name concatenated as an id."""
        return f"{self.namespace}/{self.name}"

    @property
    def resource_id(self) -> NamedResource:
        return NamedResource(self.kind, self.namespace, self.name)

    @property
    def source_id(self) -> NamedResource:
        """Identity of the source object, always in the Kustomization namespace."""
        return NamedResource(
            self.spec.source_ref.kind, self.namespace, self.spec.source_ref.name
        )

    def ready_message(self) -> str:
        """Return the message of the Ready condition."""
        if (condition := self.status.ready_condition) is None:
            return "unknown"
        return condition.message


@dataclass
class SourceArtifact(BaseManifest):
    """An addressable, versioned bundle published by a source object."""

    url: str
    """Address the bundle is downloaded from."""

    revision: str = ""
    """Source revision, e.g. `main/<sha>`."""

    checksum: str = ""
    """Checksum of the bundle."""

    last_update_time: str | None = field(
        metadata=field_options(alias="lastUpdateTime"), default=None
    )
    """When the artifact was last produced."""


@dataclass
class GitRepository(BaseManifest):
    """A source object whose status exposes the latest artifact."""

    kind: ClassVar[str] = GIT_REPOSITORY
    """The kind of the object."""

    metadata: ObjectMeta
    """Object metadata."""

    url: str = ""
    """The URL of the repository, for informational purposes."""

    artifact: SourceArtifact | None = None
    """The artifact from status.artifact, if the source is ready."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "GitRepository":
        """Parse a GitRepository from a kubernetes resource."""
        _check_version(doc, SOURCE_DOMAIN)
        metadata = ObjectMeta.parse_doc(doc)
        spec = doc.get("spec") or {}
        artifact: SourceArtifact | None = None
        if artifact_doc := (doc.get("status") or {}).get("artifact"):
            artifact = SourceArtifact(
                url=artifact_doc.get("url") or "",
                revision=str(artifact_doc.get("revision") or ""),
                checksum=str(artifact_doc.get("checksum") or ""),
                last_update_time=(
                    str(t) if (t := artifact_doc.get("lastUpdateTime")) else None
                ),
            )
        return cls(metadata=metadata, url=spec.get("url") or "", artifact=artifact)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def resource_id(self) -> NamedResource:
        return NamedResource(self.kind, self.namespace, self.name)


def parse_raw_obj(obj: dict[str, Any]) -> Kustomization | GitRepository:
    """Parse a raw kubernetes object into a watched manifest type."""
    kind = obj.get("kind")
    if kind == KUSTOMIZE_KIND:
        return Kustomization.parse_doc(obj)
    if kind == GIT_REPOSITORY:
        return GitRepository.parse_doc(obj)
    raise InputException(f"Unsupported object kind '{kind}'")
