"""Object metadata, status conditions and the API group version."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

LABEL_SELECTOR_OP_IN = "In"
LABEL_SELECTOR_OP_NOT_IN = "NotIn"
LABEL_SELECTOR_OP_EXISTS = "Exists"
LABEL_SELECTOR_OP_DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with its version."""

    group: str
    version: str

    @property
    def api_version(self) -> str:
        """The ``group/version`` string used in ``apiVersion`` fields."""
        return f"{self.group}/{self.version}" if self.group else self.version

    def with_kind(self, kind: str) -> tuple[str, str, str]:
        """Return the (group, version, kind) triple for ``kind``."""
        return (self.group, self.version, kind)

    def __str__(self) -> str:
        return self.api_version


GROUP_VERSION = GroupVersion(group="k0rdent.mirantis.com", version="v1alpha1")


@dataclass
class OwnerReference:
    """A reference from an object to the object that owns it."""

    kind: str = ""
    name: str = ""
    api_version: str = ""
    uid: str = ""
    controller: bool | None = None


@dataclass
class ObjectMeta:
    """Metadata carried by every stored object."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)
    generation: int = 0


@dataclass
class ObjectReference:
    """A loose reference to another object."""

    kind: str = ""
    name: str = ""
    namespace: str = ""
    api_version: str = ""


@dataclass
class Condition:
    """One aspect of an object's observed state."""

    type: str
    status: str = CONDITION_UNKNOWN
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


@dataclass
class LabelSelectorRequirement:
    """A single key/operator/values requirement of a label selector."""

    key: str
    operator: str
    values: list[str] = field(default_factory=list)


@dataclass
class LabelSelector:
    """A structured label query."""

    match_labels: dict[str, str] = field(default_factory=dict)
    match_expressions: list[LabelSelectorRequirement] = field(default_factory=list)


@dataclass
class Namespace:
    """A namespace object."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def find_status_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], condition: Condition) -> bool:
    """Add or update ``condition`` in ``conditions``; return whether anything changed.

    The transition time is only moved when the status changes.
    """
    existing = find_status_condition(conditions, condition.type)
    if existing is None:
        added = replace(condition)
        if added.last_transition_time is None:
            added.last_transition_time = _now()
        conditions.append(added)
        return True

    changed = False
    if existing.status != condition.status:
        existing.status = condition.status
        existing.last_transition_time = condition.last_transition_time or _now()
        changed = True
    for attr in ("reason", "message", "observed_generation"):
        new_value = getattr(condition, attr)
        if getattr(existing, attr) != new_value:
            setattr(existing, attr, new_value)
            changed = True
    return changed