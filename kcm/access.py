"""AccessManagement: rules distributing template chains and credentials to namespaces."""

from __future__ import annotations

from dataclasses import dataclass, field

from kcm.meta import LabelSelector, ObjectMeta

ACCESS_MANAGEMENT_KIND = "AccessManagement"
ACCESS_MANAGEMENT_NAME = "kcm"

_EXCLUSIVE_SELECTORS_MESSAGE = (
    "only one of spec.targetNamespaces.selector or spec.targetNamespaces.stringSelector "
    "or spec.targetNamespaces.list can be specified"
)


@dataclass
class TargetNamespaces:
    """Namespaces to distribute objects to: a string selector, a structured selector or a list.

    The three ways are mutually exclusive; when none is set, every namespace is selected.
    """

    string_selector: str = ""
    selector: LabelSelector | None = None
    names: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValueError when more than one way of selecting namespaces is set."""
        set_count = sum(
            (bool(self.string_selector), self.selector is not None, bool(self.names))
        )
        if set_count > 1:
            raise ValueError(_EXCLUSIVE_SELECTORS_MESSAGE)


@dataclass
class AccessRule:
    """Objects to distribute and the namespaces to distribute them to."""

    target_namespaces: TargetNamespaces = field(default_factory=TargetNamespaces)
    cluster_template_chains: list[str] = field(default_factory=list)
    service_template_chains: list[str] = field(default_factory=list)
    credentials: list[str] = field(default_factory=list)


@dataclass
class AccessManagementSpec:
    """Desired state of an AccessManagement."""

    access_rules: list[AccessRule] = field(default_factory=list)


@dataclass
class AccessManagementStatus:
    """Observed state of an AccessManagement."""

    error: str = ""
    current: list[AccessRule] = field(default_factory=list)
    observed_generation: int = 0


@dataclass
class AccessManagement:
    """The cluster-wide object that holds the access rules."""

    metadata: ObjectMeta = field(default_factory=lambda: ObjectMeta(name=ACCESS_MANAGEMENT_NAME))
    spec: AccessManagementSpec = field(default_factory=AccessManagementSpec)
    status: AccessManagementStatus = field(default_factory=AccessManagementStatus)

    @property
    def kind(self) -> str:
        return ACCESS_MANAGEMENT_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels