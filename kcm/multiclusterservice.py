"""MultiClusterService: services deployed onto every cluster a selector matches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kcm.meta import Condition, LabelSelector, ObjectMeta

MULTI_CLUSTER_SERVICE_FINALIZER = "k0rdent.mirantis.com/multicluster-service"
MULTI_CLUSTER_SERVICE_KIND = "MultiClusterService"

SVELTOS_PROFILE_READY_CONDITION = "SveltosProfileReady"
SVELTOS_CLUSTER_PROFILE_READY_CONDITION = "SveltosClusterProfileReady"
SVELTOS_HELM_RELEASE_READY_CONDITION = "SveltosHelmReleaseReady"
FETCH_SERVICES_STATUS_SUCCESS_CONDITION = "FetchServicesStatusSuccess"

DEFAULT_SERVICE_PRIORITY = 100


@dataclass
class Service:
    """A service to deploy, backed by a ServiceTemplate.

    ``namespace`` falls back to ``name`` when left empty.
    """

    template: str
    name: str
    values: str = ""
    namespace: str = ""
    values_from: list[dict[str, Any]] = field(default_factory=list)
    disable: bool = False


@dataclass
class ServiceSpec:
    """How services are deployed and which resources their templates may read."""

    services: list[Service] = field(default_factory=list)
    template_resource_refs: list[dict[str, Any]] = field(default_factory=list)
    priority: int = DEFAULT_SERVICE_PRIORITY
    stop_on_conflict: bool = False
    reload: bool = False


@dataclass
class ServiceStatus:
    """State of the services on one cluster."""

    cluster_name: str
    cluster_namespace: str = ""
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class MultiClusterServiceSpec:
    """Desired state of a MultiClusterService."""

    cluster_selector: LabelSelector = field(default_factory=LabelSelector)
    service_spec: ServiceSpec = field(default_factory=ServiceSpec)


@dataclass
class MultiClusterServiceStatus:
    """Observed state of a MultiClusterService."""

    services: list[ServiceStatus] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    observed_generation: int = 0


@dataclass
class MultiClusterService:
    """A cluster-wide set of services targeting clusters by label."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: MultiClusterServiceSpec = field(default_factory=MultiClusterServiceSpec)
    status: MultiClusterServiceStatus = field(default_factory=MultiClusterServiceStatus)

    @property
    def kind(self) -> str:
        return MULTI_CLUSTER_SERVICE_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def conditions(self) -> list[Condition]:
        """The status conditions, as a live list."""
        return self.status.conditions