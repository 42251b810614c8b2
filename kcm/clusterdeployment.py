"""ClusterDeployment: a cluster deployed from a ClusterTemplate."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable

import yaml

from kcm.common import PROGRESSING_REASON
from kcm.meta import CONDITION_UNKNOWN, Condition, ObjectMeta, set_status_condition
from kcm.multiclusterservice import ServiceSpec, ServiceStatus

BLOCKING_FINALIZER = "k0rdent.mirantis.com/cleanup"
CLUSTER_DEPLOYMENT_FINALIZER = "k0rdent.mirantis.com/cluster-deployment"

FLUX_HELM_CHART_NAME_KEY = "helm.toolkit.fluxcd.io/name"
FLUX_HELM_CHART_NAMESPACE_KEY = "helm.toolkit.fluxcd.io/namespace"

KCM_MANAGED_LABEL_KEY = "k0rdent.mirantis.com/managed"
KCM_MANAGED_LABEL_VALUE = "true"

CLUSTER_NAME_LABEL_KEY = "cluster.x-k8s.io/cluster-name"

CLUSTER_DEPLOYMENT_KIND = "ClusterDeployment"
TEMPLATE_READY_CONDITION = "TemplateReady"
HELM_CHART_READY_CONDITION = "HelmChartReady"
HELM_RELEASE_READY_CONDITION = "HelmReleaseReady"
READY_CONDITION = "Ready"


class HelmValuesError(ValueError):
    """The Helm values of a ClusterDeployment could not be read or written."""


@dataclass
class ClusterDeploymentSpec:
    """Desired state of a ClusterDeployment; ``config`` is raw YAML or JSON."""

    template: str = ""
    config: str | bytes | None = None
    credential: str = ""
    propagate_credentials: bool = True
    service_spec: ServiceSpec = field(default_factory=ServiceSpec)
    dry_run: bool = False


@dataclass
class ClusterDeploymentStatus:
    """Observed state of a ClusterDeployment."""

    services: list[ServiceStatus] = field(default_factory=list)
    kubernetes_version: str = ""
    conditions: list[Condition] = field(default_factory=list)
    available_upgrades: list[str] = field(default_factory=list)
    observed_generation: int = 0


@dataclass
class ClusterDeployment:
    """A request to deploy a cluster from a template."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ClusterDeploymentSpec = field(default_factory=ClusterDeploymentSpec)
    status: ClusterDeploymentStatus = field(default_factory=ClusterDeploymentStatus)

    @property
    def kind(self) -> str:
        return CLUSTER_DEPLOYMENT_KIND

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

    def helm_values(self) -> dict[str, Any] | None:
        """Parse the configuration into Helm values; None when there is none."""
        if self.spec.config is None:
            return None
        try:
            values = yaml.safe_load(self.spec.config)
        except yaml.YAMLError as exc:
            raise HelmValuesError(
                f"error unmarshalling helm values for clusterTemplate {self.spec.template}: {exc}"
            ) from exc
        if values is None:
            return None
        if not isinstance(values, dict):
            raise HelmValuesError(
                f"error unmarshalling helm values for clusterTemplate {self.spec.template}: "
                f"expected a mapping, got {type(values).__name__}"
            )
        return values

    def set_helm_values(self, values: dict[str, Any] | None) -> None:
        """Store ``values`` as the JSON configuration."""
        try:
            raw = json.dumps(values)
        except (TypeError, ValueError) as exc:
            raise HelmValuesError(
                f"error marshalling helm values for clusterTemplate {self.spec.template}: {exc}"
            ) from exc
        self.spec.config = raw

    def add_helm_values(self, fn: Callable[[dict[str, Any]], None]) -> None:
        """Let ``fn`` change the current values in place, then store them."""
        values = self.helm_values()
        if values is None:
            values = {}
        fn(values)
        self.set_helm_values(values)

    def init_conditions(self) -> None:
        """Set every condition to Unknown, the HelmRelease one only when not a dry run."""
        pending = [
            (TEMPLATE_READY_CONDITION, "Template is not yet ready"),
            (HELM_CHART_READY_CONDITION, "HelmChart is not yet ready"),
        ]
        if not self.spec.dry_run:
            pending.append((HELM_RELEASE_READY_CONDITION, "HelmRelease is not yet ready"))
        pending.append((READY_CONDITION, "ClusterDeployment is not yet ready"))

        for condition_type, message in pending:
            set_status_condition(
                self.status.conditions,
                Condition(
                    type=condition_type,
                    status=CONDITION_UNKNOWN,
                    reason=PROGRESSING_REASON,
                    message=message,
                ),
            )