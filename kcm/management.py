"""Management: the core components and providers installed on the management cluster."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from kcm.common import (
    PROVIDER_AWS_NAME,
    PROVIDER_AZURE_NAME,
    PROVIDER_K0SMOTRON_NAME,
    PROVIDER_OPENSTACK_NAME,
    PROVIDER_SVELTOS_NAME,
    PROVIDER_VSPHERE_NAME,
    CompatibilityContracts,
    Providers,
)
from kcm.meta import ObjectMeta

CORE_KCM_NAME = "kcm"
CORE_CAPI_NAME = "capi"

MANAGEMENT_KIND = "Management"
MANAGEMENT_NAME = "kcm"
MANAGEMENT_FINALIZER = "k0rdent.mirantis.com/management"


@dataclass
class Component:
    """A management component: its template and raw YAML or JSON configuration."""

    config: str | bytes | None = None
    template: str = ""

    def helm_values(self) -> dict[str, Any] | None:
        """Parse the configuration into Helm values; None when there is none.

        Raises ValueError when the configuration is not a YAML or JSON mapping.
        """
        if self.config is None:
            return None
        try:
            values = yaml.safe_load(self.config)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid component config: {exc}") from exc
        if values is None:
            return None
        if not isinstance(values, dict):
            raise ValueError(f"component config must be a mapping, got {type(values).__name__}")
        return values


@dataclass
class Provider(Component):
    """A cluster API provider to install."""

    name: str = ""


@dataclass
class Core:
    """The mandatory core components."""

    kcm: Component = field(default_factory=Component)
    capi: Component = field(default_factory=Component)


@dataclass
class ManagementBackup:
    """Settings of the scheduled backup of management objects."""

    schedule: str = ""
    enabled: bool = False


@dataclass
class ManagementSpec:
    """Desired state of the Management."""

    release: str = ""
    core: Core | None = None
    providers: list[Provider] = field(default_factory=list)
    backup: ManagementBackup = field(default_factory=ManagementBackup)


@dataclass
class ComponentStatus:
    """Installation outcome of one component."""

    template: str = ""
    error: str = ""
    success: bool = False


@dataclass
class ManagementStatus:
    """Observed state of the Management."""

    capi_contracts: dict[str, CompatibilityContracts] = field(default_factory=dict)
    components: dict[str, ComponentStatus] = field(default_factory=dict)
    backup_name: str = ""
    release: str = ""
    available_providers: Providers = field(default_factory=list)
    observed_generation: int = 0


def get_default_providers() -> list[Provider]:
    """The providers installed when the Management lists none."""
    return [
        Provider(name=name)
        for name in (
            PROVIDER_K0SMOTRON_NAME,
            PROVIDER_AWS_NAME,
            PROVIDER_AZURE_NAME,
            PROVIDER_VSPHERE_NAME,
            PROVIDER_OPENSTACK_NAME,
            PROVIDER_SVELTOS_NAME,
        )
    ]


@dataclass
class Management:
    """The cluster-wide object describing what is installed."""

    metadata: ObjectMeta = field(default_factory=lambda: ObjectMeta(name=MANAGEMENT_NAME))
    spec: ManagementSpec = field(default_factory=ManagementSpec)
    status: ManagementStatus = field(default_factory=ManagementStatus)

    @property
    def kind(self) -> str:
        return MANAGEMENT_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def templates(self) -> list[str]:
        """Provider templates set explicitly: CAPI, then KCM, then each provider's."""
        result: list[str] = []
        core = self.spec.core
        if core is not None:
            result.extend(t for t in (core.capi.template, core.kcm.template) if t)
        result.extend(p.template for p in self.spec.providers if p.template)
        return result