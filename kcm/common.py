"""Shared template, template chain and Helm chart reference types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kcm.contracts import is_capi_contract_single_version, is_capi_contract_version

SUCCEEDED_REASON = "Succeeded"
FAILED_REASON = "Failed"
PROGRESSING_REASON = "Progressing"

PROVIDER_AWS_NAME = "cluster-api-provider-aws"
PROVIDER_AZURE_NAME = "cluster-api-provider-azure"
PROVIDER_VSPHERE_NAME = "cluster-api-provider-vsphere"
PROVIDER_OPENSTACK_NAME = "cluster-api-provider-openstack"
PROVIDER_K0SMOTRON_NAME = "k0smotron"
PROVIDER_SVELTOS_NAME = "projectsveltos"

CLUSTER_TEMPLATE_KIND = "ClusterTemplate"
SERVICE_TEMPLATE_KIND = "ServiceTemplate"
PROVIDER_TEMPLATE_KIND = "ProviderTemplate"

CHART_ANNOTATION_PROVIDER_NAME = "cluster.x-k8s.io/provider"
CHART_ANNOTATION_CAPI_PREFIX = "cluster.x-k8s.io/"

DEFAULT_REPO_NAME = "kcm-templates"
HELM_REPOSITORY_KIND = "HelmRepository"

Providers = list[str]
CompatibilityContracts = dict[str, str]

_CLUSTER_CONTRACT_PREFIXES = ("bootstrap-", "control-plane-", "infrastructure-")


class ContractsError(ValueError):
    """One or more contract versions were invalid.

    ``contracts`` holds the entries that were valid; ``errors`` lists the problems.
    """

    def __init__(self, contracts: CompatibilityContracts, errors: list[str]):
        super().__init__("\n".join(errors))
        self.contracts = contracts
        self.errors = errors


@dataclass
class LocalHelmChartSourceReference:
    """A reference to a chart source in the same namespace."""

    kind: str = ""
    name: str = ""
    api_version: str = ""


DEFAULT_SOURCE_REF = LocalHelmChartSourceReference(kind=HELM_REPOSITORY_KIND, name=DEFAULT_REPO_NAME)


@dataclass
class HelmChartSpec:
    """The desired state of a Helm chart to be fetched."""

    chart: str = ""
    version: str = ""
    source_ref: LocalHelmChartSourceReference = field(
        default_factory=lambda: LocalHelmChartSourceReference(
            kind=DEFAULT_SOURCE_REF.kind, name=DEFAULT_SOURCE_REF.name
        )
    )
    interval: str = ""


@dataclass
class CrossNamespaceSourceReference:
    """A reference to a chart source that may live in another namespace."""

    kind: str = ""
    name: str = ""
    namespace: str = ""
    api_version: str = ""


@dataclass
class HelmSpec:
    """A Helm chart backing a template: either a chart spec or a chart reference."""

    chart_spec: HelmChartSpec | None = None
    chart_ref: CrossNamespaceSourceReference | None = None

    def __str__(self) -> str:
        if self.chart_ref is not None:
            ref = self.chart_ref
            if ref.namespace:
                return f"{ref.namespace}/{ref.name}, Kind={ref.kind}"
            return f"{ref.name}, Kind={ref.kind}"
        if self.chart_spec is None:
            return ""
        if self.chart_spec.version:
            return f"{self.chart_spec.chart}: {self.chart_spec.version}"
        return self.chart_spec.chart


@dataclass
class TemplateValidationStatus:
    """Outcome of template validation."""

    validation_error: str = ""
    valid: bool = False


@dataclass
class TemplateStatusCommon(TemplateValidationStatus):
    """Observed state shared by all template kinds."""

    config: Any = None
    chart_ref: CrossNamespaceSourceReference | None = None
    chart_version: str = ""
    description: str = ""
    observed_generation: int = 0


@dataclass
class AvailableUpgrade:
    """A template that an upgrade can go to."""

    name: str


@dataclass
class SupportedTemplate:
    """A supported template and the upgrades available from it."""

    name: str
    available_upgrades: list[AvailableUpgrade] = field(default_factory=list)


@dataclass
class TemplateChainSpec:
    """The templates a chain supports."""

    supported_templates: list[SupportedTemplate] = field(default_factory=list)


def get_providers_list(providers: Providers | None, annotations: dict[str, str] | None) -> Providers:
    """Return sorted unique providers from the spec, or else from the chart annotation."""
    if providers:
        return sorted(set(providers))

    raw = (annotations or {}).get(CHART_ANNOTATION_PROVIDER_NAME, "")
    if not raw:
        return []
    return sorted({item.strip() for item in raw.split(",") if item.strip()})


def get_capi_contracts(
    kind: str,
    contracts: CompatibilityContracts | None,
    annotations: dict[str, str] | None,
) -> CompatibilityContracts:
    """Collect contract versions from the spec, or else from chart annotations.

    Raises ContractsError listing every invalid entry; valid entries are kept on it.
    """
    result: CompatibilityContracts = {}
    errors: list[str] = []
    is_provider = kind == PROVIDER_TEMPLATE_KIND
    is_cluster = kind == CLUSTER_TEMPLATE_KIND

    if contracts:
        for key, provider_contract in contracts.items():
            if is_provider and not is_capi_contract_single_version(key):
                errors.append(f"incorrect CAPI contract version {key} in the spec")
                continue
            if is_provider and provider_contract and not is_capi_contract_version(provider_contract):
                errors.append(
                    f"incorrect provider contract version {provider_contract} "
                    f"in the spec for the {key} CAPI contract version"
                )
                continue
            if is_cluster and not is_capi_contract_single_version(provider_contract):
                errors.append(
                    f"incorrect provider contract version {provider_contract} "
                    f"in the spec for the {key} provider name"
                )
                continue
            result[key] = provider_contract
    else:
        for key, provider_contract in (annotations or {}).items():
            idx = key.find(CHART_ANNOTATION_CAPI_PREFIX)
            if idx < 0:
                continue
            name = key[idx + len(CHART_ANNOTATION_CAPI_PREFIX):]
            relevant = (is_provider and is_capi_contract_single_version(name)) or (
                is_cluster and name.startswith(_CLUSTER_CONTRACT_PREFIXES)
            )
            if not relevant:
                continue
            if is_provider and provider_contract == "":
                result[name] = ""
                continue
            if (is_provider and is_capi_contract_version(provider_contract)) or (
                is_cluster and is_capi_contract_single_version(provider_contract)
            ):
                result[name] = provider_contract
            else:
                errors.append(
                    f"incorrect provider contract version {provider_contract} given for the {key} annotation"
                )

    if errors:
        raise ContractsError(result, errors)
    return result