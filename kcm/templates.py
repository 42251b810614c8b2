"""Cluster, service and provider templates and how their status is filled."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from kcm.common import (
    CLUSTER_TEMPLATE_KIND,
    PROVIDER_TEMPLATE_KIND,
    SERVICE_TEMPLATE_KIND,
    CompatibilityContracts,
    ContractsError,
    HelmSpec,
    Providers,
    TemplateStatusCommon,
    get_capi_contracts,
    get_providers_list,
)
from kcm.meta import ObjectMeta

CHART_ANNOTATION_KUBERNETES_VERSION = "k0rdent.mirantis.com/k8s-version"
CHART_ANNOTATION_KUBERNETES_CONSTRAINT = "k0rdent.mirantis.com/k8s-version-constraint"

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_VERSION_RE = re.compile(
    rf"v?([0-9]+)(?:\.([0-9]+))?(?:\.([0-9]+))?(?:-({_IDENT}))?(?:\+({_IDENT}))?"
)

_PART = r"(?:[0-9]+|[xX*])"
_CV = rf"v?{_PART}(?:\.{_PART})?(?:\.{_PART})?(?:-{_IDENT})?(?:\+{_IDENT})?"
_OP = r"!=|>=|=>|<=|=<|~>|=|>|<|~|\^"
_SINGLE = rf"(?:(?:{_OP})\s*)?{_CV}"
_SINGLE_RE = re.compile(rf"(?:({_OP})\s*)?({_CV})")
_GROUP_RE = re.compile(rf"\s*{_SINGLE}(?:\s*,?\s*{_SINGLE})*\s*")
_HYPHEN_RE = re.compile(rf"({_CV})\s+-\s+({_CV})")

_OP_ALIASES = {"": "=", "=>": ">=", "=<": "<="}

Version = tuple[int, int, int, str, str]
Constraint = tuple[tuple[tuple[str, str], ...], ...]


class TemplateError(ValueError):
    """A template's status could not be filled from its spec or chart annotations."""


def parse_version(text: str) -> Version:
    """Parse a semantic version leniently.

    Accepts an optional ``v`` prefix and missing minor or patch parts.
    Returns ``(major, minor, patch, prerelease, metadata)``; raises ValueError.
    """
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid semantic version {text!r}")
    major, minor, patch, prerelease, metadata = match.groups()
    prerelease = prerelease or ""
    for ident in filter(None, prerelease.split(".")):
        if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            raise ValueError(f"version segment starts with 0 in {text!r}")
    return (int(major), int(minor or 0), int(patch or 0), prerelease, metadata or "")


def parse_constraint(text: str) -> Constraint:
    """Parse a version constraint such as ``>=1.18 <1.31 || ^2``.

    Returns the ``||`` alternatives, each a tuple of ``(operator, version)``
    pairs that must all hold; hyphen ranges become ``>=`` and ``<=`` pairs.
    Raises ValueError when the text is not a valid constraint.
    """
    groups = []
    for alternative in text.split("||"):
        expanded = _HYPHEN_RE.sub(r">=\1 <=\2", alternative)
        if not expanded.strip() or _GROUP_RE.fullmatch(expanded) is None:
            raise ValueError(f"improper constraint: {text}")
        groups.append(
            tuple(
                (_OP_ALIASES.get(op or "", op), version)
                for op, version in _SINGLE_RE.findall(expanded)
            )
        )
    return tuple(groups)


class _Named:
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


@dataclass
class ClusterTemplateSpec:
    """Desired state of a ClusterTemplate."""

    helm: HelmSpec = field(default_factory=HelmSpec)
    provider_contracts: CompatibilityContracts = field(default_factory=dict)
    kubernetes_version: str = ""
    providers: Providers = field(default_factory=list)


@dataclass
class ClusterTemplateStatus(TemplateStatusCommon):
    """Observed state of a ClusterTemplate."""

    provider_contracts: CompatibilityContracts = field(default_factory=dict)
    kubernetes_version: str = ""
    providers: Providers = field(default_factory=list)


@dataclass
class ClusterTemplate(_Named):
    """A template describing how to deploy a cluster."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ClusterTemplateSpec = field(default_factory=ClusterTemplateSpec)
    status: ClusterTemplateStatus = field(default_factory=ClusterTemplateStatus)

    @property
    def kind(self) -> str:
        return CLUSTER_TEMPLATE_KIND

    def fill_status_with_providers(self, annotations: dict[str, str] | None) -> None:
        """Fill providers, contracts and Kubernetes version from the spec or annotations."""
        annotations = annotations or {}
        self.status.providers = get_providers_list(self.spec.providers, annotations)

        try:
            contracts = get_capi_contracts(self.kind, self.spec.provider_contracts, annotations)
        except ContractsError as exc:
            raise TemplateError(
                f"failed to get CAPI contract versions for ClusterTemplate "
                f"{self.namespace}/{self.name}: {exc}"
            ) from exc
        self.status.provider_contracts = contracts

        kversion = self.spec.kubernetes_version or annotations.get(
            CHART_ANNOTATION_KUBERNETES_VERSION, ""
        )
        if not kversion:
            return

        try:
            parse_version(kversion)
        except ValueError as exc:
            raise TemplateError(
                f"failed to parse kubernetes version {kversion} for ClusterTemplate "
                f"{self.namespace}/{self.name}: {exc}"
            ) from exc
        self.status.kubernetes_version = kversion


@dataclass
class ServiceTemplateSpec:
    """Desired state of a ServiceTemplate."""

    helm: HelmSpec = field(default_factory=HelmSpec)
    kubernetes_constraint: str = ""
    providers: Providers = field(default_factory=list)


@dataclass
class ServiceTemplateStatus(TemplateStatusCommon):
    """Observed state of a ServiceTemplate."""

    kubernetes_constraint: str = ""
    providers: Providers = field(default_factory=list)


@dataclass
class ServiceTemplate(_Named):
    """A template describing a service to deploy onto clusters."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ServiceTemplateSpec = field(default_factory=ServiceTemplateSpec)
    status: ServiceTemplateStatus = field(default_factory=ServiceTemplateStatus)

    @property
    def kind(self) -> str:
        return SERVICE_TEMPLATE_KIND

    def fill_status_with_providers(self, annotations: dict[str, str] | None) -> None:
        """Fill providers and the Kubernetes constraint from the spec or annotations."""
        annotations = annotations or {}
        self.status.providers = get_providers_list(self.spec.providers, annotations)

        kconstraint = self.spec.kubernetes_constraint or annotations.get(
            CHART_ANNOTATION_KUBERNETES_CONSTRAINT, ""
        )
        if not kconstraint:
            return

        try:
            parse_constraint(kconstraint)
        except ValueError as exc:
            raise TemplateError(
                f"failed to parse kubernetes constraint {kconstraint} for ServiceTemplate "
                f"{self.namespace}/{self.name}: {exc}"
            ) from exc
        self.status.kubernetes_constraint = kconstraint


@dataclass
class ProviderTemplateSpec:
    """Desired state of a ProviderTemplate."""

    helm: HelmSpec = field(default_factory=HelmSpec)
    capi_contracts: CompatibilityContracts = field(default_factory=dict)
    providers: Providers = field(default_factory=list)


@dataclass
class ProviderTemplateStatus(TemplateStatusCommon):
    """Observed state of a ProviderTemplate."""

    capi_contracts: CompatibilityContracts = field(default_factory=dict)
    providers: Providers = field(default_factory=list)


@dataclass
class ProviderTemplate(_Named):
    """A template describing a cluster API provider installation."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ProviderTemplateSpec = field(default_factory=ProviderTemplateSpec)
    status: ProviderTemplateStatus = field(default_factory=ProviderTemplateStatus)

    @property
    def kind(self) -> str:
        return PROVIDER_TEMPLATE_KIND

    def fill_status_with_providers(self, annotations: dict[str, str] | None) -> None:
        """Fill exposed providers and CAPI contracts from the spec or annotations."""
        annotations = annotations or {}
        self.status.providers = get_providers_list(self.spec.providers, annotations)

        try:
            contracts = get_capi_contracts(self.kind, self.spec.capi_contracts, annotations)
        except ContractsError as exc:
            raise TemplateError(
                f"failed to get CAPI contract versions for ProviderTemplate {self.name}: {exc}"
            ) from exc
        self.status.capi_contracts = contracts