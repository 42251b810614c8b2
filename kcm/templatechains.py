"""Cluster and service template chains."""

from __future__ import annotations

from dataclasses import dataclass, field

from kcm.common import CLUSTER_TEMPLATE_KIND, SERVICE_TEMPLATE_KIND, TemplateChainSpec
from kcm.meta import ObjectMeta

CLUSTER_TEMPLATE_CHAIN_KIND = "ClusterTemplateChain"
SERVICE_TEMPLATE_CHAIN_KIND = "ServiceTemplateChain"


@dataclass
class _TemplateChain:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: TemplateChainSpec = field(default_factory=TemplateChainSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels


@dataclass
class ClusterTemplateChain(_TemplateChain):
    """A set of ClusterTemplates and the upgrades between them."""

    @property
    def kind(self) -> str:
        return CLUSTER_TEMPLATE_CHAIN_KIND

    def template_kind(self) -> str:
        """The kind of template this chain refers to."""
        return CLUSTER_TEMPLATE_KIND


@dataclass
class ServiceTemplateChain(_TemplateChain):
    """A set of ServiceTemplates and the upgrades between them."""

    @property
    def kind(self) -> str:
        return SERVICE_TEMPLATE_CHAIN_KIND

    def template_kind(self) -> str:
        """The kind of template this chain refers to."""
        return SERVICE_TEMPLATE_KIND