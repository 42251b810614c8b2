"""Field indexes over stored objects and the extractors that feed them."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from kcm.clusterdeployment import ClusterDeployment
from kcm.multiclusterservice import MultiClusterService
from kcm.release import Release
from kcm.templatechains import ClusterTemplateChain, ServiceTemplateChain
from kcm.templates import ClusterTemplate, ProviderTemplate

CLUSTER_DEPLOYMENT_TEMPLATE_INDEX_KEY = ".spec.template"
CLUSTER_DEPLOYMENT_SERVICE_TEMPLATES_INDEX_KEY = ".spec.services[].Template"
CLUSTER_DEPLOYMENT_CREDENTIAL_INDEX_KEY = ".spec.credential"
RELEASE_VERSION_INDEX_KEY = ".spec.version"
RELEASE_TEMPLATES_INDEX_KEY = "releaseTemplates"
TEMPLATE_CHAIN_SUPPORTED_TEMPLATES_INDEX_KEY = ".spec.supportedTemplates[].Name"
CLUSTER_TEMPLATE_PROVIDERS_INDEX_KEY = "clusterTemplateProviders"
MULTI_CLUSTER_SERVICE_TEMPLATES_INDEX_KEY = "serviceTemplates"
OWNER_REF_INDEX_KEY = ".metadata.ownerReferences"

Extractor = Callable[[Any], list[str]]


class FieldIndexer:
    """Registry of per-kind field extractors used to look objects up by field value."""

    def __init__(self) -> None:
        self._extractors: dict[str, dict[type, Extractor]] = {}

    def index_field(self, kind: type, field: str, extractor: Extractor) -> None:
        """Register ``extractor`` for ``field`` on objects of class ``kind``.

        Raises ValueError when the field is already indexed for that kind.
        """
        by_kind = self._extractors.setdefault(field, {})
        if kind in by_kind:
            raise ValueError(
                f"indexer conflict: field {field} is already indexed for {kind.__name__}"
            )
        by_kind[kind] = extractor

    def lookup(self, objects: Iterable[Any], field: str, value: str) -> list[Any]:
        """Return the objects whose indexed ``field`` holds ``value``.

        Objects of kinds without an index on ``field`` are skipped.
        Raises KeyError when no kind indexes ``field``.
        """
        by_kind = self._extractors.get(field)
        if not by_kind:
            raise KeyError(f"index with name field:{field} does not exist")
        result = []
        for obj in objects:
            extractor = by_kind.get(type(obj))
            if extractor is not None and value in extractor(obj):
                result.append(obj)
        return result


def extract_template_name_from_cluster_deployment(obj: Any) -> list[str]:
    """The ClusterTemplate a ClusterDeployment refers to."""
    if not isinstance(obj, ClusterDeployment):
        return []
    return [obj.spec.template]


def extract_service_template_names_from_cluster_deployment(obj: Any) -> list[str]:
    """The ServiceTemplates used by a ClusterDeployment's services."""
    if not isinstance(obj, ClusterDeployment):
        return []
    return [s.template for s in obj.spec.service_spec.services]


def extract_credential_name_from_cluster_deployment(obj: Any) -> list[str]:
    """The Credential a ClusterDeployment refers to."""
    if not isinstance(obj, ClusterDeployment):
        return []
    return [obj.spec.credential]


def extract_release_version(obj: Any) -> list[str]:
    """The version of a Release."""
    if not isinstance(obj, Release):
        return []
    return [obj.spec.version]


def extract_release_templates(obj: Any) -> list[str]:
    """Every template a Release names."""
    if not isinstance(obj, Release):
        return []
    return obj.templates()


def extract_supported_templates_names(obj: Any) -> list[str]:
    """Names of the templates a template chain supports."""
    if not isinstance(obj, (ClusterTemplateChain, ServiceTemplateChain)):
        return []
    return [t.name for t in obj.spec.supported_templates]


def extract_providers_from_cluster_template(obj: Any) -> list[str]:
    """The providers recorded in a ClusterTemplate's status."""
    if not isinstance(obj, ClusterTemplate):
        return []
    return list(obj.status.providers)


def extract_service_template_names_from_multi_cluster_service(obj: Any) -> list[str]:
    """The ServiceTemplates used by a MultiClusterService's services."""
    if not isinstance(obj, MultiClusterService):
        return []
    return [s.template for s in obj.spec.service_spec.services]


def extract_owner_references(obj: Any) -> list[str]:
    """Names of the owners of any object."""
    return [ref.name for ref in obj.metadata.owner_references]


_INDEXES: tuple[tuple[type, str, Extractor], ...] = (
    (ClusterDeployment, CLUSTER_DEPLOYMENT_TEMPLATE_INDEX_KEY,
     extract_template_name_from_cluster_deployment),
    (ClusterDeployment, CLUSTER_DEPLOYMENT_SERVICE_TEMPLATES_INDEX_KEY,
     extract_service_template_names_from_cluster_deployment),
    (ClusterDeployment, CLUSTER_DEPLOYMENT_CREDENTIAL_INDEX_KEY,
     extract_credential_name_from_cluster_deployment),
    (Release, RELEASE_VERSION_INDEX_KEY, extract_release_version),
    (Release, RELEASE_TEMPLATES_INDEX_KEY, extract_release_templates),
    (ClusterTemplateChain, TEMPLATE_CHAIN_SUPPORTED_TEMPLATES_INDEX_KEY,
     extract_supported_templates_names),
    (ServiceTemplateChain, TEMPLATE_CHAIN_SUPPORTED_TEMPLATES_INDEX_KEY,
     extract_supported_templates_names),
    (ClusterTemplate, CLUSTER_TEMPLATE_PROVIDERS_INDEX_KEY,
     extract_providers_from_cluster_template),
    (MultiClusterService, MULTI_CLUSTER_SERVICE_TEMPLATES_INDEX_KEY,
     extract_service_template_names_from_multi_cluster_service),
    (ProviderTemplate, OWNER_REF_INDEX_KEY, extract_owner_references),
)


def setup_indexers(indexer: FieldIndexer) -> None:
    """Register every index on ``indexer``.

    All registrations are attempted; failures are raised together as one ValueError.
    """
    errors = []
    for kind, field, extractor in _INDEXES:
        try:
            indexer.index_field(kind, field, extractor)
        except ValueError as exc:
            errors.append(str(exc))
    if errors:
        raise ValueError("\n".join(errors))