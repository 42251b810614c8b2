"""Reconciliation of AccessManagement rules against an object store."""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable

from kcm.access import ACCESS_MANAGEMENT_KIND, AccessManagement, TargetNamespaces
from kcm.clusterdeployment import KCM_MANAGED_LABEL_KEY, KCM_MANAGED_LABEL_VALUE
from kcm.credentials import CREDENTIAL_KIND, Credential, CredentialSpec
from kcm.meta import Namespace, ObjectMeta
from kcm.selectors import (
    Selector,
    SelectorError,
    parse_selector,
    selector_from_label_selector,
)
from kcm.templatechains import (
    CLUSTER_TEMPLATE_CHAIN_KIND,
    SERVICE_TEMPLATE_CHAIN_KIND,
    ClusterTemplateChain,
    ServiceTemplateChain,
)

NAMESPACE_KIND = "Namespace"

_log = logging.getLogger(__name__)

_CHAIN_CLASSES = {
    CLUSTER_TEMPLATE_CHAIN_KIND: ClusterTemplateChain,
    SERVICE_TEMPLATE_CHAIN_KIND: ServiceTemplateChain,
}


class NotFoundError(LookupError):
    """The requested object does not exist."""


class AlreadyExistsError(ValueError):
    """An object with the same kind, namespace and name already exists."""


class ReconcileError(RuntimeError):
    """Reconciliation finished with one or more errors."""

    def __init__(self, errors: list[str]):
        super().__init__("\n".join(errors))
        self.errors = errors


def _kind_of(obj: Any) -> str:
    if isinstance(obj, Namespace):
        return NAMESPACE_KIND
    return obj.kind


def _key(obj: Any) -> tuple[str, str, str]:
    return (_kind_of(obj), obj.metadata.namespace, obj.metadata.name)


def get_namespaced_name(namespace: str, name: str) -> str:
    """The ``namespace/name`` form of an object's key."""
    return f"{namespace}/{name}"


class ObjectStore:
    """An in-memory store of objects keyed by kind, namespace and name.

    Objects are copied on the way in and out, so callers never share state with it.
    """

    def __init__(self, objects: Iterable[Any] = ()) -> None:
        self._objects: dict[tuple[str, str, str], Any] = {}
        for obj in objects:
            self.create(obj)

    def create(self, obj: Any) -> None:
        """Store a copy of ``obj``; raise AlreadyExistsError when its key is taken."""
        key = _key(obj)
        if key in self._objects:
            raise AlreadyExistsError(
                f'{key[0]} "{get_namespaced_name(key[1], key[2])}" already exists'
            )
        stored = copy.deepcopy(obj)
        if stored.metadata.generation == 0:
            stored.metadata.generation = 1
        self._objects[key] = stored

    def get(self, kind: str, name: str, namespace: str = "") -> Any:
        """Return a copy of the object; raise NotFoundError when there is none."""
        try:
            return copy.deepcopy(self._objects[(kind, namespace, name)])
        except KeyError:
            raise NotFoundError(
                f'{kind} "{get_namespaced_name(namespace, name)}" not found'
            ) from None

    def list(self, kind: str) -> list[Any]:
        """Copies of every object of ``kind``, ordered by namespace and name."""
        return [
            copy.deepcopy(obj)
            for key, obj in sorted(self._objects.items(), key=lambda item: item[0])
            if key[0] == kind
        ]

    def delete(self, obj: Any) -> None:
        """Remove the object with the key of ``obj``; raise NotFoundError when absent."""
        key = _key(obj)
        if self._objects.pop(key, None) is None:
            raise NotFoundError(f'{key[0]} "{get_namespaced_name(key[1], key[2])}" not found')

    def update_status(self, obj: Any) -> None:
        """Replace the stored object's status with that of ``obj``."""
        key = _key(obj)
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(f'{key[0]} "{get_namespaced_name(key[1], key[2])}" not found')
        stored.status = copy.deepcopy(obj.status)


def _selector_for(target_namespaces: TargetNamespaces) -> Selector:
    if target_namespaces.string_selector:
        return parse_selector(target_namespaces.string_selector)
    if target_namespaces.selector is None:
        return Selector()
    try:
        return selector_from_label_selector(target_namespaces.selector)
    except SelectorError as exc:
        raise SelectorError(
            f"failed to construct selector from the namespaces selector "
            f"{target_namespaces.selector}: {exc}"
        ) from exc


def get_target_namespaces(store: ObjectStore, target_namespaces: TargetNamespaces) -> list[str]:
    """Names of the namespaces a rule targets: the explicit list, or those a selector picks.

    With nothing set every namespace is targeted. Raises SelectorError for a bad selector.
    """
    if target_namespaces.names:
        return list(target_namespaces.names)
    selector = _selector_for(target_namespaces)
    namespaces = store.list(NAMESPACE_KIND)
    if selector.empty():
        return [ns.name for ns in namespaces]
    return [ns.name for ns in namespaces if selector.matches(ns.labels)]


def _is_managed(obj: Any) -> bool:
    return obj.metadata.labels.get(KCM_MANAGED_LABEL_KEY) == KCM_MANAGED_LABEL_VALUE


def _managed_meta(name: str, namespace: str) -> ObjectMeta:
    return ObjectMeta(
        name=name,
        namespace=namespace,
        labels={KCM_MANAGED_LABEL_KEY: KCM_MANAGED_LABEL_VALUE},
    )


class AccessManagementReconciler:
    """Distributes template chains and credentials from the system namespace to others."""

    def __init__(self, store: ObjectStore, system_namespace: str) -> None:
        self.store = store
        self.system_namespace = system_namespace

    def reconcile(self, name: str) -> None:
        """Bring namespaces in line with the AccessManagement called ``name``.

        Status records the outcome. Raises ReconcileError listing every problem.
        """
        _log.info("Reconciling AccessManagement %s", name)
        try:
            access = self.store.get(ACCESS_MANAGEMENT_KIND, name)
        except NotFoundError:
            _log.info("AccessManagement not found, ignoring since object must be deleted")
            return

        errors: list[str] = []
        try:
            self._apply(access)
        except ReconcileError as exc:
            errors.extend(exc.errors)
        except SelectorError as exc:
            errors.append(str(exc))

        access.status.error = "\n".join(errors)
        access.status.observed_generation = access.metadata.generation
        try:
            self.store.update_status(access)
        except NotFoundError as exc:
            errors.append(f"failed to update status for AccessManagement {access.name}: {exc}")

        if errors:
            raise ReconcileError(errors)

    def _split(self, objects: list[Any]) -> tuple[dict[str, Any], list[Any]]:
        system: dict[str, Any] = {}
        managed: list[Any] = []
        for obj in objects:
            if obj.metadata.namespace == self.system_namespace:
                system[obj.metadata.name] = obj
            elif _is_managed(obj):
                managed.append(obj)
        return system, managed

    def _apply(self, access: AccessManagement) -> None:
        system_ct, managed_ct = self._split(self.store.list(CLUSTER_TEMPLATE_CHAIN_KIND))
        system_st, managed_st = self._split(self.store.list(SERVICE_TEMPLATE_CHAIN_KIND))
        system_creds, managed_creds = self._split(self.store.list(CREDENTIAL_KIND))

        keep: dict[str, set[str]] = {
            CLUSTER_TEMPLATE_CHAIN_KIND: set(),
            SERVICE_TEMPLATE_CHAIN_KIND: set(),
            CREDENTIAL_KIND: set(),
        }
        errors: list[str] = []

        for rule in access.spec.access_rules:
            for namespace in get_target_namespaces(self.store, rule.target_namespaces):
                for kind, names, system in (
                    (CLUSTER_TEMPLATE_CHAIN_KIND, rule.cluster_template_chains, system_ct),
                    (SERVICE_TEMPLATE_CHAIN_KIND, rule.service_template_chains, system_st),
                ):
                    for chain_name in names:
                        keep[kind].add(get_namespaced_name(namespace, chain_name))
                        source = system.get(chain_name)
                        if source is None:
                            errors.append(
                                f"{kind} {self.system_namespace}/{chain_name} is not found"
                            )
                            continue
                        self._create_template_chain(source, namespace)
                for credential_name in rule.credentials:
                    keep[CREDENTIAL_KIND].add(get_namespaced_name(namespace, credential_name))
                    source = system_creds.get(credential_name)
                    if source is None:
                        errors.append(
                            f"credential {self.system_namespace}/{credential_name} is not found"
                        )
                        continue
                    self._create_credential(namespace, credential_name, source.spec)

        for obj in [*managed_ct, *managed_st, *managed_creds]:
            namespaced_name = get_namespaced_name(obj.metadata.namespace, obj.metadata.name)
            if namespaced_name not in keep[obj.kind]:
                self._delete_managed_object(obj)

        if errors:
            raise ReconcileError(errors)

        access.status.current = copy.deepcopy(access.spec.access_rules)

    def _create_template_chain(self, source: Any, target_namespace: str) -> None:
        chain_class = _CHAIN_CLASSES[source.kind]
        target = chain_class(
            metadata=_managed_meta(source.metadata.name, target_namespace),
            spec=copy.deepcopy(source.spec),
        )
        try:
            self.store.create(target)
        except AlreadyExistsError:
            return
        _log.info(
            "%s was successfully created in %s from %s",
            source.kind, target_namespace, source.metadata.name,
        )

    def _create_credential(self, namespace: str, name: str, spec: CredentialSpec) -> None:
        target = Credential(metadata=_managed_meta(name, namespace), spec=copy.deepcopy(spec))
        try:
            self.store.create(target)
        except AlreadyExistsError:
            return
        _log.info("Credential was successfully created: %s", get_namespaced_name(namespace, name))

    def _delete_managed_object(self, obj: Any) -> None:
        try:
            self.store.delete(obj)
        except NotFoundError:
            return
        _log.info(
            "%s was successfully deleted: %s",
            obj.kind, get_namespaced_name(obj.metadata.namespace, obj.metadata.name),
        )