import pytest

from kcm.access import (
    ACCESS_MANAGEMENT_KIND,
    AccessManagement,
    AccessManagementSpec,
    AccessRule,
    TargetNamespaces,
)
from kcm.accessmanagement_controller import (
    AccessManagementReconciler,
    AlreadyExistsError,
    NotFoundError,
    ObjectStore,
    ReconcileError,
    get_namespaced_name,
    get_target_namespaces,
)
from kcm.clusterdeployment import KCM_MANAGED_LABEL_KEY, KCM_MANAGED_LABEL_VALUE
from kcm.common import AvailableUpgrade, SupportedTemplate, TemplateChainSpec
from kcm.credentials import CREDENTIAL_KIND, Credential, CredentialSpec
from kcm.meta import LabelSelector, LabelSelectorRequirement, Namespace, ObjectMeta, ObjectReference
from kcm.selectors import SelectorError
from kcm.templatechains import (
    CLUSTER_TEMPLATE_CHAIN_KIND,
    SERVICE_TEMPLATE_CHAIN_KIND,
    ClusterTemplateChain,
    ServiceTemplateChain,
)

AM_NAME = "kcm-am"
CT_CHAIN = "kcm-ct-chain"
ST_CHAIN = "kcm-st-chain"
CRED = "test-cred"
CT_CHAIN_TO_DELETE = "kcm-ct-chain-to-delete"
ST_CHAIN_TO_DELETE = "kcm-st-chain-to-delete"
CRED_TO_DELETE = "test-cred-to-delete"
NS1, NS2, NS3 = "namespace1", "namespace2", "namespace3"
CT_CHAIN_UNMANAGED = "ct-chain-unmanaged"
ST_CHAIN_UNMANAGED = "st-chain-unmanaged"
CRED_UNMANAGED = "test-cred-unmanaged"
SYSTEM_NS = "kcm"

MANAGED = {KCM_MANAGED_LABEL_KEY: KCM_MANAGED_LABEL_VALUE}


def _meta(name, namespace="", managed=False, labels=None):
    all_labels = dict(labels or {})
    if managed:
        all_labels.update(MANAGED)
    return ObjectMeta(name=name, namespace=namespace, labels=all_labels)


def _chain_spec():
    return TemplateChainSpec(
        supported_templates=[
            SupportedTemplate(name="t-1", available_upgrades=[AvailableUpgrade(name="t-2")]),
            SupportedTemplate(name="t-2"),
        ]
    )


def _cred_spec():
    return CredentialSpec(identity_ref=ObjectReference(kind="AWSClusterStaticIdentity", name="awsclid"))


def _access_rules():
    return [
        AccessRule(
            target_namespaces=TargetNamespaces(
                selector=LabelSelector(
                    match_expressions=[
                        LabelSelectorRequirement(
                            key="environment", operator="In", values=["prod", "dev"]
                        )
                    ]
                )
            ),
            cluster_template_chains=[CT_CHAIN],
            credentials=[CRED],
        ),
        AccessRule(
            target_namespaces=TargetNamespaces(string_selector="environment=dev"),
            cluster_template_chains=[CT_CHAIN],
            service_template_chains=[ST_CHAIN],
            credentials=[CRED],
        ),
        AccessRule(
            target_namespaces=TargetNamespaces(names=[NS3]),
            service_template_chains=[ST_CHAIN],
        ),
    ]


@pytest.fixture
def store():
    return ObjectStore(
        [
            Namespace(metadata=_meta(SYSTEM_NS)),
            Namespace(metadata=_meta(NS1, labels={"environment": "dev", "test": "test"})),
            Namespace(metadata=_meta(NS2, labels={"environment": "prod"})),
            Namespace(metadata=_meta(NS3)),
            AccessManagement(
                metadata=_meta(AM_NAME), spec=AccessManagementSpec(access_rules=_access_rules())
            ),
            ClusterTemplateChain(metadata=_meta(CT_CHAIN, SYSTEM_NS, managed=True), spec=_chain_spec()),
            ServiceTemplateChain(metadata=_meta(ST_CHAIN, SYSTEM_NS, managed=True), spec=_chain_spec()),
            ClusterTemplateChain(metadata=_meta(CT_CHAIN_TO_DELETE, NS2, managed=True)),
            ServiceTemplateChain(metadata=_meta(ST_CHAIN_TO_DELETE, NS3, managed=True)),
            ClusterTemplateChain(metadata=_meta(CT_CHAIN_UNMANAGED, NS1)),
            ServiceTemplateChain(metadata=_meta(ST_CHAIN_UNMANAGED, NS2)),
            Credential(metadata=_meta(CRED, SYSTEM_NS, managed=True), spec=_cred_spec()),
            Credential(metadata=_meta(CRED_TO_DELETE, NS3, managed=True), spec=_cred_spec()),
            Credential(metadata=_meta(CRED_UNMANAGED, NS2), spec=_cred_spec()),
        ]
    )


def _assert_created(store, kind, name, namespace):
    source = store.get(kind, name, SYSTEM_NS)
    created = store.get(kind, name, namespace)
    assert created.metadata.labels == MANAGED
    assert created.spec == source.spec


def test_reconcile_distributes_and_cleans_up(store):
    ct_unmanaged_before = store.get(CLUSTER_TEMPLATE_CHAIN_KIND, CT_CHAIN_UNMANAGED, NS1)
    st_unmanaged_before = store.get(SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN_UNMANAGED, NS2)
    cred_unmanaged_before = store.get(CREDENTIAL_KIND, CRED_UNMANAGED, NS2)

    reconciler = AccessManagementReconciler(store, SYSTEM_NS)
    assert reconciler.reconcile(AM_NAME) is None

    _assert_created(store, CLUSTER_TEMPLATE_CHAIN_KIND, CT_CHAIN, NS1)
    _assert_created(store, SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN, NS1)
    _assert_created(store, CLUSTER_TEMPLATE_CHAIN_KIND, CT_CHAIN, NS2)
    _assert_created(store, SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN, NS3)
    _assert_created(store, CREDENTIAL_KIND, CRED, NS1)
    _assert_created(store, CREDENTIAL_KIND, CRED, NS2)

    assert store.get(CLUSTER_TEMPLATE_CHAIN_KIND, CT_CHAIN_UNMANAGED, NS1) == ct_unmanaged_before
    assert store.get(SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN_UNMANAGED, NS2) == st_unmanaged_before
    assert store.get(CREDENTIAL_KIND, CRED_UNMANAGED, NS2) == cred_unmanaged_before

    with pytest.raises(NotFoundError):
        store.get(CLUSTER_TEMPLATE_CHAIN_KIND, CT_CHAIN_TO_DELETE, NS2)
    with pytest.raises(NotFoundError):
        store.get(SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN_TO_DELETE, NS3)
    with pytest.raises(NotFoundError):
        store.get(CREDENTIAL_KIND, CRED_TO_DELETE, NS3)

    with pytest.raises(NotFoundError):
        store.get(SERVICE_TEMPLATE_CHAIN_KIND, ST_CHAIN, NS2)
    with pytest.raises(NotFoundError):
        store.get(CREDENTIAL_KIND, CRED, NS3)


def test_reconcile_records_status(store):
    AccessManagementReconciler(store, SYSTEM_NS).reconcile(AM_NAME)
    access = store.get(ACCESS_MANAGEMENT_KIND, AM_NAME)
    assert access.status.error == ""
    assert access.status.current == _access_rules()
    assert access.status.observed_generation == access.metadata.generation


def test_reconcile_is_idempotent(store):
    reconciler = AccessManagementReconciler(store, SYSTEM_NS)
    reconciler.reconcile(AM_NAME)
    first = store.list(CLUSTER_TEMPLATE_CHAIN_KIND)
    reconciler.reconcile(AM_NAME)
    assert store.list(CLUSTER_TEMPLATE_CHAIN_KIND) == first


def test_reconcile_missing_object_is_ignored(store):
    before = store.list(CLUSTER_TEMPLATE_CHAIN_KIND)
    assert AccessManagementReconciler(store, SYSTEM_NS).reconcile("absent") is None
    assert store.list(CLUSTER_TEMPLATE_CHAIN_KIND) == before


def test_reconcile_reports_missing_sources():
    store = ObjectStore(
        [
            Namespace(metadata=_meta(SYSTEM_NS)),
            Namespace(metadata=_meta(NS1)),
            AccessManagement(
                metadata=_meta(AM_NAME),
                spec=AccessManagementSpec(
                    access_rules=[
                        AccessRule(
                            target_namespaces=TargetNamespaces(names=[NS1]),
                            cluster_template_chains=["nope"],
                            credentials=["missing"],
                        )
                    ]
                ),
            ),
        ]
    )
    with pytest.raises(ReconcileError) as excinfo:
        AccessManagementReconciler(store, SYSTEM_NS).reconcile(AM_NAME)
    assert excinfo.value.errors == [
        f"ClusterTemplateChain {SYSTEM_NS}/nope is not found",
        f"credential {SYSTEM_NS}/missing is not found",
    ]
    access = store.get(ACCESS_MANAGEMENT_KIND, AM_NAME)
    assert access.status.error == str(excinfo.value)
    assert access.status.current == []


def test_reconcile_bad_selector_is_reported():
    store = ObjectStore(
        [
            AccessManagement(
                metadata=_meta(AM_NAME),
                spec=AccessManagementSpec(
                    access_rules=[
                        AccessRule(target_namespaces=TargetNamespaces(string_selector="a in ()"))
                    ]
                ),
            )
        ]
    )
    with pytest.raises(ReconcileError):
        AccessManagementReconciler(store, SYSTEM_NS).reconcile(AM_NAME)
    assert store.get(ACCESS_MANAGEMENT_KIND, AM_NAME).status.error != ""


def test_get_namespaced_name():
    assert get_namespaced_name(NS1, CRED) == f"{NS1}/{CRED}"


def test_get_target_namespaces(store):
    assert get_target_namespaces(store, TargetNamespaces(names=[NS3])) == [NS3]
    assert get_target_namespaces(store, TargetNamespaces(string_selector="environment=dev")) == [NS1]
    assert get_target_namespaces(store, TargetNamespaces()) == sorted([SYSTEM_NS, NS1, NS2, NS3])
    assert get_target_namespaces(store, _access_rules()[0].target_namespaces) == [NS1, NS2]
    with pytest.raises(SelectorError):
        get_target_namespaces(store, TargetNamespaces(string_selector="=bad"))


def test_store_create_get_delete():
    store = ObjectStore()
    cred = Credential(metadata=_meta(CRED, NS1), spec=_cred_spec())
    store.create(cred)
    with pytest.raises(AlreadyExistsError):
        store.create(cred)
    fetched = store.get(CREDENTIAL_KIND, CRED, NS1)
    assert fetched.spec == cred.spec
    assert fetched.metadata.generation == 1
    fetched.metadata.labels["x"] = "y"
    assert store.get(CREDENTIAL_KIND, CRED, NS1).metadata.labels == {}
    store.delete(cred)
    with pytest.raises(NotFoundError):
        store.delete(cred)
    assert store.list(CREDENTIAL_KIND) == []


def test_store_update_status():
    store = ObjectStore()
    cred = Credential(metadata=_meta(CRED, NS1))
    with pytest.raises(NotFoundError):
        store.update_status(cred)
    store.create(cred)
    cred.status.ready = True
    store.update_status(cred)
    assert store.get(CREDENTIAL_KIND, CRED, NS1).status.ready is True