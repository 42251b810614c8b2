# kcm

In-memory models and reconciliation logic for cluster management resources. The package covers:

- cluster, service and provider templates;
- template chains, credentials and releases;
- management objects, cluster deployments and multi-cluster services;
- backups.

It also includes CAPI contract-version validation, field indexers and a label selector parser. An access-management reconciler copies template chains and credentials out of the system namespace into target namespaces.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `kcm.meta`: object metadata and related types.
  - `ObjectMeta`, `OwnerReference`, `ObjectReference`, `Condition`, `LabelSelector`, `LabelSelectorRequirement`, `Namespace` and `GroupVersion`.
  - The condition helpers `set_status_condition` and `find_status_condition`.
- `kcm.contracts`: checks on CAPI contract versions, such as `v1`, `v1beta1` or `v1alpha1_v1beta1`.
  - `is_capi_contract_version`, `is_capi_contract_single_version` and `is_non_major`.
- `kcm.common`: shared template and chain types and contract collection.
  - `HelmSpec`, `HelmChartSpec`, `CrossNamespaceSourceReference` and `TemplateChainSpec`.
  - `get_providers_list`.
  - `get_capi_contracts`, which raises `ContractsError` on invalid entries.
- `kcm.templates`: `ClusterTemplate`, `ServiceTemplate` and `ProviderTemplate`.
  - Each has `fill_status_with_providers(annotations)`, which raises `TemplateError` on failure.
  - `parse_version` and `parse_constraint` do lenient semantic-version and constraint parsing.
- `kcm.templatechains`: `ClusterTemplateChain` and `ServiceTemplateChain`.
- `kcm.access`: `AccessManagement`, `AccessRule` and `TargetNamespaces`.
  - `TargetNamespaces.validate()` rejects more than one way of selecting namespaces.
- `kcm.credentials`: `Credential` and `CredentialSpec`.
- `kcm.release`: `Release`, with `provider_template(name)` and `templates()`.
- `kcm.management`: `Management`, with `templates()`.
  - `Component.helm_values()` parses a component's config.
  - `get_default_providers()`.
- `kcm.multiclusterservice`: `MultiClusterService`, `Service` and `ServiceSpec`.
- `kcm.clusterdeployment`: `ClusterDeployment`.
  - Methods: `helm_values`, `set_helm_values`, `add_helm_values` and `init_conditions`.
- `kcm.indexers`: `FieldIndexer` (`index_field`, `lookup`), `setup_indexers` and the `extract_*` field extractors.
- `kcm.backup`: `Backup`, `BackupType` and `get_backup_type(instance, request_name, managements)`.
- `kcm.selectors`: `parse_selector` and `selector_from_label_selector`, which raise `SelectorError` on failure.
  - Both return a `Selector`, which has `matches(labels)` and `empty()`.
- `kcm.accessmanagement_controller`: the in-memory store and the reconciler.
  - `ObjectStore` is an in-memory store with `create`, `get`, `list`, `delete` and `update_status`.
  - `AccessManagementReconciler.reconcile(name)`.
  - `get_target_namespaces` and `get_namespaced_name`.

## Example

The example loads a namespace, a chain, a credential and an access rule into a store, then runs one reconcile pass:

```python
from kcm.access import AccessManagement, AccessManagementSpec, AccessRule, TargetNamespaces
from kcm.accessmanagement_controller import AccessManagementReconciler, ObjectStore
from kcm.credentials import Credential, CredentialSpec
from kcm.meta import Namespace, ObjectMeta, ObjectReference
from kcm.templatechains import ClusterTemplateChain

store = ObjectStore()
store.create(Namespace(metadata=ObjectMeta(name="team-a", labels={"environment": "dev"})))
store.create(ClusterTemplateChain(metadata=ObjectMeta(name="aws-chain", namespace="kcm")))
store.create(Credential(
    metadata=ObjectMeta(name="aws-cred", namespace="kcm"),
    spec=CredentialSpec(identity_ref=ObjectReference(kind="AWSClusterStaticIdentity", name="awsclid")),
))
store.create(AccessManagement(
    metadata=ObjectMeta(name="kcm"),
    spec=AccessManagementSpec(access_rules=[
        AccessRule(
            target_namespaces=TargetNamespaces(string_selector="environment=dev"),
            cluster_template_chains=["aws-chain"],
            credentials=["aws-cred"],
        ),
    ]),
))

AccessManagementReconciler(store, system_namespace="kcm").reconcile("kcm")
```

After this pass, `team-a` holds copies of `aws-chain` and `aws-cred`. Each copy carries the `k0rdent.mirantis.com/managed=true` label.

On a later pass, a managed copy is deleted once no access rule covers its namespace any more. When a rule names a chain or credential that is missing from the system namespace, `reconcile` raises `ReconcileError`. The error is also recorded in the AccessManagement status.

## What this package does not do

All objects live in the in-memory `ObjectStore`. The package does not:

- connect to a cluster API server;
- watch for changes or run a controller loop;
- serve admission webhooks;
- install Helm charts.

The only reconciler it has is `AccessManagementReconciler`, and it runs when `reconcile` is called. The package has no command-line entry point.