import json

import pytest

from kcm.clusterdeployment import (
    CLUSTER_DEPLOYMENT_KIND,
    HELM_CHART_READY_CONDITION,
    HELM_RELEASE_READY_CONDITION,
    READY_CONDITION,
    TEMPLATE_READY_CONDITION,
    ClusterDeployment,
    ClusterDeploymentSpec,
    HelmValuesError,
)
from kcm.meta import CONDITION_TRUE, CONDITION_UNKNOWN, find_status_condition


def _deployment(**spec_kwargs):
    return ClusterDeployment(spec=ClusterDeploymentSpec(template="aws-standalone-cp", **spec_kwargs))


def test_kind():
    assert ClusterDeployment().kind == "ClusterDeployment" == CLUSTER_DEPLOYMENT_KIND


def test_propagate_credentials_defaults_true():
    assert ClusterDeploymentSpec().propagate_credentials is True


def test_helm_values_none_without_config():
    assert _deployment().helm_values() is None


def test_helm_values_parses_yaml():
    cd = _deployment(config="region: us-east-2\ncontrolPlaneNumber: 1\n")
    assert cd.helm_values() == {"region": "us-east-2", "controlPlaneNumber": 1}


def test_set_and_get_round_trip():
    cd = _deployment()
    values = {"a": {"b": [1, 2]}, "c": "d"}
    cd.set_helm_values(values)
    assert json.loads(cd.spec.config) == values
    assert cd.helm_values() == values


def test_invalid_config_raises_with_template_name():
    cd = _deployment(config="key: [unclosed")
    with pytest.raises(HelmValuesError, match="aws-standalone-cp"):
        cd.helm_values()


def test_non_mapping_config_raises():
    cd = _deployment(config="[1, 2]")
    with pytest.raises(HelmValuesError):
        cd.helm_values()


def test_set_unserialisable_values_raises():
    cd = _deployment()
    with pytest.raises(HelmValuesError, match="error marshalling"):
        cd.set_helm_values({"x": object()})


def test_add_helm_values_updates_existing():
    cd = _deployment(config='{"keep": 1}')

    def add(values):
        values["added"] = "yes"

    cd.add_helm_values(add)
    assert cd.helm_values() == {"keep": 1, "added": "yes"}


def test_add_helm_values_without_config():
    cd = _deployment()
    cd.add_helm_values(lambda values: values.update(k="v"))
    assert cd.helm_values() == {"k": "v"}


def test_add_helm_values_propagates_errors_and_keeps_config():
    cd = _deployment(config='{"keep": 1}')

    def fail(values):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cd.add_helm_values(fail)
    assert cd.helm_values() == {"keep": 1}


def test_init_conditions_not_dry_run():
    cd = _deployment()
    cd.init_conditions()
    assert [c.type for c in cd.conditions] == [
        TEMPLATE_READY_CONDITION,
        HELM_CHART_READY_CONDITION,
        HELM_RELEASE_READY_CONDITION,
        READY_CONDITION,
    ]
    assert all(c.status == CONDITION_UNKNOWN for c in cd.conditions)
    assert all(c.reason == "Progressing" for c in cd.conditions)
    ready = find_status_condition(cd.conditions, READY_CONDITION)
    assert ready.message == "ClusterDeployment is not yet ready"


def test_init_conditions_dry_run_skips_helm_release():
    cd = _deployment(dry_run=True)
    cd.init_conditions()
    types = [c.type for c in cd.conditions]
    assert HELM_RELEASE_READY_CONDITION not in types
    assert len(types) == 3


def test_init_conditions_is_idempotent_and_resets_status():
    cd = _deployment()
    cd.init_conditions()
    find_status_condition(cd.conditions, READY_CONDITION).status = CONDITION_TRUE
    cd.init_conditions()
    assert len(cd.conditions) == 4
    assert find_status_condition(cd.conditions, READY_CONDITION).status == CONDITION_UNKNOWN