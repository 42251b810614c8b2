"""Cluster management resource models, contract validation, indexers, selectors and access-rule reconciliation."""

__version__ = "0.1.0"

__all__ = [
    "meta",
    "contracts",
    "common",
    "templates",
    "templatechains",
    "access",
    "credentials",
    "release",
    "management",
    "multiclusterservice",
    "clusterdeployment",
    "indexers",
    "backup",
    "selectors",
    "accessmanagement_controller",
]