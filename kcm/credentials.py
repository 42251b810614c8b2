"""Credential objects referencing a cluster identity."""

from __future__ import annotations

from dataclasses import dataclass, field

from kcm.meta import Condition, ObjectMeta, ObjectReference

CREDENTIAL_KIND = "Credential"
CREDENTIAL_READY_CONDITION = "CredentialReady"
CREDENTIALS_PROPAGATED_CONDITION = "CredentialsApplied"


@dataclass
class CredentialSpec:
    """Desired state of a Credential."""

    identity_ref: ObjectReference | None = None
    description: str = ""


@dataclass
class CredentialStatus:
    """Observed state of a Credential."""

    ready: bool = False
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class Credential:
    """A named reference to the identity used to provision clusters."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CredentialSpec = field(default_factory=CredentialSpec)
    status: CredentialStatus = field(default_factory=CredentialStatus)

    @property
    def kind(self) -> str:
        return CREDENTIAL_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def conditions(self) -> list[Condition]:
        """The status conditions, as a live list."""
        return self.status.conditions