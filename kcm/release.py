"""Release objects naming the provider templates of one product version."""

from __future__ import annotations

from dataclasses import dataclass, field

from kcm.meta import Condition, ObjectMeta

RELEASE_KIND = "Release"
TEMPLATES_CREATED_CONDITION = "TemplatesCreated"
TEMPLATES_VALID_CONDITION = "TemplatesValid"


@dataclass
class CoreProviderTemplate:
    """A reference to the template of a core component."""

    template: str = ""


@dataclass
class NamedProviderTemplate(CoreProviderTemplate):
    """A reference to the template of a named provider."""

    name: str = ""


@dataclass
class ReleaseSpec:
    """Desired state of a Release."""

    version: str = ""
    kcm: CoreProviderTemplate = field(default_factory=CoreProviderTemplate)
    capi: CoreProviderTemplate = field(default_factory=CoreProviderTemplate)
    providers: list[NamedProviderTemplate] = field(default_factory=list)


@dataclass
class ReleaseStatus:
    """Observed state of a Release."""

    conditions: list[Condition] = field(default_factory=list)
    observed_generation: int = 0
    ready: bool = False


@dataclass
class Release:
    """A versioned set of provider templates."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: ReleaseSpec = field(default_factory=ReleaseSpec)
    status: ReleaseStatus = field(default_factory=ReleaseStatus)

    @property
    def kind(self) -> str:
        return RELEASE_KIND

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def provider_template(self, name: str) -> str:
        """The template of the provider called ``name``, or an empty string."""
        return next((p.template for p in self.spec.providers if p.name == name), "")

    def templates(self) -> list[str]:
        """All templates of the release: core ones first, then the providers'."""
        return [self.spec.kcm.template, self.spec.capi.template, *(p.template for p in self.spec.providers)]