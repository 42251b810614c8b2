from kcm.release import (
    RELEASE_KIND,
    CoreProviderTemplate,
    NamedProviderTemplate,
    Release,
    ReleaseSpec,
)


def _release():
    return Release(
        spec=ReleaseSpec(
            version="0.0.7",
            kcm=CoreProviderTemplate(template="kcm-0-0-7"),
            capi=CoreProviderTemplate(template="cluster-api-0-0-6"),
            providers=[
                NamedProviderTemplate(name="k0smotron", template="k0smotron-0-0-6"),
                NamedProviderTemplate(name="projectsveltos", template="projectsveltos-0-45-0"),
            ],
        )
    )


def test_templates_order():
    assert _release().templates() == [
        "kcm-0-0-7",
        "cluster-api-0-0-6",
        "k0smotron-0-0-6",
        "projectsveltos-0-45-0",
    ]


def test_templates_without_providers_has_core_only():
    release = Release(spec=ReleaseSpec(kcm=CoreProviderTemplate("a"), capi=CoreProviderTemplate("b")))
    assert release.templates() == ["a", "b"]


def test_provider_template_found():
    assert _release().provider_template("projectsveltos") == "projectsveltos-0-45-0"


def test_provider_template_missing_is_empty():
    assert _release().provider_template("absent") == ""


def test_templates_count_matches_providers():
    release = _release()
    assert len(release.templates()) == len(release.spec.providers) + 2
    assert release.kind == RELEASE_KIND