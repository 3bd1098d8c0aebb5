import pytest

from src.services.errors import InvalidNameError, SlugConflictError, ValidationError
from src.services.slugs import assign_unique_slug, normalize


class Existing:
    def __init__(self, entity_id):
        self.id = entity_id


def lookup_from(taken):
    return lambda slug: taken.get(slug)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Club Deportivo Montaña", "club-deportivo-montana"),
        ("Trail Fest", "trail-fest"),
        ("  Ultra   Trail -- du Mont-Blanc!! ", "ultra-trail-du-mont-blanc"),
        ("Çà et Là 2025", "ca-et-la-2025"),
        ("UTMB® World Series", "utmb-world-series"),
        ("already-a-slug", "already-a-slug"),
    ],
)
def test_normalize(name, expected):
    assert normalize(name) == expected


@pytest.mark.parametrize(
    "name",
    ["Club Deportivo Montaña", "--Ästhetik__Läufe--", "Sky Race 2026 (Série #3)", "a"],
)
def test_normalize_is_idempotent(name):
    slug = normalize(name)
    assert normalize(slug) == slug


@pytest.mark.parametrize("name", ["", "   ", "!!!", "---", "🏔️"])
def test_normalize_rejects_symbol_only_names(name):
    with pytest.raises(InvalidNameError) as excinfo:
        normalize(name)
    assert isinstance(excinfo.value, ValidationError)
    assert "name" in excinfo.value.errors


def test_normalize_truncates_without_trailing_hyphen():
    slug = normalize("abcd efgh", max_length=5)
    assert slug == "abcd"


def test_assign_returns_candidate_when_free():
    assert assign_unique_slug("Trail Fest", lookup_from({})) == "trail-fest"


def test_assign_raises_conflict_for_taken_slug():
    taken = {"trail-fest": Existing("other")}
    with pytest.raises(SlugConflictError) as excinfo:
        assign_unique_slug("Trail Fest", lookup_from(taken))
    assert excinfo.value.slug == "trail-fest"
    assert excinfo.value.status_code == 409


def test_assign_ignores_the_entity_being_renamed():
    taken = {"trail-fest": Existing("self")}
    assert (
        assign_unique_slug("Trail Fest", lookup_from(taken), exclude_id="self")
        == "trail-fest"
    )


def test_assign_suffix_policy_appends_counter():
    taken = {"trail-fest": Existing("a"), "trail-fest-2": Existing("b")}
    assert (
        assign_unique_slug("Trail Fest", lookup_from(taken), policy="suffix")
        == "trail-fest-3"
    )


def test_assign_suffix_policy_keeps_own_suffixed_slug():
    taken = {"trail-fest": Existing("a"), "trail-fest-2": Existing("self")}
    assert (
        assign_unique_slug(
            "Trail Fest", lookup_from(taken), exclude_id="self", policy="suffix"
        )
        == "trail-fest-2"
    )


def test_assign_suffix_respects_max_length():
    taken = {"abcdef": Existing("a")}
    slug = assign_unique_slug("abcdef", lookup_from(taken), policy="suffix", max_length=6)
    assert slug == "abcd-2"
