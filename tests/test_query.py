"""
Tests for artifact listing: filters, search and ordering.
"""

from datetime import datetime, timedelta, timezone

import pytest

from artifact_catalog.db.query import ArtifactFilters, ArtifactQuery, SortOrder
from artifact_catalog.db.services import ArtifactService, CollectionService
from artifact_catalog.schemas import ArtifactCreate, CollectionCreate

ALICE = "alice@example.com"
BOB = "bob@example.com"

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def catalog(db):
    """Five of Alice's artifacts with distinct creation times, plus one of Bob's."""
    collections = CollectionService(db)
    apps = collections.create(ALICE, CollectionCreate(name="Web Apps"))
    docs = collections.create(ALICE, CollectionCreate(name="Documents"))

    service = ArtifactService(db)
    rows = [
        ArtifactCreate(
            name="Budget Dashboard",
            artifact_type="html",
            language="html",
            collection_id=apps.id,
            tags=["finance", "ui"],
        ),
        ArtifactCreate(
            name="Parser",
            artifact_type="code",
            language="python",
            notes="Handles 100% of the grammar",
            tags=["python"],
            is_favorite=True,
        ),
        ArtifactCreate(
            name="Quarterly Report",
            artifact_type="document",
            source_type="downloaded",
            file_name="report_q1.md",
            collection_id=docs.id,
            tags=["finance"],
        ),
        ArtifactCreate(
            name="Alpha Sketch",
            artifact_type="image",
            description="Logo concepts",
            collection_id=apps.id,
        ),
        ArtifactCreate(
            name="Zeta Notes",
            artifact_type="document",
            description="Ideas for 1000 things",
            is_favorite=True,
        ),
    ]
    created = {}
    for offset, data in enumerate(rows):
        artifact = service.create(ALICE, data)
        artifact.created_at = BASE_TIME + timedelta(days=offset)
        artifact.updated_at = BASE_TIME + timedelta(days=10 - offset)
        created[artifact.name] = artifact.id
    db.commit()

    service.create(BOB, ArtifactCreate(name="Bob's Parser", language="python", tags=["python"]))
    return created


def names(rows):
    return [row["name"] for row in rows]


class TestFilters:
    def test_no_filters_lists_only_owner_rows(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE)
        assert sorted(names(rows)) == sorted(catalog)

    def test_collection_filter(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, ArtifactFilters(collection_slug="web-apps"))
        assert set(names(rows)) == {"Budget Dashboard", "Alpha Sketch"}
        assert {row["collection_slug"] for row in rows} == {"web-apps"}

    def test_tag_filter_keeps_all_tags_on_row(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, ArtifactFilters(tag_name="ui"))
        assert names(rows) == ["Budget Dashboard"]
        assert set(rows[0]["tags"]) == {"finance", "ui"}

    def test_tag_containing_a_comma_stays_whole(self, db, catalog):
        artifact = ArtifactService(db).create(
            ALICE, ArtifactCreate(name="Split Test", tags=["q1,q2", "plain"])
        )

        row = ArtifactQuery(db).get(ALICE, artifact.id)
        assert row["tags"] == ["plain", "q1,q2"]

        hits = ArtifactQuery(db).list(ALICE, ArtifactFilters(tag_name="q1,q2"))
        assert names(hits) == ["Split Test"]
        assert ArtifactQuery(db).list(ALICE, ArtifactFilters(tag_name="q1")) == []

    def test_tag_filter_is_owner_scoped(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, ArtifactFilters(tag_name="python"))
        assert names(rows) == ["Parser"]

    def test_type_and_source_filters(self, db, catalog):
        query = ArtifactQuery(db)
        documents = query.list(ALICE, ArtifactFilters(artifact_type="document"))
        assert set(names(documents)) == {"Quarterly Report", "Zeta Notes"}

        downloaded = query.list(
            ALICE, ArtifactFilters(artifact_type="document", source_type="downloaded")
        )
        assert names(downloaded) == ["Quarterly Report"]

    def test_favorite_only_is_a_subset(self, db, catalog):
        query = ArtifactQuery(db)
        everything = {row["id"] for row in query.list(ALICE)}
        favorites = query.list(ALICE, ArtifactFilters(favorite_only=True))

        assert {row["id"] for row in favorites} < everything
        assert all(row["is_favorite"] is True for row in favorites)
        assert set(names(favorites)) == {"Parser", "Zeta Notes"}

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("budget", {"Budget Dashboard"}),
            ("LOGO", {"Alpha Sketch"}),
            ("python", {"Parser"}),
            ("report_q1", {"Quarterly Report"}),
            ("grammar", {"Parser"}),
        ],
    )
    def test_search_covers_text_columns(self, db, catalog, text, expected):
        rows = ArtifactQuery(db).list(ALICE, ArtifactFilters(search_text=text))
        assert set(names(rows)) == expected

    def test_search_treats_wildcards_literally(self, db, catalog):
        query = ArtifactQuery(db)
        assert names(query.list(ALICE, ArtifactFilters(search_text="100%"))) == ["Parser"]
        assert query.list(ALICE, ArtifactFilters(search_text="q_arterly")) == []

    def test_filters_combine(self, db, catalog):
        rows = ArtifactQuery(db).list(
            ALICE, ArtifactFilters(tag_name="finance", collection_slug="documents")
        )
        assert names(rows) == ["Quarterly Report"]


class TestOrdering:
    def test_newest_first_with_favorites_on_top(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, sort=SortOrder.NEWEST)
        assert names(rows) == [
            "Zeta Notes",
            "Parser",
            "Alpha Sketch",
            "Quarterly Report",
            "Budget Dashboard",
        ]

    def test_oldest(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, sort=SortOrder.OLDEST)
        assert names(rows) == [
            "Parser",
            "Zeta Notes",
            "Budget Dashboard",
            "Quarterly Report",
            "Alpha Sketch",
        ]

    def test_name(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, sort=SortOrder.NAME)
        assert names(rows) == [
            "Parser",
            "Zeta Notes",
            "Alpha Sketch",
            "Budget Dashboard",
            "Quarterly Report",
        ]

    def test_updated(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, sort=SortOrder.UPDATED)
        assert names(rows) == [
            "Parser",
            "Zeta Notes",
            "Budget Dashboard",
            "Quarterly Report",
            "Alpha Sketch",
        ]

    def test_type(self, db, catalog):
        rows = ArtifactQuery(db).list(ALICE, sort=SortOrder.TYPE)
        assert names(rows) == [
            "Parser",
            "Zeta Notes",
            "Quarterly Report",
            "Budget Dashboard",
            "Alpha Sketch",
        ]

    @pytest.mark.parametrize("sort", list(SortOrder))
    def test_favorites_never_follow_non_favorites(self, db, catalog, sort):
        flags = [row["is_favorite"] for row in ArtifactQuery(db).list(ALICE, sort=sort)]
        assert flags == sorted(flags, reverse=True)

    def test_unknown_sort_falls_back_to_newest(self):
        assert SortOrder.parse("sideways") is SortOrder.NEWEST
        assert SortOrder.parse(None) is SortOrder.NEWEST
        assert SortOrder.parse("name") is SortOrder.NAME


class TestGet:
    def test_listing_shape(self, db, catalog):
        row = ArtifactQuery(db).get(ALICE, catalog["Budget Dashboard"])
        assert row["collection_name"] == "Web Apps"
        assert row["collection_slug"] == "web-apps"
        assert row["collection_color"] == "#6366f1"
        assert set(row["tags"]) == {"finance", "ui"}

    def test_uncollected_untagged(self, db, catalog):
        row = ArtifactQuery(db).get(ALICE, catalog["Zeta Notes"])
        assert row["collection_slug"] is None
        assert row["tags"] == []
        assert row["tag_names"] is None

    def test_foreign_artifact(self, db, catalog):
        assert ArtifactQuery(db).get(BOB, catalog["Parser"]) is None
