"""
Tests for share tokens and the public render/share pages.
"""

import string

import pytest

from artifact_catalog import sharing
from artifact_catalog.db.services import ArtifactService, CollectionService
from artifact_catalog.schemas import (
    ArtifactCreate,
    CollectionCreate,
    ShareLayout,
    ShareSettings,
)
from artifact_catalog.sharing import (
    ARTIFACT_TOKEN_LENGTH,
    UNCATEGORIZED,
    ShareService,
    generate_artifact_token,
    generate_collection_token,
    group_by_tag,
)

ALICE = "alice@example.com"
BOB = "bob@example.com"


class TestTokens:
    def test_artifact_token_shape(self):
        token = generate_artifact_token()
        assert len(token) == ARTIFACT_TOKEN_LENGTH
        assert set(token) <= set(string.ascii_letters + string.digits)

    def test_collection_token_is_longer(self):
        token = generate_collection_token()
        assert len(token) >= 43
        assert generate_collection_token() != token


class TestArtifactSharing:
    def test_share_unshare_reshare(self, db):
        artifact = ArtifactService(db).create(ALICE, ArtifactCreate(name="Page"))
        shares = ShareService(db)

        token = shares.share_artifact(ALICE, artifact.id)
        assert shares.get_shared_artifact(token).id == artifact.id

        assert shares.unshare_artifact(ALICE, artifact.id) is True
        assert shares.get_shared_artifact(token) is None

        new_token = shares.share_artifact(ALICE, artifact.id)
        assert new_token != token
        assert shares.get_shared_artifact(new_token).id == artifact.id

    def test_reshare_replaces_token(self, db):
        artifact = ArtifactService(db).create(ALICE, ArtifactCreate(name="Page"))
        shares = ShareService(db)
        first = shares.share_artifact(ALICE, artifact.id)
        second = shares.share_artifact(ALICE, artifact.id)
        assert first != second
        assert shares.get_shared_artifact(first) is None

    def test_foreign_artifact_cannot_be_shared(self, db):
        artifact = ArtifactService(db).create(ALICE, ArtifactCreate(name="Page"))
        shares = ShareService(db)
        assert shares.share_artifact(BOB, artifact.id) is None
        assert shares.unshare_artifact(BOB, artifact.id) is False
        assert shares.artifact_share_status(BOB, artifact.id) is None

    def test_status_does_not_mint(self, db):
        artifact = ArtifactService(db).create(ALICE, ArtifactCreate(name="Page"))
        shares = ShareService(db)

        status = shares.artifact_share_status(ALICE, artifact.id)
        assert status == {
            "is_shared": False,
            "share_token": None,
            "shared_at": None,
            "render_path": None,
        }

        token = shares.share_artifact(ALICE, artifact.id)
        status = shares.artifact_share_status(ALICE, artifact.id)
        assert status["is_shared"] is True
        assert status["share_token"] == token
        assert status["render_path"] == f"/render/{token}"
        assert status["shared_at"] is not None

    def test_empty_token_finds_nothing(self, db):
        assert ShareService(db).get_shared_artifact("") is None

    def test_colliding_token_is_replaced(self, db, monkeypatch):
        service = ArtifactService(db)
        first = service.create(ALICE, ArtifactCreate(name="First"))
        second = service.create(ALICE, ArtifactCreate(name="Second"))
        shares = ShareService(db)

        tokens = iter(["TakenToken01", "TakenToken01", "FreshToken02"])
        monkeypatch.setattr(sharing, "generate_artifact_token", lambda: next(tokens))

        assert shares.share_artifact(ALICE, first.id) == "TakenToken01"
        assert shares.share_artifact(ALICE, second.id) == "FreshToken02"
        assert shares.get_shared_artifact("TakenToken01").id == first.id
        assert shares.get_shared_artifact("FreshToken02").id == second.id

    def test_gives_up_when_every_token_collides(self, db, monkeypatch):
        service = ArtifactService(db)
        first = service.create(ALICE, ArtifactCreate(name="First"))
        second = service.create(ALICE, ArtifactCreate(name="Second"))
        shares = ShareService(db)

        monkeypatch.setattr(sharing, "generate_artifact_token", lambda: "TakenToken01")
        shares.share_artifact(ALICE, first.id)

        with pytest.raises(RuntimeError):
            shares.share_artifact(ALICE, second.id)
        db.expire_all()
        assert shares.artifact_share_status(ALICE, second.id)["is_shared"] is False


class TestCollectionSharing:
    def test_share_stores_settings(self, db):
        CollectionService(db).create(ALICE, CollectionCreate(name="Web Apps"))
        shares = ShareService(db)
        settings = ShareSettings(show_thumbnails=False, layout=ShareLayout.LIST)

        token = shares.share_collection(ALICE, "web-apps", settings)
        collection = shares.get_public_collection(token)
        assert collection.is_public is True
        assert collection.share_settings == {"showThumbnails": False, "layout": "list"}

    def test_default_settings(self, db):
        CollectionService(db).create(ALICE, CollectionCreate(name="Web Apps"))
        shares = ShareService(db)
        shares.share_collection(ALICE, "web-apps")
        status = shares.collection_share_status(ALICE, "web-apps")
        assert status["is_shared"] is True
        assert status["settings"] == {"showThumbnails": True, "layout": "grouped"}
        assert status["share_path"] == f"/share/{status['share_token']}"

    def test_unshare_clears_everything(self, db):
        collections = CollectionService(db)
        collections.create(ALICE, CollectionCreate(name="Web Apps"))
        shares = ShareService(db)
        token = shares.share_collection(ALICE, "web-apps")

        assert shares.unshare_collection(ALICE, "web-apps") is True
        collection = collections.get(ALICE, "web-apps")
        assert collection.is_public is False
        assert collection.share_token is None
        assert collection.share_settings is None
        assert collection.shared_at is None
        assert shares.get_public_collection(token) is None

    def test_stale_token_on_private_collection(self, db):
        collections = CollectionService(db)
        collections.create(ALICE, CollectionCreate(name="Web Apps"))
        shares = ShareService(db)
        token = shares.share_collection(ALICE, "web-apps")

        collection = collections.get(ALICE, "web-apps")
        collection.is_public = False
        db.commit()

        assert shares.get_public_collection(token) is None
        assert shares.public_collection_page(token) is None
        assert shares.collection_share_status(ALICE, "web-apps")["is_shared"] is False

    def test_foreign_collection(self, db):
        CollectionService(db).create(ALICE, CollectionCreate(name="Web Apps"))
        shares = ShareService(db)
        assert shares.share_collection(BOB, "web-apps") is None
        assert shares.unshare_collection(BOB, "web-apps") is False
        assert shares.collection_share_status(BOB, "web-apps") is None

    def test_stored_settings_ignore_unknown_keys(self):
        settings = ShareSettings.from_stored(
            {"showThumbnails": False, "layout": "grid", "theme": "dark"}
        )
        assert settings.show_thumbnails is False
        assert settings.layout is ShareLayout.GRID

    def test_unusable_stored_settings_fall_back(self):
        assert ShareSettings.from_stored({"layout": "carousel"}) == ShareSettings()
        assert ShareSettings.from_stored(None) == ShareSettings()


class TestGrouping:
    def _row(self, id, created_at, tags, **fields):
        return {
            "id": id,
            "created_at": created_at,
            "tags": tags,
            "name": f"Artifact {id}",
            "file_content": "secret",
            **fields,
        }

    def test_groups_duplicate_and_uncategorized_last(self):
        rows = [
            self._row(1, "2024-01-01T00:00:00", ["zeta", "alpha"]),
            self._row(2, "2024-01-03T00:00:00", []),
            self._row(3, "2024-01-02T00:00:00", ["alpha"]),
        ]
        groups = group_by_tag(rows)

        assert list(groups) == ["alpha", "zeta", UNCATEGORIZED]
        assert [card["name"] for card in groups["alpha"]] == ["Artifact 3", "Artifact 1"]
        assert [card["name"] for card in groups["zeta"]] == ["Artifact 1"]
        assert [card["name"] for card in groups[UNCATEGORIZED]] == ["Artifact 2"]

    def test_cards_never_carry_content(self):
        groups = group_by_tag([self._row(1, "2024-01-01T00:00:00", [])])
        card = groups[UNCATEGORIZED][0]
        assert "file_content" not in card
        assert set(card) == {
            "name",
            "description",
            "artifact_type",
            "language",
            "published_url",
            "conversation_url",
        }

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://claude.ai/public/artifacts/1", "https://claude.ai/public/artifacts/1"),
            (" http://example.com ", "http://example.com"),
            ("javascript:alert(1)", None),
            (" JavaScript:alert(1)", None),
            ("data:text/html,<b>x</b>", None),
            ("//example.com/no-scheme", None),
            ("", None),
        ],
    )
    def test_card_links_are_http_only(self, url, expected):
        row = self._row(1, "2024-01-01T00:00:00", [], published_url=url, conversation_url=url)
        card = group_by_tag([row])[UNCATEGORIZED][0]
        assert card["published_url"] == expected
        assert card["conversation_url"] == expected

    def test_public_collection_page(self, db):
        collection = CollectionService(db).create(ALICE, CollectionCreate(name="Web Apps"))
        service = ArtifactService(db)
        service.create(
            ALICE,
            ArtifactCreate(name="One", collection_id=collection.id, tags=["a", "b"]),
        )
        service.create(ALICE, ArtifactCreate(name="Two", collection_id=collection.id))
        service.create(ALICE, ArtifactCreate(name="Elsewhere", tags=["a"]))
        token = ShareService(db).share_collection(ALICE, "web-apps")

        page = ShareService(db).public_collection_page(token)
        assert page["name"] == "Web Apps"
        assert page["artifact_count"] == 2
        assert list(page["groups"]) == ["a", "b", UNCATEGORIZED]
        assert [c["name"] for c in page["groups"]["a"]] == ["One"]


class TestRenderPage:
    def _share(self, client, headers, **fields):
        created = client.post("/api/artifacts", json=fields, headers=headers)
        assert created.status_code == 201
        artifact_id = created.json()["id"]
        shared = client.post(f"/api/artifacts/{artifact_id}/share", headers=headers)
        assert shared.status_code == 200
        return artifact_id, shared.json()["share_token"]

    def test_html_renders_in_sandboxed_iframe(self, client, alice):
        _, token = self._share(
            client,
            alice,
            name="Widget",
            artifact_type="html",
            file_content='<h1 class="x">Hi</h1>',
        )
        response = client.get(f"/render/{token}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        body = response.text
        assert '<iframe class="render-frame" sandbox="allow-scripts"' in body
        assert "allow-same-origin" not in body
        assert "&lt;h1 class=&#34;x&#34;&gt;Hi&lt;/h1&gt;" in body
        assert "<h1 class=" not in body

    def test_html_language_counts_as_html(self, client, alice):
        _, token = self._share(
            client, alice, name="Snippet", artifact_type="code", language="HTML",
            file_content="<p>x</p>",
        )
        assert "<iframe" in client.get(f"/render/{token}").text

    def test_text_renders_escaped(self, client, alice):
        _, token = self._share(
            client,
            alice,
            name="Script",
            language="python",
            file_content="print('<script>')",
        )
        body = client.get(f"/render/{token}").text
        assert "<pre><code>" in body
        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        assert "python" in body

    def test_empty_html_falls_back_to_text(self, client, alice):
        _, token = self._share(client, alice, name="Empty", artifact_type="html")
        body = client.get(f"/render/{token}").text
        assert "<iframe" not in body
        assert "<pre><code>" in body

    def test_unknown_token(self, client):
        response = client.get("/render/AbCdEf123456")
        assert response.status_code == 404
        assert "404 - Artifact Not Found" in response.text

    def test_revoked_token_is_not_found_and_reshare_differs(self, client, alice):
        artifact_id, token = self._share(
            client, alice, name="Page", artifact_type="html", file_content="<p>x</p>"
        )
        assert client.get(f"/render/{token}").status_code == 200

        revoked = client.delete(f"/api/artifacts/{artifact_id}/share", headers=alice)
        assert revoked.status_code == 200
        assert client.get(f"/render/{token}").status_code == 404

        again = client.post(f"/api/artifacts/{artifact_id}/share", headers=alice)
        new_token = again.json()["share_token"]
        assert new_token != token
        assert client.get(f"/render/{new_token}").status_code == 200


class TestSharePage:
    def _collection_with_artifacts(self, client, headers):
        created = client.post("/api/collections", json={"name": "Demos"}, headers=headers)
        collection_id = created.json()["id"]
        for name, tags in (("Chart", ["viz"]), ("Map", ["viz", "geo"]), ("Loose", [])):
            client.post(
                "/api/artifacts",
                json={
                    "name": name,
                    "collection_id": collection_id,
                    "tags": tags,
                    "file_content": f"SECRET-{name}",
                    "published_url": f"https://example.com/{name.lower()}",
                },
                headers=headers,
            )

    def test_grouped_page(self, client, alice):
        self._collection_with_artifacts(client, alice)
        shared = client.post("/api/collections/demos/share", headers=alice)
        assert shared.status_code == 200
        share_url = shared.json()["share_url"]
        token = shared.json()["share_token"]
        assert share_url.endswith(f"/share/{token}")

        response = client.get(f"/share/{token}")
        assert response.status_code == 200
        body = response.text
        assert "<h1>Demos</h1>" in body
        assert "3 artifacts" in body
        assert body.index("<h2>geo</h2>") < body.index("<h2>viz</h2>")
        assert body.index("<h2>viz</h2>") < body.index(f"<h2>{UNCATEGORIZED}</h2>")
        assert body.count("<h3>Map</h3>") == 2
        assert "https://example.com/chart" in body
        assert "SECRET-" not in body
        assert 'class="layout-grouped"' in body
        assert 'class="card-thumb"' in body

    def test_only_http_links_reach_the_page(self, client, alice):
        created = client.post("/api/collections", json={"name": "Links"}, headers=alice)
        client.post(
            "/api/artifacts",
            json={
                "name": "Trap",
                "collection_id": created.json()["id"],
                "published_url": "javascript:alert(1)",
                "conversation_url": "HTTPS://example.com/chat/1",
            },
            headers=alice,
        )
        token = client.post("/api/collections/links/share", headers=alice).json()["share_token"]

        body = client.get(f"/share/{token}").text
        assert "javascript:" not in body
        assert "View Artifact" not in body
        assert 'href="HTTPS://example.com/chat/1"' in body

    def test_settings_shape_page(self, client, alice):
        self._collection_with_artifacts(client, alice)
        shared = client.post(
            "/api/collections/demos/share",
            json={"settings": {"showThumbnails": False, "layout": "list"}},
            headers=alice,
        )
        body = client.get(f"/share/{shared.json()['share_token']}").text
        assert 'class="layout-list"' in body
        assert 'class="card-thumb"' not in body

    def test_unshared_collection_is_not_found(self, client, alice):
        self._collection_with_artifacts(client, alice)
        token = client.post("/api/collections/demos/share", headers=alice).json()[
            "share_token"
        ]
        client.delete("/api/collections/demos/share", headers=alice)

        response = client.get(f"/share/{token}")
        assert response.status_code == 404
        assert "404 - Collection Not Found" in response.text

    def test_stale_token_with_public_flag_off(self, client, alice, db):
        from artifact_catalog.db.models import CollectionModel

        self._collection_with_artifacts(client, alice)
        token = client.post("/api/collections/demos/share", headers=alice).json()[
            "share_token"
        ]
        collection = db.query(CollectionModel).filter_by(share_token=token).one()
        collection.is_public = False
        db.commit()

        assert client.get(f"/share/{token}").status_code == 404

    def test_empty_collection(self, client, alice):
        client.post("/api/collections", json={"name": "Empty"}, headers=alice)
        token = client.post("/api/collections/empty/share", headers=alice).json()[
            "share_token"
        ]
        body = client.get(f"/share/{token}").text
        assert "No artifacts in this collection yet." in body
        assert "0 artifacts" in body
