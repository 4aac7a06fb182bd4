"""Tests for the REST endpoints."""

import pytest
from httpx import AsyncClient

from annotool.core.config import get_settings

API = "/extended-annotations"


def as_user(name: str, *roles: str) -> dict[str, str]:
    return {"X-Annotate-User": name, "X-Annotate-Roles": ",".join(roles or ("ROLE_USER",))}


ALICE = as_user("alice")
BOB = as_user("bob")
ADMIN = as_user("root", "ROLE_ADMIN")


async def _register(client: AsyncClient, headers: dict[str, str], ext_id: str) -> dict:
    response = await client.post(f"{API}/users", data={"user_extid": ext_id, "nickname": ext_id}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def _video(client: AsyncClient, headers=ALICE, ext_id: str = "mp-1", **form) -> dict:
    response = await client.put(f"{API}/videos", data={"video_extid": ext_id, **form}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestService:

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root_info(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["api_prefix"] == API


class TestUsers:

    async def test_create_and_get(self, client: AsyncClient):
        user = await _register(client, ALICE, "alice")
        assert user["user_extid"] == "alice"
        assert user["created_by"] == user["id"]

        response = await client.get(f"{API}/users/{user['id']}", headers=ALICE)
        assert response.status_code == 200
        assert response.json()["nickname"] == "alice"

    async def test_duplicate_post_conflicts(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        response = await client.post(
            f"{API}/users", data={"user_extid": "alice", "nickname": "again"}, headers=ALICE
        )
        assert response.status_code == 409

    async def test_put_upserts(self, client: AsyncClient):
        form = {"user_extid": "alice", "nickname": "Alice"}
        created = await client.put(f"{API}/users", data=form, headers=ALICE)
        assert created.status_code == 201
        assert created.headers["location"].endswith(f"{API}/users/{created.json()['id']}")

        updated = await client.put(f"{API}/users", data={**form, "nickname": "Ally"}, headers=ALICE)
        assert updated.status_code == 200
        assert updated.json()["nickname"] == "Ally"
        assert updated.json()["id"] == created.json()["id"]

    async def test_blank_mandatory_param(self, client: AsyncClient):
        response = await client.post(f"{API}/users", data={"user_extid": "  ", "nickname": "x"}, headers=ALICE)
        assert response.status_code == 400

    async def test_delete_then_get(self, client: AsyncClient):
        user = await _register(client, ALICE, "alice")
        response = await client.delete(f"{API}/users/{user['id']}", headers=ALICE)
        assert response.status_code == 204
        response = await client.get(f"{API}/users/{user['id']}", headers=ALICE)
        assert response.status_code == 404

    async def test_deleted_ext_id_stays_reserved(self, client: AsyncClient):
        user = await _register(client, ALICE, "alice")
        assert (await client.delete(f"{API}/users/{user['id']}", headers=ALICE)).status_code == 204

        form = {"user_extid": "alice", "nickname": "Alice again"}
        assert (await client.put(f"{API}/users", data=form, headers=ALICE)).status_code == 409
        assert (await client.post(f"{API}/users", data=form, headers=ALICE)).status_code == 409

    async def test_malformed_id(self, client: AsyncClient):
        response = await client.get(f"{API}/users/not-a-number", headers=ALICE)
        assert response.status_code == 400

    async def test_is_annotate_admin(self, client: AsyncClient):
        response = await client.get(f"{API}/users/is-annotate-admin/mp-1", headers=ADMIN)
        assert response.status_code == 200
        assert response.text == "true"

        response = await client.get(f"{API}/users/is-annotate-admin/mp-1", headers=ALICE)
        assert response.text == "false"


class TestVideos:

    async def test_private_access_matrix(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        await _register(client, BOB, "bob")
        video = await _video(client, access="0")
        url = f"{API}/videos/{video['id']}"

        assert (await client.get(url, headers=ALICE)).status_code == 200
        assert (await client.get(url, headers=BOB)).status_code == 401
        assert (await client.get(url)).status_code == 401
        assert (await client.get(url, headers=ADMIN)).status_code == 200
        assert (await client.delete(url, headers=BOB)).status_code == 401

    async def test_ownerless_private_video_is_closed(self, client: AsyncClient):
        video = await _video(client, ext_id="mp-9", access="0")
        assert video["created_by"] is None
        await _register(client, BOB, "bob")
        url = f"{API}/videos/{video['id']}"

        assert (await client.get(url, headers=BOB)).status_code == 401
        assert (await client.delete(url, headers=BOB)).status_code == 401
        assert (await client.get(url, headers=ADMIN)).status_code == 200

    async def test_duplicate_post_conflicts(self, client: AsyncClient):
        response = await client.post(f"{API}/videos", data={"video_extid": "mp-9"}, headers=ALICE)
        assert response.status_code == 201
        response = await client.post(f"{API}/videos", data={"video_extid": "mp-9"}, headers=ALICE)
        assert response.status_code == 409

    async def test_annotate_denied(self, client: AsyncClient):
        response = await client.post(f"{API}/videos", data={"video_extid": "locked-mp"}, headers=ALICE)
        assert response.status_code == 403
        response = await client.post(f"{API}/videos", data={"video_extid": "locked-mp"}, headers=ADMIN)
        assert response.status_code == 201

    async def test_bad_tags(self, client: AsyncClient):
        response = await client.post(
            f"{API}/videos", data={"video_extid": "mp-1", "tags": "not json"}, headers=ALICE
        )
        assert response.status_code == 400

    async def test_tags_round_trip(self, client: AsyncClient):
        video = await _video(client, tags='{"lang": "en"}')
        assert video["tags"] == {"lang": "en"}
        assert video["video_extid"] == "mp-1"

    async def test_delete_is_soft_and_cascades(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        video = await _video(client)
        track = await client.post(f"{API}/videos/{video['id']}/tracks", data={"name": "T"}, headers=ALICE)
        assert track.status_code == 201

        assert (await client.delete(f"{API}/videos/{video['id']}", headers=ALICE)).status_code == 204
        assert (await client.get(f"{API}/videos/{video['id']}", headers=ALICE)).status_code == 404
        assert (await client.delete(f"{API}/videos/{video['id']}", headers=ALICE)).status_code == 404


class TestTracksAnnotationsComments:

    async def test_nested_flow(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        video = await _video(client)
        base = f"{API}/videos/{video['id']}/tracks"

        track = await client.post(base, data={"name": "Speech", "tags": '{"kind": "voice"}'}, headers=ALICE)
        assert track.status_code == 201
        track_id = track.json()["id"]
        assert track.headers["location"].endswith(f"/videos/{video['id']}/tracks/{track_id}")

        annotation = await client.post(
            f"{base}/{track_id}/annotations", data={"start": "1.5", "content": "hello"}, headers=ALICE
        )
        assert annotation.status_code == 201
        annotation_id = annotation.json()["id"]
        assert annotation.json()["created_from_questionnaire"] == 0

        comments = f"{base}/{track_id}/annotations/{annotation_id}/comments"
        root = await client.post(comments, data={"text": "first"}, headers=ALICE)
        assert root.status_code == 201
        reply = await client.post(f"{comments}/{root.json()['id']}/replies", data={"text": "re"}, headers=ALICE)
        assert reply.status_code == 201
        assert reply.json()["reply_to_id"] == root.json()["id"]

        listed = await client.get(comments, headers=ALICE)
        body = listed.json()
        assert body["count"] == 1
        assert body["comments"][0]["replies_count"] == 1

        replies = await client.get(f"{comments}/{root.json()['id']}/replies", headers=ALICE)
        assert replies.json()["count"] == 1

        tracks = await client.get(base, params={"tags-and": '{"kind": "voice"}'}, headers=ALICE)
        assert tracks.json()["count"] == 1
        tracks = await client.get(base, params={"tags-or": '{"kind": "music"}'}, headers=ALICE)
        assert tracks.json()["count"] == 0

    async def test_put_track_is_idempotent(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        video = await _video(client)
        base = f"{API}/videos/{video['id']}/tracks"
        track = (await client.post(base, data={"name": "A"}, headers=ALICE)).json()

        response = await client.put(f"{base}/{track['id']}", data={"name": "A"}, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["updated_at"] == track["updated_at"]

    async def test_missing_mandatory_start(self, client: AsyncClient):
        video = await _video(client)
        base = f"{API}/videos/{video['id']}/tracks"
        track = (await client.post(base, data={"name": "A"}, headers=ALICE)).json()
        response = await client.post(f"{base}/{track['id']}/annotations", data={"content": "x"}, headers=ALICE)
        assert response.status_code == 400

    async def test_unknown_parent_video(self, client: AsyncClient):
        response = await client.post(f"{API}/videos/999/tracks", data={"name": "A"}, headers=ALICE)
        assert response.status_code == 400

    async def test_list_filter_validation(self, client: AsyncClient):
        video = await _video(client)
        base = f"{API}/videos/{video['id']}/tracks"
        assert (await client.get(base, params={"since": "yesterday"}, headers=ALICE)).status_code == 400
        assert (await client.get(base, params={"tags-and": "[1,2]"}, headers=ALICE)).status_code == 400
        assert (await client.get(base, params={"since": "", "tags-or": ""}, headers=ALICE)).status_code == 200

        response = await client.get(base, params={"since": "2000-01-01", "offset": "3"}, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["offset"] == 3


class TestScales:

    async def test_video_scale_end_to_end(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        template = await client.post(f"{API}/scales", data={"name": "Quality"}, headers=ALICE)
        assert template.status_code == 201
        template_id = template.json()["id"]
        assert template.json()["video_id"] is None

        for order, name in enumerate(("low", "high")):
            value = await client.post(
                f"{API}/scales/{template_id}/scalevalues",
                data={"name": name, "value": str(order), "order": str(order)},
                headers=ALICE,
            )
            assert value.status_code == 201

        video = await _video(client)
        copy = await client.post(f"{API}/videos/{video['id']}/scales", data={"scale_id": template_id}, headers=ALICE)
        assert copy.status_code == 201
        copy_id = copy.json()["id"]
        assert copy.json()["video_id"] == video["id"]
        assert copy.headers["location"].endswith(f"/videos/{video['id']}/scales/{copy_id}")

        values = await client.get(f"{API}/videos/{video['id']}/scales/{copy_id}/scalevalues", headers=ALICE)
        assert values.status_code == 200
        assert [v["name"] for v in values.json()["scaleValues"]] == ["low", "high"]

        scales = await client.get(f"{API}/videos/{video['id']}/scales", headers=ALICE)
        assert scales.json()["count"] == 1

    async def test_copy_missing_template(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        video = await _video(client)
        response = await client.post(f"{API}/videos/{video['id']}/scales", data={"scale_id": "404"}, headers=ALICE)
        assert response.status_code == 404

    async def test_delete_returns_representation(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        scale = (await client.post(f"{API}/scales", data={"name": "S"}, headers=ALICE)).json()
        response = await client.delete(f"{API}/scales/{scale['id']}", headers=ALICE)
        assert response.status_code == 200
        assert response.json()["deleted_at"] is not None
        assert response.headers["location"].endswith(f"{API}/scales/{scale['id']}")

    async def test_scale_value_needs_scale(self, client: AsyncClient):
        response = await client.post(f"{API}/scales/31/scalevalues", data={"name": "v"}, headers=ALICE)
        assert response.status_code == 400


class TestCategories:

    async def test_label_delete_redirects_to_master(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        first = await _video(client, ext_id="mp-1")
        second = await _video(client, ext_id="mp-2")

        master = await client.post(
            f"{API}/videos/{first['id']}/categories",
            data={"name": "Emotion", "series_extid": "series-1"},
            headers=ALICE,
        )
        assert master.status_code == 201
        master_id = master.json()["id"]
        label = await client.post(
            f"{API}/videos/{first['id']}/categories/{master_id}/labels",
            data={"value": "happy", "abbreviation": "H"},
            headers=ALICE,
        )
        assert label.status_code == 201

        listed = await client.get(
            f"{API}/videos/{second['id']}/categories", params={"series-extid": "series-1"}, headers=ALICE
        )
        [copy] = listed.json()["categories"]
        assert copy["series_category_id"] == master_id
        [copy_label] = copy["labels"]
        assert copy_label["series_label_id"] == label.json()["id"]

        copy_url = f"{API}/videos/{second['id']}/categories/{copy['id']}/labels/{copy_label['id']}"
        response = await client.delete(copy_url, headers=ALICE)
        assert response.status_code == 200
        assert response.json()["id"] == label.json()["id"]
        assert response.json()["deleted_at"] is not None
        assert response.headers["location"] == f"http://test{copy_url}"

        master_label = await client.get(
            f"{API}/videos/{first['id']}/categories/{master_id}/labels/{label.json()['id']}", headers=ALICE
        )
        assert master_label.status_code == 404

    async def test_label_needs_category(self, client: AsyncClient):
        response = await client.post(
            f"{API}/categories/55/labels", data={"value": "v", "abbreviation": "V"}, headers=ALICE
        )
        assert response.status_code == 400

    async def test_put_category_with_unknown_series_master(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        category = (await client.post(f"{API}/categories", data={"name": "C"}, headers=ALICE)).json()
        response = await client.put(
            f"{API}/categories/{category['id']}",
            data={"name": "C2", "series_category_id": "9999"},
            headers=ALICE,
        )
        assert response.status_code == 400

    async def test_delete_missing_category(self, client: AsyncClient):
        response = await client.delete(f"{API}/categories/123", headers=ALICE)
        assert response.status_code == 400


class TestQuestionnaires:

    async def test_template_and_copy(self, client: AsyncClient):
        await _register(client, ALICE, "alice")
        template = await client.post(f"{API}/questionnaires", data={"title": "Survey"}, headers=ALICE)
        assert template.status_code == 201
        assert template.json()["content"] == "[]"

        video = await _video(client)
        copy = await client.post(
            f"{API}/videos/{video['id']}/questionnaires",
            data={"questionnaire_id": template.json()["id"]},
            headers=ALICE,
        )
        assert copy.status_code == 201
        assert copy.json()["video_id"] == video["id"]

        listed = await client.get(f"{API}/questionnaires", headers=ALICE)
        assert listed.json()["count"] == 1


class TestAnnotatePermission:
    """Writes under a video need the host platform's annotate permission; templates do not."""

    @pytest.fixture
    async def locked_video(self, client: AsyncClient) -> dict:
        await _register(client, ALICE, "alice")
        return await _video(client, headers=ADMIN, ext_id="locked-mp")

    async def test_scales(self, client: AsyncClient, locked_video: dict):
        base = f"{API}/videos/{locked_video['id']}/scales"
        assert (await client.post(base, data={"name": "S"}, headers=ALICE)).status_code == 403

        scale = await client.post(base, data={"name": "S"}, headers=ADMIN)
        assert scale.status_code == 201
        scale_url = f"{base}/{scale.json()['id']}"
        assert (await client.put(scale_url, data={"name": "S2"}, headers=ALICE)).status_code == 403
        assert (await client.delete(scale_url, headers=ALICE)).status_code == 403
        response = await client.post(f"{scale_url}/scalevalues", data={"name": "v"}, headers=ALICE)
        assert response.status_code == 403

        template = await client.post(f"{API}/scales", data={"name": "T"}, headers=ALICE)
        assert template.status_code == 201
        copy = await client.post(base, data={"scale_id": template.json()["id"]}, headers=ALICE)
        assert copy.status_code == 403

        assert (await client.get(base, headers=ADMIN)).json()["count"] == 1

    async def test_categories_and_labels(self, client: AsyncClient, locked_video: dict):
        base = f"{API}/videos/{locked_video['id']}/categories"
        assert (await client.post(base, data={"name": "C"}, headers=ALICE)).status_code == 403

        category = await client.post(base, data={"name": "C"}, headers=ADMIN)
        assert category.status_code == 201
        labels_url = f"{base}/{category.json()['id']}/labels"
        response = await client.post(labels_url, data={"value": "v", "abbreviation": "V"}, headers=ALICE)
        assert response.status_code == 403
        response = await client.post(labels_url, data={"value": "v", "abbreviation": "V"}, headers=ADMIN)
        assert response.status_code == 201

    async def test_questionnaires(self, client: AsyncClient, locked_video: dict):
        base = f"{API}/videos/{locked_video['id']}/questionnaires"
        assert (await client.post(base, data={"title": "Q"}, headers=ALICE)).status_code == 403
        assert (await client.post(base, data={"title": "Q"}, headers=ADMIN)).status_code == 201

    async def test_unknown_media_package_is_bad_input(self, client: AsyncClient, media_lookup):
        video = await _video(client, ext_id="mp-gone")
        media_lookup.open_lookup = False
        response = await client.post(f"{API}/videos/{video['id']}/scales", data={"name": "S"}, headers=ALICE)
        assert response.status_code == 400


class TestAdmin:

    async def test_clear_database_disabled_by_default(self, client: AsyncClient):
        response = await client.delete(f"{API}/admin/database", headers=ADMIN)
        assert response.status_code == 404

    async def test_clear_database(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(get_settings(), "enable_clear_database", True)
        video = await _video(client)

        assert (await client.delete(f"{API}/admin/database", headers=ALICE)).status_code == 403
        assert (await client.delete(f"{API}/admin/database", headers=ADMIN)).status_code == 204
        assert (await client.get(f"{API}/videos/{video['id']}", headers=ADMIN)).status_code == 404
