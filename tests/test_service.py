"""Tests for the extended annotation service."""

from datetime import datetime, timedelta, timezone

import pytest

from annotool.core.errors import BadInput, Duplicate, NotFound
from annotool.core.security import Principal
from annotool.models.models import Access
from annotool.services.annotation import ExtendedAnnotationService, ListFilter


async def _video(svc: ExtendedAnnotationService, ext_id: str = "mp-1", **resource):
    return await svc.create_video(ext_id, await svc.create_resource(**resource))


async def _track(svc: ExtendedAnnotationService, video_id: int, name: str = "Track", **resource):
    return await svc.create_track(video_id, name, None, None, await svc.create_resource(**resource))


class TestResources:
    """Resource stamping and access decisions."""

    async def test_user_owns_itself(self, service: ExtendedAnnotationService):
        user = await service.current_user()
        assert user is not None
        assert user.created_by == user.id
        assert user.updated_by == user.id

    async def test_create_resource_stamps_current_user(self, service: ExtendedAnnotationService):
        resource = await service.create_resource(tags={"lang": "en"})
        assert resource.created_by == await service.current_user_id()
        assert resource.access == Access.PRIVATE
        assert resource.tags == {"lang": "en"}
        assert resource.deleted_at is None

    async def test_private_access_matrix(self, service, make_service):
        video = await _video(service, access=Access.PRIVATE)

        bob = make_service(Principal("bob", frozenset({"ROLE_USER"})))
        await bob.create_user("bob", "Bob", None, await bob.create_resource())
        admin = make_service(Principal("root", frozenset({"ROLE_ADMIN"})))
        anonymous = make_service(Principal("anonymous", frozenset({"ROLE_ANONYMOUS"})))

        assert await service.has_resource_access(video)
        assert await service.has_resource_access(video, write=True)
        assert not await bob.has_resource_access(video)
        assert not await anonymous.has_resource_access(video)
        assert await admin.has_resource_access(video, write=True)

    async def test_public_is_readable_not_writable(self, service, make_service):
        video = await _video(service, access=Access.PUBLIC)
        bob = make_service(Principal("bob", frozenset({"ROLE_USER"})))
        await bob.create_user("bob", "Bob", None, await bob.create_resource())

        assert await bob.has_resource_access(video)
        assert not await bob.has_resource_access(video, write=True)

    async def test_ownerless_resource_follows_access_level(self, make_service):
        carol = make_service(Principal("carol", frozenset({"ROLE_USER"})))
        private = await _video(carol, "mp-private", access=Access.PRIVATE)
        public = await _video(carol, "mp-public", access=Access.PUBLIC)
        assert private.created_by is None

        dave = make_service(Principal("dave", frozenset({"ROLE_USER"})))
        await dave.create_user("dave", "Dave", None, await dave.create_resource())
        admin = make_service(Principal("root", frozenset({"ROLE_ADMIN"})))

        assert not await dave.has_resource_access(private)
        assert not await dave.has_resource_access(private, write=True)
        assert not await carol.has_resource_access(private, write=True)
        assert await dave.has_resource_access(public)
        assert not await dave.has_resource_access(public, write=True)
        assert await admin.has_resource_access(private, write=True)


class TestUsersAndVideos:

    async def test_duplicate_video_ext_id(self, service: ExtendedAnnotationService):
        await _video(service, "mp-dup")
        with pytest.raises(Duplicate):
            await _video(service, "mp-dup")

    async def test_deleted_video_hidden_unless_requested(self, service: ExtendedAnnotationService):
        video = await _video(service)
        assert await service.delete_video(video) is True

        assert await service.get_video(video.id) is None
        deleted = await service.get_video(video.id, include_deleted=True)
        assert deleted is not None
        assert deleted.deleted_at is not None
        assert deleted.deleted_by == await service.current_user_id()
        assert await service.get_video_by_ext_id("mp-1") is None

    async def test_second_delete_is_noop(self, service: ExtendedAnnotationService):
        video = await _video(service)
        await service.delete_video(video)
        first_deleted_at = video.deleted_at
        assert await service.delete_video(video) is False
        assert video.deleted_at == first_deleted_at

    async def test_update_user(self, service: ExtendedAnnotationService):
        user = await service.current_user()
        assert await service.update_user(user, ext_id="alice", nickname="Alice", email=None) is False
        assert await service.update_user(user, ext_id="alice", nickname="Ally", email="a@example.org") is True
        assert (await service.get_user_by_ext_id("alice")).nickname == "Ally"

    async def test_delete_video_cascades(self, service: ExtendedAnnotationService):
        video = await _video(service)
        track = await _track(service, video.id)
        annotation = await service.create_annotation(
            track.id, 1.5, 2.0, "hello", 0, None, await service.create_resource()
        )
        comment = await service.create_comment(annotation.id, None, "nice", await service.create_resource())

        await service.delete_video(video)

        assert await service.get_track(track.id) is None
        assert await service.get_annotation(annotation.id) is None
        assert await service.get_comment(comment.id) is None

    async def test_clear_database(self, service: ExtendedAnnotationService):
        video = await _video(service)
        await _track(service, video.id)

        assert await service.clear_database() is True
        assert await service.get_video(video.id, include_deleted=True) is None
        assert await service.current_user() is None


class TestTracksAndAnnotations:

    async def test_track_requires_video(self, service: ExtendedAnnotationService):
        with pytest.raises(NotFound):
            await _track(service, 999)

    async def test_idempotent_update_keeps_timestamp(self, service: ExtendedAnnotationService):
        video = await _video(service)
        track = await _track(service, video.id, "Speech")
        updated_at = track.updated_at

        changed = await service.update_track(track, name="Speech", description=None, settings=None)
        assert changed is False
        assert track.updated_at == updated_at

        changed = await service.update_track(track, name="Music", description=None, settings=None)
        assert changed is True
        assert track.name == "Music"

    async def test_annotation_zero_questionnaire_id(self, service: ExtendedAnnotationService):
        video = await _video(service)
        track = await _track(service, video.id)
        annotation = await service.create_annotation(
            track.id, 0.0, None, "text", 0, None, await service.create_resource()
        )
        assert annotation.created_from_questionnaire == 0
        assert annotation.duration is None

    async def test_delete_track_cascades_annotations(self, service: ExtendedAnnotationService):
        video = await _video(service)
        track = await _track(service, video.id)
        annotation = await service.create_annotation(
            track.id, 3.0, 1.0, "x", 0, None, await service.create_resource()
        )
        await service.delete_track(track)
        assert await service.get_annotation(annotation.id) is None
        assert await service.get_annotations(track.id) == []


class TestComments:

    async def _annotation(self, svc):
        video = await _video(svc)
        track = await _track(svc, video.id)
        return await svc.create_annotation(track.id, 0.0, None, "a", 0, None, await svc.create_resource())

    async def test_threads_and_reply_count(self, service: ExtendedAnnotationService):
        annotation = await self._annotation(service)
        root = await service.create_comment(annotation.id, None, "root", await service.create_resource())
        await service.create_comment(annotation.id, root.id, "reply 1", await service.create_resource())
        await service.create_comment(annotation.id, root.id, "reply 2", await service.create_resource())

        top_level = await service.get_comments(annotation.id)
        assert [c.id for c in top_level] == [root.id]
        assert len(await service.get_comments(annotation.id, root.id)) == 2
        assert await service.count_replies(root.id) == 2

    async def test_delete_comment_deletes_replies(self, service: ExtendedAnnotationService):
        annotation = await self._annotation(service)
        root = await service.create_comment(annotation.id, None, "root", await service.create_resource())
        reply = await service.create_comment(annotation.id, root.id, "reply", await service.create_resource())
        nested = await service.create_comment(annotation.id, reply.id, "nested", await service.create_resource())

        await service.delete_comment(root)

        assert await service.get_comment(reply.id) is None
        assert await service.get_comment(nested.id) is None

    async def test_reply_to_unknown_comment(self, service: ExtendedAnnotationService):
        annotation = await self._annotation(service)
        with pytest.raises(NotFound):
            await service.create_comment(annotation.id, 12345, "orphan", await service.create_resource())


class TestListFilters:

    async def test_tags_and_or(self, service: ExtendedAnnotationService):
        video = await _video(service)
        await _track(service, video.id, "a", tags={"lang": "en", "kind": "speech"})
        await _track(service, video.id, "b", tags={"lang": "de", "kind": "speech"})
        await _track(service, video.id, "c", tags={"lang": "fr"})
        await _track(service, video.id, "d", tags={"lang": "it", "kind": "music"})

        both = await service.get_tracks(video.id, ListFilter(tags_and={"lang": "en", "kind": "speech"}))
        assert [t.name for t in both] == ["a"]

        either = await service.get_tracks(video.id, ListFilter(tags_or={"lang": "fr", "kind": "music"}))
        assert sorted(t.name for t in either) == ["c", "d"]

        none_match = await service.get_tracks(video.id, ListFilter(tags_and={"lang": "en", "kind": "music"}))
        assert none_match == []

    async def test_offset_limit_and_since(self, service: ExtendedAnnotationService):
        video = await _video(service)
        for name in ("a", "b", "c", "d"):
            await _track(service, video.id, name)

        page = await service.get_tracks(video.id, ListFilter(offset=1, limit=2))
        assert [t.name for t in page] == ["b", "c"]

        future = datetime.now(timezone.utc) + timedelta(days=1)
        assert await service.get_tracks(video.id, ListFilter(since=future)) == []
        past = datetime(2000, 1, 1, tzinfo=timezone.utc)
        assert len(await service.get_tracks(video.id, ListFilter(since=past))) == 4

    async def test_lists_skip_unreadable_rows(self, service, make_service):
        video = await _video(service, access=Access.PUBLIC)
        await _track(service, video.id, "private", access=Access.PRIVATE)
        await _track(service, video.id, "shared", access=Access.SHARED_WITH_EVERYONE)

        bob = make_service(Principal("bob", frozenset({"ROLE_USER"})))
        await bob.create_user("bob", "Bob", None, await bob.create_resource())

        assert [t.name for t in await bob.get_tracks(video.id)] == ["shared"]
        assert len(await service.get_tracks(video.id)) == 2


class TestScaleTemplates:

    async def test_copy_scale_template(self, service: ExtendedAnnotationService):
        video = await _video(service)
        template = await service.create_scale(None, "Quality", "how good", await service.create_resource())
        for i, name in enumerate(("bad", "ok", "good")):
            await service.create_scale_value(template.id, name, float(i), i, await service.create_resource())
        dropped = await service.create_scale_value(template.id, "gone", 9.0, 9, await service.create_resource())
        await service.delete_scale_value(dropped)

        copy = await service.create_scale_from_template(video.id, template.id, await service.create_resource())

        assert copy.id != template.id
        assert copy.video_id == video.id
        assert copy.name == "Quality"
        values = await service.get_scale_values(copy.id)
        assert [(v.name, v.value, v.order) for v in values] == [("bad", 0.0, 0), ("ok", 1.0, 1), ("good", 2.0, 2)]
        assert len(await service.get_scales(None)) == 1
        assert [s.id for s in await service.get_scales(video.id)] == [copy.id]

    async def test_missing_template_is_not_found(self, service: ExtendedAnnotationService):
        video = await _video(service)
        with pytest.raises(NotFound):
            await service.create_scale_from_template(video.id, 4242, await service.create_resource())

    async def test_delete_scale_cascades_values(self, service: ExtendedAnnotationService):
        scale = await service.create_scale(None, "S", None, await service.create_resource())
        value = await service.create_scale_value(scale.id, "v", 1.0, 0, await service.create_resource())

        deleted = await service.delete_scale(scale)

        assert deleted.deleted_at is not None
        assert await service.get_scale_value(value.id) is None


class TestQuestionnaires:

    async def test_copy_questionnaire_template(self, service: ExtendedAnnotationService):
        video = await _video(service)
        template = await service.create_questionnaire(None, "Survey", "[]", None, await service.create_resource())

        copy = await service.create_questionnaire_from_template(template.id, video.id, await service.create_resource())

        assert copy is not None
        assert copy.video_id == video.id
        assert copy.title == "Survey"
        assert await service.create_questionnaire_from_template(999, video.id, await service.create_resource()) is None


class TestSeriesCategories:

    async def _master(self, svc, video_id: int):
        master = await svc.create_category(
            "series-1", None, video_id, None, "Emotion", None, None, await svc.create_resource()
        )
        await svc.create_label(master.id, "happy", "H", None, None, await svc.create_resource())
        await svc.create_label(master.id, "sad", "S", None, None, await svc.create_resource())
        return master

    async def test_copy_category_template_with_scale(self, service: ExtendedAnnotationService):
        video = await _video(service)
        scale = await service.create_scale(None, "Intensity", None, await service.create_resource())
        await service.create_scale_value(scale.id, "low", 0.0, 0, await service.create_resource())
        template = await service.create_category(
            None, None, None, scale.id, "Mood", None, None, await service.create_resource()
        )
        await service.create_label(template.id, "calm", "C", None, None, await service.create_resource())

        copy = await service.create_category_from_template(
            template.id, None, None, video.id, await service.create_resource()
        )

        assert copy.video_id == video.id
        assert copy.scale_id != scale.id
        assert (await service.get_scale(copy.scale_id)).video_id == video.id
        labels = await service.get_labels(copy.id)
        assert [(label.value, label.series_label_id) for label in labels] == [("calm", None)]

    async def test_listing_derives_series_copies_once(self, service: ExtendedAnnotationService):
        first = await _video(service, "mp-1")
        second = await _video(service, "mp-2")
        master = await self._master(service, first.id)

        listed = await service.get_categories("series-1", second.id)
        assert len(listed) == 1
        copy = listed[0]
        assert copy.series_category_id == master.id
        assert copy.series_ext_id == "series-1"
        master_labels = {label.id for label in await service.get_labels(master.id)}
        assert {label.series_label_id for label in await service.get_labels(copy.id)} == master_labels

        assert len(await service.get_categories("series-1", second.id)) == 1
        assert [c.id for c in await service.get_categories("series-1", first.id)] == [master.id]

    async def test_master_update_drops_copies(self, service: ExtendedAnnotationService):
        first = await _video(service, "mp-1")
        second = await _video(service, "mp-2")
        master = await self._master(service, first.id)
        [copy] = await service.get_categories("series-1", second.id)

        changed = await service.update_category_and_delete_other_series_categories(
            master,
            series_ext_id="series-1",
            series_category_id=None,
            video_id=first.id,
            scale_id=None,
            name="Feelings",
            description=None,
            settings=None,
        )

        assert changed is True
        assert await service.get_category(copy.id) is None
        [rederived] = await service.get_categories("series-1", second.id)
        assert rederived.name == "Feelings"

    async def test_resolve_series_video_id(self, service: ExtendedAnnotationService):
        first = await _video(service, "mp-1")
        second = await _video(service, "mp-2")
        master = await self._master(service, first.id)

        assert await service.resolve_series_video_id(None, second.id) == second.id
        assert await service.resolve_series_video_id(master.id, second.id) == first.id
        with pytest.raises(BadInput):
            await service.resolve_series_video_id(777, second.id)

    async def test_label_delete_redirects_to_master(self, service: ExtendedAnnotationService):
        first = await _video(service, "mp-1")
        second = await _video(service, "mp-2")
        master = await self._master(service, first.id)
        [copy] = await service.get_categories("series-1", second.id)
        copy_label = (await service.get_labels(copy.id))[0]

        target = await service.resolve_label_delete_target(copy_label)
        assert target.id == copy_label.series_label_id
        assert target.category_id == master.id

        await service.delete_label(target)
        with pytest.raises(NotFound):
            await service.resolve_label_delete_target(copy_label)

    async def test_delete_category_cascades_labels(self, service: ExtendedAnnotationService):
        video = await _video(service)
        master = await self._master(service, video.id)
        labels = await service.get_labels(master.id)

        await service.delete_category(master)

        for label in labels:
            assert await service.get_label(label.id) is None
