"""Unit tests for reaction records, upload targets and completion."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from database.models import ReactionStatus
from factories import make_reaction, make_video
from services.errors import NotFoundOrDenied, MediaNotReady, InvalidRequest
from services.utils import sanitize_file_name


class TestSanitizeFileName:

    def test_unsafe_characters_become_underscores(self):
        assert sanitize_file_name("my video!!.mp4") == "my_video__.mp4"

    def test_safe_names_untouched(self):
        assert sanitize_file_name("Clip-01_final.MP4") == "Clip-01_final.MP4"

    def test_path_separators_removed(self):
        assert "/" not in sanitize_file_name("../../etc/passwd")


class TestUploadTarget:

    def test_path_is_deterministic(self, services):
        make_reaction(services.store, storage_path=None)

        first = services.reactions.request_upload_target("r1", "u1", "my video!!.mp4")
        second = services.reactions.request_upload_target("r1", "u1", "my video!!.mp4")

        assert first == second == "u1/r1/my_video__.mp4"

    def test_other_users_reaction_is_not_found(self, services):
        make_reaction(services.store, user_id="u2", storage_path=None)

        with pytest.raises(NotFoundOrDenied):
            services.reactions.request_upload_target("r1", "u1", "clip.mp4")

    def test_blank_file_name_rejected(self, services):
        make_reaction(services.store, storage_path=None)

        with pytest.raises(InvalidRequest):
            services.reactions.request_upload_target("r1", "u1", "")


class TestCompleteUpload:

    def test_last_write_wins(self, services):
        make_reaction(services.store, storage_path=None)

        services.reactions.complete_upload("r1", "u1", "u1/r1/first.mp4")
        reaction = services.reactions.complete_upload("r1", "u1", "u1/r1/second.mp4")

        assert reaction.reaction_video_storage_path == "u1/r1/second.mp4"
        assert reaction.status == ReactionStatus.UPLOADED

    def test_repeat_call_touches_updated_at(self, services):
        make_reaction(services.store, storage_path=None)
        first_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

        with patch("services.reactions.utcnow", side_effect=[first_at, first_at + timedelta(minutes=5)]):
            first = services.reactions.complete_upload("r1", "u1", "u1/r1/reaction.mp4")
            second = services.reactions.complete_upload("r1", "u1", "u1/r1/reaction.mp4")

        assert second.reaction_video_storage_path == first.reaction_video_storage_path
        assert second.updated_at - first.updated_at == timedelta(minutes=5)

    def test_wrong_owner(self, services):
        make_reaction(services.store, storage_path=None)

        with pytest.raises(NotFoundOrDenied):
            services.reactions.complete_upload("r1", "u2", "u2/r1/x.mp4")

        assert services.reactions.get_reaction("r1", "u1").reaction_video_storage_path is None


class TestDownloadUrl:

    def test_signed_url_uses_configured_ttl(self, services, test_settings):
        make_reaction(services.store)

        url = services.reactions.get_download_url("r1", "u1")

        assert url == f"https://objects.test/{test_settings.reaction_video_bucket}/u1/r1/reaction.mp4?ttl=300"

    def test_not_uploaded_yet(self, services):
        make_reaction(services.store, storage_path=None)

        with pytest.raises(MediaNotReady):
            services.reactions.get_download_url("r1", "u1")


class TestLookup:

    def test_matches_by_id_and_by_url(self, services):
        video = make_video(services.store, public_url="https://objects.test/source/u1/v.mp4")
        services.reactions.create_reaction("u1", title="by id", source_video_id=video.id)
        services.reactions.create_reaction("u1", title="by url", source_video_url=video.original_url)
        services.reactions.create_reaction("u1", title="unrelated", source_video_url="https://vimeo.com/9")
        services.reactions.create_reaction("u2", title="other user", source_video_url=video.original_url)

        titles = {r.title for r in services.reactions.lookup_by_source_video(video.id, "u1")}

        assert titles == {"by id", "by url"}

    def test_create_copies_source_url(self, services):
        video = make_video(services.store)

        reaction = services.reactions.create_reaction("u1", source_video_id=video.id)

        assert reaction.source_video_url == video.original_url
        assert reaction.status == ReactionStatus.PENDING_UPLOAD

    def test_foreign_source_video(self, services):
        video = make_video(services.store, user_id="u2")

        with pytest.raises(NotFoundOrDenied):
            services.reactions.lookup_by_source_video(video.id, "u1")
