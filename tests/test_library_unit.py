"""Unit tests for the video library and folders."""

import pytest

from database.models import SourceVideo, VideoStatus, Folder
from factories import make_video
from services.errors import NotFoundOrDenied, InvalidRequest


class TestLibrary:

    def test_lists_only_completed_videos_and_unfiled_filter(self, services):
        folder = services.library.create_folder("u1", "Clips")
        filed = make_video(services.store, folder_id=folder.id)
        unfiled = make_video(services.store)
        make_video(services.store, status=VideoStatus.PROCESSING, storage_path=None)

        everything = services.library.list_library("u1")
        only_unfiled = services.library.list_library("u1", folder_id="null")
        in_folder = services.library.list_library("u1", folder_id=folder.id)

        assert {v.id for v in everything["videos"]} == {filed.id, unfiled.id}
        assert [v.id for v in only_unfiled["videos"]] == [unfiled.id]
        assert [v.id for v in in_folder["videos"]] == [filed.id]
        assert [f.name for f in everything["folders"]] == ["Clips"]

    def test_delete_is_all_or_nothing(self, services, blob_store, test_settings):
        mine = make_video(services.store)
        theirs = make_video(services.store, user_id="u2")
        blob_store.objects[(test_settings.source_video_bucket, mine.storage_path)] = b"v"

        with pytest.raises(NotFoundOrDenied):
            services.library.delete_videos("u1", [mine.id, theirs.id])

        assert services.store.first(SourceVideo, {"id": mine.id}) is not None
        assert blob_store.objects

        assert services.library.delete_videos("u1", [mine.id]) == 1
        assert services.store.first(SourceVideo, {"id": mine.id}) is None
        assert blob_store.objects == {}

    def test_empty_id_list_rejected(self, services):
        with pytest.raises(InvalidRequest):
            services.library.delete_videos("u1", [])

    def test_move_and_unfile(self, services):
        folder = services.library.create_folder("u1", "Clips")
        video = make_video(services.store)

        services.library.move_videos("u1", [video.id], folder.id)
        assert services.library.get_video(video.id, "u1").folder_id == folder.id

        services.library.move_videos("u1", [video.id], None)
        assert services.library.get_video(video.id, "u1").folder_id is None

    def test_move_into_foreign_folder(self, services):
        folder = services.library.create_folder("u2", "Theirs")
        video = make_video(services.store)

        with pytest.raises(NotFoundOrDenied):
            services.library.move_videos("u1", [video.id], folder.id)


class TestFolders:

    def test_delete_folder_unfiles_its_videos(self, services):
        folder = services.library.create_folder("u1", "Clips")
        video = make_video(services.store, folder_id=folder.id)

        services.library.delete_folder(folder.id, "u1")

        assert services.store.first(Folder, {"id": folder.id}) is None
        assert services.library.get_video(video.id, "u1").folder_id is None

    def test_rename(self, services):
        folder = services.library.create_folder("u1", "Clips")

        renamed = services.library.update_folder(folder.id, "u1", name="  Best clips ")

        assert renamed.name == "Best clips"

    def test_blank_name_rejected(self, services):
        with pytest.raises(InvalidRequest):
            services.library.create_folder("u1", "   ")

    def test_missing_folders_table_lists_nothing(self, services, engine):
        Folder.__table__.drop(engine)

        assert services.library.list_folders("u1") == []
        assert services.library.list_library("u1")["folders"] == []
