"""Unit tests for the Meta publishers, which hand the provider a signed URL to pull from."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from factories import json_response
from publishers import registry
from publishers.base import PublishRequest
from publishers.facebook import FacebookPublisher
from publishers.instagram import InstagramPublisher
from services.errors import PublishError

SIGNED_URL = "https://objects.test/reaction-videos/u1/r1/a.mp4?ttl=3600"


def ig_account():
    return SimpleNamespace(id="a1", provider_account_id="ig-1", profile_data=None)


class TestInstagramPublisher:

    def test_container_flow(self):
        publisher = InstagramPublisher(registry.INSTAGRAM, poll_interval=0)
        posts = [json_response({"id": "container-1"}), json_response({"id": "media-9"})]
        polls = [json_response({"status_code": "IN_PROGRESS"}), json_response({"status_code": "FINISHED"})]

        with patch("publishers.instagram.requests.post", side_effect=posts) as post, \
                patch("publishers.instagram.requests.get", side_effect=polls):
            result = publisher.publish(ig_account(), "token",
                                       PublishRequest(title="Hi", description="there", video_url=SIGNED_URL))

        assert result.post_id == "media-9"
        container_payload = post.call_args_list[0].kwargs["data"]
        assert container_payload["video_url"] == SIGNED_URL
        assert container_payload["caption"] == "Hi\n\nthere"
        assert post.call_args_list[1].kwargs["data"]["creation_id"] == "container-1"

    def test_processing_error(self):
        publisher = InstagramPublisher(registry.INSTAGRAM, poll_interval=0)

        with patch("publishers.instagram.requests.post", return_value=json_response({"id": "c1"})), \
                patch("publishers.instagram.requests.get", return_value=json_response({"status_code": "ERROR"})):
            with pytest.raises(PublishError):
                publisher.publish(ig_account(), "token", PublishRequest(title="Hi", video_url=SIGNED_URL))

    def test_processing_timeout(self):
        publisher = InstagramPublisher(registry.INSTAGRAM, poll_interval=0, max_polls=2)

        with patch("publishers.instagram.requests.post", return_value=json_response({"id": "c1"})), \
                patch("publishers.instagram.requests.get",
                      return_value=json_response({"status_code": "IN_PROGRESS"})) as get:
            with pytest.raises(PublishError) as exc:
                publisher.publish(ig_account(), "token", PublishRequest(title="Hi", video_url=SIGNED_URL))

        assert get.call_count == 2
        assert exc.value.raw_body == {"container_id": "c1"}


class TestFacebookPublisher:

    def test_three_phase_upload(self):
        publisher = FacebookPublisher(registry.FACEBOOK, poll_interval=0)
        account = SimpleNamespace(id="a1", provider_account_id="user-1", profile_data={"page_id": "page-1"})
        responses = [
            json_response({"access_token": "page-token"}),
            json_response({"video_id": "v1"}),
            json_response({"success": True}),
            json_response({"status": {"video_status": "ready"}}),
            json_response({"success": True}),
        ]

        with patch("publishers.facebook.requests.request", side_effect=responses) as request:
            result = publisher.publish(account, "user-token", PublishRequest(title="Hi", video_url=SIGNED_URL))

        assert result.post_id == "v1"
        assert result.post_url == "https://www.facebook.com/reel/v1"
        pull_call = request.call_args_list[2]
        assert pull_call.args[1] == "https://rupload.facebook.com/video-upload/v25.0/v1"
        assert pull_call.kwargs["headers"]["file_url"] == SIGNED_URL

    def test_graph_error_is_publish_error(self):
        publisher = FacebookPublisher(registry.FACEBOOK, poll_interval=0)
        account = SimpleNamespace(id="a1", provider_account_id="page-1", profile_data=None)

        with patch("publishers.facebook.requests.request",
                   return_value=json_response({"error": {"message": "Invalid token"}}, 400)):
            with pytest.raises(PublishError) as exc:
                publisher.publish(account, "user-token", PublishRequest(title="Hi", video_url=SIGNED_URL))

        assert exc.value.raw_body == {"error": {"message": "Invalid token"}}
