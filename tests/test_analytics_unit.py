"""Unit tests for analytics fetching and normalization."""

from unittest.mock import patch

import pytest

from database.models import AccountStatus, SocialShare, ShareStatus, SocialAccount
from factories import make_account, make_reaction, json_response
from services.analytics import normalize
from services.errors import AccountNotFound, InvalidRequest, NotFoundOrDenied, UpstreamProviderError
from services.utils import utcnow

YOUTUBE_STATS = {"items": [{"statistics": {
    "viewCount": "1500", "likeCount": "120", "dislikeCount": "3", "commentCount": "14", "favoriteCount": "0"}}]}
TOTALS = {"columnHeaders": [
    {"name": "estimatedMinutesWatched"}, {"name": "averageViewDuration"},
    {"name": "averageViewPercentage"}, {"name": "shares"}],
    "rows": [[125.5, 41, 63.2, 9]]}
AGE_GENDER = {"columnHeaders": [{"name": "ageGroup"}, {"name": "gender"}, {"name": "viewerPercentage"}],
              "rows": [["age18-24", "female", 30.0], ["age18-24", "male", 20.0], ["age25-34", "male", 50.0]]}
COUNTRIES = {"columnHeaders": [{"name": "country"}, {"name": "views"}], "rows": [["US", 900], ["MX", 600]]}


def unreadable_response():
    response = json_response(None)
    response.json.side_effect = ValueError("not json")
    response.text = "<html>oops</html>"
    return response


@pytest.fixture
def published_share(services):
    account = make_account(services.store, provider="youtube")
    make_reaction(services.store)
    return services.store.insert(SocialShare, {
        "user_id": "u1", "reaction_id": "r1", "provider": "youtube", "social_account_id": account.id,
        "provider_post_id": "vid1", "status": ShareStatus.PUBLISHED, "published_at": utcnow(),
    })


class TestNormalize:

    def test_watch_time_is_split(self):
        result = normalize("youtube", "vid1", {"views": "10"}, {"watch_minutes": 125.5})

        assert result.watch_time.hours == 2
        assert result.watch_time.minutes == 5
        assert result.watch_time.seconds == 30
        assert result.data_source == "real_api"

    def test_garbage_values_become_zero(self):
        result = normalize("tiktok", "p1", {"views": None, "likes": "n/a", "shares": 4})

        assert result.views == 0
        assert result.likes == 0
        assert result.shares == 4
        assert result.data_source == "basic"
        assert result.demographics.countries == {}


class TestFetchAnalytics:

    def test_full_report_is_persisted_on_share(self, services, published_share):
        responses = [json_response(YOUTUBE_STATS), json_response(TOTALS),
                     json_response(AGE_GENDER), json_response(COUNTRIES)]

        with patch("publishers.youtube.requests.get", side_effect=responses):
            result = services.analytics.fetch_analytics("u1", share_id=published_share.id)

        assert result.views == 1500
        assert result.dislikes == 3
        assert result.shares == 9
        assert result.average_view_percentage == 63.2
        assert result.demographics.age_groups == {"age18-24": 50.0, "age25-34": 50.0}
        assert result.demographics.genders == {"female": 30.0, "male": 70.0}
        assert result.demographics.countries == {"US": 900.0, "MX": 600.0}

        stored = services.store.first(SocialShare, {"id": published_share.id})
        assert stored.analytics["views"] == 1500
        assert stored.analytics["watch_time"] == {"hours": 2, "minutes": 5, "seconds": 30}
        assert stored.last_analytics_sync is not None
        account = services.store.first(SocialAccount, {"id": published_share.social_account_id})
        assert account.last_sync_at is not None

    def test_malformed_rich_analytics_degrades_to_basic(self, services, published_share):
        responses = [json_response(YOUTUBE_STATS), json_response(TOTALS), unreadable_response()]

        with patch("publishers.youtube.requests.get", side_effect=responses):
            result = services.analytics.fetch_analytics("u1", share_id=published_share.id)

        assert result.views == 1500
        assert result.data_source == "basic"
        assert result.watch_time.hours == 0

    def test_basic_statistics_failure_propagates(self, services, published_share):
        with patch("publishers.youtube.requests.get", return_value=json_response({"error": {}}, 403)):
            with pytest.raises(UpstreamProviderError):
                services.analytics.fetch_analytics("u1", share_id=published_share.id)

    def test_provider_and_post_id_are_not_persisted(self, services):
        make_account(services.store, provider="tiktok")
        tiktok_stats = {"data": {"videos": [{"id": "p9", "view_count": 77, "like_count": 5,
                                             "comment_count": 1, "share_count": 2}]},
                        "error": {"code": "ok"}}

        with patch("publishers.tiktok.requests.post", return_value=json_response(tiktok_stats)):
            result = services.analytics.fetch_analytics("u1", provider_id="tiktok", post_id="p9")

        assert result.views == 77
        assert result.shares == 2
        assert result.data_source == "basic"
        assert services.store.select(SocialShare) == []

    def test_share_account_not_swapped_for_sibling(self, services, published_share):
        services.store.update(SocialAccount, {"id": published_share.social_account_id},
                              {"status": AccountStatus.DISCONNECTED})
        make_account(services.store, provider="youtube", provider_account_id="other-channel")

        with patch("publishers.youtube.requests.get") as get:
            with pytest.raises(AccountNotFound):
                services.analytics.fetch_analytics("u1", share_id=published_share.id)

        get.assert_not_called()

    def test_foreign_share(self, services, published_share):
        with pytest.raises(NotFoundOrDenied):
            services.analytics.fetch_analytics("u2", share_id=published_share.id)

    def test_unpublished_share(self, services, published_share):
        services.store.update(SocialShare, {"id": published_share.id}, {"status": ShareStatus.FAILED})

        with pytest.raises(InvalidRequest):
            services.analytics.fetch_analytics("u1", share_id=published_share.id)

    def test_key_required(self, services):
        with pytest.raises(InvalidRequest):
            services.analytics.fetch_analytics("u1", provider_id="youtube")


class TestSync:

    def test_sync_skips_failures_and_counts_successes(self, services, published_share):
        responses = [json_response(YOUTUBE_STATS), json_response(TOTALS),
                     json_response(AGE_GENDER), json_response(COUNTRIES)]

        with patch("publishers.youtube.requests.get", side_effect=responses):
            assert services.analytics.sync_published_analytics() == 1

        with patch("publishers.youtube.requests.get", return_value=json_response({}, 500)):
            assert services.analytics.sync_published_analytics() == 0


CHANNEL = {"items": [{"id": "UC1", "statistics": {"subscriberCount": "2500", "viewCount": "90000",
                                                  "videoCount": "42"}}]}
DAILY = {"columnHeaders": [{"name": "day"}, {"name": "views"}, {"name": "estimatedMinutesWatched"},
                           {"name": "subscribersGained"}, {"name": "subscribersLost"}],
         "rows": [["2026-10-01", 300, 950.5, 12, 2], ["2026-10-02", 410, 1200, 9, 4]]}
TOP_VIDEOS = {"columnHeaders": [{"name": "video"}, {"name": "views"}, {"name": "likes"}, {"name": "comments"}],
              "rows": [["vid1", 5000, 400, 31]]}
TIKTOK_USER = {"data": {"user": {"open_id": "tiktok-open-id", "follower_count": 880, "following_count": 12,
                                 "likes_count": 15400, "video_count": 3}},
               "error": {"code": "ok"}}
TIKTOK_VIDEOS = {"data": {"videos": [
    {"id": "v1", "title": "Old", "view_count": 50, "like_count": 5, "comment_count": 0, "share_count": 1},
    {"id": "v2", "title": "Hit", "view_count": 9000, "like_count": 700, "comment_count": 40, "share_count": 66},
]}, "error": {"code": "ok"}}


class TestAccountAnalytics:

    def test_youtube_channel_report(self, services):
        account = make_account(services.store, provider="youtube")
        responses = [json_response(CHANNEL), json_response(DAILY), json_response(TOP_VIDEOS)]

        with patch("publishers.youtube.requests.get", side_effect=responses) as get:
            result = services.analytics.fetch_account_analytics("u1", "youtube")

        assert result.account_id == account.id
        assert result.followers == 2500
        assert result.total_views == 90000
        assert result.video_count == 42
        assert [d.date for d in result.daily] == ["2026-10-01", "2026-10-02"]
        assert result.daily[0].watch_minutes == 950.5
        assert result.daily[1].followers_lost == 4
        assert result.top_videos[0].id == "vid1"
        assert result.top_videos[0].likes == 400
        assert result.data_source == "real_api"
        assert get.call_args_list[1].kwargs["params"]["dimensions"] == "day"
        assert services.store.first(SocialAccount, {"id": account.id}).last_sync_at is not None

    def test_youtube_reports_unavailable_keeps_totals(self, services):
        make_account(services.store, provider="youtube")
        responses = [json_response(CHANNEL), json_response({"error": {"code": 403}}, 403)]

        with patch("publishers.youtube.requests.get", side_effect=responses):
            result = services.analytics.fetch_account_analytics("u1", "youtube")

        assert result.followers == 2500
        assert result.daily == []
        assert result.data_source == "basic"

    def test_tiktok_profile_and_top_videos(self, services):
        make_account(services.store, provider="tiktok")

        with patch("publishers.tiktok.requests.request",
                   side_effect=[json_response(TIKTOK_USER), json_response(TIKTOK_VIDEOS)]) as request:
            result = services.analytics.fetch_account_analytics("u1", "tiktok")

        assert result.followers == 880
        assert result.following == 12
        assert result.total_likes == 15400
        assert [v.id for v in result.top_videos] == ["v2", "v1"]
        assert result.top_videos[0].shares == 66
        user_call, list_call = request.call_args_list
        assert user_call.args == ("GET", "https://open.tiktokapis.com/v2/user/info/")
        assert "follower_count" in user_call.kwargs["params"]["fields"]
        assert list_call.kwargs["json"] == {"max_count": 20}

    def test_tiktok_error_payload_propagates(self, services):
        make_account(services.store, provider="tiktok")
        failed = {"data": {}, "error": {"code": "access_token_invalid", "message": "expired"}}

        with patch("publishers.tiktok.requests.request", return_value=json_response(failed)):
            with pytest.raises(UpstreamProviderError):
                services.analytics.fetch_account_analytics("u1", "tiktok")

    def test_account_of_other_provider_rejected(self, services):
        tiktok = make_account(services.store, provider="tiktok")
        make_account(services.store, provider="youtube")

        with pytest.raises(AccountNotFound):
            services.analytics.fetch_account_analytics("u1", "youtube", account_id=tiktok.id)

    def test_provider_required(self, services):
        with pytest.raises(InvalidRequest):
            services.analytics.fetch_account_analytics("u1", None)
