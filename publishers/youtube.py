# publishers/youtube.py
import logging
from datetime import date, timedelta

import requests
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from publishers.base import BasePublisher, PublishResult
from publishers.registry import Endpoint
from services.errors import InvalidRequest, NotFoundOrDenied, PublishError, UpstreamProviderError

logger = logging.getLogger("YouTube-API")

PEOPLE_AND_BLOGS = "22"
YOUTUBE_EPOCH = "2005-02-14"
PRIVACY_STATUSES = ("public", "unlisted", "private")
PAGE_SIZE = 50
CHANNEL_WINDOW_DAYS = 30


def _http_error_body(error: HttpError):
    content = getattr(error, "content", b"") or b""
    return content.decode("utf-8", errors="replace") if isinstance(content, bytes) else str(content)


def _report_rows(report):
    """Turns an Analytics API report into a list of {column: value} dicts."""
    headers = [h.get("name") for h in report.get("columnHeaders", [])]
    return [dict(zip(headers, row)) for row in report.get("rows") or []]


def _thumbnail(snippet):
    thumbnails = snippet.get("thumbnails") or {}
    return (thumbnails.get("medium") or thumbnails.get("default") or {}).get("url")


def _playlist_summary(item):
    snippet = item.get("snippet") or {}
    return {
        "id": item.get("id"),
        "title": snippet.get("title"),
        "description": snippet.get("description", ""),
        "item_count": (item.get("contentDetails") or {}).get("itemCount", 0),
        "visibility": (item.get("status") or {}).get("privacyStatus"),
        "thumbnail_url": _thumbnail(snippet),
        "created_at": snippet.get("publishedAt"),
    }


def _playlist_entry(item):
    snippet = item.get("snippet") or {}
    return {
        "video_id": (snippet.get("resourceId") or {}).get("videoId"),
        "item_id": item.get("id"),
        "title": snippet.get("title"),
        "description": snippet.get("description", ""),
        "thumbnail_url": _thumbnail(snippet),
        "position": snippet.get("position"),
        "published_at": snippet.get("publishedAt"),
    }


class YouTubePublisher(BasePublisher):
    """Uploads through the YouTube Data API v3 client; statistics through the REST endpoints."""

    def _service(self, access_token):
        credentials = Credentials(token=access_token)
        return build("youtube", "v3", credentials=credentials, cache_discovery=False)

    def publish(self, account, access_token, request):
        logger.info(f"Starting YouTube upload process for: {request.title}")
        youtube = self._service(access_token)

        body = {
            "snippet": {
                "title": request.title[:100],
                "description": request.description or "",
                "tags": request.tags,
                "categoryId": PEOPLE_AND_BLOGS,
            },
            "status": {
                "privacyStatus": request.privacy if request.privacy in PRIVACY_STATUSES else "private",
                "selfDeclaredMadeForKids": False,
            },
        }
        media = MediaFileUpload(request.video_path, mimetype="video/mp4", resumable=True)

        try:
            response = youtube.videos().insert(part="snippet,status", body=body, media_body=media).execute()
        except HttpError as e:
            logger.error(f"YouTube upload failed with HTTP {e.resp.status}")
            raise PublishError("YouTube rejected the upload", raw_body=_http_error_body(e), provider="youtube")

        video_id = response.get("id")
        if not video_id:
            raise PublishError("YouTube did not return a video id", raw_body=response, provider="youtube")
        logger.info(f"SUCCESS! YouTube Video ID: {video_id}")

        result = PublishResult(post_id=video_id, post_url=f"https://www.youtube.com/watch?v={video_id}")
        if request.playlist_id:
            try:
                self.add_to_playlist(youtube, request.playlist_id, video_id)
            except HttpError as e:
                # The video is live; a playlist failure is recorded but does not fail the share
                logger.warning(f"Could not add {video_id} to playlist {request.playlist_id}: HTTP {e.resp.status}")
                result.extra["playlist_error"] = _http_error_body(e)[:500]
        return result

    @staticmethod
    def add_to_playlist(youtube, playlist_id, video_id):
        return youtube.playlistItems().insert(
            part="snippet",
            body={"snippet": {"playlistId": playlist_id, "resourceId": {"kind": "youtube#video", "videoId": video_id}}},
        ).execute()

    # --- Playlists ---

    def _translate(self, error: HttpError, what: str, missing: str):
        if error.resp.status == 404:
            return NotFoundOrDenied(missing)
        logger.error(f"[Playlists] YouTube {what} failed with HTTP {error.resp.status}")
        return UpstreamProviderError(f"YouTube {what} request failed", raw_body=_http_error_body(error),
                                     provider="youtube")

    def _run(self, request, what: str, missing: str = "Playlist not found"):
        try:
            return request.execute()
        except HttpError as e:
            raise self._translate(e, what, missing)

    def _playlist_item(self, youtube, playlist_id):
        response = self._run(youtube.playlists().list(part="snippet,contentDetails,status", id=playlist_id),
                             "playlist lookup")
        items = response.get("items") or []
        if not items:
            raise NotFoundOrDenied("Playlist not found")
        return items[0]

    def list_playlists(self, account, access_token):
        youtube = self._service(access_token)
        response = self._run(youtube.playlists().list(
            part="snippet,contentDetails,status", mine=True, maxResults=PAGE_SIZE), "playlist listing")
        return [_playlist_summary(item) for item in response.get("items") or []]

    def get_playlist(self, account, access_token, playlist_id):
        return _playlist_summary(self._playlist_item(self._service(access_token), playlist_id))

    def create_playlist(self, account, access_token, title, description="", privacy="private"):
        if privacy not in PRIVACY_STATUSES:
            raise InvalidRequest(f"Unknown playlist privacy '{privacy}'")
        youtube = self._service(access_token)
        created = self._run(youtube.playlists().insert(part="snippet,status", body={
            "snippet": {"title": title, "description": description or ""},
            "status": {"privacyStatus": privacy},
        }), "playlist creation")
        logger.info(f"[Playlists] Created playlist {created.get('id')} for account {account.id}")
        return _playlist_summary(created)

    def update_playlist(self, account, access_token, playlist_id, title=None, description=None, privacy=None):
        if privacy is not None and privacy not in PRIVACY_STATUSES:
            raise InvalidRequest(f"Unknown playlist privacy '{privacy}'")
        youtube = self._service(access_token)
        # playlists.update replaces the whole snippet, so unchanged fields are carried over
        current = self._playlist_item(youtube, playlist_id)
        snippet = current.get("snippet") or {}
        updated = self._run(youtube.playlists().update(part="snippet,status", body={
            "id": playlist_id,
            "snippet": {
                "title": title if title is not None else snippet.get("title"),
                "description": description if description is not None else snippet.get("description", ""),
            },
            "status": {"privacyStatus": privacy or (current.get("status") or {}).get("privacyStatus", "private")},
        }), "playlist update")
        updated.setdefault("contentDetails", current.get("contentDetails"))
        return _playlist_summary(updated)

    def delete_playlist(self, account, access_token, playlist_id):
        self._run(self._service(access_token).playlists().delete(id=playlist_id), "playlist deletion")
        logger.info(f"[Playlists] Deleted playlist {playlist_id} for account {account.id}")

    def list_playlist_items(self, account, access_token, playlist_id):
        youtube = self._service(access_token)
        response = self._run(youtube.playlistItems().list(
            part="snippet,contentDetails", playlistId=playlist_id, maxResults=PAGE_SIZE), "playlist items")
        return [_playlist_entry(item) for item in response.get("items") or []]

    def add_playlist_item(self, account, access_token, playlist_id, video_id):
        try:
            item = self.add_to_playlist(self._service(access_token), playlist_id, video_id)
        except HttpError as e:
            raise self._translate(e, "playlist insert", "Playlist or video not found")
        return _playlist_entry(item)

    def remove_playlist_item(self, account, access_token, item_id):
        self._run(self._service(access_token).playlistItems().delete(id=item_id), "playlist item removal",
                  missing="Playlist item not found")

    def _get(self, url, access_token, params, what):
        try:
            res = requests.get(url, params=params, headers={"Authorization": f"Bearer {access_token}"},
                               timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamProviderError("Could not reach YouTube", raw_body=str(e), provider="youtube")
        return self._json(res, what)

    def fetch_statistics(self, account, access_token, post_id):
        data = self._get(self.provider.endpoint(Endpoint.VIDEOS), access_token,
                         {"part": "statistics", "id": post_id}, "statistics")
        items = data.get("items") or []
        stats = items[0].get("statistics", {}) if items else {}
        return {
            "views": stats.get("viewCount", 0),
            "likes": stats.get("likeCount", 0),
            "dislikes": stats.get("dislikeCount", 0),
            "comments": stats.get("commentCount", 0),
            "favorites": stats.get("favoriteCount", 0),
        }

    def fetch_rich_analytics(self, account, access_token, post_id, since=None):
        url = self.provider.endpoint(Endpoint.ANALYTICS)
        base = {
            "ids": "channel==MINE",
            "startDate": since.strftime("%Y-%m-%d") if since else YOUTUBE_EPOCH,
            "endDate": date.today().strftime("%Y-%m-%d"),
            "filters": f"video=={post_id}",
        }

        totals = _report_rows(self._get(url, access_token, dict(
            base, metrics="estimatedMinutesWatched,averageViewDuration,averageViewPercentage,shares"), "analytics"))
        by_age_gender = _report_rows(self._get(url, access_token, dict(
            base, dimensions="ageGroup,gender", metrics="viewerPercentage"), "demographics"))
        by_country = _report_rows(self._get(url, access_token, dict(
            base, dimensions="country", metrics="views"), "geography"))

        row = totals[0] if totals else {}
        age_groups, genders = {}, {}
        for r in by_age_gender:
            pct = float(r.get("viewerPercentage") or 0)
            age_groups[r.get("ageGroup")] = age_groups.get(r.get("ageGroup"), 0) + pct
            genders[r.get("gender")] = genders.get(r.get("gender"), 0) + pct

        return {
            "watch_minutes": row.get("estimatedMinutesWatched", 0),
            "average_view_duration": row.get("averageViewDuration", 0),
            "average_view_percentage": row.get("averageViewPercentage", 0),
            "shares": row.get("shares", 0),
            "demographics": {
                "age_groups": age_groups,
                "genders": genders,
                "countries": {r.get("country"): r.get("views", 0) for r in by_country},
            },
        }

    def fetch_account_analytics(self, account, access_token, since=None):
        """Channel totals from the Data API, plus daily and top-video reports from the Analytics API."""
        channel = self._get(self.provider.endpoint(Endpoint.USER_INFO), access_token, None, "channel")
        items = channel.get("items") or []
        stats = items[0].get("statistics", {}) if items else {}
        result = {
            "followers": stats.get("subscriberCount", 0),
            "total_views": stats.get("viewCount", 0),
            "video_count": stats.get("videoCount", 0),
        }

        start = since or (date.today() - timedelta(days=CHANNEL_WINDOW_DAYS))
        url = self.provider.endpoint(Endpoint.ANALYTICS)
        base = {"ids": "channel==MINE", "startDate": start.strftime("%Y-%m-%d"),
                "endDate": date.today().strftime("%Y-%m-%d")}
        try:
            daily = _report_rows(self._get(url, access_token, dict(
                base, dimensions="day", sort="day",
                metrics="views,estimatedMinutesWatched,subscribersGained,subscribersLost"), "channel analytics"))
            top = _report_rows(self._get(url, access_token, dict(
                base, dimensions="video", sort="-views", maxResults=5,
                metrics="views,likes,comments"), "top videos"))
        except UpstreamProviderError as e:
            # Channel totals stand on their own when the Analytics API is not authorized
            logger.warning(f"[Analytics] Channel reports unavailable for account {account.id}: {e.message}")
            return result

        result["daily"] = [{
            "date": r.get("day"),
            "views": r.get("views", 0),
            "watch_minutes": r.get("estimatedMinutesWatched", 0),
            "followers_gained": r.get("subscribersGained", 0),
            "followers_lost": r.get("subscribersLost", 0),
        } for r in daily]
        result["top_videos"] = [{
            "id": r.get("video"),
            "views": r.get("views", 0),
            "likes": r.get("likes", 0),
            "comments": r.get("comments", 0),
        } for r in top]
        return result
