# publishers/tiktok.py
import os
import json
import logging

import requests

from publishers.base import BasePublisher, PublishResult
from publishers.multipart import encode_multipart
from publishers.registry import Endpoint
from services.errors import PublishError, UpstreamProviderError

logger = logging.getLogger("TikTok-API")

PRIVACY_LEVELS = {
    "public": "PUBLIC_TO_EVERYONE",
    "unlisted": "MUTUAL_FOLLOW_FRIENDS",
    "private": "SELF_ONLY",
}

STATISTIC_FIELDS = "id,title,view_count,like_count,comment_count,share_count"
ACCOUNT_FIELDS = "open_id,display_name,follower_count,following_count,likes_count,video_count"
RECENT_VIDEO_COUNT = 20
TOP_VIDEO_COUNT = 5


def _error_payload(data):
    """TikTok reports failures either in an 'error' object or in data.err_code."""
    if not isinstance(data, dict):
        return "Unexpected response"
    error = data.get("error")
    if isinstance(error, dict) and error.get("code") not in (None, "", "ok"):
        return error.get("message") or error.get("code")
    if isinstance(error, str) and error:
        return data.get("error_description") or error
    inner = data.get("data") or {}
    if isinstance(inner, dict) and inner.get("err_code") not in (None, 0, "0"):
        return inner.get("error_msg") or f"err_code {inner.get('err_code')}"
    return None


class TikTokPublisher(BasePublisher):
    """TikTok upload with a hand-encoded multipart body, plus per-video statistics."""

    def publish(self, account, access_token, request):
        upload_url = self.provider.endpoint(Endpoint.UPLOAD)
        file_name = os.path.basename(request.video_path)

        with open(request.video_path, "rb") as f:
            payload = f.read()

        fields = {
            "title": request.title,
            "description": request.description,
            "privacy_level": PRIVACY_LEVELS.get(request.privacy, "SELF_ONLY"),
            "tags": " ".join(f"#{t.lstrip('#')}" for t in request.tags),
        }
        body, content_type = encode_multipart(fields, "video", file_name, payload)

        logger.info(f"[TikTok] Uploading {len(payload)} bytes for account {account.id}")
        try:
            res = requests.post(
                upload_url,
                params={"open_id": account.provider_account_id},
                headers={"Authorization": f"Bearer {access_token}", "Content-Type": content_type},
                data=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"[TikTok] Connection error during upload: {e}")
            raise PublishError("Could not reach TikTok", raw_body=str(e), provider="tiktok")

        try:
            res_json = res.json()
        except ValueError:
            res_json = {"body": res.text[:2000]}

        error = _error_payload(res_json)
        if not res.ok or error:
            logger.error(f"[TikTok] Upload rejected (HTTP {res.status_code}): {json.dumps(res_json)[:500]}")
            raise PublishError(f"TikTok rejected the upload: {error or res.status_code}",
                               raw_body=res_json, provider="tiktok")

        data = res_json.get("data") or {}
        post_id = data.get("share_id") or data.get("publish_id") or data.get("video_id")
        if not post_id:
            raise PublishError("TikTok did not return a post id", raw_body=res_json, provider="tiktok")

        post_url = None
        if data.get("video_id") and account.provider_username:
            post_url = f"https://www.tiktok.com/@{account.provider_username}/video/{data['video_id']}"

        logger.info(f"[TikTok] Video submitted. ID: {post_id}")
        return PublishResult(post_id=str(post_id), post_url=post_url)

    def fetch_statistics(self, account, access_token, post_id):
        try:
            res = requests.post(
                self.provider.endpoint(Endpoint.ANALYTICS),
                params={"fields": STATISTIC_FIELDS},
                headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
                json={"filters": {"video_ids": [post_id]}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamProviderError("Could not reach TikTok", raw_body=str(e), provider="tiktok")

        data = self._json(res, "statistics")
        error = _error_payload(data)
        if error:
            raise UpstreamProviderError("TikTok statistics request failed", raw_body=data, provider="tiktok")

        videos = (data.get("data") or {}).get("videos") or []
        video = videos[0] if videos else {}
        return {
            "views": video.get("view_count", 0),
            "likes": video.get("like_count", 0),
            "comments": video.get("comment_count", 0),
            "shares": video.get("share_count", 0),
        }

    def _api(self, method, endpoint, what, **kwargs):
        headers = {"Authorization": f"Bearer {kwargs.pop('access_token')}", "Content-Type": "application/json"}
        try:
            res = requests.request(method, self.provider.endpoint(endpoint), headers=headers,
                                   timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise UpstreamProviderError("Could not reach TikTok", raw_body=str(e), provider="tiktok")
        data = self._json(res, what)
        if _error_payload(data):
            raise UpstreamProviderError(f"TikTok {what} request failed", raw_body=data, provider="tiktok")
        return data.get("data") or {}

    def fetch_account_analytics(self, account, access_token, since=None):
        user = self._api("GET", Endpoint.USER_INFO, "user info", access_token=access_token,
                         params={"fields": ACCOUNT_FIELDS}).get("user") or {}
        result = {
            "followers": user.get("follower_count", 0),
            "following": user.get("following_count", 0),
            "total_likes": user.get("likes_count", 0),
            "video_count": user.get("video_count", 0),
        }

        try:
            videos = self._api("POST", Endpoint.VIDEOS, "video list", access_token=access_token,
                               params={"fields": f"{STATISTIC_FIELDS},create_time"},
                               json={"max_count": RECENT_VIDEO_COUNT}).get("videos") or []
        except UpstreamProviderError as e:
            logger.warning(f"[TikTok] Video list unavailable for account {account.id}: {e.message}")
            return result

        if since:
            videos = [v for v in videos if (v.get("create_time") or 0) >= since.timestamp()]
        videos.sort(key=lambda v: v.get("view_count") or 0, reverse=True)
        result["top_videos"] = [{
            "id": v.get("id"),
            "title": v.get("title"),
            "views": v.get("view_count", 0),
            "likes": v.get("like_count", 0),
            "comments": v.get("comment_count", 0),
            "shares": v.get("share_count", 0),
        } for v in videos[:TOP_VIDEO_COUNT]]
        return result
