import time
import logging

import requests

from publishers.base import BasePublisher, PublishResult
from publishers.registry import Endpoint
from services.errors import PublishError, UpstreamProviderError

# Set up specialized logger for Facebook
logger = logging.getLogger("Facebook-API")


class FacebookPublisher(BasePublisher):
    """
    Video Reels publishing on Facebook Pages using the Graph API.
    Implements the 3-phase upload: start session, ask Meta to pull the file, finish.
    """
    pulls_from_url = True

    def __init__(self, provider, timeout: int = 60, poll_interval: float = 15, max_polls: int = 15):
        super().__init__(provider, timeout)
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    @property
    def base_graph_url(self):
        return self.provider.endpoint(Endpoint.UPLOAD)

    @property
    def base_rupload_url(self):
        version = self.base_graph_url.rstrip("/").rsplit("/", 1)[-1]
        return f"https://rupload.facebook.com/video-upload/{version}"

    def _call(self, method, url, what, **kwargs):
        try:
            res = requests.request(method, url, timeout=self.timeout, **kwargs)
            data = res.json()
        except requests.RequestException as e:
            logger.error(f"[FB] Connection error during {what}: {e}")
            raise PublishError("Could not reach Facebook", raw_body=str(e), provider="facebook")
        except ValueError:
            raise PublishError(f"Facebook {what} returned an unreadable response", provider="facebook")
        if not res.ok or "error" in data:
            logger.error(f"[FB] {what} failed. Response: {data}")
            raise PublishError(f"Facebook {what} failed", raw_body=data, provider="facebook")
        return data

    def get_page_access_token(self, page_id, access_token):
        """Exchanges the user access token for the page's own token."""
        data = self._call("GET", f"{self.base_graph_url}/{page_id}", "page token exchange",
                          params={"fields": "access_token", "access_token": access_token})
        if not data.get("access_token"):
            raise PublishError("Facebook page token unavailable", raw_body=data, provider="facebook")
        return data["access_token"]

    def publish(self, account, access_token, request):
        page_id = (account.profile_data or {}).get("page_id") or account.provider_account_id
        page_token = self.get_page_access_token(page_id, access_token)
        reels_url = f"{self.base_graph_url}/{page_id}/video_reels"

        # PHASE 1: Initialize upload session
        logger.info(f"[FB] PHASE 1: Initializing session for Page {page_id}...")
        init_res = self._call("POST", reels_url, "session start",
                              data={"upload_phase": "start", "access_token": page_token})
        video_id = init_res.get("video_id")
        if not video_id:
            raise PublishError("Facebook did not open an upload session", raw_body=init_res, provider="facebook")

        # PHASE 2: Meta pulls the file from the signed URL
        logger.info(f"[FB] PHASE 2: Requesting Meta to pull video {video_id}...")
        upload_res = self._call("POST", f"{self.base_rupload_url}/{video_id}", "pull request",
                                headers={"Authorization": f"OAuth {page_token}", "file_url": request.video_url})
        if not upload_res.get("success"):
            raise PublishError("Facebook refused the pull request", raw_body=upload_res, provider="facebook")

        self._wait_for_upload(video_id, page_token)

        # PHASE 3: Finalize publication
        logger.info(f"[FB] PHASE 3: Finalizing publication for video_id: {video_id}...")
        description = "\n\n".join(p for p in (request.title, request.description) if p)
        final_res = self._call("POST", reels_url, "finish", data={
            "upload_phase": "finish",
            "video_id": video_id,
            "video_state": "PUBLISHED",
            "description": description,
            "access_token": page_token,
        })
        if not final_res.get("success"):
            raise PublishError("Facebook did not publish the reel", raw_body=final_res, provider="facebook")

        logger.info(f"[FB] Reel published successfully to Page {page_id}")
        return PublishResult(post_id=str(video_id), post_url=f"https://www.facebook.com/reel/{video_id}")

    def _wait_for_upload(self, video_id, page_token):
        for attempt in range(1, self.max_polls + 1):
            status_res = self._call("GET", f"{self.base_graph_url}/{video_id}", "status poll",
                                    params={"fields": "status", "access_token": page_token})
            current_state = (status_res.get("status") or {}).get("video_status")
            logger.info(f"[FB] Polling attempt {attempt}/{self.max_polls}: '{current_state}'")
            if current_state in ("upload_complete", "ready"):
                return
            if current_state == "error":
                raise PublishError("Facebook could not process the video", raw_body=status_res,
                                   provider="facebook")
            time.sleep(self.poll_interval)
        raise PublishError("Facebook upload timed out", raw_body={"video_id": video_id}, provider="facebook")

    def fetch_statistics(self, account, access_token, post_id):
        try:
            res = requests.get(f"{self.base_graph_url}/{post_id}",
                               params={"fields": "views,likes.summary(true),comments.summary(true)",
                                       "access_token": access_token},
                               timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamProviderError("Could not reach Facebook", raw_body=str(e), provider="facebook")
        data = self._json(res, "statistics")
        return {
            "views": data.get("views", 0),
            "likes": ((data.get("likes") or {}).get("summary") or {}).get("total_count", 0),
            "comments": ((data.get("comments") or {}).get("summary") or {}).get("total_count", 0),
        }
