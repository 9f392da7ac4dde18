# publishers/instagram.py
import time
import logging

import requests

from publishers.base import BasePublisher, PublishResult
from publishers.registry import Endpoint
from services.errors import PublishError, UpstreamProviderError

logger = logging.getLogger("Instagram-API")


class InstagramPublisher(BasePublisher):
    """
    Reels publishing through the Graph API container flow. Meta pulls the video
    from a short-lived signed URL, so no local file is involved.
    """
    pulls_from_url = True

    def __init__(self, provider, timeout: int = 60, poll_interval: float = 20, max_polls: int = 20):
        super().__init__(provider, timeout)
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    @property
    def base_url(self):
        return self.provider.endpoint(Endpoint.UPLOAD)

    def publish(self, account, access_token, request):
        ig_id = account.provider_account_id
        caption = "\n\n".join(p for p in (request.title, request.description) if p)
        logger.info(f"[Instagram] Starting Reel upload for ID: {ig_id}")

        container_id = self._create_container(ig_id, access_token, request.video_url, caption)
        self._wait_for_processing(container_id, access_token)
        media_id = self._publish_container(ig_id, access_token, container_id)
        return PublishResult(post_id=media_id)

    def _post(self, url, payload, what):
        try:
            res = requests.post(url, data=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[Instagram] API connection error ({what}): {e}")
            raise PublishError("Could not reach Instagram", raw_body=str(e), provider="instagram")
        try:
            data = res.json()
        except ValueError:
            data = {"body": res.text[:2000]}
        if not res.ok or "error" in data:
            logger.error(f"[Instagram] {what} failed: {data}")
            raise PublishError(f"Instagram {what} failed", raw_body=data, provider="instagram")
        return data

    def _create_container(self, ig_id, access_token, video_url, caption):
        data = self._post(f"{self.base_url}/{ig_id}/media", {
            "media_type": "REELS",
            "video_url": video_url,
            "caption": caption,
            "access_token": access_token,
        }, "container creation")
        logger.info(f"[Instagram] Container created: {data.get('id')}")
        return data["id"]

    def _wait_for_processing(self, container_id, access_token):
        params = {"fields": "status_code", "access_token": access_token}
        for attempt in range(1, self.max_polls + 1):
            try:
                res = requests.get(f"{self.base_url}/{container_id}", params=params, timeout=self.timeout).json()
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"[Instagram] Polling error: {e}")
                res = {}
            status = res.get("status_code")
            logger.info(f"[Instagram] Processing status: {status} (Attempt {attempt})")
            if status == "FINISHED":
                return
            if status == "ERROR":
                raise PublishError("Instagram could not process the video", raw_body=res, provider="instagram")
            time.sleep(self.poll_interval)
        raise PublishError("Instagram processing timed out", raw_body={"container_id": container_id},
                           provider="instagram")

    def _publish_container(self, ig_id, access_token, container_id):
        data = self._post(f"{self.base_url}/{ig_id}/media_publish",
                          {"creation_id": container_id, "access_token": access_token}, "publish")
        if "id" not in data:
            raise PublishError("Instagram did not return a media id", raw_body=data, provider="instagram")
        logger.info(f"[Instagram] Reel published successfully! ID: {data['id']}")
        return data["id"]

    def fetch_statistics(self, account, access_token, post_id):
        try:
            res = requests.get(f"{self.base_url}/{post_id}/insights",
                               params={"metric": "impressions,reach,likes,comments,shares",
                                       "access_token": access_token},
                               timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamProviderError("Could not reach Instagram", raw_body=str(e), provider="instagram")
        data = self._json(res, "insights")
        values = {m.get("name"): (m.get("values") or [{}])[0].get("value", 0) for m in data.get("data", [])}
        return {
            "views": values.get("impressions", 0),
            "likes": values.get("likes", 0),
            "comments": values.get("comments", 0),
            "shares": values.get("shares", 0),
        }
