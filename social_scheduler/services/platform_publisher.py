"""
Platform Publishing Service
Sends one post to one platform account. Every call is a single delegated
request (Instagram needs a container call first); nothing is retried.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from social_scheduler.core.config import get_settings
from social_scheduler.models.posts import PLATFORM_CHARACTER_LIMITS, Platform

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0"
LINKEDIN_API_URL = "https://api.linkedin.com/v2"
TWITTER_API_URL = "https://api.twitter.com/2"


class PublishStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class PublishResult:
    platform: str
    status: PublishStatus
    platform_post_id: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == PublishStatus.SUCCESS


class PlatformPublisher:
    """Publishes content to social media platforms with a user's token"""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def publish(
        self,
        platform: str,
        access_token: str,
        account_id: str,
        content: str,
        media_urls: Optional[List[str]] = None
    ) -> PublishResult:
        """
        Publish a single post

        Args:
            platform: One of the Platform values
            access_token: Decrypted OAuth token for the account
            account_id: Provider account id (page id, IG user id, person id...)
            content: Caption / text of the post
            media_urls: Public URLs of attached media

        Returns:
            PublishResult describing the outcome; errors are captured, not raised
        """
        media_urls = media_urls or []

        limit = PLATFORM_CHARACTER_LIMITS.get(platform)
        if limit is not None and len(content) > limit:
            return self._failed(platform, f"Content exceeds {limit} characters for {platform}")

        handlers = {
            Platform.FACEBOOK.value: self._publish_to_facebook,
            Platform.INSTAGRAM.value: self._publish_to_instagram,
            Platform.LINKEDIN.value: self._publish_to_linkedin,
            Platform.TWITTER.value: self._publish_to_twitter,
        }
        handler = handlers.get(platform)
        if handler is None:
            return self._failed(platform, f"Unsupported platform: {platform}")

        logger.info(f"Publishing to {platform} account {account_id} ({len(media_urls)} media)")
        try:
            async with self._client() as client:
                return await handler(client, access_token, account_id, content, media_urls)
        except httpx.TimeoutException:
            return self._failed(platform, f"Request to {platform} timed out")
        except httpx.RequestError as e:
            return self._failed(platform, f"Error connecting to {platform}: {str(e)}")
        except ValueError as e:
            # 2xx reply whose body is not the JSON the API documents
            return self._failed(platform, f"Unreadable response from {platform}: {str(e)}")

    def _failed(self, platform: str, message: str) -> PublishResult:
        logger.error(f"{platform} publishing failed: {message}")
        return PublishResult(platform=platform, status=PublishStatus.FAILED, error_message=message)

    def _api_error(self, platform: str, response: httpx.Response) -> PublishResult:
        return self._failed(platform, f"{platform.capitalize()} API error ({response.status_code}): {response.text}")

    async def _publish_to_facebook(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        page_id: str,
        content: str,
        media_urls: List[str]
    ) -> PublishResult:
        """Page feed post, or a photo post carrying the first image"""
        if media_urls:
            endpoint = f"{GRAPH_API_URL}/{page_id}/photos"
            data = {"url": media_urls[0], "caption": content, "access_token": access_token}
        else:
            endpoint = f"{GRAPH_API_URL}/{page_id}/feed"
            data = {"message": content, "access_token": access_token}

        response = await client.post(endpoint, data=data)
        if response.status_code != 200:
            return self._api_error("facebook", response)

        response_data = response.json()
        return PublishResult(
            platform="facebook",
            status=PublishStatus.SUCCESS,
            platform_post_id=response_data.get("post_id") or response_data.get("id"),
            metadata={"facebook_data": response_data}
        )

    async def _publish_to_instagram(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        ig_user_id: str,
        content: str,
        media_urls: List[str]
    ) -> PublishResult:
        """Create a media container for the first image then publish it"""
        if not media_urls:
            return self._failed("instagram", "Instagram posts require an image")

        container = await client.post(
            f"{GRAPH_API_URL}/{ig_user_id}/media",
            data={"image_url": media_urls[0], "caption": content, "access_token": access_token}
        )
        if container.status_code != 200:
            return self._api_error("instagram", container)

        creation_id = container.json().get("id")
        response = await client.post(
            f"{GRAPH_API_URL}/{ig_user_id}/media_publish",
            data={"creation_id": creation_id, "access_token": access_token}
        )
        if response.status_code != 200:
            return self._api_error("instagram", response)

        return PublishResult(
            platform="instagram",
            status=PublishStatus.SUCCESS,
            platform_post_id=response.json().get("id"),
            metadata={"creation_id": creation_id}
        )

    async def _publish_to_linkedin(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        person_id: str,
        content: str,
        media_urls: List[str]
    ) -> PublishResult:
        """Member share; attached media are shared as an article link"""
        share_content: Dict[str, Any] = {
            "shareCommentary": {"text": content},
            "shareMediaCategory": "NONE"
        }
        if media_urls:
            share_content["shareMediaCategory"] = "ARTICLE"
            share_content["media"] = [{"status": "READY", "originalUrl": media_urls[0]}]

        response = await client.post(
            f"{LINKEDIN_API_URL}/ugcPosts",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "X-Restli-Protocol-Version": "2.0.0"
            },
            json={
                "author": f"urn:li:person:{person_id}",
                "lifecycleState": "PUBLISHED",
                "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
                "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"}
            }
        )
        if response.status_code not in (200, 201):
            return self._api_error("linkedin", response)

        post_id = response.headers.get("x-restli-id")
        if not post_id and response.content:
            post_id = response.json().get("id")
        return PublishResult(platform="linkedin", status=PublishStatus.SUCCESS, platform_post_id=post_id)

    async def _publish_to_twitter(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        account_id: str,
        content: str,
        media_urls: List[str]
    ) -> PublishResult:
        """Tweet the text; media are linked because uploads need a separate API"""
        text = content
        if media_urls:
            text = f"{content}\n{' '.join(media_urls)}"

        response = await client.post(
            f"{TWITTER_API_URL}/tweets",
            headers={"Authorization": f"Bearer {access_token}"},
            json={"text": text}
        )
        if response.status_code not in (200, 201):
            return self._api_error("twitter", response)

        tweet_id = response.json().get("data", {}).get("id")
        return PublishResult(
            platform="twitter",
            status=PublishStatus.SUCCESS,
            platform_post_id=tweet_id,
            metadata={"tweet_url": f"https://x.com/i/status/{tweet_id}"}
        )


def get_platform_publisher() -> PlatformPublisher:
    return PlatformPublisher(timeout=get_settings().PUBLISH_TIMEOUT)
