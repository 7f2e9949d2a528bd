"""Tests for delegated publishing against mocked platform APIs."""

import json

import httpx
import pytest

from social_scheduler.services.platform_publisher import PlatformPublisher, PublishStatus


def platform_api(responses):
    """MockTransport keyed by URL path; unknown paths answer 404."""
    def handler(request):
        handler.requests.append(request)
        status_code, body, headers = responses.get(request.url.path, (404, {"error": "unexpected"}, {}))
        return httpx.Response(status_code, json=body, headers=headers)
    handler.requests = []
    return handler


def make_publisher(handler):
    return PlatformPublisher(timeout=5, transport=httpx.MockTransport(handler))


class TestFacebook:

    @pytest.mark.asyncio
    async def test_text_post_goes_to_feed(self):
        handler = platform_api({"/v18.0/page-1/feed": (200, {"id": "page-1_99"}, {})})
        result = await make_publisher(handler).publish("facebook", "tok", "page-1", "Hello")

        assert result.status == PublishStatus.SUCCESS
        assert result.platform_post_id == "page-1_99"
        assert b"message=Hello" in handler.requests[0].content

    @pytest.mark.asyncio
    async def test_image_post_goes_to_photos(self):
        handler = platform_api({"/v18.0/page-1/photos": (200, {"id": "1", "post_id": "page-1_5"}, {})})
        result = await make_publisher(handler).publish(
            "facebook", "tok", "page-1", "Hello", ["https://cdn.test/a.png"]
        )
        assert result.platform_post_id == "page-1_5"

    @pytest.mark.asyncio
    async def test_api_error_is_captured(self):
        handler = platform_api({"/v18.0/page-1/feed": (400, {"error": {"message": "bad token"}}, {})})
        result = await make_publisher(handler).publish("facebook", "tok", "page-1", "Hello")

        assert result.status == PublishStatus.FAILED
        assert "Facebook API error (400)" in result.error_message


class TestInstagram:

    @pytest.mark.asyncio
    async def test_container_then_publish(self):
        handler = platform_api({
            "/v18.0/ig-1/media": (200, {"id": "container-1"}, {}),
            "/v18.0/ig-1/media_publish": (200, {"id": "ig-post-1"}, {}),
        })
        result = await make_publisher(handler).publish(
            "instagram", "tok", "ig-1", "Caption", ["https://cdn.test/a.jpg"]
        )

        assert result.succeeded
        assert result.platform_post_id == "ig-post-1"
        assert [r.url.path for r in handler.requests] == ["/v18.0/ig-1/media", "/v18.0/ig-1/media_publish"]
        assert b"creation_id=container-1" in handler.requests[1].content

    @pytest.mark.asyncio
    async def test_requires_an_image(self):
        handler = platform_api({})
        result = await make_publisher(handler).publish("instagram", "tok", "ig-1", "Caption")

        assert result.status == PublishStatus.FAILED
        assert handler.requests == []


class TestLinkedIn:

    @pytest.mark.asyncio
    async def test_share_uses_restli_id_header(self):
        handler = platform_api({"/v2/ugcPosts": (201, {}, {"x-restli-id": "urn:li:share:1"})})
        result = await make_publisher(handler).publish("linkedin", "tok", "person-9", "Hi network")

        assert result.platform_post_id == "urn:li:share:1"
        body = json.loads(handler.requests[0].content)
        assert body["author"] == "urn:li:person:person-9"
        share = body["specificContent"]["com.linkedin.ugc.ShareContent"]
        assert share["shareCommentary"]["text"] == "Hi network"
        assert share["shareMediaCategory"] == "NONE"


class TestTwitter:

    @pytest.mark.asyncio
    async def test_media_are_appended_as_links(self):
        handler = platform_api({"/2/tweets": (201, {"data": {"id": "1234"}}, {})})
        result = await make_publisher(handler).publish(
            "twitter", "tok", "77", "Launch day", ["https://cdn.test/a.png"]
        )

        assert result.platform_post_id == "1234"
        assert result.metadata["tweet_url"].endswith("/1234")
        assert json.loads(handler.requests[0].content) == {"text": "Launch day\nhttps://cdn.test/a.png"}
        assert handler.requests[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_over_limit_is_rejected_without_a_request(self):
        handler = platform_api({})
        result = await make_publisher(handler).publish("twitter", "tok", "77", "x" * 281)

        assert result.status == PublishStatus.FAILED
        assert "280" in result.error_message
        assert handler.requests == []


@pytest.mark.asyncio
async def test_timeout_is_captured():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    result = await make_publisher(handler).publish("twitter", "tok", "77", "Hello")
    assert result.status == PublishStatus.FAILED
    assert "timed out" in result.error_message


@pytest.mark.asyncio
async def test_unknown_platform():
    result = await make_publisher(platform_api({})).publish("myspace", "tok", "1", "Hello")
    assert result.error_message == "Unsupported platform: myspace"


@pytest.mark.asyncio
@pytest.mark.parametrize("platform,media", [
    ("facebook", []),
    ("instagram", ["https://cdn.test/a.jpg"]),
    ("linkedin", []),
    ("twitter", []),
])
async def test_non_json_success_reply_is_a_failure(platform, media):
    publisher = make_publisher(lambda request: httpx.Response(200, text="<html>ok</html>"))
    result = await publisher.publish(platform, "tok", "acct", "Hello", media)

    assert result.status == PublishStatus.FAILED
    assert result.error_message.startswith(f"Unreadable response from {platform}")
