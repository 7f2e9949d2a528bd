"""
Tests for OAuth account linking: authorize URL + state row, callback code
exchange with encrypted token storage, listing and unlinking.
"""

import urllib.parse
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from social_scheduler.core.config import get_settings
from social_scheduler.main import app
from social_scheduler.models.social_connections import Provider
from social_scheduler.services import oauth_service
from social_scheduler.services.oauth_service import OAuthError, OAuthService, get_oauth_service
from social_scheduler.utils.encryption import decrypt_token


@pytest.fixture
def oauth_settings(monkeypatch):
    settings = get_settings()
    for name, value in {
        "FACEBOOK_APP_ID": "fb-app",
        "FACEBOOK_APP_SECRET": "fb-secret",
        "LINKEDIN_CLIENT_ID": "li-client",
        "LINKEDIN_CLIENT_SECRET": "li-secret",
        "TWITTER_CLIENT_ID": "tw-client",
        "TWITTER_CLIENT_SECRET": "tw-secret",
        "OAUTH_REDIRECT_BASE_URL": "https://app.test/oauth/callback",
    }.items():
        monkeypatch.setattr(settings, name, value)
    return settings


def provider_api(routes):
    """MockTransport answering by URL path; records every request."""
    def handler(request):
        handler.requests.append(request)
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "unexpected"})
        return httpx.Response(200, json=body)
    handler.requests = []
    return handler


class TestAuthorize:

    def test_twitter_authorize_uses_pkce_and_stores_state(self, fake_db, user, oauth_settings):
        service = OAuthService(fake_db)
        result = service.create_authorization(user["id"], Provider.TWITTER)

        query = urllib.parse.parse_qs(urllib.parse.urlparse(result["authorization_url"]).query)
        assert query["client_id"] == ["tw-client"]
        assert query["state"] == [result["state"]]
        assert query["code_challenge_method"] == ["S256"]
        assert query["redirect_uri"] == ["https://app.test/oauth/callback/twitter"]

        row = fake_db.tables["oauth_states"][0]
        assert row["state"] == result["state"]
        assert row["user_id"] == user["id"]
        assert row["code_verifier"]

    def test_unconfigured_provider_is_503(self, fake_db, user, monkeypatch):
        monkeypatch.setattr(get_settings(), "LINKEDIN_CLIENT_ID", "")
        with pytest.raises(OAuthError) as exc:
            OAuthService(fake_db).create_authorization(user["id"], Provider.LINKEDIN)
        assert exc.value.status_code == 503

    def test_pkce_challenge_matches_verifier(self):
        verifier, challenge = oauth_service.generate_pkce_pair()
        assert 43 <= len(verifier) <= 128
        assert "=" not in challenge


class TestCallback:

    @pytest.mark.asyncio
    async def test_linkedin_callback_stores_encrypted_tokens(self, fake_db, user, oauth_settings):
        service = OAuthService(fake_db, transport=httpx.MockTransport(provider_api({
            "/oauth/v2/accessToken": {"access_token": "li-access", "expires_in": 3600},
            "/v2/userinfo": {"sub": "person-9", "name": "Ada Lovelace"},
        })))
        state = service.create_authorization(user["id"], Provider.LINKEDIN)["state"]

        connections = await service.complete(user["id"], Provider.LINKEDIN, "auth-code", state)

        assert [c["provider_account_id"] for c in connections] == ["person-9"]
        assert "access_token" not in connections[0]
        stored = fake_db.tables["social_connections"][0]
        assert stored["access_token"] != "li-access"
        assert decrypt_token(stored["access_token"]) == "li-access"
        assert stored["account_label"] == "Ada Lovelace"
        assert fake_db.tables["oauth_states"] == []

    @pytest.mark.asyncio
    async def test_relinking_updates_existing_connection(self, fake_db, user, oauth_settings):
        routes = {
            "/2/oauth2/token": {"access_token": "tw-1", "refresh_token": "tw-r"},
            "/2/users/me": {"data": {"id": "77", "username": "ada"}},
        }
        service = OAuthService(fake_db, transport=httpx.MockTransport(provider_api(routes)))

        for token in ("tw-1", "tw-2"):
            routes["/2/oauth2/token"]["access_token"] = token
            state = service.create_authorization(user["id"], Provider.TWITTER)["state"]
            await service.complete(user["id"], Provider.TWITTER, "code", state)

        rows = fake_db.tables["social_connections"]
        assert len(rows) == 1
        assert decrypt_token(rows[0]["access_token"]) == "tw-2"
        assert rows[0]["account_label"] == "@ada"

    @pytest.mark.asyncio
    async def test_instagram_links_business_accounts_with_page_token(self, fake_db, user, oauth_settings):
        service = OAuthService(fake_db, transport=httpx.MockTransport(provider_api({
            "/v18.0/oauth/access_token": {"access_token": "user-token"},
            "/v18.0/me/accounts": {"data": [
                {"id": "page-1", "name": "Cafe", "access_token": "page-token",
                 "instagram_business_account": {"id": "ig-1", "username": "cafe"}},
                {"id": "page-2", "name": "No IG", "access_token": "other"},
            ]},
        })))
        state = service.create_authorization(user["id"], Provider.INSTAGRAM)["state"]

        connections = await service.complete(user["id"], Provider.INSTAGRAM, "code", state)

        assert [c["provider_account_id"] for c in connections] == ["ig-1"]
        assert connections[0]["metadata"]["page_id"] == "page-1"
        assert decrypt_token(fake_db.tables["social_connections"][0]["access_token"]) == "page-token"

    @pytest.mark.asyncio
    async def test_state_of_another_user_is_rejected(self, fake_db, user, oauth_settings):
        service = OAuthService(fake_db)
        state = service.create_authorization("someone-else", Provider.TWITTER)["state"]
        with pytest.raises(OAuthError) as exc:
            await service.complete(user["id"], Provider.TWITTER, "code", state)
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_expired_state_is_rejected(self, fake_db, user, oauth_settings):
        old = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        fake_db.seed("oauth_states", state="s1", user_id=user["id"], provider="linkedin", created_at=old)
        with pytest.raises(OAuthError):
            await OAuthService(fake_db).complete(user["id"], Provider.LINKEDIN, "code", "s1")

    @pytest.mark.asyncio
    async def test_token_exchange_failure_is_502(self, fake_db, user, oauth_settings):
        service = OAuthService(fake_db, transport=httpx.MockTransport(provider_api({})))
        state = service.create_authorization(user["id"], Provider.LINKEDIN)["state"]
        with pytest.raises(OAuthError) as exc:
            await service.complete(user["id"], Provider.LINKEDIN, "code", state)
        assert exc.value.status_code == 502
        assert fake_db.tables.get("social_connections", []) == []


class TestConnectionsAPI:

    def test_list_hides_tokens(self, client, fake_db, user):
        fake_db.seed("social_connections", user_id=user["id"], provider="facebook",
                     provider_account_id="page-1", access_token="enc", metadata='{"type": "page"}')
        fake_db.seed("social_connections", user_id="someone-else", provider="twitter",
                     provider_account_id="9", access_token="enc")

        resp = client.get("/api/v1/social-connections/")
        assert resp.status_code == 200
        body = resp.json()
        assert len(body) == 1
        assert "access_token" not in body[0]
        assert body[0]["metadata"] == {"type": "page"}

    def test_authorize_endpoint(self, client, fake_db, oauth_settings):
        resp = client.get("/api/v1/social-connections/facebook/authorize")
        assert resp.status_code == 200
        assert resp.json()["authorization_url"].startswith("https://www.facebook.com/v18.0/dialog/oauth?")

    def test_unknown_provider(self, client):
        assert client.get("/api/v1/social-connections/myspace/authorize").status_code == 422

    def test_callback_bad_state_is_400(self, client, oauth_settings):
        resp = client.post("/api/v1/social-connections/twitter/callback", json={"code": "c", "state": "nope"})
        assert resp.status_code == 400

    def test_callback_endpoint(self, client, fake_db, user, oauth_settings):
        app.dependency_overrides[get_oauth_service] = lambda: OAuthService(
            fake_db, transport=httpx.MockTransport(provider_api({
                "/2/oauth2/token": {"access_token": "tw"},
                "/2/users/me": {"data": {"id": "77", "username": "ada"}},
            }))
        )
        state = OAuthService(fake_db).create_authorization(user["id"], Provider.TWITTER)["state"]

        resp = client.post("/api/v1/social-connections/twitter/callback", json={"code": "c", "state": state})
        assert resp.status_code == 200
        assert resp.json()["connections"][0]["provider_account_id"] == "77"

    def test_delete_connection(self, client, fake_db, user):
        row = fake_db.seed("social_connections", user_id=user["id"], provider="twitter",
                           provider_account_id="77", access_token="enc")
        assert client.delete(f"/api/v1/social-connections/{row['id']}").status_code == 200
        assert client.delete(f"/api/v1/social-connections/{row['id']}").status_code == 404
