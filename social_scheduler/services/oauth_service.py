"""
OAuth Account Linking
Authorization URLs, code exchange and encrypted token storage for the
platforms posts are published to. Instagram business accounts are linked
through the Facebook login and publish with their page token.
"""

import base64
import hashlib
import logging
import secrets
import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi import Depends

from social_scheduler.core.config import get_settings
from social_scheduler.models.social_connections import Provider
from social_scheduler.utils import parse_datetime_safe
from social_scheduler.utils.database import CONNECTIONS_TABLE, OAUTH_STATES_TABLE, get_database, safe_json_parse
from social_scheduler.utils.encryption import encrypt_token
from social_scheduler.utils.timezone import utc_now_iso

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0"

# Callback must arrive within this window after authorize
STATE_TTL = timedelta(minutes=10)

# Columns returned to clients; tokens never leave the database
CONNECTION_COLUMNS = "id, provider, provider_account_id, account_label, expires_at, metadata, created_at, updated_at"


class OAuthError(Exception):
    """Linking failed; status_code is the HTTP status to answer with"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ProviderConfig:
    authorize_url: str
    token_url: str
    scopes: List[str]
    client_id_setting: str
    client_secret_setting: str
    scope_separator: str = ","
    pkce: bool = False


FACEBOOK_SCOPES = ["pages_show_list", "pages_read_engagement", "pages_manage_posts"]

PROVIDERS: Dict[Provider, ProviderConfig] = {
    Provider.FACEBOOK: ProviderConfig(
        authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url=f"{GRAPH_API_URL}/oauth/access_token",
        scopes=FACEBOOK_SCOPES,
        client_id_setting="FACEBOOK_APP_ID",
        client_secret_setting="FACEBOOK_APP_SECRET",
    ),
    Provider.INSTAGRAM: ProviderConfig(
        authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url=f"{GRAPH_API_URL}/oauth/access_token",
        scopes=FACEBOOK_SCOPES + ["instagram_basic", "instagram_content_publish"],
        client_id_setting="FACEBOOK_APP_ID",
        client_secret_setting="FACEBOOK_APP_SECRET",
    ),
    Provider.LINKEDIN: ProviderConfig(
        authorize_url="https://www.linkedin.com/oauth/v2/authorization",
        token_url="https://www.linkedin.com/oauth/v2/accessToken",
        scopes=["openid", "profile", "w_member_social"],
        client_id_setting="LINKEDIN_CLIENT_ID",
        client_secret_setting="LINKEDIN_CLIENT_SECRET",
        scope_separator=" ",
    ),
    Provider.TWITTER: ProviderConfig(
        authorize_url="https://twitter.com/i/oauth2/authorize",
        token_url="https://api.twitter.com/2/oauth2/token",
        scopes=["tweet.read", "tweet.write", "users.read", "offline.access"],
        client_id_setting="TWITTER_CLIENT_ID",
        client_secret_setting="TWITTER_CLIENT_SECRET",
        scope_separator=" ",
        pkce=True,
    ),
}


def generate_pkce_pair() -> Tuple[str, str]:
    """Return (code_verifier, S256 code_challenge)"""
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode()).digest()
    code_challenge = base64.urlsafe_b64encode(digest).decode().rstrip("=")
    return code_verifier, code_challenge


def sanitize_connection(row: Dict[str, Any]) -> Dict[str, Any]:
    connection = {k: v for k, v in row.items() if k not in ("access_token", "refresh_token")}
    connection["metadata"] = safe_json_parse(row.get("metadata"), {})
    return connection


def list_connections(db, user_id: str) -> List[Dict[str, Any]]:
    response = db.table(CONNECTIONS_TABLE).select(CONNECTION_COLUMNS).eq(
        'user_id', user_id
    ).order('created_at').execute()
    return [sanitize_connection(row) for row in response.data or []]


def delete_connection(db, user_id: str, connection_id: str) -> bool:
    response = db.table(CONNECTIONS_TABLE).delete().eq('id', connection_id).eq('user_id', user_id).execute()
    if not response.data:
        return False
    logger.info(f"Unlinked connection {connection_id} for user {user_id}")
    return True


class OAuthService:
    """Links platform accounts to a user through the OAuth code flow"""

    def __init__(self, db, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self.db = db
        self.settings = get_settings()
        self._transport = transport
        self.timeout = timeout

    def _credentials(self, provider: Provider) -> Tuple[str, str]:
        config = PROVIDERS[provider]
        client_id = getattr(self.settings, config.client_id_setting)
        client_secret = getattr(self.settings, config.client_secret_setting)
        if not client_id or not client_secret:
            raise OAuthError(f"{provider.value} OAuth is not configured", status_code=503)
        return client_id, client_secret

    def redirect_uri(self, provider: Provider) -> str:
        return f"{self.settings.OAUTH_REDIRECT_BASE_URL.rstrip('/')}/{provider.value}"

    def create_authorization(self, user_id: str, provider: Provider) -> Dict[str, str]:
        """Store a fresh state row and build the provider consent URL"""
        config = PROVIDERS[provider]
        client_id, _ = self._credentials(provider)

        state = secrets.token_urlsafe(32)
        redirect_uri = self.redirect_uri(provider)
        params = {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": config.scope_separator.join(config.scopes),
            "state": state,
        }

        code_verifier = None
        if config.pkce:
            code_verifier, code_challenge = generate_pkce_pair()
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"

        self.db.table(OAUTH_STATES_TABLE).insert({
            "state": state,
            "user_id": user_id,
            "provider": provider.value,
            "code_verifier": code_verifier,
            "redirect_uri": redirect_uri,
        }).execute()

        logger.info(f"Started {provider.value} OAuth for user {user_id}")
        return {
            "provider": provider.value,
            "authorization_url": f"{config.authorize_url}?{urllib.parse.urlencode(params)}",
            "state": state,
        }

    def _consume_state(self, user_id: str, provider: Provider, state: str) -> Dict[str, Any]:
        response = self.db.table(OAUTH_STATES_TABLE).select('*').eq('state', state).execute()
        row = response.data[0] if response.data else None
        if not row or row.get('user_id') != user_id or row.get('provider') != provider.value:
            raise OAuthError("Invalid or expired OAuth state")

        self.db.table(OAUTH_STATES_TABLE).delete().eq('state', state).execute()

        created_at = parse_datetime_safe(row.get('created_at'))
        if created_at is not None:
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if datetime.now(timezone.utc) - created_at > STATE_TTL:
                raise OAuthError("Invalid or expired OAuth state")
        return row

    async def complete(self, user_id: str, provider: Provider, code: str, state: str) -> List[Dict[str, Any]]:
        """
        Finish the code flow and store the linked account(s)

        Facebook links every managed page and Instagram every business
        account attached to one, so more than one connection may result.
        """
        client_id, client_secret = self._credentials(provider)
        state_row = self._consume_state(user_id, provider, state)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                token = await self._exchange_code(
                    client, provider, code, client_id, client_secret,
                    state_row.get('redirect_uri') or self.redirect_uri(provider),
                    state_row.get('code_verifier')
                )
                accounts = await self._fetch_accounts(client, provider, token)
            except httpx.TimeoutException:
                raise OAuthError(f"Request to {provider.value} timed out", status_code=504)
            except httpx.RequestError as e:
                raise OAuthError(f"Error connecting to {provider.value}: {str(e)}", status_code=502)

        if not accounts:
            raise OAuthError(f"No {provider.value} account available to link")

        stored = [self._store_connection(user_id, provider, account) for account in accounts]
        logger.info(f"Linked {len(stored)} {provider.value} account(s) for user {user_id}")
        return stored

    @staticmethod
    def _check(response: httpx.Response, provider: Provider, action: str) -> Dict[str, Any]:
        if response.status_code != 200:
            logger.error(f"{provider.value} {action} failed ({response.status_code}): {response.text}")
            raise OAuthError(f"{provider.value} {action} failed: {response.text}", status_code=502)
        return response.json()

    async def _exchange_code(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_verifier: Optional[str]
    ) -> Dict[str, Any]:
        config = PROVIDERS[provider]

        if provider in (Provider.FACEBOOK, Provider.INSTAGRAM):
            response = await client.get(config.token_url, params={
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            })
        elif provider == Provider.TWITTER:
            response = await client.post(
                config.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "code_verifier": code_verifier or "",
                    "client_id": client_id,
                },
                auth=(client_id, client_secret)
            )
        else:
            response = await client.post(config.token_url, data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "client_secret": client_secret,
            })

        token = self._check(response, provider, "token exchange")
        if not token.get("access_token"):
            raise OAuthError(f"{provider.value} token exchange returned no access token", status_code=502)
        return token

    async def _fetch_accounts(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        token: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Normalise the linked account(s) to {id, label, access_token, refresh_token, expires_in, metadata}"""
        access_token = token["access_token"]

        if provider == Provider.FACEBOOK:
            data = self._check(await client.get(
                f"{GRAPH_API_URL}/me/accounts",
                params={"fields": "id,name,access_token", "access_token": access_token}
            ), provider, "page lookup")
            return [
                {
                    "id": page["id"],
                    "label": page.get("name"),
                    "access_token": page.get("access_token") or access_token,
                    "metadata": {"type": "page"},
                }
                for page in data.get("data", [])
            ]

        if provider == Provider.INSTAGRAM:
            data = self._check(await client.get(
                f"{GRAPH_API_URL}/me/accounts",
                params={
                    "fields": "id,name,access_token,instagram_business_account{id,username}",
                    "access_token": access_token
                }
            ), provider, "account lookup")
            accounts = []
            for page in data.get("data", []):
                ig_account = page.get("instagram_business_account")
                if not ig_account:
                    continue
                accounts.append({
                    "id": ig_account["id"],
                    "label": ig_account.get("username") or page.get("name"),
                    "access_token": page.get("access_token") or access_token,
                    "metadata": {"page_id": page["id"], "page_name": page.get("name")},
                })
            return accounts

        if provider == Provider.LINKEDIN:
            profile = self._check(await client.get(
                "https://api.linkedin.com/v2/userinfo",
                headers={"Authorization": f"Bearer {access_token}"}
            ), provider, "profile lookup")
            return [{
                "id": profile["sub"],
                "label": profile.get("name") or profile.get("email"),
                "access_token": access_token,
                "refresh_token": token.get("refresh_token"),
                "expires_in": token.get("expires_in"),
                "metadata": {"picture": profile.get("picture")},
            }]

        user = self._check(await client.get(
            "https://api.twitter.com/2/users/me",
            headers={"Authorization": f"Bearer {access_token}"}
        ), provider, "profile lookup").get("data", {})
        return [{
            "id": user["id"],
            "label": f"@{user['username']}" if user.get("username") else user.get("name"),
            "access_token": access_token,
            "refresh_token": token.get("refresh_token"),
            "expires_in": token.get("expires_in"),
            "metadata": {"name": user.get("name")},
        }]

    def _store_connection(self, user_id: str, provider: Provider, account: Dict[str, Any]) -> Dict[str, Any]:
        expires_at = None
        if account.get("expires_in"):
            expires_at = (datetime.now(timezone.utc) + timedelta(seconds=int(account["expires_in"]))).isoformat()

        row = {
            "user_id": user_id,
            "provider": provider.value,
            "provider_account_id": str(account["id"]),
            "account_label": account.get("label"),
            "access_token": encrypt_token(account["access_token"]),
            "refresh_token": encrypt_token(account.get("refresh_token")),
            "expires_at": expires_at,
            "metadata": account.get("metadata") or {},
            "updated_at": utc_now_iso(),
        }
        response = self.db.table(CONNECTIONS_TABLE).upsert(
            row, on_conflict="user_id,provider,provider_account_id"
        ).execute()
        if not response.data:
            raise OAuthError("Failed to store connection", status_code=500)
        return sanitize_connection(response.data[0])


def get_oauth_service(db=Depends(get_database)) -> OAuthService:
    return OAuthService(db)
