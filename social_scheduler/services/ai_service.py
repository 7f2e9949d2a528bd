import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from social_scheduler.core.config import get_settings
from social_scheduler.models.ai import (
    CaptionRequest,
    CaptionResponse,
    ChatCompletionRequest,
    ChatMessage,
)
from social_scheduler.models.posts import PLATFORM_CHARACTER_LIMITS, Platform

logger = logging.getLogger(__name__)

PLATFORM_NAMES = {
    Platform.INSTAGRAM: "Instagram",
    Platform.FACEBOOK: "Facebook",
    Platform.LINKEDIN: "LinkedIn",
    Platform.TWITTER: "Twitter/X",
}

PLATFORM_GUIDELINES = {
    Platform.TWITTER: """
Platform: Twitter/X
- Keep the whole caption under 280 characters, hashtags included
- Open with a hook
- 1-2 hashtags at most
""",
    Platform.LINKEDIN: """
Platform: LinkedIn
- Professional tone preferred
- Can be longer form (up to 3000 characters)
- End with a question or call to action
""",
    Platform.FACEBOOK: """
Platform: Facebook
- Conversational and engaging tone
- Moderate length (100-300 words ideal)
- Use emojis sparingly
""",
    Platform.INSTAGRAM: """
Platform: Instagram
- Caption complements an image
- Use line breaks and emojis
- Up to 2200 characters; hashtags go at the end
""",
}

SYSTEM_PROMPT = (
    "You are a social media copywriter. Write one ready-to-post caption for the "
    "requested platform. Reply with JSON only."
)


class AIServiceError(Exception):
    """Caption generation failed; status_code is the HTTP status to answer with"""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def caption_limit(platform: Optional[Platform], max_length: Optional[int] = None) -> Optional[int]:
    """Smallest of the platform limit and the requested maximum"""
    limits = [
        limit for limit in (
            PLATFORM_CHARACTER_LIMITS.get(platform.value) if platform else None,
            max_length,
        ) if limit
    ]
    return min(limits) if limits else None


def truncate_caption(caption: str, limit: Optional[int]) -> Tuple[str, bool]:
    if limit is None or len(caption) <= limit:
        return caption, False
    # Cut on a word boundary when there is one in the last fifth
    cut = caption[:limit - 1]
    space = cut.rfind(' ')
    if space > limit * 0.8:
        cut = cut[:space]
    return cut.rstrip() + "…", True


def extract_hashtags(text: str) -> List[str]:
    seen = []
    for tag in re.findall(r"#\w+", text):
        if tag not in seen:
            seen.append(tag)
    return seen


def normalize_hashtags(value: Any) -> List[str]:
    """Hashtags from a model reply, which may give a list or one space separated string"""
    if isinstance(value, str):
        return extract_hashtags(value)
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return []


class CaptionService:
    """Caption generation through an OpenAI compatible chat completion API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.base_url = (base_url or settings.AI_BASE_URL).rstrip('/')
        self.model = model or settings.AI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT
        self._transport = transport

        if not self.api_key:
            logger.warning("AI_API_KEY not set; caption generation is disabled")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_messages(self, request: CaptionRequest) -> List[ChatMessage]:
        limit = caption_limit(request.platform, request.max_length)
        platform_name = PLATFORM_NAMES.get(request.platform, "General")

        user_prompt = f"""
Write a social media caption.

Topic: "{request.prompt}"
Platform: {platform_name}
Tone: {request.tone.value if request.tone else 'Appropriate for platform'}
Maximum length: {f'{limit} characters' if limit else 'Optimal for platform'}
Include hashtags: {'Yes' if request.include_hashtags else 'No'}

Format your response as JSON with the following structure:
{{
    "caption": "...",
    "hashtags": ["#...", "#..."]
}}
"""
        if request.platform:
            user_prompt = f"{user_prompt}\n{PLATFORM_GUIDELINES[request.platform]}"

        return [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=user_prompt),
        ]

    def _parse_ai_response(self, response_text: str) -> Dict[str, Any]:
        """Pull the JSON object out of the reply; fall back to the raw text"""
        start_idx = response_text.find('{')
        end_idx = response_text.rfind('}') + 1

        if start_idx != -1 and end_idx > start_idx:
            try:
                parsed = json.loads(response_text[start_idx:end_idx])
                if isinstance(parsed, dict) and isinstance(parsed.get("caption"), str):
                    return parsed
            except json.JSONDecodeError:
                logger.warning("Could not parse structured caption response")

        text = response_text.strip()
        return {"caption": text, "hashtags": extract_hashtags(text)}

    async def _complete(self, payload: ChatCompletionRequest) -> str:
        if not self.configured:
            raise AIServiceError("AI caption service not configured", status_code=503)

        url = f"{self.base_url}/chat/completions"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    url,
                    headers=self._get_headers(),
                    json=payload.dict(exclude_none=True)
                )
            except httpx.TimeoutException:
                raise AIServiceError("Request to AI API timed out", status_code=504)
            except httpx.RequestError as e:
                raise AIServiceError(f"Error connecting to AI API: {str(e)}", status_code=502)

        if response.status_code != 200:
            raise AIServiceError(f"AI API error ({response.status_code}): {response.text}", status_code=502)

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise AIServiceError("AI API returned an unexpected response", status_code=502)

    async def generate_caption(self, request: CaptionRequest) -> CaptionResponse:
        start_time = time.time()

        payload = ChatCompletionRequest(
            model=self.model,
            messages=self._build_messages(request),
            max_tokens=1000,
            temperature=0.7
        )
        ai_content = await self._complete(payload)
        parsed = self._parse_ai_response(ai_content)

        hashtags = normalize_hashtags(parsed.get("hashtags")) if request.include_hashtags else []
        caption = parsed["caption"].strip()
        caption, truncated = truncate_caption(caption, caption_limit(request.platform, request.max_length))

        logger.info(
            f"Generated {len(caption)} character caption for "
            f"{request.platform.value if request.platform else 'general'} (truncated={truncated})"
        )
        return CaptionResponse(
            caption=caption,
            hashtags=hashtags,
            platform=request.platform,
            tone=request.tone,
            model_used=self.model,
            character_count=len(caption),
            truncated=truncated,
            processing_time=time.time() - start_time
        )


def list_platforms() -> List[Dict[str, Any]]:
    return [
        {
            "id": platform,
            "name": PLATFORM_NAMES[platform],
            "character_limit": PLATFORM_CHARACTER_LIMITS[platform.value],
        }
        for platform in Platform
    ]


_caption_service: Optional[CaptionService] = None


def get_caption_service() -> CaptionService:
    global _caption_service
    if _caption_service is None:
        _caption_service = CaptionService()
    return _caption_service


__all__ = [
    "AIServiceError",
    "CaptionService",
    "caption_limit",
    "get_caption_service",
    "list_platforms",
    "normalize_hashtags",
    "truncate_caption",
]
