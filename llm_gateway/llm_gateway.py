from __future__ import annotations  # Async HTTP transport shared by every provider adapter

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate


logger = logging.getLogger(__name__)  # Module logger setup


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class ProviderHttpError(LlmGatewayError):  # Non-2xx provider response
    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Provider returned status {status_code}")
        self.status_code = status_code
        self.body = body[:260]


class ProviderPayloadError(LlmGatewayError):  # Provider body was not usable JSON/text
    pass


async def _post(
    url: str,
    *,
    headers: Dict[str, str],
    timeout_s: float,
    client: Optional[httpx.AsyncClient],
    **body: Any,
) -> Any:  # Send one POST and return the decoded JSON response
    async def _send(http: httpx.AsyncClient) -> httpx.Response:
        return await http.post(url, headers=headers, **body)

    try:
        if client is not None:
            response = await asyncio.wait_for(_send(client), timeout_s)
        else:
            async with httpx.AsyncClient(timeout=timeout_s) as http:
                response = await asyncio.wait_for(_send(http), timeout_s)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.warning("Provider request timed out url=%s timeout=%.1fs", _redact(url), timeout_s)
        raise
    except httpx.HTTPError as exc:
        logger.error("Provider transport failure url=%s: %s", _redact(url), exc)
        raise LlmGatewayError("Provider transport failed") from exc

    if not response.is_success:
        logger.warning("Provider error status=%s url=%s", response.status_code, _redact(url))
        raise ProviderHttpError(response.status_code, response.text)
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error("Invalid JSON payload from provider url=%s", _redact(url))
        raise ProviderPayloadError("Provider payload was not JSON") from exc


async def post_json(
    url: str,
    payload: Dict[str, Any],
    *,
    headers: Dict[str, str],
    timeout_s: float,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:  # POST a JSON body and return the decoded JSON response
    return await _post(url, headers=headers, timeout_s=timeout_s, client=client, json=payload)


async def post_multipart(
    url: str,
    fields: Dict[str, str],
    files: Dict[str, Tuple[str, bytes, str]],
    *,
    headers: Dict[str, str],
    timeout_s: float,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:  # POST form fields plus file parts; httpx sets the multipart boundary
    return await _post(url, headers=headers, timeout_s=timeout_s, client=client, data=fields, files=files)


def sanitize_output(text: Any) -> str:  # Normalise line endings and collapse blank runs
    cleaned = str(text or "").replace("\r", "")
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def render_prompt(prompt: ChatPromptTemplate, **values: Any) -> Tuple[str, str]:  # Split a chat template into instruction and prompt text
    messages = [_message_dict(message) for message in prompt.format_messages(**values)]
    system = "\n\n".join(item["content"] for item in messages if item["role"] == "system")
    user = "\n\n".join(item["content"] for item in messages if item["role"] != "system")
    return system.strip(), user.strip()


def chat_messages(instruction: str, prompt: str) -> List[Dict[str, str]]:  # Build a system+user message list
    messages: List[Dict[str, str]] = []
    if instruction:
        messages.append({"role": "system", "content": str(instruction)})
    messages.append({"role": "user", "content": str(prompt or "")})
    return messages


def _message_dict(message: BaseMessage) -> Dict[str, str]:  # Map LangChain BaseMessage to role/content dict
    role = message.type
    if role == "human":
        role = "user"
    elif role == "ai":
        role = "assistant"
    content = message.content
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"role": role, "content": content}


def _redact(url: str) -> str:  # Drop query strings that may carry API keys
    return url.split("?", 1)[0]


__all__ = [
    "LlmGatewayError",
    "ProviderHttpError",
    "ProviderPayloadError",
    "chat_messages",
    "post_json",
    "post_multipart",
    "render_prompt",
    "sanitize_output",
]
