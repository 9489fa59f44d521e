"""
Expansion service client.

Asks an external generative service to break a topic into subtopics.

Contract:
    request:  {"topic": str}
    response: {"topic": str, "subTopics": [{"text": str, "kind": "concept"|"detail"}, ...]}

Subtopic items may also name their kind under "type". Only the subtopic
texts drive placement on the canvas.
"""

import logging
from typing import Literal, Optional, Protocol

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .config import Settings

logger = logging.getLogger(__name__)


class ExpansionError(RuntimeError):
    """The expansion service could not produce a usable answer."""


class SubTopic(BaseModel):
    text: str
    kind: Literal["concept", "detail"] = Field(
        default="concept",
        validation_alias=AliasChoices("kind", "type"),
    )


class ExpansionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    sub_topics: list[SubTopic] = Field(default_factory=list, alias="subTopics")


class ExpansionService(Protocol):
    """Anything that can expand a topic. Returns None when unavailable."""

    async def expand(self, topic: str) -> Optional[ExpansionResponse]:
        ...


class HttpExpansionClient:
    """
    Calls the expansion service over HTTP.

    Without a configured URL the client is unavailable: `expand` returns
    None and nothing is raised.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpExpansionClient":
        return cls(
            base_url=settings.expansion_url,
            api_key=settings.expansion_api_key,
            timeout=settings.expansion_timeout,
        )

    @property
    def available(self) -> bool:
        return bool(self.base_url)

    async def expand(self, topic: str) -> Optional[ExpansionResponse]:
        """
        Request subtopics for `topic`.

        Returns None when the service is not configured.

        Raises:
            ExpansionError: transport failure, error status, or a body that
                does not match the response contract
        """
        if not self.available:
            logger.info("Expansion unavailable: CANVAS_EXPANSION_URL is not set")
            return None

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.base_url, json={"topic": topic}, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ExpansionError(f"Expansion request failed: {e}") from e

        if response.status_code >= 400:
            raise ExpansionError(f"Expansion service error ({response.status_code}): {response.text}")

        try:
            return ExpansionResponse.model_validate(response.json())
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            raise ExpansionError(f"Malformed expansion response: {e}") from e
