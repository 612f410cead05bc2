"""
Segments API client used by the segment builder.

Talks to the ``/segments`` and ``/subscribers`` endpoints over httpx. The
vocabulary lookups (tags, sources) are best-effort: when they fail the
builder falls back to free-text values and keeps working.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from audience.config import settings
from audience.services.segmentation.builder import SegmentDraft
from audience.services.segmentation.errors import SegmentSaveError
from audience.services.segmentation.evaluator import EvaluationResult
from audience.services.segmentation.rules import RuleSet

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class SegmentsApiClient:
    """Async client for the segments API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = (base_url or settings.SEGMENTS_API_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SegmentsApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def evaluate(self, rule_set: RuleSet) -> EvaluationResult:
        """Live preview; raises httpx errors so the caller can reset its state."""
        response = await self._client.post(
            self._url("/segments/evaluate"),
            json={"rules": rule_set.to_dict()},
            headers=self._headers,
        )
        response.raise_for_status()
        data = response.json()
        return EvaluationResult(
            count=data.get("count") or 0,
            sample=list(data.get("subscribers") or []),
        )

    async def _vocabulary(self, path: str) -> List[str]:
        try:
            response = await self._client.get(self._url(path), headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not load %s, falling back to free text: %s", path, e)
            return []
        if not isinstance(data, list):
            return []
        return [str(item) for item in data if item is not None]

    async def fetch_tags(self) -> List[str]:
        return await self._vocabulary("/subscribers/tags")

    async def fetch_sources(self) -> List[str]:
        return await self._vocabulary("/subscribers/sources")

    async def save(self, draft: SegmentDraft) -> Dict[str, Any]:
        """
        Create or update the segment behind ``draft``.

        Raises:
            SegmentValidationError: draft fails local validation
            SegmentSaveError: the API rejected the request
        """
        draft.validate()
        payload = draft.to_payload()

        if draft.is_editing:
            response = await self._client.put(
                self._url(f"/segments/{draft.segment_id}"), json=payload, headers=self._headers
            )
        else:
            response = await self._client.post(self._url("/segments"), json=payload, headers=self._headers)

        if response.is_error:
            try:
                message = response.json().get("detail") or "Failed to save segment"
            except ValueError:
                message = "Failed to save segment"
            raise SegmentSaveError(str(message), status_code=response.status_code)

        data = response.json()
        draft.segment_id = data.get("id", draft.segment_id)
        return data
