"""Sequential processing of the queue against the /api/process endpoint."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from pydantic import ValidationError

from boatvision.models import ProcessedResult, ProcessingStatus, ProcessResponse, StyleParameters
from boatvision.queue_store import QueueItem, QueueStore

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def error_message(response: httpx.Response) -> str:
    """Pull the most specific failure text out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, dict):
        return detail.get("reason") or detail.get("error") or response.text
    if isinstance(detail, str) and detail:
        return detail
    return response.text or f"HTTP {response.status_code}"


class QueueOrchestrator:
    """
    Walks the queue one item at a time, posting each photo to the endpoint.

    Only one pass can run at a time: a call made while a pass holds the lock
    returns None without touching the queue or issuing requests.
    """

    def __init__(self, store: QueueStore, client: httpx.AsyncClient, endpoint: str = "/api/process"):
        self.store = store
        self.client = client
        self.endpoint = endpoint
        self._pass_lock = asyncio.Lock()

    @property
    def is_processing(self) -> bool:
        return self._pass_lock.locked()

    async def process_queue(self, style: StyleParameters) -> Optional[PassReport]:
        if self._pass_lock.locked() or not self.store.ready_for_processing:
            return None

        async with self._pass_lock:
            report = PassReport()
            pending = [item for item in self.store.items() if item.status.is_eligible]
            logger.info(f"Starting pass over {len(pending)} item(s)")

            for item in pending:
                # Removed while an earlier item was in flight
                if self.store.get(item.id) is None:
                    continue
                if await self._process_item(item, style):
                    report.completed.append(item.id)
                else:
                    report.failed.append(item.id)

            logger.info(f"Pass finished: {len(report.completed)} complete, {len(report.failed)} failed")
            return report

    async def _process_item(self, item: QueueItem, style: StyleParameters) -> bool:
        self.store.update(item.id, status=ProcessingStatus.ANALYZING, logs=["Starting processing pipeline"])

        try:
            self.store.append_log(item.id, "Extracting vessel details and trailer remnants")
            response = await self.client.post(
                self.endpoint,
                data=style.as_form(),
                files={"image": (item.name, item.source.read_bytes(), item.mime_type)},
            )

            if not response.is_success:
                return self._fail(item, error_message(response))

            payload = ProcessResponse.model_validate(response.json())
        except (httpx.HTTPError, OSError, ValueError, ValidationError) as e:
            return self._fail(item, str(e) or e.__class__.__name__)

        self.store.update(item.id, status=ProcessingStatus.GENERATING, logs=["Rendering cinematic water shot"])
        self.store.update(
            item.id,
            status=ProcessingStatus.VERIFYING,
            logs=["Double-checking trailer removal and composition"],
        )
        self.store.update(
            item.id,
            status=ProcessingStatus.COMPLETE,
            result=ProcessedResult.from_response(payload),
        )
        logger.info(f"Completed {item.name}")
        return True

    def _fail(self, item: QueueItem, message: str) -> bool:
        logger.warning(f"Failed {item.name}: {message}")
        self.store.update(item.id, status=ProcessingStatus.ERROR, error=message, logs=[f"Failed: {message}"])
        return False
