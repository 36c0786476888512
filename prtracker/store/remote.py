"""HTTP store backed by the spreadsheet web app endpoint."""
import logging
from typing import Any, Optional

import httpx
import orjson
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from prtracker.config import Config, config
from prtracker.exceptions import BackendUnavailableError, WriteFailureError
from prtracker.models import PRRecord
from prtracker.store.base import RecordStore
from prtracker.store.local import LocalRecordStore

logger = logging.getLogger(__name__)

# The web app reads the raw POST body; text/plain keeps it from being form-decoded
POST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class RemoteRecordStore(RecordStore):
    """Talks the GET_ALL / ADD / UPDATE / DELETE protocol over HTTP.

    A local store is kept alongside as the fallback for failed reads and
    failed deletes.
    """

    def __init__(
        self,
        cfg: Config = config,
        fallback: Optional[LocalRecordStore] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not cfg.use_remote:
            raise ValueError("Remote store needs an http(s) SCRIPT_URL")
        self.url = cfg.SCRIPT_URL.strip()
        self.read_fallback = cfg.READ_FALLBACK
        self.max_retries = cfg.MAX_RETRIES
        self.fallback = fallback if fallback is not None else LocalRecordStore(cfg=cfg)
        self._owns_client = client is None
        # Apps Script answers with a redirect to the content host
        self.client = client or httpx.AsyncClient(timeout=cfg.TIMEOUT, follow_redirects=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get_all(self) -> list[PRRecord]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            reraise=True,
        ):
            with attempt:
                response = await self.client.get(self.url, params={"action": "GET_ALL"})

        if response.is_error:
            raise BackendUnavailableError(
                f"HTTP error! status: {response.status_code}", status_code=response.status_code
            )
        data = _json_or_none(response)
        if not isinstance(data, list):
            logger.warning("GET_ALL did not return a JSON array, treating as empty")
            return []

        records = []
        for item in data:
            try:
                records.append(PRRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid remote record: {e.error_count()} errors")
        return records

    async def list_all(self) -> list[PRRecord]:
        try:
            return await self._get_all()
        except (httpx.HTTPError, BackendUnavailableError) as e:
            if not self.read_fallback:
                if isinstance(e, BackendUnavailableError):
                    raise
                raise BackendUnavailableError(f"Could not fetch remote records: {e}") from e
            logger.warning(f"Error fetching remote records, showing local data instead: {e}")
            return await self.fallback.list_all()

    async def _post(self, payload: dict[str, Any], what: str) -> None:
        action = payload["action"]
        try:
            response = await self.client.post(self.url, content=orjson.dumps(payload), headers=POST_HEADERS)
        except httpx.HTTPError as e:
            logger.error(f"API {action} failed: {e}")
            raise WriteFailureError(
                f"Failed to {what}. Check your URL configuration or Internet connection."
            ) from e

        result = _json_or_none(response)
        envelope_error = isinstance(result, dict) and result.get("status") == "error"
        if response.is_error or envelope_error:
            message = result.get("message") if isinstance(result, dict) else None
            logger.error(f"API {action} rejected (HTTP {response.status_code}): {message}")
            raise WriteFailureError(message or f"Failed to {what} (HTTP {response.status_code})")

    async def insert(self, record: PRRecord) -> None:
        await self._post({"action": "ADD", "record": record.to_wire()}, "save to the remote sheet")
        logger.info(f"Saved {record.pr_number} remotely")

    async def replace(self, record: PRRecord) -> None:
        await self._post({"action": "UPDATE", "record": record.to_wire()}, "update the remote record")
        logger.info(f"Updated {record.id} remotely")

    async def remove(self, record_id: str) -> None:
        payload = {"action": "DELETE", "id": record_id}
        try:
            response = await self.client.post(self.url, content=orjson.dumps(payload), headers=POST_HEADERS)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"API DELETE failed: {e}")
            # Remove locally too so the record does not come back from a fallback read
            await self.fallback.remove(record_id)
            raise WriteFailureError(
                "Could not delete from the remote sheet. Removed locally only.",
                removed_locally=True,
            ) from e
        logger.info(f"Deleted {record_id} remotely")
