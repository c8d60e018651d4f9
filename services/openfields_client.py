"""OpenFields API client used by the editor store and the CLI"""

from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from core.settings import settings
from schemas.field import EditorField
from services.field_tree_service import from_wire, to_wire

logger = get_logger(__name__)


class OpenFieldsApiError(Exception):
    """Any failed call to the backend, normalized to a message and an optional status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"


class OpenFieldsClient:
    """
    Async CRUD client for fieldsets, fields and catalogs.

    Field payloads are translated between the editor shape and the wire
    shape here, so callers only ever see EditorField objects.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "OpenFieldsClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise OpenFieldsApiError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning_ctx("API request rejected", method=method, path=path, status_code=response.status_code)
            raise OpenFieldsApiError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Fieldsets

    async def list_fieldsets(self) -> list[dict]:
        return await self._request("GET", "/fieldsets/")

    async def get_fieldset(self, fieldset_id: int) -> dict:
        return await self._request("GET", f"/fieldsets/{fieldset_id}/")

    async def create_fieldset(self, data: dict) -> dict:
        return await self._request("POST", "/fieldsets/", json=data)

    async def update_fieldset(self, fieldset_id: int, data: dict) -> dict:
        return await self._request("PUT", f"/fieldsets/{fieldset_id}/", json=data)

    async def delete_fieldset(self, fieldset_id: int) -> None:
        await self._request("DELETE", f"/fieldsets/{fieldset_id}/")

    async def duplicate_fieldset(self, fieldset_id: int) -> dict:
        return await self._request("POST", f"/fieldsets/{fieldset_id}/duplicate/")

    async def export_fieldset(self, fieldset_id: int) -> dict:
        return await self._request("GET", f"/fieldsets/{fieldset_id}/export/")

    async def import_fieldset(self, data: dict) -> dict:
        return await self._request("POST", "/fieldsets/import/", json=data)

    # Fields

    async def list_fields(self, fieldset_id: int) -> list[EditorField]:
        records = await self._request("GET", f"/fieldsets/{fieldset_id}/fields/")
        return [from_wire(record) for record in records]

    async def create_field(self, fieldset_id: int, data: Any) -> EditorField:
        record = await self._request("POST", f"/fieldsets/{fieldset_id}/fields/", json=to_wire(data))
        return from_wire(record)

    async def update_field(self, field_id: int, data: Any) -> EditorField:
        record = await self._request("PUT", f"/fields/{field_id}/", json=to_wire(data))
        return from_wire(record)

    async def delete_field(self, field_id: int) -> None:
        await self._request("DELETE", f"/fields/{field_id}/")

    async def bulk_reorder(self, fieldset_id: int, order: list[dict]) -> list[EditorField]:
        records = await self._request("PUT", f"/fieldsets/{fieldset_id}/fields/bulk/", json={"fields": order})
        return [from_wire(record) for record in records]

    # Catalogs and locations

    async def get_field_types(self) -> dict[str, dict]:
        return await self._request("GET", "/field-types/")

    async def get_location_types(self) -> list[dict]:
        return await self._request("GET", "/locations/types/")

    async def get_locations(self, fieldset_id: int) -> list[dict]:
        return await self._request("GET", f"/fieldsets/{fieldset_id}/locations/")

    async def update_locations(self, fieldset_id: int, groups: list[dict]) -> list[dict]:
        return await self._request("PUT", f"/fieldsets/{fieldset_id}/locations/", json=groups)

    async def match_context(self, context: dict) -> list[dict]:
        return await self._request("POST", "/locations/match/", json=context)
