"""HTTP client for the review form template store."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

ResourceId = Union[int, str]


class TemplateStoreError(Exception):
    """The template store could not be reached or refused the request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class TemplateStoreClient:
    """Thin wrapper over the template store's REST endpoints.

    Each call is a single request: no retries and no queueing. Any transport
    error or non-2xx response raises ``TemplateStoreError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.TEMPLATE_STORE_URL).rstrip("/") + "/api/"
        self.timeout = timeout if timeout is not None else settings.SERVICE_TIMEOUT
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        url = self.base_url + path
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TemplateStoreError(f"{method} {url} failed: {exc}") from exc

        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                data = response.text

        if not 200 <= response.status_code < 300:
            detail = data.get("detail") if isinstance(data, dict) else None
            raise TemplateStoreError(
                detail or f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                payload=data,
            )
        return data

    def list_templates(self, business_id: ResourceId) -> List[Dict[str, Any]]:
        data = self._request("GET", "form-templates/", params={"businessId": business_id})
        if isinstance(data, dict) and "results" in data:
            data = data["results"]
        return data if isinstance(data, list) else []

    def get_template(self, template_id: ResourceId) -> Dict[str, Any]:
        return self._request("GET", f"form-templates/{template_id}/")

    def create_template(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "form-templates/", json=payload)

    def update_template(self, template_id: ResourceId, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"form-templates/{template_id}/", json=payload)

    def delete_template(self, template_id: ResourceId) -> None:
        self._request("DELETE", f"form-templates/{template_id}/")

    def activate_template(self, template_id: ResourceId) -> Dict[str, Any]:
        return self._request("POST", f"form-templates/{template_id}/activate/")

    def duplicate_template(self, template_id: ResourceId) -> Dict[str, Any]:
        return self._request("POST", f"form-templates/{template_id}/duplicate/")

    def get_business(self, business_id: ResourceId) -> Dict[str, Any]:
        return self._request("GET", f"businesses/{business_id}/")

    def get_public_template(self, business_id: ResourceId) -> Dict[str, Any]:
        return self._request("GET", f"form-templates/public/{business_id}/")
