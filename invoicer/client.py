# invoicer/client.py
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import Field

from invoicer.config import VERSION
from invoicer.models.base import CamelModel

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


class QuickDefaults(CamelModel):
    due_in_days: int = Field(default=30, ge=0)
    default_tax_rate: float = Field(default=0, ge=0, le=100)
    default_discount_rate: float = Field(default=0, ge=0, le=100)


class CliConfig(CamelModel):
    """Everything the CLI remembers between runs; handed explicitly to InvoiceAPI."""

    api_url: str = DEFAULT_API_URL
    api_key: str = ""
    quick_defaults: QuickDefaults = Field(default_factory=QuickDefaults)
    folders: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    default_folder: Optional[str] = None
    user: Optional[Dict[str, Any]] = None


def config_path() -> Path:
    override = os.getenv("INVOICE_CONFIG")
    if override:
        return Path(override)
    return Path.home() / ".config" / "invoice" / "config.json"


def load_config(path: Optional[Path] = None) -> CliConfig:
    path = path or config_path()
    if not path.exists():
        return CliConfig()
    return CliConfig.model_validate_json(path.read_text(encoding="utf-8"))


def save_config(config: CliConfig, path: Optional[Path] = None) -> Path:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    return path


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or []


class InvoiceAPI:
    def __init__(self, config: CliConfig, transport: Optional[httpx.BaseTransport] = None, timeout: float = 30.0):
        headers = {"User-Agent": f"invoice/{VERSION}"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self.client = httpx.Client(
            base_url=config.api_url.rstrip("/"),
            headers=headers,
            transport=transport,
            timeout=timeout,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiClientError(f"Request failed: {e}") from e

        if response.is_success:
            return response

        try:
            body = response.json()
        except json.JSONDecodeError:
            body = {}
        message = body.get("error") if isinstance(body, dict) else None
        details = body.get("details") if isinstance(body, dict) else None
        logger.debug(f"{method} {path} -> {response.status_code}")
        raise ApiClientError(message or f"HTTP {response.status_code}", response.status_code, details)

    def _json(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).json()

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._json("POST", "/users", json=user_data)

    def create_folder(self, folder_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._json("POST", "/folders", json=folder_data)

    def list_folders(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/folders")["folders"]

    def create_invoice(self, folder_id: str, invoice_data: Dict[str, Any]) -> httpx.Response:
        """Returns the raw response: PDF body plus the X-Invoice-Id header."""
        return self._request("POST", f"/invoices/folders/{folder_id}", json=invoice_data)

    def list_invoices(self, limit: int = 20) -> Dict[str, Any]:
        return self._json("GET", "/invoices", params={"limit": limit})

    def update_invoice_status(self, invoice_id: str, status: str) -> Dict[str, Any]:
        return self._json("PATCH", f"/invoices/{invoice_id}/status", json={"status": status})

    def get_invoice_pdf(self, invoice_id: str) -> bytes:
        return self._request("GET", f"/invoices/{invoice_id}/pdf").content

    def get_stats(self) -> Dict[str, Any]:
        return self._json("GET", "/metadata/stats")

    def search(self, query: str) -> Dict[str, Any]:
        return self._json("GET", "/metadata/search", params={"q": query})
