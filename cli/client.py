from __future__ import annotations

from typing import Any, Dict, List, Union

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the registry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def list_devices(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/devices").json()

    def get_device(self, identifier: str) -> Dict[str, Any]:
        return self._request("GET", f"/devices/{identifier}").json()

    def register_device(self, identifier: str, kind: str) -> Dict[str, Any]:
        response = self._request(
            "POST", "/devices", json={"identifier": identifier, "kind": kind}
        )
        return response.json()

    def add_sample(self, identifier: str, value: Union[int, float]) -> Dict[str, Any]:
        response = self._request(
            "POST", f"/devices/{identifier}/samples", json={"value": value}
        )
        return response.json()

    def list_summaries(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/summaries").json()

    def clear_devices(self) -> None:
        self._request("DELETE", "/devices")

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
