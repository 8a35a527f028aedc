from __future__ import annotations

from typing import Any, Dict, List, Mapping, NoReturn, Optional

import httpx
import typer

from app.schemas import ReadingOut
from cli.config import CLIConfig
from models.records import Reading


class ApiError(RuntimeError):
    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"Request failed with status {status_code}: {detail or 'no detail provided.'}")
        self.status_code = status_code
        self.detail = detail


class ApiClient:
    """Minimal HTTP client for the usage tracker service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        headers: Dict[str, str] = {}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(
            base_url=config.base_url,
            headers=headers,
            timeout=config.request_timeout,
        )

    def close(self) -> None:
        self._client.close()

    def list_readings(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        utility_type: str = "all",
    ) -> List[Dict[str, Any]]:
        params = _range_params(start, end)
        params["type"] = utility_type
        return self._request("GET", "/readings", params=params)

    def add_reading(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/readings", json=dict(fields))

    def delete_reading(self, reading_id: str) -> None:
        self._request("DELETE", f"/readings/{reading_id}")

    def get_statistics(self, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/readings/statistics", params=_range_params(start, end))

    def get_chart(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        utility_type: str = "all",
    ) -> List[Dict[str, Any]]:
        params = _range_params(start, end)
        params["type"] = utility_type
        return self._request("GET", "/readings/chart", params=params)

    def request_insights(self, energy_data: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "/insights", json={"energyData": energy_data})

    def fetch_readings(self) -> List[Reading]:
        """Full reading list as domain records; used to seed a local cache."""
        return [_to_record(item) for item in self._request("GET", "/readings", params={"start": "0001-01-01"})]

    def write_update(self, reading_id: str, fields: Mapping[str, Any]) -> None:
        payload = {("type" if key == "utility_type" else key): value for key, value in fields.items()}
        response = self._client.patch(f"/readings/{reading_id}", json=payload)
        if response.is_error:
            raise ApiError(response.status_code, _error_detail(response))

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        message = (
            f"Request failed with status {exc.response.status_code}: "
            f"{_error_detail(exc.response) or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _range_params(start: Optional[str], end: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if start:
        params["start"] = start
    if end:
        params["end"] = end
    return params


def _error_detail(response: httpx.Response) -> Any:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, dict) and "errors" in detail:
            return "; ".join(detail["errors"])
        return detail
    return data


def _to_record(payload: Mapping[str, Any]) -> Reading:
    return Reading(**ReadingOut.model_validate(payload).model_dump())
