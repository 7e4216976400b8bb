from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx


SHEETS_API_BASE_URL = "https://sheets.googleapis.com/v4"


@dataclass(frozen=True)
class SheetsConfig:
    spreadsheet_id: str
    access_token: str
    base_url: str = SHEETS_API_BASE_URL
    timeout_seconds: float = 20.0


def _values_url(cfg: SheetsConfig, range_: str, suffix: str = "") -> str:
    return (
        f"{cfg.base_url.rstrip('/')}/spreadsheets/{quote(cfg.spreadsheet_id, safe='')}"
        f"/values/{quote(range_, safe='!:')}{suffix}"
    )


def _auth_headers(cfg: SheetsConfig) -> dict[str, str]:
    return {"Authorization": f"Bearer {cfg.access_token}"}


async def get_values(client: httpx.AsyncClient, cfg: SheetsConfig, *, range_: str) -> list[list[str]]:
    resp = await client.get(
        _values_url(cfg, range_),
        headers=_auth_headers(cfg),
        timeout=cfg.timeout_seconds,
    )
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError("Unexpected sheets values response (not a JSON object)")
    values = data.get("values") or []
    if not isinstance(values, list):
        raise ValueError("Unexpected sheets values response (values is not a list)")
    return [list(row) if isinstance(row, list) else [] for row in values]


async def append_row(client: httpx.AsyncClient, cfg: SheetsConfig, *, range_: str, row: list[Any]) -> None:
    resp = await client.post(
        _values_url(cfg, range_, ":append"),
        headers=_auth_headers(cfg),
        params={"valueInputOption": "USER_ENTERED"},
        json={"values": [row]},
        timeout=cfg.timeout_seconds,
    )
    resp.raise_for_status()
