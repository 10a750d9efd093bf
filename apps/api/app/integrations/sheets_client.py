from typing import Protocol
from urllib.parse import quote

import httpx

from app.config import settings
from app.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)
from app.schemas.snapshots import OrderSnapshot


class SheetsExporterProtocol(Protocol):
    def append_order_row(self, order: OrderSnapshot) -> bool: ...


def order_row(order: OrderSnapshot) -> list:
    """Columns: order id, name, phone, quantity, status, address."""
    return [
        order.id,
        order.delivery_name or "",
        (order.delivery_mobile or "").strip(),
        order.total_quantity,
        order.status.value,
        order.delivery_address or "",
    ]


class GoogleSheetsExporter:
    def __init__(
        self,
        spreadsheet_id: str,
        access_token: str,
        value_range: str,
        base_url: str,
        timeout_s: float,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.access_token = access_token
        self.value_range = value_range
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    @property
    def configured(self) -> bool:
        return bool(self.spreadsheet_id.strip() and self.access_token.strip())

    def append_order_row(self, order: OrderSnapshot) -> bool:
        if not self.configured:
            return False

        url = (
            f"{self.base_url}/v4/spreadsheets/{self.spreadsheet_id}"
            f"/values/{quote(self.value_range, safe='')}:append"
        )
        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.post(
                    url,
                    params={
                        "valueInputOption": "USER_ENTERED",
                        "insertDataOption": "INSERT_ROWS",
                    },
                    headers={"Authorization": f"Bearer {self.access_token}"},
                    json={"values": [order_row(order)]},
                )
        except httpx.TimeoutException as err:
            raise IntegrationTimeoutError("sheets") from err
        except httpx.TransportError as err:
            raise IntegrationUnavailableError("sheets", str(err)) from err

        if response.status_code >= 500:
            raise IntegrationUnavailableError("sheets", "Sheets API returned 5xx")
        if response.status_code >= 400:
            raise IntegrationBadGatewayError(
                "sheets", f"Sheets API returned {response.status_code}"
            )
        return True


def get_sheets_exporter() -> SheetsExporterProtocol:
    return GoogleSheetsExporter(
        spreadsheet_id=settings.sheets_spreadsheet_id,
        access_token=settings.sheets_access_token,
        value_range=settings.sheets_range,
        base_url=settings.sheets_base_url,
        timeout_s=settings.sheets_timeout_s,
    )
