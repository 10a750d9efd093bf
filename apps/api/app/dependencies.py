from dataclasses import dataclass

from app.integrations.geocoding_client import GeocoderProtocol, get_geocoder
from app.integrations.notifier import OrderNotifierProtocol, get_order_notifier
from app.integrations.sheets_client import SheetsExporterProtocol, get_sheets_exporter
from app.services.side_effects import SideEffectRunner, get_side_effect_runner


@dataclass
class OrderIntegrations:
    notifier: OrderNotifierProtocol
    geocoder: GeocoderProtocol
    sheets: SheetsExporterProtocol
    runner: SideEffectRunner


def get_order_integrations() -> OrderIntegrations:
    return OrderIntegrations(
        notifier=get_order_notifier(),
        geocoder=get_geocoder(),
        sheets=get_sheets_exporter(),
        runner=get_side_effect_runner(),
    )
