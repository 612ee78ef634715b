"""
Connector factory.
"""

from ..models.config import VenueConfig, VenueType
from .base_connector import BaseVenueConnector
from .ccxt_connector import CcxtConnector
from .extended_connector import ExtendedConnector
from .lighter_connector import LighterConnector


def create_connector(venue_config: VenueConfig, testnet: bool = False) -> BaseVenueConnector:
    """Build the connector described by ``venue_config``"""
    credentials = venue_config.credentials
    common = dict(
        testnet=testnet,
        dry_run=venue_config.dry_run,
        request_timeout=venue_config.request_timeout,
        amount_decimals=venue_config.amount_decimals,
    )

    if venue_config.type == VenueType.LIGHTER.value:
        return LighterConnector(
            api_key=credentials.get("api_key", ""),
            private_key=credentials.get("private_key", ""),
            quote=venue_config.quote,
            account_index=venue_config.account_index,
            base_url=venue_config.base_url,
            **common,
        )

    if venue_config.type == VenueType.EXTENDED.value:
        return ExtendedConnector(
            api_key=credentials.get("api_key", ""),
            base_url=venue_config.base_url,
            **common,
        )

    if venue_config.type == VenueType.CCXT.value:
        return CcxtConnector(
            exchange_id=venue_config.exchange_id,
            api_key=credentials.get("api_key", ""),
            api_secret=credentials.get("api_secret", ""),
            password=credentials.get("password", ""),
            quote=venue_config.quote,
            settle=venue_config.settle,
            name=venue_config.name,
            **common,
        )

    raise ValueError(f"Unknown venue type: {venue_config.type}")
