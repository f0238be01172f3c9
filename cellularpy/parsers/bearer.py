"""
Bearer related parsers.
"""

import logging
from typing import Any, Mapping, Optional

from ..types import IPConfig, IPType

logger = logging.getLogger(__name__)


class IPConfigParser:
    """Parser for the Ip4Config / Ip6Config bearer properties."""

    def parse(self, raw: Mapping[str, Any], ip_type: IPType) -> Optional[IPConfig]:
        """
        Parse an IP configuration dictionary.

        Expected format (a{sv})::

            {"method": 3, "address": "10.0.0.2", "prefix": 30,
             "gateway": "10.0.0.1", "dns1": "10.0.0.53", "dns2": "10.0.0.54"}

        Args:
            raw: Property value
            ip_type: IPType.IPV4 or IPType.IPV6

        Returns:
            IPConfig, or None if the bearer has no address of this family
        """
        if ip_type not in (IPType.IPV4, IPType.IPV6):
            raise ValueError(f"IP configuration exists for IPv4 or IPv6 only, not {ip_type.name}")

        if "address" not in raw or "prefix" not in raw:
            logger.debug(f"No {ip_type.name} configuration present")
            return None

        return IPConfig(
            ip_type=ip_type,
            address=raw["address"],
            prefix=int(raw["prefix"]),
            gateway=raw.get("gateway"),
            dns1=raw.get("dns1"),
            dns2=raw.get("dns2")
        )
