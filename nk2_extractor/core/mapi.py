"""MAPI property naming and access for NK2 items.

This module maps the entry types found in nickname caches to their MAPI
property names and provides forgiving access to item values by name.
"""
import logging
from typing import Any, Dict, Optional, Tuple, Union

from ..errors import NK2Error

logger = logging.getLogger(__name__)

# Entry type: (property name, description)
PROPERTY_NAMES: Dict[int, Tuple[str, str]] = {
    0x0c15: ('PR_RECIPIENT_TYPE', 'Recipient type'),
    0x0ffe: ('PR_OBJECT_TYPE', 'Object type'),
    0x0fff: ('PR_ENTRYID', 'Entry identifier'),
    0x3001: ('PR_DISPLAY_NAME', 'Display name'),
    0x3002: ('PR_ADDRTYPE', 'Address type'),
    0x3003: ('PR_EMAIL_ADDRESS', 'Email address'),
    0x300b: ('PR_SEARCH_KEY', 'Search key'),
    0x3900: ('PR_DISPLAY_TYPE', 'Display type'),
    0x3905: ('PR_DISPLAY_TYPE_EX', 'Extended display type'),
    0x39fe: ('PR_SMTP_ADDRESS', 'SMTP address'),
    0x39ff: ('PR_7BIT_DISPLAY_NAME', '7-bit display name'),
    0x3a00: ('PR_ACCOUNT', 'Account'),
    0x3a20: ('PR_TRANSMITABLE_DISPLAY_NAME', 'Transmittable display name'),
    0x3a40: ('PR_SEND_RICH_INFO', 'Send rich info'),
    0x5fdf: ('PR_RECIPIENT_ORDER', 'Recipient order'),
    0x5ff6: ('PR_RECIPIENT_DISPLAY_NAME', 'Recipient display name'),
    0x5ff7: ('PR_RECIPIENT_ENTRYID', 'Recipient entry identifier'),
    0x5ffd: ('PR_RECIPIENT_FLAGS', 'Recipient flags'),
    0x6001: ('PR_NICK_NAME', 'Nickname'),
}

PROPERTY_TAGS: Dict[str, int] = {
    name: entry_type for entry_type, (name, _) in PROPERTY_NAMES.items()
}

PR_DISPLAY_NAME = PROPERTY_TAGS['PR_DISPLAY_NAME']
PR_ADDRTYPE = PROPERTY_TAGS['PR_ADDRTYPE']
PR_EMAIL_ADDRESS = PROPERTY_TAGS['PR_EMAIL_ADDRESS']
PR_SEARCH_KEY = PROPERTY_TAGS['PR_SEARCH_KEY']
PR_SMTP_ADDRESS = PROPERTY_TAGS['PR_SMTP_ADDRESS']
PR_ACCOUNT = PROPERTY_TAGS['PR_ACCOUNT']
PR_NICK_NAME = PROPERTY_TAGS['PR_NICK_NAME']


def get_property_name(entry_type: int) -> str:
    """Get the MAPI property name of an entry type, e.g. ``PR_DISPLAY_NAME``."""
    names = PROPERTY_NAMES.get(entry_type)
    return names[0] if names else f'0x{entry_type:04x}'


def get_property_description(entry_type: int) -> str:
    names = PROPERTY_NAMES.get(entry_type)
    return names[1] if names else 'Unknown'


def resolve_property_tag(property_tag: Union[int, str]) -> Optional[int]:
    """Resolve a property name, a hex string or an entry type to an entry type.

    A full 32-bit tag (entry type in the upper 16 bits) is reduced to its
    entry type.
    """
    if isinstance(property_tag, int):
        return property_tag >> 16 if property_tag > 0xffff else property_tag
    if property_tag in PROPERTY_TAGS:
        return PROPERTY_TAGS[property_tag]
    try:
        value = int(property_tag, 16)
    except (TypeError, ValueError):
        return None
    return value >> 16 if value > 0xffff else value


class MAPIPropertyAccessor:
    """Forgiving property access on an item.

    Lookups return a default instead of raising when a property is missing
    or cannot be decoded; decoding problems are logged.
    """

    def __init__(self, item):
        """Initialize with an item.

        Args:
            item: The nk2_extractor Item to read properties from
        """
        self.item = item

    def get_property(self, property_tag: Union[int, str], default: Any = None) -> Any:
        """Get a decoded property value.

        Args:
            property_tag: Entry type, full property tag or name (e.g. 'PR_DISPLAY_NAME')
            default: Value returned when the property is absent or unreadable

        Returns:
            The decoded value or default
        """
        entry_type = resolve_property_tag(property_tag)
        if entry_type is None:
            logger.debug(f"Unknown property {property_tag!r}")
            return default
        for entry in self.item:
            if entry.entry_type != entry_type:
                continue
            try:
                return entry.get_value()
            except NK2Error as e:
                logger.warning(
                    f"Error decoding property {get_property_name(entry_type)} "
                    f"of item {self.item.index}: {e}",
                    exc_info=logger.isEnabledFor(logging.DEBUG)
                )
                return default
        return default

    def get_string(self, property_tag: Union[int, str], default: str = '') -> str:
        """Get a property as text; binary values are decoded as 8-bit text."""
        value = self.get_property(property_tag)
        if value is None:
            return default
        if isinstance(value, bytes):
            return value.rstrip(b'\x00').decode('latin-1')
        return str(value)

    def get_properties(self) -> Dict[str, Any]:
        """All decodable properties keyed by property name."""
        properties = {}
        for entry in self.item:
            name = get_property_name(entry.entry_type)
            try:
                properties[name] = entry.get_value()
            except NK2Error as e:
                logger.warning(f"Error decoding property {name}: {e}")
        return properties
