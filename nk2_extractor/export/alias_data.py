"""Conversion of items into the plain dictionaries shared by the exporters."""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List

from ..core.mapi import (
    PR_ACCOUNT, PR_ADDRTYPE, PR_DISPLAY_NAME, PR_EMAIL_ADDRESS, PR_NICK_NAME,
    PR_SEARCH_KEY, PR_SMTP_ADDRESS, MAPIPropertyAccessor, get_property_name,
)
from ..errors import NK2Error, error_sprint
from ..item import Item
from ..value_type import get_value_type_identifier

logger = logging.getLogger(__name__)


def serialize_value(value: Any) -> Any:
    """Make a decoded value JSON and spreadsheet friendly."""
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, list):
        return [serialize_value(element) for element in value]
    return value


def entry_to_dict(item: Item, entry_index: int) -> Dict[str, Any]:
    entry = item.get_record_entry(entry_index)
    try:
        value = serialize_value(entry.get_value())
    except NK2Error as e:
        logger.warning(
            f"Unable to decode entry {entry_index} of alias {item.index}: "
            f"{error_sprint(e.chain).strip()}"
        )
        value = None
    return {
        'alias_index': item.index,
        'entry_index': entry_index,
        'entry_type': f'0x{entry.entry_type:04x}',
        'property_name': get_property_name(entry.entry_type),
        'value_type': f'0x{entry.value_type:04x}',
        'value_type_identifier': get_value_type_identifier(entry.value_type),
        'data_size': entry.get_data_size(),
        'value': value,
    }


def alias_to_dict(item: Item, include_entries: bool = True) -> Dict[str, Any]:
    """Summarize an item with its common address properties.

    Args:
        item: The item to convert
        include_entries: Whether to add the full list of entries

    Returns:
        Dictionary keyed by the export field ids, plus 'entries' when requested
    """
    accessor = MAPIPropertyAccessor(item)
    alias = {
        'index': item.index,
        'display_name': accessor.get_string(PR_DISPLAY_NAME),
        'email_address': accessor.get_string(PR_EMAIL_ADDRESS),
        'address_type': accessor.get_string(PR_ADDRTYPE),
        'smtp_address': accessor.get_string(PR_SMTP_ADDRESS),
        'search_key': accessor.get_string(PR_SEARCH_KEY),
        'nickname': accessor.get_string(PR_NICK_NAME),
        'account': accessor.get_string(PR_ACCOUNT),
        'number_of_entries': item.amount_of_entries(),
        'recovered': item.recovered,
    }
    if include_entries:
        alias['entries'] = [
            entry_to_dict(item, entry_index)
            for entry_index in range(item.amount_of_entries())
        ]
    return alias


def collect_aliases(nk2_file, include_recovered: bool = False) -> List[Item]:
    """Read every item of an open file, skipping (and logging) corrupt ones."""
    items = []
    for item_index in range(nk2_file.amount_of_items()):
        try:
            items.append(nk2_file.get_item(item_index))
        except NK2Error as e:
            logger.error(
                f"Unable to read alias {item_index}:\n{error_sprint(e.chain)}"
            )
    if include_recovered:
        for item_index in range(nk2_file.amount_of_recovered_items()):
            try:
                items.append(nk2_file.get_recovered_item(item_index))
            except NK2Error as e:
                logger.error(
                    f"Unable to read recovered alias {item_index}:\n{error_sprint(e.chain)}"
                )
    return items
