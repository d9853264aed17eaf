"""Normalization of JetBrains Marketplace responses.

The marketplace endpoints do not agree on a response shape: search results may
come as a bare list or wrapped in ``{"plugins": [...]}``, the identifier may be
``xmlId`` or only ``id``, and the vendor may be ``organization``, a ``vendor``
object or a ``vendor`` string. Everything is mapped to PluginRecord here so no
other module looks at raw response data.
"""

from typing import Any

from jbplugins.config.schemas import UNKNOWN_ORGANIZATION, PluginRecord, PluginVersion


def extract_plugin_list(data: Any) -> list[Any]:
    """Get the list of raw plugin entries from a search response."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        plugins = data.get("plugins")
        if isinstance(plugins, list):
            return plugins
    return []


def _organization(raw: dict[str, Any]) -> str:
    organization = raw.get("organization")
    if isinstance(organization, str) and organization:
        return organization
    if isinstance(organization, dict) and organization.get("name"):
        return str(organization["name"])

    vendor = raw.get("vendor")
    if isinstance(vendor, dict) and vendor.get("name"):
        return str(vendor["name"])
    if isinstance(vendor, str) and vendor:
        return vendor
    return UNKNOWN_ORGANIZATION


def _non_negative_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def normalize_plugin(raw: Any) -> PluginRecord | None:
    """Convert one raw marketplace entry to a PluginRecord.

    Args:
        raw: Entry from any search endpoint

    Returns:
        The record, or None if the entry has no usable identifier
    """
    if not isinstance(raw, dict):
        return None

    xml_id = raw.get("xmlId") or raw.get("id")
    if xml_id is None or str(xml_id).strip() == "":
        return None

    name = raw.get("name")
    link = raw.get("link")
    return PluginRecord(
        xml_id=str(xml_id),
        name=name if isinstance(name, str) else "",
        organization=_organization(raw),
        downloads=_non_negative_int(raw.get("downloads")),
        plugin_id=_non_negative_int(raw.get("id")),
        link=link if isinstance(link, str) else None,
    )


def normalize_plugins(data: Any) -> list[PluginRecord]:
    """Convert a search response to records, dropping unusable entries."""
    records = []
    for raw in extract_plugin_list(data):
        record = normalize_plugin(raw)
        if record is not None:
            records.append(record)
    return records


def normalize_update(data: Any) -> PluginVersion | None:
    """Extract the newest version from a plugin updates response.

    The compatible IDE version is read from ``compatibleVersions.IDEA``,
    then ``sinceUntil``, and is "N/A" when neither is present.

    Args:
        data: Response of the updates endpoint (a list, newest first)

    Returns:
        PluginVersion, or None if the response holds no usable update
    """
    if not isinstance(data, list) or not data:
        return None

    update = data[0]
    if not isinstance(update, dict) or not update.get("version"):
        return None

    idea_version = None
    compatible = update.get("compatibleVersions")
    if isinstance(compatible, dict) and compatible.get("IDEA"):
        idea_version = str(compatible["IDEA"])
    elif update.get("sinceUntil"):
        idea_version = str(update["sinceUntil"])

    return PluginVersion(version=str(update["version"]), idea_version=idea_version or "N/A")
