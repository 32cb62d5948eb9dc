"""Cache data type catalogue and default time-to-live values.

A data type is the second half of a cache key and is used verbatim as a
directory path under the cache root, so two-level categories such as
``protocols/mqtt`` become nested directories.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from enum import StrEnum


class DataType(StrEnum):
    DEVICE_INFO = "deviceinfo"
    COMPONENTS = "components"
    SYSTEM = "system"
    WIFI = "wifi"
    SECURITY = "security"
    CLOUD = "cloud"
    BLE = "ble"
    MQTT = "protocols/mqtt"
    MODBUS = "protocols/modbus"
    ETHERNET = "protocols/ethernet"
    MATTER = "smarthome/matter"
    ZIGBEE = "smarthome/zigbee"
    LORA = "smarthome/lora"
    ZWAVE = "smarthome/zwave"
    FIRMWARE = "firmware"
    SCHEDULES = "automation/schedules"
    WEBHOOKS = "automation/webhooks"
    VIRTUALS = "automation/virtuals"
    INPUTS = "automation/inputs"
    KVS = "automation/kvs"
    SCRIPTS = "automation/scripts"


# ------------------------------------------------------------------
# TTLs by data volatility
# ------------------------------------------------------------------

TTL_DEVICE_INFO = timedelta(hours=24)  # hardware info rarely changes
TTL_COMPONENTS = timedelta(hours=24)
TTL_SYSTEM = timedelta(hours=1)
TTL_WIFI = timedelta(minutes=30)
TTL_SECURITY = timedelta(hours=1)
TTL_CLOUD = timedelta(minutes=30)
TTL_BLE = timedelta(hours=1)
TTL_PROTOCOLS = timedelta(hours=1)
TTL_SMART_HOME = timedelta(minutes=30)
TTL_FIRMWARE = timedelta(hours=1)
TTL_AUTOMATION = timedelta(minutes=5)
TTL_INPUTS = timedelta(minutes=10)

#: Fallback for data types outside the catalogue.
TTL_DEFAULT = timedelta(hours=1)

DEFAULT_TTLS: Mapping[DataType, timedelta] = {
    DataType.DEVICE_INFO: TTL_DEVICE_INFO,
    DataType.COMPONENTS: TTL_COMPONENTS,
    DataType.SYSTEM: TTL_SYSTEM,
    DataType.WIFI: TTL_WIFI,
    DataType.SECURITY: TTL_SECURITY,
    DataType.CLOUD: TTL_CLOUD,
    DataType.BLE: TTL_BLE,
    DataType.MQTT: TTL_PROTOCOLS,
    DataType.MODBUS: TTL_PROTOCOLS,
    DataType.ETHERNET: TTL_PROTOCOLS,
    DataType.MATTER: TTL_SMART_HOME,
    DataType.ZIGBEE: TTL_SMART_HOME,
    DataType.LORA: TTL_SMART_HOME,
    DataType.ZWAVE: TTL_SMART_HOME,
    DataType.FIRMWARE: TTL_FIRMWARE,
    DataType.SCHEDULES: TTL_AUTOMATION,
    DataType.WEBHOOKS: TTL_AUTOMATION,
    DataType.VIRTUALS: TTL_AUTOMATION,
    DataType.KVS: TTL_AUTOMATION,
    DataType.SCRIPTS: TTL_AUTOMATION,
    DataType.INPUTS: TTL_INPUTS,
}


def ttl_for(data_type: str, overrides: Mapping[str, float] | None = None) -> timedelta:
    """Return the TTL to use for *data_type*.

    *overrides* maps data type strings to seconds and wins over the
    built-in table. Unknown data types fall back to :data:`TTL_DEFAULT`.
    """
    key = str(data_type)
    if overrides and key in overrides:
        return timedelta(seconds=float(overrides[key]))
    try:
        return DEFAULT_TTLS[DataType(key)]
    except ValueError:
        return TTL_DEFAULT
