"""
Record Codec - ConfigurationRecord <-> backend representations

Two representations are supported, chosen per backend:

    Document (human-inspectable)
        One field per property, camelCase keys, interval stored by name,
        timestamp as ISO-8601. Serialized to a JSON string with orjson.
        Used by the Redis backend, where values are inspected with redis-cli.

    Compact (binary)
        A positional msgpack array:
            [deviceId, intervalCode, storageEnabled, maxDataAgeDays,
             deviceType, lastUpdatedMicros, additionalProperties]
        Used by the structured table store as its single opaque payload.

Both decode to the same ConfigurationRecord with no loss for valid input.
Unrecognized interval names/codes decode to StorageInterval.UNKNOWN;
structurally malformed payloads raise RecordDecodeError.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import msgpack
import orjson
from pydantic import ValidationError as PydanticValidationError

from prdv_cache.core.exceptions import RecordDecodeError
from prdv_cache.models.configuration import ConfigurationRecord, StorageInterval

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

# Compact array layout
_COMPACT_FIELDS = 7


def _to_micros(value: datetime) -> int:
    return (value - _EPOCH) // _MICROSECOND


def _from_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


class RecordCodec:
    """
    Stateless, bidirectional mapping between ConfigurationRecord and the
    storage representations used by the backends.

    Usage:
        payload = RecordCodec.to_msgpack(record)
        record = RecordCodec.from_msgpack(payload)

        text = RecordCodec.to_json(record)
        record = RecordCodec.from_json(text)
    """

    # -------------------------------------------------------------------------
    # Document representation (field-per-property)
    # -------------------------------------------------------------------------

    @staticmethod
    def to_document(record: ConfigurationRecord) -> dict[str, Any]:
        """Encode a record as a field-per-property dict."""
        return {
            "deviceId": record.device_id,
            "storageInterval": record.storage_interval.name,
            "storageEnabled": record.storage_enabled,
            "maxDataAgeDays": record.max_data_age_days,
            "deviceType": record.device_type,
            "lastUpdated": record.last_updated.isoformat(),
            "additionalProperties": dict(record.additional_properties),
        }

    @staticmethod
    def from_document(document: Any) -> ConfigurationRecord:
        """
        Decode a field-per-property dict.

        Missing optional fields take their defaults; a missing or empty
        ``additionalProperties`` decodes to an empty bag.

        Raises:
            RecordDecodeError: If the document is not a mapping or a field
                has the wrong type
        """
        if not isinstance(document, dict):
            raise RecordDecodeError(
                "Configuration document must be an object",
                details={"payload_type": type(document).__name__},
            )

        fields: dict[str, Any] = {}
        mapping = {
            "deviceId": "device_id",
            "storageInterval": "storage_interval",
            "storageEnabled": "storage_enabled",
            "maxDataAgeDays": "max_data_age_days",
            "deviceType": "device_type",
            "lastUpdated": "last_updated",
            "additionalProperties": "additional_properties",
        }
        for source_key, field_name in mapping.items():
            value = document.get(source_key)
            if value is not None:
                fields[field_name] = value

        try:
            return ConfigurationRecord(**fields)
        except PydanticValidationError as e:
            raise RecordDecodeError.from_exception(
                e,
                message="Configuration document failed validation",
                device_id=document.get("deviceId") if isinstance(document.get("deviceId"), str) else None,
            )

    @staticmethod
    def to_json(record: ConfigurationRecord) -> str:
        """Encode a record as a JSON document string."""
        return orjson.dumps(RecordCodec.to_document(record)).decode("utf-8")

    @staticmethod
    def from_json(payload: str | bytes) -> ConfigurationRecord:
        """
        Decode a JSON document string.

        Raises:
            RecordDecodeError: If the payload is not valid JSON or not a valid document
        """
        try:
            document = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise RecordDecodeError.from_exception(e, message="Configuration payload is not valid JSON")
        return RecordCodec.from_document(document)

    # -------------------------------------------------------------------------
    # Compact representation (binary payload)
    # -------------------------------------------------------------------------

    @staticmethod
    def to_msgpack(record: ConfigurationRecord) -> bytes:
        """Encode a record as a compact msgpack payload."""
        return msgpack.packb(
            [
                record.device_id,
                int(record.storage_interval),
                record.storage_enabled,
                record.max_data_age_days,
                record.device_type,
                _to_micros(record.last_updated),
                dict(record.additional_properties),
            ],
            use_bin_type=True,
        )

    @staticmethod
    def from_msgpack(payload: bytes) -> ConfigurationRecord:
        """
        Decode a compact msgpack payload.

        Raises:
            RecordDecodeError: If the payload cannot be unpacked or has the wrong shape
        """
        try:
            values = msgpack.unpackb(payload, raw=False)
        except (msgpack.UnpackException, ValueError, TypeError) as e:
            raise RecordDecodeError.from_exception(e, message="Configuration payload is not valid msgpack")

        if not isinstance(values, (list, tuple)) or len(values) != _COMPACT_FIELDS:
            raise RecordDecodeError(
                "Compact configuration payload has an unexpected shape",
                details={"payload_type": type(values).__name__},
            )

        device_id, interval_code, enabled, max_age, device_type, micros, properties = values
        if not isinstance(micros, int) or isinstance(micros, bool):
            raise RecordDecodeError(
                "Compact configuration payload has an invalid timestamp",
                details={"timestamp_type": type(micros).__name__},
            )

        try:
            return ConfigurationRecord(
                device_id=device_id,
                storage_interval=StorageInterval.parse(interval_code),
                storage_enabled=enabled,
                max_data_age_days=max_age,
                device_type=device_type,
                last_updated=_from_micros(micros),
                additional_properties=properties or {},
            )
        except (PydanticValidationError, OverflowError) as e:
            raise RecordDecodeError.from_exception(
                e, message="Compact configuration payload failed validation"
            )
