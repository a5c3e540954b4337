"""Request parameter shapes.

Each request method validates its ``params`` against one of these models.
A validation failure is a per-request error, never a session failure.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any, TypeVar

from bleak.uuids import normalize_uuid_16, normalize_uuid_32, normalize_uuid_str
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from ..exceptions import ParamValidationError
from ..models.filters import DiscoverFilter

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def normalize_uuid(value: Any) -> str:
    """Normalize a GATT UUID to its lowercase 128-bit string form.

    Accepts a full UUID string, a 4 or 8 hex digit short UUID string,
    or an integer 16/32-bit assigned number.

    Raises:
        ValueError: If the value is not a recognisable UUID
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid UUID: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 0xFFFF:
            return normalize_uuid_16(value)
        if 0 <= value <= 0xFFFFFFFF:
            return normalize_uuid_32(value)
        raise ValueError(f"UUID number out of range: {value}")
    if isinstance(value, str):
        return normalize_uuid_str(value.strip())
    raise ValueError(f"invalid UUID: {value!r}")


GattUUID = Annotated[str, BeforeValidator(normalize_uuid)]


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class DiscoverFilterParams(_Params):
    name: str | None = None
    name_prefix: str | None = Field(default=None, alias="namePrefix")
    services: list[GattUUID] = Field(default_factory=list)

    def to_filter(self) -> DiscoverFilter:
        return DiscoverFilter(
            name=self.name or None,
            name_prefix=self.name_prefix or None,
            services=frozenset(self.services),
        )


class DiscoverParams(_Params):
    filters: list[DiscoverFilterParams] = Field(default_factory=list)

    def to_filters(self) -> list[DiscoverFilter]:
        return [f.to_filter() for f in self.filters]


class ConnectParams(_Params):
    peripheral_id: str = Field(alias="peripheralId", min_length=1)


class NotificationsParams(_Params):
    service_id: GattUUID = Field(alias="serviceId")
    characteristic_id: GattUUID = Field(alias="characteristicId")


class UpdateParams(NotificationsParams):
    """Params of ``write``."""

    message: str
    encoding: str = ""
    with_response: bool = Field(default=False, alias="withResponse")

    def payload(self) -> bytes:
        """Decode the base64 message.

        Raises:
            ParamValidationError: If the message is not valid base64
        """
        try:
            return base64.b64decode(self.message, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ParamValidationError(f"invalid base64 message: {e}") from e


class ReadParams(NotificationsParams):
    start_notifications: bool = Field(default=False, alias="startNotifications")


def parse_params(model: type[_ModelT], raw: Any) -> _ModelT:
    """Validate raw request params against ``model``.

    Raises:
        ParamValidationError: If the params do not fit the model
    """
    try:
        return model.model_validate({} if raw is None else raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise ParamValidationError(f"invalid params: {problems}") from e
