"""Relay of characteristic value changes as push messages."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .exceptions import DeviceError
from .protocol.messages import Message, new_push
from .protocol.methods import ENCODING_BASE64, PushMethod
from .transport.provider import DeviceHandle

_LOGGER = logging.getLogger(__name__)

SubscriptionKey = tuple[str, str]
ValueHandler = Callable[[bytes], None]


@dataclass
class Subscription:
    """Notifications enabled on one characteristic."""

    service_id: str
    characteristic_id: str
    characteristic: Any
    handler: ValueHandler
    delivered: int = field(default=0)


class NotificationRelay:
    """Turns value-change callbacks into ``characteristicDidChange`` pushes.

    Args:
        publish: Non-blocking sink for push messages (the session's
            outbound channel); called from the provider's callback context
    """

    def __init__(self, publish: Callable[[Message], None]):
        self._publish = publish
        self._subscriptions: dict[SubscriptionKey, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def is_active(self, service_id: str, characteristic_id: str) -> bool:
        return (service_id, characteristic_id) in self._subscriptions

    def get(self, service_id: str, characteristic_id: str) -> Subscription | None:
        return self._subscriptions.get((service_id, characteristic_id))

    async def subscribe(
            self,
            device: DeviceHandle,
            service_id: str,
            characteristic_id: str,
            characteristic: Any = None,
    ) -> Subscription:
        """Enable notifications on a characteristic.

        Subscribing twice keeps the device-side registration and replaces
        the handler.

        Args:
            device: Connected device
            service_id: Normalized service UUID
            characteristic_id: Normalized characteristic UUID
            characteristic: Already resolved characteristic (optional)

        Raises:
            DeviceError: If the characteristic cannot be resolved or enabled
        """
        key = (service_id, characteristic_id)
        handler = self._make_handler(service_id, characteristic_id)

        existing = self._subscriptions.get(key)
        if existing is not None:
            _LOGGER.debug("Notifications already active on %s/%s", *key)
            existing.handler = handler
            return existing

        if characteristic is None:
            characteristic = await device.get_characteristic(service_id, characteristic_id)

        def _on_value(data: bytes) -> None:
            self._dispatch(key, data)

        await device.enable_notifications(characteristic, _on_value)
        subscription = Subscription(service_id, characteristic_id, characteristic, handler)
        self._subscriptions[key] = subscription
        _LOGGER.info("Notifications started on %s/%s", service_id, characteristic_id)
        return subscription

    async def unsubscribe(
            self,
            device: DeviceHandle,
            service_id: str,
            characteristic_id: str,
    ) -> bool:
        """Disable notifications; a no-op when none are active.

        Returns:
            True if a subscription was removed

        Raises:
            DeviceError: If disabling fails (the subscription stays active)
        """
        key = (service_id, characteristic_id)
        subscription = self._subscriptions.get(key)
        if subscription is None:
            return False

        await device.enable_notifications(subscription.characteristic, None)
        del self._subscriptions[key]
        _LOGGER.info("Notifications stopped on %s/%s", service_id, characteristic_id)
        return True

    async def clear(self, device: DeviceHandle) -> None:
        """Drop every subscription, disabling them on the device best-effort."""
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            try:
                await device.enable_notifications(subscription.characteristic, None)
            except DeviceError as e:
                _LOGGER.warning(
                    "Error stopping notifications on %s/%s: %s",
                    subscription.service_id,
                    subscription.characteristic_id,
                    e,
                )

    def _dispatch(self, key: SubscriptionKey, data: bytes) -> None:
        subscription = self._subscriptions.get(key)
        if subscription is None:
            return
        subscription.delivered += 1
        subscription.handler(data)

    def _make_handler(self, service_id: str, characteristic_id: str) -> ValueHandler:
        def _handler(data: bytes) -> None:
            self._publish(new_push(
                PushMethod.CHARACTERISTIC_DID_CHANGE.value,
                {
                    "serviceId": service_id,
                    "characteristicId": characteristic_id,
                    "message": base64.b64encode(data).decode("ascii"),
                    "encoding": ENCODING_BASE64,
                },
            ))
        return _handler
