"""Sensor-attachment driven channel visibility."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Tuple

from ..config.channels import Channel, ChannelId

logger = logging.getLogger(__name__)

# Channels whose visibility follows another channel's sensor. There is no
# separate plethysmograph sensor; the pulse oximeter probe provides both.
DERIVED_CHANNELS: Dict[ChannelId, Tuple[ChannelId, ...]] = {
    ChannelId.SPO2: (ChannelId.PLETH,),
}

SENSOR_CHANNELS: Dict[str, ChannelId] = {
    "ecg": ChannelId.ECG,
    "spo2": ChannelId.SPO2,
    "resp": ChannelId.RESP,
}


class SensorGate:
    """
    Map sensor-attachment flags onto channel visibility.

    Sensor attachment is authoritative: a channel is visible only while its
    sensor is attached *and* the user has not switched it off manually. A
    manual toggle can hide an attached channel but never reveals a channel
    whose sensor is missing.
    """

    def __init__(self, channels: Mapping[ChannelId, Channel]) -> None:
        self._channels = channels
        self._sensors: Dict[str, bool] = {}

    def _refresh(self, channel: Channel) -> bool:
        visible = channel.attached and channel.manual_enabled
        if visible == channel.visible:
            return False
        channel.visible = visible
        logger.info(
            "Channel %s %s", channel.id.value, "shown" if visible else "hidden"
        )
        return True

    def update_visibility(self, channel_id: ChannelId, attached: bool) -> List[ChannelId]:
        """
        Record the attachment state of ``channel_id`` and its derived channels.

        Returns the channels whose ``visible`` flag changed; applying the same
        state twice returns an empty list.
        """
        channel_id = ChannelId(channel_id)
        changed: List[ChannelId] = []
        for target in (channel_id, *DERIVED_CHANNELS.get(channel_id, ())):
            channel = self._channels[target]
            channel.attached = bool(attached)
            if self._refresh(channel):
                changed.append(target)
        return changed

    def apply_sensors(self, sensors: Mapping[str, bool]) -> List[ChannelId]:
        """Apply one envelope's sensor flags; sensors not mentioned keep their state."""
        changed: List[ChannelId] = []
        for name, attached in sensors.items():
            previous = self._sensors.get(name)
            self._sensors[name] = bool(attached)
            if previous is not None and previous != bool(attached):
                logger.info("Sensor %s %s", name, "attached" if attached else "detached")
            channel_id = SENSOR_CHANNELS.get(name)
            if channel_id is None:
                continue
            changed.extend(self.update_visibility(channel_id, bool(attached)))
        return changed

    def set_manual_enabled(self, channel_id: ChannelId, enabled: bool) -> bool:
        """Apply a user toggle; returns True when ``visible`` changed."""
        channel = self._channels[ChannelId(channel_id)]
        channel.manual_enabled = bool(enabled)
        return self._refresh(channel)

    def is_attached(self, sensor: str) -> bool:
        """
        Return the last reported attachment of ``sensor``.

        Sensors that have never been reported count as attached, matching the
        initial all-visible state of the channels.
        """
        return self._sensors.get(sensor, True)

    def sensor_states(self) -> Dict[str, bool]:
        return dict(self._sensors)


__all__ = ["DERIVED_CHANNELS", "SENSOR_CHANNELS", "SensorGate"]
