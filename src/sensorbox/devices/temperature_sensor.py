"""
Thermocouple temperature sensor boards, such as the 4-input PhidgetTemperatureSensor.

Each input is a channel. The board reports its ambient temperature (the temperature where the
inputs connect to the board), and for each input the temperature, the thermocouple potential and
the limits of both for the configured thermocouple type.

    sensor = TemperatureSensor(transport)
    sensor.on('temperature', lambda device, data: print(data['index'], data['value']))
    sensor.attach(serial)
    # receive temperature events when the temperature changes by at least 2 degrees Celsius
    sensor.set_thermocouple_type(0, 'K').set_temperature_change_trigger(0, 2)

Settings are read from temperature_sensor.cfg beside this module (see sensorbox.config).
"""
import sys
from enum import IntEnum

from sensorbox.commands import EnumeratedValues
from sensorbox.config.config import configure_module
from sensorbox.device import Device, Transport
from sensorbox.registry import KeywordRegistry, KeywordDescriptor, EnumDecoder

# when True, inbound values that can't be decoded raise DecodeError instead of being stored as nan
strict_decoding = False

# the change trigger the board uses until one is set, in degrees Celsius
default_change_trigger = 0.5


class ThermocoupleType(IntEnum):
    J = 0
    K = 1
    E = 2
    T = 3


# the symbol names of the types, accepted alongside the letters
thermocouple_aliases = {'TYPE_' + t.name: t for t in ThermocoupleType}

thermocouple_types = EnumeratedValues(ThermocoupleType, thermocouple_aliases)


keywords = KeywordRegistry([
    KeywordDescriptor('AmbientTemperature', emittable=True),
    KeywordDescriptor('AmbientTemperatureMax'),
    KeywordDescriptor('AmbientTemperatureMin'),
    KeywordDescriptor('TemperatureInputCount', counts_channels=True),
    KeywordDescriptor('Temperature', indexed=True, emittable=True),
    KeywordDescriptor('TemperatureMax', indexed=True),
    KeywordDescriptor('TemperatureMin', indexed=True),
    # the potential is mostly useful for voltage sources other than a J, K, E or T thermocouple
    KeywordDescriptor('Potential', indexed=True, emittable=True),
    KeywordDescriptor('PotentialMax', indexed=True),
    KeywordDescriptor('PotentialMin', indexed=True),
    KeywordDescriptor('ThermocoupleType', indexed=True, decoder=EnumDecoder(ThermocoupleType, thermocouple_aliases)),
    KeywordDescriptor('TemperatureChangeTrigger', indexed=True),
])


class TemperatureSensor(Device):
    """
    Events:
    - ambientTemperature {value}: the board's ambient temperature changed
    - temperature {index, value}: an input's temperature changed by more than its change trigger
    - potential {index, value}: an input's potential changed
    - attached, detached {serial}

    Updates to the limits, thermocouple type and change trigger are applied silently.
    """
    device_class = 'PhidgetTemperatureSensor'
    registry = keywords
    THERMOCOUPLE_TYPES = ThermocoupleType

    def __init__(self, transport: Transport=None, strict=None):
        super().__init__(transport, strict=strict_decoding if strict is None else strict)

    @property
    def ambient_temperature(self):
        """ the last known ambient temperature, in degrees Celsius. """
        return self.scalar('ambientTemperature')

    @property
    def ambient_temperature_max(self):
        return self.scalar('ambientTemperatureMax')

    @property
    def ambient_temperature_min(self):
        return self.scalar('ambientTemperatureMin')

    @property
    def input_count(self):
        return self.channel_count

    @property
    def inputs(self):
        """
        The known inputs, by index. Each input's attributes are a subset of temperature,
        temperatureMax, temperatureMin, potential, potentialMax, potentialMin, thermocoupleType
        and temperatureChangeTrigger.
        """
        return self.channels

    def temperature(self, index):
        return self._input_value(index, 'temperature')

    def potential(self, index):
        return self._input_value(index, 'potential')

    def thermocouple_type(self, index):
        code = self._input_value(index, 'thermocoupleType')
        return ThermocoupleType(code) if code in thermocouple_types.codes() else None

    def temperature_change_trigger(self, index):
        return self._input_value(index, 'temperatureChangeTrigger', default_change_trigger)

    def _input_value(self, index, field, default=None):
        channel = self.channel(index)
        return channel.get(field, default) if channel is not None else default

    def set_temperature_change_trigger(self, index, value):
        """
        Sets the amount the temperature of an input must change by between temperature events.
        A trigger of 0 reports every update, for applications that do their own filtering.
        :param index: an input index or an iterable of indices
        :param value: a number >= 0, in degrees Celsius
        :return: this sensor, for chaining
        """
        return self.set_change_trigger('TemperatureChangeTrigger', index, value)

    def set_thermocouple_type(self, index, value):
        """
        Sets the thermocouple type for an input.
        :param index: an input index or an iterable of indices
        :param value: 'J', 'K', 'E' or 'T' (any case, optionally prefixed by 'TYPE_'), or a ThermocoupleType code
        :return: this sensor, for chaining
        """
        return self.set_enumerated('ThermocoupleType', index, value, thermocouple_types)


configure_module(sys.modules[__name__])
