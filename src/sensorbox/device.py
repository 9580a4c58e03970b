"""
The device facade.

A Device combines a keyword registry, a state store and an event dispatcher, and sends
parameter-set commands to a transport. Concrete device families subclass Device, supplying
the keyword registry, the device class name, properties for their attributes and
command methods.

The transport, attachment and wire framing are external. The attachment collaborator calls
attach() once the device has completed its handshake and detach() when it goes away, and the
transport feeds every inbound update through update().
"""
import logging
from abc import abstractmethod
from types import MappingProxyType

from sensorbox.commands import normalize_indices, validate_change_trigger, EnumeratedValues
from sensorbox.dispatch import EventDispatcher, Subscription
from sensorbox.registry import KeywordRegistry
from sensorbox.state import StateStore, Channel
from sensorbox.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class Parameter(CommonEqualityMixin, StringerMixin):
    """
    The address of a device parameter that a command sets.
    """
    def __init__(self, device_class, serial, keyword, index=None):
        self.device_class = device_class
        self.serial = serial
        self.keyword = keyword
        self.index = index

    @property
    def key(self):
        """
        >>> Parameter('PhidgetTemperatureSensor', 1234, 'ThermocoupleType', 0).key
        '/PCK/PhidgetTemperatureSensor/1234/ThermocoupleType/0'
        >>> Parameter('PhidgetTemperatureSensor', None, 'Ratiometric').key
        '/PCK/PhidgetTemperatureSensor/Ratiometric'
        """
        parts = ['', 'PCK', self.device_class]
        if self.serial is not None:
            parts.append(str(self.serial))
        parts.append(self.keyword)
        if self.index is not None:
            parts.append(str(self.index))
        return '/'.join(parts)


class Transport:
    """
    Sends commands to the device. Sending is fire and forget, acknowledgement and
    retransmission are up to the transport.
    """
    @abstractmethod
    def send(self, parameter: Parameter, value, persistent=True):
        """
        :param parameter: the parameter to set
        :param value: the encoded value
        :param persistent: True if the controller should keep the value when the client disconnects
        """
        raise NotImplementedError


class LoggingTransport(Transport):
    """
    A transport that logs and records the commands sent, without delivering them anywhere.
    """
    def __init__(self, log=logger):
        self.sent = []
        self.logger = log

    def send(self, parameter: Parameter, value, persistent=True):
        self.logger.debug("send %s=%s", parameter.key, value)
        self.sent.append((parameter, value, persistent))


class Device:
    """
    The local mirror of a remote device.
    :param transport: receives outbound commands
    :param registry: the keywords recognized by this device
    :param strict: when True, inbound values that can't be decoded raise DecodeError rather
        than being stored as nan.
    """
    registry = None     # type: KeywordRegistry
    device_class = 'Phidget'

    def __init__(self, transport: Transport=None, registry: KeywordRegistry=None, strict=False):
        if registry is not None:
            self.registry = registry
        if self.registry is None:
            raise ValueError("%s has no keyword registry" % type(self).__name__)
        self.transport = transport if transport is not None else LoggingTransport()
        self.serial = None
        self._ready = False
        self._store = StateStore(self.registry, strict)
        self._events = EventDispatcher()

    @property
    def ready(self) -> bool:
        return self._ready

    def attach(self, serial=None):
        """ called once the device has been attached and the handshake has completed. """
        if serial is not None:
            self.serial = serial
        self._ready = True
        logger.info("%s %s attached", self.device_class, self.serial)
        self._events.emit(self, 'attached', {'serial': self.serial})

    def detach(self):
        """ called when the device goes away. The state is retained. """
        was_ready = self._ready
        self._ready = False
        if was_ready:
            logger.info("%s %s detached", self.device_class, self.serial)
            self._events.emit(self, 'detached', {'serial': self.serial})

    def update(self, keyword, index, value):
        """
        Applies an inbound update and publishes it to subscribers.
        :return: the AppliedUpdate, or IGNORED if the keyword wasn't recognized.
        """
        applied = self._store.apply(keyword, index, value)
        if applied:
            self._events.dispatch(self, applied, self._ready)
        return applied

    def on(self, event_name, handler) -> Subscription:
        """
        Registers a handler called with (device, payload) for each event with the given name.
        The payload has the 'value', and the channel 'index' for channel events.
        """
        return self._events.subscribe(event_name, handler)

    def off(self, subscription: Subscription):
        self._events.unsubscribe(subscription)
        return self

    @property
    def scalars(self):
        return MappingProxyType(self._store.scalars)

    @property
    def channels(self):
        return MappingProxyType(self._store.channels)

    @property
    def channel_count(self):
        return self._store.channel_count

    def channel(self, index) -> Channel:
        return self._store.channels.get(index)

    def scalar(self, field, default=None):
        return self._store.scalars.get(field, default)

    def snapshot(self) -> dict:
        snapshot = self._store.snapshot()
        snapshot['ready'] = self._ready
        return snapshot

    def set_change_trigger(self, keyword, index, value):
        """
        Sets a change trigger on one or more channels.
        :param keyword: the change trigger keyword
        :param index: a channel index or an iterable of indices
        :param value: a number >= 0
        :return: this device, for chaining
        """
        if not self._dropped(keyword):
            field = self._channel_field(keyword)
            trigger = validate_change_trigger(value)
            self._set_parameter(keyword, field, normalize_indices(index), trigger)
        return self

    def set_enumerated(self, keyword, index, value, values: EnumeratedValues):
        """
        Sets an enumerated parameter on one or more channels.
        :param value: an alias accepted by values, or a wire code
        :return: this device, for chaining
        """
        if not self._dropped(keyword):
            field = self._channel_field(keyword)
            code = values.code_for(value)
            self._set_parameter(keyword, field, normalize_indices(index), code)
        return self

    def _dropped(self, keyword):
        if not self._ready:
            logger.debug("%s not ready, %s not sent", self.device_class, keyword)
        return not self._ready

    def _channel_field(self, keyword):
        descriptor = self.registry.lookup(keyword)
        if descriptor is None or not descriptor.indexed:
            raise ValueError("%s has no channel parameter %s" % (self.device_class, keyword))
        return descriptor.field

    def _set_parameter(self, keyword, field, indices, value):
        """
        Writes the value to each channel's local state, and sends it to the device.
        The value must already be validated.
        """
        for index in indices:
            self._store.write_through(index, field, value)
            self.transport.send(Parameter(self.device_class, self.serial, keyword, index), value, True)
