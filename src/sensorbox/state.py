"""
The local mirror of a device's state.

Scalar attributes and per-channel attribute maps are updated by applying inbound
(keyword, index, value) updates. Applying an update is a plain sequential state transition;
callers must not apply updates to the same store from more than one thread.
"""
import logging
from collections import OrderedDict
from types import MappingProxyType

from sensorbox.commands import ValidationError, channel_index
from sensorbox.registry import KeywordRegistry, is_nan
from sensorbox.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class Channel(StringerMixin):
    """
    An addressable sub-unit of a device, such as one thermocouple input.
    The index is fixed when the channel is created. Applications can only read a channel,
    its attributes are set by the state store.
    """
    def __init__(self, index: int):
        self._index = index
        self._attributes = {}

    @property
    def index(self) -> int:
        return self._index

    @property
    def attributes(self):
        return MappingProxyType(self._attributes)

    def get(self, field, default=None):
        return self._attributes.get(field, default)

    def __getitem__(self, field):
        return self._attributes[field]

    def __contains__(self, field):
        return field in self._attributes

    def snapshot(self) -> dict:
        return dict(self._attributes)

    def _set(self, field, value):
        self._attributes[field] = value


class AppliedUpdate(CommonEqualityMixin, StringerMixin):
    """
    The result of applying an update to the state store. Describes the update
    for the event dispatcher.
    """
    def __init__(self, keyword, field, index, value, emittable=False):
        self.keyword = keyword
        self.field = field
        self.index = index
        self.value = value
        self.emittable = emittable

    @property
    def indexed(self):
        return self.index is not None


class _Ignored:
    def __bool__(self):
        return False

    def __repr__(self):
        return 'IGNORED'


IGNORED = _Ignored()
"""Returned by StateStore.apply() for updates that did not change state."""


def _count(value):
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return None


class StateStore:
    """
    Holds the scalar attributes and channels for one device.
    :param registry: the keywords recognized by the device
    :param strict: when True, values that can't be decoded raise DecodeError. When False,
        they are stored as nan.
    """
    def __init__(self, registry: KeywordRegistry, strict=False):
        self.registry = registry
        self.strict = strict
        self.scalars = {}
        self.channels = OrderedDict()
        self.channel_count = None

    def channel(self, index) -> Channel:
        """ retrieves the channel at the given index, creating it if it doesn't exist yet. """
        channel = self.channels.get(index)
        if channel is None:
            channel = self.channels[index] = Channel(index)
        return channel

    def apply(self, keyword, index, raw_value):
        """
        Applies an inbound update.
        :return: an AppliedUpdate, or IGNORED if the keyword is not recognized or the update
            doesn't carry a valid channel index.
        """
        descriptor = self.registry.lookup(keyword)
        if descriptor is None:
            logger.debug("ignoring unrecognized keyword %s", keyword)
            return IGNORED
        if descriptor.indexed:
            if index is None:
                logger.warning("ignoring %s update without a channel index", keyword)
                return IGNORED
            try:
                index = channel_index(index)
            except ValidationError:
                logger.warning("ignoring %s update for invalid channel index %r", keyword, index)
                return IGNORED

        value = descriptor.decode(raw_value, self.strict)
        if is_nan(value):
            logger.warning("%s value %r is not valid, storing nan", keyword, raw_value)

        if descriptor.indexed:
            self.channel(index)._set(descriptor.field, value)
        else:
            index = None
            self.scalars[descriptor.field] = value
            if descriptor.counts_channels:
                self.channel_count = _count(value)

        return AppliedUpdate(keyword, descriptor.field, index, value, descriptor.emittable)

    def write_through(self, index, field, value):
        """
        Records a configuration value that was sent to the device, ahead of the device
        confirming it.
        """
        self.channel(index)._set(field, value)

    def snapshot(self) -> dict:
        return {
            'scalars': dict(self.scalars),
            'channels': OrderedDict((i, c.snapshot()) for i, c in self.channels.items()),
            'channelCount': self.channel_count,
        }
