"""
Single-writer delivery of inbound updates.

A transport may receive updates on its own thread. Updates are posted to the device's inbox,
and the thread that owns the device drains the inbox, applying the updates in the order they
arrived. The device state is then only ever changed by its owning thread.

Each device has its own inbox, so devices do not share any mutable state and several devices
can be drained by different threads.
"""
import logging
import threading

from sensorbox.device import Device
from sensorbox.support.events import QueuedEventSource
from sensorbox.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class InboundUpdate(CommonEqualityMixin, StringerMixin):
    """ An update message as received from the transport. """
    def __init__(self, keyword, index, value):
        self.keyword = keyword
        self.index = index
        self.value = value


class DeviceInbox:
    """
    Queues updates for one device.
    post() may be called from any thread. drain() applies the queued updates and must only be
    called by the thread that owns the device.
    """
    def __init__(self, device: Device):
        self.device = device
        self._queue = QueuedEventSource()
        self._queue.add(self._apply)

    def post(self, keyword, index, value):
        self._queue.post(InboundUpdate(keyword, index, value))

    def pending(self):
        return self._queue.pending()

    def drain(self):
        """
        Applies all the updates queued so far, in arrival order. If applying an update raises,
        the updates queued after it stay in the inbox for the next drain.
        :return: the number of updates applied
        """
        return self._queue.publish()

    def _apply(self, update: InboundUpdate):
        self.device.update(update.keyword, update.index, update.value)


class DeviceInboxes:
    """
    The inboxes for the devices of a multi-device client, keyed by a device identifier
    such as the serial number.
    """
    def __init__(self):
        self._inboxes = {}
        self._lock = threading.Lock()

    def inbox_for(self, key, device: Device=None) -> DeviceInbox:
        """
        Retrieves the inbox for a device, creating it when a device is given and there is no inbox yet.
        :return: the inbox, or None if there is no inbox for the key and no device was given
        """
        with self._lock:
            inbox = self._inboxes.get(key)
            if inbox is None and device is not None:
                inbox = self._inboxes[key] = DeviceInbox(device)
                logger.debug("created inbox for %s", key)
            elif inbox is not None and device is not None and inbox.device is not device:
                raise ValueError("inbox %s belongs to another device" % (key,))
            return inbox

    def post(self, key, keyword, index, value):
        """
        Posts an update for the device with the given key.
        :return: False if no device is registered for the key
        """
        inbox = self.inbox_for(key)
        if inbox is None:
            logger.debug("no device %s, update %s dropped", key, keyword)
            return False
        inbox.post(keyword, index, value)
        return True

    def remove(self, key):
        with self._lock:
            return self._inboxes.pop(key, None)

    def keys(self):
        with self._lock:
            return tuple(self._inboxes)

    def drain_all(self):
        """
        Drains every inbox on the calling thread.
        :return: the total number of updates applied
        """
        with self._lock:
            inboxes = tuple(self._inboxes.values())
        return sum(inbox.drain() for inbox in inboxes)
