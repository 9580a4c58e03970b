"""
Publishes applied updates to subscribers.

An update is published only while the device is ready, and only when its keyword is emittable.
Both conditions are checked for each update as it is dispatched. Updates applied while the
device was not ready are never published later.
"""
import logging

from sensorbox.state import AppliedUpdate
from sensorbox.support.events import EventSource
from sensorbox.support.mixins import StringerMixin

logger = logging.getLogger(__name__)


class Subscription(StringerMixin):
    """ The handle returned by subscribe(). Pass it to unsubscribe() to stop receiving events. """
    def __init__(self, event_name, handler):
        self.event_name = event_name
        self.handler = handler
        self.active = True


def event_payload(update: AppliedUpdate) -> dict:
    payload = {'value': update.value}
    if update.indexed:
        payload['index'] = update.index
    return payload


class EventDispatcher:
    """
    Keeps an EventSource for each event name. Handlers are called with (device, payload).
    """
    def __init__(self):
        self._sources = {}

    def subscribe(self, event_name, handler) -> Subscription:
        subscription = Subscription(event_name, handler)
        self._sources.setdefault(event_name, EventSource()).add(handler)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        if not subscription.active:
            return
        subscription.active = False
        source = self._sources.get(subscription.event_name)
        if source is not None:
            source.remove(subscription.handler)
            if not len(source):
                del self._sources[subscription.event_name]

    def subscriptions(self, event_name):
        source = self._sources.get(event_name)
        return source.handlers() if source else ()

    def dispatch(self, device, update: AppliedUpdate, ready) -> bool:
        """
        Publishes the update if the device is ready and the keyword is emittable.
        :return: True if the update was published
        """
        if not ready or not update or not update.emittable:
            return False
        self._fire(device, update.field, event_payload(update))
        return True

    def emit(self, device, event_name, payload):
        """ publishes an event that doesn't originate from an update, such as lifecycle changes. """
        self._fire(device, event_name, payload)

    def _fire(self, device, event_name, payload):
        source = self._sources.get(event_name)
        if source is not None:
            # each handler gets its own copy of the payload
            for handler in source.handlers():
                handler(device, dict(payload))
