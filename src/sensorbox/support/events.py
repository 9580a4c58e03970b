from queue import Queue, Empty


class EventSource(object):
    """
    A list of handlers that are called in registration order each time the source fires.
    Handler exceptions are not caught, they propagate to the code that fired the event.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def __len__(self):
        return len(self._handlers)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def _fire(self, *args, **kwargs):
        # iterate a copy so a handler may unsubscribe itself while being called
        for handler in tuple(self._handlers):
            handler(*args, **kwargs)


class QueuedEventSource(EventSource):
    """
    post() may be called from any thread and only queues the event. The queued events are fired
    when the owning thread calls publish(), so handlers always run on a single thread.
    """
    def __init__(self):
        super().__init__()
        self.event_queue = Queue()

    def post(self, event):
        self.event_queue.put(event)

    def pending(self):
        return self.event_queue.qsize()

    def publish(self):
        """ publishes any queued events on the calling thread, one at a time. If a handler raises,
        the events queued after the failing one stay queued.
        :return: the number of events published
        """
        published = 0
        while True:
            try:
                event = self.event_queue.get_nowait()
            except Empty:
                break
            published += 1
            self._fire(event)
        return published
