# -*- coding: utf-8 -*-


class Signal(object):
    """Utility class to register and call callbacks.

    It's a variation of the Observer pattern: the object holding the handlers
    is an attribute of the observable, not the observable itself. An object
    can so expose several signals, each one for a distinct event.

    Example:

        >>> class Queue(object):
        ...     def __init__(self):
        ...         self.item_added = Signal()
        >>>
        >>> def on_item_added(item):
        ...     print('New item: %s' % item)
        >>>
        >>> queue = Queue()
        >>> queue.item_added.connect(on_item_added)
        >>> queue.item_added.fire(42)
        New item: 42
    """

    def __init__(self):
        self._handlers = []

    def connect(self, handler):
        """Register a handler, called each time the signal is fired.

        Args:
            handler (callable): receives the arguments given to `fire()`.
        """
        self._handlers.append(handler)

    def fire(self, *args, **kwargs):
        # Iterate over a copy: a handler may disconnect itself.
        for h in list(self._handlers):
            h(*args, **kwargs)

    def disconnect(self, handler):
        """Remove a handler.

        Args:
            handler (callable): handler to disconnect
        Returns:
            bool: True if the handler was connected; False otherwise.
        """
        try:
            self._handlers.remove(handler)
            return True
        except ValueError:
            return False

    def disconnect_all(self):
        self._handlers = []

    def __len__(self):
        return len(self._handlers)
