"""
Live registry of remote objects exported through an ObjectManager.

Tracks objects as they appear and vanish and resolves "await object"
requests when a matching object appears.
"""

import logging
import threading
import concurrent.futures
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from .bus import RemoteBus
from ..constants import ANY_IMEI, DBUS_IF_OBJECT_MANAGER
from ..exceptions import AwaitCancelledError, BusError, HandleInvalidatedError

logger = logging.getLogger(__name__)

H = TypeVar("H")

# (bus, object_path) -> handle
HandleFactory = Callable[[RemoteBus, str], H]

# (handle, interfaces_and_properties) -> identity
IdentityLookup = Callable[[H, dict[str, dict[str, Any]]], Optional[str]]


@dataclass
class AwaitRequest:
    """A pending request for an object with a given identity."""
    identity: str
    future: Future = field(default_factory=Future)

    @property
    def matches_any(self) -> bool:
        return self.identity == ANY_IMEI

    def matches(self, identity: Optional[str]) -> bool:
        """Check whether an object with this identity satisfies the request."""
        return self.matches_any or (identity is not None and identity == self.identity)

    def resolve(self, handle: Any) -> bool:
        """Complete the request with a handle. Returns False if already done."""
        try:
            self.future.set_result(handle)
            return True
        except InvalidStateError:
            return False

    def cancel(self, reason: str) -> bool:
        """Fail the request with AwaitCancelledError. Returns False if already done."""
        try:
            self.future.set_exception(AwaitCancelledError(reason))
            return True
        except InvalidStateError:
            return False


class RemoteObjectRegistry(Generic[H]):
    """
    Registry of handles for the objects below an ObjectManager.

    Object-added and object-removed signals are handled serially on the bus
    dispatch thread, while callers read snapshots and install await requests
    from their own threads. The handle list and the pending request are
    guarded by one lock.

    Example:

    .. code-block:: python

        registry = RemoteObjectRegistry(bus, MM_BUS_NAME, MM_OBJ_MODEMMANAGER,
                                        Modem, Modem.identity_of,
                                        required_interface=MM_IF_MODEM)
        registry.start()
        future = registry.await_object("490154203237518")
        modem = future.result(timeout=30)
    """

    def __init__(
        self,
        bus: RemoteBus,
        service_name: str,
        manager_path: str,
        handle_factory: HandleFactory,
        identity_of: IdentityLookup,
        required_interface: Optional[str] = None
    ) -> None:
        """
        Initialize registry.

        Args:
            bus: Connected bus
            service_name: Bus name of the service exporting the objects
            manager_path: Object path of the ObjectManager
            handle_factory: Creates a handle for an object path
            identity_of: Returns the identity of a handle, given the
                         interfaces announced with the object
            required_interface: Only objects carrying this interface are
                                tracked (None = all objects)
        """
        self._bus = bus
        self.service_name = service_name
        self.manager_path = manager_path
        self._handle_factory = handle_factory
        self._identity_of = identity_of
        self.required_interface = required_interface

        self._handles: list[H] = []
        self._pending: Optional[AwaitRequest] = None
        self._closed = False
        self._started = False
        # paths removed while an enumeration snapshot is being applied
        self._vanished: Optional[set[str]] = None

        self._lock = threading.Lock()

    def start(self) -> None:
        """
        Subscribe to object signals and enumerate existing objects.

        Subscription happens first so no object appearing in between is
        missed; an object reported by both paths is added once.

        Raises:
            BusError: If the ObjectManager cannot be reached
        """
        if self._started:
            logger.warning("Registry already started")
            return

        manager = self._bus.create_proxy(self.service_name, self.manager_path)
        manager.subscribe(DBUS_IF_OBJECT_MANAGER, "InterfacesAdded", self._on_interfaces_added)
        manager.subscribe(DBUS_IF_OBJECT_MANAGER, "InterfacesRemoved", self._on_interfaces_removed)
        self._started = True

        self.enumerate_existing()
        logger.info(f"Registry started for {self.manager_path} ({len(self.handles())} objects)")

    def enumerate_existing(self) -> None:
        """
        Report every currently exported object as added.

        Objects removed after the snapshot was taken are skipped.
        """
        with self._lock:
            self._vanished = set()

        try:
            objects = self._bus.enumerate_managed_objects(self.service_name, self.manager_path)
            logger.debug(f"Enumerated {len(objects)} objects below {self.manager_path}")

            for path, interfaces in objects.items():
                self._add(path, interfaces, from_snapshot=True)
        finally:
            with self._lock:
                self._vanished = None

    def _on_interfaces_added(self, path: str, interfaces: dict[str, dict[str, Any]]) -> None:
        self.on_object_added(path, interfaces)

    def _on_interfaces_removed(self, path: str, interfaces: list[str]) -> None:
        # objects lose single interfaces while changing state
        if self.required_interface is None or self.required_interface in interfaces:
            self.on_object_removed(path)

    def _is_tracked(self, path: str) -> bool:
        return any(self._path_of(handle) == path for handle in self._handles)

    @staticmethod
    def _path_of(handle: Any) -> str:
        return handle.object_path

    def on_object_added(self, path: str, interfaces: Optional[dict[str, dict[str, Any]]] = None) -> None:
        """
        Track a new object and resolve the pending request if it matches.

        Args:
            path: Object path
            interfaces: Interfaces and properties announced with the object
                        (None when unknown, the object is then always tracked)
        """
        self._add(path, interfaces)

    def _add(self, path: str, interfaces: Optional[dict[str, dict[str, Any]]], from_snapshot: bool = False) -> None:
        if interfaces is not None and self.required_interface is not None \
                and self.required_interface not in interfaces:
            logger.debug(f"Ignoring {path}: no {self.required_interface} interface")
            return

        with self._lock:
            if self._closed:
                return
            if self._is_tracked(path):
                logger.debug(f"Object {path} already tracked")
                return

        handle = self._handle_factory(self._bus, path)

        with self._lock:
            if self._closed or self._is_tracked(path):
                return
            if self._vanished is not None:
                if from_snapshot and path in self._vanished:
                    logger.debug(f"Object {path} vanished since enumeration")
                    return
                self._vanished.discard(path)
            self._handles.append(handle)
            pending = self._pending

        logger.info(f"Object added: {path}")

        if pending is None:
            return

        if pending.matches_any:
            identity = None
        else:
            identity = self._lookup_identity(handle, interfaces or {})
            if not pending.matches(identity):
                logger.debug(f"Object {path} ({identity}) does not match awaited {pending.identity}")
                return

        with self._lock:
            # superseded or cancelled while the identity was fetched
            if self._pending is not pending:
                return
            self._pending = None

        if pending.resolve(handle):
            logger.info(f"Await for {pending.identity} resolved with {path}")

    def _lookup_identity(self, handle: H, interfaces: dict[str, dict[str, Any]]) -> Optional[str]:
        try:
            return self._identity_of(handle, interfaces)
        except (BusError, HandleInvalidatedError) as e:
            logger.warning(f"Could not read identity of {self._path_of(handle)}: {e}")
            return None

    def on_object_removed(self, path: str) -> None:
        """
        Stop tracking an object.

        The pending request is not affected.
        """
        with self._lock:
            before = len(self._handles)
            self._handles = [h for h in self._handles if self._path_of(h) != path]
            removed = before - len(self._handles)
            if self._vanished is not None:
                self._vanished.add(path)

        if removed:
            logger.info(f"Object removed: {path}")
        else:
            logger.debug(f"Removed object {path} was not tracked")

    def await_object(self, identity: str = ANY_IMEI) -> Future:
        """
        Wait for an object with the given identity to appear.

        Only objects appearing after this call are considered. A previously
        pending request fails with AwaitCancelledError.

        Args:
            identity: Identity to wait for, or ANY_IMEI for any object

        Returns:
            Future resolving to the new handle

        Raises:
            HandleInvalidatedError: If the registry was closed
        """
        return self._install(identity).future

    def _install(self, identity: str) -> AwaitRequest:
        request = AwaitRequest(identity)

        with self._lock:
            if self._closed:
                raise HandleInvalidatedError("Registry is closed")
            previous, self._pending = self._pending, request

        if previous is not None and previous.cancel(f"Await for {previous.identity} superseded by {identity}"):
            logger.info(f"Cancelled await for {previous.identity}")

        logger.info(f"Awaiting object {identity}")
        return request

    def _discard(self, request: AwaitRequest, reason: str) -> None:
        with self._lock:
            if self._pending is request:
                self._pending = None
        request.cancel(reason)

    def handles(self) -> list[H]:
        """Snapshot of all tracked handles."""
        with self._lock:
            return list(self._handles)

    def first_or_none(self) -> Optional[H]:
        """First tracked handle, or None if there is none."""
        with self._lock:
            return self._handles[0] if self._handles else None

    def has_pending(self) -> bool:
        """Whether an await request is pending."""
        with self._lock:
            return self._pending is not None

    def reset_and_await(
        self,
        handle: Any,
        identity: str,
        timeout: Optional[float] = None
    ) -> H:
        """
        Reset an object and wait for it to reappear.

        Args:
            handle: Handle with a ``reset()`` method
            identity: Identity the reappearing object will have
            timeout: Maximum time to wait in seconds (None = forever)

        Returns:
            The handle of the reappeared object

        Raises:
            AwaitCancelledError: If another await superseded this one
            concurrent.futures.TimeoutError: If the object did not reappear in time
        """
        request = self._install(identity)

        try:
            handle.reset()
        except Exception:
            self._discard(request, f"Reset of {self._path_of(handle)} failed")
            raise

        try:
            return request.future.result(timeout)
        except concurrent.futures.TimeoutError:
            self._discard(request, f"Await for {identity} timed out")
            raise

    def close(self) -> None:
        """Cancel a pending request and drop all handles."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending, self._pending = self._pending, None
            self._handles.clear()

        if pending is not None and pending.cancel("Registry closed"):
            logger.info(f"Cancelled await for {pending.identity}")
        logger.info(f"Registry for {self.manager_path} closed")
