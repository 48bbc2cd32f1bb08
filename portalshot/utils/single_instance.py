"""Single instance management using D-Bus.

Only one selection overlay may run at a time. The overlay registers a
well-known name on the session bus; if the name is taken another overlay is
already up.
"""

import logging
from typing import Optional

try:
    import dbus
    import dbus.service
    from dbus.mainloop.glib import DBusGMainLoop
    DBUS_AVAILABLE = True
except ImportError:
    DBUS_AVAILABLE = False

logger = logging.getLogger(__name__)


class SingleInstanceManager:
    """Manages single instance constraint using D-Bus service registration.

    Registers a unique D-Bus service name on the session bus. If the name is
    already taken, it means another instance is running.
    """

    SERVICE_NAME = "org.portalshot.SelectionOverlay"

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name
        self.bus = None
        self.name = None

    def acquire(self) -> bool:
        """Attempt to acquire single instance lock.

        Returns:
            True if this is the first/only instance (lock acquired)
            False if another instance is already running
        """
        if not DBUS_AVAILABLE:
            logger.warning("dbus-python unavailable, allowing launch without instance check")
            return True

        try:
            DBusGMainLoop(set_as_default=True)
            self.bus = dbus.SessionBus()

            # do_not_queue=True means fail immediately if name exists
            self.name = dbus.service.BusName(
                self.service_name,
                bus=self.bus,
                do_not_queue=True,
            )
            return True

        except dbus.exceptions.NameExistsException:
            return False

        except dbus.exceptions.DBusException as e:
            # No session bus or policy refusal: better to launch than to refuse
            logger.warning(f"D-Bus error during instance check, allowing launch: {e}")
            return True

    def release(self) -> None:
        """Release the D-Bus service name."""
        if self.name is not None:
            self.name = None
            logger.debug(f"Released {self.service_name}")

    def __del__(self):
        self.release()


def acquire_overlay_lock() -> Optional[SingleInstanceManager]:
    """Return a held lock, or None when another overlay already runs."""
    manager = SingleInstanceManager()
    if not manager.acquire():
        return None
    return manager
