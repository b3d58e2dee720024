"""
System tray icon for Canned Replies.

Keeps the app reachable after the window is minimized for an insertion and
shows insertion results as tray notifications. Uses pystray with a Pillow
generated icon.
"""
from __future__ import annotations

import platform
import threading
import time
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import pystray


class TrayManager:
    """Manages the tray icon and its menu.

    Platform Notes:
    - Windows: notification area
    - Linux: requires AppIndicator or StatusNotifier support
    - macOS: menu bar icon
    """

    def __init__(
        self,
        on_show: Optional[Callable[[], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        """Initialize tray manager.

        Args:
            on_show: Callback when user requests to show the window
            on_exit: Callback when user requests to exit the application
        """
        self._on_show = on_show
        self._on_exit = on_exit
        self._icon: Optional[pystray.Icon] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._platform = platform.system()

    def _create_icon_image(self):
        """Draw a speech-bubble icon."""
        from PIL import Image, ImageDraw

        size = 64
        img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        draw.rounded_rectangle([4, 6, size - 4, size - 18], radius=10, fill=(33, 111, 219, 255))
        draw.polygon([(16, size - 19), (30, size - 19), (14, size - 4)], fill=(33, 111, 219, 255))
        for y in (18, 28):
            draw.line([14, y, size - 14, y], fill=(255, 255, 255, 255), width=4)
        return img

    def _create_menu(self):
        import pystray

        return pystray.Menu(
            pystray.MenuItem("Show Canned Replies", self._on_show_clicked, default=True),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Exit", self._on_exit_clicked),
        )

    def _on_show_clicked(self, icon, item):
        if self._on_show:
            self._on_show()

    def _on_exit_clicked(self, icon, item):
        self.stop()
        if self._on_exit:
            self._on_exit()

    def _run_tray(self):
        """Run the tray icon loop (background thread)."""
        import pystray

        try:
            self._icon = pystray.Icon(
                name="CannedReplies",
                icon=self._create_icon_image(),
                title="Canned Replies - Click to show",
                menu=self._create_menu(),
            )
            if self._platform in ("Windows", "Linux"):
                self._icon.on_activate = lambda icon: self._on_show_clicked(icon, None)

            print("[INFO] System tray icon started", flush=True)
            self._running = True
            self._icon.run()
        except Exception as e:
            print(f"[WARN] System tray failed to start: {e}", flush=True)
            self._running = False

    def start(self) -> bool:
        """Start the tray icon in a background thread.

        Returns:
            True if the tray is running, False otherwise.
        """
        if self._running:
            return True

        try:
            import pystray  # noqa: F401
        except ImportError:
            print("[WARN] pystray not available. Install with: pip install pystray pillow", flush=True)
            return False

        self._thread = threading.Thread(target=self._run_tray, daemon=True)
        self._thread.start()
        # Give it a moment to start
        time.sleep(0.5)
        return self._running

    def stop(self):
        if self._icon:
            try:
                self._icon.stop()
            except Exception as e:
                print(f"[WARN] Could not stop tray icon: {e}", flush=True)
            self._icon = None
        self._running = False
        print("[INFO] System tray icon stopped", flush=True)

    def is_running(self) -> bool:
        return self._running

    def update_tooltip(self, text: str):
        if self._icon:
            self._icon.title = text

    def notify(self, message: str, title: str = "Canned Replies"):
        """Show a toast from the tray icon."""
        if self._icon:
            try:
                self._icon.notify(message, title)
            except Exception as e:
                # Notifications are not supported by every tray backend
                print(f"[DEBUG] Tray notification skipped: {e}", flush=True)
