"""Detect the host OS so the launcher and automation layer pick the right backends."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _detect_wsl(system: str) -> bool:
    if system != "Linux":
        return False
    if os.environ.get("WSL_DISTRO_NAME"):
        return True
    try:
        return "microsoft" in Path("/proc/version").read_text(encoding="utf-8").lower()
    except OSError:
        return False


@dataclass(frozen=True)
class PlatformInfo:
    system: str
    is_wsl: bool = False

    @property
    def is_windows(self) -> bool:
        return self.system == "Windows"

    @property
    def is_macos(self) -> bool:
        return self.system == "Darwin"

    @property
    def is_linux(self) -> bool:
        return self.system == "Linux" and not self.is_wsl

    def gui_preferences(self) -> List[Optional[str]]:
        """PyWebView backends to try in order; None lets pywebview choose."""
        if self.is_windows:
            return ["edgechromium", "winforms", None]
        if self.is_macos:
            return ["cocoa", None]
        return ["gtk", "qt", None]

    def gui_dependency_hint(self) -> str:
        if self.is_windows:
            return "Install the Microsoft Edge WebView2 runtime."
        if self.is_macos:
            return "Install pyobjc (pip install pywebview[cocoa])."
        return "Install GTK (python3-gi, gir1.2-webkit2-4.1) or Qt (pip install pywebview[qt])."

    def default_automation_backend(self) -> str:
        if self.is_macos:
            return "osascript"
        if self.is_windows or self.is_wsl:
            return "powershell"
        return "xdotool"

    def default_target_app(self) -> str:
        if self.is_macos:
            return "Microsoft Outlook"
        if self.is_windows or self.is_wsl:
            return "Outlook"
        return "Thunderbird"


def detect_platform() -> PlatformInfo:
    system = platform.system()
    return PlatformInfo(system=system, is_wsl=_detect_wsl(system))


PLATFORM = detect_platform()
