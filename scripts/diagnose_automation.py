"""Check that the host automation tools for inserting replies are available.

Pass `--insert "text"` to push text into the configured mail client for real.
"""

from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from replycore.automation import create_automation  # noqa: E402
from replycore.config_manager import ConfigManager  # noqa: E402
from replycore.insertion import InsertionPipeline  # noqa: E402
from replycore.platform_support import PLATFORM  # noqa: E402

REQUIRED_TOOLS = {
    "osascript": ("osascript",),
    "powershell": ("powershell.exe", "pwsh.exe", "powershell", "pwsh"),
    "xdotool": ("xdotool", "xclip"),
}


def check_tools(backend: str) -> bool:
    found = {tool: shutil.which(tool) for tool in REQUIRED_TOOLS.get(backend, ())}
    for tool, path in found.items():
        print(f"[{'INFO' if path else 'WARN'}] {tool}: {path or 'not found'}")
    # any one PowerShell flavour is enough; the X11 backend needs both tools
    if backend == "powershell":
        return any(found.values())
    return all(found.values())


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--insert", metavar="TEXT", help="insert TEXT into the focused compose window")
    parser.add_argument("--send", action="store_true", help="also send the message after inserting")
    args = parser.parse_args()

    settings = ConfigManager().get_settings()
    automation = create_automation(PLATFORM, settings["automationBackend"], settings["sendShortcut"] or None)
    print(f"[INFO] Platform: {PLATFORM.system} (WSL={PLATFORM.is_wsl})")
    print(f"[INFO] Backend: {automation.name}, target app: {settings['targetApp']}")
    if not check_tools(automation.name):
        sys.exit(1)

    if args.insert is None:
        return
    outcome = InsertionPipeline(automation, settings["targetApp"]).insert(args.insert, args.send)
    print(f"[{'INFO' if outcome.succeeded else 'ERROR'}] {outcome.detail}")
    if not outcome.succeeded:
        sys.exit(1)


if __name__ == "__main__":
    main()
