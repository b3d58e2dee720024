"""Host automation backends that drive the mail client's compose window.

Each backend receives the same ordered instruction list and realizes it with
whatever the OS offers: AppleScript on macOS, PowerShell + WScript.Shell on
Windows (and WSL), xdotool/xclip on X11 desktops.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from replycore.errors import AutomationError
from replycore.platform_support import PlatformInfo


class Instruction(str, Enum):
    ACTIVATE_APP = "activate_app"
    MOVE_TO_TOP = "move_to_top"
    SET_CLIPBOARD = "set_clipboard"
    PASTE = "paste"
    SEND = "send"


def build_instructions(send: bool) -> List[Instruction]:
    steps = [Instruction.ACTIVATE_APP, Instruction.MOVE_TO_TOP, Instruction.SET_CLIPBOARD, Instruction.PASTE]
    if send:
        steps.append(Instruction.SEND)
    return steps


class HostAutomation:
    """Base class: subclasses translate instructions into OS commands.

    `runner` defaults to `subprocess.run` and can be replaced in tests.
    No timeout is applied; a hung automation call blocks until the OS gives up.
    """

    name = "base"
    default_send_shortcut = ""

    def __init__(self, runner: Optional[Callable[..., Any]] = None, send_shortcut: Optional[str] = None) -> None:
        self._runner = runner
        self.send_shortcut = send_shortcut or self.default_send_shortcut

    def dispatch(self, instructions: Sequence[Instruction], text: str, target_app: str) -> None:
        raise NotImplementedError

    def _run(
        self,
        cmd: List[str],
        step: str,
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        capture: bool = True,
    ) -> None:
        runner = self._runner or subprocess.run
        kwargs: Dict[str, Any] = {"text": True, "input": input_text, "env": env}
        if capture:
            kwargs["capture_output"] = True
        else:
            # clipboard owners like xclip fork and keep inherited pipes open
            kwargs["stdout"] = subprocess.DEVNULL
            kwargs["stderr"] = subprocess.DEVNULL
        print(f"[DEBUG] {self.name}: running step '{step}'", flush=True)
        try:
            result = runner(cmd, **kwargs)
        except FileNotFoundError as exc:
            raise self._failure(f"{cmd[0]} is not installed", step) from exc
        except OSError as exc:
            raise self._failure(f"Could not run {cmd[0]}: {exc}", step) from exc
        if result.returncode != 0:
            detail = ((result.stderr or "") if capture else "").strip() or f"exit code {result.returncode}"
            raise self._failure(f"Automation step '{step}' failed: {detail}", step)

    def _failure(self, message: str, step: str) -> AutomationError:
        print(f"[WARN] {self.name}: {message}", flush=True)
        return AutomationError(message, step=step)


class OsaScriptAutomation(HostAutomation):
    name = "osascript"
    default_send_shortcut = "keystroke return using {command down}"

    _FRAGMENTS = {
        Instruction.ACTIVATE_APP: [
            "if not (application appName is running) then error appName & \" is not running\"",
            "tell application appName to activate",
            "delay 0.3",
        ],
        Instruction.MOVE_TO_TOP: ['tell application "System Events" to key code 126 using {command down}'],
        Instruction.SET_CLIPBOARD: ["set the clipboard to replyText", "delay 0.1"],
        Instruction.PASTE: ['tell application "System Events" to keystroke "v" using {command down}', "delay 0.2"],
    }

    def compile(self, instructions: Sequence[Instruction]) -> str:
        lines = ["on run argv", "set replyText to item 1 of argv", "set appName to item 2 of argv"]
        for instruction in instructions:
            if instruction is Instruction.SEND:
                lines.append(f'tell application "System Events" to {self.send_shortcut}')
            else:
                lines.extend(self._FRAGMENTS[instruction])
        lines.append("end run")
        return "\n".join(lines)

    def dispatch(self, instructions: Sequence[Instruction], text: str, target_app: str) -> None:
        self._run(["osascript", "-e", self.compile(instructions), text, target_app], step="osascript")


class PowerShellAutomation(HostAutomation):
    name = "powershell"
    default_send_shortcut = "%s"

    _FRAGMENTS = {
        Instruction.ACTIVATE_APP: [
            "if (-not $shell.AppActivate($env:CANNED_REPLY_APP)) { throw \"$env:CANNED_REPLY_APP is not running\" }",
            "Start-Sleep -Milliseconds 300",
        ],
        Instruction.MOVE_TO_TOP: ["$shell.SendKeys('^{HOME}')"],
        Instruction.SET_CLIPBOARD: ["Set-Clipboard -Value $env:CANNED_REPLY_TEXT"],
        Instruction.PASTE: ["$shell.SendKeys('^v')", "Start-Sleep -Milliseconds 200"],
    }

    def compile(self, instructions: Sequence[Instruction]) -> str:
        lines = ["$ErrorActionPreference = 'Stop'", "$shell = New-Object -ComObject WScript.Shell"]
        for instruction in instructions:
            if instruction is Instruction.SEND:
                lines.append(f"$shell.SendKeys('{self.send_shortcut}')")
            else:
                lines.extend(self._FRAGMENTS[instruction])
        return "\n".join(lines)

    def dispatch(self, instructions: Sequence[Instruction], text: str, target_app: str) -> None:
        env = dict(os.environ)
        env["CANNED_REPLY_TEXT"] = text
        env["CANNED_REPLY_APP"] = target_app
        # WSL only forwards variables listed in WSLENV to Windows processes
        forwarded = [part for part in env.get("WSLENV", "").split(":") if part]
        env["WSLENV"] = ":".join(forwarded + ["CANNED_REPLY_TEXT/u", "CANNED_REPLY_APP/u"])
        cmd = [self._executable(), "-NoProfile", "-NonInteractive", "-Command", self.compile(instructions)]
        self._run(cmd, step="powershell", env=env)

    @staticmethod
    def _executable() -> str:
        override = os.environ.get("CANNED_REPLIES_POWERSHELL")
        if override:
            return override
        for name in ("powershell.exe", "pwsh.exe", "powershell", "pwsh"):
            path = shutil.which(name)
            if path:
                return path
        return "powershell.exe"


class XdotoolAutomation(HostAutomation):
    """One process per instruction; the first failing step stops the run."""

    name = "xdotool"
    default_send_shortcut = "ctrl+Return"

    def dispatch(self, instructions: Sequence[Instruction], text: str, target_app: str) -> None:
        for instruction in instructions:
            if instruction is Instruction.ACTIVATE_APP:
                self._run(
                    ["xdotool", "search", "--onlyvisible", "--name", target_app, "windowactivate", "--sync"],
                    step=instruction.value,
                )
            elif instruction is Instruction.MOVE_TO_TOP:
                self._key("ctrl+Home", instruction)
            elif instruction is Instruction.SET_CLIPBOARD:
                self._run(["xclip", "-selection", "clipboard"], step=instruction.value, input_text=text, capture=False)
            elif instruction is Instruction.PASTE:
                self._key("ctrl+v", instruction)
            elif instruction is Instruction.SEND:
                self._key(self.send_shortcut, instruction)

    def _key(self, combo: str, instruction: Instruction) -> None:
        self._run(["xdotool", "key", "--clearmodifiers", combo], step=instruction.value)


BACKENDS = {
    OsaScriptAutomation.name: OsaScriptAutomation,
    PowerShellAutomation.name: PowerShellAutomation,
    XdotoolAutomation.name: XdotoolAutomation,
}


def create_automation(
    platform_info: PlatformInfo,
    backend: Optional[str] = None,
    send_shortcut: Optional[str] = None,
    runner: Optional[Callable[..., Any]] = None,
) -> HostAutomation:
    name = (backend or "auto").lower()
    if name == "auto":
        name = platform_info.default_automation_backend()
    try:
        cls = BACKENDS[name]
    except KeyError:
        raise AutomationError(f"Unknown automation backend '{backend}'") from None
    return cls(runner=runner, send_shortcut=send_shortcut)
