from __future__ import annotations

import os
from pathlib import Path


def is_browser_infra_error(exc: BaseException) -> bool:
    """True when an error points at our browser/driver rather than the monitored site."""
    name = type(exc).__name__
    msg = str(exc or "").lower()

    if name == "TargetClosedError":
        return True
    if "target page, context or browser has been closed" in msg:
        return True
    if "browser has been closed" in msg:
        return True

    # Renderer crashes are almost always resource pressure on the runner host.
    if "page crashed" in msg:
        return True
    if "target crashed" in msg:
        return True

    # Playwright driver transport died (Chromium crash/OOM/shm issues).
    if "connection closed while reading from the driver" in msg:
        return True
    if "connection closed while writing to the driver" in msg:
        return True
    if "pipe closed by peer" in msg:
        return True

    return False


def find_chromium_executable() -> str | None:
    """Locate a system Chromium; None means 'use the browser bundled with Playwright'."""
    env_path = os.getenv("CHROMIUM_PATH")
    if env_path and Path(env_path).exists():
        return env_path

    candidates = [
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    ]
    for path in candidates:
        if Path(path).exists():
            return path
    return None


def shm_is_small(threshold_bytes: int = 512 * 1024 * 1024) -> bool:
    try:
        st = os.statvfs("/dev/shm")
        shm_bytes = int(st.f_frsize) * int(st.f_blocks)
    except (AttributeError, OSError):
        return False
    return bool(shm_bytes) and shm_bytes < threshold_bytes
