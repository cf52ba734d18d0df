"""OS and architecture detection."""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

MACOS_NAMES: Dict[int, str] = {
    26: "Tahoe",
    15: "Sequoia",
    14: "Sonoma",
    13: "Ventura",
    12: "Monterey",
    11: "Big Sur",
}

MINIMUM_MACOS_MAJOR = 12


def detect_os(system: Optional[str] = None) -> str:
    """Return ``macos``, ``linux``, ``windows`` or ``unknown``."""
    system = system if system is not None else platform.system()
    if system == "Darwin":
        return "macos"
    if system == "Linux":
        return "linux"
    if system == "Windows" or system.startswith(("MINGW", "MSYS", "CYGWIN")):
        return "windows"
    return "unknown"


def detect_arch(machine: Optional[str] = None) -> str:
    """Return a normalized CPU architecture name."""
    machine = machine if machine is not None else platform.machine()
    if machine in ("x86_64", "amd64", "AMD64"):
        return "x86_64"
    if machine in ("arm64", "aarch64"):
        return "arm64"
    return machine


def macos_version() -> str:
    """Get the macOS product version, or an empty string elsewhere."""
    if detect_os() != "macos":
        return ""
    return platform.mac_ver()[0]


def macos_major_version(version: Optional[str] = None) -> int:
    version = version if version is not None else macos_version()
    head = version.split(".", 1)[0]
    return int(head) if head.isdigit() else 0


def macos_name(major: int) -> str:
    return MACOS_NAMES.get(major, f"macOS {major}")


def is_apple_silicon() -> bool:
    return detect_os() == "macos" and detect_arch() == "arm64"


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    fields: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        fields[key.strip()] = value.strip().strip("\"'")
    return fields


def linux_distro(os_release: Path = OS_RELEASE) -> str:
    """Get the Linux distribution ID (``ubuntu``, ``fedora``...)."""
    if not os_release.is_file():
        return "unknown"
    return parse_os_release(os_release.read_text()).get("ID", "unknown") or "unknown"


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def log_system_info() -> str:
    """Log OS details and return the detected OS name."""
    os_name = detect_os()
    logger.info("Operating System: %s", os_name)
    logger.info("Architecture: %s", detect_arch())
    if os_name == "macos":
        version = macos_version()
        logger.info("macOS Version: %s (%s)", version, macos_name(macos_major_version(version)))
        logger.info("Processor: %s", "Apple Silicon" if is_apple_silicon() else "Intel")
    elif os_name == "linux":
        logger.info("Distribution: %s", linux_distro())
    return os_name
