from __future__ import annotations

import locale
import platform
from datetime import datetime
from typing import Optional, Protocol, Tuple

import structlog
from pydantic import BaseModel, Field

from .kv_store import InstallInfo


logger = structlog.get_logger(__name__)


class DeviceMetadata(BaseModel):
    """Snapshot of the running app and device, captured per submission."""

    app_name: str = "Unknown"
    app_version: str = "0"
    os_version: str = "Unknown"
    device_model: str = "Unknown"
    device_type: str = "phone"
    lang: str = "en"
    timezone: str = "UTC"
    screen_w: int = Field(default=0, ge=0)
    screen_h: int = Field(default=0, ge=0)
    user_identifier: str
    install_date: datetime


class DeviceMetadataProvider(Protocol):
    async def capture(self) -> DeviceMetadata: ...


def _os_version() -> str:
    system = platform.system() or "Unknown"
    release = platform.release()
    return f"{system} {release}".strip()


def _language() -> str:
    lang, _ = locale.getlocale()
    if not lang:
        return "en"
    # "en_US" -> "en"
    return lang.split("_")[0].split("-")[0] or "en"


def _timezone() -> str:
    tz = datetime.now().astimezone().tzinfo
    name = getattr(tz, "key", None) or (tz.tzname(None) if tz is not None else None)
    return name or "UTC"


class PlatformMetadataProvider:
    """
    Default provider reading what the host platform exposes.

    App name/version, device type and screen size cannot be discovered from
    the interpreter and are passed in by the embedding application. Any
    lookup that fails falls back to the DeviceMetadata defaults.
    """

    def __init__(
        self,
        install_info: InstallInfo,
        *,
        app_name: Optional[str] = None,
        app_version: Optional[str] = None,
        device_type: str = "phone",
        screen_size: Tuple[int, int] = (0, 0),
    ) -> None:
        self._install = install_info
        self._app_name = app_name
        self._app_version = app_version
        self._device_type = device_type
        self._screen_size = screen_size

    async def capture(self) -> DeviceMetadata:
        fields = {}
        for name, probe in (
            ("os_version", _os_version),
            ("device_model", platform.machine),
            ("lang", _language),
            ("timezone", _timezone),
        ):
            try:
                value = probe()
            except Exception as exc:  # platform probes vary by OS; fall back to defaults
                logger.debug("device_probe_failed", field=name, error=str(exc))
                continue
            if value:
                fields[name] = value

        if self._app_name:
            fields["app_name"] = self._app_name
        if self._app_version:
            fields["app_version"] = self._app_version
        width, height = self._screen_size

        return DeviceMetadata(
            **fields,
            device_type=self._device_type,
            screen_w=max(0, int(width)),
            screen_h=max(0, int(height)),
            user_identifier=self._install.user_identifier(),
            install_date=self._install.install_date(),
        )


__all__ = [
    "DeviceMetadata",
    "DeviceMetadataProvider",
    "PlatformMetadataProvider",
]
