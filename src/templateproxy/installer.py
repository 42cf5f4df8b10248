"""Plugin installation: download a plugin archive and unpack it.

Free plugins come from the public plugin directory's latest-stable zip.
Pro plugins come from a download URL handed out by the vendor API.

Archives are checked before anything on disk changes, unpacked into a
staging folder next to the plugins, and only then moved into place.
"""

from __future__ import annotations

import asyncio
import io
import re
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from templateproxy.errors import ErrorCode, TemplateProxyError
from templateproxy.plugins import InstalledPlugin

if TYPE_CHECKING:
    from templateproxy.plugins import PluginRegistry

log = structlog.get_logger()

DIRECTORY_DOWNLOAD_URL = "https://downloads.wordpress.org/plugin/{slug}.latest-stable.zip"

_VERSION_RE = re.compile(r"^[ \t/*#@]*Version:\s*(\S+)", re.MULTILINE)


def _check_members(archive: zipfile.ZipFile, target: Path) -> None:
    root = target.resolve()
    for member in archive.namelist():
        if not (root / member).resolve().is_relative_to(root):
            raise TemplateProxyError(
                ErrorCode.INSTALL_FAILED,
                f"Archive member escapes the plugins folder: {member!r}",
            )


def read_plugin_version(plugin_dir: Path) -> str:
    """Version from the ``Version:`` header of the plugin's main PHP file."""
    candidates = [plugin_dir / f"{plugin_dir.name}.php", *sorted(plugin_dir.glob("*.php"))]
    for path in candidates:
        if not path.is_file():
            continue
        head = path.read_text(encoding="utf-8", errors="replace")[:8192]
        match = _VERSION_RE.search(head)
        if match:
            return match.group(1)
    return "unknown"


class Installer:
    def __init__(
        self,
        client: httpx.AsyncClient,
        plugins_dir: Path | str,
        registry: PluginRegistry,
    ) -> None:
        self._client = client
        self._plugins_dir = Path(plugins_dir).expanduser()
        self._registry = registry

    async def run(self, slug: str, source_url: str | None = None) -> dict[str, Any]:
        url = source_url or DIRECTORY_DOWNLOAD_URL.format(slug=slug)
        log.info("plugin_install_start", slug=slug, url=url)
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise TemplateProxyError(
                ErrorCode.INSTALL_FAILED,
                f"Could not download {slug}: {exc}",
                recoverable=True,
            ) from exc
        if response.status_code != 200:
            raise TemplateProxyError(
                ErrorCode.INSTALL_FAILED,
                f"Could not download {slug}: HTTP {response.status_code}",
                recoverable=response.status_code >= 500,
            )

        version = await asyncio.to_thread(self._unpack, slug, response.content)
        is_pro = version if source_url else None
        self._registry.register(slug, InstalledPlugin(version=version, is_pro=is_pro))
        log.info("plugin_install_complete", slug=slug, version=version)
        return {"slug": slug, "version": version, "path": str(self._plugins_dir / slug)}

    def _unpack(self, slug: str, content: bytes) -> str:
        """Replace the plugin's folder with the archive contents. Returns its version."""
        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile as exc:
            raise TemplateProxyError(
                ErrorCode.INSTALL_FAILED, f"Downloaded package for {slug} is not a zip archive"
            ) from exc

        with archive:
            _check_members(archive, self._plugins_dir)
            self._plugins_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(dir=self._plugins_dir, prefix=".install-") as staging:
                archive.extractall(staging)
                for entry in Path(staging).iterdir():
                    target = self._plugins_dir / entry.name
                    if target.is_dir():
                        shutil.rmtree(target)
                    elif target.exists():
                        target.unlink()
                    entry.rename(target)

        plugin_dir = self._plugins_dir / slug
        return read_plugin_version(plugin_dir) if plugin_dir.is_dir() else "unknown"
