"""Asset route registration: one local mount or proxy route per category."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, FastAPI

from retroasset.api.routes.assets import AssetFiles
from retroasset.config import Settings
from retroasset.schemas.assets import AssetCategory, AssetMount
from retroasset.services.proxy import PROXY_METHODS, ReverseProxy
from retroasset.services.vfs import VirtualFilesystem

logger = logging.getLogger(__name__)


def asset_mounts(settings: Settings) -> list[AssetMount]:
    paths = {
        AssetCategory.FRONTEND: settings.frontend_path,
        AssetCategory.SYSTEM: settings.system_path,
        AssetCategory.ROM: settings.rom_path,
    }
    return [
        AssetMount(category=category, local_root=path or None)
        for category, path in paths.items()
    ]


def mount_assets(
    app: FastAPI,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ReverseProxy]:
    """Mount every asset category on ``app``; returns the proxies to close on shutdown."""
    proxies: list[ReverseProxy] = []
    router = APIRouter()

    for mount in asset_mounts(settings):
        prefix = mount.policy.path_prefix
        if mount.is_local:
            vfs = VirtualFilesystem.from_mount(mount)
            # directories answer with their index.html when they have one
            app.mount(prefix.rstrip("/"), AssetFiles(vfs, html=True), name=f"{mount.category.value}-assets")
            logger.info("%s: serving %s from %s", mount.category.value, prefix, mount.local_root)
        else:
            proxy = ReverseProxy(
                settings.remote_origin + prefix.lstrip("/"),
                prefix=prefix,
                timeout=settings.proxy_timeout,
                transport=transport,
            )
            router.add_api_route(
                prefix + "{path:path}",
                proxy.forward,
                methods=PROXY_METHODS,
                include_in_schema=False,
                name=f"{mount.category.value}-proxy",
            )
            proxies.append(proxy)
            logger.info("%s: proxying %s to %s", mount.category.value, prefix, proxy.target)

    app.include_router(router)
    return proxies
