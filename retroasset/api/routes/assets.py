"""Local asset serving: StaticFiles with synthetic listing resources."""

from __future__ import annotations

import logging
import os
from email.utils import formatdate

from fastapi import HTTPException
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from retroasset.services.listing import ListingError, LocalDirectory
from retroasset.services.vfs import SyntheticFile, VirtualFilesystem

logger = logging.getLogger(__name__)


def _listing_response(listing: SyntheticFile) -> Response:
    st = listing.stat()
    return Response(
        content=listing.getvalue(),
        media_type="text/plain",
        headers={"Last-Modified": formatdate(st.st_mtime, usegmt=True)},
    )


class AssetFiles(StaticFiles):
    """StaticFiles for one category; reserved names are answered by the VFS."""

    def __init__(self, vfs: VirtualFilesystem, *, html: bool = False):
        if not isinstance(vfs.source, LocalDirectory):
            raise TypeError(f"AssetFiles needs a LocalDirectory source, got {vfs.source!r}")
        super().__init__(directory=vfs.source.root, html=html, follow_symlink=True)
        self.vfs = vfs

    async def get_response(self, path: str, scope: Scope) -> Response:
        if scope["method"] in ("GET", "HEAD"):
            # StaticFiles hands over an OS-normalised relative path
            relative = "" if path == "." else path.replace(os.sep, "/")
            try:
                listing = await run_in_threadpool(self.vfs.open_special, relative)
            except (FileNotFoundError, NotADirectoryError):
                raise HTTPException(status_code=404)
            except PermissionError:
                raise HTTPException(status_code=403)
            except ListingError as exc:
                logger.error("Listing %s%s failed: %s", self.vfs.root_prefix, relative, exc)
                raise HTTPException(status_code=500, detail="Cannot build directory index")
            if listing is not None:
                return _listing_response(listing)
        return await super().get_response(path, scope)
