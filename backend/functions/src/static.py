"""Static hosting for the browser client, with single-page app fallback."""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.types import Scope

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class SPAStaticFiles(StaticFiles):
    """
    Serves files from a directory.

    ``/page`` also resolves ``page.html``, and any other missing path returns
    ``index.html`` so client-side routes survive a reload.
    """

    async def get_response(self, path: str, scope: Scope) -> Response:
        # The client is GET-only; any other method on a non-API path is a 404
        if scope["method"] not in ("GET", "HEAD"):
            raise HTTPException(status_code=404)

        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise

        for candidate in (f"{path}.html", INDEX_FILE):
            try:
                return await super().get_response(candidate, scope)
            except HTTPException as exc:
                if exc.status_code != 404:
                    raise
        raise HTTPException(status_code=404)


def mount_static(app: FastAPI, directory: Path) -> bool:
    """
    Mount the client at "/". Must run after the API routers are included.

    Returns:
        False when the directory does not exist (nothing is mounted).
    """
    if not directory.is_dir():
        logger.warning(f"Static directory {directory} not found, client will not be served")
        return False
    app.mount("/", SPAStaticFiles(directory=directory, html=True), name="static")
    return True
