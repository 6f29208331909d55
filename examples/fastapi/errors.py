from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from rowguard import RecordNotFoundError, StaleVersionError, StoreUnavailableError

"""
Exception handlers for the FastAPI example.

English: Map rowguard exceptions to HTTP-friendly responses.
日本語: rowguard の例外を HTTP レスポンスにマッピングします。
"""


def install_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app.

    日本語: FastAPI アプリに例外ハンドラを登録します。
    """

    @app.exception_handler(StaleVersionError)
    async def _stale_handler(_, exc: StaleVersionError):
        return JSONResponse(
            {"detail": "version conflict", "error": "StaleVersionError", "conflict": exc.conflict.to_dict()},
            status_code=409,
        )

    @app.exception_handler(RecordNotFoundError)
    async def _missing_handler(_, exc: RecordNotFoundError):
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(StoreUnavailableError)
    async def _unavailable_handler(_, exc: StoreUnavailableError):
        return JSONResponse({"detail": str(exc), "error": "StoreUnavailableError"}, status_code=503)
