from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool

from rowguard import VersionToken

from .db import db_lock


def etag(token: VersionToken | None) -> str:
    """Build a strong ETag from the row_version token.

    日本語: row_version から強い ETag を組み立てる。
    """
    return f'"{token.encode() if token is not None else ""}"'


def token_from_if_match(value: str | None) -> VersionToken:
    """Parse an If-Match header back into the token it was built from.

    日本語: If-Match ヘッダーからトークンを復元する（不正なら 412、欠落なら 428）。
    """
    if value is None:
        raise HTTPException(status_code=428, detail="If-Match header required")
    raw = value.strip()
    if raw.startswith("W/"):
        raise HTTPException(status_code=412, detail="weak ETags cannot guard a write")
    try:
        return VersionToken.decode(raw.strip('"'))
    except ValueError:
        raise HTTPException(status_code=412, detail="If-Match precondition failed")


def _locked(fn, *args: Any, **kwargs: Any):
    with db_lock:
        return fn(*args, **kwargs)


async def db_call(fn, *args: Any, **kwargs: Any):
    """Run a blocking store call in the threadpool, one at a time.

    日本語: ブロッキング処理をスレッドプールで逐次実行する。
    """
    return await run_in_threadpool(_locked, fn, *args, **kwargs)
