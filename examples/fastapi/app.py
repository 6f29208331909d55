from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Header, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware

from rowguard import configure_logging, get_settings, run_no_overlap, run_overlap, run_versioned
from rowguard.scenarios import ScenarioReport

from .db import close_db, get_db, init_db
from .errors import install_exception_handlers
from .schemas import DemoOut, ProductOut, ProductPatch, VersionedProductOut
from .services.products import patch_versioned
from .utils import db_call as _db_call
from .utils import etag as _etag
from .utils import token_from_if_match

"""
FastAPI host for the concurrency demonstrations (threadpool handoff).

English: Demo endpoints, reset endpoints, listings, and an ETag/If-Match guarded PATCH.
日本語: デモ/リセット/一覧エンドポイントと、ETag/If-Match で保護された PATCH。
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup the demo database.

    日本語: デモ用 DB の初期化とクリーンアップを行います。
    """
    configure_logging()
    init_db(get_settings().db_path)
    yield
    close_db()


app = FastAPI(
    title="rowguard FastAPI Demo",
    version="1.0.0",
    summary="Bare rows versus row_version-guarded rows under concurrent writers",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Attach a simple process-time header to every response.

    日本語: 各レスポンスに処理時間ヘッダーを付与します。
    """
    start = time.perf_counter()
    resp: Response = await call_next(request)
    resp.headers["X-Process-Time"] = f"{(time.perf_counter() - start):.6f}s"
    return resp


install_exception_handlers(app)

router_demo = APIRouter(tags=["Demo"])
router_products = APIRouter(tags=["Products"])


def _demo_out(report: ScenarioReport) -> DemoOut:
    details = report.model_dump(mode="json", exclude={"message", "explanation"})
    details["conflict_detected"] = report.conflict_detected
    return DemoOut(
        message=report.message,
        details=details,
        explanation=report.explanation.model_dump(exclude_none=True),
    )


@router_demo.post("/demo-concurrency-no-stock-change", response_model=DemoOut)
async def demo_no_stock_change():
    """Local save touches name/price only; the external stock change survives.

    日本語: 在庫を変更しない保存。外部の在庫変更は残ります。
    """
    return _demo_out(await _db_call(lambda: run_no_overlap(get_db())))


@router_demo.post("/demo-concurrency-with-stock-change", response_model=DemoOut)
async def demo_with_stock_change():
    """Local save also assigns stock; the external stock change is overwritten.

    日本語: 在庫も変更する保存。外部の在庫変更は上書きされます。
    """
    return _demo_out(await _db_call(lambda: run_overlap(get_db())))


@router_demo.post("/demo-with-rowversion", response_model=DemoOut)
async def demo_with_rowversion():
    """The external write advances row_version and the save is rejected.

    日本語: 外部書き込みで row_version が進み、保存が拒否されます。
    """
    return _demo_out(await _db_call(lambda: run_versioned(get_db())))


@router_demo.post("/reset-products")
async def reset_products():
    await _db_call(lambda: get_db().reset_products())
    return "Products table reset"


@router_demo.post("/reset-products-with-version")
async def reset_products_with_version():
    await _db_call(lambda: get_db().reset_versioned_products())
    return "ProductsWithVersion table reset"


@router_products.get("/products", response_model=list[ProductOut])
async def list_products():
    rows = await _db_call(lambda: get_db().products.all())
    return [ProductOut.from_record(r) for r in rows]


@router_products.get("/products-with-version", response_model=list[VersionedProductOut])
async def list_products_with_version():
    rows = await _db_call(lambda: get_db().versioned_products.all())
    return [VersionedProductOut.from_record(r) for r in rows]


@router_products.get("/products-with-version/{product_id}", response_model=VersionedProductOut)
async def get_product_with_version(product_id: int, request: Request, response: Response):
    """Get one versioned product with ETag support (304 on If-None-Match).

    日本語: ETag 対応の id 取得（If-None-Match なら 304）。
    """
    p = await _db_call(lambda: get_db().versioned_products.get(product_id))
    etag = _etag(p.row_version)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return VersionedProductOut.from_record(p)


@router_products.patch("/products-with-version/{product_id}", response_model=VersionedProductOut)
async def patch_product_with_version(
    product_id: int,
    patch: ProductPatch,
    response: Response,
    if_match: str | None = Header(default=None),
):
    """Apply a partial update guarded by If-Match (the row_version ETag).

    日本語: If-Match（row_version の ETag）で保護された部分更新。409 は競合。
    """
    token = token_from_if_match(if_match)
    data = patch.model_dump(exclude_unset=True, exclude_none=True)
    applied = await _db_call(lambda: patch_versioned(get_db(), product_id, data, token))
    response.headers["ETag"] = _etag(applied.row_version)
    return VersionedProductOut.from_applied(applied)


app.include_router(router_demo)
app.include_router(router_products)
