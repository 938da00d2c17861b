"""Storefront ordering FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
ordering domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied ("test", "production").
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering  # noqa: E402
from ordering.utils.logging import add_context, clear_context  # noqa: E402

ordering.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Ordering API",
    description="Carts, coupons and the order lifecycle",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for each request."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    with ordering.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api.errors import register_error_handlers  # noqa: E402
from ordering.api.routes import cart_router, coupon_router, order_router  # noqa: E402

register_error_handlers(app)
app.include_router(cart_router)
app.include_router(coupon_router)
app.include_router(order_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"ordering": {"name": ordering.name}},
        }
    )
