import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Generator

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import JSONResponse

from freshcart.errors import ApiError
from freshcart.product import Category, Product
from server import auth, catalog
from server.cache import TTLCache
from server.db import Database
from server.request import CategoryRequest, CredentialsRequest, ProductRequest
from server.seed import seed_admins, seed_categories
from server.settings import Settings

logger = logging.getLogger(__name__)

_NO_STORE = {"Cache-Control": "no-store"}

router = APIRouter()


def get_session(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session()


def get_products_cache(request: Request) -> TTLCache[list[Product]]:
    return request.app.state.products_cache


def get_session_auth(request: Request) -> auth.SessionAuth:
    return request.app.state.session_auth


def require_admin(request: Request, session_auth: auth.SessionAuth = Depends(get_session_auth)) -> dict[str, Any]:
    payload = session_auth.read(request.cookies.get(auth.COOKIE_NAME))
    if not payload or payload.get("role") != "admin":
        raise ApiError("Unauthorized", 401)
    return payload


async def api_error_handler(request: Request, exc: ApiError):
    # product routes answer with {"error"}, the others with {"message"}
    key = "error" if "/products" in request.url.path else "message"
    return JSONResponse(status_code=exc.status_code, content={key: exc.msg}, headers=_NO_STORE)


async def validation_exception_handler(_: Request, exc: RequestValidationError):
    errors = [{"error": f"{err['loc'][-1]}: validation error", "detailed_info": err["msg"]} for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={"message": "Validation Error", "detail": errors},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    key = "error" if "/products" in request.url.path else "message"
    return JSONResponse(status_code=500, content={key: "Server error"})


@router.get("/products", response_model=list[Product])
def list_products(
    session: Session = Depends(get_session), cache: TTLCache[list[Product]] = Depends(get_products_cache)
):
    """
    Lists active products ordered by category then id. Answers from the product
    list cache while it is fresh.
    """
    products = cache.get_or_load(lambda: catalog.list_active_products(session))
    return JSONResponse([product.model_dump(by_alias=True) for product in products], headers=_NO_STORE)


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: int, session: Session = Depends(get_session)):
    product = catalog.get_active_product(session, product_id)
    return JSONResponse(product.model_dump(by_alias=True), headers=_NO_STORE)


@router.post("/products", response_model=Product, dependencies=[Depends(require_admin)])
def create_product(
    product_request: ProductRequest,
    session: Session = Depends(get_session),
    cache: TTLCache[list[Product]] = Depends(get_products_cache),
):
    product = catalog.create_product(session, product_request)
    cache.invalidate()
    return JSONResponse(product.model_dump(by_alias=True), headers=_NO_STORE)


@router.put("/products/{product_id}", response_model=Product, dependencies=[Depends(require_admin)])
def update_product(
    product_id: int,
    product_request: ProductRequest,
    session: Session = Depends(get_session),
    cache: TTLCache[list[Product]] = Depends(get_products_cache),
):
    product = catalog.update_product(session, product_id, product_request)
    cache.invalidate()
    return JSONResponse(product.model_dump(by_alias=True), headers=_NO_STORE)


@router.delete("/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(
    product_id: int,
    session: Session = Depends(get_session),
    cache: TTLCache[list[Product]] = Depends(get_products_cache),
):
    catalog.soft_delete_product(session, product_id)
    cache.invalidate()
    return JSONResponse({"success": True, "message": "Product deleted successfully"}, headers=_NO_STORE)


@router.get("/categories", response_model=list[Category])
def list_categories(session: Session = Depends(get_session)):
    return catalog.list_categories(session)


@router.post("/categories", response_model=Category, status_code=201, dependencies=[Depends(require_admin)])
def create_category(category_request: CategoryRequest, session: Session = Depends(get_session)):
    return catalog.create_category(session, category_request)


@router.delete("/categories/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: int, session: Session = Depends(get_session)):
    catalog.delete_category(session, category_id)
    return {"message": "Category deleted"}


@router.post("/auth/login")
def login(
    credentials: CredentialsRequest,
    session: Session = Depends(get_session),
    session_auth: auth.SessionAuth = Depends(get_session_auth),
):
    user = auth.authenticate(session, credentials)
    response = JSONResponse({"message": "Logged in", "role": user.role})
    session_auth.set_cookie(response, user)
    return response


@router.post("/auth/register")
def register(
    credentials: CredentialsRequest,
    session: Session = Depends(get_session),
    session_auth: auth.SessionAuth = Depends(get_session_auth),
):
    user = auth.register(session, credentials)
    response = JSONResponse({"message": "Registered successfully", "role": user.role})
    session_auth.set_cookie(response, user)
    return response


@router.post("/auth/logout")
def logout(session_auth: auth.SessionAuth = Depends(get_session_auth)):
    response = JSONResponse({"message": "Logged out"})
    session_auth.clear_cookie(response)
    return response


@router.get("/health")
def health(request: Request):
    try:
        request.app.state.database.ping()
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": "Database connection failed"})
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/admin/seed")
def seed(
    request: Request,
    session: Session = Depends(get_session),
    x_seed_secret: str | None = Header(default=None),
):
    settings: Settings = request.app.state.settings
    if not settings.seed_secret or x_seed_secret != settings.seed_secret:
        raise ApiError("Unauthorized", 401)
    seed_categories(session)
    seed_admins(session, settings.admins)
    return {"message": "Admins seeded"}


def create_api_app(settings: Settings, database: Database) -> FastAPI:
    api_app = FastAPI(title="Storefront catalog API")
    api_app.state.settings = settings
    api_app.state.database = database
    api_app.state.products_cache = TTLCache(settings.product_cache_ttl)
    api_app.state.session_auth = auth.SessionAuth(settings.secret_key, settings.session_max_age, settings.cookie_secure)
    api_app.add_exception_handler(ApiError, api_error_handler)
    api_app.add_exception_handler(RequestValidationError, validation_exception_handler)
    api_app.add_exception_handler(SQLAlchemyError, database_error_handler)
    api_app.include_router(router)
    return api_app


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        database.create_all()
        yield
        database.dispose()

    app = FastAPI(title="Storefront", lifespan=lifespan)
    app.mount("/api", create_api_app(settings, database))
    return app


app = create_app()
