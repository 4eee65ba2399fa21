import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param
from pydantic import BaseModel, ConfigDict, Field

from auth import AuthManager
from cascade import CascadeCoordinator
from categories import CategoryRegistry
from config import Config
from database import Store
from errors import AuthError, InvalidTokenError, InventoryError, NotFoundError
from inventory import InventoryCatalog
from log_setup import configure_logging, request_id_var
from stats import StatsAggregator

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Services
# ------------------------------------------------------------

@dataclass
class Services:
    store: Store
    auth: AuthManager
    categories: CategoryRegistry
    inventory: InventoryCatalog
    stats: StatsAggregator


def build_services(settings, store=None):
    store = store or Store.from_settings(settings)
    cascade = CascadeCoordinator(store)
    return Services(
        store=store,
        auth=AuthManager(
            store,
            secret_key=settings["JWT_SECRET_KEY"],
            algorithm=settings["JWT_ALGORITHM"],
            token_ttl=timedelta(hours=settings["TOKEN_TTL_HOURS"]),
            hash_method=settings["PASSWORD_HASH_METHOD"],
            allow_weak_hash=settings["TESTING"],
        ),
        categories=CategoryRegistry(store, cascade),
        inventory=InventoryCatalog(store),
        stats=StatsAggregator(store),
    )

# ------------------------------------------------------------
# Request models
# ------------------------------------------------------------

class RegisterRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None

class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None

class CategoryCreate(BaseModel):
    name: str | None = None

class CategoryRename(BaseModel):
    newName: str | None = None

class InventoryItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kategori: str | None = None
    code_barang: str | None = Field(default=None, alias="codeBarang")
    nama: str | None = None
    serial_number: str | None = Field(default=None, alias="serialNumber")
    tanggal: str | None = None
    lokasi: str | None = None
    asal_barang: str | None = Field(default=None, alias="asalBarang")
    status: str | None = None
    ukuran: str | None = None
    keterangan: str | None = None

# ------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(
    request: Request,
    services: Services = Depends(get_services),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
):
    if credentials is None:
        # HTTPBearer drops any other scheme; a credential that was sent is invalid, not missing
        scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
        if token:
            raise InvalidTokenError(f"Unsupported authorization scheme: {scheme}")
        return services.auth.verify(None)
    return services.auth.verify(credentials.credentials)

# ------------------------------------------------------------
# Auth routes
# ------------------------------------------------------------

router = APIRouter(prefix="/api")


@router.post("/auth/register")
def register(payload: RegisterRequest, services: Services = Depends(get_services)):
    user_id = services.auth.register(payload.username, payload.email, payload.password)
    return {"message": "User registered successfully", "userId": user_id}


@router.post("/auth/login")
def login(payload: LoginRequest, services: Services = Depends(get_services)):
    try:
        result = services.auth.login(payload.username, payload.password)
    except (NotFoundError, AuthError) as exc:
        # unknown user and wrong password are both plain 400s on this endpoint
        return JSONResponse(status_code=400, content={"message": exc.message})
    return {"message": "Login successful", "token": result.token, "user": result.user}

# ------------------------------------------------------------
# Category routes
# ------------------------------------------------------------

@router.get("/categories")
def list_categories(
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    return services.categories.list()


@router.post("/categories")
def add_category(
    payload: CategoryCreate,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    services.categories.add(payload.name)
    return {"message": "Category added"}


@router.put("/categories/{old_name:path}")
def rename_category(
    old_name: str,
    payload: CategoryRename,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    services.categories.rename(old_name, payload.newName)
    return {"message": "Category updated successfully"}


@router.delete("/categories/{name:path}")
def delete_category(
    name: str,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    services.categories.remove(name)
    return {"message": "Category deleted"}

# ------------------------------------------------------------
# Inventory routes
# ------------------------------------------------------------

@router.get("/inventory")
def list_inventory(
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    return [item.to_dict() for item in services.inventory.list()]


@router.post("/inventory")
def add_inventory_item(
    payload: InventoryItemRequest,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    item_id, no = services.inventory.add(payload.model_dump(), created_by=current_user["id"])
    return {"message": "Item added", "id": item_id, "no": no}


@router.put("/inventory/{item_id}")
def update_inventory_item(
    item_id: int,
    payload: InventoryItemRequest,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    services.inventory.update(item_id, payload.model_dump())
    return {"message": "Item updated"}


@router.delete("/inventory/{item_id}")
def delete_inventory_item(
    item_id: int,
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    services.inventory.remove(item_id)
    return {"message": "Item deleted"}


@router.get("/stats")
def get_stats(
    services: Services = Depends(get_services),
    current_user: dict = Depends(get_current_user),
):
    return services.stats.compute()

# ------------------------------------------------------------
# App factory
# ------------------------------------------------------------

def create_app(overrides=None, store=None):
    settings = Config.as_dict(overrides)
    configure_logging(settings["LOG_LEVEL"])

    services = build_services(settings, store=store)
    services.store.create_schema()

    @asynccontextmanager
    async def lifespan(app):
        yield
        services.store.dispose()

    app = FastAPI(title="Inventory API", lifespan=lifespan)
    app.state.services = services
    app.include_router(router)

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(InventoryError)
    async def handle_inventory_error(request: Request, exc: InventoryError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        content = {"message": exc.message}
        if exc.detail and settings["EXPOSE_ERROR_DETAIL"]:
            content["error"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = "Invalid request"
        if fields:
            message = f"Invalid request: {', '.join(fields)}"
        return JSONResponse(status_code=400, content={"message": message})

    return app
