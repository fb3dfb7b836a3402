import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .domain import AuthError, Collection, CRMError, StoreError
from .logging_config import setup_logging
from .models import (
    RECORD_SCHEMAS,
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RecordData,
    SignupRequest,
    SuccessResponse,
    UserResponse,
)
from .security import get_crm, get_current_user, get_optional_token
from .services import CRM
from .utils import time_now

settings = get_settings()
logger = setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    crm = app.dependency_overrides.get(get_crm, get_crm)()
    logger.info(f"{settings.APP_NAME} {settings.VERSION} using data file {crm.store.path}")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-tenant CRM backend with per-user data isolation",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    # "message" is what the browser client reads; "detail" matches FastAPI's own errors
    content = {"detail": exc.message, "message": exc.message}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"Request failed: {request.method} {request.url.path}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


router = APIRouter()


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
def signup(body: SignupRequest, crm: CRM = Depends(get_crm)):
    user, token = crm.auth.signup(body.name, body.email, body.password)
    return {"user": user, "token": token}


@router.post("/auth/login", response_model=AuthResponse)
def login(body: LoginRequest, crm: CRM = Depends(get_crm)):
    user, token = crm.auth.login(body.email, body.password)
    return {"user": user, "token": token}


@router.post("/auth/logout", response_model=SuccessResponse)
def logout(token: Optional[str] = Depends(get_optional_token), crm: CRM = Depends(get_crm)):
    crm.auth.logout(token)
    return SuccessResponse(success=True)


@router.get("/user", response_model=UserResponse)
def read_profile(user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
    return crm.auth.get_user(user_id)


@router.put("/user", response_model=UserResponse)
def update_profile(body: ProfileUpdate, user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
    return crm.auth.update_profile(user_id, body.model_dump(exclude_unset=True))


def add_collection_routes(router: APIRouter, collection: Collection, schema: Type[RecordData]) -> None:
    """Register list/create/get/update/delete for one record kind."""
    path = f"/{collection.value}"
    item_path = f"{path}/{{record_id}}"
    kind = collection.value

    @router.get(path, response_model=List[Dict[str, Any]], name=f"list_{kind}")
    def list_records(user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
        return crm.records.list(collection, user_id)

    @router.post(path, response_model=Dict[str, Any], status_code=201, name=f"create_{kind}")
    def create_record(body: schema, user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
        return crm.records.create(collection, user_id, body.to_payload())

    @router.get(item_path, response_model=Dict[str, Any], name=f"get_{kind}")
    def get_record(record_id: str, user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
        return crm.records.get(collection, user_id, record_id)

    @router.put(item_path, response_model=Dict[str, Any], name=f"update_{kind}")
    def update_record(record_id: str, body: schema, user_id: str = Depends(get_current_user),
                      crm: CRM = Depends(get_crm)):
        return crm.records.update(collection, user_id, record_id, body.to_payload())

    @router.delete(item_path, response_model=SuccessResponse, name=f"delete_{kind}")
    def delete_record(record_id: str, user_id: str = Depends(get_current_user), crm: CRM = Depends(get_crm)):
        crm.records.delete(collection, user_id, record_id)
        return SuccessResponse(success=True)


for _collection, _schema in RECORD_SCHEMAS.items():
    add_collection_routes(router, _collection, _schema)

app.include_router(router, prefix=settings.API_PREFIX)


@app.get("/")
async def read_root():
    return {"message": f"{settings.APP_NAME} is running", "version": settings.VERSION}


@app.get("/health")
def health_check(crm: CRM = Depends(get_crm)):
    try:
        crm.store.read()
    except StoreError as e:
        logger.error(f"Health check failed: {e.message}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "timestamp": time_now()})
    return {"status": "healthy", "timestamp": time_now()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("crm_website.backend.main:app", host=settings.HOST, port=settings.PORT, log_level="info")
