import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session, SQLModel, create_engine

from .config import Settings, get_settings
from .errors import (
    AuthRequired,
    InternalFailure,
    InvalidRequest,
    InvalidToken,
    LibraryError,
    MissingField,
    NotFound,
)
from .models import (
    AuthResp,
    BookAddPayload,
    BookModifyPayload,
    BookResp,
    LoginPayload,
    MessageResp,
    RegisterPayload,
    UserInfoResp,
)
from .services import AuthResult, AuthService, BookService, TokenClaims
from .stores import BookStore, CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_dbsession(request: Request):
    with Session(request.app.state.engine) as session:
        yield session


DbSessDep = Annotated[Session, Depends(get_dbsession)]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(
    dbsession: DbSessDep,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthService:
    return AuthService(CredentialStore(dbsession), settings)


def get_book_service(dbsession: DbSessDep) -> BookService:
    return BookService(BookStore(dbsession))


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
BookServiceDep = Annotated[BookService, Depends(get_book_service)]


def bearer_token(authorization: str | None) -> str | None:
    """Token part of an `Authorization: Bearer <token>` header

    :return: `None` when there is no header or no token after the scheme
    :raises InvalidToken: the header has another scheme or extra parts
    """
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) < 2:
        return None
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise InvalidToken()
    return parts[1]


async def verify_login(
    auth: AuthServiceDep, authorization: str | None = Header(None)
) -> TokenClaims:
    token = bearer_token(authorization)
    if token is None:
        raise AuthRequired()
    return auth.verify_token(token)


LoginDep = Annotated[TokenClaims, Depends(verify_login)]


def auth_response(result: AuthResult) -> AuthResp:
    return AuthResp(
        token=result.token, user=UserInfoResp.model_validate(result.user)
    )


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/api/register", response_model=AuthResp)
async def register(payload: RegisterPayload, auth: AuthServiceDep):
    # argon2 is slow, keep it off the event loop
    result = await run_in_threadpool(
        auth.register, payload.email, payload.password, payload.name
    )
    return auth_response(result)


@router.post("/api/login", response_model=AuthResp)
async def login(payload: LoginPayload, auth: AuthServiceDep):
    result = await run_in_threadpool(auth.login, payload.email, payload.password)
    return auth_response(result)


@router.get("/api/me", response_model=UserInfoResp)
def me(auth: AuthServiceDep, login_session: LoginDep):
    user = auth.users.get(login_session.user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("/api/books", response_model=list[BookResp])
def list_books(
    books: BookServiceDep,
    login_session: LoginDep,
    search: str | None = Query(None),
    category: str | None = Query(None),
):
    return books.list_books(login_session.user_id, search, category)


@router.get("/api/categories", response_model=list[str])
def list_categories(books: BookServiceDep, login_session: LoginDep):
    return books.categories(login_session.user_id)


@router.post("/api/books", response_model=BookResp, status_code=201)
def add_book(
    payload: BookAddPayload, books: BookServiceDep, login_session: LoginDep
):
    return books.add_book(login_session.user_id, **payload.model_dump())


@router.put("/api/books/{book_id}", response_model=MessageResp)
def modify_book(
    book_id: int,
    payload: BookModifyPayload,
    books: BookServiceDep,
    login_session: LoginDep,
):
    books.update_book(
        login_session.user_id, book_id, payload.model_dump(exclude_unset=True)
    )
    return {"message": "Book updated"}


@router.delete("/api/books/{book_id}", response_model=MessageResp)
def delete_book(book_id: int, books: BookServiceDep, login_session: LoginDep):
    books.delete_book(login_session.user_id, book_id)
    return {"message": "Book deleted"}


def error_response(error: LibraryError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message, "code": error.code},
    )


def validation_error(exc: RequestValidationError) -> LibraryError:
    errors = exc.errors()
    missing = [
        ".".join(str(p) for p in e["loc"][1:]) or str(e["loc"][0])
        for e in errors
        if e.get("type") == "missing"
    ]
    if missing:
        return MissingField(f"Missing field: {', '.join(missing)}")
    if errors:
        return InvalidRequest(errors[0].get("msg", "Invalid request"))
    return InvalidRequest()


def setup_exception_handlers(app: FastAPI):
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.debug("%s %s -> %d %s", request.method, request.url.path,
                         exc.status_code, exc.code)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        return error_response(validation_error(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(InternalFailure())


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        settings = get_settings()

    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(
        settings.database_url,
        echo=settings.database_echo,
        connect_args=connect_args,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        SQLModel.metadata.create_all(engine)
        logger.info("library api started (%s)", settings.environment)
        yield
        engine.dispose()

    app = FastAPI(title="My Local Library", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)
    app.include_router(router)
    return app
