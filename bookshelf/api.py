import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Security, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from bookshelf.auth import AuthError, check_credentials, create_access_token, verify_access_token
from bookshelf.book import Book
from bookshelf.config import settings
from bookshelf.store import BookStore, DuplicateTitleError, StorageError, ValidationError

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.WARNING))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = BookStore(settings.db_file)
    store.initialize()
    app.state.store = store
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error mapping ---
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Storage error, please retry."})


# --- Security ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> str:
    """Dependency that requires a valid bearer token and returns its subject."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return verify_access_token(credentials.credentials)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_store(request: Request) -> BookStore:
    return request.app.state.store


# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    author: str
    release_date: Optional[date] = None


class BookCreateModel(BaseModel):
    # Presence and content are checked by the store so both front ends report the same errors
    title: Optional[str] = None
    author: Optional[str] = None
    release_date: Optional[str] = None


class LoginModel(BaseModel):
    username: str
    password: str


class TokenModel(BaseModel):
    token: str
    token_type: str = "bearer"


class RemovedModel(BaseModel):
    detail: str
    removed: int


def _to_model(book: Book) -> BookModel:
    return BookModel(id=book.id, title=book.title, author=book.author, release_date=book.release_date)


# --- Routes ---
@app.get("/health")
def health():
    return {"status": "ok", "version": settings.app_version}


@app.post("/api/auth/login", response_model=TokenModel)
def login(payload: LoginModel):
    if not check_credentials(payload.username, payload.password):
        logger.warning(f"Failed login for user {payload.username!r}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password.")
    return TokenModel(token=create_access_token(payload.username))


@app.get("/api/books", response_model=List[BookModel], dependencies=[Depends(get_current_user)])
def get_books(store: BookStore = Depends(get_store)):
    return [_to_model(b) for b in store.list()]


@app.get("/api/books/{book_id}", response_model=BookModel, dependencies=[Depends(get_current_user)])
def get_book(book_id: int, store: BookStore = Depends(get_store)):
    book = store.get(book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found.")
    return _to_model(book)


@app.post(
    "/api/books",
    response_model=BookModel,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_user)],
)
def add_book(payload: BookCreateModel, store: BookStore = Depends(get_store)):
    try:
        book = store.add(payload.title, payload.author, payload.release_date)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DuplicateTitleError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A book with title '{e.title}' already exists.",
        ) from e
    return _to_model(book)


@app.delete("/api/books/{title}", response_model=RemovedModel, dependencies=[Depends(get_current_user)])
def delete_book(title: str, store: BookStore = Depends(get_store)):
    removed = store.remove(title)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No book found with title '{title}'.")
    return RemovedModel(detail=f"Removed book titled '{title}'.", removed=removed)
