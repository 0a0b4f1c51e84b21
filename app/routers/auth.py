from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.observability import log_event
from app.core.rate_limit import LoginRateLimiter
from app.core.security import create_access_token, hash_password, verify_password
from app.core.security_current import get_current_user
from app.models.user import User
from app.schemas.auth import AuthOut, LoginIn, RegisterIn, TokenOut, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])
AUTH_RESPONSE_EXAMPLE = {
    "access_token": "access-token",
    "token_type": "bearer",
    "user": {
        "id": "user-id",
        "email": "owner@example.com",
        "name": "Jane Owner",
        "created_at": "2024-01-01T10:00:00",
        "updated_at": "2024-01-01T10:00:00",
    },
}

login_rate_limiter = LoginRateLimiter(
    max_attempts=settings.auth_rate_limit_max_attempts,
    window_seconds=settings.auth_rate_limit_window_seconds,
    lock_seconds=settings.auth_rate_limit_lock_seconds,
)


def _client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _rate_key(email: str, client_ip: str) -> str:
    return f"{email.strip().lower()}:{client_ip}"


def _enforce_rate_limit(email: str, client_ip: str) -> str:
    key = _rate_key(email, client_ip)
    retry_after = login_rate_limiter.retry_after(key)
    if retry_after > 0:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed attempts. Try again later.",
            headers={"Retry-After": str(retry_after)},
        )
    return key


def _email_registered(db: Session, email: str) -> bool:
    found = db.execute(
        select(User.id).where(func.lower(User.email) == email)
    ).scalar_one_or_none()
    return found is not None


def _authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    ).scalar_one_or_none()

    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")

    return user


def _login(db: Session, *, email: str, password: str, client_ip: str) -> User:
    key = _enforce_rate_limit(email, client_ip)
    try:
        user = _authenticate_user(db, email, password)
    except HTTPException as exc:
        if exc.status_code == 401:
            login_rate_limiter.record_failure(key)
            log_event("auth.login_failed", email=email.strip().lower(), client_ip=client_ip)
        raise

    login_rate_limiter.reset(key)
    return user


def _auth_out(user: User) -> AuthOut:
    return AuthOut(
        access_token=create_access_token(user.id, email=user.email, name=user.name),
        user=UserOut.model_validate(user),
    )


@router.post(
    "/register",
    response_model=AuthOut,
    summary="Register an account",
    description="Creates the owner account and returns an access token with the user profile.",
    responses={
        200: {
            "description": "Access token and user profile",
            "content": {"application/json": {"example": AUTH_RESPONSE_EXAMPLE}},
        },
        **error_responses(409, 422, 500, path="/auth/register"),
    },
)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    normalized_email = str(payload.email).strip().lower()
    if _email_registered(db, normalized_email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=normalized_email,
        name=payload.name,
        hashed_password=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered") from None
    db.refresh(user)
    log_event("auth.register", user_id=user.id)
    return _auth_out(user)


@router.post(
    "/login",
    response_model=AuthOut,
    summary="Login with JSON",
    description="Authenticate with email and password.",
    responses={
        200: {
            "description": "Access token and user profile",
            "content": {"application/json": {"example": AUTH_RESPONSE_EXAMPLE}},
        },
        **error_responses(401, 422, 429, 500, path="/auth/login"),
    },
)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    user = _login(
        db,
        email=str(payload.email),
        password=payload.password,
        client_ip=_client_ip(request),
    )
    return _auth_out(user)


@router.post(
    "/token",
    response_model=TokenOut,
    summary="OAuth2 password token (Swagger Authorize)",
    description=(
        "Form-data login endpoint used by Swagger Authorize. "
        "Use your email in the `username` field."
    ),
    responses=error_responses(401, 422, 429, 500, path="/auth/token"),
)
def login_for_swagger(
    request: Request,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    user = _login(
        db,
        email=form_data.username,
        password=form_data.password,
        client_ip=_client_ip(request),
    )
    return TokenOut(access_token=create_access_token(user.id, email=user.email, name=user.name))


@router.get(
    "/me",
    response_model=UserOut,
    summary="Get current user",
    responses=error_responses(401, 500, path="/auth/me"),
)
def me(user: User = Depends(get_current_user)):
    return user
