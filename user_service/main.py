#!/usr/bin/env python3
"""
User Service - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
import os
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_service import __version__
from user_service.config.provider import ConfigProvider, EnvConfigProvider, RedisConfig
from user_service.logging_config import get_logging_config
from user_service.modules.api import (
    AddressListResponse,
    AddressRequest,
    AddressResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateAddressRequest,
    UpdateProfileRequest,
)
from user_service.modules.auth import AuthenticatedIdentity
from user_service.modules.auth.errors import (
    AuthError,
    IdentityExists,
    IdentityNotFound,
    InvalidCredentials,
    InvalidToken,
    RecoveryError,
)
from user_service.modules.auth.factory import AuthFactory, AuthStack
from user_service.modules.users.service import AccountService

load_dotenv()

log_config.dictConfig(get_logging_config(os.getenv("LOG_LEVEL", "INFO")))
logger = logging.getLogger(__name__)


async def get_redis_client(redis_config: RedisConfig) -> redis.Redis:
    """Create Redis client from configuration."""
    return redis.from_url(
        redis_config.url,
        password=redis_config.password,
        encoding="utf-8",
        decode_responses=True,
    )


def get_stack(request: Request) -> AuthStack:
    stack: Optional[AuthStack] = getattr(request.app.state, "stack", None)
    if stack is None:
        raise HTTPException(503, "Service not initialized")
    return stack


def get_accounts(request: Request) -> AccountService:
    return get_stack(request).accounts


async def require_identity(request: Request) -> AuthenticatedIdentity:
    """Run the auth gate for a protected endpoint."""
    return await get_stack(request).gate(request)


def error_body(message: str, status_code: int, code: Optional[str] = None) -> dict:
    body = {"error": message, "status": status_code}
    if code:
        body["code"] = code
    return body


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    redis_client=None,
    stack: Optional[AuthStack] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config_provider: Configuration source (environment by default)
        redis_client: Pre-built Redis client; created from config when omitted
        stack: Pre-built auth stack; built by AuthFactory at startup when omitted
    """
    config_provider = config_provider or EnvConfigProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle - initialize and cleanup resources."""
        logger.info("Starting User Service...")

        owns_redis = False
        if app.state.redis_client is None:
            app.state.redis_client = await get_redis_client(config_provider.get_redis_config())
            owns_redis = True

        if app.state.stack is None:
            app.state.stack = AuthFactory.build(config_provider, app.state.redis_client)
            logger.info("Authentication stack initialized via factory")

        logger.info("User Service started successfully")

        yield

        logger.info("Shutting down User Service...")
        if owns_redis and app.state.redis_client:
            await app.state.redis_client.aclose()
        logger.info("User Service shutdown complete")

    app = FastAPI(
        title="User Service",
        description="User accounts, profiles, addresses and password recovery",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.redis_client = redis_client
    app.state.stack = stack

    register_routes(app)
    register_error_handlers(app)
    return app


def register_routes(app: FastAPI) -> None:
    # Public Endpoints

    @app.post("/register", response_model=ProfileResponse, status_code=201)
    async def register(payload: RegisterRequest, accounts: AccountService = Depends(get_accounts)):
        """
        Create an account.

        Returns:
            201: Account created
            409: Email already registered
        """
        identity = await accounts.register(
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
        )
        return ProfileResponse(**identity.public_profile())

    @app.post("/login", response_model=TokenResponse)
    async def login(payload: LoginRequest, accounts: AccountService = Depends(get_accounts)):
        """
        Exchange email and password for a session token.

        Returns:
            200: Token issued
            401: Invalid email or password
        """
        grant = await accounts.login(payload.email, payload.password)
        return TokenResponse(access_token=grant.access_token, expires_in=grant.expires_in)

    @app.post("/forgot-password", response_model=ForgotPasswordResponse, status_code=202)
    async def forgot_password(
        payload: ForgotPasswordRequest, accounts: AccountService = Depends(get_accounts)
    ):
        """
        Email a password reset link.

        Always returns 202 so registered emails cannot be discovered.
        """
        outcome = await accounts.request_password_reset(payload.email)
        return ForgotPasswordResponse(delivered=outcome.delivered)

    @app.post("/reset-password")
    async def reset_password(
        payload: ResetPasswordRequest, accounts: AccountService = Depends(get_accounts)
    ):
        """
        Set a new password using a reset token.

        Returns:
            200: Password updated
            400: Token unknown, expired or already used
        """
        await accounts.reset_password(payload.token, payload.new_password)
        return {"status": "success", "message": "Password has been reset"}

    # Protected Endpoints

    @app.get("/profile", response_model=ProfileResponse)
    async def get_profile(
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        identity = await accounts.get_profile(auth.identity_ref)
        return ProfileResponse(**identity.public_profile())

    @app.put("/profile", response_model=ProfileResponse)
    async def update_profile(
        payload: UpdateProfileRequest,
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        identity = await accounts.update_profile(auth.identity_ref, **payload.model_dump())
        return ProfileResponse(**identity.public_profile())

    @app.put("/profile/change-password", response_model=TokenResponse)
    async def change_password(
        payload: ChangePasswordRequest,
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        """
        Change password and receive a fresh session token.

        Tokens issued before the change stop working.
        """
        grant = await accounts.change_password(
            auth.identity_ref, payload.current_password, payload.new_password
        )
        return TokenResponse(access_token=grant.access_token, expires_in=grant.expires_in)

    @app.delete("/profile", status_code=204)
    async def delete_account(
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        await accounts.delete_account(auth.identity_ref)
        return Response(status_code=204)

    @app.post("/addresses", response_model=AddressResponse, status_code=201)
    async def add_address(
        payload: AddressRequest,
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        address = await accounts.addresses.add_address(auth.identity_ref, **payload.model_dump())
        return AddressResponse(**address.to_dict())

    @app.get("/addresses", response_model=AddressListResponse)
    async def list_addresses(
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        addresses = await accounts.addresses.list_addresses(auth.identity_ref)
        return AddressListResponse(
            addresses=[AddressResponse(**a.to_dict()) for a in addresses],
            count=len(addresses),
        )

    @app.put("/addresses/{address_id}", response_model=AddressResponse)
    async def update_address(
        address_id: str,
        payload: UpdateAddressRequest,
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        address = await accounts.addresses.update_address(
            auth.identity_ref, address_id, **payload.model_dump(exclude_none=True)
        )
        if address is None:
            raise HTTPException(404, "Address not found")
        return AddressResponse(**address.to_dict())

    @app.delete("/addresses/{address_id}", status_code=204)
    async def delete_address(
        address_id: str,
        auth: AuthenticatedIdentity = Depends(require_identity),
        accounts: AccountService = Depends(get_accounts),
    ):
        if not await accounts.addresses.delete_address(auth.identity_ref, address_id):
            raise HTTPException(404, "Address not found")
        return Response(status_code=204)

    # Health Endpoints

    @app.get("/healthz")
    async def healthz():
        """Minimal liveness probe."""
        return {"status": "ok"}

    @app.get("/health")
    async def health_check(request: Request):
        """
        Readiness check.

        Returns:
            200: Service healthy
            503: Redis unreachable or modules not initialized
        """
        redis_client = request.app.state.redis_client
        try:
            if redis_client:
                await redis_client.ping()
                redis_status = "connected"
            else:
                redis_status = "disconnected"
        except redis.RedisError as e:
            logger.error(f"Health check failed: {e}")
            redis_status = "disconnected"

        modules_ready = request.app.state.stack is not None
        if redis_status == "connected" and modules_ready:
            return {"status": "healthy", "redis": redis_status, "version": __version__}
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "redis": redis_status,
                "modules": "initialized" if modules_ready else "not initialized",
            },
        )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(AuthError)
    async def auth_error_handler(request, exc):
        """Map auth and recovery errors to HTTP responses."""
        if isinstance(exc, InvalidToken):
            # Do not reveal whether the signature or the expiry failed
            return JSONResponse(
                status_code=401,
                content=error_body("Invalid or expired token", 401),
                headers={"WWW-Authenticate": "Bearer"},
            )
        if isinstance(exc, InvalidCredentials):
            return JSONResponse(status_code=401, content=error_body(str(exc), 401))
        if isinstance(exc, RecoveryError):
            logger.info(f"Password reset rejected: {exc.code}")
            return JSONResponse(
                status_code=400,
                content=error_body("Invalid or expired reset token", 400, exc.code),
            )
        if isinstance(exc, IdentityNotFound):
            return JSONResponse(status_code=404, content=error_body("Account not found", 404))
        if isinstance(exc, IdentityExists):
            return JSONResponse(status_code=409, content=error_body(str(exc), 409))

        logger.error(f"Unhandled auth error: {type(exc).__name__}")
        return JSONResponse(status_code=500, content=error_body("Internal error", 500))

    @app.exception_handler(redis.ConnectionError)
    async def redis_error_handler(request, exc):
        """Handle Redis connection errors."""
        logger.error(f"Redis connection error: {exc}")
        return JSONResponse(status_code=503, content=error_body("Database connection failed", 503))

    @app.exception_handler(ValueError)
    async def validation_error_handler(request, exc):
        """Handle validation errors."""
        logger.warning(f"Validation error: {exc}")
        return JSONResponse(status_code=400, content=error_body(str(exc), 400))


app = create_app()


def run():
    """Run the API server with uvicorn."""
    api_config = EnvConfigProvider().get_api_config()
    uvicorn.run(
        "user_service.main:app",
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        reload=api_config.debug,
        log_config=get_logging_config(api_config.log_level),
    )


if __name__ == "__main__":
    run()
