"""
Request Pipeline - Per-endpoint request state machine

Module: protocol.request_pipeline
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Routing for signup, login, protected and unprotected endpoints
  - signup/login: assemble -> validate -> store op -> issue token -> respond
  - protected: assemble -> extract token -> verify -> respond
  - Single error-to-response mapping at the pipeline boundary
  - Rate limiting of the auth endpoints

ARCHITECTURE:
RequestPipeline is transport-agnostic. It receives an HTTPRequest whose body
is still a stream of chunks and returns an HTTPResponse, or None when the
peer went away while the body was being read.

Each stage raises on failure; the first failure short-circuits to
_error_response(). Nothing is retried.

Token sources for protected resources, in order:
  1. "token" field of the JSON body
  2. Authorization: Bearer <token>
  3. "token" cookie

SECURITY NOTES:
- Unknown email and wrong password produce the same 400 message
- Signer and unexpected failures answer a generic 500
- Token failures always answer 401
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..core.constants import (
    BEARER_SCHEME,
    MAX_BODY_SIZE,
    MSG_BODY_TOO_LARGE,
    MSG_INTERNAL_ERROR,
    MSG_INVALID_BODY,
    MSG_INVALID_CREDENTIALS,
    MSG_INVALID_SCHEMA,
    MSG_NOT_FOUND,
    MSG_PROTECTED,
    MSG_RATE_LIMITED,
    MSG_UNAUTHORIZED,
    MSG_UNPROTECTED,
    MSG_USER_EXISTS,
    ROUTE_LOGIN,
    ROUTE_PROTECTED,
    ROUTE_SIGNUP,
    ROUTE_UNPROTECTED,
    TOKEN_BODY_FIELD,
    TOKEN_COOKIE_NAME,
)
from ..security.authentication import (
    AlreadyExistsError,
    Credential,
    CredentialStore,
    InvalidCredentialsError,
    SnapshotError,
    TokenError,
    TokenIssuer,
    TokenSigningError,
    UserNotFoundError,
)
from ..security.rate_limiter import RateLimiter
from ..transport.base_transport import HTTPRequest, HTTPResponse
from .body_assembler import (
    BodyAssembler,
    BodyAssemblyError,
    BodyTooLargeError,
    StreamAbortedError,
)
from .schemas import LoginRequest, SignupRequest, validate_shape


class PipelineError(Exception):
    """Base pipeline error"""
    pass


class ShapeInvalidError(PipelineError):
    """Payload is not well-formed for the endpoint"""
    pass


class UnauthorizedError(PipelineError):
    """Missing or unusable token"""
    pass


Handler = Callable[[HTTPRequest], Awaitable[HTTPResponse]]

ANY_METHOD = "*"


class RequestPipeline:
    """
    Routes requests and runs the per-endpoint stages.

    Typical usage:
        pipeline = RequestPipeline(store, issuer)
        transport.set_request_handler(pipeline.handle)
    """

    def __init__(
        self,
        store: CredentialStore,
        issuer: TokenIssuer,
        rate_limiter: Optional[RateLimiter] = None,
        max_body_size: int = MAX_BODY_SIZE,
        autosave: bool = True,
    ):
        """
        Initialize pipeline

        Args:
            store: Credential store
            issuer: Token issuer
            rate_limiter: Limiter for the auth endpoints (None disables it)
            max_body_size: Body size limit passed to each BodyAssembler
            autosave: Save the store after each successful signup
        """
        self.logger = logging.getLogger("protocol.request_pipeline")
        self.store = store
        self.issuer = issuer
        self.rate_limiter = rate_limiter
        self.max_body_size = max_body_size
        self.autosave = autosave

        # (method, path) -> (handler, rate limited)
        self._routes: Dict[Tuple[str, str], Tuple[Handler, bool]] = {
            ("POST", ROUTE_SIGNUP): (self._signup, True),
            ("POST", ROUTE_LOGIN): (self._login, True),
            (ANY_METHOD, ROUTE_PROTECTED): (self._protected, False),
            (ANY_METHOD, ROUTE_UNPROTECTED): (self._unprotected, False),
        }

    async def handle(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """
        Run the pipeline for one request

        Args:
            request: Request from a transport

        Returns:
            HTTPResponse, or None if the body stream was aborted
        """
        route = self._routes.get((request.method, request.path)) or self._routes.get(
            (ANY_METHOD, request.path)
        )
        if route is None:
            return HTTPResponse.message(404, MSG_NOT_FOUND)

        handler, limited = route

        decision = None
        if limited and self.rate_limiter is not None:
            decision = self.rate_limiter.hit(request.remote)
            if not decision.allowed:
                response = HTTPResponse.message(429, MSG_RATE_LIMITED)
                response.headers.update(decision.headers())
                return response

        try:
            response = await handler(request)
        except StreamAbortedError as e:
            self.logger.info(f"{request.method} {request.path}: client went away ({e})")
            return None
        except Exception as e:
            response = self._error_response(request, e)

        if decision is not None:
            response.headers.update(decision.headers())
        return response

    # ------------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------------

    async def _signup(self, request: HTTPRequest) -> HTTPResponse:
        payload = await self._read_body(request)
        if not validate_shape(payload, SignupRequest):
            raise ShapeInvalidError("Signup payload rejected")

        email = payload["email"]
        self.logger.info(f"Signup attempt for {email}")

        await self.store.insert(
            Credential(email=email, password=payload["password"], name=payload["name"])
        )
        if self.autosave:
            await self._save_store()

        return await self._token_response(email)

    async def _login(self, request: HTTPRequest) -> HTTPResponse:
        payload = await self._read_body(request)
        if not validate_shape(payload, LoginRequest):
            raise ShapeInvalidError("Login payload rejected")

        email = payload["email"]
        self.logger.info(f"Login attempt for {email}")

        await self.store.verify(Credential(email=email, password=payload["password"]))

        return await self._token_response(email)

    async def _protected(self, request: HTTPRequest) -> HTTPResponse:
        payload = await self._read_body(request) if request.has_body else {}
        token = self._extract_token(request, payload)

        claims = self.issuer.verify(token)
        self.logger.debug(f"Protected resource accessed by {claims.sub}")

        return HTTPResponse.message(200, MSG_PROTECTED)

    async def _unprotected(self, request: HTTPRequest) -> HTTPResponse:
        return HTTPResponse.message(200, MSG_UNPROTECTED)

    # ------------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------------

    async def _read_body(self, request: HTTPRequest) -> Dict[str, Any]:
        assembler = BodyAssembler(self.max_body_size)
        return await assembler.assemble(request.body)

    async def _token_response(self, email: str) -> HTTPResponse:
        issued = await self.issuer.issue(email)
        response = HTTPResponse.json(200, {"token": issued.token})
        response.cookies.append(self.issuer.session_cookie(issued.token))
        return response

    async def _save_store(self) -> None:
        try:
            await self.store.save()
        except SnapshotError as e:
            # The record is in memory; the next save will persist it
            self.logger.error(f"Autosave failed: {e}")

    @staticmethod
    def _extract_token(request: HTTPRequest, payload: Dict[str, Any]) -> str:
        """
        Pick the token from body, Authorization header or cookie

        Raises:
            UnauthorizedError: If no usable token is present
        """
        body_token = payload.get(TOKEN_BODY_FIELD)
        if body_token not in (None, ""):
            if not isinstance(body_token, str):
                raise UnauthorizedError("Body token must be a string")
            return body_token

        header = request.header("authorization")
        if header is not None:
            scheme, _, value = header.strip().partition(" ")
            value = value.strip()
            if scheme.lower() != BEARER_SCHEME.lower() or not value:
                raise UnauthorizedError("Malformed Authorization header")
            return value

        cookie = request.cookies.get(TOKEN_COOKIE_NAME)
        if cookie:
            return cookie

        raise UnauthorizedError("No token provided")

    def _error_response(self, request: HTTPRequest, error: Exception) -> HTTPResponse:
        """Map a stage failure to a response"""
        where = f"{request.method} {request.path}"

        if isinstance(error, BodyTooLargeError):
            self.logger.warning(f"{where}: {error}")
            return HTTPResponse.message(413, MSG_BODY_TOO_LARGE)
        if isinstance(error, BodyAssemblyError):
            self.logger.error(f"{where}: failed to read body ({error})")
            return HTTPResponse.message(400, MSG_INVALID_BODY)
        if isinstance(error, ShapeInvalidError):
            self.logger.error(f"{where}: failed to validate schema")
            return HTTPResponse.message(400, MSG_INVALID_SCHEMA)
        if isinstance(error, AlreadyExistsError):
            self.logger.error(f"{where}: failed to store user ({error})")
            return HTTPResponse.message(400, MSG_USER_EXISTS)
        if isinstance(error, (UserNotFoundError, InvalidCredentialsError)):
            self.logger.error(f"{where}: failed to verify user ({error})")
            return HTTPResponse.message(400, MSG_INVALID_CREDENTIALS)
        if isinstance(error, (UnauthorizedError, TokenError)):
            self.logger.error(f"{where}: unauthorized ({error})")
            return HTTPResponse.message(401, MSG_UNAUTHORIZED)
        if isinstance(error, TokenSigningError):
            self.logger.error(f"{where}: {error}")
            return HTTPResponse.message(500, MSG_INTERNAL_ERROR)

        self.logger.error(f"{where}: unexpected error: {error}", exc_info=error)
        return HTTPResponse.message(500, MSG_INTERNAL_ERROR)
