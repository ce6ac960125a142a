import asyncio
import logging
import math
import secrets
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

from . import config
from .attestation import AttestationDomain, AttestationSigner
from .auth import Authenticator
from .config import ConfigurationError
from .deriver import SecretDeriver, load_corpus
from .keys import get_key_provider
from .logging_config import configure_logging, set_request_id
from .models import ClaimRequest, GuessRequest, StartRequest
from .outcomes import ErrorKind, Failure, Outcome, Reason
from .rate_limit import RateLimiter
from .security import extract_client_id
from .service import ResolutionService
from .sessions import InMemorySessionStore
from .settlement import CHECK_MODES, SettlementChecker
from .util import now_millis

logger = logging.getLogger(__name__)

app = FastAPI(title="Wordle Royale Resolver")

STATUS_BY_KIND = {
    ErrorKind.ADMISSION: 400,
    ErrorKind.AUTHENTICATION: 403,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 503,
}

SERVICE: Optional[ResolutionService] = None
_SWEEPER: Optional[asyncio.Task] = None


def _parse_payout(raw: str) -> Optional[int]:
    if not raw:
        return None
    try:
        payout = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"ATTESTATION_PAYOUT must be an integer: {raw!r}") from e
    if payout < 0 or payout >= 2 ** 256:
        raise ConfigurationError("ATTESTATION_PAYOUT out of uint256 range")
    return payout


def build_service() -> ResolutionService:
    """
    Wire the components from configuration.

    Raises:
        ConfigurationError: On a missing corpus, signing key or secret
    """
    corpus = load_corpus(config.WORDS_PATH, config.WORD_LENGTH)

    secret = config.SERVER_SECRET
    if not secret:
        if config.is_production():
            raise ConfigurationError("SERVER_SECRET is required in production")
        secret = secrets.token_hex(32)
        logger.warning("SERVER_SECRET not set; using a random secret, targets will change on restart")

    keys = get_key_provider(config.SIGNER_TYPE, config.RESOLVER_PRIVATE_KEY, config.ED25519_KEY_PATH)

    if config.SETTLEMENT_CHECK_MODE not in CHECK_MODES:
        raise ConfigurationError(f"unknown SETTLEMENT_CHECK_MODE: {config.SETTLEMENT_CHECK_MODE}")

    domain = AttestationDomain(
        name=config.DOMAIN_NAME,
        version=config.DOMAIN_VERSION,
        chain_id=config.CHAIN_ID,
        verifying_contract=config.CONTRACT_ADDRESS,
    )
    signer = AttestationSigner(keys, domain, payout=_parse_payout(config.ATTESTATION_PAYOUT))

    store = InMemorySessionStore(
        SecretDeriver(secret, corpus),
        max_attempts=config.MAX_ATTEMPTS,
        ttl_seconds=config.SESSION_TTL_SECONDS,
    )

    return ResolutionService(
        store=store,
        authenticator=Authenticator(store.credential_for),
        signer=signer,
        limiter=RateLimiter(config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_SECONDS),
        settlement=SettlementChecker(
            config.SETTLEMENT_RPC_URL,
            config.CONTRACT_ADDRESS,
            timeout=config.SETTLEMENT_TIMEOUT_SECONDS,
        ),
        word_length=config.WORD_LENGTH,
        max_attempts=config.MAX_ATTEMPTS,
        settlement_mode=config.SETTLEMENT_CHECK_MODE,
    )


@app.on_event("startup")
def _startup():
    global SERVICE
    configure_logging("DEBUG" if config.is_debug() else config.LOG_LEVEL, config.LOG_JSON)
    for name, present in config.validate_config().items():
        if not present:
            logger.warning("Configuration item missing: %s", name)
    SERVICE = build_service()
    logger.info(
        "Resolver ready: signer=%s scheme=%s settlement_check=%s",
        SERVICE.signer.identity,
        SERVICE.signer.scheme,
        config.SETTLEMENT_CHECK_MODE if SERVICE.settlement.enabled else "disabled",
    )


async def _sweep_loop(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(SERVICE.sweep)
        except Exception:
            logger.exception("Session sweep failed")


@app.on_event("startup")
async def _start_sweeper():
    global _SWEEPER
    _SWEEPER = asyncio.create_task(_sweep_loop(config.SWEEP_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def _stop_sweeper():
    global _SWEEPER
    if _SWEEPER is not None:
        _SWEEPER.cancel()
        _SWEEPER = None


def _reject(failure: Failure) -> JSONResponse:
    status = 429 if failure.reason is Reason.RATE_LIMIT else STATUS_BY_KIND[failure.kind]
    headers = {}
    if failure.retry_after is not None:
        headers["Retry-After"] = str(max(1, math.ceil(failure.retry_after)))
    return JSONResponse({"detail": failure.reason.value}, status_code=status, headers=headers)


def _unwrap(outcome: Outcome):
    if outcome.ok:
        return outcome.value
    failure = outcome.failure
    status = STATUS_BY_KIND[failure.kind]
    raise HTTPException(status, failure.reason.value)


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_bytes` with 413.

    A declared Content-Length is checked first; otherwise the body is
    buffered as it arrives and rejected as soon as the running total
    passes the limit, so chunked uploads are capped too.
    """

    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        too_large = JSONResponse({"detail": "PAYLOAD_TOO_LARGE"}, status_code=413)

        length = Headers(scope=scope).get("content-length", "")
        if length.isdigit() and int(length) > self.max_bytes:
            return await too_large(scope, receive, send)

        buffered = []
        received = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_bytes:
                return await too_large(scope, receive, send)
            if not message.get("more_body", False):
                break

        async def replay():
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)


app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.MAX_BODY_BYTES)


@app.middleware("http")
async def _admission(request: Request, call_next):
    request_id = set_request_id()

    if request.method != "OPTIONS" and request.url.path.startswith("/api/"):
        caller = extract_client_id(
            request.headers,
            request.client.host if request.client else None,
            config.TRUST_FORWARDED_FOR,
        )
        admitted = SERVICE.admit(caller, request.url.path)
        if not admitted.ok:
            response = _reject(admitted.failure)
            response.headers["X-Request-ID"] = request_id
            return response

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Outermost layer: 413 and 429 responses carry CORS headers too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Session-Credential"],
)


@app.exception_handler(RequestValidationError)
async def _malformed_request(request: Request, exc: RequestValidationError):
    return JSONResponse({"detail": "MALFORMED_REQUEST"}, status_code=400)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": now_millis()}


@app.get("/api/resolver")
def resolver_identity():
    return SERVICE.signer_identity()


@app.post("/api/game/start")
def start_game(req: StartRequest):
    return _unwrap(SERVICE.create(req.round_id, req.participant))


@app.post("/api/game/guess")
def submit_guess(req: GuessRequest):
    return _unwrap(SERVICE.guess(req.instance_id, req.credential, req.guess))


@app.get("/api/game/{instance_id}")
def game_state(
    instance_id: str,
    credential: Optional[str] = Query(default=None),
    x_session_credential: Optional[str] = Header(default=None),
):
    return _unwrap(SERVICE.state(instance_id, x_session_credential or credential))


@app.post("/api/game/claim")
def claim(req: ClaimRequest):
    try:
        outcome = SERVICE.attestation(req.instance_id, req.credential)
    except Exception:
        raise HTTPException(500, "ATTESTATION_FAILED")
    return _unwrap(outcome)
