from uuid import uuid4

import redis.asyncio as redis_async
from fastapi import FastAPI, Request

from claimbot.config import Settings, settings
from claimbot.database import SessionLocal
from claimbot.handlers import build_registry
from claimbot.logging_config import get_logger, setup_logging
from claimbot.routers import webhook
from claimbot.services.errors import ConfigurationError
from claimbot.services.idempotency_service import IdempotencyGuard
from claimbot.services.journey_service import JourneyClient
from claimbot.services.pipeline import WebhookPipeline
from claimbot.services.rate_limit_service import RateLimiter
from claimbot.services.session_service import SessionStore
from claimbot.services.state_machine import ConversationEngine
from claimbot.services.station_service import StationClient
from claimbot.services.verification_service import VerificationClient

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Claimbot API",
    description="Webhook backend for the delayed-journey claims chatbot",
    version="0.1.0",
)

app.include_router(webhook.router)


def validate_settings(config: Settings) -> None:
    if config.signature_validation_enabled and not config.twilio_auth_token:
        raise ConfigurationError("TWILIO_AUTH_TOKEN is required while signature validation is enabled")
    if not config.station_service_url:
        raise ConfigurationError("STATION_SERVICE_URL is required")
    if not config.journey_matcher_url:
        raise ConfigurationError("JOURNEY_MATCHER_URL is required")
    if config.is_production and not config.signature_validation_enabled:
        raise ConfigurationError("Signature validation cannot be disabled in production")


def create_redis(config: Settings):
    return redis_async.from_url(
        config.redis_url,
        decode_responses=True,
        socket_connect_timeout=config.redis_socket_timeout_seconds,
        socket_timeout=config.redis_socket_timeout_seconds,
    )


def build_pipeline(config: Settings, redis_client) -> WebhookPipeline:
    """Wire every collaborator once. Raises ConfigurationError on missing settings or handlers."""
    validate_settings(config)
    engine = ConversationEngine(build_registry())
    return WebhookPipeline(
        engine=engine,
        idempotency=IdempotencyGuard(redis_client, ttl_seconds=config.idempotency_ttl_seconds),
        rate_limiter=RateLimiter(
            redis_client,
            window_ms=config.rate_limit_window_ms,
            max_requests=config.rate_limit_max_requests,
        ),
        sessions=SessionStore(redis_client, ttl_seconds=config.session_ttl_seconds),
        session_factory=SessionLocal,
        verification=VerificationClient(
            account_sid=config.twilio_account_sid,
            auth_token=config.twilio_auth_token,
            service_sid=config.twilio_verify_service_sid,
            base_url=config.twilio_verify_base_url,
            timeout_seconds=config.collaborator_timeout_seconds,
        ),
        stations=StationClient(config.station_service_url, timeout_seconds=config.collaborator_timeout_seconds),
        journeys=JourneyClient(config.journey_matcher_url, timeout_seconds=config.collaborator_timeout_seconds),
        auth_token=config.twilio_auth_token,
        terms_url=config.terms_url,
        signature_validation_enabled=config.signature_validation_enabled,
    )


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get(webhook.CORRELATION_HEADER) or str(uuid4())
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers[webhook.CORRELATION_HEADER] = correlation_id
    return response


@app.on_event("startup")
async def start_pipeline() -> None:
    app.state.redis = create_redis(settings)
    app.state.pipeline = build_pipeline(settings, app.state.redis)
    logger.info("Webhook pipeline ready", extra={"context": {"environment": settings.environment}})


@app.on_event("shutdown")
async def stop_pipeline() -> None:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        return
    await pipeline.verification.aclose()
    await pipeline.stations.aclose()
    await pipeline.journeys.aclose()
    await app.state.redis.aclose()
    app.state.pipeline = None


@app.get("/health")
async def health():
    return {"status": "ok"}
