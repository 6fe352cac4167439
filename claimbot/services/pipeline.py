"""Inbound webhook pipeline.

authenticate -> validate -> claim message id -> rate limit -> load session
-> dispatch -> commit business writes and outbox events -> render
-> persist session -> mark processed

Once the commit succeeds the message id stays claimed, so a store failure
after that point is logged and the rendered reply is still returned.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Mapping, Optional

from sqlalchemy.orm import Session

from claimbot.logging_config import LoggerAdapter, get_logger, with_correlation_id
from claimbot.schemas.webhook import InboundMessage, missing_required_field
from claimbot.services import outbox_service
from claimbot.services.errors import (
    AuthenticationError,
    RateLimitError,
    StoreUnavailableError,
    UnhandledHandlerError,
    ValidationError,
    WebhookError,
)
from claimbot.services.idempotency_service import IdempotencyGuard
from claimbot.services.journey_service import JourneyClient
from claimbot.services.message_formatter import ALREADY_PROCESSING, GENERIC_APOLOGY, render_twiml
from claimbot.services.rate_limit_service import RateLimiter
from claimbot.services.session_service import ConversationSession, SessionStore
from claimbot.services.signature_service import verify_twilio_signature
from claimbot.services.state_machine import ConversationEngine, ExternalContext, HandlerResult
from claimbot.services.station_service import StationClient
from claimbot.services.user_service import UserRepository
from claimbot.services.verification_service import VerificationClient

logger = get_logger("pipeline")


@dataclass
class InboundRequest:
    url: str
    params: Mapping[str, str]
    signature: Optional[str]
    correlation_id: str


@dataclass
class PipelineResponse:
    status_code: int
    body: str
    media_type: str = "application/xml"
    error: Optional[WebhookError] = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.error is not None


class WebhookPipeline:
    def __init__(
        self,
        *,
        engine: ConversationEngine,
        idempotency: IdempotencyGuard,
        rate_limiter: RateLimiter,
        sessions: SessionStore,
        session_factory: Callable[[], Session],
        verification: VerificationClient,
        stations: StationClient,
        journeys: JourneyClient,
        auth_token: Optional[str],
        terms_url: str,
        signature_validation_enabled: bool = True,
        today: Optional[Callable[[], date]] = None,
    ):
        self.engine = engine
        self.idempotency = idempotency
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self.session_factory = session_factory
        self.verification = verification
        self.stations = stations
        self.journeys = journeys
        self.auth_token = auth_token
        self.terms_url = terms_url
        self.signature_validation_enabled = signature_validation_enabled
        self._today = today or date.today

    async def handle(self, request: InboundRequest) -> PipelineResponse:
        log = with_correlation_id(logger, request.correlation_id)
        try:
            return await self._process(request, log)
        except WebhookError as exc:
            log.warning(f"Webhook rejected: {exc}", context={"status": exc.status_code})
            return self._error_response(exc)
        except UnhandledHandlerError as exc:
            log.error(
                f"Handler raised {type(exc.cause).__name__}",
                context={"state": exc.state},
                exc_info=(type(exc.cause), exc.cause, exc.cause.__traceback__),
            )
            return PipelineResponse(status_code=500, body=render_twiml(GENERIC_APOLOGY))
        except Exception:
            log.exception("Unhandled error while processing webhook")
            return PipelineResponse(status_code=500, body=render_twiml(GENERIC_APOLOGY))

    async def _process(self, request: InboundRequest, log: LoggerAdapter) -> PipelineResponse:
        self._authenticate(request)

        missing = missing_required_field(request.params)
        if missing:
            raise ValidationError(missing)
        message = InboundMessage.from_form(request.params)

        if not await self.idempotency.claim(message.message_sid):
            log.info("Duplicate delivery", context={"message_sid": message.message_sid})
            cached = await self.idempotency.cached_response(message.message_sid)
            return PipelineResponse(status_code=200, body=cached or render_twiml(ALREADY_PROCESSING))

        try:
            session, result = await self._dispatch(message, request.correlation_id, log)
        except BaseException:
            await self.idempotency.release(message.message_sid)
            raise

        # Business writes are committed from here on; the claim is never released.
        envelope = render_twiml(result.response)
        await self._persist_session(message, session, result, log)
        try:
            await self.idempotency.mark_processed(message.message_sid, envelope)
        except StoreUnavailableError as exc:
            log.error(
                f"Failed to record processed message: {exc}",
                context={"message_sid": message.message_sid},
            )
        return PipelineResponse(status_code=200, body=envelope)

    def _authenticate(self, request: InboundRequest) -> None:
        if not self.signature_validation_enabled:
            return
        if not request.signature:
            raise AuthenticationError("Missing transport signature header")
        if not verify_twilio_signature(self.auth_token, request.url, request.params, request.signature):
            raise AuthenticationError("Invalid transport signature")

    async def _dispatch(
        self, message: InboundMessage, correlation_id: str, log: LoggerAdapter
    ) -> tuple[ConversationSession, HandlerResult]:
        """Run the transition and commit its business writes and outbox events."""
        decision = await self.rate_limiter.admit(message.sender)
        if not decision.allowed:
            raise RateLimitError(decision.retry_after_seconds)

        session = await self.sessions.load(message.sender)
        log.info(
            "Dispatching message",
            context={"message_sid": message.message_sid, "state": session.state.value},
        )

        db = self.session_factory()
        try:
            external = ExternalContext(
                phone_number=message.sender,
                message_sid=message.message_sid,
                correlation_id=correlation_id,
                users=UserRepository(db),
                verification=self.verification,
                stations=self.stations,
                journeys=self.journeys,
                terms_url=self.terms_url,
                media=message.media,
                today=self._today(),
            )
            result = await self.engine.transition(session.state, message.body, session.data, external)
            self._append_events(db, result)
            db.commit()
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

        return session, result

    async def _persist_session(
        self,
        message: InboundMessage,
        session: ConversationSession,
        result: HandlerResult,
        log: LoggerAdapter,
    ) -> None:
        try:
            if result.ends_conversation:
                await self.sessions.delete(message.sender)
            else:
                data = self.engine.next_session_data(session.state, session.data, result)
                await self.sessions.save(message.sender, result.next_state, data)
        except StoreUnavailableError as exc:
            log.error(
                f"Session not persisted after commit: {exc}",
                context={"message_sid": message.message_sid, "state": session.state.value},
            )
            return

        log.info(
            "Message processed",
            context={
                "message_sid": message.message_sid,
                "from_state": session.state.value,
                "to_state": result.next_state.value if result.next_state else None,
                "events": len(result.events),
            },
        )

    @staticmethod
    def _append_events(db: Session, result: HandlerResult) -> None:
        for draft in result.events:
            outbox_service.append_event(
                db,
                aggregate_id=draft.aggregate_id,
                aggregate_type=draft.aggregate_type,
                event_type=draft.event_type,
                payload=draft.payload,
            )

    @staticmethod
    def _error_response(exc: WebhookError) -> PipelineResponse:
        headers = {}
        if isinstance(exc, RateLimitError):
            headers["Retry-After"] = str(exc.retry_after)
        return PipelineResponse(status_code=exc.status_code, body=exc.client_message, error=exc, headers=headers)


