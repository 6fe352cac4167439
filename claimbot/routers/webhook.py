from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from claimbot.config import settings
from claimbot.logging_config import get_logger
from claimbot.schemas.webhook import ErrorResponse
from claimbot.services.errors import RateLimitError
from claimbot.services.pipeline import InboundRequest, PipelineResponse, WebhookPipeline
from claimbot.services.signature_service import reconstruct_request_url

logger = get_logger("webhook")

router = APIRouter()

CORRELATION_HEADER = "X-Correlation-ID"


def get_pipeline(request: Request) -> WebhookPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return pipeline


def get_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if existing:
        return existing
    return request.headers.get(CORRELATION_HEADER) or str(uuid4())


def _request_url(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return reconstruct_request_url(
        scheme=request.url.scheme,
        host=request.headers.get("host") or request.url.netloc,
        path_with_query=path,
        forwarded_proto=request.headers.get("X-Forwarded-Proto"),
        forwarded_host=request.headers.get("X-Forwarded-Host"),
        public_base_url=settings.public_base_url,
    )


def _to_http_response(result: PipelineResponse, correlation_id: str) -> Response:
    headers = {**result.headers, CORRELATION_HEADER: correlation_id}
    if not result.is_error:
        return Response(content=result.body, status_code=result.status_code, media_type=result.media_type, headers=headers)

    payload = ErrorResponse(
        error=result.error.error,
        message=result.body,
        correlation_id=correlation_id,
        retry_after=result.error.retry_after if isinstance(result.error, RateLimitError) else None,
    )
    return JSONResponse(
        status_code=result.status_code,
        content=payload.model_dump(exclude_none=True),
        headers=headers,
    )


@router.post("/webhook/twilio")
async def twilio_webhook(request: Request, pipeline: WebhookPipeline = Depends(get_pipeline)):
    """Inbound message webhook. Replies with TwiML."""
    correlation_id = get_correlation_id(request)
    form = await request.form()
    params = {key: value for key, value in form.items() if isinstance(value, str)}

    result = await pipeline.handle(
        InboundRequest(
            url=_request_url(request),
            params=params,
            signature=request.headers.get("X-Twilio-Signature"),
            correlation_id=correlation_id,
        )
    )
    return _to_http_response(result, correlation_id)
