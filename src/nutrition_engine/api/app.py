"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from nutrition_engine.api.auth import require_api_token
from nutrition_engine.api.models import (
    ClassifyRequest,
    ConfirmRequest,
    DeclineRequest,
    ResolveRequest,
    ToolCallRequest,
)
from nutrition_engine.app_logging import configure_logging
from nutrition_engine.containers import AppContainer
from nutrition_engine.errors import (
    ContractViolationError,
    GenerationError,
    PersistenceError,
    ProposalError,
    ToolError,
)
from nutrition_engine.services.tools import (
    TOOL_DEFINITIONS,
    TOOL_SPECS,
    ToolContext,
    proposal_payload,
    resolution_payload,
)

PERSISTENCE_MESSAGE = "Sorry, I couldn't save that just now. Please try again."
GENERATION_MESSAGE = "Sorry, I had trouble understanding that. Please try again."


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    protected = [Depends(require_api_token)]

    @app.exception_handler(PersistenceError)
    async def persistence_error(_: Request, exc: PersistenceError) -> JSONResponse:
        logger.exception("Persistence failure", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": PERSISTENCE_MESSAGE, "retryable": True},
        )

    @app.exception_handler(ContractViolationError)
    @app.exception_handler(GenerationError)
    async def generation_error(_: Request, exc: Exception) -> JSONResponse:
        logger.warning("Generative service failure: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": GENERATION_MESSAGE, "retryable": True},
        )

    @app.exception_handler(ProposalError)
    async def proposal_error(_: Request, exc: ProposalError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)}
        )

    @app.exception_handler(ToolError)
    async def tool_error(_: Request, exc: ToolError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/tools", dependencies=protected)
    async def list_tools() -> dict[str, object]:
        """Return the tool catalog as function-calling schemas."""
        return {
            "tools": TOOL_DEFINITIONS,
            "mutating": [spec.name for spec in TOOL_SPECS if spec.mutating],
        }

    @app.post("/tools/{name}", dependencies=protected)
    async def call_tool(
        name: str, payload: ToolCallRequest, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        context = ToolContext(
            user_id=payload.user_id,
            conversation_id=payload.conversation_id,
            timezone=payload.timezone,
        )
        result = await state_container.tool_executor.execute(
            name, payload.arguments, context
        )
        return {"tool": name, "result": result}

    @app.post("/intents/classify", dependencies=protected)
    async def classify_intent(
        payload: ClassifyRequest, request: Request
    ) -> dict[str, object]:
        """Classify a message and apply it to any pending proposal."""
        state_container: AppContainer = request.app.state.container
        intent = await state_container.intent_classifier.classify(
            payload.message,
            [message.model_dump() for message in payload.history],
        )
        response: dict[str, object] = {"intent": intent.model_dump()}
        if payload.conversation_id and payload.user_id:
            outcome = state_container.proposal_service.observe_intent(
                payload.conversation_id, payload.user_id, intent
            )
            if outcome is not None:
                response["proposal"] = proposal_payload(outcome)
        return response

    @app.post("/nutrition/resolve", dependencies=protected)
    async def resolve_nutrition(
        payload: ResolveRequest, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        resolved = await state_container.resolution_pipeline.resolve(
            payload.items, payload.portions, user_id=payload.user_id
        )
        return resolution_payload(payload.items, resolved)

    @app.post("/conversations/{conversation_id}/confirm", dependencies=protected)
    async def confirm_proposal(
        conversation_id: str, payload: ConfirmRequest, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        outcome = state_container.proposal_service.confirm(
            conversation_id, payload.user_id, payload.proposal_id
        )
        return proposal_payload(outcome)

    @app.post("/conversations/{conversation_id}/decline", dependencies=protected)
    async def decline_proposal(
        conversation_id: str, payload: DeclineRequest, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        outcome = state_container.proposal_service.decline(
            conversation_id, payload.user_id
        )
        return proposal_payload(outcome)

    return app
