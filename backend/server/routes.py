"""
Route registration.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire a SessionGateway to each telephony websocket
- Pull dependencies from app.state
"""

from __future__ import annotations

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from observability.logger import log_event
from orchestrator.enums.mode import SessionMode
from session.gateway import SessionGateway
from session.legs import TelephonyLeg, TwilioLeg, VonageLeg
from telephony.calls import (
    CallInitiationError,
    CallValidationError,
    validate_call_request,
)
from telephony.dial_plan import answer_ncco


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Session-creation API
    # ------------------------------------------------------------------

    @app.get("/call")
    async def create_call(request: Request) -> JSONResponse: # pyright: ignore[reportUnusedFunction]
        try:
            call = validate_call_request(request.query_params)
        except CallValidationError as exc:
            log_event({
                "event_type": "CALL_REQUEST_REJECTED",
                "level": "WARNING",
                "message": str(exc),
            })
            return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})

        initiator = app.state.call_initiators[call.caller_service]
        try:
            call_id = await initiator.place_call(call)
        except CallInitiationError as exc:
            log_event({
                "event_type": "CALL_INITIATION_FAILED",
                "level": "ERROR",
                "provider": exc.provider,
                "message": exc.detail,
            })
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "message": "Failed to initiate call",
                    "error": exc.detail,
                },
            )

        effective_llm = call.effective_llm
        return JSONResponse(content={
            "success": True,
            "message": f"{call.caller_service.value.capitalize()} call initiated",
            "callId": call_id,
            "callerservice": call.caller_service.value,
            "pipeline": call.pipeline.value,
            "llm": effective_llm.value if effective_llm else "default",
        })

    @app.get("/vonage/answer")
    async def vonage_answer() -> list[dict[str, str]]: # pyright: ignore[reportUnusedFunction]
        return answer_ncco()

    # ------------------------------------------------------------------
    # Telephony media streams
    # ------------------------------------------------------------------

    @app.websocket("/custom-stream")
    async def twilio_custom_stream(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        await _run_gateway(app, TwilioLeg(ws), SessionMode.MANAGED)

    @app.websocket("/elevenlabs-stream")
    async def twilio_elevenlabs_stream(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        await _run_gateway(app, TwilioLeg(ws), SessionMode.DELEGATED)

    @app.websocket("/vonage-custom-stream")
    async def vonage_custom_stream(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        await _run_gateway(app, VonageLeg(ws, ws.query_params), SessionMode.MANAGED)

    @app.websocket("/vonage-elevenlabs-stream")
    async def vonage_elevenlabs_stream(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        await _run_gateway(app, VonageLeg(ws, ws.query_params), SessionMode.DELEGATED)


async def _run_gateway(app: FastAPI, leg: TelephonyLeg, mode: SessionMode) -> None:
    log_event({
        "event_type": "LEG_CONNECTED",
        "provider": leg.provider,
        "mode": mode.value,
    })
    gateway = SessionGateway(
        leg=leg,
        mode=mode,
        factory=app.state.adapter_factory,
    )
    await gateway.run()
