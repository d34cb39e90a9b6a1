"""
Session gateway.

Responsibilities:
- One gateway per telephony websocket
- Reads leg events and routes them to the call session
- Builds the session (managed or delegated) on the leg's started event
- Guarantees session teardown on stop, disconnect or error

NOT responsible for:
- Audio formats or pacing (leg + session)
- Any conversation logic (session)
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import uuid4

from adapters.factory import AdapterFactory
from constants import SESSION_ID_HEX_CHARS, SESSION_ID_PREFIX
from observability.logger import log_event
from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.mode import SessionMode
from orchestrator.events import LegEvent, LegMedia, LegStarted, LegStopped
from session.call_session import CallSession, ManagedCallSession
from session.delegated_session import DelegatedCallSession
from session.legs import TelephonyLeg


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_session_id() -> str:
    return f"{SESSION_ID_PREFIX}{uuid4().hex[:SESSION_ID_HEX_CHARS]}"


def resolve_backend(params: Mapping[str, Any], *, session_id: str | None = None) -> LLMBackend:
    """Backend from start params; unknown or missing values fall back to the default."""
    raw = params.get("llm")
    if raw is None or raw == "":
        return LLMBackend.default()

    try:
        return LLMBackend(str(raw).strip().lower())
    except ValueError:
        log_event({
            "event_type": "LLM_BACKEND_UNKNOWN",
            "level": "WARNING",
            "session_id": session_id,
            "requested": str(raw),
            "fallback": LLMBackend.default().value,
        })
        return LLMBackend.default()


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one telephony leg == at most one call session."""

    def __init__(
        self,
        *,
        leg: TelephonyLeg,
        mode: SessionMode,
        factory: AdapterFactory,
    ) -> None:
        self.leg = leg
        self.mode = mode
        self._factory = factory
        self.session: CallSession | None = None
        self._early_media = 0

    async def run(self) -> None:
        """Drive the leg until it stops or disconnects, then tear down."""
        reason = "leg_disconnected"
        try:
            async for event in self.leg.events():
                await self.on_leg_event(event)
                if isinstance(event, LegStopped):
                    reason = "leg_stopped"
                    break

        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = "leg_error"
            log_event({
                "event_type": "LEG_FATAL_ERROR",
                "level": "ERROR",
                "session_id": self.session.session_id if self.session else None,
                "provider": self.leg.provider,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            await self.shutdown(reason=reason)

    async def on_leg_event(self, event: LegEvent) -> None:
        if isinstance(event, LegStarted):
            await self._on_started(event)

        elif isinstance(event, LegMedia):
            if self.session is None:
                self._early_media += 1
                if self._early_media == 1:
                    log_event({
                        "event_type": "MEDIA_BEFORE_START",
                        "level": "WARNING",
                        "provider": self.leg.provider,
                    })
                return
            await self.session.on_audio(event.payload)

        elif isinstance(event, LegStopped):
            if self.session is not None:
                await self.session.stop(reason="leg_stopped")

    async def shutdown(self, *, reason: str) -> None:
        if self.session is not None:
            await self.session.stop(reason=reason)
        await self.leg.close()

        log_event({
            "event_type": "LEG_CLOSED",
            "session_id": self.session.session_id if self.session else None,
            "provider": self.leg.provider,
            "reason": reason,
        })

    # ------------------------------------------------------------------
    # Session construction
    # ------------------------------------------------------------------

    async def _on_started(self, event: LegStarted) -> None:
        if self.session is not None:
            log_event({
                "event_type": "LEG_DUPLICATE_START",
                "level": "WARNING",
                "session_id": self.session.session_id,
            })
            return

        session_id = event.stream_id or _new_session_id()
        backend = resolve_backend(event.params, session_id=session_id)

        try:
            self.session = self._build_session(session_id, backend)
        except RuntimeError as exc:
            log_event({
                "event_type": "SESSION_BUILD_FAILED",
                "level": "ERROR",
                "session_id": session_id,
                "mode": self.mode.value,
                "message": str(exc),
            })
            await self.leg.close()
            return

        log_event({
            "event_type": "SESSION_CREATED",
            "session_id": session_id,
            "mode": self.mode.value,
            "provider": self.leg.provider,
            "backend": backend.value,
        })
        await self.session.start()

    def _build_session(self, session_id: str, backend: LLMBackend) -> CallSession:
        if self.mode is SessionMode.DELEGATED:
            return DelegatedCallSession(
                session_id=session_id,
                leg=self.leg,
                agent=self._factory.agent(session_id=session_id),
                backend=backend,
            )

        config = self._factory.config
        return ManagedCallSession(
            session_id=session_id,
            leg=self.leg,
            stt=self._factory.stt(audio_format=self.leg.audio_format, session_id=session_id),
            llm=self._factory.llm(backend, session_id=session_id),
            tts=self._factory.tts(),
            backend=backend,
            greeting_text=config.greeting_text,
            barge_in_enabled=config.barge_in_enabled,
        )
