"""
Outbound call placement.

validate_call_request() turns raw query parameters into a CallRequest or
raises CallValidationError; nothing provider-side runs before it passes.

Initiators wrap every provider failure in CallInitiationError carrying the
provider's own message. There is no retry.
"""

from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping

from config import AppConfig
from observability.logger import log_event
from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.telephony import CallerService, Pipeline
from telephony.dial_plan import VONAGE_CONTENT_TYPE, build_twiml, stream_url


_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")
_PHONE_NUMBER = re.compile(r"^\+?\d{6,15}$")


# -------------------------
# Exceptions
# -------------------------

class CallValidationError(ValueError):
    """Request rejected before any provider call."""


class CallInitiationError(RuntimeError):
    """Provider refused or failed to place the call."""

    def __init__(self, provider: str, detail: str) -> None:
        super().__init__(f"{provider}: {detail}")
        self.provider = provider
        self.detail = detail


# -------------------------
# Request
# -------------------------

@dataclass(frozen=True)
class CallRequest:
    to_number: str
    caller_service: CallerService
    pipeline: Pipeline
    llm: LLMBackend | None = None

    @property
    def effective_llm(self) -> LLMBackend | None:
        """Backend the managed pipeline will use; None for the delegated agent."""
        if self.pipeline is Pipeline.ELEVENLABS:
            return None
        return self.llm or LLMBackend.default()


def validate_call_request(params: Mapping[str, str | None]) -> CallRequest:
    """
    Raises:
        CallValidationError naming the first offending parameter.
    """
    raw_to = (params.get("toNumber") or "").strip()
    raw_service = (params.get("callerservice") or "").strip()
    raw_pipeline = (params.get("pipeline") or "").strip()
    raw_llm = (params.get("llm") or "").strip()

    if not raw_service or not raw_pipeline or not raw_to:
        raise CallValidationError(
            "Missing required parameters: callerservice, pipeline, toNumber"
        )

    try:
        caller_service = CallerService(raw_service)
    except ValueError as exc:
        raise CallValidationError('callerservice must be either "twilio" or "vonage"') from exc

    try:
        pipeline = Pipeline(raw_pipeline)
    except ValueError as exc:
        raise CallValidationError('pipeline must be either "new_custom" or "elevenlabs"') from exc

    llm: LLMBackend | None = None
    if raw_llm:
        try:
            llm = LLMBackend(raw_llm)
        except ValueError as exc:
            raise CallValidationError('llm must be either "mistral" or "openai"') from exc

    if not _PHONE_NUMBER.match(_PHONE_SEPARATORS.sub("", raw_to)):
        raise CallValidationError("toNumber must be a phone number, e.g. +14155550100")

    return CallRequest(
        to_number=raw_to,
        caller_service=caller_service,
        pipeline=pipeline,
        llm=llm,
    )


# -------------------------
# Initiators
# -------------------------

class CallInitiator(ABC):
    """Places one outbound call through a telephony provider."""

    provider: str

    @abstractmethod
    async def place_call(self, request: CallRequest) -> str:
        """
        Returns the provider's call identifier.

        Raises:
            CallInitiationError on any provider or configuration failure.
        """
        raise NotImplementedError


def _server_url(config: AppConfig, provider: str) -> str:
    if not config.server_url:
        raise CallInitiationError(provider, "SERVER_URL environment variable not set")
    return config.server_url


class TwilioCallInitiator(CallInitiator):
    """Twilio REST calls.create with inline TwiML."""

    provider = "twilio"

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    async def place_call(self, request: CallRequest) -> str:
        url = stream_url(
            _server_url(self._config, self.provider),
            request.caller_service,
            request.pipeline,
        )
        twiml = build_twiml(url, request.effective_llm)

        try:
            from twilio.rest import Client  # pylint: disable=import-outside-toplevel

            client = Client(self._config.twilio_account_sid, self._config.twilio_auth_token)
            call = await asyncio.to_thread(
                client.calls.create,
                to=request.to_number,
                from_=self._config.twilio_from_number,
                twiml=twiml,
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise CallInitiationError(self.provider, str(exc)) from exc

        log_event({
            "event_type": "CALL_INITIATED",
            "provider": self.provider,
            "call_id": call.sid,
            "pipeline": request.pipeline.value,
        })
        return call.sid


class VonageCallInitiator(CallInitiator):
    """Vonage Voice API create_call with a websocket connect NCCO."""

    provider = "vonage"

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    async def place_call(self, request: CallRequest) -> str:
        url = stream_url(
            _server_url(self._config, self.provider),
            request.caller_service,
            request.pipeline,
            request.effective_llm,
        )

        try:
            # pylint: disable=import-outside-toplevel
            from vonage import Auth, Vonage
            from vonage_voice import Connect, CreateCallRequest, WebsocketEndpoint

            client = Vonage(Auth(
                application_id=self._config.vonage_application_id,
                private_key=self._config.vonage_private_key_path,
            ))
            call_request = CreateCallRequest(
                to=[{"type": "phone", "number": request.to_number}],
                from_={"type": "phone", "number": self._config.vonage_number},
                ncco=[Connect(endpoint=[WebsocketEndpoint(uri=url, contentType=VONAGE_CONTENT_TYPE)])],
            )
            response = await asyncio.to_thread(client.voice.create_call, call_request)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise CallInitiationError(self.provider, str(exc)) from exc

        log_event({
            "event_type": "CALL_INITIATED",
            "provider": self.provider,
            "call_id": response.uuid,
            "pipeline": request.pipeline.value,
        })
        return response.uuid


def build_initiators(config: AppConfig) -> dict[CallerService, CallInitiator]:
    return {
        CallerService.TWILIO: TwilioCallInitiator(config),
        CallerService.VONAGE: VonageCallInitiator(config),
    }
