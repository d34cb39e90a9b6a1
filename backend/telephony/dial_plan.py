"""
Dial instructions for outbound calls.

Maps (caller service, pipeline, backend) to the websocket route the provider
should stream the call to, and renders Twilio TwiML for it. Vonage NCCOs are
built in the Vonage initiator from the same stream URL.
"""

from __future__ import annotations

from urllib.parse import urlencode

from twilio.twiml.voice_response import Connect, VoiceResponse

from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.telephony import CallerService, Pipeline


STREAM_ROUTES: dict[tuple[CallerService, Pipeline], str] = {
    (CallerService.TWILIO, Pipeline.NEW_CUSTOM): "/custom-stream",
    (CallerService.TWILIO, Pipeline.ELEVENLABS): "/elevenlabs-stream",
    (CallerService.VONAGE, Pipeline.NEW_CUSTOM): "/vonage-custom-stream",
    (CallerService.VONAGE, Pipeline.ELEVENLABS): "/vonage-elevenlabs-stream",
}

VONAGE_CONTENT_TYPE = "audio/l16;rate=8000"


def _host(server_url: str) -> str:
    for scheme in ("wss://", "ws://", "https://", "http://"):
        if server_url.startswith(scheme):
            server_url = server_url[len(scheme):]
    return server_url.rstrip("/")


def stream_url(
    server_url: str,
    caller_service: CallerService,
    pipeline: Pipeline,
    llm: LLMBackend | None = None,
) -> str:
    """
    Public websocket URL for the call's media stream.

    Vonage cannot pass custom parameters in-band, so the backend rides on
    the query string; Twilio gets it as a <Parameter> instead.
    """
    url = f"wss://{_host(server_url)}{STREAM_ROUTES[(caller_service, pipeline)]}"
    if caller_service is CallerService.VONAGE and llm is not None:
        url += "?" + urlencode({"llm": llm.value})
    return url


def build_twiml(url: str, llm: LLMBackend | None = None) -> str:
    """<Response><Connect><Stream url=...>[<Parameter name="llm"/>]</Stream></Connect></Response>"""
    response = VoiceResponse()
    connect = Connect()
    stream = connect.stream(url=url)
    if llm is not None:
        stream.parameter(name="llm", value=llm.value)
    response.append(connect)
    return str(response)


def answer_ncco() -> list[dict[str, str]]:
    """Static NCCO for the Vonage answer webhook."""
    return [
        {
            "action": "talk",
            "text": "This is a test call from Vonage. Your server is correctly returning an NCCO.",
        }
    ]
