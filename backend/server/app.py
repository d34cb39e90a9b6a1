"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware and logging
- Initialize shared resources (adapter factory, call initiators)
- Register routes
"""

from __future__ import annotations

from typing import Mapping

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.factory import AdapterFactory
from config import AppConfig
from observability.logger import configure_logging
from orchestrator.enums.telephony import CallerService
from server.routes import register_routes
from telephony.calls import CallInitiator, build_initiators


def create_app(
    config: AppConfig | None = None,
    *,
    call_initiators: Mapping[CallerService, CallInitiator] | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every collaborator can be injected, which is how tests swap providers
    for fakes; by default everything is built from the environment.
    """
    config = config or AppConfig.load_from_env()
    configure_logging(level=config.log_level)

    app = FastAPI(title="Call Orchestrator API")

    app.state.config = config
    app.state.adapter_factory = adapter_factory or AdapterFactory(config)
    app.state.call_initiators = dict(call_initiators or build_initiators(config))

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app
