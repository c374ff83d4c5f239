"""HTTPS transport for the admission webhook.

This module provides a small FastAPI application exposing:

- ``POST /mutate``: AdmissionReview in, AdmissionReview out
- ``GET /healthz``: liveness probe
- ``GET /readyz``: readiness probe

and a helper that runs it under uvicorn with the configured TLS key pair.
uvicorn installs its own SIGINT/SIGTERM handlers and drains in-flight
requests before exiting.
"""

import asyncio
import logging
import ssl
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ndots_webhook import __version__
from ndots_webhook.admission.handler import AdmissionHandler
from ndots_webhook.core.errors import AdmissionRequestError

if TYPE_CHECKING:
    from ndots_webhook.core.config import WebhookConfig

logger = logging.getLogger(__name__)

# TLS 1.2 suites; TLS 1.3 suites are not configurable through OpenSSL cipher strings
TLS_CIPHERS = "ECDHE-ECDSA-AES256-GCM-SHA384:ECDHE-RSA-AES256-GCM-SHA384:ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256"

# Drain window for in-flight requests on shutdown
SHUTDOWN_GRACE_SECONDS = 30


def create_app(handler: AdmissionHandler, request_timeout: Optional[float] = None) -> FastAPI:
    """Create the FastAPI app serving the admission endpoint and probes.

    Args:
        handler: AdmissionHandler that processes review bodies
        request_timeout: Seconds allowed for handling one review; a slower
                         review is answered with 504 (None disables the limit)

    Returns:
        Configured FastAPI application

    Example:
        >>> app = create_app(AdmissionHandler(engine))
        >>> run_server(app, cfg)
    """
    app = FastAPI(title="ndots admission webhook", version=__version__)
    app.state.handler = handler

    @app.post("/mutate")
    async def mutate(request: Request):
        """Run one AdmissionReview through the handler.

        The handler may block on a namespace lookup and runs in the
        loop's default executor.
        """
        body = await request.body()
        try:
            review = await asyncio.wait_for(
                asyncio.get_running_loop().run_in_executor(None, app.state.handler.handle, body),
                timeout=request_timeout,
            )
        except AdmissionRequestError as e:
            return PlainTextResponse(e.message, status_code=400)
        except asyncio.TimeoutError:
            logger.error(f"admission request exceeded {request_timeout}s")
            return PlainTextResponse("request timed out", status_code=504)
        except Exception as e:
            logger.error(f"failed to marshal response: {e}")
            return PlainTextResponse("failed to marshal response", status_code=500)
        return JSONResponse(content=review)

    @app.get("/healthz")
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/readyz")
    async def readyz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    return app


def run_server(app: FastAPI, config: "WebhookConfig", host: str = "0.0.0.0") -> None:
    """Serve ``app`` over HTTPS until interrupted.

    The configured timeout closes idle keep-alive connections; per-request
    handling time is bounded by create_app(request_timeout=...). On SIGTERM,
    in-flight requests get SHUTDOWN_GRACE_SECONDS to finish.

    Args:
        app: Application from create_app()
        config: Webhook configuration (port, TLS paths, timeout)
        host: Listen address (default: all interfaces)
    """
    import uvicorn

    uvicorn_config = uvicorn.Config(
        app,
        host=host,
        port=config.port,
        ssl_certfile=config.tls_cert_path,
        ssl_keyfile=config.tls_key_path,
        ssl_version=ssl.PROTOCOL_TLS_SERVER,
        ssl_ciphers=TLS_CIPHERS,
        timeout_keep_alive=max(1, int(config.timeout)),
        timeout_graceful_shutdown=SHUTDOWN_GRACE_SECONDS,
        log_config=None,
    )
    server = uvicorn.Server(uvicorn_config)
    logger.info("starting webhook server", extra={"port": config.port})
    server.run()
    logger.info("webhook server stopped")
