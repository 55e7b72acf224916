"""
Web App - FastAPI server hosting the Study Buddy router.

Endpoints:
    GET  /health                  - liveness plus the configured model
    GET  /api/languages           - supported response languages
    POST /api/study-buddy-chat    - chat (event stream) and generation actions
    POST /api/transcribe          - audio transcription

Run with:
    python -m study_buddy.interfaces.web_app
"""

import argparse
import json
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from study_buddy import __version__
from study_buddy.config import (
    CHAT_PATH,
    DEFAULT_HOST,
    DEFAULT_PORT,
    LANGUAGES,
    TRANSCRIBE_PATH,
    Settings,
)
from study_buddy.errors import ErrorKind, StudyBuddyError
from study_buddy.logging_utils import setup_logging
from study_buddy.models import Action, ActionRequest
from study_buddy.router.action_router import ActionRouter, ClientFactory, error_response
from study_buddy.router.transcription import Transcriber

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        settings: Validated settings; loaded from the environment when omitted
        client_factory: Builds upstream httpx clients (tests inject a mock)

    Raises:
        ConfigurationMissingError: If settings come from an incomplete environment
    """
    settings = settings or Settings.from_env()
    router = ActionRouter(settings, client_factory)
    transcriber = Transcriber(settings, client_factory)

    app = FastAPI(
        title="Study Buddy",
        description="AI tutor chat and study material generation",
        version=__version__,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StudyBuddyError)
    async def study_buddy_error(request: Request, exc: StudyBuddyError):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {
                "error": "Invalid request",
                "kind": ErrorKind.INVALID_REQUEST.value,
                "detail": jsonable_encoder(exc.errors()),
            },
            status_code=422,
        )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "model": settings.model,
            "actions": [action.value for action in Action],
        }

    @app.get("/api/languages")
    async def languages():
        return {
            "languages": [
                {
                    "code": code,
                    "name": name,
                    "native_name": native_name,
                    "is_sign_language": is_sign_language,
                }
                for code, (name, native_name, is_sign_language) in LANGUAGES.items()
            ]
        }

    @app.post(CHAT_PATH)
    async def study_buddy_chat(request: ActionRequest):
        return await router.dispatch(request)

    @app.post(TRANSCRIBE_PATH)
    async def transcribe(request: Request):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        return await transcriber.dispatch(request.headers.get("Authorization"), body)

    return app


def main():
    """Serve the app with uvicorn."""
    parser = argparse.ArgumentParser(description="Run the Study Buddy server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level.upper())
    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
