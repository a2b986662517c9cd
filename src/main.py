import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, load_config
from errors import AnalyzeError, BadRequest
from logging_setup import setup_logging
from oracle import TarotOracle
from schemas import AnalyzeRequest, AnalyzeResponse, ErrorResponse

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def get_oracle(request: Request) -> TarotOracle:
    """
    Return the process-wide oracle, building it on first use.

    Raises ConfigurationError when the API keys are missing; nothing is cached
    in that case so the next request checks again.
    """
    state = request.app.state
    if state.oracle is None:
        state.oracle = TarotOracle.from_settings(state.settings)
    return state.oracle


def create_app(settings: Optional[Settings] = None, oracle: Optional[TarotOracle] = None) -> FastAPI:
    settings = settings or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        yield

    app = FastAPI(
        title="PsyTarot API",
        description="Reads the user's state as a tarot card and illustrates it",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.oracle = oracle

    # CORS middleware for cross-origin form submission
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request body: %s", exc.errors())
        return error_response("Invalid request body", 400)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.options("/api/analyze")
    async def analyze_options():
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post(
        "/api/analyze",
        response_model=AnalyzeResponse,
        response_model_exclude_none=True,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    )
    def analyze(request: Request, body: Optional[AnalyzeRequest] = None):
        """
        Read the user's text as a tarot card.

        Returns the card name, a short interpretation and an image URL (a data URI
        or a remote URL). Every failure is returned as JSON {"error": ...}.
        """
        try:
            if body is None:
                raise BadRequest("Invalid request body")
            oracle = get_oracle(request)
            return oracle.handle(body.text)
        except AnalyzeError as e:
            return error_response(e.message, e.status_code)
        except Exception:
            logger.exception("Unhandled error in /api/analyze")
            return error_response("Internal Server Error", 500)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
