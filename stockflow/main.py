import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stockflow.clients.remoteagent_client import PollingTimeout, RemoteAgentError, RequestCancelled
from stockflow.config import config, ConfigurationError, InvalidRequest
from stockflow.routes import agent_files, agents, chat, news, remoteagent, stocks, web

logging.basicConfig(
    level=logging.DEBUG if config.DEBUG else config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="StockFlow API",
    description="Market data and remote agent backend for the StockFlow dashboard",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-ID"],
)

for module in (stocks, news, remoteagent, agents, agent_files, chat, web):
    app.include_router(module.router)


# ---------- ERROR MAPPING ----------
def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"{request.url.path}: {exc}")
    return _error(500, f"{exc}. Set them in the environment or a .env file.", missing=exc.missing)


@app.exception_handler(PollingTimeout)
async def polling_timeout_handler(request: Request, exc: PollingTimeout):
    logger.warning(f"{request.url.path}: {exc.message}")
    return _error(
        504,
        "Your request is still processing. Please try again later.",
        responseId=exc.job_id,
        status=exc.last_status.value if exc.last_status else None,
    )


@app.exception_handler(RequestCancelled)
async def request_cancelled_handler(request: Request, exc: RequestCancelled):
    logger.info(f"{request.url.path}: {exc.message}")
    return _error(499, exc.message)


@app.exception_handler(RemoteAgentError)
async def remote_agent_error_handler(request: Request, exc: RemoteAgentError):
    logger.error(f"{request.url.path}: agent platform error ({exc.status_code}): {exc.message}")
    # a 2xx carrying an unusable body is a bad upstream reply
    status_code = exc.status_code or 500
    if status_code < 400:
        status_code = 502
    return _error(status_code, exc.message)


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return _error(400, str(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.url.path}: unexpected error", exc_info=exc)
    return _error(500, "Sorry, something went wrong while processing your request.", details=str(exc))


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "StockFlow API is running!",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stockflow.main:app", host="0.0.0.0", port=8000, reload=config.DEBUG)
