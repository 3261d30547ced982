"""FastAPI app that accepts form submissions and appends them to Google Sheets."""
from __future__ import annotations
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import config, folders, sheets
from .folders import FolderError, FolderResolver
from .models import SubmissionError, parse_submission
from .service import SheetService

logger = logging.getLogger("uvicorn.error")

GENERIC_ERROR = "An error occurred while processing the request"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
        stream=sys.stdout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv()
    settings = config.Settings.from_env()
    _configure_logging(settings.log_level)

    # Bad credentials or folder config abort startup.
    creds = config.load_credentials(settings)
    app.state.settings = settings
    app.state.resolver = folders.build_resolver(settings)
    app.state.service = SheetService(sheets.SheetsClient.from_credentials(creds))
    logger.info("sheets client ready | service_account=%s", creds.get("client_email"))
    yield
    app.state.service = None


app = FastAPI(title="Sheet Collector", lifespan=lifespan)


def get_settings(request: Request) -> config.Settings:
    return request.app.state.settings


def get_resolver(request: Request) -> FolderResolver:
    return request.app.state.resolver


def get_service(request: Request) -> SheetService:
    return request.app.state.service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"statusCode": status_code, "message": message})


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError):
    logger.warning("invalid request | %s %s | %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request body")


@app.exception_handler(SubmissionError)
@app.exception_handler(FolderError)
async def _bad_submission(request: Request, exc: ValueError):
    logger.warning("rejected | %s | %s", request.url.path, exc)
    return _error(400, str(exc))


@app.post("/google-sheets/append-to-sheet")
def append_to_sheet(
    payload: Any = Body(None),
    folder_type: Optional[str] = Query(None, alias="folderType"),
    resolver: FolderResolver = Depends(get_resolver),
    service: SheetService = Depends(get_service),
):
    submission = parse_submission(payload)
    folder_id = resolver.resolve(folder_type or submission.folder_type, submission.folder_id)

    try:
        return service.process_submission(submission, folder_id)
    except Exception as e:
        logger.exception("Error handling the request: %s", e)
        return _error(500, GENERIC_ERROR)


@app.post("/google-sheets/append-to-workbook")
def append_to_workbook(
    payload: Any = Body(None),
    settings: config.Settings = Depends(get_settings),
    service: SheetService = Depends(get_service),
):
    submission = parse_submission(payload, require_username=False)
    spreadsheet_id = folders.resolve_workbook(settings, submission.image_type)

    try:
        return service.append_to_workbook(submission, spreadsheet_id)
    except Exception as e:
        logger.exception("Error handling the request: %s", e)
        return _error(500, GENERIC_ERROR)


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
