"""
FastAPI Local Server
Provides the REST API for printer listing and batch print submission
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from . import __version__
from .models import JobResult, PrintJob, validation_message

logger = logging.getLogger(__name__)


async def read_print_request(request: Request) -> Dict[str, Any]:
    """Read ``session_id`` and ``jobs`` from a JSON, multipart or URL-encoded body"""
    content_type = request.headers.get('content-type', '').lower()

    if 'application/json' in content_type:
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid JSON body: {e}")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Request body must be an object")
        return body

    form = await request.form()
    body = {}
    for field in ('session_id', 'jobs'):
        value = form.get(field)
        if isinstance(value, UploadFile):
            data = await value.read()
            # An uploaded document is carried as base64, like inline session content
            value = base64.b64encode(data).decode('ascii') if field == 'session_id' else data.decode('utf-8')
        body[field] = value
    return body


def parse_jobs(raw_jobs: Any, session_content: Optional[str] = None) -> List[Union[PrintJob, JobResult]]:
    """Build print jobs; batch-level content applies to jobs without their own.

    Only a missing or non-array ``jobs`` rejects the request. An invalid item
    becomes a failed JobResult at its own position and its siblings still run.
    """
    if raw_jobs is None:
        raise HTTPException(status_code=400, detail="Missing 'jobs' field")

    if isinstance(raw_jobs, (str, bytes)):
        try:
            raw_jobs = json.loads(raw_jobs)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"'jobs' is not valid JSON: {e}")

    if not isinstance(raw_jobs, list):
        raise HTTPException(status_code=400, detail="'jobs' must be an array")

    jobs = []
    for index, item in enumerate(raw_jobs):
        if not isinstance(item, dict):
            logger.warning(f"Job {index} is not an object")
            jobs.append(JobResult(success=False, error="job must be an object"))
            continue
        if session_content and not (item.get('content') or item.get('inline_content')):
            item = {**item, 'inline_content': session_content}
        try:
            jobs.append(PrintJob.model_validate(item))
        except ValidationError as e:
            message = validation_message(e)
            logger.warning(f"Job {index} is invalid: {message}")
            jobs.append(JobResult(success=False, error=message))
    return jobs


def create_api_app(job_manager, session_context, enable_cors: bool = True) -> FastAPI:
    """Create FastAPI application with all endpoints"""

    app = FastAPI(
        title="Print Server API",
        description="Local print server",
        version=__version__
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["Content-Type"],
        )

    @app.get("/", summary="Health Check")
    async def root():
        return {
            "service": "Print Server",
            "status": "running",
            "version": __version__,
            "ui_session": session_context.registered,
        }

    @app.get("/printers", summary="List Printers")
    async def get_printers():
        """Printer names, or null until a UI session has registered"""
        return await session_context.get_printers()

    @app.post("/print", summary="Print a Batch of Jobs")
    async def print_jobs(request: Request, detail: bool = False):
        """Print every job concurrently; answers one entry per job in submission order"""
        body = await read_print_request(request)
        jobs = parse_jobs(body.get('jobs'), body.get('session_id'))

        logger.info(f"Received print request with {len(jobs)} jobs")
        results = await job_manager.run_batch(jobs)

        if detail:
            return [result.model_dump() for result in results]
        return [result.success for result in results]

    return app
