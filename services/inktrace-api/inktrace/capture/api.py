import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from .. import config
from .ingestion.models import (
    CompletionRequest,
    DestinationOverride,
    JumpRequest,
    RefreshRequest,
    SessionRequest,
    SessionSubmitRequest,
    SubmitRequest,
    VectorizeRequest,
)
from .progress.completion import completed_indices
from .stroke_engine.vectorizer import vectorize
from .submission.github_contents import GitHubError
from .submission.naming import decode_codepoint_stem, split_name

logger = logging.getLogger("capture.api")

router = APIRouter(prefix="/api/v1/capture", tags=["capture"])


def _jobs(request: Request):
    return request.app.state.jobs


def _session(request: Request):
    session = _jobs(request).session
    if session is None:
        raise HTTPException(status_code=404, detail="no capture session; POST /session first")
    return session


def _session_state(request: Request) -> dict:
    session = _session(request)
    return {
        "items": session.items,
        "cursor": session.cursor,
        "current_label": session.current_label,
        "completed": sorted(session.completed),
        "pending_uploads": _jobs(request).store.pending_count(),
    }


def _remote_names(request: Request, destination: Optional[DestinationOverride]) -> List[str]:
    cfg = config.github_config(destination)
    if not cfg.is_complete():
        raise HTTPException(status_code=400, detail="GitHub destination is not configured")

    client = _jobs(request).pipeline.client_factory(cfg)
    try:
        return client.list_svg_names(cfg.prefix)
    except GitHubError as e:
        logger.warning("Listing %s failed: %s", cfg.prefix or "<root>", e)
        raise HTTPException(status_code=502, detail=f"GitHub listing failed: {e}")


@router.post("/vectorize")
async def vectorize_strokes(body: VectorizeRequest):
    """
    Turns raw strokes into the SVG that would be uploaded, without uploading.
    """
    document = vectorize(body.strokes, body.mode, body.default_width)
    return {"svg": document.to_svg(), "primitive_count": len(document.shapes)}


@router.post("/submit")
def submit_strokes(body: SubmitRequest, request: Request, background: bool = True):
    """
    Vectorizes and uploads one handwriting sample.

    background=true returns a task id right away (poll /tasks/{id});
    background=false blocks until the upload settles. Plain def so the
    blocking path runs in the threadpool, off the event loop.
    """
    document = vectorize(body.strokes, body.mode, body.default_width)
    cfg = config.github_config(body.destination)
    jobs = _jobs(request)

    if background:
        task_id = jobs.start(document, body.label, body.source_index, cfg)
        return JSONResponse({
            "task_id": task_id,
            "status": "pending",
            "result_url": f"/api/v1/capture/tasks/{task_id}",
        })

    result = jobs.run_sync(document, body.label, body.source_index, cfg)
    return result


@router.get("/tasks")
def list_tasks(request: Request):
    return _jobs(request).store.list()


@router.get("/tasks/{task_id}")
def get_task(task_id: str, request: Request):
    task = _jobs(request).store.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"unknown task {task_id}")
    return task


@router.post("/completion")
def completion_status(body: CompletionRequest, request: Request):
    """
    Which items already have an uploaded sample, judged from the remote listing.
    """
    names = sorted(_remote_names(request, body.destination))
    policy = _jobs(request).pipeline.naming_policy
    done = completed_indices(body.items, names, policy)

    response = {"completed": sorted(done), "names": names}
    if policy == "codepoint":
        # codepoint names are reversible, so the listing can be shown as text
        response["labels"] = [decode_codepoint_stem(split_name(n)[1]) for n in names]
    return response


@router.post("/session")
def start_session(body: SessionRequest, request: Request):
    """
    Starts collecting samples for `items`, cursor on the first one.
    """
    _jobs(request).start_session(body.items)
    return _session_state(request)


@router.get("/session")
def session_state(request: Request):
    return _session_state(request)


@router.post("/session/jump")
def jump(body: JumpRequest, request: Request):
    _session(request).jump_to(body.index)
    return _session_state(request)


@router.post("/session/submit")
def submit_current(body: SessionSubmitRequest, request: Request):
    """
    Uploads a sample for the current item and advances the cursor right away.

    If the upload fails and the cursor has not moved since, the cursor goes
    back to the submitted item.
    """
    _session(request)
    document = vectorize(body.strokes, body.mode, body.default_width)
    cfg = config.github_config(body.destination)
    task = _jobs(request).submit_current(document, cfg)
    state = _session_state(request)
    state.update({
        "task_id": task.id,
        "submitted_index": task.source_index,
        "result_url": f"/api/v1/capture/tasks/{task.id}",
    })
    return state


@router.post("/session/refresh")
def refresh_session(body: RefreshRequest, request: Request):
    """
    Recomputes the session's completed items from the remote listing.
    """
    session = _session(request)
    session.refresh_completion(_remote_names(request, body.destination))
    return _session_state(request)
