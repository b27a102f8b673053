# ABOUTME: Project, document and generation endpoints
# ABOUTME: Covers project CRUD, gated document reads, background generation, progress streaming and export

"""
Project and document API endpoints.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response, StreamingResponse

from backend.agents.document_generator_agent import DocumentGeneratorAgent
from backend.config.settings import (
    DOCUMENT_EVENTS_POLL_SECONDS,
    DOCUMENT_EVENTS_TIMEOUT_SECONDS,
    GENERATION_STALE_SECONDS,
    OPENAI_MODEL,
)
from backend.dependencies.auth import get_current_user, get_optional_user
from backend.dependencies.services import (
    get_access_service,
    get_document_type_service,
    get_generator_agent,
    get_project_manager,
)
from backend.exporters.docx_exporter import render_docx
from backend.exporters.markdown_utils import export_filename
from backend.exporters.pdf_exporter import render_pdf
from backend.models.schemas import DocumentStatus, GenerateContentRequest, ProjectCreate, RequiredInfoAnswers
from backend.services.access_service import AccessService
from backend.services.document_type_service import DocumentTypeService
from backend.services.supabase_project_manager import SupabaseProjectManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])

TERMINAL_STATUSES = (DocumentStatus.COMPLETED.value, DocumentStatus.ERROR.value)
EXPORT_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class RequiredInfoSubmit(RequiredInfoAnswers):
    generate: bool = True


async def _owned_document(document_id: str, user: Dict[str, Any], pm: SupabaseProjectManager) -> Dict[str, Any]:
    document = await pm.get_document(document_id)
    if not document:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    project = await pm.get_project(document["project_id"], user_id=user.get("sub"))
    if not project:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    document["_project"] = project
    return document


def _public(document: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in document.items() if not k.startswith("_")}


def _generation_is_stale(document: Dict[str, Any]) -> bool:
    """True when a generating document has not been touched for GENERATION_STALE_SECONDS."""
    updated_at = document.get("updated_at")
    if not updated_at:
        return True
    try:
        updated = datetime.fromisoformat(str(updated_at).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable updated_at on document {document.get('id')}: {updated_at}")
        return True
    if updated.tzinfo is not None:
        updated = updated.astimezone(timezone.utc).replace(tzinfo=None)
    return datetime.utcnow() - updated > timedelta(seconds=GENERATION_STALE_SECONDS)


# ==================== Catalog ====================

@router.get("/document-types")
async def list_document_types(
    refresh: bool = False,
    service: DocumentTypeService = Depends(get_document_type_service),
) -> JSONResponse:
    types = await service.get_latest_document_types(refresh=refresh)
    return JSONResponse(content={
        "status": "success",
        "documentTypes": [t.model_dump() for t in types],
    })


# ==================== Projects ====================

@router.post("/projects")
async def create_project(
    request: ProjectCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
) -> JSONResponse:
    try:
        project = await pm.create_project(request.model_dump(), user_id=user["sub"])
        return JSONResponse(content={"status": "success", "project": project}, status_code=201)
    except Exception as e:
        logger.error(f"Failed to create project: {e}")
        return JSONResponse(content={"error": f"Failed to create project: {str(e)}"}, status_code=500)


@router.get("/projects")
async def list_projects(
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
) -> JSONResponse:
    projects = await pm.list_projects(user_id=user["sub"])
    return JSONResponse(content={"status": "success", "count": len(projects), "projects": projects})


@router.get("/projects/{project_id}")
async def get_project(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
    access: AccessService = Depends(get_access_service),
) -> JSONResponse:
    project = await pm.get_project(project_id, user_id=user["sub"])
    if not project:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")

    project, has_access = await access.gate_project(project, user["sub"])

    return JSONResponse(content={"status": "success", "project": project, "access": has_access})


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
) -> JSONResponse:
    if not await pm.delete_project(project_id, user_id=user["sub"]):
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return JSONResponse(content={"status": "success", "project_id": project_id})


# ==================== Documents ====================

@router.get("/documents/{document_id}")
async def get_document(
    document_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
    access: AccessService = Depends(get_access_service),
) -> JSONResponse:
    document = _public(await _owned_document(document_id, user, pm))
    return JSONResponse(content={"status": "success", "document": await access.gate_document(document, user["sub"])})


@router.post("/documents/{document_id}/generate", status_code=202)
async def generate_document(
    document_id: str,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
    agent: DocumentGeneratorAgent = Depends(get_generator_agent),
) -> JSONResponse:
    document = await _owned_document(document_id, user, pm)
    if document.get("status") == DocumentStatus.GENERATING.value:
        if not _generation_is_stale(document):
            raise HTTPException(status_code=409, detail="Document is already being generated")
        logger.warning(f"Restarting stale generation of document {document_id}")

    background_tasks.add_task(agent.generate_document, document_id)
    logger.info(f"Queued generation of document {document_id}")
    return JSONResponse(content={"status": "accepted", "document_id": document_id}, status_code=202)


@router.post("/documents/{document_id}/required-info")
async def submit_required_info(
    document_id: str,
    request: RequiredInfoSubmit,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
    agent: DocumentGeneratorAgent = Depends(get_generator_agent),
) -> JSONResponse:
    await _owned_document(document_id, user, pm)
    document = await agent.save_required_info(document_id, answers=request.answers, skipped=request.skipped)
    if not document:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")

    if request.generate:
        background_tasks.add_task(agent.generate_document, document_id)
    return JSONResponse(content={
        "status": "success",
        "required_info": (document.get("content") or {}).get("required_info"),
        "generating": request.generate,
    })


@router.get("/documents/{document_id}/export")
async def export_document(
    document_id: str,
    format: str = Query("pdf"),
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
    access: AccessService = Depends(get_access_service),
) -> Response:
    fmt = format.lower()
    if fmt not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")

    document = await _owned_document(document_id, user, pm)
    if not await access.check_document_access(user["sub"], document["project_id"]):
        raise HTTPException(status_code=402, detail="Purchase required to download this document")

    sections = (document.get("content") or {}).get("sections") or []
    if not sections:
        raise HTTPException(status_code=409, detail="Document has no generated content yet")

    project = document["_project"]
    try:
        data = render_pdf(sections, title=project.get("name")) if fmt == "pdf" else render_docx(sections)
    except Exception as e:
        logger.exception(f"Export of document {document_id} failed")
        return JSONResponse(content={"error": f"Failed to export document: {str(e)}"}, status_code=500)

    filename = export_filename(project.get("name"), document.get("type"), fmt)
    return Response(
        content=data,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("/documents/{document_id}/events")
async def document_events(
    document_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    pm: SupabaseProjectManager = Depends(get_project_manager),
) -> StreamingResponse:
    """Server-sent events carrying status/progress changes of one document."""
    await _owned_document(document_id, user, pm)

    async def stream():
        last_marker = None
        deadline = time.monotonic() + DOCUMENT_EVENTS_TIMEOUT_SECONDS
        while True:
            document = await pm.get_document(document_id)
            if not document:
                yield _sse("error", {"error": "Failed to subscribe to document updates"})
                return

            marker = (document.get("updated_at"), document.get("status"), json.dumps(document.get("progress")))
            if marker != last_marker:
                last_marker = marker
                yield _sse("document", {
                    "id": document.get("id"),
                    "status": document.get("status"),
                    "progress": document.get("progress"),
                    "version": document.get("version"),
                    "updated_at": document.get("updated_at"),
                })

            if document.get("status") in TERMINAL_STATUSES or time.monotonic() > deadline:
                return
            await asyncio.sleep(DOCUMENT_EVENTS_POLL_SECONDS)

    return StreamingResponse(stream(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})


# ==================== Raw generation ====================

@router.post("/generate-content")
async def generate_content(
    request: GenerateContentRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    agent: DocumentGeneratorAgent = Depends(get_generator_agent),
) -> JSONResponse:
    if not request.prompt:
        return JSONResponse(content={"error": "Prompt is required"}, status_code=400)

    logger.info(f"generate-content request from {user.get('sub') if user else 'anonymous'}")

    try:
        result, usage = await agent.generate_content(
            request.prompt,
            model_name=request.model or OPENAI_MODEL,
            max_tokens=request.max_tokens,
        )
        return JSONResponse(content={"result": result, "usage": usage})
    except Exception as e:
        logger.error(f"generate-content failed: {e}")
        return JSONResponse(content={"error": str(e) or "An error occurred during content generation"}, status_code=500)
