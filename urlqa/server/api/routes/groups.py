"""Knowledge base API routes - all mutations target the active group"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import HttpUrl, TypeAdapter, ValidationError

from urlqa.models import KnowledgeFile, URLGroup
from urlqa.server.api.dependencies import get_conversation_controller
from urlqa.server.schemas import (
    AddFilesResponse,
    AddUrlRequest,
    AddUrlResponse,
    GroupFileResponse,
    GroupResponse,
    GroupsResponse,
    SetActiveGroupRequest,
)
from urlqa.services.conversation import ConversationController
from urlqa.services.knowledge_base import AddUrlResult

logger = logging.getLogger(__name__)

router = APIRouter()

_http_url = TypeAdapter(HttpUrl)


def _group_response(group: URLGroup, active_group_id: str) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        urls=list(group.urls),
        files=[
            GroupFileResponse(name=f.name, size=f.size, mime_type=f.mime_type) for f in group.files
        ],
        is_active=group.id == active_group_id,
    )


@router.get("", response_model=GroupsResponse)
async def list_groups(
    controller: ConversationController = Depends(get_conversation_controller),
):
    """List groups with their URLs and files"""
    kb = controller.knowledge_base
    return GroupsResponse(
        active_group_id=kb.active_group_id,
        max_urls=kb.max_urls,
        max_files=kb.max_files,
        groups=[_group_response(g, kb.active_group_id) for g in kb.groups],
    )


@router.put("/active", response_model=GroupResponse)
async def set_active_group(
    request: SetActiveGroupRequest,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Switch active group; the transcript is reset"""
    kb = controller.knowledge_base
    group = kb.set_active_group(request.group_id)
    return _group_response(group, kb.active_group_id)


@router.post("/active/urls", response_model=AddUrlResponse)
async def add_url(
    request: AddUrlRequest,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Add a URL to the active group"""
    try:
        _http_url.validate_python(request.url)
    except ValidationError:
        raise HTTPException(
            status_code=422,
            detail="Invalid URL format. Please include http:// or https://",
        )

    kb = controller.knowledge_base
    result = kb.add_url(request.url)
    notice = None
    if result == AddUrlResult.DUPLICATE:
        notice = "This URL has already been added to the current group."
    elif result == AddUrlResult.LIMIT_REACHED:
        notice = f"You can add a maximum of {kb.max_urls} URLs to the current group."

    return AddUrlResponse(
        status=result.value,
        notice=notice,
        group=_group_response(kb.active_group, kb.active_group_id),
    )


@router.delete("/active/urls", response_model=GroupResponse)
async def remove_url(
    url: str,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Remove a URL from the active group (no-op if absent)"""
    kb = controller.knowledge_base
    kb.remove_url(url)
    return _group_response(kb.active_group, kb.active_group_id)


@router.post("/active/files", response_model=AddFilesResponse)
async def upload_files(
    files: list[UploadFile] = File(...),
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Upload files (or a flattened folder) into the active group"""
    knowledge_files = []
    for upload in files:
        content = await upload.read()
        knowledge_files.append(
            KnowledgeFile.from_bytes(
                name=upload.filename or "unnamed",
                data=content,
                mime_type=upload.content_type or "",
            )
        )

    kb = controller.knowledge_base
    result = kb.add_files(knowledge_files)
    logger.info(
        f"upload_files: received={len(knowledge_files)}, added={len(result.added)}"
    )

    notice = None
    if result.skipped_duplicates:
        notice = f"Skipped {len(result.skipped_duplicates)} duplicate files."

    return AddFilesResponse(
        added=[f.name for f in result.added],
        skipped_duplicates=result.skipped_duplicates,
        dropped_over_limit=result.dropped_over_limit,
        notice=notice,
        group=_group_response(kb.active_group, kb.active_group_id),
    )


@router.delete("/active/files/{name:path}", response_model=GroupResponse)
async def remove_file(
    name: str,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Remove a file from the active group (no-op if absent)"""
    kb = controller.knowledge_base
    kb.remove_file(name)
    return _group_response(kb.active_group, kb.active_group_id)
