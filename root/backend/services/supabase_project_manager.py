# ABOUTME: Supabase-based project manager for business projects and their generated documents
# ABOUTME: Handles project CRUD, per-type document rows, progress updates, unlock flags and API usage logging

"""
Supabase-based ProjectManager service for projects and documents.
"""

import uuid
import asyncio
import logging
from typing import Dict, Any, Optional, List
from datetime import datetime

from backend.config.supabase_client import get_supabase_client
from backend.models.schemas import DocumentProgress, DocumentStatus, ProjectStatus
from backend.services.document_type_service import DocumentTypeService

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("name", "business_type", "target_audience", "goals", "budget", "challenges", "description")


class SupabaseProjectManager:
    """
    Supabase-based project lifecycle and document tracking.

    Features:
    - One document row per catalog type, created with the project
    - Backfill of document rows for catalog types added later
    - Project status derived from document completion
    - Per-project async locks around document writes
    """

    def __init__(self, supabase_client=None, document_type_service: Optional[DocumentTypeService] = None):
        self.supabase = supabase_client or get_supabase_client()
        self.document_types = document_type_service or DocumentTypeService(self.supabase)
        self.project_locks = {}  # Per-project async locks
        logger.info("SupabaseProjectManager initialized")

    async def _get_lock(self, project_id: str) -> asyncio.Lock:
        """Get or create a lock for a specific project."""
        if project_id not in self.project_locks:
            self.project_locks[project_id] = asyncio.Lock()
        return self.project_locks[project_id]

    def _new_document(self, project_id: str, doc_type: str) -> Dict[str, Any]:
        now = datetime.utcnow().isoformat()
        return {
            "id": str(uuid.uuid4()),
            "project_id": project_id,
            "type": doc_type,
            "version": 1,
            "content": {"sections": []},
            "status": DocumentStatus.PENDING.value,
            "progress": None,
            "created_at": now,
            "updated_at": now,
        }

    # ==================== Project CRUD Operations ====================

    async def create_project(self, project_data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        """
        Create a project and one pending document per catalog type.

        Args:
            project_data: Questionnaire fields (name, business_type, ...)
            user_id: Owner of the project

        Returns:
            The project row with its documents
        """
        try:
            project_id = str(uuid.uuid4())
            now = datetime.utcnow().isoformat()

            data = {field: project_data.get(field) for field in PROJECT_FIELDS}
            data.update({
                "id": project_id,
                "user_id": user_id,
                "status": ProjectStatus.DRAFT.value,
                "is_unlocked": False,
                "created_at": now,
                "updated_at": now,
            })

            result = self.supabase.table("projects").insert(data).execute()
            if not result.data:
                raise Exception("Failed to create project: no data returned")
            project = result.data[0]

            type_ids = await self.document_types.get_type_ids()
            documents = [self._new_document(project_id, type_id) for type_id in type_ids]
            if documents:
                doc_result = self.supabase.table("documents").insert(documents).execute()
                documents = doc_result.data or documents

            project["documents"] = documents
            logger.info(f"Created project {project_id} with {len(documents)} documents for user {user_id}")
            return project

        except Exception as e:
            logger.error(f"Failed to create project {project_data.get('name')}: {e}")
            raise

    async def list_projects(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """List projects, newest first, optionally restricted to one owner."""
        try:
            query = self.supabase.table("projects").select("*")
            if user_id:
                query = query.eq("user_id", user_id)
            result = query.order("created_at", desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to list projects: {e}")
            return []

    async def get_project(self, project_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Load a project with its documents.

        Documents for catalog types that have no row yet are created on the fly.

        Returns:
            Project dict with a "documents" list, or None if not found
        """
        try:
            query = self.supabase.table("projects").select("*").eq("id", project_id)
            if user_id:
                query = query.eq("user_id", user_id)
            result = query.execute()

            if not result.data:
                logger.warning(f"Project {project_id} not found")
                return None

            project = result.data[0]
            documents = await self.get_documents(project_id)

            existing_types = {doc.get("type") for doc in documents}
            missing = [
                self._new_document(project_id, type_id)
                for type_id in await self.document_types.get_type_ids()
                if type_id not in existing_types
            ]
            if missing:
                logger.info(f"Backfilling {len(missing)} documents for project {project_id}")
                inserted = self.supabase.table("documents").insert(missing).execute()
                documents.extend(inserted.data or missing)

            project["documents"] = documents
            return project

        except Exception as e:
            logger.error(f"Failed to load project {project_id}: {e}")
            return None

    async def delete_project(self, project_id: str, user_id: Optional[str] = None) -> bool:
        """Delete a project and its documents."""
        try:
            async with await self._get_lock(project_id):
                query = self.supabase.table("projects").select("id").eq("id", project_id)
                if user_id:
                    query = query.eq("user_id", user_id)
                if not query.execute().data:
                    logger.warning(f"Project {project_id} not found for deletion")
                    return False

                self.supabase.table("documents").delete().eq("project_id", project_id).execute()
                self.supabase.table("projects").delete().eq("id", project_id).execute()

            logger.info(f"Deleted project {project_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete project {project_id}: {e}")
            return False

    async def unlock_project(self, project_id: str) -> bool:
        """Mark a project as fully unlocked."""
        try:
            result = self.supabase.table("projects").update({
                "is_unlocked": True,
                "updated_at": datetime.utcnow().isoformat(),
            }).eq("id", project_id).execute()

            if not result.data:
                logger.warning(f"Unlock found no project {project_id}")
                return False

            logger.info(f"Unlocked project {project_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to unlock project {project_id}: {e}")
            return False

    async def is_project_unlocked(self, project_id: str) -> bool:
        try:
            result = self.supabase.table("projects").select("is_unlocked").eq("id", project_id).execute()
            return bool(result.data and result.data[0].get("is_unlocked"))
        except Exception as e:
            logger.error(f"Failed to read unlock flag for project {project_id}: {e}")
            return False

    # ==================== Document Operations ====================

    async def get_documents(self, project_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("documents").select("*").eq("project_id", project_id).execute()
        return result.data or []

    async def get_document(self, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("documents").select("*").eq("id", document_id).execute()
            if not result.data:
                return None
            return result.data[0]
        except Exception as e:
            logger.error(f"Failed to load document {document_id}: {e}")
            return None

    async def create_document(self, project_id: str, doc_type: str) -> Dict[str, Any]:
        result = self.supabase.table("documents").insert(self._new_document(project_id, doc_type)).execute()
        if not result.data:
            raise Exception(f"Failed to create {doc_type} document for project {project_id}")
        return result.data[0]

    async def update_document(self, document_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update a document row.

        A None progress is dropped so an existing progress value is never
        cleared. Completing a document recomputes the owning project's status.

        Returns:
            The updated document, or None if it does not exist
        """
        data = dict(updates)
        if data.get("progress") is None:
            data.pop("progress", None)
        data["updated_at"] = datetime.utcnow().isoformat()

        result = self.supabase.table("documents").update(data).eq("id", document_id).execute()
        if not result.data:
            logger.warning(f"Document {document_id} not found for update")
            return None

        document = result.data[0]
        if data.get("status") == DocumentStatus.COMPLETED.value:
            await self.refresh_project_status(document["project_id"])
        return document

    async def update_document_progress(self, document_id: str, percent: float, stage: str,
                                       message: Optional[str] = None) -> None:
        """Write generation progress; failures are logged only."""
        try:
            progress = DocumentProgress(percent=percent, stage=stage, message=message).model_dump(exclude_none=True)
            self.supabase.table("documents").update({
                "progress": progress,
                "updated_at": datetime.utcnow().isoformat(),
            }).eq("id", document_id).execute()
        except Exception as e:
            logger.error(f"Error updating document progress for {document_id}: {e}")

    async def refresh_project_status(self, project_id: str) -> str:
        """Set the project to completed when every document is completed, otherwise draft."""
        async with await self._get_lock(project_id):
            documents = await self.get_documents(project_id)
            all_completed = bool(documents) and all(
                doc.get("status") == DocumentStatus.COMPLETED.value for doc in documents
            )
            status = ProjectStatus.COMPLETED.value if all_completed else ProjectStatus.DRAFT.value
            self.supabase.table("projects").update({
                "status": status,
                "updated_at": datetime.utcnow().isoformat(),
            }).eq("id", project_id).execute()
            logger.info(f"Project {project_id} status set to {status}")
            return status

    # ==================== Usage Tracking ====================

    async def track_api_usage(self, model: str, usage: Dict[str, int], prompt: str) -> bool:
        """Record token usage of a completion call. Non-critical."""
        try:
            snippet = prompt[:100] + "..." if len(prompt) > 100 else prompt
            self.supabase.table("api_usage").insert({
                "model": model,
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
                "prompt_snippet": snippet,
                "created_at": datetime.utcnow().isoformat(),
            }).execute()
            return True
        except Exception as e:
            logger.warning(f"Failed to log API usage: {e}")
            return False
