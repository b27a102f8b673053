# -*- coding: utf-8 -*-
"""
API Client for interacting with the MarketingGuide AI FastAPI backend.
"""
import httpx
import logging
import json
import re
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

from config import API_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = API_BASE_URL


# --- Helper Functions ---
def _get_api_url(endpoint: str, base_url: str = DEFAULT_API_BASE_URL) -> str:
    """Constructs the full API URL."""
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def _get_headers() -> Dict[str, str]:
    """Bearer header from the signed-in Supabase session."""
    session = st.session_state.get("supabase_session") or {}
    token = session.get("access_token")
    return {"Authorization": f"Bearer {token}"} if token else {}


async def _handle_response(response: httpx.Response) -> Dict[str, Any]:
    """Handles API response, checking status and parsing JSON."""
    if response.status_code >= 400:
        try:
            error_data = response.json()
            error_message = error_data.get("detail") or error_data.get("error") or error_data.get("message", "Unknown API error")
        except json.JSONDecodeError:
            error_message = f"API Error ({response.status_code}): {response.text}"
        logger.error(f"API Error ({response.status_code}): {error_message} - URL: {response.url}")
        raise httpx.HTTPStatusError(message=str(error_message), request=response.request, response=response)
    try:
        return response.json()
    except json.JSONDecodeError as e:
        logger.error(f"Failed to decode JSON response from {response.url}: {e}")
        raise ValueError(f"Invalid JSON response received from API: {response.text}")


async def _request(method: str, endpoint: str, base_url: str = DEFAULT_API_BASE_URL,
                   timeout: float = 30.0, **kwargs) -> Dict[str, Any]:
    api_url = _get_api_url(endpoint, base_url)
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.request(method, api_url, headers=_get_headers(), **kwargs)
            return await _handle_response(response)
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed for {method} {api_url}: {e}")
            raise ConnectionError(f"Failed to connect to API: {e}")


# --- Catalog & Projects ---

async def health_check(base_url: str = DEFAULT_API_BASE_URL) -> bool:
    try:
        return (await _request("GET", "/health", base_url, timeout=5.0)).get("status") == "ok"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return False


async def get_document_types(base_url: str = DEFAULT_API_BASE_URL) -> List[Dict[str, Any]]:
    return (await _request("GET", "/api/document-types", base_url)).get("documentTypes", [])


async def get_projects(base_url: str = DEFAULT_API_BASE_URL) -> List[Dict[str, Any]]:
    return (await _request("GET", "/api/projects", base_url)).get("projects", [])


async def create_project(project_data: Dict[str, Any], base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    logger.info(f"Creating project {project_data.get('name')}")
    return (await _request("POST", "/api/projects", base_url, json=project_data)).get("project", {})


async def get_project(project_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    """Project with documents plus the caller's access flag."""
    return await _request("GET", f"/api/projects/{project_id}", base_url)


async def delete_project(project_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    return await _request("DELETE", f"/api/projects/{project_id}", base_url)


# --- Documents ---

async def get_document(document_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    return (await _request("GET", f"/api/documents/{document_id}", base_url)).get("document", {})


async def generate_document(document_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    return await _request("POST", f"/api/documents/{document_id}/generate", base_url)


async def submit_required_info(
    document_id: str,
    answers: Dict[str, str],
    skipped: bool = False,
    generate: bool = True,
    base_url: str = DEFAULT_API_BASE_URL
) -> Dict[str, Any]:
    payload = {"answers": answers, "skipped": skipped, "generate": generate}
    return await _request("POST", f"/api/documents/{document_id}/required-info", base_url, json=payload)


async def export_document(document_id: str, fmt: str, base_url: str = DEFAULT_API_BASE_URL) -> Tuple[bytes, str]:
    """Download a document as PDF or DOCX; returns the bytes and the server-chosen filename."""
    api_url = _get_api_url(f"/api/documents/{document_id}/export", base_url)
    async with httpx.AsyncClient(timeout=120.0) as client:
        try:
            response = await client.get(api_url, params={"format": fmt}, headers=_get_headers())
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed during export: {e}")
            raise ConnectionError(f"Failed to connect to API for export: {e}")
    if response.status_code >= 400:
        await _handle_response(response)
    match = re.search(r'filename="?([^";]+)"?', response.headers.get("content-disposition", ""))
    return response.content, match.group(1) if match else f"document.{fmt}"


# --- Payments & Credits ---

async def create_checkout(price_id: str, product_id: str, user_id: str, project_id: Optional[str] = None,
                          base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    payload = {"priceId": price_id, "productId": product_id, "userId": user_id, "projectId": project_id}
    return await _request("POST", "/api/payments/create-checkout", base_url, json=payload)


async def get_credits(user_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    return await _request("GET", f"/api/payments/credits/{user_id}", base_url)


async def apply_credit(customer_id: str, project_id: str, base_url: str = DEFAULT_API_BASE_URL) -> Dict[str, Any]:
    payload = {"customerId": customer_id, "projectId": project_id}
    return await _request("POST", "/api/payments/apply-credit", base_url, json=payload)


async def apply_pack(user_id: str, project_id: str, base_url: str = DEFAULT_API_BASE_URL) -> bool:
    payload = {"userId": user_id, "projectId": project_id}
    return (await _request("POST", "/api/payments/apply-pack", base_url, json=payload)).get("success", False)


async def get_purchases(user_id: str, base_url: str = DEFAULT_API_BASE_URL) -> List[Dict[str, Any]]:
    return (await _request("GET", f"/api/payments/purchases/{user_id}", base_url)).get("purchases", [])
