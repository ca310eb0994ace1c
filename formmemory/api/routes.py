"""API route handlers."""
from dataclasses import asdict
from io import BytesIO
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import StreamingResponse

from formmemory.api.dependencies import get_manager, get_message_handler, validate_export_format
from formmemory.domain.exceptions import FormMemoryError
from formmemory.services.exporter import default_export_filename, entries_to_json, workbook_bytes
from formmemory.services.manager import FormDataManager
from formmemory.services.messaging import MessageHandler

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Form Memory API",
        "description": "Storage service and management endpoints for saved form data",
        "main_endpoint": {
            "url": "/messages",
            "method": "POST",
            "description": "saveFormData, getFormData, getAllFormData, deleteFormData, clearAllData"
        },
        "other_endpoints": {
            "/forms": "GET - List saved forms (optional ?q= URL filter); DELETE - clear all",
            "/forms/{key}": "GET - View one saved form; DELETE - remove it",
            "/stats": "GET - Saved form count and storage usage",
            "/export": "GET - Download saved forms (?format=json or xlsx)"
        }
    }


@router.post("/messages")
async def handle_message(
    message: Dict[str, Any] = Body(...),
    handler: MessageHandler = Depends(get_message_handler),
):
    """Storage messaging surface; failures come back as {"error": ...}."""
    return await handler.handle(message)


@router.get("/forms")
async def list_forms(q: Optional[str] = None, manager: FormDataManager = Depends(get_manager)):
    """List saved forms, newest first."""
    manager.filter(q or "")
    return {
        "total": len(manager.filtered),
        "forms": [
            {**asdict(manager.preview(key, entry)), "url": entry.url}
            for key, entry in manager.entries()
        ]
    }


@router.get("/forms/{key:path}")
async def view_form(key: str, manager: FormDataManager = Depends(get_manager)):
    """View one saved form."""
    entry = manager.view(key)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No saved form for key '{key}'")
    return {"key": key, **entry.to_dict()}


@router.delete("/forms/{key:path}")
async def delete_form(key: str, manager: FormDataManager = Depends(get_manager)):
    """Delete one saved form."""
    try:
        await manager.delete(key)
        return {"success": True}
    except FormMemoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting form data: {str(e)}")


@router.delete("/forms")
async def clear_forms(manager: FormDataManager = Depends(get_manager)):
    """Delete every saved form."""
    try:
        await manager.clear_all()
        return {"success": True}
    except FormMemoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error clearing form data: {str(e)}")


@router.get("/stats")
async def storage_stats(manager: FormDataManager = Depends(get_manager)):
    """Saved form count and approximate storage usage."""
    stats = manager.stats()
    return {
        "total_forms": stats.total_forms,
        "usage_percent": stats.usage_percent,
        "near_quota": stats.near_quota
    }


@router.get("/export")
async def export_forms(format: str = "json", manager: FormDataManager = Depends(get_manager)):
    """Download every saved form as JSON or Excel."""
    export_format = validate_export_format(format)
    filename = default_export_filename(export_format)
    try:
        if export_format == "xlsx":
            output = workbook_bytes(manager.all_entries)
            media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        else:
            output = BytesIO(entries_to_json(manager.all_entries).encode("utf-8"))
            media_type = "application/json"
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting form data: {str(e)}")

    return StreamingResponse(
        output,
        media_type=media_type,
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "X-Forms-Exported": str(len(manager.all_entries))
        }
    )
