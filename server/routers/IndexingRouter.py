from fastapi import APIRouter, Request

from shared.models.document import Document
from shared.models.errors import SearchValidationError

router = APIRouter(prefix="/api/indexing", tags=["indexing"])


@router.post("/index-new")
async def index_new(request: Request) -> dict:
    """Sweep every store document into the index.

    Args:
        request (Request): FastAPI request (provides app.state.sync_service).

    Returns:
        dict: Status envelope with the sweep report.
    """
    sync_service = request.app.state.sync_service
    report = await sync_service.do_sync_all()
    return {
        "status": "success",
        "message": f"Indexed {report.succeeded} of {report.total} documents",
        "report": report.to_json_dict(),
    }


@router.post("/index-by-category")
async def index_by_category(request: Request, category: str) -> dict:
    sync_service = request.app.state.sync_service
    report = await sync_service.do_sync_category(category)
    return {
        "status": "success",
        "message": f"Indexed {report.succeeded} of {report.total} documents in category: {category}",
        "report": report.to_json_dict(),
    }


@router.post("/index-document")
async def index_document(request: Request, body: Document) -> dict:
    if not body.id:
        raise SearchValidationError("Document id is required for indexing")
    sync_service = request.app.state.sync_service
    await sync_service.do_sync_one(body)
    return {"status": "success", "message": f"Document indexed: {body.id}"}


@router.post("/reindex-all")
async def reindex_all(request: Request) -> dict:
    """Drop and recreate the index, then sweep every store document into it."""
    sync_service = request.app.state.sync_service
    report = await sync_service.do_rebuild_all()
    return {
        "status": "success",
        "message": f"Reindexed {report.succeeded} of {report.total} documents",
        "report": report.to_json_dict(),
    }


@router.get("/health")
async def indexing_health(request: Request) -> dict:
    index_client = request.app.state.index_client
    healthy = await index_client.do_healthcheck()
    return {
        "status": "success" if healthy else "error",
        "message": "Indexing service is running" if healthy else "Search index is not reachable",
    }
