from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from shared.models.document import Document

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("")
async def create_document(request: Request, body: Document) -> JSONResponse:
    """Create a document in the store and index it.

    Args:
        request (Request): FastAPI request (provides app.state.document_service).
        body (Document): The document; a missing id is generated.

    Returns:
        JSONResponse: 201 with the stored document.
    """
    document_service = request.app.state.document_service
    saved = await document_service.do_create(body)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=saved.to_json_dict())


@router.post("/bulk")
async def create_documents_bulk(request: Request, body: list[Document]) -> JSONResponse:
    document_service = request.app.state.document_service
    report = await document_service.do_create_bulk(body)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "status": "success",
            "message": f"Created {report.total} documents, indexed {report.succeeded}",
            "report": report.to_json_dict(),
        },
    )


@router.get("/count")
async def count_documents(request: Request) -> dict:
    document_service = request.app.state.document_service
    return {"count": await document_service.do_count()}


@router.get("/{document_id}")
async def get_document(request: Request, document_id: str) -> dict:
    document_service = request.app.state.document_service
    document = await document_service.do_get(document_id)
    return document.to_json_dict()


@router.put("/{document_id}")
async def update_document(request: Request, document_id: str, body: Document) -> dict:
    """Replace a document; the path id wins over any id in the body."""
    document_service = request.app.state.document_service
    saved = await document_service.do_update(document_id, body)
    return saved.to_json_dict()


@router.delete("/{document_id}")
async def delete_document(request: Request, document_id: str) -> dict:
    document_service = request.app.state.document_service
    await document_service.do_delete(document_id)
    return {"status": "success", "message": f"Document deleted: {document_id}"}
