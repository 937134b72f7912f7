from fastapi import APIRouter, Query, Request

from shared.models.errors import SearchValidationError
from shared.models.search import SearchRequest

router = APIRouter(prefix="/api/search", tags=["search"])


def _split_fields(fields: list[str]) -> list[str]:
    # accepts both ?fields=a&fields=b and ?fields=a,b
    return [f.strip() for raw in fields for f in raw.split(",") if f.strip()]


@router.post("")
async def search(request: Request, body: SearchRequest) -> dict:
    """Generic search: free text, optional fields, filters, sort and paging.

    Args:
        request (Request): FastAPI request (provides app.state.search_service).
        body (SearchRequest): JSON search request.

    Returns:
        dict: SearchResponse in its JSON form.
    """
    search_service = request.app.state.search_service
    response = await search_service.do_search(body)
    return response.to_json_dict()


@router.get("")
async def search_simple(
    request: Request,
    query: str,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=1000),
) -> dict:
    search_service = request.app.state.search_service
    response = await search_service.do_search_simple(query, page=page, size=size)
    return response.to_json_dict()


@router.get("/fields")
async def search_in_fields(
    request: Request,
    query: str,
    fields: list[str] = Query(...),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=1000),
) -> dict:
    search_service = request.app.state.search_service
    response = await search_service.do_search_in_fields(query, _split_fields(fields), page=page, size=size)
    return response.to_json_dict()


@router.post("/similar-content")
async def search_similar_content(
    request: Request,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=1000),
) -> dict:
    """Find documents similar to the raw text sent as request body."""
    try:
        text = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise SearchValidationError("Request body must be UTF-8 text")
    search_service = request.app.state.search_service
    response = await search_service.do_similar_content(text, page=page, size=size)
    return response.to_json_dict()


@router.post("/advanced")
async def search_advanced(request: Request, body: SearchRequest) -> dict:
    search_service = request.app.state.search_service
    response = await search_service.do_advanced(body)
    return response.to_json_dict()


@router.get("/full-text")
async def search_full_text(
    request: Request,
    query: str,
    fields: list[str] = Query(...),
    match_type: str = Query(default="multi_match", alias="matchType"),
    fuzziness: str = Query(default="AUTO"),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=1000),
) -> dict:
    search_service = request.app.state.search_service
    response = await search_service.do_full_text(
        query,
        _split_fields(fields),
        match_type=match_type,
        page=page,
        size=size,
        fuzziness=fuzziness,
    )
    return response.to_json_dict()


@router.get("/term")
async def search_term(
    request: Request,
    field: str,
    value: list[str] = Query(default=[]),
    term_type: str = Query(default="term", alias="type"),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=1000),
) -> dict:
    """Exact query on one field; repeat ``value`` for type=terms."""
    search_service = request.app.state.search_service
    response = await search_service.do_term_level(field, value, term_type=term_type, page=page, size=size)
    return response.to_json_dict()
