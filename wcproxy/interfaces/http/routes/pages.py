from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response

from ....application.page_service import CachedPageService
from ....constants import PAGE_CACHE_CONTROL, PAGE_CONTENT_TYPE

router = APIRouter()


@router.get("/", response_class=Response)
async def get_cached_page(request: Request, q: Optional[str] = None) -> Response:
    """Return the webcache copy of the page named by the ``q`` parameter.

    ``q`` is a URL-encoded URL, optionally prefixed with ``cache:``. Pages are
    served from the page cache when present and fetched from the webcache
    service otherwise. Failures are raised as ``WCProxyException`` subclasses
    and turned into plain-text responses by the app's exception handlers.
    """
    page_service: CachedPageService = request.app.state.page_service
    request_id = getattr(request.state, "request_id", None)

    body = await page_service.get_page(q, request_id)
    return Response(
        content=body,
        status_code=200,
        media_type=PAGE_CONTENT_TYPE,
        headers={"Cache-Control": PAGE_CACHE_CONTROL},
    )
