from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from stockflow.clients.web_client import FetchError, fetch_html

router = APIRouter(prefix="/api", tags=["web"])


@router.get("/fetch-html")
def fetch_page(url: Optional[str] = Query(None)):
    try:
        html = fetch_html(url or "")
    except FetchError as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})
    return {"success": True, "html": html}
