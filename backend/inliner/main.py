import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from inliner.config import Settings, get_settings
from inliner.models import MainFetchError
from inliner.scraper import inline_page
from inliner.urls import ensure_scheme

logger = logging.getLogger(__name__)

app = FastAPI(title="Page Inliner API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ScrapeRequest(BaseModel):
    url: str | None = None


class ScrapeResponse(BaseModel):
    html: str


# ---------------------------------------------------------------------------
# Error rendering: every failure is {"error": "..."}
# ---------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    return {"message": "Page inliner is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/scrape", response_model=ScrapeResponse)
async def scrape_endpoint(
    request: ScrapeRequest | None = None,
    settings: Settings = Depends(get_settings),
):
    """
    Fetch a page and return it as one self-contained HTML document.
    Only a failure to fetch the page itself is reported; stylesheet
    problems degrade silently to absolute <link> tags.
    """
    url = ensure_scheme(request.url) if request and request.url else ""
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")

    try:
        result = await inline_page(url, settings)
    except MainFetchError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.exception("Scraping error for %s", url)
        raise HTTPException(status_code=500, detail=f"Failed to scrape website: {e}")

    return ScrapeResponse(html=result.html)


@app.options("/api/scrape")
async def scrape_preflight():
    return Response(status_code=200)
