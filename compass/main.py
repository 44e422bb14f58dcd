"""
Compass Analysis API
Fetch an organization's analysis for any category and keep a saved history.
"""
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .categories import AnalysisCategory
from .client import AnalysisClient
from .config import get_settings
from .errors import AnalysisNotFound, FetchError, HTTPStatusError, StoreError, TransportError
from .models import CategoryInfo, OrganizationAnalysis, SavedAnalysisSummary, SaveRequest
from .store import AnalysisStore

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Compass Analysis",
    description="Political leaning, DEI, wokeness, environmental, immigration, innovation and FEC contribution analyses for any organization.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_client() -> AnalysisClient:
    return AnalysisClient()


@lru_cache(maxsize=1)
def get_store() -> AnalysisStore:
    return AnalysisStore()


def _fetch_error_status(error: FetchError) -> int:
    if isinstance(error, TransportError):
        return 504
    return 502  # upstream answered, but not with something usable


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/categories", response_model=list[CategoryInfo])
async def list_categories():
    return [
        CategoryInfo(
            slug=c.slug,
            name=c.short_name,
            prompt=c.prompt,
            icon=c.icon,
            low_rating_label=c.low_rating_label,
            high_rating_label=c.high_rating_label,
        )
        for c in AnalysisCategory.selectable()
    ]


@app.get("/analysis/{category_slug}/{topic:path}", response_model=OrganizationAnalysis)
async def get_analysis(category_slug: str, topic: str, client: AnalysisClient = Depends(get_client)):
    try:
        category = AnalysisCategory.from_slug(category_slug)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown category '{category_slug}'")
    if category not in client.handled_categories:
        raise HTTPException(status_code=404, detail=f"Category '{category_slug}' cannot be queried")

    try:
        return await client.fetch(category, topic)
    except FetchError as e:
        upstream = f" (upstream {e.status_code})" if isinstance(e, HTTPStatusError) else ""
        logger.warning("Fetch %s for %r failed: %s%s", category.value, topic, e.message, upstream)
        raise HTTPException(status_code=_fetch_error_status(e), detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/saved", response_model=list[SavedAnalysisSummary])
def list_saved(store: AnalysisStore = Depends(get_store)):
    try:
        return store.list()
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/saved/{topic:path}", response_model=OrganizationAnalysis)
def load_saved(topic: str, store: AnalysisStore = Depends(get_store)):
    try:
        return store.load(topic)
    except AnalysisNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.put("/saved")
def save_analysis(req: SaveRequest, store: AnalysisStore = Depends(get_store)):
    topic = req.topic or req.analysis.topic
    try:
        return {"saved": store.upsert(topic, req.analysis)}
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/saved/{topic:path}")
def remove_saved(topic: str, store: AnalysisStore = Depends(get_store)):
    try:
        return {"removed": store.remove(topic)}
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
