"""
Celery tasks for the booking API.

Bulk-uploaded drafts are stored immediately with ``needs_extraction`` set;
the worker runs extraction and pricing later and writes the result back only
if the draft is unchanged since it was queued.
"""
import asyncio
import logging
from typing import Optional

from app.core.celery_app import celery_app
from app.core.config import settings
from app.schemas.quote import Quote
from app.services.drafts import DraftNotFoundError, DraftRepository
from app.services.extraction import ExtractionClient, ExtractionUnavailableError
from app.services.pricing_overrides import PricingOverrideRepository
from app.services.quote_engine import QuoteEngine, RouteRequiredError
from app.services.stores import KeyValueStore, RedisKeyValueStore, get_store

logger = logging.getLogger(__name__)


def _worker_store() -> KeyValueStore:
    """A store bound to the current event loop; each task run gets its own."""
    if settings.store_backend == "memory":
        return get_store()
    return RedisKeyValueStore(settings.redis_url)


async def extract_and_price_draft(
    store: KeyValueStore,
    owner: str,
    draft_id: str,
    revision: int,
    extractor: Optional[ExtractionClient] = None,
    engine: Optional[QuoteEngine] = None,
) -> dict:
    """
    Run extraction and pricing for one queued draft.

    Returns a summary dict. Extraction failure leaves the draft flagged for
    manual completion; a form that cannot be priced is stored without a quote.
    """
    drafts = DraftRepository(store)
    try:
        documents = await drafts.get_documents(owner, draft_id)
    except DraftNotFoundError:
        logger.info("Draft %s deleted before extraction ran", draft_id)
        return {"draft_id": draft_id, "status": "deleted"}

    extractor = extractor or ExtractionClient()
    try:
        form = await extractor.extract(documents)
    except ExtractionUnavailableError as e:
        logger.warning("Extraction unavailable for draft %s: %s", draft_id, e)
        return {"draft_id": draft_id, "status": "extraction_unavailable"}

    if engine is None:
        overrides = await PricingOverrideRepository(store).get_all()
        engine = QuoteEngine(overrides=overrides)

    quote: Optional[Quote]
    try:
        quote = await engine.compute_quote(form)
    except RouteRequiredError:
        quote = None

    applied = await drafts.apply_extraction_if_current(owner, draft_id, revision, form, quote)
    return {
        "draft_id": draft_id,
        "status": "applied" if applied else "stale",
        "priced": quote is not None,
    }


async def _run(owner: str, draft_id: str, revision: int) -> dict:
    store = _worker_store()
    try:
        return await extract_and_price_draft(store, owner, draft_id, revision)
    finally:
        if isinstance(store, RedisKeyValueStore):
            await store.close()


@celery_app.task(
    bind=True,
    name="app.services.tasks.process_bulk_draft",
    queue="extraction",
    max_retries=2,
    default_retry_delay=60,
)
def process_bulk_draft(self, owner: str, draft_id: str, revision: int) -> dict:
    """
    Extract and price a bulk-uploaded draft.

    An extraction outage is retried up to ``max_retries`` times; after that
    the draft stays flagged for manual completion.

    Args:
        owner: User id owning the draft
        draft_id: Draft to process
        revision: Draft revision at queue time; newer edits win

    Returns:
        Result summary dict
    """
    logger.info(f"Processing bulk draft {draft_id} (revision {revision})")
    result = asyncio.run(_run(owner, draft_id, revision))

    if result["status"] == "extraction_unavailable" and self.request.retries < self.max_retries:
        logger.warning(
            f"Retrying bulk draft {draft_id} "
            f"(attempt {self.request.retries + 1} of {self.max_retries})"
        )
        raise self.retry()

    logger.info(f"Bulk draft {draft_id}: {result['status']}")
    return result
