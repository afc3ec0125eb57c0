"""
Draft repository.

Layout in the keyed store::

    drafts:{owner}:{draft_id}        Draft metadata (JSON)
    draft_blobs:{draft_id}:{n}       one attached document (JSON, base64 data)

Metadata stays small so listing a user's drafts never touches document
bytes. Deleting removes blobs before metadata, so a draft that still lists
is never missing its documents in a way that looks valid.
"""
import base64
import logging
import time
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import uuid4

from pydantic import ValidationError

from app.core.config import settings
from app.models.enums import DraftSource
from app.schemas.draft import DocumentMeta, Draft, ResumedDraft
from app.schemas.quote import Quote
from app.schemas.shipment_form import ShipmentForm
from app.services.extraction import UploadDocument, UploadValidationError
from app.services.stores import KeyValueStore

logger = logging.getLogger(__name__)


class DraftNotFoundError(Exception):
    """No draft with that id for this owner."""

    def __init__(self, draft_id: str):
        super().__init__(f"Draft {draft_id} not found")
        self.draft_id = draft_id


def generate_draft_id() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}_{uuid4().hex[:8]}"


def _meta_key(owner: str, draft_id: str) -> str:
    return f"drafts:{owner}:{draft_id}"


def _blob_prefix(draft_id: str) -> str:
    return f"draft_blobs:{draft_id}:"


class DraftRepository:
    """Per-owner draft persistence over a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _load(self, owner: str, draft_id: str) -> Optional[Draft]:
        raw = await self.store.get_json(_meta_key(owner, draft_id))
        if raw is None:
            return None
        try:
            return Draft.model_validate(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed draft %s: %s", draft_id, e)
            return None

    async def _write(self, draft: Draft) -> None:
        await self.store.put_json(_meta_key(draft.owner, draft.id), draft.model_dump(mode="json"))

    async def get_draft(self, owner: str, draft_id: str) -> Draft:
        draft = await self._load(owner, draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    async def save_draft(
        self,
        owner: str,
        form: ShipmentForm,
        quote: Optional[Quote] = None,
        *,
        source: DraftSource = DraftSource.MANUAL,
        needs_extraction: bool = False,
        draft_id: Optional[str] = None,
    ) -> Draft:
        """
        Create a draft, or update one in place when ``draft_id`` is given.

        Attached documents are kept across updates; the revision increments
        so queued extraction results for the old revision are discarded.
        """
        now = datetime.now(timezone.utc)

        if draft_id is not None:
            existing = await self.get_draft(owner, draft_id)
            draft = existing.model_copy(update={
                "updated_at": now,
                "revision": existing.revision + 1,
                "form": form,
                "quote": None if needs_extraction else quote,
                "source": source,
                "needs_extraction": needs_extraction,
            })
        else:
            draft = Draft(
                id=generate_draft_id(),
                owner=owner,
                created_at=now,
                updated_at=now,
                form=form,
                quote=None if needs_extraction else quote,
                source=source,
                needs_extraction=needs_extraction,
            )

        await self._write(draft)
        logger.info("Draft %s saved (revision %d)", draft.id, draft.revision)
        return draft

    async def attach_documents(
        self,
        owner: str,
        draft_id: str,
        documents: Sequence[UploadDocument],
    ) -> Draft:
        draft = await self.get_draft(owner, draft_id)
        if draft.doc_count + len(documents) > settings.max_upload_files:
            raise UploadValidationError(
                f"A draft holds at most {settings.max_upload_files} documents"
            )

        metas = list(draft.documents)
        for offset, doc in enumerate(documents):
            index = draft.doc_count + offset
            await self.store.put_json(f"{_blob_prefix(draft_id)}{index}", {
                "name": doc.name,
                "content_type": doc.content_type,
                "data": base64.b64encode(doc.data).decode("ascii"),
            })
            metas.append(DocumentMeta(name=doc.name, content_type=doc.content_type, size=doc.size))

        draft = draft.model_copy(update={
            "documents": metas,
            "doc_count": len(metas),
            "updated_at": datetime.now(timezone.utc),
        })
        await self._write(draft)
        return draft

    async def get_documents(self, owner: str, draft_id: str) -> list[UploadDocument]:
        draft = await self.get_draft(owner, draft_id)
        documents = []
        for index in range(draft.doc_count):
            blob = await self.store.get_json(f"{_blob_prefix(draft_id)}{index}")
            if not isinstance(blob, dict):
                logger.warning("Draft %s is missing document %d", draft_id, index)
                continue
            documents.append(UploadDocument(
                name=blob.get("name", "document"),
                content_type=blob.get("content_type", "application/octet-stream"),
                data=base64.b64decode(blob.get("data", "")),
            ))
        return documents

    async def list_drafts(self, owner: str) -> list[Draft]:
        """Owner's drafts, newest first. Reads metadata only."""
        drafts = []
        for key in await self.store.keys(f"drafts:{owner}:"):
            draft_id = key.rsplit(":", 1)[-1]
            draft = await self._load(owner, draft_id)
            if draft is not None:
                drafts.append(draft)
        drafts.sort(key=lambda d: d.created_at, reverse=True)
        return drafts

    async def resume_draft(self, owner: str, draft_id: str) -> ResumedDraft:
        """
        Everything needed to continue a draft.

        A draft that still needs extraction never exposes a quote.
        """
        draft = await self.get_draft(owner, draft_id)
        return ResumedDraft(
            draft_id=draft.id,
            form=draft.form,
            quote=None if draft.needs_extraction else draft.quote,
            doc_count=draft.doc_count,
            documents=draft.documents,
            needs_extraction=draft.needs_extraction,
        )

    async def delete_draft(self, owner: str, draft_id: str) -> None:
        """Delete documents first, then metadata."""
        await self.get_draft(owner, draft_id)
        blob_keys = await self.store.keys(_blob_prefix(draft_id))
        if blob_keys:
            await self.store.delete(*blob_keys)
        await self.store.delete(_meta_key(owner, draft_id))
        logger.info("Draft %s deleted (%d documents)", draft_id, len(blob_keys))

    async def apply_extraction_if_current(
        self,
        owner: str,
        draft_id: str,
        revision: int,
        form: ShipmentForm,
        quote: Optional[Quote],
    ) -> bool:
        """
        Store a background extraction result.

        Returns False, writing nothing, when the draft was deleted or edited
        since the work was queued.
        """
        draft = await self._load(owner, draft_id)
        if draft is None or draft.revision != revision:
            logger.info("Discarding stale extraction result for draft %s", draft_id)
            return False

        draft = draft.model_copy(update={
            "form": form,
            "quote": quote,
            "needs_extraction": False,
            "revision": draft.revision + 1,
            "updated_at": datetime.now(timezone.utc),
        })
        await self._write(draft)
        return True
