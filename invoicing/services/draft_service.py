"""
Invoice drafts: up to ``max_drafts`` forms in progress, one of them active.

The collection and the active id are mirrored into a key-value store. Form
edits are persisted after a quiet period (debounce); a persist only happens
when the serialized form differs from the snapshot last stored for the
active draft.
"""
from __future__ import annotations

import json
import logging
from typing import Callable, List, Literal, Optional

from pydantic import ValidationError

from invoicing.models.common import gen_id, utcnow
from invoicing.models.draft import InvoiceDraft
from invoicing.models.invoice import InvoiceForm
from invoicing.services.scheduler import Scheduler, TaskHandle
from invoicing.storage.kv_store import KeyValueStore

log = logging.getLogger(__name__)

DRAFTS_KEY = "invoiceDrafts"
ACTIVE_KEY = "activeInvoiceId"
FIRST_DRAFT_ID = "draft-1"
MAX_DRAFTS = 4

DraftState = Literal["idle", "dirty", "persisting"]


class DraftCapacityExceeded(RuntimeError):
    def __init__(self, max_drafts: int):
        super().__init__(f"You can only work on up to {max_drafts} invoices at a time.")
        self.max_drafts = max_drafts


class DraftService:
    def __init__(
        self,
        store: KeyValueStore,
        scheduler: Scheduler,
        default_factory: Callable[[], InvoiceForm] = InvoiceForm.default,
        *,
        max_drafts: int = MAX_DRAFTS,
        debounce_seconds: float = 2.0,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.default_factory = default_factory
        self.max_drafts = min(MAX_DRAFTS, max(1, int(max_drafts)))
        self.debounce_seconds = debounce_seconds

        self._drafts: List[InvoiceDraft] = []
        self._active_id: str = FIRST_DRAFT_ID
        self._state: DraftState = "idle"
        self._pending: Optional[TaskHandle] = None
        self._pending_form: Optional[InvoiceForm] = None
        self.load()

    # ---------- state ---------- #

    @property
    def drafts(self) -> List[InvoiceDraft]:
        return list(self._drafts)

    @property
    def active_id(self) -> str:
        return self._active_id

    @property
    def active_draft(self) -> InvoiceDraft:
        return self._get(self._active_id)

    @property
    def state(self) -> DraftState:
        return self._state

    def _get(self, draft_id: str) -> InvoiceDraft:
        for d in self._drafts:
            if d.id == draft_id:
                return d
        raise KeyError(f"Draft {draft_id!r} not found")

    @staticmethod
    def _new_id() -> str:
        return f"draft-{gen_id()}"

    def _fresh(self, draft_id: str, name: str) -> InvoiceDraft:
        return InvoiceDraft(id=draft_id, name=name, data=self.default_factory())

    # ---------- store ---------- #

    def load(self) -> None:
        self._cancel_pending()
        drafts: List[InvoiceDraft] = []
        raw = self.store.get(DRAFTS_KEY)
        if raw:
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    drafts = [InvoiceDraft.model_validate(d) for d in parsed]
            except (json.JSONDecodeError, ValidationError) as e:
                log.error("Error loading invoice drafts: %s", e)
                drafts = []
        self._drafts = drafts[: self.max_drafts] or [self._fresh(FIRST_DRAFT_ID, "Invoice 1")]

        saved_active = self.store.get(ACTIVE_KEY)
        ids = [d.id for d in self._drafts]
        self._set_active(saved_active if saved_active in ids else ids[0])

    def _save_drafts(self) -> None:
        self.store.set(DRAFTS_KEY, json.dumps([d.model_dump(mode="json") for d in self._drafts]))

    def _set_active(self, draft_id: str) -> None:
        self._active_id = draft_id
        self.store.set(ACTIVE_KEY, draft_id)

    # ---------- debounce ---------- #

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_form = None
        self._state = "idle"

    def mark_changed(self, form: InvoiceForm) -> None:
        """Form changed: (re)arm the persist timer for the active draft."""
        if self._pending is not None:
            self._pending.cancel()
        self._pending_form = form
        self._state = "dirty"
        draft_id = self._active_id
        self._pending = self.scheduler.call_later(self.debounce_seconds, lambda: self._persist(draft_id))

    def refresh_pending(self, form: InvoiceForm) -> None:
        """Point an armed persist at ``form`` without re-arming the timer."""
        if self._pending is not None:
            self._pending_form = form

    def _persist(self, draft_id: str) -> bool:
        form = self._pending_form
        self._pending = None
        self._pending_form = None
        if form is None or draft_id != self._active_id:
            self._state = "idle"
            return False

        self._state = "persisting"
        try:
            draft = self._get(draft_id)
            current = form.model_dump_json()
            if current == draft.snapshot():
                log.debug("Draft %s unchanged, not persisted", draft_id)
                return False
            draft.data = InvoiceForm.model_validate_json(current)
            draft.last_updated = utcnow()
            self._save_drafts()
            log.debug("Draft %s persisted", draft_id)
            return True
        finally:
            self._state = "idle"

    def flush(self) -> bool:
        """Persist a pending change right away."""
        if self._pending is None:
            return False
        self._pending.cancel()
        return self._persist(self._active_id)

    def close(self) -> None:
        """Teardown: drop any pending persist."""
        self._cancel_pending()

    # ---------- operations ---------- #

    def add_draft(self) -> InvoiceDraft:
        if len(self._drafts) >= self.max_drafts:
            log.warning("Draft limit reached (%d)", self.max_drafts)
            raise DraftCapacityExceeded(self.max_drafts)
        self._cancel_pending()
        draft = self._fresh(self._new_id(), f"Invoice {len(self._drafts) + 1}")
        self._drafts.append(draft)
        self._save_drafts()
        self._set_active(draft.id)
        return draft

    def switch_to(self, draft_id: str) -> InvoiceForm:
        """Make ``draft_id`` active and return a copy of its stored form."""
        target = self._get(draft_id)
        self._cancel_pending()
        self._set_active(target.id)
        return target.data.model_copy(deep=True)

    def remove_draft(self, draft_id: str) -> None:
        self._get(draft_id)
        if draft_id == self._active_id:
            self._cancel_pending()
        self._drafts = [d for d in self._drafts if d.id != draft_id]
        if not self._drafts:
            self._drafts.append(self._fresh(self._new_id(), "Invoice 1"))
        self._save_drafts()
        if self._active_id not in [d.id for d in self._drafts]:
            self._set_active(self._drafts[0].id)

    def complete_active(self) -> InvoiceForm:
        """The active draft became an invoice: drop it.

        Returns the form of the draft that is active afterwards; when the
        submitted draft was the only one, that is a fresh default form.
        """
        self.remove_draft(self._active_id)
        return self.active_draft.data.model_copy(deep=True)

    def reset_all(self) -> InvoiceForm:
        self._cancel_pending()
        self._drafts = [self._fresh(FIRST_DRAFT_ID, "Invoice 1")]
        self._save_drafts()
        self._set_active(FIRST_DRAFT_ID)
        return self._drafts[0].data.model_copy(deep=True)
