"""A single user's form builder: working template, template list and notices."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from . import state as transitions
from .client import ResourceId, TemplateStoreClient, TemplateStoreError
from .codec import encode_template
from .state import BuilderState

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A transient message for the user."""

    level: str
    message: str


class FormBuilderSession:
    """Editor for one business's review form templates.

    All edits are synchronous transitions of ``state``; only ``save``,
    ``delete``, ``activate``, ``duplicate`` and the loaders talk to the store.
    Store failures become notices and leave the working state as it was.
    """

    def __init__(self, business_id: ResourceId, client: Optional[TemplateStoreClient] = None) -> None:
        self.business_id = business_id
        self.client = client or TemplateStoreClient()
        self.state = BuilderState()
        self.templates: List[Dict[str, Any]] = []
        self.notices: List[Notice] = []

    def notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    def pop_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def edit(self, transition: Callable[..., BuilderState], *args: Any, **kwargs: Any) -> BuilderState:
        """Apply a pure transition from ``form_builder.state`` to the working state."""

        self.state = transition(self.state, *args, **kwargs)
        return self.state

    def refresh_templates(self) -> bool:
        """Reload the template list; open the first one if nothing is open yet."""

        try:
            self.templates = self.client.list_templates(self.business_id)
        except TemplateStoreError:
            logger.exception("Loading templates for business %s failed", self.business_id)
            self.notify(ERROR, "Failed to load form templates")
            return False

        if self.templates and not self.state.is_saved and not self.state.creating_new:
            self.load(self.templates[0])
        return True

    def load(self, record: Dict[str, Any]) -> BuilderState:
        return self.edit(transitions.load_template, record)

    def business_review_url(self) -> str:
        try:
            business = self.client.get_business(self.business_id)
        except TemplateStoreError:
            logger.exception("Loading business %s failed", self.business_id)
            return ""
        return (business or {}).get("googleReviewUrl") or ""

    def create_new(self) -> BuilderState:
        """Start an unsaved template that inherits the business's review URL."""

        self.state = transitions.new_template(self.business_review_url())
        return self.state

    def save(self, activate: bool = True) -> bool:
        """Create or fully replace the working template in the store."""

        problem = transitions.check_saveable(self.state)
        if problem is not None:
            self.notify(ERROR, problem)
            return False

        payload = encode_template(self.state, self.business_id)
        was_saved = self.state.is_saved
        try:
            if was_saved:
                saved = self.client.update_template(self.state.template_id, payload)
            else:
                saved = self.client.create_template(payload)
        except TemplateStoreError:
            logger.exception("Saving template %r failed", self.state.name)
            self.notify(ERROR, "Failed to save form template")
            return False

        logger.info("Template %s saved for business %s", saved.get("id"), self.business_id)
        self.notify(SUCCESS, "Form updated successfully!" if was_saved else "Form created successfully!")
        self.state = transitions.load_template(self.state, saved)

        if activate and saved.get("id") is not None:
            self.activate(saved["id"])

        try:
            self.templates = self.client.list_templates(self.business_id)
        except TemplateStoreError as exc:
            logger.warning("Refreshing templates after save failed: %s", exc)
        return True

    def confirmation_message(self, template_name: str) -> str:
        if len(self.templates) == 1:
            return (
                f'Are you sure you want to delete "{template_name}"? This is your last '
                "template. You can always create a new one."
            )
        return f'Are you sure you want to delete "{template_name}"? This action cannot be undone.'

    def delete(
        self,
        template_id: ResourceId,
        confirm: Callable[[str], bool],
        template_name: Optional[str] = None,
    ) -> bool:
        """Delete a template after the user confirms.

        Deleting the open template switches the builder to a new, unsaved
        template rather than opening another stored one.
        """

        if template_name is None:
            template_name = next(
                (t.get("name", "") for t in self.templates if t.get("id") == template_id),
                "",
            )
        if not confirm(self.confirmation_message(template_name)):
            return False
        was_last = len(self.templates) == 1

        try:
            self.client.delete_template(template_id)
        except TemplateStoreError:
            logger.exception("Deleting template %s failed", template_id)
            self.notify(ERROR, "Failed to delete form template")
            return False

        logger.info("Template %s deleted", template_id)
        self.notify(SUCCESS, "Form template deleted successfully!")
        if self.state.template_id == template_id or (was_last and not self.state.creating_new):
            self.create_new()
        self.refresh_templates()
        return True

    def activate(self, template_id: ResourceId) -> bool:
        """Best effort: a failure is logged and never blocks the caller."""

        try:
            self.client.activate_template(template_id)
        except TemplateStoreError as exc:
            logger.warning("Activating template %s skipped: %s", template_id, exc)
            return False
        logger.info("Template %s activated", template_id)
        return True

    def duplicate(self, template_id: ResourceId) -> Optional[Dict[str, Any]]:
        try:
            copy = self.client.duplicate_template(template_id)
        except TemplateStoreError:
            logger.exception("Duplicating template %s failed", template_id)
            self.notify(ERROR, "Failed to duplicate form template")
            return None
        self.notify(SUCCESS, "Form template duplicated!")
        self.refresh_templates()
        return copy
