from __future__ import annotations

from ..extensions import db
from ..models import OrderDraft, UserSession
from ..wizard import OrderWizard


def load_wizard(session: UserSession) -> OrderWizard:
    draft = session.draft
    return OrderWizard.from_dict(draft.state if draft else None)


def store_wizard(session: UserSession, wizard: OrderWizard) -> None:
    state = wizard.to_dict()
    if session.draft is None:
        session.draft = OrderDraft(state=state)
    else:
        session.draft.state = state
    db.session.commit()


def discard_wizard(session: UserSession, commit: bool = True) -> None:
    if session.draft is not None:
        db.session.delete(session.draft)
        session.draft = None
    if commit:
        db.session.commit()
