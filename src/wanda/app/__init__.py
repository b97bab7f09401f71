"""Application runtime exports."""

from wanda.app.bootstrap import AppContext, build_app
from wanda.app.runtime import ConversationRuntime, Selection, Session, SessionStatus

__all__ = ["AppContext", "ConversationRuntime", "Selection", "Session", "SessionStatus", "build_app"]
