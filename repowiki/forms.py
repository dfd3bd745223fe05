# repowiki/forms.py
import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from .models import (
    ConfigurationBundle, FormState, NavigationTarget, RepositoryLocator, ResolutionFailure,
)
from .services import build_wiki_request, resolve_reference
from .utils import INVALID_REFERENCE_MESSAGE

logger = logging.getLogger(__name__)

Navigator = Callable[[NavigationTarget], None]


class FormStateError(RuntimeError):
    """Raised for a transition the form does not offer in its current state."""


class InvalidReferenceFormat(RuntimeError):
    def __init__(self, message: str = INVALID_REFERENCE_MESSAGE):
        super().__init__(message)


class WikiRequestForm:
    """
    Repository input form for one session.

    Duplicate submission is suppressed for the lifetime of the form:
    once a confirm is accepted, is_submitting stays True until the form is discarded.
    """

    def __init__(self, navigate: Optional[Navigator] = None, repository_input: str = ""):
        self._navigate = navigate
        self._lock = threading.RLock()
        self.state = FormState.IDLE
        self.repository_input = repository_input
        self.error: Optional[str] = None
        self.locator: Optional[RepositoryLocator] = None
        self.target: Optional[NavigationTarget] = None

    @property
    def is_submitting(self) -> bool:
        return self.state in (FormState.SUBMITTING, FormState.NAVIGATED)

    @property
    def is_dialog_open(self) -> bool:
        return self.state == FormState.CONFIG_PENDING

    def edit(self, repository_input: str) -> None:
        with self._lock:
            if self.is_submitting:
                raise FormStateError("Form is already submitting")
            self.repository_input = repository_input
            self.error = None

    def submit(self, repository_input: Optional[str] = None) -> Optional[RepositoryLocator]:
        """폼 제출: 입력을 검증하고 성공하면 설정 대화상자를 엽니다."""
        with self._lock:
            if self.is_submitting:
                raise FormStateError("Form is already submitting")
            if repository_input is not None:
                self.repository_input = repository_input
            self.state = FormState.RESOLVING
            result = resolve_reference(self.repository_input)
            if isinstance(result, ResolutionFailure):
                self.error = INVALID_REFERENCE_MESSAGE
                self.locator = None
                self.state = FormState.IDLE
                return None
            self.error = None
            self.locator = result
            self.state = FormState.CONFIG_PENDING
            return result

    def cancel(self) -> None:
        with self._lock:
            if self.state == FormState.CONFIG_PENDING:
                self.state = FormState.IDLE

    def confirm(self, config: ConfigurationBundle) -> Optional[NavigationTarget]:
        """
        Confirm the configuration dialog and navigate to the wiki page.

        Returns None when the confirm is ignored (already submitting) or when
        re-validation of the stored input fails; in the latter case ``error`` is set.
        """
        # 다른 전이가 끝날 때까지 기다린 뒤, 이미 제출 중이면 거절
        with self._lock:
            if self.is_submitting:
                logger.info("Form submission already in progress, ignoring duplicate click")
                return None
            if self.state != FormState.CONFIG_PENDING:
                raise FormStateError(f"Cannot confirm from state {self.state.value}")

            self.state = FormState.SUBMITTING
            result = resolve_reference(self.repository_input)
            if isinstance(result, ResolutionFailure):
                self.error = INVALID_REFERENCE_MESSAGE
                self.state = FormState.CONFIG_PENDING
                return None

            self.locator = result
            target = build_wiki_request(result, config, self.repository_input)
            if self._navigate is not None:
                self._navigate(target)
            self.target = target
            self.error = None
            self.state = FormState.NAVIGATED
            return target


class FormRegistry:
    """세션 ID별 폼 보관소. 마지막 접근 시각을 기록해 TTL 정리에 사용합니다."""

    def __init__(self, navigate: Optional[Navigator] = None):
        self._navigate = navigate
        self._lock = threading.Lock()
        self._forms: Dict[str, WikiRequestForm] = {}
        self._touched: Dict[str, float] = {}

    def get(self, session_id: str) -> WikiRequestForm:
        with self._lock:
            form = self._forms.get(session_id)
            if form is None:
                form = WikiRequestForm(navigate=self._navigate)
                self._forms[session_id] = form
                logger.info("Form created for session %s", session_id)
            self._touched[session_id] = time.time()
            return form

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._forms

    def __len__(self) -> int:
        with self._lock:
            return len(self._forms)

    def discard(self, session_id: str) -> bool:
        with self._lock:
            self._touched.pop(session_id, None)
            removed = self._forms.pop(session_id, None) is not None
        if removed:
            logger.info("Form discarded for session %s", session_id)
        return removed

    def expired(self, ttl_seconds: float, now: Optional[float] = None) -> List[str]:
        now = time.time() if now is None else now
        with self._lock:
            return [sid for sid, ts in self._touched.items() if now - ts > ttl_seconds]

    def sweep(self, ttl_seconds: float, now: Optional[float] = None) -> int:
        stale = self.expired(ttl_seconds, now)
        for session_id in stale:
            self.discard(session_id)
        return len(stale)
