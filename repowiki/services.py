# repowiki/services.py
import logging
from enum import Enum
from typing import List, Tuple

from .models import (
    ConfigurationBundle, NavigationTarget, RepositoryLocator,
    ResolutionFailure, ResolutionResult, SourceKind,
)
from .utils import (
    GENERIC_REF_RE, WINDOWS_PATH_RE, extract_url_path, path_segments, strip_git_suffix
)

logger = logging.getLogger(__name__)

LOCAL_OWNER = "local"
DEFAULT_LOCAL_REPO = "local-repo"


class ReferenceShape(str, Enum):
    WINDOWS = "windows"
    UNIX = "unix"
    GENERIC = "generic"
    UNRECOGNIZED = "unrecognized"


def classify_reference(text: str) -> ReferenceShape:
    """우선순위 순서대로 검사하며, 처음 일치한 형태가 결정됩니다."""
    text = text.strip()
    if WINDOWS_PATH_RE.match(text):
        return ReferenceShape.WINDOWS
    if text.startswith("/"):
        return ReferenceShape.UNIX
    if GENERIC_REF_RE.match(text):
        return ReferenceShape.GENERIC
    return ReferenceShape.UNRECOGNIZED


def _normalize_local_repo(name: str) -> str:
    return strip_git_suffix(name.strip()) or DEFAULT_LOCAL_REPO


def resolve_reference(raw_input: str) -> ResolutionResult:
    """
    Resolve a raw repository reference into a RepositoryLocator.
    Never raises: returns ResolutionFailure when the input cannot be resolved.
    """
    text = raw_input.strip()
    shape = classify_reference(text)

    if shape == ReferenceShape.WINDOWS:
        repo = _normalize_local_repo(text.split("\\")[-1])
        return RepositoryLocator(
            owner=LOCAL_OWNER, repo=repo, source_kind=SourceKind.LOCAL, local_path=text
        )

    if shape == ReferenceShape.UNIX:
        segments = path_segments(text)
        repo = _normalize_local_repo(segments[-1] if segments else "")
        return RepositoryLocator(
            owner=LOCAL_OWNER, repo=repo, source_kind=SourceKind.LOCAL, local_path=text
        )

    if shape == ReferenceShape.UNRECOGNIZED:
        logger.error("Unsupported URL format: %s", text)
        return ResolutionFailure(raw_input=raw_input, reason="unsupported_format")

    full_path = extract_url_path(text)
    full_path = strip_git_suffix(full_path) if full_path else None
    segments = path_segments(full_path) if full_path else []
    if len(segments) < 2:
        return ResolutionFailure(raw_input=raw_input, reason="empty_owner_or_repo")

    owner = segments[-2].strip()
    repo = strip_git_suffix(segments[-1].strip())
    if not owner or not repo:
        return ResolutionFailure(raw_input=raw_input, reason="empty_owner_or_repo")

    return RepositoryLocator(
        owner=owner, repo=repo, source_kind=SourceKind.GIT, full_path=full_path
    )


def build_wiki_request(
    locator: RepositoryLocator, config: ConfigurationBundle, raw_input: str
) -> NavigationTarget:
    """
    Build the navigation target for the wiki page.
    repo_url carries the raw user input, not the normalized locator.
    """
    is_local = locator.source_kind == SourceKind.LOCAL
    if is_local and not locator.local_path:
        raise ValueError("local locator without local_path")

    query: List[Tuple[str, str]] = []
    if config.access_token:
        query.append(("token", config.access_token))
    query.append(("type", "local" if is_local else (config.platform or "github")))
    if is_local:
        query.append(("local_path", locator.local_path))
    else:
        query.append(("repo_url", raw_input))
    query.append(("provider", config.provider))
    query.append(("model", config.model))
    if config.is_custom_model and config.custom_model:
        query.append(("custom_model", config.custom_model))
    # 파일 필터 설정은 그대로 전달
    if config.excluded_dirs:
        query.append(("excluded_dirs", config.excluded_dirs))
    if config.excluded_files:
        query.append(("excluded_files", config.excluded_files))
    query.append(("language", config.language))
    query.append(("comprehensive", "true" if config.comprehensive else "false"))

    return NavigationTarget(path=f"/{locator.owner}/{locator.repo}", query=query)
