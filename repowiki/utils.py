import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

# 환경 변수 기반 설정
SESSION_TTL_SECONDS = int(os.getenv("REPOWIKI_SESSION_TTL_SECONDS", "300"))
CLEAN_INTERVAL_SECONDS = int(os.getenv("REPOWIKI_CLEAN_INTERVAL_SECONDS", "300"))
DEFAULT_LANGUAGE = os.getenv("REPOWIKI_DEFAULT_LANGUAGE", "en")
MESSAGES_FILE = os.getenv("REPOWIKI_MESSAGES_FILE")
CORS_ORIGINS = [o.strip() for o in os.getenv("REPOWIKI_CORS_ORIGINS", "*").split(",") if o.strip()]

SUPPORTED_LANGUAGES = ["en", "ja", "zh", "zh-tw", "es", "kr", "vi", "pt-br", "fr", "ru"]

INVALID_REFERENCE_MESSAGE = (
    'Invalid repository format. Use "owner/repo", GitHub/GitLab/BitBucket URL, '
    'or a local folder path like "/path/to/folder" or "C:\\path\\to\\folder".'
)

# 드라이브 문자 + 콜론 + 백슬래시, 이후 특수문자 없는 세그먼트들
WINDOWS_PATH_RE = re.compile(r'^[a-zA-Z]:\\(?:[^\\/:*?"<>|\r\n]+\\)*[^\\/:*?"<>|\r\n]*$')
# (scheme://)? segment(/segment)+ (.git)? /?
GENERIC_REF_RE = re.compile(r"^(?:https?://)?[^/\s]+(?:/[^/\s]+)+?(?:\.git)?/?$")
SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
HOST_LIKE_RE = re.compile(r"^(?:localhost|[^/\s]*\.[^/\s]*|[^/\s]+:\d+)$", re.IGNORECASE)

DEFAULT_MESSAGES: Dict[str, Any] = {
    "common": {
        "generateWiki": "Generate Wiki",
        "processing": "Processing...",
        "cancel": "Cancel",
    },
    "form": {
        "repoPlaceholder": "owner/repo, GitHub/GitLab/BitBucket URL, or local folder path",
        "wikiType": "Wiki Type",
        "comprehensive": "Comprehensive",
        "concise": "Concise",
    },
    "nav": {
        "wikiProjects": "Wiki Projects",
    },
}

Translator = Callable[..., str]


def strip_git_suffix(value: str) -> str:
    return value[:-4] if value.endswith(".git") else value


def extract_url_path(text: str) -> Optional[str]:
    """
    URL 형태의 참조에서 호스트 뒤의 경로(owner/.../repo)를 추출합니다.
    scheme이 없고 첫 세그먼트가 호스트처럼 보이지 않으면 전체를 경로로 취급합니다.
    """
    rest = SCHEME_RE.sub("", text, count=1)
    has_scheme = rest != text
    head, sep, tail = rest.partition("/")
    if not sep:
        return None
    if has_scheme or HOST_LIKE_RE.match(head):
        path = tail
    else:
        path = rest
    path = path.strip("/")
    return path or None


def path_segments(path: str, sep: str = "/") -> List[str]:
    return [part for part in path.split(sep) if part]


def make_translator(messages: Mapping[str, Any]) -> Translator:
    """점(.)으로 구분된 키로 중첩 메시지를 찾고, 없으면 키 자체를 돌려줍니다."""

    def t(key: str, params: Optional[Mapping[str, Any]] = None) -> str:
        value: Any = messages
        for part in key.split("."):
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            else:
                return key
        if not isinstance(value, str):
            return key
        for name, param in (params or {}).items():
            value = value.replace(f"{{{name}}}", str(param), 1)
        return value

    return t


def load_messages(path: Optional[str] = None) -> Dict[str, Any]:
    """메시지 카탈로그(JSON)를 읽습니다. 파일이 없으면 기본 영어 메시지를 사용합니다."""
    path = path or MESSAGES_FILE
    if not path:
        return DEFAULT_MESSAGES
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Messages file must contain a JSON object: {path}")
    logger.info("Loaded messages from %s", path)
    return data
