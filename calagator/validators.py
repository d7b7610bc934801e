"""Field validation rules shared by the models and the schemas."""
import re
from pathlib import Path
from typing import List, Optional, Pattern

from calagator.config import get_settings
from calagator.logging_config import get_logger

logger = get_logger("validators")

SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

URL_PATTERN = re.compile(
    r"^https?://"
    r"[a-z0-9]+([\-.][a-z0-9]+)*\.[a-z]{2,6}"  # host
    r"(:[0-9]{1,5})?"                          # port
    r"(/[^\s]*)?$",                            # path and query
    re.IGNORECASE,
)

DEFAULT_BLACKLIST = [
    r"\bcialis\b",
    r"\bviagra\b",
    r"\blevitra\b",
]


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Strip the url and prefix ``http://`` when it carries no scheme."""
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None
    if not SCHEME_PATTERN.match(url):
        url = f"http://{url}"
    return url


def is_valid_url(url: str) -> bool:
    # fullmatch keeps a trailing newline from sneaking past "$"
    return URL_PATTERN.fullmatch(url) is not None


class BlacklistValidator:
    """Rejects text matching any spam pattern.

    Patterns are read from ``BLACKLIST_FILE`` (one regular expression per
    line, blank lines and ``#`` comments ignored) or fall back to a small
    built-in list.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path if path is not None else get_settings().BLACKLIST_FILE
        self._patterns: Optional[List[Pattern]] = None

    @property
    def patterns(self) -> List[Pattern]:
        if self._patterns is None:
            self._patterns = [re.compile(line) for line in self._load_lines()]
        return self._patterns

    def _load_lines(self) -> List[str]:
        if not self.path:
            return DEFAULT_BLACKLIST
        path = Path(self.path)
        if not path.exists():
            logger.warning(f"Blacklist file not found: {path}, using built-in patterns")
            return DEFAULT_BLACKLIST
        lines = path.read_text(encoding="utf-8").splitlines()
        return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]

    def is_blacklisted(self, text: Optional[str]) -> bool:
        if not text:
            return False
        return any(pattern.search(text) for pattern in self.patterns)
