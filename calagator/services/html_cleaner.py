"""Markup removal for text headed to plain-text formats."""
import re
from typing import Optional

from bs4 import BeautifulSoup

BLOCK_BREAK = re.compile(r"\n{3,}")


def strip_html(content: Optional[str]) -> str:
    """Return the text of an HTML fragment with tags removed.

    Line breaks and paragraph ends become newlines; plain text comes back
    unchanged.
    """
    if not content:
        return ""
    if "<" not in content:
        return content
    soup = BeautifulSoup(content, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(["p", "div", "li"]):
        block.append("\n")
    text = soup.get_text()
    return BLOCK_BREAK.sub("\n\n", text).strip()
