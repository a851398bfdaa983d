import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MAX_PART_DEPTH = 32

PLAIN_MIME = "text/plain"
HTML_MIME = "text/html"

_INVISIBLE_CHARS = re.compile("[\u0591-\u05C7\u200B-\u200F\u202A-\u202E\u2066-\u2069\uFEFF]")
_BRACKET_TOKENS = re.compile(r"\[\/?[^\]]+\]")
_URLS = re.compile(r"https?://\S+")
_INLINE_SPACES = re.compile(r"[^\S\r\n]+")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

_SKIPPED_TAGS = ["img", "style", "script", "head", "title", "meta"]


@dataclass
class MessagePart:
    """One node of a Gmail payload tree."""
    mime_type: str = ""
    data: Optional[str] = None
    filename: str = ""
    size: int = 0
    parts: List["MessagePart"] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[dict], depth: int = 0) -> "MessagePart":
        if not payload:
            return cls()
        body = payload.get("body") or {}
        children = []
        if depth < MAX_PART_DEPTH:
            children = [cls.from_payload(p, depth + 1) for p in payload.get("parts") or [] if p]
        else:
            logger.warning(f"Payload nested deeper than {MAX_PART_DEPTH} levels, ignoring children")
        return cls(
            mime_type=(payload.get("mimeType") or "").lower(),
            data=body.get("data"),
            filename=payload.get("filename") or "",
            size=body.get("size") or 0,
            parts=children,
        )

    def walk(self):
        """Yield this node and all descendants in document order."""
        yield self
        for part in self.parts:
            yield from part.walk()


@dataclass
class DecodedBody:
    html: str = ""
    plain: str = ""


def decode_base64url(data: Optional[str]) -> str:
    """Decode a Gmail base64url body. Malformed input yields an empty string."""
    if not data:
        return ""
    try:
        normalized = re.sub(r"\s+", "", data).replace("-", "+").replace("_", "/").rstrip("=")
        normalized += "=" * (-len(normalized) % 4)
        raw = base64.b64decode(normalized, validate=True)
        return raw.decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError) as e:
        logger.error(f"Base64 decode error: {e}")
        return ""


def html_to_text(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(_SKIPPED_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    return soup.get_text(separator="\n")


def clean_text(text: str) -> str:
    if not text:
        return ""
    text = _INVISIBLE_CHARS.sub("", text)
    text = _BRACKET_TOKENS.sub("", text)
    text = _URLS.sub("", text)
    text = _INLINE_SPACES.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def _collect_from_parts(parts: List[MessagePart]):
    html_chunks, plain_chunks = [], []
    for part in parts:
        if part.mime_type == PLAIN_MIME and part.data:
            plain_chunks.append(decode_base64url(part.data))
        elif part.mime_type == HTML_MIME and part.data:
            html_chunks.append(decode_base64url(part.data))
        elif part.parts:
            nested_html, nested_plain = _collect_from_parts(part.parts)
            html_chunks.append(nested_html)
            plain_chunks.append(nested_plain)
    return "".join(html_chunks), "".join(plain_chunks)


def _collect_any_leaf(root: MessagePart):
    html_chunks, plain_chunks = [], []
    for node in root.walk():
        if node.parts or not node.data or node.filename:
            continue
        text = decode_base64url(node.data)
        if "html" in node.mime_type:
            html_chunks.append(text)
        else:
            plain_chunks.append(text)
    return "".join(html_chunks), "".join(plain_chunks)


def _finalize(html: str, plain: str) -> DecodedBody:
    html_text = clean_text(html_to_text(html)) if html else ""
    plain_text = clean_text(plain)
    return DecodedBody(
        html=html.strip() if html_text else plain_text,
        plain=plain_text or html_text,
    )


def decode_body(payload) -> DecodedBody:
    """
    Turn a Gmail payload tree into (html-like text, plain text).

    A direct body wins; otherwise text/plain and text/html children are
    accumulated in document order. When nothing is found a generic walk
    collects any decodable leaf.
    """
    root = payload if isinstance(payload, MessagePart) else MessagePart.from_payload(payload)

    if root.data:
        decoded = decode_base64url(root.data)
        if root.mime_type == PLAIN_MIME:
            plain = clean_text(decoded)
            return DecodedBody(html=plain, plain=plain)
        return DecodedBody(html=decoded.strip(), plain=clean_text(html_to_text(decoded)))

    result = DecodedBody()
    if root.parts:
        html, plain = _collect_from_parts(root.parts)
        result = _finalize(html, plain)

    if not result.html and not result.plain:
        html, plain = _collect_any_leaf(root)
        result = _finalize(html, plain)
    return result


def collect_attachments(payload) -> List[dict]:
    root = payload if isinstance(payload, MessagePart) else MessagePart.from_payload(payload)
    return [
        {"filename": node.filename, "mime_type": node.mime_type, "size": node.size}
        for node in root.walk()
        if node.filename
    ]
