import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from google.oauth2.credentials import Credentials

from pennytrail.core.config import settings
from pennytrail.core.exceptions import MailFetchError, MailNotFoundError, MailRateLimitError
from pennytrail.models.user import User
from pennytrail.utils.email_parser import collect_attachments, decode_body

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/gmail.readonly']

RATE_LIMIT_REASONS = ("rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded")


def _load_credentials(user: User) -> Credentials:
    return Credentials(
        token=user.access_token,
        refresh_token=user.refresh_token,
        token_uri=settings.GOOGLE_TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        scopes=SCOPES,
    )


def build_service_for_user(user: User):
    creds = _load_credentials(user)
    return build('gmail', 'v1', credentials=creds, cache_discovery=False)


def translate_http_error(error: HttpError, context: str) -> MailFetchError:
    status = getattr(error.resp, "status", None)
    reason = str(error)
    if status == 429 or (status == 403 and any(r in reason for r in RATE_LIMIT_REASONS)):
        return MailRateLimitError(f"Gmail rate limit hit while {context}: {reason}")
    if status == 404:
        return MailNotFoundError(f"Gmail resource not found while {context}")
    return MailFetchError(f"Gmail error while {context}: {reason}")


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _header(headers: List[dict], name: str) -> str:
    return next((h.get('value', '') for h in headers if h.get('name', '').lower() == name.lower()), '')


def _parse_received_at(date_header: str, internal_date) -> datetime:
    if date_header:
        try:
            return _to_utc(parsedate_to_datetime(date_header))
        except (TypeError, ValueError):
            logger.warning(f"Failed to parse date header {date_header!r}")
    if internal_date:
        return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)  # milliseconds → seconds
    return datetime.now(timezone.utc)


def to_message_record(message: dict) -> dict:
    """Map a full-format Gmail message onto the stored email fields."""
    payload = message.get('payload') or {}
    headers = payload.get('headers') or []
    decoded = decode_body(payload)

    body = decoded.html or decoded.plain or message.get('snippet') or ''
    return {
        'message_id': message.get('id'),
        'thread_id': message.get('threadId'),
        'subject': _header(headers, 'Subject') or 'No Subject',
        'sender': _header(headers, 'From') or 'Unknown Sender',
        'recipient': _header(headers, 'To'),
        'received_at': _parse_received_at(_header(headers, 'Date'), message.get('internalDate')),
        'body': body,
        'body_plain': decoded.plain or message.get('snippet') or '',
        'labels': message.get('labelIds') or [],
        'attachments': collect_attachments(payload),
    }


class GmailFetcher:
    """Mail Fetcher backed by the Gmail API. Calls are blocking."""

    def __init__(self, service_factory=build_service_for_user):
        self.service_factory = service_factory

    def list_new_messages(self, user: User, since: Optional[datetime] = None, max_results: int = 50) -> List[str]:
        """Ids of messages newer than ``since`` (all messages when None), newest first."""
        limit = max(1, min(max_results, settings.GMAIL_MAX_RESULTS))
        params = {"userId": "me", "maxResults": limit}
        if since:
            params["q"] = f"after:{int(_to_utc(since).timestamp())}"

        logger.info(f"[user {user.id}] Listing Gmail messages with query: {params.get('q', '<all>')}")
        svc = self.service_factory(user)

        ids: List[str] = []
        page_token = None
        try:
            while len(ids) < limit:
                if page_token:
                    params["pageToken"] = page_token
                resp = svc.users().messages().list(**params).execute()
                ids.extend(m['id'] for m in resp.get('messages', []))
                page_token = resp.get('nextPageToken')
                if not page_token:
                    break
        except HttpError as e:
            raise translate_http_error(e, f"listing messages for user {user.id}") from e

        return ids[:limit]

    def get_message_detail(self, user: User, message_id: str) -> dict:
        svc = self.service_factory(user)
        try:
            return svc.users().messages().get(userId='me', id=message_id, format='full').execute()
        except HttpError as e:
            raise translate_http_error(e, f"fetching message {message_id}") from e

    def fetch_message(self, user: User, message_id: str) -> dict:
        return to_message_record(self.get_message_detail(user, message_id))
