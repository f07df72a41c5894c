"""
Shared pytest fixtures for mailshot tests.
"""

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from mailshot.models import BodyPart, Email, Mailbox


class FakeEmailClient:
    """In-memory mail server: mailboxes by name, emails by ID."""

    def __init__(self) -> None:
        self.mailboxes: Dict[str, Mailbox] = {}
        self.emails: Dict[str, Email] = {}
        self.order: List[str] = []
        self.move_error: Optional[Exception] = None
        self.get_emails_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.fetch_calls: List[List[str]] = []
        self.moves: List[tuple] = []

    def add_mailbox(self, mailbox_id: str, name: str) -> Mailbox:
        mailbox = Mailbox(id=mailbox_id, name=name)
        self.mailboxes[name] = mailbox
        return mailbox

    def add_email(self, email: Email) -> None:
        self.emails[email.id] = email
        self.order.append(email.id)

    def find_mailbox_by_name(self, name: str) -> Mailbox:
        if name not in self.mailboxes:
            raise RuntimeError(f"mailbox '{name}' not found")
        return self.mailboxes[name]

    def get_emails_in_mailbox(self, mailbox_id: str, limit: int = 0) -> List[str]:
        if self.list_error is not None:
            raise self.list_error
        ids = [i for i in self.order if self.emails[i].mailbox_ids.get(mailbox_id)]
        if limit > 0:
            return ids[:limit]
        return ids

    def get_emails(self, email_ids: List[str]) -> List[Email]:
        self.fetch_calls.append(list(email_ids))
        if self.get_emails_error is not None:
            raise self.get_emails_error
        return [self.emails[i] for i in email_ids if i in self.emails]

    def move_email(self, email_id: str, source_mailbox_id: str, target_mailbox_id: str) -> None:
        if self.move_error is not None:
            raise self.move_error
        self.moves.append((email_id, source_mailbox_id, target_mailbox_id))
        ids = self.emails[email_id].mailbox_ids
        ids.pop(source_mailbox_id, None)
        ids[target_mailbox_id] = True


class FakeScreenshotService:
    """Writes placeholder image bytes and records every call."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    def generate_screenshot(self, received_at: str, email_id: str, html_content: str) -> Path:
        self.calls.append((received_at, email_id, html_content))
        if self.error is not None:
            raise self.error
        path = self.output_dir / f"{email_id}.png"
        path.write_bytes(b"\x89PNG fake")
        return path


def make_email(email_id: str, mailbox_id: str, html: Optional[str] = "<p>Hello</p>") -> Email:
    email = Email(
        id=email_id,
        subject=f"Subject {email_id}",
        received_at="2024-03-05T14:07:09Z",
        mailbox_ids={mailbox_id: True},
    )
    if html is not None:
        email.html_body = [BodyPart(part_id="1")]
        email.body_values = {"1": html}
    return email


@pytest.fixture
def client() -> FakeEmailClient:
    """Server with source (mb-src) and archive (mb-arc) folders, no emails."""
    fake = FakeEmailClient()
    fake.add_mailbox("mb-src", "_aar")
    fake.add_mailbox("mb-arc", "_aar_processed")
    return fake


@pytest.fixture
def generator(tmp_path) -> FakeScreenshotService:
    return FakeScreenshotService(tmp_path)


@pytest.fixture
def session_json() -> dict:
    """JMAP session resource as returned by the session endpoint."""
    return {
        "accounts": {"u123": {"name": "user@example.com"}},
        "primaryAccounts": {
            "urn:ietf:params:jmap:core": "u123",
            "urn:ietf:params:jmap:mail": "u123",
        },
        "apiUrl": "https://api.example.com/jmap/api/",
    }
