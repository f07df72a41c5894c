import logging
from typing import Any, Dict, List, Optional

import requests

from .models import Email, Mailbox

logger = logging.getLogger(__name__)

DEFAULT_SESSION_URL = "https://api.fastmail.com/jmap/session"

CORE_CAPABILITY = "urn:ietf:params:jmap:core"
MAIL_CAPABILITY = "urn:ietf:params:jmap:mail"

EMAIL_PROPERTIES = [
    "id",
    "subject",
    "receivedAt",
    "from",
    "htmlBody",
    "bodyValues",
    "mailboxIds",
]

READ_ONLY_MESSAGE = (
    "API key has read-only permissions. Please create a new Fastmail API token "
    "with read-write permissions for Mail"
)


class JMAPError(RuntimeError):
    def __init__(self, message: str, error_type: str = "") -> None:
        super().__init__(message)
        self.error_type = error_type


class AuthenticationError(JMAPError):
    pass


class MailboxNotFoundError(JMAPError):
    pass


class ReadOnlyAccountError(JMAPError):
    def __init__(self, message: str = READ_ONLY_MESSAGE, error_type: str = "accountReadOnly") -> None:
        super().__init__(message, error_type)


def jmap_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def method_error(args: Dict[str, Any]) -> JMAPError:
    error_type = str(args.get("type", ""))
    if error_type == "accountReadOnly":
        return ReadOnlyAccountError()
    description = args.get("description") or ""
    return JMAPError(f"JMAP error ({error_type}): {description}", error_type)


class JMAPClient:
    """Minimal JMAP mail client.

    Constructing a client performs the session handshake: the API token is
    exchanged for the primary mail account ID and the API endpoint used by
    every later call. A failed handshake raises AuthenticationError.
    """

    def __init__(
        self,
        api_key: str,
        session_url: str = DEFAULT_SESSION_URL,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key
        self.session_url = session_url
        self.timeout = timeout
        self.account_id = ""
        self.api_url = ""
        self._authenticate()

    def _authenticate(self) -> None:
        try:
            resp = requests.get(self.session_url, headers=jmap_headers(self.api_key), timeout=self.timeout)
        except requests.RequestException as exc:
            raise AuthenticationError(f"failed to connect to JMAP server: {exc}") from exc
        if resp.status_code != 200:
            raise AuthenticationError(f"authentication failed with status {resp.status_code}: {resp.text}")
        try:
            session = resp.json()
        except ValueError as exc:
            raise AuthenticationError(f"failed to decode session response: {exc}") from exc

        account_id = (session.get("primaryAccounts") or {}).get(MAIL_CAPABILITY)
        if not account_id:
            raise AuthenticationError("no primary mail account found")
        api_url = session.get("apiUrl")
        if not api_url:
            raise AuthenticationError("session response has no apiUrl")
        self.account_id = account_id
        self.api_url = api_url
        logger.debug("JMAP session established: account=%s api=%s", self.account_id, self.api_url)

    def request(self, method_calls: List[List[Any]]) -> List[List[Any]]:
        body = {
            "using": [CORE_CAPABILITY, MAIL_CAPABILITY],
            "methodCalls": method_calls,
        }
        logger.debug("JMAP request: %s", [call[0] for call in method_calls])
        resp = requests.post(self.api_url, headers=jmap_headers(self.api_key), json=body, timeout=self.timeout)
        if resp.status_code != 200:
            raise JMAPError(f"request failed with status {resp.status_code}: {resp.text}")
        try:
            responses = resp.json().get("methodResponses")
        except ValueError as exc:
            raise JMAPError(f"failed to decode response: {exc}") from exc
        if not responses:
            raise JMAPError("unexpected response format")
        for name, args, _call_id in responses:
            if name == "error":
                raise method_error(args or {})
        return responses

    def find_mailbox_by_name(self, name: str) -> Mailbox:
        responses = self.request(
            [
                [
                    "Mailbox/query",
                    {"accountId": self.account_id, "filter": {"name": name}},
                    "0",
                ],
                [
                    "Mailbox/get",
                    {
                        "accountId": self.account_id,
                        "#ids": {"resultOf": "0", "name": "Mailbox/query", "path": "/ids"},
                    },
                    "1",
                ],
            ]
        )
        if len(responses) < 2:
            raise JMAPError("unexpected response format")
        # The name filter is a substring match; keep exact names only.
        mailboxes = [m for m in responses[1][1].get("list") or [] if m.get("name") == name]
        if not mailboxes:
            raise MailboxNotFoundError(f"mailbox '{name}' not found")
        if len(mailboxes) > 1:
            logger.debug("%d mailboxes named '%s'; using the first", len(mailboxes), name)
        first = mailboxes[0]
        return Mailbox(id=first["id"], name=name, role=first.get("role") or "")

    def get_emails_in_mailbox(self, mailbox_id: str, limit: int = 0) -> List[str]:
        query: Dict[str, Any] = {
            "accountId": self.account_id,
            "filter": {"inMailbox": mailbox_id},
        }
        if limit > 0:
            query["limit"] = limit
        responses = self.request([["Email/query", query, "0"]])
        return list(responses[0][1].get("ids") or [])

    def get_emails(self, email_ids: List[str]) -> List[Email]:
        responses = self.request(
            [
                [
                    "Email/get",
                    {
                        "accountId": self.account_id,
                        "ids": list(email_ids),
                        "properties": EMAIL_PROPERTIES,
                        "fetchHTMLBodyValues": True,
                    },
                    "0",
                ]
            ]
        )
        result = responses[0][1]
        not_found = result.get("notFound") or []
        if not_found:
            logger.debug("Emails no longer on server: %s", not_found)
        return [Email.from_json(item) for item in result.get("list") or []]

    def move_email(self, email_id: str, source_mailbox_id: str, target_mailbox_id: str) -> None:
        responses = self.request(
            [
                [
                    "Email/set",
                    {
                        "accountId": self.account_id,
                        "update": {
                            email_id: {
                                f"mailboxIds/{source_mailbox_id}": None,
                                f"mailboxIds/{target_mailbox_id}": True,
                            }
                        },
                    },
                    "0",
                ]
            ]
        )
        not_updated = responses[0][1].get("notUpdated") or {}
        if email_id in not_updated:
            set_error = not_updated[email_id] or {}
            error_type = str(set_error.get("type", ""))
            if error_type in {"accountReadOnly", "forbidden"}:
                raise ReadOnlyAccountError(error_type=error_type)
            raise JMAPError(
                f"failed to move email: {error_type} {set_error.get('description') or ''}".strip(),
                error_type,
            )
