from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Mailbox:
    id: str
    name: str
    role: str = ""


@dataclass
class EmailAddress:
    email: str
    name: str = ""


@dataclass
class BodyPart:
    part_id: str
    type: str = "text/html"


@dataclass
class Email:
    id: str
    subject: str
    received_at: str
    from_: List[EmailAddress] = field(default_factory=list)
    html_body: List[BodyPart] = field(default_factory=list)
    body_values: Dict[str, str] = field(default_factory=dict)
    mailbox_ids: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Email":
        return cls(
            id=str(data.get("id", "")),
            subject=data.get("subject") or "",
            received_at=data.get("receivedAt") or "",
            from_=[
                EmailAddress(email=a.get("email") or "", name=a.get("name") or "")
                for a in data.get("from") or []
            ],
            html_body=[
                BodyPart(part_id=str(p.get("partId")), type=p.get("type") or "text/html")
                for p in data.get("htmlBody") or []
                if p.get("partId") is not None
            ],
            body_values={
                str(part_id): (value or {}).get("value", "")
                for part_id, value in (data.get("bodyValues") or {}).items()
            },
            mailbox_ids={k: bool(v) for k, v in (data.get("mailboxIds") or {}).items()},
        )

    @property
    def sender(self) -> str:
        if not self.from_:
            return ""
        first = self.from_[0]
        if first.name:
            return f"{first.name} <{first.email}>"
        return first.email


@dataclass
class ProcessResult:
    total_count: int = 0
    processed_count: int = 0
    failed_count: int = 0
