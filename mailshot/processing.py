import sys
from pathlib import Path
from typing import List, Optional, Protocol, TextIO

from .models import Email, Mailbox, ProcessResult


class EmailClient(Protocol):
    def find_mailbox_by_name(self, name: str) -> Mailbox: ...

    def get_emails_in_mailbox(self, mailbox_id: str, limit: int = 0) -> List[str]: ...

    def get_emails(self, email_ids: List[str]) -> List[Email]: ...

    def move_email(self, email_id: str, source_mailbox_id: str, target_mailbox_id: str) -> None: ...


class ScreenshotService(Protocol):
    def generate_screenshot(self, received_at: str, email_id: str, html_content: str) -> Path: ...


class ProcessingError(RuntimeError):
    pass


def extract_html_content(email: Email) -> str:
    if not email.html_body:
        return ""
    return email.body_values.get(email.html_body[0].part_id, "")


def process_emails(
    client: EmailClient,
    generator: ScreenshotService,
    source_folder: str,
    archive_folder: str,
    limit: int = 0,
    dry_run: bool = False,
    output: Optional[TextIO] = None,
) -> ProcessResult:
    output = output or sys.stdout
    try:
        source = client.find_mailbox_by_name(source_folder)
    except Exception as exc:
        raise ProcessingError(f"failed to find source folder '{source_folder}': {exc}") from exc
    try:
        archive = client.find_mailbox_by_name(archive_folder)
    except Exception as exc:
        raise ProcessingError(f"failed to find archive folder '{archive_folder}': {exc}") from exc

    try:
        email_ids = client.get_emails_in_mailbox(source.id, limit)
    except Exception as exc:
        raise ProcessingError(f"failed to retrieve emails: {exc}") from exc

    total = len(email_ids)
    if total == 0:
        print(f"No emails found in folder '{source_folder}'", file=output)
        return ProcessResult()

    print(f"Found {total} email(s) in folder '{source_folder}'", file=output)

    if dry_run:
        print("\nDRY RUN MODE - No changes will be made", file=output)
        print(f"Would process {total} emails:", file=output)
        for i, email_id in enumerate(email_ids, start=1):
            print(f"  {i}. Email ID: {email_id}", file=output)
        return ProcessResult(total_count=total)

    result = ProcessResult(total_count=total)
    for i, email_id in enumerate(email_ids, start=1):
        print(f"\nProcessing email {i}/{total} (ID: {email_id})...", file=output)

        try:
            emails = client.get_emails([email_id])
        except Exception as exc:
            print(f"  ✗ Failed to fetch email: {exc}", file=output)
            result.failed_count += 1
            continue
        if not emails:
            print("  ✗ Email not found", file=output)
            result.failed_count += 1
            continue

        email = emails[0]
        print(f"  Subject: {email.subject}", file=output)
        if email.sender:
            print(f"  From: {email.sender}", file=output)

        html_content = extract_html_content(email)
        if not html_content:
            print("  ✗ No HTML content found", file=output)
            result.failed_count += 1
            continue

        try:
            path = generator.generate_screenshot(email.received_at, email.id, html_content)
        except Exception as exc:
            print(f"  ✗ Failed to generate screenshot: {exc}", file=output)
            result.failed_count += 1
            continue
        print(f"  ✓ Screenshot generated: {path}", file=output)

        # The artifact stays on disk if the move fails; the email is retried next run.
        try:
            client.move_email(email.id, source.id, archive.id)
        except Exception as exc:
            print(f"  ✗ Failed to move email to archive: {exc}", file=output)
            result.failed_count += 1
            continue
        print("  ✓ Moved to archive folder", file=output)
        result.processed_count += 1

    return result


def format_summary(result: ProcessResult) -> str:
    lines = []
    lines.append("=== Summary ===")
    lines.append(f"Total emails: {result.total_count}")
    lines.append(f"Successfully processed: {result.processed_count}")
    lines.append(f"Failed: {result.failed_count}")
    return "\n".join(lines)
