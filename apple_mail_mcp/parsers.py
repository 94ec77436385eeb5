"""
Parsers for the text osascript prints back.

Parsing is lenient: malformed records are decoded with default field values
instead of failing the whole response. Only the ERROR: sentinel is treated
as a failure.
"""

from typing import List, Optional

from .errors import ApplicationFailure
from .models import AccountMailboxes, Email, OperationResult
from .scripts import ERROR_PREFIX, FIELD_DELIMITER, LIST_SEPARATOR, RECORD_DELIMITER

NO_SUBJECT = "(No Subject)"
UNKNOWN_SENDER = "(Unknown)"


def error_message(output: str) -> Optional[str]:
    """Return the message after ERROR:, or None if output is not an error."""
    if output.startswith(ERROR_PREFIX):
        return output[len(ERROR_PREFIX):]
    return None


def raise_for_error(output: str) -> str:
    """Raise ApplicationFailure for ERROR: output, otherwise return it unchanged."""
    message = error_message(output)
    if message is not None:
        raise ApplicationFailure(message)
    return output


def _split_list(text: str) -> List[str]:
    return [item.strip() for item in text.split(LIST_SEPARATOR) if item.strip()]


def _parse_int(text: Optional[str]) -> int:
    try:
        return int((text or "").strip())
    except ValueError:
        return 0


def parse_accounts(output: str) -> List[str]:
    if not output:
        return []
    return _split_list(raise_for_error(output))


def parse_account_mailboxes(account: str, output: str) -> List[AccountMailboxes]:
    """Mailbox list of a single, explicitly named account."""
    mailboxes = _split_list(raise_for_error(output)) if output else []
    return [AccountMailboxes(account=account, mailboxes=mailboxes)]


def parse_all_mailboxes(output: str) -> List[AccountMailboxes]:
    """Decode "account:mb1, mb2|||" segments.

    The account name ends at the first colon; everything after it is the
    mailbox list.
    """
    if not output:
        return []
    output = raise_for_error(output)

    results = []
    for segment in output.split(RECORD_DELIMITER):
        if not segment:
            continue
        account, _, remainder = segment.partition(":")
        account = account.strip()
        if account:
            results.append(AccountMailboxes(account=account, mailboxes=_split_list(remainder)))
    return results


def parse_email_record(segment: str) -> Email:
    """Decode one id<<>>subject<<>>sender<<>>date<<>>read[<<>>content] record."""
    fields = segment.split(FIELD_DELIMITER)
    fields += [""] * (6 - len(fields))
    message_id, subject, sender, date_sent, read_status, content = fields[:6]

    return Email(
        id=_parse_int(message_id),
        subject=subject or NO_SUBJECT,
        sender=sender or UNKNOWN_SENDER,
        date_sent=date_sent or "",
        is_read=read_status == "true",
        content=content or None,
    )


def parse_emails(output: str) -> List[Email]:
    """Decode message records; shared by fetch, fetch-by-ids and search."""
    if not output:
        return []
    output = raise_for_error(output)
    return [parse_email_record(segment) for segment in output.split(RECORD_DELIMITER) if segment]


def parse_unread_count(output: str) -> int:
    if not output:
        return 0
    return _parse_int(raise_for_error(output))


def parse_action_result(output: str, default_message: str) -> OperationResult:
    """Outcome of a mutating script: ERROR: is a failure, anything else succeeds."""
    message = error_message(output)
    if message is not None:
        return OperationResult(success=False, message=message)
    return OperationResult(success=True, message=output or default_message)


def parse_running_status(output: str) -> bool:
    return output.strip() == "true"
