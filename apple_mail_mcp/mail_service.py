"""
Mail Service - Interface with the local Apple Mail application via AppleScript.

Every operation builds one script (scripts.py), runs it through the
AppleScript runner off the event loop and parses the captured text
(parsers.py). Nothing is cached between calls.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from . import parsers, scripts
from .applescript import AppleScriptRunner
from .config import settings
from .errors import ExecutionFailure, MailError, ValidationFailure
from .logging import get_logger
from .models import AccountMailboxes, Email, OperationResult
from .scripts import Recipients, normalize_recipients

logger = get_logger(__name__)


class MailService:
    """
    Service class for interacting with Apple Mail on macOS.

    Read operations raise MailError subclasses. Mutating operations return
    an OperationResult and only raise ValidationFailure.
    """

    def __init__(self, runner: Optional[AppleScriptRunner] = None):
        """
        Initialize the Mail service.

        Args:
            runner: Object with a run(script, operation) method returning the
                    script's stdout. Defaults to an osascript-backed runner.
        """
        self.runner = runner or AppleScriptRunner()

    async def _run(self, script: str, operation: str) -> str:
        return await asyncio.to_thread(self.runner.run, script, operation)

    async def _perform(self, script: str, operation: str, default_message: str) -> OperationResult:
        """Run a mutating script and fold every failure into the result."""
        try:
            output = await self._run(script, operation)
        except ExecutionFailure as e:
            logger.error("Mail operation failed", operation=operation, error=str(e))
            return OperationResult(success=False, message=str(e))

        result = parsers.parse_action_result(output, default_message)
        if not result.success:
            logger.warning("Mail reported failure", operation=operation, message=result.message)
        return result

    @staticmethod
    def _mailbox(mailbox: Optional[str]) -> str:
        return mailbox or settings.DEFAULT_MAILBOX

    @staticmethod
    def _limit(limit: Optional[int]) -> int:
        if not limit or limit < 0:
            return settings.DEFAULT_LIMIT
        return int(limit)

    @staticmethod
    def _require_message_id(message_id: Optional[int]) -> int:
        if not message_id:
            raise ValidationFailure("Required field: message_id")
        return int(message_id)

    # === Status ===

    async def check_mail_status(self) -> Dict[str, Any]:
        """Check whether Mail is running without launching it."""
        try:
            output = await self._run(scripts.mail_running_script(), "mail_running")
            return {"running": parsers.parse_running_status(output)}
        except MailError as e:
            return {"running": False, "error": str(e)}

    # === Accounts & Mailboxes ===

    async def list_accounts(self) -> List[str]:
        output = await self._run(scripts.list_accounts_script(), "list_accounts")
        return parsers.parse_accounts(output)

    async def list_mailboxes(self, account: Optional[str] = None) -> List[AccountMailboxes]:
        """List mailboxes of one account, or of all accounts when account is omitted."""
        output = await self._run(scripts.list_mailboxes_script(account), "list_mailboxes")
        if account:
            return parsers.parse_account_mailboxes(account, output)
        return parsers.parse_all_mailboxes(output)

    # === Reading ===

    async def get_emails(
        self,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
        limit: Optional[int] = None,
        include_content: bool = False,
        unread_only: bool = False
    ) -> List[Email]:
        """Get the most recent emails from a mailbox.

        Args:
            account: Account that owns the mailbox; Mail resolves the name globally if omitted
            mailbox: Mailbox name (default: INBOX)
            limit: Maximum number of emails to return (default: 10)
            include_content: Also fetch message bodies
            unread_only: Only consider unread messages
        """
        script = scripts.get_emails_script(
            mailbox=self._mailbox(mailbox),
            account=account,
            limit=self._limit(limit),
            include_content=include_content,
            unread_only=unread_only,
        )
        output = await self._run(script, "get_emails")
        return parsers.parse_emails(output)

    async def get_emails_by_ids(
        self,
        ids: Sequence[int],
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
        include_content: bool = True
    ) -> List[Email]:
        """Fetch specific messages by id. Ids not present in the mailbox are skipped."""
        if not ids:
            raise ValidationFailure("Required field: ids")

        script = scripts.get_emails_by_ids_script(
            ids,
            mailbox=self._mailbox(mailbox),
            account=account,
            include_content=include_content,
        )
        output = await self._run(script, "get_emails_by_ids")
        return parsers.parse_emails(output)

    async def search_emails(
        self,
        query: str,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Email]:
        """Search subject, sender and content. Results are in encounter order, not ranked."""
        if not query:
            raise ValidationFailure("Search query is required")

        script = scripts.search_emails_script(query, account=account, mailbox=mailbox, limit=self._limit(limit))
        output = await self._run(script, "search_emails")
        return parsers.parse_emails(output)

    async def get_unread_count(self, account: Optional[str] = None, mailbox: Optional[str] = None) -> int:
        output = await self._run(scripts.unread_count_script(account, mailbox), "get_unread_count")
        return parsers.parse_unread_count(output)

    # === Composing ===

    async def send_email(
        self,
        to: Recipients,
        subject: str,
        body: str,
        cc: Recipients = None,
        bcc: Recipients = None,
        from_address: Optional[str] = None
    ) -> OperationResult:
        """Send an email immediately."""
        if not normalize_recipients(to) or not subject or not body:
            raise ValidationFailure("Required fields: to, subject, body")

        script = scripts.send_email_script(to, subject, body, cc=cc, bcc=bcc, from_address=from_address)
        result = await self._perform(script, "send_email", "Message sent successfully")
        if result.success:
            logger.info("Email sent", recipients=len(normalize_recipients(to)))
        return result

    async def create_draft(
        self,
        subject: str,
        body: str,
        to: Recipients = None,
        cc: Recipients = None,
        bcc: Recipients = None,
        from_address: Optional[str] = None
    ) -> OperationResult:
        """Open a new unsent message. Recipients are optional."""
        if not subject or not body:
            raise ValidationFailure("Required fields: subject, body")

        script = scripts.create_draft_script(subject, body, to=to, cc=cc, bcc=bcc, from_address=from_address)
        return await self._perform(script, "create_draft", "Draft created successfully")

    async def create_draft_reply(
        self,
        message_id: int,
        body: str,
        reply_all: bool = False,
        account: Optional[str] = None,
        mailbox: Optional[str] = None
    ) -> OperationResult:
        """Open a reply to an existing message with body placed above the quoted original."""
        if not message_id or not body:
            raise ValidationFailure("Required fields: message_id, body")

        script = scripts.create_draft_reply_script(
            int(message_id),
            body,
            reply_all=reply_all,
            mailbox=self._mailbox(mailbox),
            account=account,
        )
        return await self._perform(script, "create_draft_reply", "Draft reply created successfully")

    # === Message actions ===

    async def archive_email(
        self,
        message_id: int,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
        archive_mailbox: Optional[str] = None
    ) -> OperationResult:
        """Move a message to its account's Archive (or All Mail) mailbox."""
        script = scripts.archive_email_script(
            self._require_message_id(message_id),
            mailbox=self._mailbox(mailbox),
            account=account,
            archive_mailbox=archive_mailbox,
        )
        return await self._perform(script, "archive_email", "Message archived successfully")

    async def delete_email(
        self,
        message_id: int,
        account: Optional[str] = None,
        mailbox: Optional[str] = None
    ) -> OperationResult:
        script = scripts.delete_email_script(
            self._require_message_id(message_id),
            mailbox=self._mailbox(mailbox),
            account=account,
        )
        return await self._perform(script, "delete_email", "Message deleted successfully")

    async def mark_as_read(
        self,
        message_id: int,
        account: Optional[str] = None,
        mailbox: Optional[str] = None
    ) -> OperationResult:
        script = scripts.set_read_status_script(
            self._require_message_id(message_id),
            True,
            mailbox=self._mailbox(mailbox),
            account=account,
        )
        return await self._perform(script, "mark_as_read", "Message marked as read")

    async def mark_as_unread(
        self,
        message_id: int,
        account: Optional[str] = None,
        mailbox: Optional[str] = None
    ) -> OperationResult:
        script = scripts.set_read_status_script(
            self._require_message_id(message_id),
            False,
            mailbox=self._mailbox(mailbox),
            account=account,
        )
        return await self._perform(script, "mark_as_unread", "Message marked as unread")
