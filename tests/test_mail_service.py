"""
Tests for MailService orchestration: script selection, parsing and failure handling.

The AppleScript runner is replaced by FakeRunner (see conftest.py).
"""

import pytest
import structlog.testing

from apple_mail_mcp.errors import ApplicationFailure, ExecutionFailure, ValidationFailure
from apple_mail_mcp.models import AccountMailboxes, OperationResult


class TestReadOperations:

    async def test_list_accounts(self, mail_service, runner):
        runner.queue("iCloud, Work")

        assert await mail_service.list_accounts() == ["iCloud", "Work"]
        assert runner.operations == ["list_accounts"]

    async def test_list_accounts_empty(self, mail_service, runner):
        runner.queue("")
        assert await mail_service.list_accounts() == []

    async def test_list_mailboxes_for_account(self, mail_service, runner):
        runner.queue("INBOX, Sent")

        result = await mail_service.list_mailboxes("Work")

        assert result == [AccountMailboxes(account="Work", mailboxes=["INBOX", "Sent"])]
        assert 'account "Work"' in runner.last_script

    async def test_list_mailboxes_all_accounts(self, mail_service, runner):
        runner.queue("iCloud:INBOX|||Work:INBOX, Archive|||")

        result = await mail_service.list_mailboxes()

        assert [entry.account for entry in result] == ["iCloud", "Work"]
        assert result[1].mailboxes == ["INBOX", "Archive"]

    async def test_get_emails_defaults(self, mail_service, runner):
        runner.queue("1<<>>Hello<<>>a@b.com<<>>Monday<<>>false<<>>|||")

        emails = await mail_service.get_emails()

        assert len(emails) == 1
        assert emails[0].subject == "Hello"
        assert emails[0].content is None
        assert 'mailbox "INBOX"' in runner.last_script
        assert "if msgCount > 10 then" in runner.last_script

    async def test_get_emails_zero_limit_uses_default(self, mail_service, runner):
        await mail_service.get_emails(limit=0)
        assert "if msgCount > 10 then" in runner.last_script

    async def test_get_emails_with_content(self, mail_service, runner):
        runner.queue("1<<>>Hello<<>>a@b.com<<>>Monday<<>>true<<>>Body text|||")

        emails = await mail_service.get_emails(account="Work", mailbox="Receipts", limit=3, include_content=True)

        assert emails[0].content == "Body text"
        assert emails[0].is_read is True
        assert 'mailbox "Receipts" of account "Work"' in runner.last_script

    async def test_get_emails_application_failure(self, mail_service, runner):
        runner.queue("ERROR:Mailbox not found")

        with pytest.raises(ApplicationFailure) as exc_info:
            await mail_service.get_emails(mailbox="Missing")
        assert str(exc_info.value) == "Mailbox not found"

    async def test_read_execution_failure_propagates(self, mail_service, runner):
        runner.queue(ExecutionFailure("AppleScript error: Mail got an error"))

        with pytest.raises(ExecutionFailure, match="Mail got an error"):
            await mail_service.list_accounts()

    async def test_get_emails_by_ids(self, mail_service, runner):
        runner.queue("12<<>>A<<>>a@b.com<<>>d<<>>true<<>>Body|||")

        emails = await mail_service.get_emails_by_ids([12, 13], account="Work")

        assert [e.id for e in emails] == [12]
        assert "{12, 13}" in runner.last_script

    async def test_get_emails_by_ids_requires_ids(self, mail_service, runner):
        with pytest.raises(ValidationFailure, match="ids"):
            await mail_service.get_emails_by_ids([])
        assert runner.scripts == []

    async def test_search(self, mail_service, runner):
        runner.queue("3<<>>Invoice<<>>billing@shop.com<<>>d<<>>false|||")

        emails = await mail_service.search_emails("invoice", limit=5)

        assert emails[0].subject == "Invoice"
        assert "if foundCount >= 5" in runner.last_script

    async def test_search_requires_query(self, mail_service, runner):
        with pytest.raises(ValidationFailure, match="Search query is required"):
            await mail_service.search_emails("")
        assert runner.scripts == []

    async def test_unread_count(self, mail_service, runner):
        runner.queue("7")
        assert await mail_service.get_unread_count("Work", "INBOX") == 7

    async def test_unread_count_garbage_is_zero(self, mail_service, runner):
        runner.queue("missing value")
        assert await mail_service.get_unread_count() == 0


class TestMutatingOperations:

    async def test_send_success(self, mail_service, runner):
        runner.queue("Message sent successfully")

        result = await mail_service.send_email(["a@b.com", "c@d.com"], "Hi", "Body", cc="e@f.com")

        assert result == OperationResult(success=True, message="Message sent successfully")
        assert runner.last_script.count("make new to recipient") == 2
        assert "make new cc recipient" in runner.last_script

    async def test_send_empty_output_uses_default(self, mail_service, runner):
        runner.queue("")
        result = await mail_service.send_email("a@b.com", "Hi", "Body")
        assert result.to_payload() == {"success": True, "message": "Message sent successfully"}

    @pytest.mark.parametrize("to,subject,body", [
        (None, "Hi", "Body"),
        ([], "Hi", "Body"),
        ("a@b.com", "", "Body"),
        ("a@b.com", "Hi", ""),
    ])
    async def test_send_validation(self, mail_service, runner, to, subject, body):
        with pytest.raises(ValidationFailure, match="Required fields: to, subject, body"):
            await mail_service.send_email(to, subject, body)
        assert runner.scripts == []

    async def test_send_execution_failure_becomes_result(self, mail_service, runner):
        runner.queue(ExecutionFailure("AppleScript error: Mail got an error: Can't send"))

        result = await mail_service.send_email("a@b.com", "Hi", "Body")

        assert result.success is False
        assert result.message == "AppleScript error: Mail got an error: Can't send"

    async def test_archive_without_archive_mailbox(self, mail_service, runner):
        runner.queue("ERROR:No Archive mailbox found for this account")

        result = await mail_service.archive_email(42)

        assert result.to_payload() == {"success": False, "message": "No Archive mailbox found for this account"}

    async def test_archive_explicit_mailbox(self, mail_service, runner):
        runner.queue("Message archived successfully")

        result = await mail_service.archive_email(42, account="Work", archive_mailbox="Archives")

        assert result.success is True
        assert 'name of mb is "Archives"' in runner.last_script

    @pytest.mark.parametrize("method,expected", [
        ("delete_email", "Message deleted successfully"),
        ("mark_as_read", "Message marked as read"),
        ("mark_as_unread", "Message marked as unread"),
        ("archive_email", "Message archived successfully"),
    ])
    async def test_message_actions_default_messages(self, mail_service, runner, method, expected):
        runner.queue("")

        result = await getattr(mail_service, method)(5, mailbox="Work Stuff")

        assert result == OperationResult(success=True, message=expected)
        assert "whose id is 5" in runner.last_script
        assert 'mailbox "Work Stuff"' in runner.last_script

    @pytest.mark.parametrize("method", ["delete_email", "mark_as_read", "mark_as_unread", "archive_email"])
    async def test_message_actions_require_id(self, mail_service, runner, method):
        with pytest.raises(ValidationFailure, match="message_id"):
            await getattr(mail_service, method)(0)
        assert runner.scripts == []

    async def test_mark_read_message_not_found(self, mail_service, runner):
        runner.queue("ERROR:Can't get message 1 of mailbox \"INBOX\".")

        result = await mail_service.mark_as_read(1)

        assert result.success is False
        assert result.message.startswith("Can't get message")

    async def test_create_draft_without_recipients(self, mail_service, runner):
        runner.queue("Draft created successfully")

        result = await mail_service.create_draft("Subject", "Body")

        assert result.success is True
        assert "send newMessage" not in runner.last_script

    async def test_create_draft_validation(self, mail_service, runner):
        with pytest.raises(ValidationFailure, match="subject, body"):
            await mail_service.create_draft("", "Body")

    async def test_create_draft_reply(self, mail_service, runner):
        runner.queue("Draft reply created successfully")

        result = await mail_service.create_draft_reply(9, "Sounds good", reply_all=True, account="Work")

        assert result.success is True
        assert "reply to all" in runner.last_script
        assert '"Sounds good" & return & return & currentContent' in runner.last_script

    async def test_create_draft_reply_validation(self, mail_service, runner):
        with pytest.raises(ValidationFailure, match="message_id, body"):
            await mail_service.create_draft_reply(9, "")

    @pytest.mark.parametrize("output", ["ok", "Message deleted successfully", "done: ERROR: later"])
    async def test_non_error_output_is_always_success(self, mail_service, runner, output):
        runner.queue(output)
        result = await mail_service.delete_email(1)
        assert result.success is True


class TestMailStatus:

    async def test_running(self, mail_service, runner):
        runner.queue("true")
        assert await mail_service.check_mail_status() == {"running": True}

    async def test_osascript_failure(self, mail_service, runner):
        runner.queue(ExecutionFailure("AppleScript error: osascript not found"))

        status = await mail_service.check_mail_status()

        assert status["running"] is False
        assert "osascript not found" in status["error"]


class TestLogging:

    async def test_failures_logged_with_context(self, mail_service, runner):
        runner.queue(ExecutionFailure("AppleScript error: boom"))

        with structlog.testing.capture_logs() as logs:
            await mail_service.delete_email(3)

        failure = next(entry for entry in logs if entry["event"] == "Mail operation failed")
        assert failure["operation"] == "delete_email"
        assert failure["error"] == "AppleScript error: boom"
        assert failure["log_level"] == "error"

    async def test_mail_side_failure_logged_as_warning(self, mail_service, runner):
        runner.queue("ERROR:Can't get message")

        with structlog.testing.capture_logs() as logs:
            await mail_service.mark_as_read(3)

        warning = next(entry for entry in logs if entry["event"] == "Mail reported failure")
        assert warning == {
            "event": "Mail reported failure",
            "operation": "mark_as_read",
            "message": "Can't get message",
            "log_level": "warning",
        }
