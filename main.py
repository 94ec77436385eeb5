#!/usr/bin/env python3
"""
Apple Mail MCP Server - Access the local Apple Mail app on Mac via AppleScript.

This is the main entry point for the Apple Mail MCP server that provides
account, mailbox and message operations through FastMCP.
"""

import argparse
import json
from datetime import datetime
from typing import Any, Dict, List, NoReturn, Optional, Union

from fastapi.responses import JSONResponse
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from apple_mail_mcp import __version__
from apple_mail_mcp.config import settings
from apple_mail_mcp.errors import MailError
from apple_mail_mcp.logging import configure_logging, get_logger
from apple_mail_mcp.mail_service import MailService

logger = get_logger(__name__)

READ_TOOLS = 6
WRITE_TOOLS = 7
TOOLS_COUNT = READ_TOOLS + WRITE_TOOLS

# --- FastMCP Server Setup ---
mcp = FastMCP(name="AppleMailServer")


def _raise_tool_error(tool: str, error: MailError) -> NoReturn:
    """Report a failure to the client as an error result carrying {"error": message}."""
    logger.warning("Tool failed", tool=tool, error=str(error))
    raise ToolError(json.dumps({"error": str(error)})) from error


def setup_tools(mail_service: MailService, server: FastMCP = mcp) -> FastMCP:
    """Set up all the MCP tools for the Mail service."""

    # === Accounts & Mailboxes ===

    @server.tool()
    async def mail_list_accounts() -> Dict[str, Any]:
        """List all email accounts configured in Apple Mail."""
        try:
            accounts = await mail_service.list_accounts()
        except MailError as e:
            _raise_tool_error("mail_list_accounts", e)
        return {"accounts": accounts}

    @server.tool()
    async def mail_list_mailboxes(account: Optional[str] = None) -> Dict[str, Any]:
        """
        List all mailboxes (folders) for a specific account or all accounts in Apple Mail.

        Args:
            account: The name of the email account. If not provided, lists mailboxes for all accounts.
        """
        try:
            result = await mail_service.list_mailboxes(account)
        except MailError as e:
            _raise_tool_error("mail_list_mailboxes", e)
        return {"mailboxes": [entry.to_payload() for entry in result]}

    # === Reading ===

    @server.tool()
    async def mail_get_emails(
        account: Optional[str] = None,
        mailbox: str = "INBOX",
        limit: int = 10,
        include_content: bool = False,
        unread_only: bool = False
    ) -> Dict[str, Any]:
        """
        Get recent emails from a mailbox in Apple Mail.

        Argument names are snake_case: include_content (not includeContent), unread_only (not unreadOnly).

        Args:
            account: The name of the email account
            mailbox: The name of the mailbox/folder (default: INBOX)
            limit: Maximum number of emails to retrieve (default: 10)
            include_content: Whether to include the email body content (default: false)
            unread_only: Only return unread emails (default: false)

        Returns:
            Emails with id, subject, sender, dateSent, isRead (and content), plus their count
        """
        try:
            emails = await mail_service.get_emails(account, mailbox, limit, include_content, unread_only)
        except MailError as e:
            _raise_tool_error("mail_get_emails", e)
        return {"emails": [email.to_payload() for email in emails], "count": len(emails)}

    @server.tool()
    async def mail_get_emails_by_ids(
        ids: List[int],
        account: Optional[str] = None,
        mailbox: str = "INBOX",
        include_content: bool = True
    ) -> Dict[str, Any]:
        """
        Get specific emails by their IDs in Apple Mail.

        Argument names are snake_case: include_content (not includeContent).

        Use this to retrieve full details of specific emails after browsing
        with mail_get_emails (include_content: false).

        Args:
            ids: Email IDs to retrieve (obtained from mail_get_emails or mail_search)
            account: The name of the email account
            mailbox: The mailbox/folder where the emails are located (default: INBOX)
            include_content: Whether to include the email body content (default: true)
        """
        try:
            emails = await mail_service.get_emails_by_ids(ids, account, mailbox, include_content)
        except MailError as e:
            _raise_tool_error("mail_get_emails_by_ids", e)
        return {"emails": [email.to_payload() for email in emails], "count": len(emails)}

    @server.tool()
    async def mail_search(
        query: str,
        account: Optional[str] = None,
        mailbox: Optional[str] = None,
        limit: int = 10
    ) -> Dict[str, Any]:
        """
        Search emails in Apple Mail by subject, sender, or content.

        Args:
            query: The search query to match against email subject, sender, or content
            account: The name of the email account to search in
            mailbox: The name of the mailbox/folder to search in (default: the inbox)
            limit: Maximum number of emails to return (default: 10)
        """
        try:
            emails = await mail_service.search_emails(query, account, mailbox, limit)
        except MailError as e:
            _raise_tool_error("mail_search", e)
        return {"emails": [email.to_payload() for email in emails], "count": len(emails), "query": query}

    @server.tool()
    async def mail_get_unread_count(account: Optional[str] = None, mailbox: Optional[str] = None) -> Dict[str, Any]:
        """
        Get the count of unread emails in Apple Mail.

        Args:
            account: The name of the email account
            mailbox: The name of the mailbox/folder
        """
        try:
            count = await mail_service.get_unread_count(account, mailbox)
        except MailError as e:
            _raise_tool_error("mail_get_unread_count", e)
        return {"unreadCount": count}

    # === Composing ===

    @server.tool()
    async def mail_send(
        to: Union[str, List[str]],
        subject: str,
        body: str,
        cc: Optional[Union[str, List[str]]] = None,
        bcc: Optional[Union[str, List[str]]] = None,
        from_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send an email using Apple Mail.

        Argument names are snake_case: from_address (not from).

        Args:
            to: Email address(es) of the recipient(s)
            subject: The email subject line
            body: The email body content
            cc: Email address(es) for CC recipients
            bcc: Email address(es) for BCC recipients
            from_address: The sender email address (must be a configured account)
        """
        try:
            result = await mail_service.send_email(to, subject, body, cc, bcc, from_address)
        except MailError as e:
            _raise_tool_error("mail_send", e)
        return result.to_payload()

    @server.tool()
    async def mail_create_draft(
        subject: str,
        body: str,
        to: Optional[Union[str, List[str]]] = None,
        cc: Optional[Union[str, List[str]]] = None,
        bcc: Optional[Union[str, List[str]]] = None,
        from_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a new draft email in Apple Mail. Does not send the email.

        Argument names are snake_case: from_address (not from).

        Args:
            subject: The email subject line
            body: The email body content
            to: Email address(es) of the recipient(s)
            cc: Email address(es) for CC recipients
            bcc: Email address(es) for BCC recipients
            from_address: The sender email address (must be a configured account)
        """
        try:
            result = await mail_service.create_draft(subject, body, to, cc, bcc, from_address)
        except MailError as e:
            _raise_tool_error("mail_create_draft", e)
        return result.to_payload()

    @server.tool()
    async def mail_create_draft_reply(
        message_id: int,
        body: str,
        reply_all: bool = False,
        account: Optional[str] = None,
        mailbox: str = "INBOX"
    ) -> Dict[str, Any]:
        """
        Create a draft reply to an existing email in Apple Mail.

        Argument names are snake_case: message_id (not messageId), reply_all (not replyAll).

        Args:
            message_id: The ID of the email to reply to (obtained from mail_get_emails or mail_search)
            body: The reply body content, placed above the quoted original
            reply_all: Whether to reply to all recipients (default: false)
            account: The name of the email account
            mailbox: The mailbox/folder where the original email is (default: INBOX)
        """
        try:
            result = await mail_service.create_draft_reply(message_id, body, reply_all, account, mailbox)
        except MailError as e:
            _raise_tool_error("mail_create_draft_reply", e)
        return result.to_payload()

    # === Message Actions ===

    @server.tool()
    async def mail_archive(
        message_id: int,
        account: Optional[str] = None,
        mailbox: str = "INBOX",
        archive_mailbox: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Archive an email in Apple Mail by moving it to the Archive mailbox.

        Argument names are snake_case: message_id (not messageId), archive_mailbox (not archiveMailbox).

        Args:
            message_id: The ID of the email to archive (obtained from mail_get_emails or mail_search)
            account: The name of the email account
            mailbox: The mailbox/folder where the email currently is (default: INBOX)
            archive_mailbox: Mailbox to move the email to (default: auto-detects 'Archive' or 'All Mail')
        """
        try:
            result = await mail_service.archive_email(message_id, account, mailbox, archive_mailbox)
        except MailError as e:
            _raise_tool_error("mail_archive", e)
        return result.to_payload()

    @server.tool()
    async def mail_delete(message_id: int, account: Optional[str] = None, mailbox: str = "INBOX") -> Dict[str, Any]:
        """
        Delete an email in Apple Mail by moving it to the Trash mailbox.

        Argument names are snake_case: message_id (not messageId).

        Args:
            message_id: The ID of the email to delete (obtained from mail_get_emails or mail_search)
            account: The name of the email account
            mailbox: The mailbox/folder where the email currently is (default: INBOX)
        """
        try:
            result = await mail_service.delete_email(message_id, account, mailbox)
        except MailError as e:
            _raise_tool_error("mail_delete", e)
        return result.to_payload()

    @server.tool()
    async def mail_mark_read(message_id: int, account: Optional[str] = None, mailbox: str = "INBOX") -> Dict[str, Any]:
        """
        Mark an email as read in Apple Mail.

        Argument names are snake_case: message_id (not messageId).

        Args:
            message_id: The ID of the email (obtained from mail_get_emails or mail_search)
            account: The name of the email account
            mailbox: The mailbox/folder where the email is (default: INBOX)
        """
        try:
            result = await mail_service.mark_as_read(message_id, account, mailbox)
        except MailError as e:
            _raise_tool_error("mail_mark_read", e)
        return result.to_payload()

    @server.tool()
    async def mail_mark_unread(message_id: int, account: Optional[str] = None, mailbox: str = "INBOX") -> Dict[str, Any]:
        """
        Mark an email as unread in Apple Mail.

        Argument names are snake_case: message_id (not messageId).

        Args:
            message_id: The ID of the email (obtained from mail_get_emails or mail_search)
            account: The name of the email account
            mailbox: The mailbox/folder where the email is (default: INBOX)
        """
        try:
            result = await mail_service.mark_as_unread(message_id, account, mailbox)
        except MailError as e:
            _raise_tool_error("mail_mark_unread", e)
        return result.to_payload()

    # === Health & Info Endpoints ===

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request):
        """Health check endpoint for server monitoring."""
        mail_status = await mail_service.check_mail_status()
        return JSONResponse({
            "status": "healthy" if mail_status["running"] else "degraded",
            "service": "apple-mail-mcp-server",
            "version": __version__,
            "timestamp": str(datetime.now()),
            "mcp_endpoint": "/mcp",
            "mail_running": mail_status["running"],
            "mail_error": mail_status.get("error"),
            "tools_count": TOOLS_COUNT
        })

    @server.custom_route("/tools/count", methods=["GET"])
    async def tools_count(request):
        """Tools count endpoint."""
        return JSONResponse({
            "tools_count": TOOLS_COUNT,
            "read_tools": READ_TOOLS,
            "write_tools": WRITE_TOOLS,
            "total_tools": TOOLS_COUNT
        })

    return server


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Apple Mail MCP Server')
    parser.add_argument('--host', default=settings.HOST, help='Host to bind the server to')
    parser.add_argument('--port', type=int, default=settings.PORT, help='Port to bind the server to')
    parser.add_argument('--transport', choices=["streamable-http", "stdio"], default=settings.MCP_TRANSPORT,
                        help='MCP transport (stdio for desktop clients)')

    args = parser.parse_args()

    configure_logging(log_level=settings.LOG_LEVEL, enable_json=settings.LOG_JSON)

    # Setup tools
    setup_tools(MailService())

    # --- Run FastMCP Server ---
    try:
        if args.transport == "stdio":
            logger.info("Starting Apple Mail MCP server", transport="stdio")
            mcp.run(transport="stdio")
        else:
            base_url = f"http://{args.host}:{args.port}"
            logger.info(
                "Starting Apple Mail MCP server",
                transport="streamable-http",
                mcp_endpoint=f"{base_url}/mcp",
                health_endpoint=f"{base_url}/health",
            )
            mcp.run(transport="streamable-http", host=args.host, port=args.port, path="/mcp")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e))
        raise
