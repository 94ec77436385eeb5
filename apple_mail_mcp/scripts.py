"""
AppleScript builders for Apple Mail operations.

Each function returns the source text of one script. Every caller-supplied
string goes through escape_applescript_string before it is embedded, and
numeric values are rendered with int(), so no argument can end a string
literal early.

Output conventions shared with parsers.py:
    FIELD_DELIMITER   separates the fields of one message record
    RECORD_DELIMITER  terminates each message record / account segment
    LIST_SEPARATOR    how osascript renders an AppleScript list
    ERROR_PREFIX      marks a failure reported from inside the script
"""

from typing import Iterable, List, Optional, Sequence, Union

from .config import settings

FIELD_DELIMITER = "<<>>"
RECORD_DELIMITER = "|||"
LIST_SEPARATOR = ", "
ERROR_PREFIX = "ERROR:"

DEFAULT_ARCHIVE_MAILBOXES = ("Archive", "All Mail")
NO_ARCHIVE_MAILBOX_MESSAGE = "No Archive mailbox found for this account"

Recipients = Optional[Union[str, Sequence[str]]]


def escape_applescript_string(value) -> str:
    """Escape text for embedding inside an AppleScript double-quoted literal."""
    text = str(value)
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


def quote(value) -> str:
    """Return value as a complete, escaped AppleScript string literal."""
    return f'"{escape_applescript_string(value)}"'


def normalize_recipients(recipients: Recipients) -> List[str]:
    """Accept a single address or a list of them; drop empty entries."""
    if not recipients:
        return []
    if isinstance(recipients, str):
        return [recipients]
    return [address for address in recipients if address]


def _tell(body: str) -> str:
    return f'tell application {quote(settings.MAIL_APP_NAME)}\n{body}\nend tell\n'


def _mailbox_ref(mailbox: str, account: Optional[str] = None) -> str:
    if account:
        return f"mailbox {quote(mailbox)} of account {quote(account)}"
    return f"mailbox {quote(mailbox)}"


def _message_lookup(mailbox: str, account: Optional[str], message_id: int) -> str:
    return (
        f"        set theMailbox to {_mailbox_ref(mailbox, account)}\n"
        f"        set theMessage to (first message of theMailbox whose id is {int(message_id)})"
    )


def _record_expression(include_content_field: bool) -> str:
    field = f' & "{FIELD_DELIMITER}" & '
    parts = ["msgId", "msgSubject", "msgSender", "(msgDate as string)", "msgRead"]
    if include_content_field:
        parts.append("msgContent")
    return field.join(parts) + f' & "{RECORD_DELIMITER}"'


def _read_message_fields(indent: str, include_content: Optional[bool]) -> str:
    """Statements that load msgId..msgRead (and msgContent) from msg.

    include_content None means the record carries no content field at all.
    """
    lines = [
        "set msgId to id of msg",
        "set msgSubject to subject of msg",
        "set msgSender to sender of msg",
        "set msgDate to date sent of msg",
        "set msgRead to read status of msg",
    ]
    if include_content is True:
        lines.append("set msgContent to content of msg")
    elif include_content is False:
        lines.append('set msgContent to ""')
    return "\n".join(indent + line for line in lines)


def _error_handler(indent: str = "    ") -> str:
    return f'{indent}on error errMsg\n{indent}    return "{ERROR_PREFIX}" & errMsg\n{indent}end try'


# === Accounts & Mailboxes ===

def list_accounts_script() -> str:
    return _tell(
        "    set accountList to {}\n"
        "    repeat with acc in accounts\n"
        "        set end of accountList to name of acc\n"
        "    end repeat\n"
        "    return accountList"
    )


def list_mailboxes_script(account: Optional[str] = None) -> str:
    """Mailboxes of one account (a plain list, empty if the account is unknown)
    or of every account as "name:mb1, mb2|||" segments."""
    if account:
        return _tell(
            "    try\n"
            f"        set acc to account {quote(account)}\n"
            "        set mailboxList to {}\n"
            "        repeat with mb in mailboxes of acc\n"
            "            set end of mailboxList to name of mb\n"
            "        end repeat\n"
            "        return mailboxList\n"
            "    on error\n"
            "        return {}\n"
            "    end try"
        )

    return _tell(
        '    set results to ""\n'
        "    repeat with acc in accounts\n"
        "        set accName to name of acc\n"
        "        set mailboxList to {}\n"
        "        repeat with mb in mailboxes of acc\n"
        "            set end of mailboxList to name of mb\n"
        "        end repeat\n"
        f'        set AppleScript\'s text item delimiters to "{LIST_SEPARATOR}"\n'
        "        set mailboxText to mailboxList as string\n"
        '        set AppleScript\'s text item delimiters to ""\n'
        f'        set results to results & accName & ":" & mailboxText & "{RECORD_DELIMITER}"\n'
        "    end repeat\n"
        "    return results"
    )


# === Reading ===

def get_emails_script(
    mailbox: str = "INBOX",
    account: Optional[str] = None,
    limit: int = 10,
    include_content: bool = False,
    unread_only: bool = False
) -> str:
    """Newest-first records from one mailbox, at most limit of them."""
    limit = int(limit)
    message_source = "messages of theMailbox"
    if unread_only:
        message_source = "(messages of theMailbox whose read status is false)"

    return _tell(
        '    set results to ""\n'
        "    try\n"
        f"        set theMailbox to {_mailbox_ref(mailbox, account)}\n"
        f"        set msgList to {message_source}\n"
        "        set msgCount to count of msgList\n"
        f"        if msgCount > {limit} then set msgCount to {limit}\n"
        "\n"
        "        repeat with i from 1 to msgCount\n"
        "            set msg to item i of msgList\n"
        f"{_read_message_fields(' ' * 12, include_content)}\n"
        "\n"
        f"            set results to results & {_record_expression(True)}\n"
        "        end repeat\n"
        f"{_error_handler()}\n"
        "    return results"
    )


def get_emails_by_ids_script(
    message_ids: Iterable[int],
    mailbox: str = "INBOX",
    account: Optional[str] = None,
    include_content: bool = True
) -> str:
    """Records for specific message ids; ids that do not resolve are skipped."""
    id_list = ", ".join(str(int(message_id)) for message_id in message_ids)

    return _tell(
        '    set results to ""\n'
        "    try\n"
        f"        set theMailbox to {_mailbox_ref(mailbox, account)}\n"
        f"        repeat with targetId in {{{id_list}}}\n"
        "            set wantedId to contents of targetId\n"
        "            try\n"
        "                set msg to (first message of theMailbox whose id is wantedId)\n"
        f"{_read_message_fields(' ' * 16, include_content)}\n"
        f"                set results to results & {_record_expression(True)}\n"
        "            end try\n"
        "        end repeat\n"
        f"{_error_handler()}\n"
        "    return results"
    )


def search_emails_script(
    query: str,
    account: Optional[str] = None,
    mailbox: Optional[str] = None,
    limit: int = 10
) -> str:
    """Subject/sender/content match, stopping once limit records are found."""
    limit = int(limit)
    if account and mailbox:
        mailbox_part = f"{{{_mailbox_ref(mailbox, account)}}}"
    elif account:
        mailbox_part = f"mailboxes of account {quote(account)}"
    elif mailbox:
        mailbox_part = f"{{{_mailbox_ref(mailbox)}}}"
    else:
        mailbox_part = "inbox"

    return _tell(
        '    set results to ""\n'
        "    set foundCount to 0\n"
        f"    set searchQuery to {quote(query)}\n"
        "\n"
        "    try\n"
        f"        set searchMailboxes to {mailbox_part}\n"
        "        repeat with mb in searchMailboxes\n"
        f"            if foundCount >= {limit} then exit repeat\n"
        "\n"
        "            set msgList to (messages of mb whose subject contains searchQuery or sender contains searchQuery or content contains searchQuery)\n"
        "            repeat with msg in msgList\n"
        f"                if foundCount >= {limit} then exit repeat\n"
        "\n"
        f"{_read_message_fields(' ' * 16, None)}\n"
        "\n"
        f"                set results to results & {_record_expression(False)}\n"
        "                set foundCount to foundCount + 1\n"
        "            end repeat\n"
        "        end repeat\n"
        f"{_error_handler()}\n"
        "    return results"
    )


def unread_count_script(account: Optional[str] = None, mailbox: Optional[str] = None) -> str:
    if account and mailbox:
        return _tell(
            "    try\n"
            f"        return unread count of {_mailbox_ref(mailbox, account)}\n"
            f"{_error_handler()}"
        )

    if account:
        return _tell(
            "    set total to 0\n"
            "    try\n"
            f"        repeat with mb in mailboxes of account {quote(account)}\n"
            "            set total to total + (unread count of mb)\n"
            "        end repeat\n"
            f"{_error_handler()}\n"
            "    return total"
        )

    if mailbox:
        # Accounts without a mailbox of that name are skipped.
        return _tell(
            "    set total to 0\n"
            "    repeat with acc in accounts\n"
            "        try\n"
            f"            set total to total + (unread count of mailbox {quote(mailbox)} of acc)\n"
            "        end try\n"
            "    end repeat\n"
            "    return total"
        )

    return _tell(
        "    set total to 0\n"
        "    repeat with acc in accounts\n"
        "        repeat with mb in mailboxes of acc\n"
        "            set total to total + (unread count of mb)\n"
        "        end repeat\n"
        "    end repeat\n"
        "    return total"
    )


# === Composing ===

def _recipient_clauses(to: Recipients, cc: Recipients, bcc: Recipients) -> str:
    clauses = []
    for kind, addresses in (("to", to), ("cc", cc), ("bcc", bcc)):
        for address in normalize_recipients(addresses):
            clauses.append(
                f"        make new {kind} recipient at end of {kind} recipients "
                f"with properties {{address:{quote(address)}}}"
            )
    return "\n".join(clauses)


def _outgoing_message(
    subject: str,
    body: str,
    to: Recipients,
    cc: Recipients,
    bcc: Recipients,
    from_address: Optional[str],
    visible: bool
) -> str:
    properties = [f"subject:{quote(subject)}", f"content:{quote(body)}"]
    if visible:
        properties.append("visible:true")
    if from_address:
        properties.append(f"sender:{quote(from_address)}")

    recipients = _recipient_clauses(to, cc, bcc)
    lines = [
        f"    set newMessage to make new outgoing message with properties {{{', '.join(properties)}}}",
        "    tell newMessage",
    ]
    if recipients:
        lines.append(recipients)
    lines.append("    end tell")
    return "\n".join(lines)


def send_email_script(
    to: Recipients,
    subject: str,
    body: str,
    cc: Recipients = None,
    bcc: Recipients = None,
    from_address: Optional[str] = None
) -> str:
    return _tell(
        _outgoing_message(subject, body, to, cc, bcc, from_address, visible=False)
        + "\n    send newMessage\n"
        + '    return "Message sent successfully"'
    )


def create_draft_script(
    subject: str,
    body: str,
    to: Recipients = None,
    cc: Recipients = None,
    bcc: Recipients = None,
    from_address: Optional[str] = None
) -> str:
    # Left open and unsent; Mail keeps it as a draft.
    return _tell(
        _outgoing_message(subject, body, to, cc, bcc, from_address, visible=True)
        + '\n    return "Draft created successfully"'
    )


def create_draft_reply_script(
    message_id: int,
    body: str,
    reply_all: bool = False,
    mailbox: str = "INBOX",
    account: Optional[str] = None
) -> str:
    reply_command = "reply theMessage with opening window"
    if reply_all:
        reply_command += " and reply to all"

    return _tell(
        "    try\n"
        f"{_message_lookup(mailbox, account, message_id)}\n"
        "\n"
        f"        set replyMessage to {reply_command}\n"
        "        set currentContent to content of replyMessage\n"
        f"        set content of replyMessage to {quote(body)} & return & return & currentContent\n"
        "\n"
        '        return "Draft reply created successfully"\n'
        f"{_error_handler()}"
    )


# === Message actions ===

def archive_email_script(
    message_id: int,
    mailbox: str = "INBOX",
    account: Optional[str] = None,
    archive_mailbox: Optional[str] = None
) -> str:
    """Move a message to the first Archive-like mailbox of its account."""
    if archive_mailbox:
        candidates = [archive_mailbox]
        missing_message = f'Archive mailbox "{archive_mailbox}" not found for this account'
    else:
        candidates = list(DEFAULT_ARCHIVE_MAILBOXES)
        missing_message = NO_ARCHIVE_MAILBOX_MESSAGE
    name_test = " or ".join(f"name of mb is {quote(name)}" for name in candidates)

    return _tell(
        "    try\n"
        f"{_message_lookup(mailbox, account, message_id)}\n"
        "        set theAccount to account of theMailbox\n"
        "\n"
        "        set archiveMailbox to missing value\n"
        "        repeat with mb in mailboxes of theAccount\n"
        f"            if {name_test} then\n"
        "                set archiveMailbox to mb\n"
        "                exit repeat\n"
        "            end if\n"
        "        end repeat\n"
        "\n"
        "        if archiveMailbox is missing value then\n"
        f"            return {quote(ERROR_PREFIX + missing_message)}\n"
        "        end if\n"
        "\n"
        "        move theMessage to archiveMailbox\n"
        '        return "Message archived successfully"\n'
        f"{_error_handler()}"
    )


def delete_email_script(message_id: int, mailbox: str = "INBOX", account: Optional[str] = None) -> str:
    return _tell(
        "    try\n"
        f"{_message_lookup(mailbox, account, message_id)}\n"
        "        delete theMessage\n"
        '        return "Message deleted successfully"\n'
        f"{_error_handler()}"
    )


def set_read_status_script(
    message_id: int,
    read: bool,
    mailbox: str = "INBOX",
    account: Optional[str] = None
) -> str:
    state = "read" if read else "unread"
    return _tell(
        "    try\n"
        f"{_message_lookup(mailbox, account, message_id)}\n"
        f"        set read status of theMessage to {'true' if read else 'false'}\n"
        f'        return "Message marked as {state}"\n'
        f"{_error_handler()}"
    )


# === Status ===

def mail_running_script() -> str:
    # Does not launch Mail when it is closed.
    return f"return application {quote(settings.MAIL_APP_NAME)} is running\n"
