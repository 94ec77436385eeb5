"""
Pydantic models for Apple Mail tool payloads.

Fields are snake_case in Python and camelCase on the wire
(dateSent, isRead) to match what MCP clients of this server expect.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MailModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Email(MailModel):
    id: int
    subject: str
    sender: str
    date_sent: str = ""
    is_read: bool = False
    content: Optional[str] = None  # only fetched when requested


class AccountMailboxes(MailModel):
    account: str
    mailboxes: List[str] = []


class OperationResult(MailModel):
    success: bool
    message: str
