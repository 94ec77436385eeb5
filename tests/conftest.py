"""
Shared fixtures for the Apple Mail MCP server tests.
"""

from typing import List, Optional, Union

import pytest

from apple_mail_mcp.mail_service import MailService


class FakeRunner:
    """Stands in for AppleScriptRunner: records scripts, replays canned output."""

    def __init__(self, outputs: Optional[List[Union[str, Exception]]] = None):
        self.outputs = list(outputs or [])
        self.scripts: List[str] = []
        self.operations: List[str] = []

    def queue(self, output: Union[str, Exception]) -> "FakeRunner":
        self.outputs.append(output)
        return self

    def run(self, script: str, operation: str = "script") -> str:
        self.scripts.append(script)
        self.operations.append(operation)
        output = self.outputs.pop(0) if self.outputs else ""
        if isinstance(output, Exception):
            raise output
        return output

    @property
    def last_script(self) -> str:
        return self.scripts[-1]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def mail_service(runner):
    return MailService(runner)
