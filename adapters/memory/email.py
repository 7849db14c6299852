"""Outbox email channel for local runs and tests."""

from typing import Any

from pydantic import BaseModel

from carealert.domain.ports import EmailResult


class SentEmail(BaseModel):
    template: str
    address: str
    fields: dict[str, Any]


class OutboxEmailChannel:
    """
    Implements EmailChannel by appending to an outbox.

    Addresses listed in `rejected_addresses` get a provider-style failure
    result, which is how the scenario runner exercises partial delivery.
    """

    def __init__(self, rejected_addresses: set[str] | None = None) -> None:
        self.rejected_addresses = set(rejected_addresses or ())
        self.outbox: list[SentEmail] = []

    async def send_email(self, template: str, address: str, fields: dict[str, Any]) -> EmailResult:
        if address in self.rejected_addresses:
            return EmailResult(success=False, error=f"mailbox {address} rejected the message")
        self.outbox.append(SentEmail(template=template, address=address, fields=dict(fields)))
        return EmailResult(success=True)
