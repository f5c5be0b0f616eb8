"""Custody provider (Bridge) payloads, kept close to the wire format."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BridgeWallet(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    chain: str
    address: str
    tags: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class BridgeWalletList(BaseModel):
    count: int = 0
    data: List[BridgeWallet] = Field(default_factory=list)


class BridgeTransactionEndpoint(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment_rail: Optional[str] = None
    currency: Optional[str] = None


class BridgeTransaction(BaseModel):
    # The provider does not send an id for history entries
    model_config = ConfigDict(extra="allow")

    amount: str
    developer_fee: Optional[str] = None
    customer_id: str
    source: Optional[BridgeTransactionEndpoint] = None
    destination: Optional[BridgeTransactionEndpoint] = None
    created_at: str
    updated_at: str

    def raw_payload(self) -> dict:
        """The record as received, including fields this model does not declare."""
        return self.model_dump(mode="json", exclude_unset=True)


class BridgeTransactionHistory(BaseModel):
    count: int = 0
    data: List[BridgeTransaction] = Field(default_factory=list)
