"""
MintGate - Collection Schema Models

This module defines the Pydantic models for collection configuration and the
persisted collection state (counters, custody balance, token owners, events).
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator


SCHEMA_VERSION = 1
ZERO_ROOT_HEX = "0x" + "00" * 32

_ADDRESS_RE = re.compile(r'^(0x)?[a-fA-F0-9]{40}$')
_HASH_RE = re.compile(r'^(0x)?[a-fA-F0-9]{64}$')


def _normalize_address(v: str) -> str:
    if not isinstance(v, str) or not _ADDRESS_RE.match(v):
        raise ValueError('Address must be a 20-byte hex string')
    v = v.lower()
    return v if v.startswith('0x') else '0x' + v


class CollectionConfig(BaseModel):
    """Collection configuration: prices, caps, whitelist root and channel flags."""

    name: str = Field(default="MintGate Collection", min_length=1, max_length=100)
    symbol: str = Field(default="MINT", min_length=1, max_length=10)
    base_uri: str = Field(default="", description="Base URI for token metadata")
    mint_price: int = Field(..., ge=0, description="General channel price per token")
    whitelist_price: int = Field(..., ge=0, description="Whitelist channel price")
    total_supply_cap: int = Field(default=10_000, ge=0, description="Maximum tokens ever issued")
    whitelist_supply_cap: int = Field(default=1_000, ge=0, description="Maximum whitelist tokens")
    merkle_root: str = Field(default=ZERO_ROOT_HEX, description="Whitelist Merkle root (hex)")
    allow_general_mint: bool = Field(default=False)
    allow_whitelist_mint: bool = Field(default=False)
    royalty_bps: int = Field(default=0, ge=0, le=1000, description="Royalty in parts per thousand")
    owner: str = Field(..., description="Owner identity (hex address)")
    custody_address: str = Field(..., description="The collection's own identity")

    @field_validator('owner', 'custody_address')
    @classmethod
    def validate_address(cls, v):
        """Validate identity format."""
        v = _normalize_address(v)
        if v == "0x" + "00" * 20:
            raise ValueError('Address cannot be the zero address')
        return v

    @field_validator('merkle_root')
    @classmethod
    def validate_merkle_root(cls, v):
        """Validate Merkle root format."""
        if not _HASH_RE.match(v):
            raise ValueError('Merkle root must be 64-character hex string (32 bytes)')
        v = v.lower()
        return v if v.startswith('0x') else '0x' + v

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        if not re.match(r'^[A-Za-z0-9]+$', v):
            raise ValueError('Symbol must contain only letters and numbers')
        return v.upper()

    @model_validator(mode='after')
    def validate_supply_constraints(self):
        """Validate supply constraint relationships."""
        if self.whitelist_supply_cap > self.total_supply_cap:
            raise ValueError('Whitelist supply cap cannot exceed total supply cap')

        return self


class CollectionState(BaseModel):
    """Complete persisted state of a collection."""

    version: int = Field(default=SCHEMA_VERSION)
    config: CollectionConfig
    current_token_id: int = Field(default=0, ge=0)
    whitelist_count: int = Field(default=0, ge=0)
    custody_balance: int = Field(default=0, ge=0)
    token_owners: Dict[int, str] = Field(default_factory=dict)
    contracts: Dict[str, bool] = Field(
        default_factory=dict,
        description="Contract-like identities and whether they acknowledge receipt"
    )
    payouts: Dict[str, int] = Field(default_factory=dict, description="Value paid out per payee")
    rejecting_payees: List[str] = Field(default_factory=list)
    events: List[Dict[str, Any]] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('token_owners')
    @classmethod
    def validate_token_owners(cls, v):
        return {token_id: _normalize_address(owner) for token_id, owner in v.items()}

    @field_validator('contracts', 'payouts')
    @classmethod
    def validate_identity_keys(cls, v):
        return {_normalize_address(k): value for k, value in v.items()}

    @field_validator('rejecting_payees')
    @classmethod
    def validate_rejecting_payees(cls, v):
        return [_normalize_address(a) for a in v]

    @model_validator(mode='after')
    def validate_counters(self):
        """Counters must respect the caps and match the issued tokens."""
        if self.current_token_id > self.config.total_supply_cap:
            raise ValueError('current_token_id exceeds total supply cap')

        if self.whitelist_count > self.config.whitelist_supply_cap:
            raise ValueError('whitelist_count exceeds whitelist supply cap')

        if self.whitelist_count > self.current_token_id:
            raise ValueError('whitelist_count cannot exceed current_token_id')

        if sorted(self.token_owners) != list(range(1, self.current_token_id + 1)):
            raise ValueError('token_owners must cover token ids 1..current_token_id exactly')

        return self
