"""
Wallet resolution.

Decides which address administers the token and receives creator rewards:
the requester's linked wallet, or the operator wallet. Two policies share the
same code path:

- permissive (default): any lookup problem falls back to the operator wallet
- strict (``require_user_wallet``): the requester must have a linked wallet
  with creator rewards explicitly enabled, and store failures fail closed

Resolutions are computed per request and never cached.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from eth_account import Account
from eth_utils import to_checksum_address

from .errors import ErrorInfo, ErrorKind
from .models import WalletResolution, WalletSource
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
PRIVATE_KEY_RE = re.compile(r"^[a-fA-F0-9]{64}$")
ZERO_ADDRESS = "0x" + "0" * 40


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))


def is_zero_address(value: str) -> bool:
    return value.lower() == ZERO_ADDRESS


def wallet_key(requester_id: str) -> str:
    return f"wallet:{requester_id}"


def operator_wallet_from_key(private_key: str) -> Result[WalletResolution, ErrorInfo]:
    """Derive the operator wallet from its key material.

    The key itself never appears in the returned error.
    """
    clean = (private_key or "").strip()
    if not clean:
        return Err(
            ErrorInfo(
                kind=ErrorKind.CONFIGURATION_ERROR,
                message="Server configuration error",
                details="Missing required environment variables",
                user_message="Deployment is temporarily unavailable",
                debug={"step": "private_key_validation"},
            )
        )

    hex_part = clean[2:] if clean.lower().startswith("0x") else clean
    if not PRIVATE_KEY_RE.match(hex_part):
        return Err(
            ErrorInfo(
                kind=ErrorKind.CONFIGURATION_ERROR,
                message="Server configuration error",
                details=f"Invalid private key format: expected 64 hex characters, got {len(hex_part)}",
                user_message="Deployment is temporarily unavailable",
                debug={"step": "private_key_validation"},
            )
        )

    address = Account.from_key("0x" + hex_part).address
    return Ok(
        WalletResolution(
            admin_address=address,
            reward_recipient_address=address,
            source=WalletSource.OPERATOR_DEFAULT,
        )
    )


class WalletResolver:
    """Resolve the creator wallet for one deployment request."""

    def __init__(self, store: Any) -> None:
        self._store = store

    async def resolve(
        self,
        requester_id: Optional[str],
        operator_default: WalletResolution,
        require_user_wallet: bool = False,
    ) -> Result[WalletResolution, ErrorInfo]:
        if not requester_id:
            if require_user_wallet:
                return Err(
                    ErrorInfo(
                        kind=ErrorKind.FID_REQUIRED,
                        message="Farcaster authentication required",
                        user_message="Please sign in with Farcaster to deploy tokens",
                    )
                )
            return Ok(operator_default)

        try:
            record = await self._store.get(wallet_key(requester_id))
        except Exception as exc:  # noqa: BLE001
            if require_user_wallet:
                logger.error("Wallet lookup failed for fid %s: %s", requester_id, exc, exc_info=True)
                return Err(
                    ErrorInfo(
                        kind=ErrorKind.WALLET_CHECK_ERROR,
                        message="Failed to verify wallet connection",
                        cause=f"{type(exc).__name__}: {exc}",
                        user_message="Unable to verify wallet connection status",
                    )
                )
            logger.warning(
                "Wallet lookup failed for fid %s, using operator wallet: %s", requester_id, exc
            )
            return Ok(operator_default)

        address = record.get("address") if isinstance(record, dict) else None
        if not is_valid_address(address):
            if record is not None:
                logger.warning("Ignoring malformed wallet record for fid %s", requester_id)
            if require_user_wallet:
                return Err(
                    ErrorInfo(
                        kind=ErrorKind.WALLET_REQUIREMENT_ERROR,
                        message="Wallet connection required for deployment",
                        details="No wallet connected to your account",
                        user_message="Please connect your wallet before deploying",
                    )
                )
            return Ok(operator_default)

        if record.get("enableCreatorRewards") is not True:
            if require_user_wallet:
                return Err(
                    ErrorInfo(
                        kind=ErrorKind.WALLET_REQUIREMENT_ERROR,
                        message="Creator rewards must be enabled when wallet is required",
                        details="Creator rewards are disabled for your connected wallet",
                        user_message="Please enable creator rewards for your wallet",
                    )
                )
            return Ok(operator_default)

        user_address = to_checksum_address(address)
        return Ok(
            WalletResolution(
                admin_address=user_address,
                reward_recipient_address=user_address,
                source=WalletSource.USER_WALLET,
            )
        )


__all__ = [
    "ADDRESS_RE",
    "ZERO_ADDRESS",
    "is_valid_address",
    "is_zero_address",
    "wallet_key",
    "operator_wallet_from_key",
    "WalletResolver",
]
