"""
tftpayouts/payouts/eligibility.py

Checks that a destination can receive the payout asset.

Architecture:
    EligibilityChecker (abstract)
    ├── NoopChecker               (eligibility verified out of band)
    └── HorizonTrustlineChecker   (destination must hold a trustline)

The variant is picked once at startup with create_checker().
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Set, TYPE_CHECKING

from ..config import TFT_ASSET_CODE, TFT_ISSUER
from ..errors import FatalRemoteError
from ..horizon.client import HorizonError, HorizonTransportError
from ..horizon.retry import RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from ..horizon.client import HorizonClient

logger = logging.getLogger("tftpayouts.payouts.eligibility")


class EligibilityChecker(ABC):
    """Decides whether a destination may be paid."""

    @abstractmethod
    def is_eligible(self, account: str) -> bool:
        """
        Check a destination account.

        Raises:
            FatalRemoteError: If the check itself cannot be carried out
        """
        pass

    def ineligible_reason(self, account: str) -> str:
        """Why the last check of account failed, for skip reports."""
        return f"{account} is not eligible"


class NoopChecker(EligibilityChecker):
    """Accepts every destination without touching the network."""

    def is_eligible(self, account: str) -> bool:
        return True


class HorizonTrustlineChecker(EligibilityChecker):
    """
    Looks up the destination on Horizon and requires a trustline.

    Positive answers are cached for the rest of the run. Negative answers
    are not, so a destination that adds the trustline mid-run is picked up
    on its next record.
    """

    def __init__(
        self,
        client: "HorizonClient",
        asset_code: str = TFT_ASSET_CODE,
        asset_issuer: str = TFT_ISSUER,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.asset_code = asset_code
        self.asset_issuer = asset_issuer
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._trusted: Set[str] = set()
        self._reasons: Dict[str, str] = {}

    def is_eligible(self, account: str) -> bool:
        if account in self._trusted:
            return True

        try:
            info = call_with_retry(
                self.client.get_account,
                account,
                policy=self.retry_policy,
                context=f"account {account}",
                sleep=self._sleep,
            )
        except HorizonError as e:
            # 4xx (unfunded account, malformed id): fail closed for this record only
            logger.error(f"ERROR checking account {account}: {e}")
            self._reasons[account] = f"lookup of {account} failed: {e}"
            return False
        except HorizonTransportError as e:
            raise FatalRemoteError(f"failed to get account data for {account}: {e}") from e

        for balance in info.balances:
            if balance.is_asset(self.asset_code, self.asset_issuer):
                self._trusted.add(account)
                self._reasons.pop(account, None)
                return True

        logger.debug(f"{account} has no {self.asset_code} trustline")
        self._reasons[account] = f"{account} has no trustline for {self.asset_code}"
        return False

    def ineligible_reason(self, account: str) -> str:
        return self._reasons.get(account, super().ineligible_reason(account))


def create_checker(
    check_trust: bool,
    client: Optional["HorizonClient"] = None,
    asset_code: str = TFT_ASSET_CODE,
    asset_issuer: str = TFT_ISSUER,
    retry_policy: Optional[RetryPolicy] = None,
) -> EligibilityChecker:
    """
    Pick the eligibility checker for a run.

    Args:
        check_trust: Whether trustlines should be checked
        client: Horizon client, required when check_trust is set
        asset_code: Asset the destination must trust
        asset_issuer: Issuer of that asset
        retry_policy: Retry policy for 5xx responses

    Returns:
        HorizonTrustlineChecker or NoopChecker
    """
    if not check_trust:
        logger.info("Trustline checks disabled")
        return NoopChecker()
    if client is None:
        raise ValueError("A Horizon client is required to check trustlines")
    return HorizonTrustlineChecker(
        client,
        asset_code=asset_code,
        asset_issuer=asset_issuer,
        retry_policy=retry_policy,
    )
