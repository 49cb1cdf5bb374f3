"""Zumrails aggregation client and payload parsing"""

import logging
from typing import Any, List, Optional, Tuple

import httpx

from sofloan_gateway.config import settings
from sofloan_gateway.domain.exceptions import IBVProviderError, InvalidTransactionDataError
from sofloan_gateway.domain.models import BankAccount, ProviderCategory, Transaction

logger = logging.getLogger(__name__)


def _extract_card(payload: Any) -> Optional[dict]:
    """The card sits at the top level or under `result` depending on the endpoint"""
    if not isinstance(payload, dict):
        return None
    if payload.get("Card"):
        return payload["Card"]
    result = payload.get("result")
    if isinstance(result, dict) and result.get("Card"):
        return result["Card"]
    return None


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_transaction(raw: dict, account_index: int) -> Transaction:
    raw_date = raw.get("Date") or ""
    description = raw.get("Description") or "No description"
    raw_category = raw.get("Category")

    category = None
    if raw_category:
        category = ProviderCategory(
            id=raw_category.get("Id") or "",
            name=raw_category.get("Name") or "",
            insights_type=raw_category.get("InsightsType") or "",
        )

    return Transaction(
        transaction_id=raw.get("Id") or f"{account_index}-{raw_date}-{raw.get('Description')}",
        date=raw_date,
        description=description,
        credit=_optional_number(raw.get("Credit")),
        debit=_optional_number(raw.get("Debit")),
        balance=_optional_number(raw.get("Balance")) or 0.0,
        category=category,
    )


def parse_zumrails_accounts(payload: Any) -> Tuple[str, List[BankAccount]]:
    """
    Turn a Zumrails aggregation payload into bank accounts.

    Returns the institution name and the accounts in provider order. A payload
    without a card or accounts yields an empty list.

    Raises:
        InvalidTransactionDataError: When an amount is not numeric
    """
    card = _extract_card(payload)
    if card is None or not isinstance(card.get("Accounts"), list):
        logger.info("No accounts found in Zumrails payload")
        return "", []

    institution_name = card.get("InstitutionName") or ""
    accounts = []
    try:
        for index, raw_account in enumerate(card["Accounts"]):
            accounts.append(
                BankAccount(
                    bank_name=institution_name,
                    account_type=raw_account.get("AccountCategory")
                    or raw_account.get("AccountSubCategory")
                    or "",
                    number=raw_account.get("AccountNumber") or "",
                    transit=raw_account.get("TransitNumber") or "",
                    institution=raw_account.get("InstitutionNumber") or "",
                    title=raw_account.get("Title") or "",
                    transactions=[
                        _parse_transaction(raw, index) for raw in raw_account.get("Transactions") or []
                    ],
                )
            )
    except (AttributeError, ValueError, TypeError) as e:
        raise InvalidTransactionDataError(f"Invalid transaction data from Zumrails: {e}") from e

    return institution_name, accounts


class ZumrailsClient:
    """Client for the Zumrails data-aggregation API"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.zumrails_api_base).rstrip("/")
        self.token = token if token is not None else settings.zumrails_api_token
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    async def get_aggregation(self, request_id: str) -> dict:
        """
        Fetch the aggregation result for a verification request.

        Returns the unwrapped result object (`result`, `data` or the body itself).

        Raises:
            IBVProviderError: On timeout, HTTP errors, provider-reported errors or invalid JSON
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/api/aggregation/GetInformationByRequestId/{request_id}",
                    headers={"Authorization": f"Bearer {self.token}", "Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise IBVProviderError(f"Zumrails API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise IBVProviderError(f"Zumrails API error: {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise IBVProviderError(f"Zumrails API unreachable: {e}") from e
            except ValueError as e:
                raise IBVProviderError(f"Invalid JSON from Zumrails: {e}") from e

        if not isinstance(data, dict):
            raise IBVProviderError("Unexpected Zumrails response shape")
        if data.get("isError"):
            raise IBVProviderError(f"Zumrails reported an error: {data.get('message') or 'unknown'}")

        return data.get("result") or data.get("data") or data
