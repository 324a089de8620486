from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError as SchemaError

from src.models.errors import AuthError, AuthErrorKind, NetworkError
from src.models.schemas import (
    Bet,
    Category,
    FieldError,
    LeaderboardEntry,
    Market,
    MarketDraft,
    MarketUpdate,
    Outcome,
    PlaceBetResult,
    Transaction,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://paisamarket.chandancr.xyz/api/v1"

TokenProvider = Callable[[], Optional[str]]


class PaisaClient:
    """Thin client for the prediction-market REST service.

    Every call is a single round-trip: no retries, no de-duplication. The
    bearer token is read from ``token_provider`` before each request, so a
    logout or expiry is picked up immediately. A 401 on a request that
    carried a token calls ``on_unauthorized`` and raises ``AuthError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.base_url = base_url or os.getenv("PAISA_API_URL", DEFAULT_API_URL)
        self.timeout = timeout
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, auth: bool = True, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}{path}"
        headers = self._auth_headers() if auth else {}
        logger.debug("%s %s (authenticated=%s)", method, path, bool(headers))

        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"{method} {path} returned a non-JSON body ({response.status_code})",
                status_code=response.status_code,
            ) from exc

        if response.status_code >= 400:
            body = payload if isinstance(payload, dict) else {}
            message = body.get("message") or "An error occurred"
            field_errors = _field_errors(body.get("errors"))
            if response.status_code == 401 and headers:
                logger.warning("Session rejected by service on %s %s", method, path)
                if self.on_unauthorized:
                    self.on_unauthorized()
                raise AuthError(AuthErrorKind.SESSION_EXPIRED, message, field_errors)
            raise NetworkError(message, status_code=response.status_code, field_errors=field_errors)

        if not isinstance(payload, dict):
            raise NetworkError(f"{method} {path} returned an unexpected payload", status_code=response.status_code)
        return payload

    def _parse(self, model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except SchemaError as exc:
            raise NetworkError(f"Malformed {what} in service response: {exc}") from exc

    def _parse_list(self, model, items: Any, what: str) -> list:
        return [self._parse(model, item, what) for item in (items or [])]

    # Authentication

    def signup(self, email: str, password: str) -> None:
        self._request("POST", "/users/signup", auth=False, json={"email": email, "password": password})

    def signin(self, email: str, password: str) -> str:
        payload = self._request("POST", "/users/signin", auth=False, json={"email": email, "password": password})
        token = payload.get("token")
        if not token:
            raise NetworkError("Sign-in response did not include a token")
        return token

    def get_current_user(self) -> User:
        return self._parse(User, self._request("GET", "/users/me").get("user"), "user")

    def leaderboard(self) -> List[LeaderboardEntry]:
        payload = self._request("GET", "/users/leaderboard")
        return self._parse_list(LeaderboardEntry, payload.get("leaderboard"), "leaderboard entry")

    # Markets

    def list_markets(self) -> List[Market]:
        payload = self._request("GET", "/markets/getallmarkets")
        return self._parse_list(Market, payload.get("markets"), "market")

    def get_market(self, market_id: int) -> Market:
        payload = self._request("GET", f"/markets/getmarket/{market_id}")
        return self._parse(Market, payload.get("market"), "market")

    def open_markets(self) -> List[Market]:
        payload = self._request("GET", "/markets/openmarkets")
        return self._parse_list(Market, payload.get("markets"), "market")

    def markets_by_category(self, category: Category) -> List[Market]:
        payload = self._request("GET", f"/markets/getmarketsbycatagory/{Category(category).value}")
        return self._parse_list(Market, payload.get("markets"), "market")

    def search_markets(self, query: str) -> List[Market]:
        payload = self._request("GET", "/markets/search", params={"title": query})
        return self._parse_list(Market, payload.get("markets"), "market")

    def create_market(self, draft: MarketDraft) -> Market:
        payload = self._request("POST", "/markets/create", json=draft.to_payload())
        return self._parse(Market, payload.get("market"), "market")

    def update_market(self, market_id: int, update: MarketUpdate) -> Market:
        payload = self._request("PUT", f"/markets/update/{market_id}", json=update.to_payload())
        return self._parse(Market, payload.get("market", payload), "market")

    def lock_market(self, market_id: int) -> Market:
        payload = self._request("POST", f"/markets/lockbets/{market_id}")
        return self._parse(Market, payload.get("lockedMarket"), "market")

    def resolve_market(self, market_id: int, outcome: Outcome) -> None:
        self._request("POST", f"/markets/resolvemarket/{market_id}", json={"outcome": Outcome(outcome).value})

    # Wagering

    def place_bet(self, market_id: int, outcome: Outcome, stake: int) -> PlaceBetResult:
        payload = self._request(
            "POST",
            "/bets/placebets",
            json={"amount": stake, "marketId": market_id, "outcome_chosen": Outcome(outcome).value},
        )
        return self._parse(PlaceBetResult, payload, "bet placement")

    def list_user_bets(self) -> List[Bet]:
        payload = self._request("GET", "/bets/getallbets")
        return self._parse_list(Bet, payload.get("bets"), "bet")

    def list_market_bets(self, market_id: int) -> List[Bet]:
        payload = self._request("GET", f"/bets/getallbetsmarket/{market_id}")
        return self._parse_list(Bet, payload.get("bets"), "bet")

    def list_transactions(self) -> List[Transaction]:
        payload = self._request("GET", "/transactions/getalltransactions")
        return self._parse_list(Transaction, payload.get("transactions"), "transaction")


def _field_errors(raw: Any) -> List[FieldError]:
    errors: List[FieldError] = []
    for item in raw or []:
        if isinstance(item, dict) and item.get("message"):
            errors.append(FieldError(path=item.get("path") or [], message=item["message"]))
    return errors
