"""
Datadis private API client.

Thin wrapper around the provider's REST endpoints used by the retrieval
layer. Each public method makes exactly one HTTP request (no retries, no
backoff) and turns every failure into one of the pre-classified
GatewayError kinds:

    429                      -> RateLimitedError
    401                      -> AuthError
    connection / timeout     -> NetworkError
    anything else            -> OtherError

Login is not handled here; callers pass an already-issued bearer token.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

import requests
from loguru import logger
from pydantic import ValidationError

from . import aggregate, exceptions, utils
from .config import ApiConfig
from .types import ContractPower, Reading, Supply

DISTRIBUTORS_PATH = "/api-private/api/get-distributors-with-supplies-v2"
SUPPLIES_PATH = "/api-private/api/get-supplies-v2"
CONTRACT_DETAIL_PATH = "/api-private/api/get-contract-detail-v2"
CONSUMPTION_DATA_PATH = "/api-private/api/get-consumption-data-v2"


class Gateway(Protocol):
    """What the retrieval coordinator needs from the upstream API."""

    def get_contract_detail(
        self, auth_token: str, cups: str, distributor_code: str
    ) -> ContractPower: ...

    def get_consumption_data(
        self,
        auth_token: str,
        cups: str,
        distributor_code: str,
        start: date,
        end: date,
        measurement_type: int,
        point_type: Optional[int],
    ) -> list[Reading]: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _address_info(supply: dict[str, Any]) -> Optional[str]:
    parts = [supply.get(k) for k in ("address", "municipality", "postalCode", "province")]
    if not any(parts):
        return None
    address, municipality, postal_code, province = (p or "" for p in parts)
    return f"{address}, {municipality}, {postal_code} {province}".strip()


def parse_supply(raw: dict[str, Any]) -> Supply:
    return Supply(
        cups=str(raw["cups"]),
        distributor_code=str(raw.get("distributorCode", "")),
        point_type=raw.get("pointType"),
        address_info=_address_info(raw),
    )


def select_supply(supplies: Sequence[Supply], cups: Optional[str] = None) -> Supply:
    """Pick the supply to report on: the requested CUPS, or the only one."""
    if not supplies:
        raise ValueError("No supplies available for this account.")
    if cups is not None:
        for s in supplies:
            if s.cups == cups:
                return s
        available = ", ".join(s.cups for s in supplies)
        raise ValueError(
            f"Specified CUPS {cups} is not in the account. Available CUPS: {available}"
        )
    if len(supplies) > 1:
        raise ValueError(
            f"Multiple supplies detected: {', '.join(s.cups for s in supplies)}. Please specify a CUPS."
        )
    return supplies[0]


def _classify_status(resp: requests.Response, endpoint: str) -> exceptions.GatewayError:
    detail = f"API call failed: {resp.status_code} {resp.reason} - {resp.text[:200]}"
    if resp.status_code == 429:
        return exceptions.RateLimitedError(detail, endpoint=endpoint, status=429)
    if resp.status_code == 401:
        return exceptions.AuthError(detail, endpoint=endpoint, status=401)
    return exceptions.OtherError(detail, endpoint=endpoint, status=resp.status_code)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class DatadisClient:
    """
    Single-attempt client for the Datadis private API.

    Parameters
    ----------
    config:
        Base URL / mock server switch and per-request timeout.
    session:
        Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or ApiConfig()
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.config.effective_base_url}{path}"

    def _get(self, path: str, auth_token: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        One GET; returns the parsed JSON body.

        The provider is inconsistent with content types, so the body is
        parsed as JSON whatever the header says.
        """
        url = self._url(path)
        params = {k: v for k, v in (params or {}).items() if v is not None}
        headers = {"Authorization": auth_token, "Accept": "application/json"}
        logger.debug("GET {} params={}", url, params)
        try:
            resp = self._session.get(
                url, params=params, headers=headers, timeout=self.config.timeout
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
            logger.warning("Network error calling {}: {}", url, exc)
            raise exceptions.NetworkError(
                f"Network error calling {url}", endpoint=url
            ) from exc
        except requests.exceptions.RequestException as exc:
            logger.error("Request to {} failed: {}", url, exc)
            raise exceptions.OtherError(str(exc), endpoint=url) from exc

        if not resp.ok:
            err = _classify_status(resp, url)
            logger.error("{} error calling {}: {}", err.kind, url, err)
            raise err

        try:
            return resp.json()
        except ValueError as exc:
            raise exceptions.OtherError(
                f"Non-JSON response from {url}", endpoint=url, status=resp.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Public API methods
    # ------------------------------------------------------------------

    def get_distributors(self, auth_token: str) -> list[str]:
        body = self._get(DISTRIBUTORS_PATH, auth_token)
        try:
            codes = body["distExistenceUser"]["distributorCodes"]
        except (KeyError, TypeError) as exc:
            raise exceptions.OtherError(
                "Unexpected distributors format", endpoint=self._url(DISTRIBUTORS_PATH)
            ) from exc
        return [str(c) for c in codes]

    def get_supplies(self, auth_token: str, distributor_code: str) -> list[Supply]:
        body = self._get(SUPPLIES_PATH, auth_token, {"distributorCode": distributor_code})
        raw = body.get("supplies") if isinstance(body, dict) else None
        if not isinstance(raw, list):
            raise exceptions.OtherError(
                "Unexpected supplies format", endpoint=self._url(SUPPLIES_PATH)
            )
        try:
            supplies = [parse_supply(s) for s in raw]
        except (KeyError, TypeError, AttributeError) as exc:
            raise exceptions.OtherError(
                "Unexpected supply record format", endpoint=self._url(SUPPLIES_PATH)
            ) from exc
        logger.info("Found {} supplies for distributor {}", len(supplies), distributor_code)
        return supplies

    def get_contract_detail(
        self, auth_token: str, cups: str, distributor_code: str
    ) -> ContractPower:
        body = self._get(
            CONTRACT_DETAIL_PATH,
            auth_token,
            {"cups": cups, "distributorCode": distributor_code},
        )
        try:
            contracts = body.get("contract")
            powers: list[Any] = []
            if contracts:
                powers = contracts[0].get("contractedPowerkW") or []
            return ContractPower(
                p1=powers[0] if len(powers) > 0 else None,
                p2=powers[1] if len(powers) > 1 else None,
                cups=cups,
            )
        except (KeyError, IndexError, TypeError, AttributeError, ValidationError) as exc:
            raise exceptions.OtherError(
                "Unexpected contract detail format",
                endpoint=self._url(CONTRACT_DETAIL_PATH),
            ) from exc

    def get_consumption_data(
        self,
        auth_token: str,
        cups: str,
        distributor_code: str,
        start: date,
        end: date,
        measurement_type: int = 0,
        point_type: Optional[int] = None,
    ) -> list[Reading]:
        params = {
            "cups": cups,
            "distributorCode": distributor_code,
            "startDate": utils.month_key(start),
            "endDate": utils.month_key(end),
            "measurementType": measurement_type,
            "pointType": point_type,
        }
        body = self._get(CONSUMPTION_DATA_PATH, auth_token, params)
        curve = body.get("timeCurve") if isinstance(body, dict) else body
        if not isinstance(curve, list):
            raise exceptions.OtherError(
                "Unexpected consumption data format",
                endpoint=self._url(CONSUMPTION_DATA_PATH),
            )
        logger.debug("Fetched {} readings for {}", len(curve), cups)
        return aggregate.enrich(curve)
