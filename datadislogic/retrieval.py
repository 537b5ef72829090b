from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from . import aggregate, canon, exceptions, utils
from .cache import TTLCache
from .config import Config, default_config
from .gateway import Gateway
from .types import ContractPower, Reading, Retrieved, Supply, SupplyReport


def consumption_cache_key(
    cups: str,
    start: date,
    end: date,
    measurement_type: int,
    point_type: Optional[int],
) -> str:
    """Months render as YYYY/MM; an absent point type renders as an empty segment."""
    pt = "" if point_type is None else point_type
    return (
        f"{canon.CONSUMPTION_KEY_PREFIX}_{cups}_{utils.month_key(start)}_"
        f"{utils.month_key(end)}_{measurement_type}_{pt}"
    )


def contract_cache_key(cups: str, distributor_code: str) -> str:
    return f"{canon.CONTRACT_KEY_PREFIX}_{cups}_{distributor_code}"


def _readings_from(value: Any, endpoint: str = "consumption") -> list[Reading]:
    if isinstance(value, dict) and isinstance(value.get("timeCurve"), list):
        value = value["timeCurve"]
    if not isinstance(value, list):
        logger.warning("Unexpected consumption data format: {!r}", type(value).__name__)
        raise exceptions.OtherError("Unexpected consumption data format", endpoint=endpoint)
    return value


class RetrievalCoordinator:
    """
    Fetch live data, falling back to the cache only when rate-limited.

    For each resource:
      live ok       -> write through to the cache, tag 'fresh'
      rate-limited  -> cached copy tagged 'stale', or re-raise on a miss
      other failure -> re-raise; the cache is not consulted
    """

    def __init__(
        self,
        gateway: Gateway,
        cache: Optional[TTLCache] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config or default_config()
        self.gateway = gateway
        self.cache = cache if cache is not None else TTLCache.from_config(self.config.cache)

    def _cached(self, key: str, parse: Callable[[Any], Any]) -> Optional[Retrieved]:
        """Stale result for key, or None on a miss or an unusable cached payload."""
        entry = self.cache.get_entry(key)
        if entry is None:
            return None
        try:
            value = parse(entry.value)
        except (exceptions.OtherError, ValidationError) as exc:
            logger.warning("Unusable cached data for {}; removing: {}", key, exc)
            self.cache.delete(key)
            return None
        return Retrieved(
            value=value,
            provenance="stale",
            key=key,
            stored_at=entry.stored_datetime,
        )

    def _fetch(
        self,
        key: str,
        ttl_hours: float,
        call: Callable[[], Any],
        parse: Callable[[Any], Any],
    ) -> Retrieved:
        """
        call() returns the cacheable payload; parse() turns a payload, live or
        cached, into the value handed to the caller.
        """
        try:
            value = call()
        except exceptions.RateLimitedError:
            stale = self._cached(key, parse)
            if stale is None:
                logger.warning("Rate limited and nothing cached for {}", key)
                raise
            logger.warning(
                "Rate limited; using cached data for {} stored at {}",
                key,
                stale.stored_at.isoformat(),
            )
            return stale

        self.cache.set(key, value, ttl_hours)
        return Retrieved(value=parse(value), provenance="fresh", key=key)

    def fetch_contract_detail(self, auth_token: str, supply: Supply) -> Retrieved:
        """Contracted power for a supply; value is a ContractPower."""
        key = contract_cache_key(supply.cups, supply.distributor_code)

        def call() -> dict[str, Any]:
            contract = self.gateway.get_contract_detail(
                auth_token, supply.cups, supply.distributor_code
            )
            contract = contract.model_copy(
                update={"cups": supply.cups, "address_info": supply.address_info}
            )
            return contract.model_dump(by_alias=True)

        result = self._fetch(
            key, self.config.cache.contract_ttl_hours, call, ContractPower.model_validate
        )
        logger.debug("Contracted power P1={} P2={}", result.value.p1, result.value.p2)
        return result

    def fetch_consumption(
        self,
        auth_token: str,
        supply: Supply,
        start: date,
        end: date,
        measurement_type: Optional[int] = None,
    ) -> Retrieved:
        """Reading series for a supply between the months of start and end."""
        if measurement_type is None:
            measurement_type = self.config.retrieval.measurement_type
        key = consumption_cache_key(
            supply.cups, start, end, measurement_type, supply.point_type
        )

        def call() -> list[Reading]:
            value = self.gateway.get_consumption_data(
                auth_token,
                supply.cups,
                supply.distributor_code,
                start,
                end,
                measurement_type,
                supply.point_type,
            )
            return _readings_from(value, endpoint=key)

        return self._fetch(
            key,
            self.config.cache.consumption_ttl_hours,
            call,
            lambda value: _readings_from(value, endpoint=key),
        )

    def retrieve(
        self, auth_token: str, supply: Supply, today: Optional[date] = None
    ) -> SupplyReport:
        """
        One retrieval session: contract details, then the consumption series
        for the configured look-back, then the monthly report.

        Any propagated failure ends the session; there is no retry.
        """
        end = today or date.today()
        start = utils.shift_months(end, -self.config.retrieval.months_to_fetch)
        logger.info(
            "Retrieving {} from {} to {}",
            supply.cups,
            utils.month_key(start),
            utils.month_key(end),
        )

        contract = self.fetch_contract_detail(auth_token, supply)
        consumption = self.fetch_consumption(auth_token, supply, start, end)

        report = aggregate.process(consumption.value, today=end)

        notes = []
        for label, res in (("contract", contract), ("consumption", consumption)):
            if res.is_stale and res.stored_at is not None:
                notes.append(f"Showing saved {label} data from {res.stored_at.isoformat()}")

        out = SupplyReport(
            supply=supply,
            contract=contract,
            consumption=consumption,
            report=report,
            start_month=utils.month_key(start),
            end_month=utils.month_key(end),
            notes=notes,
        )
        logger.info(
            "Retrieved {} ({}) with {} readings",
            supply.cups,
            "cached" if out.from_cache else "fresh",
            len(report.enriched),
        )
        return out
