"""
Estimate Credit Use Case

Prices an operation from the credit config table. This is the pricing
engine used before any credits are reserved.
"""
import logging
import math
from numbers import Number
from typing import Any, Dict, Mapping, Optional, Tuple
from libs.result import Result, Return
from src.app.repositories.credit_config_repository import CreditConfigRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.credit_config import CreditConfig
from .dtos import EstimateCommandDTO, EstimateResponseDTO

logger = logging.getLogger(__name__)


# Cost charged when an operation has no readable price config
DEFAULT_OPERATION_COST = 2

# Request parameter -> pricing parameter. A template containing "{value}"
# turns a string-valued option into a flag, e.g. quality="high" bills
# "high_image"; a plain name renames the parameter and keeps its value.
DEFAULT_PARAM_ALIASES: Dict[str, str] = {
    "quality": "{value}_image",
    "numSamples": "extra_sample",
    "num_samples": "extra_sample",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


class EstimateCredit:
    """
    Use case: Credit cost of an operation

    Pricing law (additive, extra units):
    - total = base_cost
    - for every parameter that is enabled (True, or a number > 0) and has a
      surcharge in additional_params:
        - a number n > 1 adds surcharge * (n - 1)
        - anything else, including n == 1 and fractions up to 1, adds the
          flat surcharge
    - fractional unit counts are rounded up

    e.g. base 2, high_image 1, extra_sample 1 with quality="high" and
    numSamples=3 costs 2 + 1 + 1 * (3 - 1) = 5.

    An operation with no config, or an unreadable one (including negative
    costs), costs the fallback cost instead of failing the caller.
    """

    def __init__(
        self,
        config_repo: CreditConfigRepository,
        fallback_cost: int = DEFAULT_OPERATION_COST,
        param_aliases: Optional[Mapping[str, str]] = None,
        uow: Optional[UnitOfWork] = None,
    ):
        """
        Args:
            config_repo: Price table access
            fallback_cost: Cost used when config is missing or unreadable
            param_aliases: Request-to-pricing parameter mapping. Defaults to
                DEFAULT_PARAM_ALIASES.
            uow: Unit of work owning the config session; rolled back when
                the config read fails so the session stays usable
        """
        self.config_repo = config_repo
        self.fallback_cost = fallback_cost
        self.param_aliases = dict(DEFAULT_PARAM_ALIASES if param_aliases is None else param_aliases)
        self.uow = uow

    def normalize_params(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Map request parameters onto pricing parameter names"""
        normalized: Dict[str, Any] = {}
        for key, value in (params or {}).items():
            alias = self.param_aliases.get(key)
            if alias is None:
                normalized[key] = value
            elif "{value}" in alias:
                if isinstance(value, str) and value:
                    normalized[alias.format(value=value)] = True
            else:
                normalized[alias] = value
        return normalized

    async def _load_config(self, operation: str) -> Optional[CreditConfig]:
        try:
            config = await self.config_repo.get_by_operation(operation)
        except Exception as e:
            logger.warning(f"Credit config for {operation} unavailable: {e}")
            if self.uow is not None:
                await self.uow.rollback()
            return None

        if config is None:
            logger.warning(f"No credit config for {operation}, using fallback cost {self.fallback_cost}")
            return None

        surcharges = config.additional_params or {}
        if (
            not _is_number(config.base_cost)
            or config.base_cost < 0
            or not isinstance(surcharges, Mapping)
            or not all(_is_number(cost) and cost >= 0 for cost in surcharges.values())
        ):
            logger.warning(f"Credit config for {operation} is malformed, using fallback cost {self.fallback_cost}")
            return None

        return config

    async def _price(
        self, operation: str, params: Optional[Mapping[str, Any]]
    ) -> Tuple[int, Dict[str, int], bool]:
        config = await self._load_config(operation)
        if config is None:
            return self.fallback_cost, {"base": self.fallback_cost}, True

        surcharges = config.additional_params or {}
        breakdown: Dict[str, int] = {"base": int(config.base_cost)}

        for param, value in self.normalize_params(params).items():
            if param not in surcharges:
                continue

            enabled = value is True or (_is_number(value) and value > 0)
            if not enabled:
                continue

            unit_cost = surcharges[param]
            if _is_number(value) and value > 1:
                breakdown[param] = int(math.ceil(unit_cost * (value - 1)))
            else:
                breakdown[param] = int(unit_cost)

        return sum(breakdown.values()), breakdown, False

    async def compute_cost(self, operation: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """
        Credit cost of `operation` with request `params`

        Never raises for missing or unreadable configuration.
        """
        total, _, _ = await self._price(operation, params)
        return total

    async def execute(self, command: EstimateCommandDTO) -> Result[EstimateResponseDTO]:
        """
        Price an operation with a per-component breakdown.

        Returns:
            Result[EstimateResponseDTO]: Estimated cost breakdown
        """
        total, breakdown, used_fallback = await self._price(command.operation, command.params)

        return Return.ok(
            EstimateResponseDTO(
                operation=command.operation,
                estimated_credits=total,
                breakdown=breakdown,
                used_fallback=used_fallback,
            )
        )
